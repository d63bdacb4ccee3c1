"""
Analytics Store

Materializes the order, user and campaign records the aggregation engine
works on. Route handlers depend on the ``AnalyticsStore`` protocol and get
the SQL implementation through ``get_analytics_store``.
"""

from typing import Any, Dict, List, Optional, Protocol

import structlog
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.analytics.records import AnalyticsWindow
from .connection import get_db_dependency
from .models import Campaign, DeliveryCompany, Order, Store, User

logger = structlog.get_logger(__name__)

Row = Dict[str, Any]


class AnalyticsStore(Protocol):
    """Source of records for analytics reports"""

    async def fetch_orders(self, window: Optional[AnalyticsWindow] = None) -> List[Row]:
        """Orders created inside ``window`` (all orders when None), oldest first."""
        ...

    async def fetch_users(self, window: AnalyticsWindow) -> List[Row]:
        """Users created inside ``window``."""
        ...

    async def fetch_campaigns(self, window: AnalyticsWindow) -> List[Row]:
        """Campaigns created inside ``window``."""
        ...


class SqlAnalyticsStore:
    """``AnalyticsStore`` backed by an async SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _rows(self, stmt) -> List[Row]:
        result = await self.session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def fetch_orders(self, window: Optional[AnalyticsWindow] = None) -> List[Row]:
        stmt = (
            select(
                Order.id,
                Order.total,
                Order.status,
                Order.created_at,
                Order.created_by,
                Order.store_id,
                Store.name.label("store_name"),
                Order.delivery_company_id,
                DeliveryCompany.name.label("delivery_company_name"),
            )
            .outerjoin(Store, Store.id == Order.store_id)
            .outerjoin(DeliveryCompany, DeliveryCompany.id == Order.delivery_company_id)
            .order_by(Order.created_at)
        )
        if window is not None:
            stmt = stmt.where(Order.created_at.between(window.start, window.end))

        rows = await self._rows(stmt)
        logger.debug("Orders fetched", rows=len(rows), windowed=window is not None)
        return rows

    async def fetch_users(self, window: AnalyticsWindow) -> List[Row]:
        stmt = (
            select(User.id, User.created_at)
            .where(User.created_at.between(window.start, window.end))
            .order_by(User.created_at)
        )
        return await self._rows(stmt)

    async def fetch_campaigns(self, window: AnalyticsWindow) -> List[Row]:
        stmt = (
            select(
                Campaign.id,
                Campaign.status,
                Campaign.recipients_count,
                Campaign.opened_count,
                Campaign.clicked_count,
                Campaign.created_at,
            )
            .where(Campaign.created_at.between(window.start, window.end))
            .order_by(Campaign.created_at)
        )
        return await self._rows(stmt)


async def get_analytics_store(db: AsyncSession = Depends(get_db_dependency)) -> AnalyticsStore:
    """FastAPI dependency providing the request's analytics store."""
    return SqlAnalyticsStore(db)
