"""
Integration Tests - SQL Analytics Store
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from opsdesk.analytics import AnalyticsWindow, customer_lifetime_value, top_performers
from opsdesk.database import Base, Database, SqlAnalyticsStore
from opsdesk.database.models import Campaign, DeliveryCompany, Order, Store, User


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


MARCH = AnalyticsWindow(start=utc(2024, 3, 1), end=utc(2024, 3, 31, 23, 59, 59))


@pytest.fixture
async def database():
    database = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with database.session() as db:
        db.add_all(
            [
                Store(id="store-a", name="Alpha Market"),
                Store(id="store-b", name="Beta Bazaar"),
                DeliveryCompany(id="dc-1", name="Swift Couriers"),
            ]
        )
        await db.flush()
        db.add_all(
            [
                Order(
                    id="ord-1", total=Decimal("150.00"), status="delivered", created_at=utc(2024, 3, 10, 9),
                    created_by="cust-1", store_id="store-a", delivery_company_id="dc-1",
                ),
                Order(
                    id="ord-2", total=Decimal("150.00"), status="pending", created_at=utc(2024, 3, 13, 14, 30),
                    created_by="cust-1", store_id="store-a",
                ),
                Order(
                    id="ord-3", total=Decimal("500.00"), status="processing", created_at=utc(2024, 3, 13, 15, 45),
                    created_by="cust-2", store_id="store-b", delivery_company_id="dc-1",
                ),
                Order(id="ord-4", total=None, status="cancelled", created_at=utc(2024, 4, 2, 8)),
                User(id="user-1", created_at=utc(2024, 3, 2, 12)),
                User(id="user-2", created_at=utc(2024, 5, 1, 12)),
                Campaign(
                    id="camp-1", name="Spring", status="sent", recipients_count=100,
                    opened_count=40, clicked_count=10, created_at=utc(2024, 3, 5, 10),
                ),
            ]
        )

    yield database
    await database.dispose()


class TestSqlAnalyticsStore:
    """Tests for SqlAnalyticsStore"""

    async def test_fetch_orders_within_window(self, database):
        async with database.session() as db:
            rows = await SqlAnalyticsStore(db).fetch_orders(MARCH)

        assert [row["id"] for row in rows] == ["ord-1", "ord-2", "ord-3"]
        assert rows[0]["store_name"] == "Alpha Market"
        assert rows[0]["delivery_company_name"] == "Swift Couriers"
        assert rows[1]["delivery_company_name"] is None

    async def test_fetch_all_orders(self, database):
        async with database.session() as db:
            rows = await SqlAnalyticsStore(db).fetch_orders()

        assert len(rows) == 4
        assert rows[-1]["total"] is None

    async def test_fetch_users_and_campaigns(self, database):
        async with database.session() as db:
            store = SqlAnalyticsStore(db)
            users = await store.fetch_users(MARCH)
            campaigns = await store.fetch_campaigns(MARCH)

        assert [user["id"] for user in users] == ["user-1"]
        assert campaigns[0]["recipients_count"] == 100
        assert campaigns[0]["status"] == "sent"

    async def test_rows_feed_aggregation(self, database):
        async with database.session() as db:
            orders = await SqlAnalyticsStore(db).fetch_orders()

        stores = top_performers(orders, "stores")
        assert [(s.store_name, s.total_revenue) for s in stores] == [
            ("Beta Bazaar", Decimal("500.00")),
            ("Alpha Market", Decimal("300.00")),
            ("Unknown", Decimal("0.00")),
        ]
        assert customer_lifetime_value(orders).total_customers == 2


class TestDatabase:
    """Tests for Database"""

    async def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.session() as db:
                db.add(User(id="user-3", created_at=utc(2024, 3, 3)))
                await db.flush()
                raise RuntimeError("abort")

        async with database.session() as db:
            count = await db.scalar(select(func.count()).select_from(User))

        assert count == 2

    async def test_health(self, database):
        health = await database.health()

        assert health["status"] == "healthy"
        assert health["latency_ms"] >= 0

    async def test_connect(self, database):
        await database.connect()
