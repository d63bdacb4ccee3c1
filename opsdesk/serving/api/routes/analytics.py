"""
Analytics API Endpoints

REST API for the operations dashboard: overview, revenue, order trends,
top performers, conversion funnel and customer lifetime value.

Handlers fetch bounded record sets from the analytics store and hand them
to the aggregation engine; no computation happens here.
"""

from contextlib import contextmanager
from datetime import date, timedelta
from typing import List, Optional, Sequence, Union

import structlog
from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from opsdesk.analytics import aggregation
from opsdesk.analytics.exceptions import InvalidArgumentError
from opsdesk.analytics.records import (
    AnalyticsWindow,
    PerformerDimension,
    Record,
    RevenueUnit,
    TrendUnit,
    coerce_enum,
)
from opsdesk.analytics.schemas import (
    AnalyticsPeriod,
    AnalyticsSummary,
    ConversionFunnel,
    DeliveryPerformance,
    LifetimeValueReport,
    RevenueBucket,
    StorePerformance,
    TrendBucket,
)
from opsdesk.config import Settings
from opsdesk.database.store import AnalyticsStore, get_analytics_store
from opsdesk.quality import audit_orders
from opsdesk.serving.api.auth import get_current_user
from opsdesk.serving.api.dependencies import get_app_settings

router = APIRouter(dependencies=[Depends(get_current_user)])
logger = structlog.get_logger(__name__)


class OverviewResponse(BaseModel):
    """Overview with the window it covers"""
    analytics: AnalyticsSummary
    period: AnalyticsPeriod


class RevenueResponse(BaseModel):
    """Revenue buckets"""
    revenue: List[RevenueBucket]


class TrendsResponse(BaseModel):
    """Order trend buckets"""
    trends: List[TrendBucket]


class TopPerformersResponse(BaseModel):
    """Ranked stores or delivery companies"""
    top_performers: List[Union[StorePerformance, DeliveryPerformance]]


@contextmanager
def failure_message(message: str):
    """Turn unexpected errors into a 500 carrying ``message``."""
    try:
        yield
    except (InvalidArgumentError, HTTPException):
        raise
    except Exception as e:
        logger.error(message, error=str(e), error_type=type(e).__name__)
        raise HTTPException(status_code=500, detail=message) from e


def log_record_quality(orders: Sequence[Record], report_name: str) -> None:
    report = audit_orders(orders)
    if not report.is_clean:
        logger.warning("Degraded order records", report=report_name, **report.to_dict())


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_app_settings),
) -> OverviewResponse:
    """
    Order, user and campaign overview.

    Defaults to the last ``ANALYTICS_DEFAULT_WINDOW_DAYS`` days.
    """
    window = AnalyticsWindow.from_dates(
        start_date, end_date, timedelta(days=settings.analytics.default_window_days)
    )
    logger.info("get_overview called", start=window.start.isoformat(), end=window.end.isoformat())

    with failure_message("Failed to get analytics"):
        orders = await store.fetch_orders(window)
        users = await store.fetch_users(window)
        campaigns = await store.fetch_campaigns(window)
        log_record_quality(orders, "overview")

        summary = aggregation.summarize(orders, users, campaigns, window)

    return OverviewResponse(
        analytics=summary,
        period=AnalyticsPeriod(start_date=window.start, end_date=window.end),
    )


@router.get("/revenue", response_model=RevenueResponse)
async def get_revenue(
    period: str = "month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_app_settings),
) -> RevenueResponse:
    """
    Revenue grouped by day, week, month or year.

    Defaults to the last ``ANALYTICS_DEFAULT_REVENUE_MONTHS`` months.
    """
    unit = coerce_enum(RevenueUnit, period, "period")
    window = AnalyticsWindow.from_dates(
        start_date, end_date, relativedelta(months=settings.analytics.default_revenue_months)
    )
    logger.info("get_revenue called", period=unit.value, start=window.start.isoformat(), end=window.end.isoformat())

    with failure_message("Failed to get revenue analytics"):
        orders = await store.fetch_orders(window)
        log_record_quality(orders, "revenue")
        buckets = aggregation.bucket_revenue(orders, unit)

    return RevenueResponse(revenue=buckets)


@router.get("/orders/trends", response_model=TrendsResponse)
async def get_order_trends(
    period: str = "day",
    days: Optional[int] = Query(None, ge=1),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_app_settings),
) -> TrendsResponse:
    """Order counts per status by day or hour over the last ``days`` days."""
    unit = coerce_enum(TrendUnit, period, "period")
    days = days or settings.analytics.default_trend_days
    if days > settings.analytics.max_trend_days:
        raise InvalidArgumentError("days", days)
    window = AnalyticsWindow.trailing_days(days)
    logger.info("get_order_trends called", period=unit.value, days=days)

    with failure_message("Failed to get order trends"):
        orders = await store.fetch_orders(window)
        log_record_quality(orders, "trends")
        buckets = aggregation.bucket_order_trends(orders, unit, days, now=window.end)

    return TrendsResponse(trends=buckets)


@router.get("/top-performers", response_model=TopPerformersResponse)
async def get_top_performers(
    performer_type: str = Query("stores", alias="type"),
    limit: Optional[int] = Query(None, ge=1),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_app_settings),
) -> TopPerformersResponse:
    """Stores ranked by revenue or delivery companies ranked by order count."""
    dimension = coerce_enum(PerformerDimension, performer_type, "type")
    limit = limit or settings.analytics.default_top_limit
    if limit > settings.analytics.max_top_limit:
        raise InvalidArgumentError("limit", limit)
    logger.info("get_top_performers called", type=dimension.value, limit=limit)

    with failure_message("Failed to get top performers"):
        orders = await store.fetch_orders()
        performers = aggregation.top_performers(orders, dimension, limit)

    return TopPerformersResponse(top_performers=performers)


@router.get("/conversion-funnel", response_model=ConversionFunnel)
async def get_conversion_funnel(
    store: AnalyticsStore = Depends(get_analytics_store),
) -> ConversionFunnel:
    """Status funnel over all orders, regardless of age."""
    with failure_message("Failed to get conversion funnel"):
        orders = await store.fetch_orders()
        return aggregation.conversion_funnel(orders)


@router.get("/customer-ltv", response_model=LifetimeValueReport)
async def get_customer_ltv(
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_app_settings),
) -> LifetimeValueReport:
    """Average lifetime value and the highest spending customers."""
    with failure_message("Failed to get customer LTV"):
        orders = await store.fetch_orders()
        return aggregation.customer_lifetime_value(orders, settings.analytics.default_ltv_top_n)
