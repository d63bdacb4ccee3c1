"""
Analytics Module
"""
from .aggregation import (
    bucket_order_trends,
    bucket_revenue,
    conversion_funnel,
    customer_lifetime_value,
    summarize,
    top_performers,
)
from .exceptions import AnalyticsError, InvalidArgumentError, MalformedRecordError
from .records import AnalyticsWindow, OrderStatus, PerformerDimension, RevenueUnit, TrendUnit

__all__ = [
    "summarize",
    "bucket_revenue",
    "bucket_order_trends",
    "top_performers",
    "conversion_funnel",
    "customer_lifetime_value",
    "AnalyticsError",
    "InvalidArgumentError",
    "MalformedRecordError",
    "AnalyticsWindow",
    "OrderStatus",
    "PerformerDimension",
    "RevenueUnit",
    "TrendUnit",
]
