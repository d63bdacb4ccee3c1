"""
Aggregation Engine

Grouping, bucketing and metric derivation over already-fetched order,
user and campaign records.

Every function here is pure: it reads the records it is given, keeps no
state between calls and performs no I/O. Input sequences are consumed
eagerly in a single pass (O(n) time, O(distinct keys) extra space), so
callers are responsible for bounding what they fetch.

Record-level data problems never abort an aggregation:
- missing or malformed amounts and counters contribute zero
- a missing or malformed ``created_at`` excludes that record from any
  time bucket and from window membership checks; the skip is logged
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from .exceptions import InvalidArgumentError, MalformedRecordError
from .records import (
    ZERO,
    AnalyticsWindow,
    OrderStatus,
    PerformerDimension,
    Record,
    RevenueUnit,
    TrendUnit,
    coerce_enum,
    order_status,
    parse_amount,
    parse_count,
    parse_timestamp,
    quantize_money,
)
from .schemas import (
    AnalyticsSummary,
    CampaignOverview,
    ConversionFunnel,
    CustomerValue,
    DeliveryPerformance,
    FunnelStage,
    LifetimeValueReport,
    OrderOverview,
    RevenueBucket,
    StatusCounts,
    StorePerformance,
    TrendBucket,
    UserOverview,
)

logger = structlog.get_logger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_STATUS = "unknown"


# =============================================================================
# PERIOD KEYS
# =============================================================================

def _day_key(moment: datetime) -> str:
    return moment.date().isoformat()


def _week_key(moment: datetime) -> str:
    # weeks start on Sunday; 0001-01-01 is a Monday and starts its own week
    day = moment.date()
    ordinal = max(day.toordinal() - (day.weekday() + 1) % 7, 1)
    return date.fromordinal(ordinal).isoformat()


def _month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def _year_key(moment: datetime) -> str:
    return f"{moment.year:04d}"


def _hour_key(moment: datetime) -> str:
    return f"{moment.date().isoformat()} {moment.hour:02d}:00"


REVENUE_KEYS: Dict[RevenueUnit, Callable[[datetime], str]] = {
    RevenueUnit.DAY: _day_key,
    RevenueUnit.WEEK: _week_key,
    RevenueUnit.MONTH: _month_key,
    RevenueUnit.YEAR: _year_key,
}

TREND_KEYS: Dict[TrendUnit, Callable[[datetime], str]] = {
    TrendUnit.DAY: _day_key,
    TrendUnit.HOUR: _hour_key,
}


def _timestamped(records: Iterable[Record], operation: str) -> Iterable[Tuple[datetime, Record]]:
    """Yield ``(created_at, record)`` pairs, skipping records without a usable timestamp."""
    skipped = 0
    for record in records:
        try:
            moment = parse_timestamp(record.get("created_at"))
        except MalformedRecordError:
            skipped += 1
            continue
        yield moment, record
    if skipped:
        logger.debug("Records without a valid created_at skipped", operation=operation, skipped=skipped)


def _status_counts(orders: Sequence[Record]) -> StatusCounts:
    counts = StatusCounts()
    for order in orders:
        status = order_status(order)
        if status is not None:
            setattr(counts, status.value, getattr(counts, status.value) + 1)
    return counts


def _ref(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


# =============================================================================
# OVERVIEW
# =============================================================================

def summarize(
    orders: Sequence[Record],
    users: Sequence[Record],
    campaigns: Sequence[Record],
    window: AnalyticsWindow,
) -> AnalyticsSummary:
    """
    Summarize orders, users and campaigns fetched for ``window``.

    Orders and campaigns are counted as supplied. Users are counted as new
    only when their ``created_at`` falls inside the window.
    """
    revenue = sum((parse_amount(order.get("total")) for order in orders), ZERO)
    total_orders = len(orders)
    average_value = revenue / total_orders if total_orders else ZERO

    new_users = sum(
        1 for moment, _ in _timestamped(users, "summarize") if window.contains(moment)
    )

    return AnalyticsSummary(
        orders=OrderOverview(
            total=total_orders,
            revenue=quantize_money(revenue),
            average_value=quantize_money(average_value),
            by_status=_status_counts(orders),
        ),
        users=UserOverview(new_users=new_users, total_users=len(users)),
        campaigns=CampaignOverview(
            total=len(campaigns),
            sent=sum(1 for campaign in campaigns if campaign.get("status") == "sent"),
            total_recipients=sum(parse_count(c.get("recipients_count")) for c in campaigns),
            total_opens=sum(parse_count(c.get("opened_count")) for c in campaigns),
            total_clicks=sum(parse_count(c.get("clicked_count")) for c in campaigns),
        ),
    )


# =============================================================================
# TIME BUCKETS
# =============================================================================

def bucket_revenue(
    orders: Sequence[Record],
    unit: Union[RevenueUnit, str] = RevenueUnit.MONTH,
) -> List[RevenueBucket]:
    """
    Group order revenue by calendar period.

    Args:
        orders: Orders carrying ``total`` and ``created_at``
        unit: day, week (Sunday start), month or year

    Returns:
        Buckets sorted ascending by period key

    Raises:
        InvalidArgumentError: unit is not a revenue unit
    """
    key_for = REVENUE_KEYS[coerce_enum(RevenueUnit, unit, "period")]

    revenue: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    for moment, order in _timestamped(orders, "bucket_revenue"):
        key = key_for(moment)
        revenue[key] = revenue.get(key, ZERO) + parse_amount(order.get("total"))
        counts[key] = counts.get(key, 0) + 1

    return [
        RevenueBucket(period=key, revenue=quantize_money(revenue[key]), orders=counts[key])
        for key in sorted(revenue)
    ]


def bucket_order_trends(
    orders: Sequence[Record],
    unit: Union[TrendUnit, str] = TrendUnit.DAY,
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[TrendBucket]:
    """
    Count orders per status by day or hour.

    The four known statuses are always present on every bucket. Any other
    status value is counted verbatim under ``other``; a missing status is
    counted as ``"unknown"``.

    Args:
        orders: Orders carrying ``status`` and ``created_at``
        unit: day or hour
        days: Only count orders from the last ``days`` days before ``now``;
            None counts every order supplied
        now: End of the lookback, defaults to the current time

    Raises:
        InvalidArgumentError: unit is not a trend unit or days is below 1
    """
    key_for = TREND_KEYS[coerce_enum(TrendUnit, unit, "period")]
    lookback = None
    if days is not None:
        if days < 1:
            raise InvalidArgumentError("days", days)
        lookback = AnalyticsWindow.trailing_days(days, now)

    buckets: Dict[str, TrendBucket] = {}
    for moment, order in _timestamped(orders, "bucket_order_trends"):
        if lookback is not None and not lookback.contains(moment):
            continue
        key = key_for(moment)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = TrendBucket(period=key)

        bucket.total += 1
        status = order_status(order)
        if status is not None:
            setattr(bucket, status.value, getattr(bucket, status.value) + 1)
        else:
            raw = order.get("status")
            label = UNKNOWN_STATUS if raw is None or raw == "" else str(raw)
            bucket.other[label] = bucket.other.get(label, 0) + 1

    return [buckets[key] for key in sorted(buckets)]


# =============================================================================
# ROLLUPS
# =============================================================================

@dataclass
class _Rollup:
    entity_id: Optional[str]
    name: Optional[str] = None
    orders: int = 0
    revenue: Decimal = ZERO


_DIMENSION_FIELDS = {
    PerformerDimension.STORES: ("store_id", "store_name"),
    PerformerDimension.DELIVERY: ("delivery_company_id", "delivery_company_name"),
}


def top_performers(
    orders: Sequence[Record],
    dimension: Union[PerformerDimension, str],
    limit: int = 10,
) -> Union[List[StorePerformance], List[DeliveryPerformance]]:
    """
    Rank stores or delivery companies by their orders.

    Stores are ranked by revenue, delivery companies by order count; ties
    keep the order in which entities first appear.

    Raises:
        InvalidArgumentError: unknown dimension or negative limit
    """
    dimension = coerce_enum(PerformerDimension, dimension, "type")
    if limit < 0:
        raise InvalidArgumentError("limit", limit)
    id_field, name_field = _DIMENSION_FIELDS[dimension]

    rollups: Dict[Optional[str], _Rollup] = {}
    for order in orders:
        entity_id = _ref(order.get(id_field))
        rollup = rollups.get(entity_id)
        if rollup is None:
            rollup = rollups[entity_id] = _Rollup(entity_id=entity_id)
        if not rollup.name and order.get(name_field):
            rollup.name = str(order.get(name_field))
        rollup.orders += 1
        rollup.revenue += parse_amount(order.get("total"))

    if dimension is PerformerDimension.STORES:
        ranked = sorted(rollups.values(), key=lambda r: r.revenue, reverse=True)[:limit]
        return [
            StorePerformance(
                store_id=r.entity_id,
                store_name=r.name or UNKNOWN_NAME,
                total_orders=r.orders,
                total_revenue=quantize_money(r.revenue),
            )
            for r in ranked
        ]

    ranked = sorted(rollups.values(), key=lambda r: r.orders, reverse=True)[:limit]
    return [
        DeliveryPerformance(
            delivery_id=r.entity_id,
            delivery_name=r.name or UNKNOWN_NAME,
            total_orders=r.orders,
            total_revenue=quantize_money(r.revenue),
        )
        for r in ranked
    ]


def _percentages(counts: Dict[str, int], total: int) -> Dict[str, Decimal]:
    """
    Shares of ``total`` in hundredths of a percent, largest-remainder rounded.

    Orders outside the known statuses take part in the rounding as an
    implicit remainder share, so the reported rates never sum above 100.00
    and sum to exactly 100.00 when every order has a known status.
    """
    if total == 0:
        return {name: Decimal(0).scaleb(-2) for name in counts}

    shares = dict(counts)
    shares[None] = total - sum(counts.values())

    units = {name: count * 10000 // total for name, count in shares.items()}
    remainders = {name: count * 10000 % total for name, count in shares.items()}
    leftover = 10000 - sum(units.values())
    order = list(shares)
    for name in sorted(order, key=lambda n: (-remainders[n], order.index(n)))[:leftover]:
        units[name] += 1

    return {name: Decimal(units[name]).scaleb(-2) for name in counts}


def conversion_funnel(orders: Sequence[Record]) -> ConversionFunnel:
    """
    Status funnel over every supplied order.

    No time window is applied here; the caller decides which orders the
    funnel covers.
    """
    counts = _status_counts(orders).model_dump()
    total = len(orders)
    rates = _percentages(counts, total)
    return ConversionFunnel(
        funnel={
            status.value: FunnelStage(count=counts[status.value], rate=rates[status.value])
            for status in OrderStatus
        },
        total=total,
    )


def customer_lifetime_value(orders: Sequence[Record], top_n: int = 10) -> LifetimeValueReport:
    """
    Spend per customer plus the average across customers.

    Orders without a ``created_by`` reference are ignored entirely.
    """
    if top_n < 0:
        raise InvalidArgumentError("top_n", top_n)

    customers: Dict[str, _Rollup] = {}
    for order in orders:
        customer_id = _ref(order.get("created_by"))
        if customer_id is None:
            continue
        rollup = customers.get(customer_id)
        if rollup is None:
            rollup = customers[customer_id] = _Rollup(entity_id=customer_id)
        rollup.orders += 1
        rollup.revenue += parse_amount(order.get("total"))

    total_spent = sum((c.revenue for c in customers.values()), ZERO)
    average = total_spent / len(customers) if customers else ZERO
    ranked = sorted(customers.values(), key=lambda c: c.revenue, reverse=True)[:top_n]

    return LifetimeValueReport(
        average_ltv=quantize_money(average),
        total_customers=len(customers),
        top_customers=[
            CustomerValue(
                customer_id=c.entity_id,
                total_orders=c.orders,
                total_spent=quantize_money(c.revenue),
            )
            for c in ranked
        ],
    )
