"""
Record Quality Audit

Profiles a fetched batch of order records before aggregation. The
aggregation engine already degrades bad fields to zero or skips them; this
audit makes the amount of degradation visible so it can be logged per
request instead of disappearing silently.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

import polars as pl

from opsdesk.analytics.exceptions import MalformedRecordError
from opsdesk.analytics.records import OrderStatus, Record, parse_timestamp, read_amount

KNOWN_STATUSES = [status.value for status in OrderStatus]

ORDER_AUDIT_SCHEMA = {
    "total": pl.Utf8,
    "status": pl.Utf8,
    "created_by": pl.Utf8,
    "has_amount": pl.Boolean,
    "has_timestamp": pl.Boolean,
}


@dataclass
class RecordQualityReport:
    """Degradation counts for one batch of orders"""
    total_rows: int
    missing_totals: int
    malformed_totals: int
    malformed_timestamps: int
    unrecognized_statuses: int
    missing_customers: int
    degraded_rows: int

    @property
    def is_clean(self) -> bool:
        return self.degraded_rows == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _has_timestamp(record: Record) -> bool:
    try:
        parse_timestamp(record.get("created_at"))
    except MalformedRecordError:
        return False
    return True


def orders_frame(orders: Sequence[Record]) -> pl.DataFrame:
    """Project the audited order fields into a DataFrame."""
    return pl.DataFrame(
        {
            "total": [_text(order.get("total")) for order in orders],
            "status": [_text(order.get("status")) for order in orders],
            "created_by": [_text(order.get("created_by")) for order in orders],
            "has_amount": [read_amount(order.get("total")) is not None for order in orders],
            "has_timestamp": [_has_timestamp(order) for order in orders],
        },
        schema=ORDER_AUDIT_SCHEMA,
    )


def audit_orders(orders: Sequence[Record]) -> RecordQualityReport:
    """
    Count degraded fields in a batch of orders.

    A row is degraded when its total is missing or rejected by
    ``read_amount`` (the same rule the aggregation engine applies), its
    ``created_at`` is unusable, or its status is outside the known set.
    Orders without a customer are counted but not considered degraded.

    Example:
        report = audit_orders(orders)
        if not report.is_clean:
            logger.warning("Degraded orders", **report.to_dict())
    """
    df = orders_frame(orders)

    missing_total = pl.col("total").is_null()
    malformed_total = pl.col("total").is_not_null() & ~pl.col("has_amount")
    malformed_timestamp = ~pl.col("has_timestamp")
    unrecognized_status = (
        pl.col("status").is_null() | ~pl.col("status").is_in(KNOWN_STATUSES)
    ).fill_null(True)
    missing_customer = (pl.col("created_by").is_null() | (pl.col("created_by") == "")).fill_null(True)

    row = df.select(
        pl.len().alias("total_rows"),
        missing_total.sum().alias("missing_totals"),
        malformed_total.sum().alias("malformed_totals"),
        malformed_timestamp.sum().alias("malformed_timestamps"),
        unrecognized_status.sum().alias("unrecognized_statuses"),
        missing_customer.sum().alias("missing_customers"),
        (missing_total | malformed_total | malformed_timestamp | unrecognized_status)
        .sum()
        .alias("degraded_rows"),
    ).row(0, named=True)

    return RecordQualityReport(**{name: int(value or 0) for name, value in row.items()})
