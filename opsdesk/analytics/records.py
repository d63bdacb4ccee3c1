"""
Record Primitives

Enumerations, field parsers and time windows shared by the aggregation
engine. Records are plain mappings as materialized by the data store.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from .exceptions import InvalidArgumentError, MalformedRecordError

Record = Mapping[str, Any]

ZERO = Decimal("0")
CENT = Decimal("0.01")

# amounts of 10**26 or more are treated as malformed
MAX_AMOUNT_EXPONENT = 26

E = TypeVar("E", bound=Enum)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order lifecycle states tracked by the analytics reports"""
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RevenueUnit(str, Enum):
    """Bucketing units for revenue reports"""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class TrendUnit(str, Enum):
    """Bucketing units for order trend reports"""
    DAY = "day"
    HOUR = "hour"


class PerformerDimension(str, Enum):
    """Entities orders can be rolled up by"""
    STORES = "stores"
    DELIVERY = "delivery"


def coerce_enum(enum_cls: Type[E], value: Any, argument: str) -> E:
    """Convert a caller-supplied value into ``enum_cls`` or raise InvalidArgumentError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidArgumentError(argument, value, [member.value for member in enum_cls]) from None


def order_status(record: Record) -> Optional[OrderStatus]:
    """Known status of an order, or None when the value is outside the fixed set."""
    try:
        return OrderStatus(record.get("status"))
    except ValueError:
        return None


# =============================================================================
# FIELD PARSERS
# =============================================================================

def read_amount(value: Any) -> Optional[Decimal]:
    """
    Read a monetary value, or None when it is missing or unusable.

    Accepts decimal strings, ints, floats and Decimals. Non-finite and
    out-of-range values are unusable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not amount.is_finite():
        return None
    if amount and amount.adjusted() >= MAX_AMOUNT_EXPONENT:
        return None
    return amount


def parse_amount(value: Any) -> Decimal:
    """Parse a monetary value; anything ``read_amount`` rejects is zero. Never raises."""
    amount = read_amount(value)
    if amount is None:
        return ZERO
    return amount


def parse_count(value: Any) -> int:
    """Parse a non-monetary counter, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_timestamp(value: Any, field: str = "created_at") -> datetime:
    """
    Parse a record timestamp into an aware UTC datetime.

    Naive values are taken as UTC and bare dates as midnight UTC.

    Raises:
        MalformedRecordError: value is missing or not ISO 8601
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError):
            raise MalformedRecordError(field, value) from None
    else:
        raise MalformedRecordError(field, value)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # offsets pushing the instant outside year 1..9999
        raise MalformedRecordError(field, value) from None


def quantize_money(value: Decimal) -> Decimal:
    """
    Round to two decimal places, half up.

    Sums of many in-range amounts can outgrow the default context, so the
    precision is widened to fit ``value``.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# TIME WINDOWS
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AnalyticsWindow:
    """Inclusive ``[start, end]`` timestamp range"""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidArgumentError("start_date", self.start.date().isoformat())

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @classmethod
    def from_dates(
        cls,
        start_date: Optional[date],
        end_date: Optional[date],
        default_span: Union[timedelta, relativedelta],
        now: Optional[datetime] = None,
    ) -> "AnalyticsWindow":
        """
        Build a window from optional calendar dates.

        Both bounds cover whole days. A missing end means ``now``; a
        missing start means ``default_span`` before the end.
        """
        if end_date is not None:
            end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
        else:
            end = now or utc_now()
        if start_date is not None:
            start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        else:
            try:
                start = end - default_span
            except (ValueError, OverflowError):
                raise InvalidArgumentError("end_date", end.date().isoformat()) from None
        return cls(start=start, end=end)

    @classmethod
    def trailing_days(cls, days: int, now: Optional[datetime] = None) -> "AnalyticsWindow":
        end = now or utc_now()
        try:
            start = end - timedelta(days=days)
        except OverflowError:
            raise InvalidArgumentError("days", days) from None
        return cls(start=start, end=end)
