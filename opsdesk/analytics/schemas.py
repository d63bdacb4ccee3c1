"""
Analytics Result Models

Response shapes produced by the aggregation engine. Monetary values are
Decimals quantized to cents and serialize as fixed two-decimal strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# OVERVIEW
# =============================================================================

class StatusCounts(BaseModel):
    """Order counts per fixed status"""
    pending: int = 0
    processing: int = 0
    delivered: int = 0
    cancelled: int = 0


class OrderOverview(BaseModel):
    """Order section of the overview"""
    total: int
    revenue: Decimal
    average_value: Decimal
    by_status: StatusCounts


class UserOverview(BaseModel):
    """User section of the overview"""
    new_users: int
    total_users: int


class CampaignOverview(BaseModel):
    """Campaign section of the overview"""
    total: int
    sent: int
    total_recipients: int
    total_opens: int
    total_clicks: int


class AnalyticsSummary(BaseModel):
    """Overview across orders, users and campaigns"""
    orders: OrderOverview
    users: UserOverview
    campaigns: CampaignOverview


class AnalyticsPeriod(BaseModel):
    """Window an overview was computed for"""
    start_date: datetime
    end_date: datetime


# =============================================================================
# BUCKETS
# =============================================================================

class RevenueBucket(BaseModel):
    """Revenue and order count for one period key"""
    period: str
    revenue: Decimal
    orders: int


class TrendBucket(BaseModel):
    """Order counts per status for one period key"""
    period: str
    total: int = 0
    pending: int = 0
    processing: int = 0
    delivered: int = 0
    cancelled: int = 0
    other: Dict[str, int] = Field(default_factory=dict)


# =============================================================================
# ROLLUPS
# =============================================================================

class StorePerformance(BaseModel):
    """Order totals for one store"""
    store_id: Optional[str]
    store_name: str
    total_orders: int
    total_revenue: Decimal


class DeliveryPerformance(BaseModel):
    """Order totals for one delivery company"""
    delivery_id: Optional[str]
    delivery_name: str
    total_orders: int
    total_revenue: Decimal


class FunnelStage(BaseModel):
    """Count and share of one status"""
    count: int
    rate: Decimal


class ConversionFunnel(BaseModel):
    """Fixed four-stage status funnel"""
    funnel: Dict[str, FunnelStage]
    total: int


class CustomerValue(BaseModel):
    """Spend of a single customer"""
    customer_id: str
    total_orders: int
    total_spent: Decimal


class LifetimeValueReport(BaseModel):
    """Customer lifetime value summary"""
    average_ltv: Decimal
    total_customers: int
    top_customers: List[CustomerValue]
