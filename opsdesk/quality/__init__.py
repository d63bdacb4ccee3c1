"""
Data Quality Module
"""
from .validators import RecordQualityReport, audit_orders

__all__ = [
    "RecordQualityReport",
    "audit_orders",
]
