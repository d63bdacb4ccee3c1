"""
Database Module
"""
from .connection import Database, get_database, get_db_dependency
from .models import Base
from .store import AnalyticsStore, SqlAnalyticsStore, get_analytics_store

__all__ = [
    "Database",
    "get_database",
    "get_db_dependency",
    "Base",
    "AnalyticsStore",
    "SqlAnalyticsStore",
    "get_analytics_store",
]
