"""
Test Suite Configuration
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from opsdesk.analytics.exceptions import MalformedRecordError
from opsdesk.analytics.records import AnalyticsWindow, parse_timestamp
from opsdesk.config import Settings
from opsdesk.config.settings import SecuritySettings
from opsdesk.database.store import get_analytics_store
from opsdesk.serving.api import create_api_app

TEST_JWT_SECRET = "test-jwt-secret"


class InMemoryAnalyticsStore:
    """AnalyticsStore over plain lists, filtering windows like the SQL store"""

    def __init__(
        self,
        orders: Optional[List[Dict[str, Any]]] = None,
        users: Optional[List[Dict[str, Any]]] = None,
        campaigns: Optional[List[Dict[str, Any]]] = None,
    ):
        self.orders = orders or []
        self.users = users or []
        self.campaigns = campaigns or []
        self.order_windows: List[Optional[AnalyticsWindow]] = []

    @staticmethod
    def _within(records, window):
        selected = []
        for record in records:
            try:
                moment = parse_timestamp(record.get("created_at"))
            except MalformedRecordError:
                continue
            if window.contains(moment):
                selected.append(record)
        return selected

    async def fetch_orders(self, window=None):
        self.order_windows.append(window)
        if window is None:
            return list(self.orders)
        return self._within(self.orders, window)

    async def fetch_users(self, window):
        return self._within(self.users, window)

    async def fetch_campaigns(self, window):
        return self._within(self.campaigns, window)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        security=SecuritySettings(supabase_jwt_secret=TEST_JWT_SECRET),
    )


@pytest.fixture
def sample_orders() -> List[Dict[str, Any]]:
    """Orders across two stores, two couriers and two customers"""
    return [
        {
            "id": "ord-1",
            "total": "150.00",
            "status": "delivered",
            "created_at": "2024-03-10T09:00:00+00:00",
            "created_by": "cust-1",
            "store_id": "store-a",
            "store_name": "Alpha Market",
            "delivery_company_id": "dc-1",
            "delivery_company_name": "Swift Couriers",
        },
        {
            "id": "ord-2",
            "total": "150.00",
            "status": "pending",
            "created_at": "2024-03-13T14:30:00+00:00",
            "created_by": "cust-1",
            "store_id": "store-a",
            "store_name": "Alpha Market",
            "delivery_company_id": "dc-2",
            "delivery_company_name": "Metro Express",
        },
        {
            "id": "ord-3",
            "total": "500.00",
            "status": "processing",
            "created_at": "2024-03-13T15:45:00+00:00",
            "created_by": "cust-2",
            "store_id": "store-b",
            "store_name": "Beta Bazaar",
            "delivery_company_id": "dc-2",
            "delivery_company_name": "Metro Express",
        },
        {
            "id": "ord-4",
            "total": "abc",
            "status": "cancelled",
            "created_at": "2024-04-02T08:00:00Z",
            "created_by": None,
            "store_id": "store-b",
            "store_name": "Beta Bazaar",
            "delivery_company_id": "dc-2",
            "delivery_company_name": "Metro Express",
        },
    ]


@pytest.fixture
def sample_users() -> List[Dict[str, Any]]:
    return [
        {"id": "user-1", "created_at": "2024-03-02T12:00:00+00:00"},
        {"id": "user-2", "created_at": "2024-03-20T12:00:00+00:00"},
        {"id": "user-3", "created_at": "2024-05-01T12:00:00+00:00"},
    ]


@pytest.fixture
def sample_campaigns() -> List[Dict[str, Any]]:
    return [
        {
            "id": "camp-1",
            "status": "sent",
            "recipients_count": 100,
            "opened_count": 40,
            "clicked_count": 10,
            "created_at": "2024-03-05T10:00:00+00:00",
        },
        {
            "id": "camp-2",
            "status": "draft",
            "recipients_count": None,
            "opened_count": None,
            "clicked_count": None,
            "created_at": "2024-03-06T10:00:00+00:00",
        },
    ]


@pytest.fixture
def memory_store(sample_orders, sample_users, sample_campaigns) -> InMemoryAnalyticsStore:
    return InMemoryAnalyticsStore(sample_orders, sample_users, sample_campaigns)


@pytest.fixture
def app(test_settings, memory_store) -> FastAPI:
    """API application wired to the in-memory store"""
    application = create_api_app(test_settings)
    application.dependency_overrides[get_analytics_store] = lambda: memory_store
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def make_token(sub: Optional[str] = "user-1", expires_in: timedelta = timedelta(hours=1), **claims) -> str:
    payload = {"aud": "authenticated", "exp": datetime.now(timezone.utc) + expires_in, **claims}
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(email='ops@example.com')}"}


@pytest.fixture
def token_factory():
    """Build signed access tokens with custom claims"""
    return make_token


@pytest.fixture
def store_factory():
    """Build in-memory stores over custom records"""
    return InMemoryAnalyticsStore
