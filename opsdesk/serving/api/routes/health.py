"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, str]:
    """Liveness summary with server time."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/api/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/api/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    """
    Kubernetes readiness probe endpoint.

    Returns 503 until the database answers.
    """
    database = getattr(request.app.state, "database", None)
    if database is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_not_initialized"}

    db_health = await database.health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable", "database": db_health}

    return {"status": "ready", "database": db_health}
