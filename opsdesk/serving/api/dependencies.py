"""
Shared API Dependencies
"""

from fastapi import Request

from opsdesk.config import Settings, get_settings


def get_app_settings(request: Request) -> Settings:
    """
    Settings the serving application was created with.

    Falls back to the environment settings for routers mounted on an app
    that was not built by ``create_api_app``.
    """
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        return get_settings()
    return settings
