"""
Bearer Token Authentication

Verifies access tokens issued by the hosted identity provider. Tokens are
HS256 JWTs signed with the project's JWT secret; the ``sub`` claim is the
user id.
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from opsdesk.config import Settings
from opsdesk.serving.api.dependencies import get_app_settings

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """Identity resolved from an access token"""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def decode_access_token(token: str, settings: Settings) -> AuthenticatedUser:
    """
    Verify ``token`` and return the identity it carries.

    Raises:
        JWTError: signature, expiry, audience or subject is invalid
    """
    audience = settings.security.jwt_audience
    payload = jwt.decode(
        token,
        settings.security.supabase_jwt_secret.get_secret_value(),
        algorithms=[settings.security.jwt_algorithm],
        audience=audience,
        options={"verify_aud": audience is not None},
    )
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return AuthenticatedUser(id=str(subject), email=payload.get("email"), role=payload.get("role"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> AuthenticatedUser:
    """FastAPI dependency resolving the caller from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = decode_access_token(credentials.credentials, settings)
    except JWTError as e:
        logger.info("Access token rejected", reason=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user
