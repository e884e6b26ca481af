"""
Admin Gate

The admin review surface is protected by one shared secret, sent as
`Authorization: Bearer <ADMIN_PASSWORD>`. There are no user accounts.
"""

import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hauler_portal.core.config import settings

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="Shared admin password sent as a Bearer token",
)

ADMIN_REVIEWER = "admin"


def _password_matches(candidate: str) -> bool:
    return secrets.compare_digest(candidate.encode(), settings.admin_password.encode())


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    FastAPI dependency guarding the admin endpoints.

    Returns:
        The reviewer name recorded against status changes

    Raises:
        HTTPException 401: If the header is missing or the password is wrong
    """
    if credentials is None or not _password_matches(credentials.credentials):
        logger.warning("Rejected admin request with missing or invalid password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "UNAUTHORIZED",
                "message": "A valid admin password is required.",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    return ADMIN_REVIEWER


__all__ = ["require_admin"]
