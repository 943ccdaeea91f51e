"""API dependencies for authentication and authorization."""

from typing import Annotated, Callable
from uuid import UUID

import asyncpg
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.database import get_db
from app.core.logging_config import security_logger
from app.core.security import decode_access_token
from app.services.users import get_user_by_id

security = HTTPBearer()

ROLE_OBSERVER = "observer"
ROLE_COORDINATOR = "coordinator"
ROLE_ADMIN = "admin"
STAFF_ROLES = (ROLE_ADMIN, ROLE_COORDINATOR)


def _credentials_error(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
) -> dict:
    """
    Dependency to get the current authenticated user.

    Validates the bearer token, loads the user and strips the password hash.
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id = payload.get("sub")
    if user_id is None:
        raise _credentials_error()

    try:
        user = await get_user_by_id(conn, UUID(user_id))
    except ValueError:
        raise _credentials_error()

    if user is None:
        raise _credentials_error("User not found")

    if user.get("status") == "suspended":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account suspended"
        )

    user.pop("password_hash", None)
    return user


def require_roles(*roles: str) -> Callable:
    """Build a dependency that only admits users holding one of ``roles``."""

    def checker(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
        if current_user.get("role") not in roles:
            security_logger.log_unauthorized_access(
                resource=",".join(roles),
                user_id=str(current_user.get("id")),
                reason="role",
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return checker


def require_admin(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
    """Raises HTTP 403 if user is not an admin."""
    if current_user.get("role") != ROLE_ADMIN:
        security_logger.log_unauthorized_access(
            resource="admin", user_id=str(current_user.get("id")), reason="role"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return current_user


require_staff = require_roles(*STAFF_ROLES)


def is_staff(user: dict) -> bool:
    return user.get("role") in STAFF_ROLES
