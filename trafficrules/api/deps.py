"""
Request dependencies: bearer-token authentication and role checks.
"""
import logging
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from trafficrules.core.security import verify_access_token
from trafficrules.db.database import AsyncSessionLocal, get_db
from trafficrules.models import User
from trafficrules.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI
security = HTTPBearer()


async def _user_from_token(token: str, db: AsyncSession) -> User:
    """
    Raises:
        ValueError: token invalid/expired, or the user is missing or deactivated
    """
    subject = verify_access_token(token)
    if not subject:
        raise ValueError("Invalid or expired token")

    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        raise ValueError("Invalid token subject")

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is deactivated")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    The authenticated user.

    Raises:
        HTTPException 401: If token is invalid or missing
    """
    try:
        return await _user_from_token(credentials.credentials, db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )


def require_roles(*roles: str):
    """Dependency factory: the current user, if their role is one of `roles` (else 403)."""
    allowed = set(roles)

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return dependency


get_current_staff_user = require_roles("ADMIN", "MANAGER")
get_current_admin_user = require_roles("ADMIN")


async def get_current_user_ws(token: str) -> Optional[User]:
    """
    WebSocket variant of get_current_user: the token arrives as a query
    parameter and failures return None so the caller can close the socket.
    """
    try:
        async with AsyncSessionLocal() as db:
            return await _user_from_token(token, db)
    except ValueError as e:
        logger.warning(f"WebSocket auth failed: {e}")
    except Exception as e:
        logger.error(f"WebSocket auth error: {e}")
    return None
