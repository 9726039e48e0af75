"""
sirb/rbac.py
Session provider and role dependencies.

Sessions are issued by the external auth service as HS256 bearer tokens
whose `sub` claim is the user id. This module only decodes them.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError, jwt

from sirb.config import settings
from sirb.database import get_db
from sirb.errors import UnauthorizedError, ForbiddenError, ErrorCode
from sirb.orm.user import User
from sirb import messages

logger = logging.getLogger(__name__)

# ================= TOKEN UTILS =================

def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a session token for a user id"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access"
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a session token, None when invalid or expired"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:]


# ================= AUTH DEPENDENCIES =================

async def get_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the session user from the request headers, or None."""
    token = _bearer_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    try:
        user_id = int(payload.get("sub", 0))
    except (TypeError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    user: Optional[User] = Depends(get_session),
) -> User:
    """
    Require an authenticated, active, non-banned user.
    Raises 401 otherwise.
    """
    if user is None:
        raise UnauthorizedError()

    if not user.is_active or user.banned:
        logger.warning(f"Rejected session for inactive or banned user {user.id}")
        raise UnauthorizedError(code=ErrorCode.AUTH_INVALID)

    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require the ADMIN role. Raises 403 otherwise."""
    if not current_user.is_admin:
        logger.warning(
            f"Access denied: User {current_user.id} with role {current_user.role} "
            f"attempted an admin-only action"
        )
        raise ForbiddenError(messages.FORBIDDEN, code=ErrorCode.PERMISSION_DENIED)
    return current_user
