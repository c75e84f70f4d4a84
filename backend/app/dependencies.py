"""
DevDoc Backend — Auth Gate
============================

What:  FastAPI dependency that turns a bearer token into a User.
How:   HTTPBearer(auto_error=False) reads the Authorization header so a
       missing header reaches our own UnauthorizedError (401 with the
       standard error body) instead of FastAPI's 403.
Who:   Every authenticated route declares `user: User = Depends(get_current_user)`
       and passes `user.id` to the service layer explicitly.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import UnauthorizedError
from app.models.user import User
from app.services.auth_service import auth_service, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Token from /api/auth/login")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the authenticated user.

    Raises:
        UnauthorizedError: header absent, token malformed/expired/badly
                           signed, or the token's user no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(message="Not authenticated")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError(message="Invalid token")

    user = await auth_service.get_user(db, user_id)
    if user is None:
        logger.info("Token subject %s no longer exists", user_id)
        raise UnauthorizedError(message="Invalid token")
    return user
