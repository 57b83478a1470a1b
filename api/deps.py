from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import AuthorizationError
from core.logger import logger
from core.security import verify_token
from db.session import get_db, get_redis
from models.user import User
from services.user_service import UserService
from services.notification_service import LoggingNotificationDispatcher, RedisNotificationDispatcher


async def get_current_user(
    x_auth_token: str = Header(None),
    authorization: str = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = None
    # 1. Authorization: Bearer <token>
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2. Legacy header
    elif x_auth_token:
        token = x_auth_token

    user_id = verify_token(token) if token else None
    if not user_id:
        raise AuthorizationError("You are not logged in! Please log in to get access.", authenticated=False)

    user = await UserService(db).get_user(user_id)
    if not user or not user.is_active:
        logger.warning("Auth failed: unknown or inactive user", user_id=user_id)
        raise AuthorizationError("You are not logged in! Please log in to get access.", authenticated=False)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning("Admin access denied", user_id=user.id, role=user.role)
        raise AuthorizationError()
    return user


async def get_notifier(redis=Depends(get_redis)):
    if not settings.NOTIFICATIONS_ENABLED:
        return LoggingNotificationDispatcher()
    return RedisNotificationDispatcher(redis)
