from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from models.user import User
from core.exceptions import NotFoundError
from core.logger import logger
from db.session import execute, commit

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await execute(self.db, select(User).filter(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_identities(self, user_ids: Iterable[int]) -> Dict[int, User]:
        """Minimal identity lookup for joining onto aggregates."""
        ids = set(user_ids)
        if not ids:
            return {}
        result = await execute(self.db, select(User).filter(User.id.in_(ids)))
        return {u.id: u for u in result.scalars().all()}

    async def delete_user(self, user_id: int) -> None:
        """Delete a user; their progress records go with them (ON DELETE CASCADE)."""
        result = await execute(self.db, delete(User).where(User.id == user_id))
        if not result.rowcount:
            raise NotFoundError("User not found", {"user_id": user_id})
        await commit(self.db)
        logger.info("User deleted", user_id=user_id)
