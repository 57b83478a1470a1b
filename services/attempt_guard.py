from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.progress import ProgressRecord
from models.quiz import Quiz
from core.exceptions import AttemptsExhaustedError
from core.logger import logger
from db.session import execute

class AttemptLimitGuard:
    """
    Max-attempts policy, checked before scoring.

    Count-then-create is not atomic: two concurrent submissions can both pass
    this check. The unique (user_id, quiz_id, attempt_number) constraint on
    progress_records turns the losing insert into a ConflictError.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_attempts(self, user_id: int, quiz_id: int) -> int:
        result = await execute(
            self.db,
            select(func.count(ProgressRecord.id)).filter(
                ProgressRecord.user_id == user_id,
                ProgressRecord.quiz_id == quiz_id,
            ),
        )
        return result.scalar() or 0

    async def ensure_can_attempt(self, user_id: int, quiz: Quiz) -> int:
        """Return the number of previous attempts, or raise AttemptsExhaustedError."""
        previous = await self.count_attempts(user_id, quiz.id)
        if previous >= quiz.max_attempts:
            logger.info("Attempt limit reached", user_id=user_id, quiz_id=quiz.id, attempts=previous, max_attempts=quiz.max_attempts)
            raise AttemptsExhaustedError(quiz.id, quiz.max_attempts)
        return previous
