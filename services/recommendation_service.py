from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.progress import ProgressRecord
from models.lesson import Lesson
from services.quiz_service import QuizService
from core.config import settings
from core.exceptions import ValidationError
from core.logger import logger
from db.session import execute

class RecommendationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_recommended_lessons(self, user_id: int, limit: int = None) -> List[Lesson]:
        """
        Published lessons the user has not touched that share a topic or a
        difficulty level with lessons already in their history, newest first.
        A user without lesson history gets no recommendations.
        """
        limit = settings.RECOMMENDATION_DEFAULT_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError.for_field("limit", "Limit must be at least 1")

        result = await execute(
            self.db,
            select(ProgressRecord.lesson_id).filter(
                ProgressRecord.user_id == user_id,
                ProgressRecord.lesson_id.isnot(None),
            ),
        )
        seen_ids = set(result.scalars().all())
        history = await QuizService(self.db).get_lessons(seen_ids)

        topics = set()
        difficulties = set()
        for lesson in history:
            topics.update(lesson.topics or [])
            difficulties.add(lesson.difficulty)

        if not topics and not difficulties:
            return []

        # topics is a JSON column, so the intersection test runs in process
        query = select(Lesson).filter(Lesson.is_published == True).order_by(Lesson.created_at.desc(), Lesson.id.desc())
        if seen_ids:
            query = query.filter(Lesson.id.notin_(seen_ids))
        candidates = (await execute(self.db, query)).scalars().all()

        recommendations = []
        for lesson in candidates:
            if topics.intersection(lesson.topics or []) or lesson.difficulty in difficulties:
                recommendations.append(lesson)
                if len(recommendations) >= limit:
                    break

        logger.debug("Recommendations computed", user_id=user_id, count=len(recommendations))
        return recommendations
