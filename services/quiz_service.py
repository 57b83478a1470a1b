from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.quiz import Quiz
from models.lesson import Lesson
from core.exceptions import NotFoundError
from db.session import execute

class QuizService:
    """Read access to quizzes and lessons needed by the progress engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        result = await execute(self.db, select(Quiz).filter(Quiz.id == quiz_id))
        return result.scalar_one_or_none()

    async def get_active_quiz(self, quiz_id: int) -> Quiz:
        quiz = await self.get_quiz(quiz_id)
        if not quiz or not quiz.is_active:
            raise NotFoundError("Quiz not found or not active", {"quiz_id": quiz_id})
        return quiz

    async def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        result = await execute(self.db, select(Lesson).filter(Lesson.id == lesson_id))
        return result.scalar_one_or_none()

    async def require_lesson(self, lesson_id: int) -> Lesson:
        lesson = await self.get_lesson(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found", {"lesson_id": lesson_id})
        return lesson

    async def get_lessons(self, lesson_ids) -> List[Lesson]:
        ids = {i for i in lesson_ids if i is not None}
        if not ids:
            return []
        result = await execute(self.db, select(Lesson).filter(Lesson.id.in_(ids)))
        return list(result.scalars().all())
