from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.progress import ProgressRecord
from models.user import User
from models.lesson import Lesson
from models.quiz import Quiz
from models.geo_point import GeoPoint
from models.base import utcnow
from services import aggregations
from services.quiz_service import QuizService
from core.config import settings
from core.exceptions import ValidationError
from db.session import execute

class StatsService:
    """Read-only analytics over progress records. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def window_start(days: int, now: Optional[datetime] = None) -> datetime:
        if days < 1:
            raise ValidationError.for_field("days", "Days must be at least 1")
        return (now or utcnow()) - timedelta(days=days)

    async def _records(self, *filters) -> List[ProgressRecord]:
        result = await execute(self.db, select(ProgressRecord).filter(*filters))
        return list(result.scalars().all())

    async def _count(self, model, *filters) -> int:
        return (await execute(self.db, select(func.count(model.id)).filter(*filters))).scalar() or 0

    async def get_progress_overview(self, user_id: int, days: int = None) -> Dict[str, Any]:
        """Timeline and heatmap over the window; topic mastery over the user's whole history."""
        since = self.window_start(settings.ANALYTICS_DEFAULT_DAYS if days is None else days)

        windowed = await self._records(ProgressRecord.user_id == user_id, ProgressRecord.created_at >= since)
        lesson_records = await self._records(ProgressRecord.user_id == user_id, ProgressRecord.lesson_id.isnot(None))
        lessons = await QuizService(self.db).get_lessons(r.lesson_id for r in lesson_records)

        return {
            "timeline": aggregations.timeline(windowed),
            "topic_mastery": aggregations.topic_mastery(lesson_records, {l.id: l for l in lessons}),
            "activity_heatmap": aggregations.activity_heatmap(windowed),
        }

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        counts = {
            "total_users": await self._count(User),
            "active_users": await self._count(User, User.is_active == True),
            "total_lessons": await self._count(Lesson),
            "published_lessons": await self._count(Lesson, Lesson.is_published == True),
            "total_quizzes": await self._count(Quiz),
            "total_geo_points": await self._count(GeoPoint),
        }

        recent = await execute(
            self.db,
            select(ProgressRecord).order_by(ProgressRecord.created_at.desc(), ProgressRecord.id.desc()).limit(10),
        )
        user_created = await execute(self.db, select(User.created_at))
        difficulties = await execute(self.db, select(Lesson.difficulty))
        geo_types = await execute(self.db, select(GeoPoint.type))
        quiz_records = await self._records(ProgressRecord.quiz_id.isnot(None))

        return {
            "counts": counts,
            "recent_activity": list(recent.scalars().all()),
            "user_growth": aggregations.monthly_counts(user_created.scalars().all()),
            "content_stats": {
                "lessons_by_difficulty": aggregations.count_by(difficulties.scalars().all(), "difficulty"),
                "geo_points_by_type": aggregations.count_by(geo_types.scalars().all(), "type"),
            },
            "performance": aggregations.quiz_performance(quiz_records, settings.PLATFORM_PASS_THRESHOLD),
        }

    async def get_user_analytics(self, days: int = None) -> Dict[str, Any]:
        since = self.window_start(settings.ANALYTICS_DEFAULT_DAYS if days is None else days)
        windowed = await self._records(ProgressRecord.created_at >= since)
        users = await execute(self.db, select(User))

        return {
            "user_engagement": aggregations.daily_engagement(windowed),
            "user_cohorts": aggregations.user_cohorts(users.scalars().all()),
            "usage_patterns": aggregations.activity_heatmap(windowed),
        }

    async def get_content_analytics(self) -> Dict[str, Any]:
        records = await self._records()
        popular = aggregations.popular_lessons(records)
        quizzes = aggregations.quiz_analytics(records, settings.PLATFORM_PASS_THRESHOLD)

        lesson_titles = {}
        lesson_ids = [p["lesson_id"] for p in popular]
        if lesson_ids:
            rows = await execute(self.db, select(Lesson.id, Lesson.title, Lesson.difficulty).filter(Lesson.id.in_(lesson_ids)))
            lesson_titles = {row.id: row for row in rows.all()}

        quiz_titles = {}
        quiz_ids = [q["quiz_id"] for q in quizzes]
        if quiz_ids:
            rows = await execute(self.db, select(Quiz.id, Quiz.title, Quiz.lesson_id).filter(Quiz.id.in_(quiz_ids)))
            quiz_titles = {row.id: row for row in rows.all()}

        for item in popular:
            row = lesson_titles.get(item["lesson_id"])
            item["title"] = row.title if row else None
            item["difficulty"] = row.difficulty if row else None
        for item in quizzes:
            row = quiz_titles.get(item["quiz_id"])
            item["title"] = row.title if row else None
            item["lesson_id"] = row.lesson_id if row else None

        return {
            "popular_lessons": popular,
            "quiz_analytics": quizzes,
            "content_completion": aggregations.completion_rates(records),
        }

    async def get_lesson_statistics(self, lesson_id: int) -> Dict[str, Any]:
        await QuizService(self.db).require_lesson(lesson_id)
        records = await self._records(ProgressRecord.lesson_id == lesson_id, ProgressRecord.completed == True)
        return aggregations.lesson_statistics(records)
