from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.progress import ProgressRecord
from models.base import utcnow
from services.attempt_guard import AttemptLimitGuard
from services.quiz_service import QuizService
from services.scoring import SubmittedAnswer, score_submission
from services.notification_service import (
    NotificationDispatcher,
    LoggingNotificationDispatcher,
    dispatch_safely,
    quiz_result_event,
    lesson_completed_event,
)
from services import aggregations
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.logger import logger
from db.session import execute, commit

RECORD_TYPES = ("lesson", "quiz")


@dataclass
class SubmissionResult:
    progress_record: ProgressRecord
    quiz_title: str
    score: float
    passed: bool
    correct_answers: int
    total_questions: int
    attempt_number: int
    attempts_remaining: int
    max_attempts: int


class ProgressService:
    """
    Attempt recorder and per-user progress reads.

    Write path for a quiz: active quiz lookup -> attempt limit guard ->
    scoring -> insert -> notification. The notification never fails the write.
    """

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationDispatcher] = None):
        self.db = db
        self.notifier = notifier or LoggingNotificationDispatcher()
        self.quizzes = QuizService(db)
        self.guard = AttemptLimitGuard(db)

    async def submit_quiz_attempt(
        self,
        user_id: int,
        quiz_id: int,
        answers: Sequence[SubmittedAnswer],
        time_spent: int = 0,
    ) -> SubmissionResult:
        # 1. Quiz must exist and be active
        quiz = await self.quizzes.get_active_quiz(quiz_id)

        # 2. Guard before any scoring work
        previous_attempts = await self.guard.ensure_can_attempt(user_id, quiz)

        # 3. Score against the quiz's own passing score
        result = score_submission(quiz.questions_json or [], answers, quiz.passing_score, time_spent)

        # 4. Persist the finalized attempt
        attempt_number = previous_attempts + 1
        now = utcnow()
        record = ProgressRecord(
            user_id=user_id,
            quiz_id=quiz.id,
            attempt_number=attempt_number,
            score=result.score,
            total_questions=result.total_questions,
            correct_answers=result.correct_answers,
            points_earned=result.points_earned,
            time_spent=time_spent,
            answers=result.answers_json(),
            passed=result.passed,
            started_at=now,
            completed_at=now,
            completed=True,
        )
        self.db.add(record)
        await commit(self.db)
        await self.db.refresh(record)

        logger.info(
            "Quiz attempt recorded",
            user_id=user_id,
            quiz_id=quiz.id,
            attempt=attempt_number,
            score=round(result.score, 1),
            passed=result.passed,
        )

        # 5. Side effect
        await dispatch_safely(
            self.notifier,
            quiz_result_event(user_id, quiz.id, quiz.title, result.score, result.passed),
        )

        return SubmissionResult(
            progress_record=record,
            quiz_title=quiz.title,
            score=result.score,
            passed=result.passed,
            correct_answers=result.correct_answers,
            total_questions=result.total_questions,
            attempt_number=attempt_number,
            attempts_remaining=max(0, quiz.max_attempts - attempt_number),
            max_attempts=quiz.max_attempts,
        )

    async def _lesson_record(self, user_id: int, lesson_id: int) -> Optional[ProgressRecord]:
        result = await execute(
            self.db,
            select(ProgressRecord)
            .filter(
                ProgressRecord.user_id == user_id,
                ProgressRecord.lesson_id == lesson_id,
                ProgressRecord.quiz_id.is_(None),
            )
            .order_by(ProgressRecord.created_at.desc())
            .limit(1),
        )
        return result.scalars().first()

    async def complete_lesson(self, user_id: int, lesson_id: int) -> ProgressRecord:
        """Upsert by (user, lesson). Completing an already completed lesson is a no-op."""
        lesson = await self.quizzes.require_lesson(lesson_id)

        record = await self._lesson_record(user_id, lesson_id)
        if record and record.completed:
            return record

        if record:
            record.completed = True
        else:
            record = ProgressRecord(user_id=user_id, lesson_id=lesson_id, completed=True)
            self.db.add(record)

        try:
            await commit(self.db)
        except ConflictError:
            # A concurrent completion inserted the row first
            winner = await self._lesson_record(user_id, lesson_id)
            if winner is None or not winner.completed:
                raise
            return winner

        await self.db.refresh(record)
        logger.info("Lesson completed", user_id=user_id, lesson_id=lesson_id, progress_id=record.id)

        await dispatch_safely(self.notifier, lesson_completed_event(user_id, lesson.id, lesson.title))
        return record

    async def get_user_records(
        self,
        user_id: int,
        record_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ):
        """Paginated records, most recently completed first. Returns (records, total)."""
        if record_type is not None and record_type not in RECORD_TYPES:
            raise ValidationError.for_field("type", f"Type must be one of: {', '.join(RECORD_TYPES)}")
        if page < 1:
            raise ValidationError.for_field("page", "Page must be at least 1")
        if limit < 1:
            raise ValidationError.for_field("limit", "Limit must be at least 1")

        filters = [ProgressRecord.user_id == user_id]
        if record_type == "lesson":
            filters.append(ProgressRecord.lesson_id.isnot(None))
        elif record_type == "quiz":
            filters.append(ProgressRecord.quiz_id.isnot(None))

        total = (await execute(
            self.db, select(func.count(ProgressRecord.id)).filter(*filters)
        )).scalar() or 0

        result = await execute(
            self.db,
            select(ProgressRecord)
            .filter(*filters)
            .order_by(
                ProgressRecord.completed_at.is_(None),
                ProgressRecord.completed_at.desc(),
                ProgressRecord.created_at.desc(),
                ProgressRecord.id.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit),
        )
        return list(result.scalars().all()), total

    async def get_all_records(self, user_id: int, since=None) -> List[ProgressRecord]:
        query = select(ProgressRecord).filter(ProgressRecord.user_id == user_id)
        if since is not None:
            query = query.filter(ProgressRecord.created_at >= since)
        result = await execute(self.db, query.order_by(ProgressRecord.created_at.desc(), ProgressRecord.id.desc()))
        return list(result.scalars().all())

    async def get_overall_stats(self, user_id: int) -> Dict[str, Any]:
        return aggregations.overall_progress(await self.get_all_records(user_id))

    async def get_user_progress(self, user_id: int, record_type: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        records, total = await self.get_user_records(user_id, record_type, page, limit)
        return {
            "records": records,
            "overall_stats": await self.get_overall_stats(user_id),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }

    async def get_lesson_progress(self, user_id: int, lesson_id: int) -> Dict[str, Any]:
        lesson = await self.quizzes.require_lesson(lesson_id)
        result = await execute(
            self.db,
            select(ProgressRecord)
            .filter(ProgressRecord.user_id == user_id, ProgressRecord.lesson_id == lesson_id)
            .order_by(ProgressRecord.created_at.desc())
            .limit(1),
        )
        return {"progress": result.scalars().first(), "lesson": lesson}

    async def get_quiz_progress(self, user_id: int, quiz_id: int) -> Dict[str, Any]:
        quiz = await self.quizzes.get_quiz(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found", {"quiz_id": quiz_id})

        result = await execute(
            self.db,
            select(ProgressRecord)
            .filter(ProgressRecord.user_id == user_id, ProgressRecord.quiz_id == quiz_id)
            .order_by(ProgressRecord.attempt_number.desc()),
        )
        attempts = list(result.scalars().all())
        return {
            "quiz": quiz,
            "attempts": attempts,
            "analytics": aggregations.attempt_summary(attempts, quiz.max_attempts),
        }

    async def get_user_dashboard(self, user_id: int, recent: int = 5) -> Dict[str, Any]:
        """Overall stats plus the most recent records, newest first."""
        records = await self.get_all_records(user_id)
        return {
            "stats": aggregations.overall_progress(records),
            "recent_progress": records[:recent],
        }
