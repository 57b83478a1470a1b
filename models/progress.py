from sqlalchemy import Column, Integer, Float, Boolean, DateTime, JSON, ForeignKey, Index, UniqueConstraint, CheckConstraint, text
from sqlalchemy.orm import relationship, validates
from models.base import Base, TimestampMixin, utcnow

class ProgressRecord(Base, TimestampMixin):
    """One lesson completion or one quiz attempt for a user."""
    __tablename__ = "progress_records"
    __table_args__ = (
        # Losing side of a concurrent double submission fails here instead of overflowing max_attempts
        UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_progress_user_quiz_attempt"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_progress_score"),
        CheckConstraint("correct_answers <= total_questions", name="ck_progress_correct_answers"),
        CheckConstraint("time_spent >= 0", name="ck_progress_time_spent"),
        Index("idx_progress_user_lesson", "user_id", "lesson_id"),
        # One lesson-completion row per (user, lesson); quiz attempts are keyed above
        Index(
            "uq_progress_user_lesson_completion", "user_id", "lesson_id",
            unique=True,
            postgresql_where=text("quiz_id IS NULL"),
            sqlite_where=text("quiz_id IS NULL"),
        ),
        Index("idx_progress_user_quiz", "user_id", "quiz_id"),
        Index("idx_progress_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=True)

    attempt_number = Column(Integer, default=1, nullable=False)
    score = Column(Float, default=0.0, nullable=False)
    total_questions = Column(Integer, default=0, nullable=False)
    correct_answers = Column(Integer, default=0, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    time_spent = Column(Integer, default=0, nullable=False)  # seconds

    # [{"question_index", "selected_answer", "is_correct", "time_spent"}]
    answers = Column(JSON, nullable=False, default=list)

    completed = Column(Boolean, default=False, nullable=False)
    passed = Column(Boolean, default=False, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="progress_records")
    lesson = relationship("Lesson", lazy="joined")
    quiz = relationship("Quiz", lazy="joined")

    @validates("user_id")
    def _validate_user_id(self, key, value):
        if self.user_id is not None and value != self.user_id:
            raise ValueError("user_id is immutable")
        return value

    @validates("completed")
    def _validate_completed(self, key, value):
        if value and self.completed_at is None:
            self.completed_at = utcnow()
        return value

    @validates("completed_at")
    def _validate_completed_at(self, key, value):
        # Set once, never cleared or moved
        if self.completed_at is not None:
            return self.completed_at
        return value
