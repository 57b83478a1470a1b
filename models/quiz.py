from sqlalchemy import Column, Integer, String, JSON, Boolean, Float, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin

class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("passing_score >= 0 AND passing_score <= 100", name="ck_quizzes_passing_score"),
        CheckConstraint("max_attempts >= 1", name="ck_quizzes_max_attempts"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), index=True, nullable=True)
    # [{"question", "options", "correct_answer", "points", "explanation"}]
    questions_json = Column(JSON, nullable=False, default=list)
    time_limit = Column(Integer, default=30, nullable=False)  # minutes
    passing_score = Column(Float, default=70.0, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    lesson = relationship("Lesson")
