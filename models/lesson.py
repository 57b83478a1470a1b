from sqlalchemy import Column, Integer, String, Boolean, Text, JSON, ForeignKey
from models.base import Base, TimestampMixin, one_of

DIFFICULTIES = ("beginner", "intermediate", "advanced")

class Lesson(Base, TimestampMixin):
    __tablename__ = "lessons"
    __table_args__ = (one_of("difficulty", DIFFICULTIES, "ck_lessons_difficulty"),)

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    duration = Column(Integer, nullable=False, default=1)  # minutes
    topics = Column(JSON, nullable=False, default=list)
    difficulty = Column(String(20), nullable=False, default="beginner", index=True)
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
