from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin, one_of

ROLES = ("learner", "teacher", "admin")

class User(Base, TimestampMixin):
    __tablename__ = "users"
    __table_args__ = (one_of("role", ROLES, "ck_users_role"),)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    avatar = Column(String(500), nullable=True)
    role = Column(String(20), default="learner", nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    progress_records = relationship(
        "ProgressRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
