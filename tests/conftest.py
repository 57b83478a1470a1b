"""
Pytest configuration and fixtures for the progress engine tests.
"""
import sys
import os
from datetime import timedelta

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_SECRET"] = "test-secret"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["ENV"] = "test"

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.session import build_engine
from models.base import Base, utcnow
from models.user import User
from models.lesson import Lesson
from models.quiz import Quiz
from models.geo_point import GeoPoint
from models.progress import ProgressRecord
from core.security import sign_token

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    async def dispatch(self, event):
        self.events.append(event)


class FailingDispatcher:
    def __init__(self):
        self.calls = 0

    async def dispatch(self, event):
        self.calls += 1
        raise ConnectionError("redis is down")


class Seeder:
    """Inserts fixture rows and commits each one."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._emails = 0

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def user(self, **kwargs):
        self._emails += 1
        kwargs.setdefault("email", f"user{self._emails}@example.com")
        kwargs.setdefault("name", f"User {self._emails}")
        return await self._save(User(**kwargs))

    async def lesson(self, **kwargs):
        kwargs.setdefault("title", "Rivers of Asia")
        kwargs.setdefault("is_published", True)
        return await self._save(Lesson(**kwargs))

    async def quiz(self, **kwargs):
        kwargs.setdefault("title", "Capitals")
        kwargs.setdefault("questions_json", two_point_questions())
        return await self._save(Quiz(**kwargs))

    async def geo_point(self, **kwargs):
        kwargs.setdefault("title", "Aral Sea")
        kwargs.setdefault("type", "climate")
        kwargs.setdefault("lat", 45.0)
        kwargs.setdefault("lng", 60.0)
        return await self._save(GeoPoint(**kwargs))

    async def record(self, user, lesson=None, quiz=None, days_ago=0, **kwargs):
        created = kwargs.pop("created_at", None) or utcnow() - timedelta(days=days_ago)
        return await self._save(ProgressRecord(
            user_id=user.id,
            lesson_id=lesson.id if lesson else None,
            quiz_id=quiz.id if quiz else None,
            created_at=created,
            **kwargs,
        ))


def two_point_questions():
    return [
        {"question": "Capital of Uzbekistan?", "options": ["Tashkent", "Samarkand", "Bukhara"], "correct_answer": 0, "points": 1},
        {"question": "Longest river in Asia?", "options": ["Mekong", "Yangtze", "Ob"], "correct_answer": 1, "points": 1},
    ]


def _auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {sign_token(user.id)}"}


@pytest.fixture
def questions():
    return two_point_questions()


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def notifier():
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def client(db, notifier):
    from api.main import app
    from api.deps import get_notifier
    from db.session import get_db

    async def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def failing_notifier():
    return FailingDispatcher()


@pytest.fixture
def auth_headers():
    return _auth_headers
