from datetime import datetime
from types import SimpleNamespace

import pytest

from services.leaderboard_service import LeaderboardService, rank_users, timeframe_start


def test_timeframe_start():
    now = datetime(2024, 3, 31, 12)

    assert timeframe_start("week", now) == datetime(2024, 3, 24, 12)
    # Clamped to the last day of February
    assert timeframe_start("month", now) == datetime(2024, 2, 29, 12)
    assert timeframe_start("year", now) == datetime(2023, 3, 31, 12)
    assert timeframe_start("all", now) is None


def test_rank_users_ties_go_to_lower_id():
    records = [
        SimpleNamespace(user_id=7, quiz_id=1, score=50.0, passed=False),
        SimpleNamespace(user_id=3, quiz_id=1, score=50.0, passed=False),
        SimpleNamespace(user_id=5, quiz_id=1, score=90.0, passed=True),
        SimpleNamespace(user_id=5, lesson_id=1, quiz_id=None, score=0.0, passed=False),
    ]

    assert [row["user_id"] for row in rank_users(records)] == [5, 3, 7]


async def test_week_excludes_older_records(db, seed):
    alice = await seed.user(name="Alice")
    bob = await seed.user(name="Bob")
    quiz = await seed.quiz()
    await seed.record(alice, quiz=quiz, score=90.0, passed=True, completed=True, days_ago=8)
    await seed.record(bob, quiz=quiz, score=40.0, completed=True, days_ago=3)

    rows = await LeaderboardService(db).get_leaderboard("week")

    assert [r["name"] for r in rows] == ["Bob"]
    assert rows[0]["rank"] == 1


async def test_leaderboard_sums_scores(db, seed):
    alice = await seed.user(name="Alice")
    bob = await seed.user(name="Bob")
    quiz = await seed.quiz()
    await seed.record(alice, quiz=quiz, attempt_number=1, score=60.0, completed=True)
    await seed.record(alice, quiz=quiz, attempt_number=2, score=80.0, passed=True, completed=True)
    await seed.record(bob, quiz=quiz, score=100.0, passed=True, completed=True)

    rows = await LeaderboardService(db).get_leaderboard("all", limit=10)

    assert [r["name"] for r in rows] == ["Alice", "Bob"]
    top = rows[0]
    assert top["total_points"] == 140.0
    assert top["average_score"] == 70.0
    assert top["total_quizzes"] == 2
    assert top["passed_quizzes"] == 1
    assert top["pass_rate"] == 50.0
    assert top["email"] == alice.email


async def test_leaderboard_limit(db, seed):
    quiz = await seed.quiz()
    for score in (10.0, 20.0, 30.0):
        user = await seed.user()
        await seed.record(user, quiz=quiz, score=score, completed=True)

    rows = await LeaderboardService(db).get_leaderboard("month", limit=2)

    assert [r["total_points"] for r in rows] == [30.0, 20.0]
    assert [r["rank"] for r in rows] == [1, 2]
