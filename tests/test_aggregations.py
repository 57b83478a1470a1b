from datetime import datetime
from types import SimpleNamespace

import pytest

from core.exceptions import NotFoundError, ValidationError
from services import aggregations
from services.stats_service import StatsService


def rec(created_at, lesson_id=None, quiz_id=None, score=0.0, passed=False, completed=False, user_id=1, time_spent=0, completed_at=None):
    return SimpleNamespace(
        created_at=created_at,
        lesson_id=lesson_id,
        quiz_id=quiz_id,
        score=score,
        passed=passed,
        completed=completed,
        user_id=user_id,
        time_spent=time_spent,
        completed_at=completed_at,
    )


def test_day_of_week_starts_on_sunday():
    assert aggregations.day_of_week(datetime(2024, 3, 3)) == 1  # Sunday
    assert aggregations.day_of_week(datetime(2024, 3, 4)) == 2  # Monday
    assert aggregations.day_of_week(datetime(2024, 3, 9)) == 7  # Saturday


def test_overall_progress_averages_quiz_records_only():
    records = [
        rec(datetime(2024, 1, 1), lesson_id=1, completed=True),
        rec(datetime(2024, 1, 1), lesson_id=2),
        rec(datetime(2024, 1, 2), quiz_id=1, score=80, passed=True),
        rec(datetime(2024, 1, 3), quiz_id=1, score=40),
    ]

    assert aggregations.overall_progress(records) == {
        "total_lessons": 2,
        "completed_lessons": 1,
        "total_quizzes": 2,
        "passed_quizzes": 1,
        "average_score": 60,
    }


def test_timeline_buckets_by_day():
    records = [
        rec(datetime(2024, 1, 2, 9), quiz_id=1, score=100, passed=True),
        rec(datetime(2024, 1, 1, 8), lesson_id=1, completed=True),
        rec(datetime(2024, 1, 2, 18), quiz_id=2, score=50),
        rec(datetime(2024, 1, 2, 19), lesson_id=3),
    ]

    assert aggregations.timeline(records) == [
        {"date": "2024-01-01", "lessons_completed": 1, "quizzes_attempted": 0, "quizzes_passed": 0, "average_score": 0.0},
        {"date": "2024-01-02", "lessons_completed": 0, "quizzes_attempted": 2, "quizzes_passed": 1, "average_score": 75.0},
    ]


def test_topic_mastery_skips_records_without_lesson():
    lessons = {
        1: SimpleNamespace(topics=["climate", "rivers"]),
        2: SimpleNamespace(topics=["climate"]),
    }
    records = [
        rec(datetime(2024, 1, 1), lesson_id=1, completed=True),
        rec(datetime(2024, 1, 1), lesson_id=2),
        rec(datetime(2024, 1, 1), quiz_id=5),
        rec(datetime(2024, 1, 1), lesson_id=99, completed=True),
    ]

    assert aggregations.topic_mastery(records, lessons) == [
        {"topic": "climate", "mastery": 50.0, "completed": 1, "total": 2},
        {"topic": "rivers", "mastery": 100.0, "completed": 1, "total": 1},
    ]


def test_activity_heatmap_counts_day_and_hour():
    records = [
        rec(datetime(2024, 3, 3, 10)),
        rec(datetime(2024, 3, 3, 10, 45)),
        rec(datetime(2024, 3, 4, 23)),
    ]

    assert aggregations.activity_heatmap(records) == [
        {"day_of_week": 1, "hour": 10, "count": 2},
        {"day_of_week": 2, "hour": 23, "count": 1},
    ]


def test_quiz_performance_pass_rate_is_a_share():
    records = [
        rec(datetime(2024, 1, 1), quiz_id=1, score=70),
        rec(datetime(2024, 1, 1), quiz_id=1, score=69.9),
        rec(datetime(2024, 1, 1), lesson_id=1),
    ]

    perf = aggregations.quiz_performance(records, pass_threshold=70)

    assert perf["total_attempts"] == 2
    assert perf["pass_rate"] == 0.5
    assert perf["average_score"] == pytest.approx(69.95)


def test_popular_lessons_and_completion_rates():
    records = [
        rec(datetime(2024, 1, 1), lesson_id=2, time_spent=10, completed=True),
        rec(datetime(2024, 1, 1), lesson_id=2, time_spent=30, completed=True),
        rec(datetime(2024, 1, 1), lesson_id=1, time_spent=5),
        rec(datetime(2024, 1, 1), quiz_id=1, score=90, passed=True),
    ]

    assert aggregations.popular_lessons(records) == [
        {"lesson_id": 2, "completions": 2, "average_time_spent": 20.0},
        {"lesson_id": 1, "completions": 1, "average_time_spent": 5.0},
    ]
    rates = aggregations.completion_rates(records)
    assert rates["lesson_completion_rate"] == pytest.approx(200 / 3)
    assert rates["quiz_pass_rate"] == 100.0


def test_empty_inputs_yield_zero_values():
    assert aggregations.timeline([]) == []
    assert aggregations.activity_heatmap([]) == []
    assert aggregations.quiz_performance([], 70) == {"total_attempts": 0, "average_score": 0.0, "pass_rate": 0.0}
    assert aggregations.completion_rates([]) == {"lesson_completion_rate": 0.0, "quiz_pass_rate": 0.0}


def test_window_requires_positive_days():
    with pytest.raises(ValidationError):
        StatsService.window_start(0)


async def test_progress_overview_windows_timeline_not_mastery(db, seed):
    user = await seed.user()
    lesson = await seed.lesson(topics=["climate"])
    quiz = await seed.quiz()
    await seed.record(user, lesson=lesson, completed=True, days_ago=40)
    await seed.record(user, quiz=quiz, score=80.0, passed=True, completed=True, days_ago=1)

    data = await StatsService(db).get_progress_overview(user.id, days=30)

    assert len(data["timeline"]) == 1
    assert data["timeline"][0]["quizzes_attempted"] == 1
    assert data["topic_mastery"] == [{"topic": "climate", "mastery": 100.0, "completed": 1, "total": 1}]
    assert sum(cell["count"] for cell in data["activity_heatmap"]) == 1


async def test_dashboard_on_empty_store(db):
    data = await StatsService(db).get_dashboard_stats()

    assert data["counts"] == {
        "total_users": 0,
        "active_users": 0,
        "total_lessons": 0,
        "published_lessons": 0,
        "total_quizzes": 0,
        "total_geo_points": 0,
    }
    assert data["recent_activity"] == []
    assert data["performance"] == {"total_attempts": 0, "average_score": 0.0, "pass_rate": 0.0}


async def test_dashboard_uses_platform_threshold(db, seed):
    user = await seed.user()
    await seed.user(is_active=False)
    await seed.lesson(difficulty="advanced")
    await seed.lesson(difficulty="beginner", is_published=False)
    await seed.geo_point(type="landmark")
    # Quiz passes at 50, but the platform pass rate counts >= 70 only
    quiz = await seed.quiz(passing_score=50)
    await seed.record(user, quiz=quiz, score=60.0, passed=True, completed=True)

    data = await StatsService(db).get_dashboard_stats()

    assert data["counts"]["total_users"] == 2
    assert data["counts"]["active_users"] == 1
    assert data["counts"]["published_lessons"] == 1
    assert data["content_stats"]["lessons_by_difficulty"] == [
        {"difficulty": "advanced", "count": 1},
        {"difficulty": "beginner", "count": 1},
    ]
    assert data["content_stats"]["geo_points_by_type"] == [{"type": "landmark", "count": 1}]
    assert data["performance"]["pass_rate"] == 0.0
    assert len(data["recent_activity"]) == 1


async def test_content_analytics_joins_titles(db, seed):
    user = await seed.user()
    lesson = await seed.lesson(title="Deserts", difficulty="intermediate")
    quiz = await seed.quiz(title="Dunes", lesson_id=lesson.id)
    await seed.record(user, lesson=lesson, completed=True, time_spent=120)
    await seed.record(user, quiz=quiz, score=90.0, passed=True, completed=True)

    data = await StatsService(db).get_content_analytics()

    assert data["popular_lessons"] == [
        {"lesson_id": lesson.id, "completions": 1, "average_time_spent": 120.0, "title": "Deserts", "difficulty": "intermediate"},
    ]
    assert data["quiz_analytics"][0]["title"] == "Dunes"
    assert data["quiz_analytics"][0]["lesson_id"] == lesson.id
    assert data["quiz_analytics"][0]["pass_rate"] == 1.0
    assert data["content_completion"] == {"lesson_completion_rate": 100.0, "quiz_pass_rate": 100.0}


def test_lesson_statistics_counts_completed_records_only():
    records = [
        rec(datetime(2024, 5, 1), lesson_id=1, completed=True, time_spent=100, completed_at=datetime(2024, 5, 2, 9)),
        rec(datetime(2024, 5, 1), lesson_id=1, completed=True, time_spent=300, completed_at=datetime(2024, 5, 1, 23)),
        rec(datetime(2024, 5, 1), lesson_id=1, completed=True, time_spent=200, completed_at=datetime(2024, 5, 2, 18)),
        rec(datetime(2024, 5, 1), lesson_id=1, completed=False, time_spent=999),
    ]

    assert aggregations.lesson_statistics(records) == {
        "completions": 3,
        "average_completion_time": 200.0,
        "progress_by_day": [{"date": "2024-05-01", "count": 1}, {"date": "2024-05-02", "count": 2}],
    }


def test_lesson_statistics_empty():
    assert aggregations.lesson_statistics([]) == {
        "completions": 0,
        "average_completion_time": 0.0,
        "progress_by_day": [],
    }


async def test_lesson_statistics_for_one_lesson(db, seed):
    user = await seed.user()
    other_user = await seed.user()
    lesson = await seed.lesson()
    other_lesson = await seed.lesson(title="Steppes")
    await seed.record(user, lesson=lesson, completed_at=datetime(2024, 6, 1, 10), completed=True, time_spent=60)
    await seed.record(other_user, lesson=lesson, completed_at=datetime(2024, 6, 3, 8), completed=True, time_spent=180)
    await seed.record(user, lesson=other_lesson, completed=True, time_spent=500)

    data = await StatsService(db).get_lesson_statistics(lesson.id)

    assert data["completions"] == 2
    assert data["average_completion_time"] == 120.0
    assert data["progress_by_day"] == [{"date": "2024-06-01", "count": 1}, {"date": "2024-06-03", "count": 1}]


async def test_lesson_statistics_missing_lesson(db):
    with pytest.raises(NotFoundError):
        await StatsService(db).get_lesson_statistics(404)
