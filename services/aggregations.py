"""
In-process reductions over fetched progress records.

Every function here is pure: it takes already-loaded rows (ORM objects or
anything exposing the same attributes) and returns plain dicts/lists. Records
without a lesson reference never form a ``None`` group in lesson-keyed
aggregates, they are skipped; the same holds for quiz-keyed ones. Empty input
always yields a zero-valued structure.
"""
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def day_of_week(ts: datetime) -> int:
    """1 = Sunday ... 7 = Saturday."""
    return ts.isoweekday() % 7 + 1


def overall_progress(records: Iterable[Any]) -> Dict[str, Any]:
    lesson_records = []
    quiz_records = []
    for r in records:
        if r.lesson_id is not None:
            lesson_records.append(r)
        if r.quiz_id is not None:
            quiz_records.append(r)

    return {
        "total_lessons": len(lesson_records),
        "completed_lessons": sum(1 for r in lesson_records if r.completed),
        "total_quizzes": len(quiz_records),
        "passed_quizzes": sum(1 for r in quiz_records if r.passed),
        "average_score": mean([r.score for r in quiz_records]),
    }


def timeline(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """Daily buckets keyed by the calendar date of created_at, oldest first."""
    buckets: Dict[str, Dict[str, Any]] = {}
    scores: Dict[str, List[float]] = defaultdict(list)

    for r in records:
        key = r.created_at.date().isoformat()
        bucket = buckets.setdefault(key, {
            "date": key,
            "lessons_completed": 0,
            "quizzes_attempted": 0,
            "quizzes_passed": 0,
            "average_score": 0.0,
        })
        if r.lesson_id is not None and r.completed:
            bucket["lessons_completed"] += 1
        if r.quiz_id is not None:
            bucket["quizzes_attempted"] += 1
            scores[key].append(r.score)
            if r.passed:
                bucket["quizzes_passed"] += 1

    for key, bucket in buckets.items():
        bucket["average_score"] = mean(scores[key])

    return [buckets[k] for k in sorted(buckets)]


def topic_mastery(records: Iterable[Any], lessons: Mapping[int, Any]) -> List[Dict[str, Any]]:
    """
    A lesson-linked record counts toward every topic of its lesson; mastery is
    the completed share of those records.
    """
    tally: Dict[str, Dict[str, int]] = {}
    for r in records:
        lesson = lessons.get(r.lesson_id) if r.lesson_id is not None else None
        if lesson is None:
            continue
        for topic in lesson.topics or []:
            stats = tally.setdefault(topic, {"completed": 0, "total": 0})
            stats["total"] += 1
            if r.completed:
                stats["completed"] += 1

    return [
        {
            "topic": topic,
            "mastery": stats["completed"] / stats["total"] * 100,
            "completed": stats["completed"],
            "total": stats["total"],
        }
        for topic, stats in sorted(tally.items())
        if stats["total"] > 0
    ]


def activity_heatmap(records: Iterable[Any]) -> List[Dict[str, int]]:
    counts = Counter((day_of_week(r.created_at), r.created_at.hour) for r in records)
    return [
        {"day_of_week": dow, "hour": hour, "count": n}
        for (dow, hour), n in sorted(counts.items())
    ]


def count_by(values: Iterable[Optional[str]], key_name: str) -> List[Dict[str, Any]]:
    counts = Counter(values)
    return [
        {key_name: key, "count": n}
        for key, n in sorted(counts.items(), key=lambda kv: (kv[0] is None, kv[0] or ""))
    ]


def monthly_counts(timestamps: Iterable[datetime]) -> List[Dict[str, Any]]:
    counts = Counter(ts.strftime("%Y-%m") for ts in timestamps)
    return [{"month": month, "count": n} for month, n in sorted(counts.items())]


def quiz_performance(records: Iterable[Any], pass_threshold: float) -> Dict[str, Any]:
    """Platform-wide: pass rate is the share of quiz records scoring >= threshold."""
    scores = [r.score for r in records if r.quiz_id is not None]
    return {
        "total_attempts": len(scores),
        "average_score": mean(scores),
        "pass_rate": mean([1.0 if s >= pass_threshold else 0.0 for s in scores]),
    }


def daily_engagement(records: Iterable[Any]) -> List[Dict[str, Any]]:
    users: Dict[str, set] = defaultdict(set)
    activities: Counter = Counter()
    for r in records:
        key = r.created_at.date().isoformat()
        users[key].add(r.user_id)
        activities[key] += 1
    return [
        {"date": key, "active_users_count": len(users[key]), "total_activities": activities[key]}
        for key in sorted(activities)
    ]


def user_cohorts(users: Iterable[Any]) -> List[Dict[str, Any]]:
    cohorts: Dict[str, List[int]] = defaultdict(list)
    for u in users:
        cohorts[u.created_at.strftime("%Y-%m")].append(u.id)
    return [{"month": month, "users": sorted(ids)} for month, ids in sorted(cohorts.items())]


def popular_lessons(records: Iterable[Any], limit: int = 10) -> List[Dict[str, Any]]:
    times: Dict[int, List[int]] = defaultdict(list)
    for r in records:
        if r.lesson_id is not None:
            times[r.lesson_id].append(r.time_spent)
    ranked = sorted(times.items(), key=lambda kv: (-len(kv[1]), kv[0]))[:limit]
    return [
        {"lesson_id": lesson_id, "completions": len(spent), "average_time_spent": mean(spent)}
        for lesson_id, spent in ranked
    ]


def quiz_analytics(records: Iterable[Any], pass_threshold: float, limit: int = 10) -> List[Dict[str, Any]]:
    scores: Dict[int, List[float]] = defaultdict(list)
    for r in records:
        if r.quiz_id is not None:
            scores[r.quiz_id].append(r.score)
    ranked = sorted(scores.items(), key=lambda kv: (-len(kv[1]), kv[0]))[:limit]
    return [
        {
            "quiz_id": quiz_id,
            "total_attempts": len(s),
            "average_score": mean(s),
            "pass_rate": mean([1.0 if x >= pass_threshold else 0.0 for x in s]),
        }
        for quiz_id, s in ranked
    ]


def completion_rates(records: Iterable[Any]) -> Dict[str, float]:
    lessons = [r for r in records if r.lesson_id is not None]
    quizzes = [r for r in records if r.quiz_id is not None]
    return {
        "lesson_completion_rate": sum(1 for r in lessons if r.completed) / len(lessons) * 100 if lessons else 0.0,
        "quiz_pass_rate": sum(1 for r in quizzes if r.passed) / len(quizzes) * 100 if quizzes else 0.0,
    }


def lesson_statistics(records: Iterable[Any]) -> Dict[str, Any]:
    """Completions of one lesson, bucketed by the day they were completed."""
    completed = [r for r in records if r.completed]
    per_day = Counter(r.completed_at.date().isoformat() for r in completed if r.completed_at is not None)
    return {
        "completions": len(completed),
        "average_completion_time": mean([r.time_spent for r in completed]),
        "progress_by_day": [{"date": day, "count": n} for day, n in sorted(per_day.items())],
    }


def attempt_summary(attempts: Sequence[Any], max_attempts: int) -> Dict[str, Any]:
    """Attempts must be ordered newest first."""
    return {
        "total_attempts": len(attempts),
        "best_score": max((a.score for a in attempts), default=0.0),
        "last_attempt": attempts[0] if attempts else None,
        "passed": any(a.passed for a in attempts),
        "attempts_remaining": max(0, max_attempts - len(attempts)),
    }
