import calendar
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.progress import ProgressRecord
from models.base import utcnow
from services.aggregations import mean
from services.user_service import UserService
from core.config import settings
from core.exceptions import ValidationError
from db.session import execute

TIMEFRAMES = ("week", "month", "year")


def _months_ago(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + now.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def timeframe_start(timeframe: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound on created_at; None means all time."""
    if timeframe not in TIMEFRAMES:
        return None
    now = now or utcnow()
    if timeframe == "week":
        return now - timedelta(days=7)
    if timeframe == "month":
        return _months_ago(now, 1)
    return _months_ago(now, 12)


def rank_users(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Group quiz records by user and order by total points (sum of scores),
    highest first. Ties fall back to the lower user id.
    """
    scores: Dict[int, List[float]] = defaultdict(list)
    passed: Dict[int, int] = defaultdict(int)
    for r in records:
        if r.quiz_id is None:
            continue
        scores[r.user_id].append(r.score)
        if r.passed:
            passed[r.user_id] += 1

    rows = [
        {
            "user_id": user_id,
            "total_quizzes": len(s),
            "passed_quizzes": passed[user_id],
            "average_score": mean(s),
            "total_points": sum(s),
            "pass_rate": passed[user_id] / len(s) * 100 if s else 0.0,
        }
        for user_id, s in scores.items()
    ]
    rows.sort(key=lambda row: (-row["total_points"], row["user_id"]))
    return rows


class LeaderboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_leaderboard(self, timeframe: str = "month", limit: int = None) -> List[dict]:
        limit = settings.LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError.for_field("limit", "Limit must be at least 1")

        # 1. Quiz records inside the window
        query = select(ProgressRecord).filter(ProgressRecord.quiz_id.isnot(None))
        start = timeframe_start(timeframe)
        if start is not None:
            query = query.filter(ProgressRecord.created_at >= start)
        records = (await execute(self.db, query)).scalars().all()

        # 2. Aggregate and rank
        ranked = rank_users(records)

        # 3. Join identities; users that no longer exist drop out
        identities = await UserService(self.db).get_identities(row["user_id"] for row in ranked)

        leaderboard = []
        for row in ranked:
            user = identities.get(row["user_id"])
            if user is None:
                continue
            leaderboard.append({
                "rank": len(leaderboard) + 1,
                "user_id": user.id,
                "name": user.name,
                "email": user.email,
                "avatar": user.avatar,
                "total_quizzes": row["total_quizzes"],
                "passed_quizzes": row["passed_quizzes"],
                "average_score": round(row["average_score"], 2),
                "total_points": round(row["total_points"], 2),
                "pass_rate": round(row["pass_rate"], 2),
            })
            if len(leaderboard) >= limit:
                break
        return leaderboard
