from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success envelope wrapping every payload."""
    success: bool = Field(default=True, description="Always true for successful calls")
    data: T


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine readable error kind", examples=["attempts_exhausted"])
    message: str = Field(..., description="Human readable message")
    details: Optional[Any] = Field(None, description="Field-level details for validation errors")
    retryable: Optional[bool] = Field(None, description="Set when retrying later may succeed")


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: ErrorBody


# === Requests ===

class AnswerIn(BaseModel):
    """A single submitted answer."""
    question_index: int = Field(..., description="0-based index of the question", ge=0)
    selected_answer: int = Field(..., description="0-based index of the chosen option", ge=0)
    time_spent: int = Field(0, description="Seconds spent on this question", ge=0)


class QuizSubmissionIn(BaseModel):
    """Request body for a quiz attempt."""
    answers: List[AnswerIn] = Field(..., description="Ordered answers; unanswered questions score nothing")
    time_spent: int = Field(0, description="Total seconds spent on the attempt", ge=0)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "answers": [
                {"question_index": 0, "selected_answer": 2, "time_spent": 12},
                {"question_index": 1, "selected_answer": 0, "time_spent": 30},
            ],
            "time_spent": 42,
        }
    })


# === Records ===

class ScoredAnswerOut(BaseModel):
    question_index: int
    selected_answer: int
    is_correct: bool
    time_spent: int = 0


class ProgressRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    lesson_id: Optional[int] = None
    quiz_id: Optional[int] = None
    attempt_number: int
    score: float
    total_questions: int
    correct_answers: int
    points_earned: int
    time_spent: int
    answers: List[ScoredAnswerOut] = []
    completed: bool
    passed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    created_at: datetime


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    duration: int
    topics: List[str] = []
    difficulty: str
    is_published: bool
    created_at: datetime


class QuizSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    passing_score: float
    max_attempts: int


# === Write results ===

class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    progress_record: ProgressRecordOut
    quiz_title: str
    score: float = Field(..., description="Score rounded to one decimal")
    passed: bool
    correct_answers: int
    total_questions: int
    attempt_number: int
    attempts_remaining: int
    max_attempts: int


# === Progress reads ===

class OverallStatsOut(BaseModel):
    total_lessons: int
    completed_lessons: int
    total_quizzes: int
    passed_quizzes: int
    average_score: float


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserProgressOut(BaseModel):
    records: List[ProgressRecordOut]
    overall_stats: OverallStatsOut
    pagination: PaginationOut


class LessonProgressOut(BaseModel):
    progress: Optional[ProgressRecordOut] = None
    lesson: LessonOut


class AttemptAnalyticsOut(BaseModel):
    total_attempts: int
    best_score: float
    last_attempt: Optional[ProgressRecordOut] = None
    passed: bool
    attempts_remaining: int


class QuizProgressOut(BaseModel):
    quiz: QuizSummaryOut
    attempts: List[ProgressRecordOut]
    analytics: AttemptAnalyticsOut


class TimelineEntry(BaseModel):
    date: str
    lessons_completed: int
    quizzes_attempted: int
    quizzes_passed: int
    average_score: float


class TopicMasteryEntry(BaseModel):
    topic: str
    mastery: float = Field(..., ge=0, le=100)
    completed: int
    total: int


class HeatmapCell(BaseModel):
    day_of_week: int = Field(..., description="1 = Sunday ... 7 = Saturday", ge=1, le=7)
    hour: int = Field(..., ge=0, le=23)
    count: int


class ProgressOverviewOut(BaseModel):
    timeline: List[TimelineEntry]
    topic_mastery: List[TopicMasteryEntry]
    activity_heatmap: List[HeatmapCell]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: Optional[str] = None
    email: str
    avatar: Optional[str] = None
    total_quizzes: int
    passed_quizzes: int
    average_score: float
    total_points: float
    pass_rate: float


class ExportUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    email: str


class ProgressExportOut(BaseModel):
    user: ExportUserOut
    progress: List[ProgressRecordOut]
    export_date: datetime


class UserDashboardOut(BaseModel):
    user: ExportUserOut
    stats: OverallStatsOut
    recent_progress: List[ProgressRecordOut] = Field(..., description="Five most recent records, newest first")


class DayCount(BaseModel):
    date: str
    count: int


class LessonStatisticsOut(BaseModel):
    completions: int
    average_completion_time: float = Field(..., description="Mean time_spent (seconds) over completed records")
    progress_by_day: List[DayCount] = Field(..., description="Completions per completed_at date, oldest first")


# === Admin analytics ===

class DashboardCounts(BaseModel):
    total_users: int
    active_users: int
    total_lessons: int
    published_lessons: int
    total_quizzes: int
    total_geo_points: int


class MonthCount(BaseModel):
    month: str
    count: int


class DifficultyCount(BaseModel):
    difficulty: Optional[str] = None
    count: int


class GeoTypeCount(BaseModel):
    type: Optional[str] = None
    count: int


class ContentStats(BaseModel):
    lessons_by_difficulty: List[DifficultyCount]
    geo_points_by_type: List[GeoTypeCount]


class QuizPerformance(BaseModel):
    total_attempts: int
    average_score: float
    pass_rate: float = Field(..., description="Share (0-1) of quiz attempts scoring at least 70")


class DashboardOut(BaseModel):
    counts: DashboardCounts
    recent_activity: List[ProgressRecordOut]
    user_growth: List[MonthCount]
    content_stats: ContentStats
    performance: QuizPerformance


class EngagementEntry(BaseModel):
    date: str
    active_users_count: int
    total_activities: int


class CohortEntry(BaseModel):
    month: str
    users: List[int]


class UserAnalyticsOut(BaseModel):
    user_engagement: List[EngagementEntry]
    user_cohorts: List[CohortEntry]
    usage_patterns: List[HeatmapCell]


class PopularLesson(BaseModel):
    lesson_id: int
    title: Optional[str] = None
    difficulty: Optional[str] = None
    completions: int
    average_time_spent: float


class QuizAnalyticsEntry(BaseModel):
    quiz_id: int
    title: Optional[str] = None
    lesson_id: Optional[int] = None
    total_attempts: int
    average_score: float
    pass_rate: float


class ContentCompletion(BaseModel):
    lesson_completion_rate: float
    quiz_pass_rate: float


class ContentAnalyticsOut(BaseModel):
    popular_lessons: List[PopularLesson]
    quiz_analytics: List[QuizAnalyticsEntry]
    content_completion: ContentCompletion
