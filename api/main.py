import time
import uuid
from typing import List, Optional

import structlog
from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.deps import get_current_user, get_notifier, require_admin
from api.schemas import (
    ContentAnalyticsOut,
    DashboardOut,
    Envelope,
    ErrorEnvelope,
    LeaderboardEntry,
    LessonOut,
    LessonProgressOut,
    LessonStatisticsOut,
    ProgressExportOut,
    ProgressOverviewOut,
    ProgressRecordOut,
    QuizProgressOut,
    QuizSubmissionIn,
    SubmissionOut,
    UserAnalyticsOut,
    UserDashboardOut,
    UserProgressOut,
)
from core.config import settings
from core.exceptions import AppError
from db.session import get_db
from models.base import utcnow
from models.user import User
from services.leaderboard_service import LeaderboardService
from services.progress_service import ProgressService
from services.recommendation_service import RecommendationService
from services.scoring import SubmittedAnswer
from services.stats_service import StatsService
from utils.exporter import generate_progress_csv

logger = structlog.get_logger()

# API Documentation
API_DESCRIPTION = """
## Learning Progress API

Quiz attempts, lesson completion, learner analytics, leaderboards and
recommendations.

### Authentication

Send the token issued by the auth service:

- Header: `Authorization: Bearer <token>`
- Or (legacy): `X-Auth-Token: <token>`

### Responses

Every response is an envelope: `{"success": true, "data": ...}` or
`{"success": false, "error": {"code", "message", "details"}}`.
"""

TAGS_METADATA = [
    {"name": "quizzes", "description": "Quiz attempt submission."},
    {"name": "lessons", "description": "Lesson completion and recommendations."},
    {"name": "progress", "description": "Per-user progress, overview, export and leaderboard."},
    {"name": "admin", "description": "Platform-wide analytics (admin only)."},
    {"name": "info", "description": "Service health."},
]

ERROR_RESPONSES = {
    401: {"model": ErrorEnvelope, "description": "Authentication required"},
    404: {"model": ErrorEnvelope, "description": "Referenced entity not found"},
    422: {"model": ErrorEnvelope, "description": "Invalid input"},
    503: {"model": ErrorEnvelope, "description": "Data store unavailable, retry later"},
}

app = FastAPI(
    title="Learning Progress API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

    start = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "Request handled",
        method=request.method,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - start) * 1000, 1),
    )
    return response


# === Error envelope ===

def _error_response(status_code: int, error: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed", code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", code=exc.code, error=exc.message)
    return _error_response(exc.status_code, exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or str(err.get("loc", ("",))[0]),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    logger.info("Request validation failed", errors=details)
    return _error_response(422, {"code": "validation_error", "message": "Request is invalid", "details": details})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, {"code": "http_error", "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", error_type=type(exc).__name__)
    error = {"code": "internal_error", "message": "Something went wrong!"}
    if settings.expose_error_details:
        error["details"] = {"type": type(exc).__name__, "message": str(exc)}
    return _error_response(500, error)


# === Quizzes & lessons ===

@app.post(
    "/api/quizzes/{quiz_id}/submit",
    response_model=Envelope[SubmissionOut],
    tags=["quizzes"],
    summary="Submit quiz attempt",
    description="Scores the answers, records the attempt and returns the result. Fails once max attempts are used.",
    responses={**ERROR_RESPONSES, 409: {"model": ErrorEnvelope, "description": "Attempts exhausted or concurrent submission"}},
)
async def submit_quiz(
    quiz_id: int,
    submission: QuizSubmissionIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    service = ProgressService(db, notifier=notifier)
    answers = [SubmittedAnswer(a.question_index, a.selected_answer, a.time_spent) for a in submission.answers]
    result = await service.submit_quiz_attempt(user.id, quiz_id, answers, submission.time_spent)

    data = SubmissionOut.model_validate({
        "progress_record": result.progress_record,
        "quiz_title": result.quiz_title,
        "score": round(result.score, 1),
        "passed": result.passed,
        "correct_answers": result.correct_answers,
        "total_questions": result.total_questions,
        "attempt_number": result.attempt_number,
        "attempts_remaining": result.attempts_remaining,
        "max_attempts": result.max_attempts,
    }, from_attributes=True)
    return Envelope(data=data)


@app.post(
    "/api/lessons/{lesson_id}/complete",
    response_model=Envelope[ProgressRecordOut],
    tags=["lessons"],
    summary="Complete lesson",
    responses=ERROR_RESPONSES,
)
async def complete_lesson(
    lesson_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
):
    record = await ProgressService(db, notifier=notifier).complete_lesson(user.id, lesson_id)
    return Envelope(data=ProgressRecordOut.model_validate(record))


@app.get(
    "/api/lessons/recommended",
    response_model=Envelope[List[LessonOut]],
    tags=["lessons"],
    summary="Recommended lessons",
    responses=ERROR_RESPONSES,
)
async def recommended_lessons(
    limit: int = Query(settings.RECOMMENDATION_DEFAULT_LIMIT, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lessons = await RecommendationService(db).get_recommended_lessons(user.id, limit)
    return Envelope(data=[LessonOut.model_validate(l) for l in lessons])


@app.get(
    "/api/lessons/{lesson_id}/statistics",
    response_model=Envelope[LessonStatisticsOut],
    tags=["lessons"],
    summary="Lesson statistics",
    description="Completions, average completion time and completions per day for one lesson.",
    responses=ERROR_RESPONSES,
)
async def lesson_statistics(
    lesson_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await StatsService(db).get_lesson_statistics(lesson_id)
    return Envelope(data=LessonStatisticsOut.model_validate(data))


# === Progress ===

@app.get(
    "/api/progress",
    response_model=Envelope[UserProgressOut],
    tags=["progress"],
    summary="User progress",
    responses=ERROR_RESPONSES,
)
async def user_progress(
    type: Optional[str] = Query(None, pattern="^(lesson|quiz)$", description="Only lesson or quiz records"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.PROGRESS_PAGE_SIZE, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await ProgressService(db).get_user_progress(user.id, type, page, limit)
    return Envelope(data=UserProgressOut.model_validate(data, from_attributes=True))


@app.get(
    "/api/progress/overview",
    response_model=Envelope[ProgressOverviewOut],
    tags=["progress"],
    summary="Progress overview",
    description="Daily timeline and activity heatmap over the last `days` days, plus topic mastery.",
    responses=ERROR_RESPONSES,
)
async def progress_overview(
    days: int = Query(settings.ANALYTICS_DEFAULT_DAYS, ge=1, le=3650),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await StatsService(db).get_progress_overview(user.id, days)
    return Envelope(data=ProgressOverviewOut.model_validate(data))


@app.get(
    "/api/progress/leaderboard",
    response_model=Envelope[List[LeaderboardEntry]],
    tags=["progress"],
    summary="Leaderboard",
    description="Users ranked by the sum of their quiz scores. timeframe: week, month, year; anything else is all time.",
    responses=ERROR_RESPONSES,
)
async def leaderboard(
    timeframe: str = Query("month"),
    limit: int = Query(settings.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await LeaderboardService(db).get_leaderboard(timeframe, limit)
    return Envelope(data=[LeaderboardEntry.model_validate(r) for r in rows])


@app.get(
    "/api/progress/export",
    tags=["progress"],
    summary="Export own progress",
    description="`format=csv` returns a CSV attachment (Date, Type, Title, Score, Status); otherwise JSON.",
    responses={200: {"content": {"text/csv": {}}}, **ERROR_RESPONSES},
)
async def export_progress(
    format: str = Query("json", pattern="^(json|csv)$"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await ProgressService(db).get_all_records(user.id)

    if format == "csv":
        buffer = generate_progress_csv(records)
        filename = f"progress-{int(time.time())}.csv"
        return Response(
            content=buffer.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    data = ProgressExportOut.model_validate({
        "user": user,
        "progress": records,
        "export_date": utcnow(),
    }, from_attributes=True)
    return Envelope(data=data)


@app.get(
    "/api/progress/dashboard",
    response_model=Envelope[UserDashboardOut],
    tags=["progress"],
    summary="Learner dashboard",
    description="Overall stats and the five most recent progress records of the caller.",
    responses=ERROR_RESPONSES,
)
async def user_dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await ProgressService(db).get_user_dashboard(user.id)
    data["user"] = user
    return Envelope(data=UserDashboardOut.model_validate(data, from_attributes=True))


@app.get(
    "/api/progress/lesson/{lesson_id}",
    response_model=Envelope[LessonProgressOut],
    tags=["progress"],
    summary="Lesson progress",
    responses=ERROR_RESPONSES,
)
async def lesson_progress(
    lesson_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await ProgressService(db).get_lesson_progress(user.id, lesson_id)
    return Envelope(data=LessonProgressOut.model_validate(data, from_attributes=True))


@app.get(
    "/api/progress/quiz/{quiz_id}",
    response_model=Envelope[QuizProgressOut],
    tags=["progress"],
    summary="Quiz attempts",
    responses=ERROR_RESPONSES,
)
async def quiz_progress(
    quiz_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await ProgressService(db).get_quiz_progress(user.id, quiz_id)
    return Envelope(data=QuizProgressOut.model_validate(data, from_attributes=True))


# === Admin ===

@app.get(
    "/api/admin/dashboard",
    response_model=Envelope[DashboardOut],
    tags=["admin"],
    summary="Dashboard statistics",
    responses={**ERROR_RESPONSES, 403: {"model": ErrorEnvelope, "description": "Admin role required"}},
)
async def dashboard(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    data = await StatsService(db).get_dashboard_stats()
    return Envelope(data=DashboardOut.model_validate(data, from_attributes=True))


@app.get(
    "/api/admin/analytics/users",
    response_model=Envelope[UserAnalyticsOut],
    tags=["admin"],
    summary="User engagement analytics",
    responses={**ERROR_RESPONSES, 403: {"model": ErrorEnvelope, "description": "Admin role required"}},
)
async def user_analytics(
    days: int = Query(settings.ANALYTICS_DEFAULT_DAYS, ge=1, le=3650),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await StatsService(db).get_user_analytics(days)
    return Envelope(data=UserAnalyticsOut.model_validate(data))


@app.get(
    "/api/admin/analytics/content",
    response_model=Envelope[ContentAnalyticsOut],
    tags=["admin"],
    summary="Content analytics",
    responses={**ERROR_RESPONSES, 403: {"model": ErrorEnvelope, "description": "Admin role required"}},
)
async def content_analytics(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    data = await StatsService(db).get_content_analytics()
    return Envelope(data=ContentAnalyticsOut.model_validate(data))


@app.get("/health", tags=["info"], summary="Liveness")
async def health():
    return {"success": True, "data": {"status": "ok", "env": settings.ENV}}
