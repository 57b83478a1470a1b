import asyncio
import json
from dataclasses import dataclass, asdict
from typing import Optional, Protocol

from redis.asyncio import Redis

from core.config import settings
from core.logger import logger
from models.base import utcnow


@dataclass(frozen=True)
class NotificationEvent:
    user_id: int
    title: str
    message: str
    type: str  # 'lesson', 'quiz', 'progress', 'system'
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    action_url: Optional[str] = None

    def to_json(self) -> str:
        payload = asdict(self)
        payload["created_at"] = utcnow().isoformat()
        return json.dumps(payload)


class NotificationDispatcher(Protocol):
    async def dispatch(self, event: NotificationEvent) -> None:
        ...


class RedisNotificationDispatcher:
    """Publishes events on `{prefix}:{user_id}`; the delivery service subscribes there."""

    def __init__(self, redis: Redis, prefix: str = None):
        self.redis = redis
        self.prefix = prefix or settings.NOTIFICATION_CHANNEL_PREFIX

    async def dispatch(self, event: NotificationEvent) -> None:
        channel = f"{self.prefix}:{event.user_id}"
        receivers = await self.redis.publish(channel, event.to_json())
        logger.debug("Notification published", channel=channel, receivers=receivers)


class LoggingNotificationDispatcher:
    """Used when notifications are disabled."""

    async def dispatch(self, event: NotificationEvent) -> None:
        logger.info("Notification skipped (disabled)", user_id=event.user_id, title=event.title)


async def dispatch_safely(dispatcher: NotificationDispatcher, event: NotificationEvent) -> bool:
    """Fire-and-forget: never raises, returns whether delivery was handed off."""
    try:
        await asyncio.wait_for(dispatcher.dispatch(event), timeout=settings.NOTIFICATION_TIMEOUT_SECONDS)
        return True
    except Exception as e:
        logger.warning("Notification dispatch failed", user_id=event.user_id, type=event.type, error=str(e))
        return False


def quiz_result_event(user_id: int, quiz_id: int, quiz_title: str, score: float, passed: bool) -> NotificationEvent:
    if passed:
        title = "Quiz Passed!"
        message = f'Congratulations! You passed the quiz "{quiz_title}" with a score of {score:.1f}%'
    else:
        title = "Quiz Attempt Completed"
        message = f'You completed the quiz "{quiz_title}" with a score of {score:.1f}%. Keep practicing!'
    return NotificationEvent(
        user_id=user_id,
        title=title,
        message=message,
        type="quiz",
        entity_type="quiz",
        entity_id=quiz_id,
        action_url=f"/quizzes/{quiz_id}",
    )


def lesson_completed_event(user_id: int, lesson_id: int, lesson_title: str) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title="Lesson Completed!",
        message=f"You've completed the lesson: {lesson_title}",
        type="lesson",
        entity_type="lesson",
        entity_id=lesson_id,
        action_url=f"/lessons/{lesson_id}",
    )
