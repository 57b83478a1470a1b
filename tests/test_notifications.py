import asyncio
import json

from core.config import settings
from services.notification_service import (
    RedisNotificationDispatcher,
    dispatch_safely,
    lesson_completed_event,
    quiz_result_event,
)


class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


class SlowDispatcher:
    async def dispatch(self, event):
        await asyncio.sleep(10)


async def test_redis_dispatcher_publishes_per_user_channel():
    redis = FakeRedis()
    event = quiz_result_event(42, 7, "Capitals", 83.333, passed=True)

    assert await dispatch_safely(RedisNotificationDispatcher(redis, prefix="notify"), event) is True

    channel, message = redis.published[0]
    payload = json.loads(message)
    assert channel == "notify:42"
    assert payload["title"] == "Quiz Passed!"
    assert "83.3%" in payload["message"]
    assert payload["action_url"] == "/quizzes/7"
    assert "created_at" in payload


async def test_dispatch_times_out_quietly(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATION_TIMEOUT_SECONDS", 0.01)

    delivered = await dispatch_safely(SlowDispatcher(), lesson_completed_event(1, 2, "Deserts"))

    assert delivered is False


async def test_dispatch_swallows_errors(failing_notifier):
    assert await dispatch_safely(failing_notifier, lesson_completed_event(1, 2, "Deserts")) is False
    assert failing_notifier.calls == 1
