"""Redis pub/sub fan-out for notification and comment inserts.

Publishers run inside request handlers and use the sync client. Consumers hold
a :class:`Subscription`, an async iterator bound to exactly one channel, so a
recipient only ever receives rows published on their own channel.
"""

import asyncio
import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

import redis
import redis.asyncio as aioredis
from pydantic import BaseModel, ValidationError

from community.core.config import settings
from community.core.errors import SubscriptionError
from community.infra.redis_client import get_async_redis, get_redis
from community.schemas.comment import CommentPublic
from community.schemas.notification import NotificationPublic

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT", bound=BaseModel)
_CLOSED = object()


def notification_channel(user_id: UUID) -> str:
    return f"{settings.notification_channel_prefix}:{user_id}"


def comment_channel(post_id: UUID) -> str:
    return f"{settings.comment_channel_prefix}:{post_id}"


class RealtimePublisher:
    def __init__(self, client: redis.Redis | None = None) -> None:
        self.redis = client or get_redis()

    def publish_notification(self, notification: NotificationPublic) -> int:
        return self._publish(notification_channel(notification.user_id), notification)

    def publish_comment(self, comment: CommentPublic) -> int:
        return self._publish(comment_channel(comment.post_id), comment)

    def _publish(self, channel: str, event: BaseModel) -> int:
        return int(self.redis.publish(channel, event.model_dump_json()))


class Subscription(Generic[EventT]):
    """Lazy, infinite stream of events from one channel.

    Iteration ends once :meth:`close` is called. A dropped channel is
    resubscribed with linear backoff; when the attempts are exhausted the
    iterator raises :class:`SubscriptionError` and the subscription closes.
    The only way to restart a closed subscription is to subscribe again.
    """

    def __init__(
        self,
        *,
        channel: str,
        event_type: type[EventT],
        client: aioredis.Redis,
        max_attempts: int,
        backoff_seconds: float,
    ) -> None:
        self.channel = channel
        self.event_type = event_type
        self.redis = client
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> "Subscription[EventT]":
        self._task = asyncio.create_task(self._run(), name=f"subscription:{self.channel}")
        # returns once the channel is live (or given up on)
        await self._ready.wait()
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._ready.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __aiter__(self) -> "Subscription[EventT]":
        return self

    async def __anext__(self) -> EventT:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        if isinstance(item, SubscriptionError):
            self.close()
            raise item
        return item

    async def _run(self) -> None:
        attempts = 0
        while not self._closed:
            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                attempts = 0
                self._ready.set()
                await self._pump(pubsub)
                failure: Exception = SubscriptionError("channel closed by server")
            except (redis.RedisError, OSError) as exc:
                failure = exc
            finally:
                await self._release(pubsub)

            if self._closed:
                return
            attempts += 1
            if attempts > self.max_attempts:
                logger.warning(
                    "realtime channel lost, giving up",
                    extra={"channel": self.channel, "attempts": self.max_attempts},
                )
                self._queue.put_nowait(SubscriptionError())
                self._ready.set()
                return
            logger.warning(
                "realtime channel dropped, resubscribing",
                extra={"channel": self.channel, "attempt": attempts, "error": str(failure)},
            )
            await asyncio.sleep(self.backoff_seconds * attempts)

    async def _pump(self, pubsub: Any) -> None:
        async for message in pubsub.listen():
            if message is None or message.get("type") != "message":
                continue
            try:
                event = self.event_type.model_validate_json(message["data"])
            except ValidationError:
                logger.warning("dropping malformed realtime payload", extra={"channel": self.channel})
                continue
            self._queue.put_nowait(event)

    async def _release(self, pubsub: Any) -> None:
        try:
            await pubsub.unsubscribe(self.channel)
        except (redis.RedisError, OSError):
            logger.debug("realtime unsubscribe failed", extra={"channel": self.channel}, exc_info=True)
        finally:
            await pubsub.aclose()


class RealtimeHub:
    def __init__(self, client: aioredis.Redis | None = None) -> None:
        self.redis = client or get_async_redis()

    async def subscribe_notifications(self, user_id: UUID) -> Subscription[NotificationPublic]:
        return await self._subscribe(notification_channel(user_id), NotificationPublic)

    async def subscribe_comments(self, post_id: UUID) -> Subscription[CommentPublic]:
        return await self._subscribe(comment_channel(post_id), CommentPublic)

    async def _subscribe(self, channel: str, event_type: type[EventT]) -> Subscription[EventT]:
        subscription = Subscription(
            channel=channel,
            event_type=event_type,
            client=self.redis,
            max_attempts=settings.realtime_resubscribe_attempts,
            backoff_seconds=settings.realtime_resubscribe_backoff_seconds,
        )
        return await subscription.start()
