"""Websocket consumer for ``/api/v1/ws/notifications``."""

import asyncio
import logging
from typing import Any

import httpx
from httpx_ws import HTTPXWSException, aconnect_ws
from pydantic import ValidationError

from community.core.errors import SubscriptionError
from community.schemas.notification import NotificationPublic

logger = logging.getLogger(__name__)

NOTIFICATION_INSERT = "notification.insert"
ERROR_FRAME = "error"
_CLOSED = object()


class NotificationSocket:
    """Async iterator over the ``notification.insert`` frames of one websocket.

    ``error`` frames and dropped connections end the stream with
    :class:`SubscriptionError`. ``close()`` is idempotent and returns
    immediately; the socket is shut down by the reader task.
    """

    def __init__(self, http: httpx.AsyncClient, url: str) -> None:
        self.http = http
        self.url = url
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._failure: SubscriptionError | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> "NotificationSocket":
        self._task = asyncio.create_task(self._run(), name="notification-socket")
        await self._ready.wait()
        if self._failure is not None:
            self.close()
            raise self._failure
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._ready.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __aiter__(self) -> "NotificationSocket":
        return self

    async def __anext__(self) -> NotificationPublic:
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
        try:
            async with aconnect_ws(self.url, self.http) as ws:
                self._ready.set()
                while True:
                    frame = await ws.receive_json()
                    if not isinstance(frame, dict):
                        continue
                    if frame.get("type") == ERROR_FRAME:
                        self._fail(SubscriptionError(frame.get("detail")))
                        return
                    if frame.get("type") != NOTIFICATION_INSERT:
                        continue
                    try:
                        event = NotificationPublic.model_validate(frame.get("data"))
                    except ValidationError:
                        logger.warning("dropping malformed notification frame")
                        continue
                    self._queue.put_nowait(event)
        except (HTTPXWSException, httpx.HTTPError, ValueError) as exc:
            logger.warning("notification socket lost", extra={"error": str(exc)})
            self._fail(SubscriptionError())

    def _fail(self, error: SubscriptionError) -> None:
        if self._failure is None:
            self._failure = error
        if not self._closed:
            self._queue.put_nowait(error)
        self._ready.set()
