import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol
from uuid import UUID

from community.client.api_client import CommunityClient
from community.client.session import SIGNED_OUT, ClientSession, SessionInfo
from community.core.errors import CommunityError, SubscriptionError
from community.schemas.notification import NotificationPublic

logger = logging.getLogger(__name__)

MAX_TOMBSTONES = 500


class NotificationStream(Protocol):
    def __aiter__(self) -> AsyncIterator[NotificationPublic]: ...

    def close(self) -> None: ...


SubscribeFn = Callable[[UUID], Awaitable[NotificationStream]]


class NotificationInbox:
    """Notification list, unread counter and realtime merge for one signed-in user.

    ``initialize()`` opens the push subscription before the first fetch so no
    insert is missed; pushes and fetches are merged by notification id.
    Deleted ids are tombstoned and never come back, whatever the source.
    ``teardown()`` closes the subscription; requests that complete after it
    leave the state untouched.

    Without an explicit ``subscribe`` the inbox listens on the client's
    notification websocket.
    """

    def __init__(
        self,
        *,
        client: CommunityClient,
        session: ClientSession,
        subscribe: SubscribeFn | None = None,
        limit: int | None = None,
    ) -> None:
        self.client = client
        self.session = session
        self.limit = limit
        self.items: list[NotificationPublic] = []
        self.unread_count = 0
        self.error: str | None = None
        self.loading = False
        self.live = False
        self._subscribe = subscribe or self._open_socket
        self._tombstones: dict[UUID, None] = {}
        self._pushed_at: dict[UUID, int] = {}
        self._push_seq = 0
        self._subscription: NotificationStream | None = None
        self._pump_task: asyncio.Task | None = None
        self._remove_listener: Callable[[], None] | None = None
        self._user_id: UUID | None = None
        self._generation = 0
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    async def initialize(self) -> None:
        if self._active:
            return
        user_id = self.session.require_user_id()
        if user_id != self._user_id:
            self._reset()
        self._user_id = user_id
        self._active = True
        self._remove_listener = self.session.add_listener(self._on_session_change)

        try:
            self._subscription = await self._subscribe(self._user_id)
        except SubscriptionError:
            logger.warning("notification channel unavailable", extra={"user_id": str(self._user_id)})
        else:
            self.live = True
            self._pump_task = asyncio.create_task(self._pump(self._subscription, self._generation))

        await self.refresh()

    def teardown(self) -> None:
        if not self._active:
            return
        self._active = False
        self._generation += 1
        self.live = False
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._pump_task is not None:
            if not self._pump_task.done():
                self._pump_task.cancel()
            self._pump_task = None
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None

    async def refresh(self) -> bool:
        generation = self._generation
        started_at = self._push_seq
        self.loading = True
        try:
            result = await self.client.list_notifications(limit=self.limit)
        except CommunityError as exc:
            logger.warning("notification fetch failed", extra={"code": exc.code})
            if generation == self._generation:
                self.loading = False
                self.error = exc.message
                self.items = []
            return False
        if generation != self._generation:
            return False

        fetched = [item for item in result.items if self._belongs_here(item)]
        fetched_ids = {item.id for item in fetched}
        # only pushes merged while this fetch was in flight can be missing from it
        pushed_later = [
            item
            for item in self.items
            if item.id not in fetched_ids
            and self._pushed_at.get(item.id, 0) > started_at
            and self._belongs_here(item)
        ]
        self.items = sorted(pushed_later + fetched, key=lambda item: item.created_at, reverse=True)
        self.unread_count = result.unread_count + sum(1 for item in pushed_later if not item.is_read)
        kept_ids = {item.id for item in self.items}
        self._pushed_at = {key: seq for key, seq in self._pushed_at.items() if key in kept_ids}
        self.error = None
        self.loading = False
        return True

    async def reconcile(self) -> bool:
        """Refetch from the server to repair any drift in the local list or counter."""
        return await self.refresh()

    def merge_insert(self, notification: NotificationPublic) -> bool:
        if not self._active or not self._belongs_here(notification):
            return False
        if any(item.id == notification.id for item in self.items):
            return False
        self.items.insert(0, notification)
        self._push_seq += 1
        self._pushed_at[notification.id] = self._push_seq
        if not notification.is_read:
            self.unread_count += 1
        return True

    async def mark_read(self, notification_id: UUID) -> bool:
        generation = self._generation
        try:
            result = await self.client.mark_read(notification_id)
        except CommunityError as exc:
            return self._fail(generation, "mark read failed", exc)
        if generation != self._generation:
            return False

        item = self._find(notification_id)
        if item is None:
            self.unread_count = result.unread_count
        elif not item.is_read:
            item.is_read = True
            self.unread_count = max(0, self.unread_count - 1)
        return True

    async def mark_all_read(self) -> bool:
        generation = self._generation
        try:
            await self.client.mark_all_read()
        except CommunityError as exc:
            return self._fail(generation, "mark all read failed", exc)
        if generation != self._generation:
            return False

        for item in self.items:
            item.is_read = True
        self.unread_count = 0
        return True

    async def delete_read(self) -> bool:
        generation = self._generation
        try:
            await self.client.delete_read()
        except CommunityError as exc:
            return self._fail(generation, "delete read failed", exc)
        if generation != self._generation:
            return False

        self._bury(item.id for item in self.items if item.is_read)
        self.items = [item for item in self.items if not item.is_read]
        return True

    async def delete_selected(self, notification_ids: set[UUID]) -> bool:
        if not notification_ids:
            return True
        generation = self._generation
        try:
            await self.client.delete_selected(sorted(notification_ids, key=str))
        except CommunityError as exc:
            return self._fail(generation, "delete selected failed", exc)
        if generation != self._generation:
            return False

        removed_unread = sum(1 for item in self.items if item.id in notification_ids and not item.is_read)
        self._bury(notification_ids)
        self.items = [item for item in self.items if item.id not in notification_ids]
        self.unread_count = max(0, self.unread_count - removed_unread)
        return True

    def _belongs_here(self, item: NotificationPublic) -> bool:
        return item.user_id == self._user_id and item.id not in self._tombstones

    def _bury(self, notification_ids) -> None:
        for notification_id in notification_ids:
            self._tombstones.pop(notification_id, None)
            self._tombstones[notification_id] = None
        # evict oldest first
        while len(self._tombstones) > MAX_TOMBSTONES:
            del self._tombstones[next(iter(self._tombstones))]

    def _reset(self) -> None:
        self.items = []
        self.unread_count = 0
        self.error = None
        self._tombstones.clear()
        self._pushed_at.clear()

    def _find(self, notification_id: UUID) -> NotificationPublic | None:
        for item in self.items:
            if item.id == notification_id:
                return item
        return None

    def _fail(self, generation: int, message: str, exc: CommunityError) -> bool:
        logger.warning(message, extra={"code": exc.code})
        if generation == self._generation:
            self.error = exc.message
        return False

    async def _open_socket(self, user_id: UUID) -> NotificationStream:
        # the socket is scoped by the session token, which carries the same user
        return await self.client.subscribe_notifications()

    async def _pump(self, subscription: NotificationStream, generation: int) -> None:
        try:
            async for notification in subscription:
                if generation != self._generation:
                    return
                self.merge_insert(notification)
        except SubscriptionError:
            logger.warning("notification channel lost, falling back to manual refresh")
            if generation == self._generation:
                self.live = False

    def _on_session_change(self, event: str, info: SessionInfo | None) -> None:
        if event == SIGNED_OUT or (info is not None and info.user_id != self._user_id):
            self.teardown()
