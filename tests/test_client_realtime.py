import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import httpx
import pytest
from httpx_ws.transport import ASGIWebSocketTransport

from community.api.deps import authenticate_token
from community.api.v1 import realtime as realtime_api
from community.client.api_client import CommunityClient
from community.client.inbox import NotificationInbox
from community.client.session import ClientSession, SessionInfo
from community.core.errors import SubscriptionError
from community.db.session import get_db
from community.main import create_app
from community.schemas.notification import NotificationPublic
from factories import make_profile, make_token


class ScriptedSubscription:
    def __init__(self, events, *, then_fail=False):
        self.channel = "notifications:test"
        self.events = list(events)
        self.then_fail = then_fail
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed:
            raise StopAsyncIteration
        if self.events:
            return self.events.pop(0)
        if self.then_fail:
            raise SubscriptionError()
        await asyncio.Event().wait()

    def close(self):
        self.closed = True


class ScriptedHub:
    def __init__(self, subscription):
        self.subscription = subscription
        self.subscribed = []

    async def subscribe_notifications(self, user_id):
        self.subscribed.append(user_id)
        return self.subscription


@pytest.fixture
def app(db, monkeypatch):
    application = create_app()

    def override_db():
        yield db

    application.dependency_overrides[get_db] = override_db
    monkeypatch.setattr(realtime_api, "_authenticate", lambda token: authenticate_token(token, db))
    return application


def _install_hub(monkeypatch, subscription):
    hub = ScriptedHub(subscription)
    monkeypatch.setattr(realtime_api, "RealtimeHub", lambda: hub)
    return hub


def _notification(user_id):
    return NotificationPublic(
        id=uuid4(),
        user_id=user_id,
        actor_id=uuid4(),
        type="up",
        content='Alice upped your post "Moss walls"',
        post_id=uuid4(),
        comment_id=None,
        post_title="Moss walls",
        is_read=False,
        created_at=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
    )


def _session(info):
    session = ClientSession()
    session.initialize(info)
    return session


def _http(app):
    return httpx.AsyncClient(transport=ASGIWebSocketTransport(app=app), base_url="http://testserver")


async def _wait_for(predicate):
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0.01)


def test_inbox_goes_live_over_the_notification_socket(app, db, monkeypatch):
    bob = make_profile(db, nickname="Bob")
    pushed = _notification(bob.id)
    hub = _install_hub(monkeypatch, ScriptedSubscription([pushed]))

    async def scenario():
        async with _http(app) as http:
            session = _session(SessionInfo.from_access_token(make_token(bob.id)))
            inbox = NotificationInbox(client=CommunityClient(session, http=http), session=session)
            await inbox.initialize()
            await _wait_for(lambda: inbox.items)
            state = ([item.id for item in inbox.items], inbox.unread_count, inbox.live)
            socket = inbox._subscription
            inbox.teardown()
            await asyncio.gather(socket._task, return_exceptions=True)
            return state, socket

    (ids, unread, live), socket = asyncio.run(scenario())

    assert ids == [pushed.id]
    assert unread == 1
    assert live is True
    assert socket.closed is True
    assert hub.subscribed == [bob.id]


def test_error_frame_ends_socket_with_subscription_error(app, db, monkeypatch):
    bob = make_profile(db, nickname="Bob")
    pushed = _notification(bob.id)
    _install_hub(monkeypatch, ScriptedSubscription([pushed], then_fail=True))

    async def scenario():
        async with _http(app) as http:
            session = _session(SessionInfo.from_access_token(make_token(bob.id)))
            socket = await CommunityClient(session, http=http).subscribe_notifications()
            first = await asyncio.wait_for(socket.__anext__(), timeout=2)
            with pytest.raises(SubscriptionError):
                await asyncio.wait_for(socket.__anext__(), timeout=2)
            socket.close()
            socket.close()
            await asyncio.gather(socket._task, return_exceptions=True)
            return first, socket

    first, socket = asyncio.run(scenario())

    assert first == pushed
    assert socket.closed is True


def test_rejected_token_fails_subscription(app, monkeypatch):
    _install_hub(monkeypatch, ScriptedSubscription([]))

    async def scenario():
        async with _http(app) as http:
            session = _session(SessionInfo(user_id=uuid4(), email=None, access_token="garbage"))
            with pytest.raises(SubscriptionError):
                await CommunityClient(session, http=http).subscribe_notifications()

    asyncio.run(scenario())
