import asyncio
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from community.api.deps import authenticate_token
from community.api.v1 import realtime as realtime_api
from community.core.errors import EngagementWriteFailed
from community.db.session import get_db
from community.infra import realtime as realtime_infra
from community.main import create_app
from community.schemas.comment import CommentPublic
from community.schemas.notification import NotificationPublic
from community.services.engagement_service import EngagementService
from factories import make_comment, make_post, make_profile, make_token


@pytest.fixture
def redis_client(monkeypatch):
    client = MagicMock()
    client.publish.return_value = 1
    monkeypatch.setattr(realtime_infra, "get_redis", lambda: client)
    return client


@pytest.fixture
def client(db, redis_client):
    app = create_app()

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    with TestClient(app) as test_client:
        yield test_client


def _auth(profile):
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_me_returns_token_profile(client, db):
    alice = make_profile(db, nickname="Alice")

    body = client.get("/api/v1/me", headers=_auth(alice)).json()
    rejected = client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert body["id"] == str(alice.id)
    assert body["nickname"] == "Alice"
    assert rejected.status_code == 401


def test_toggle_requires_login(client, db):
    post = make_post(db, author=make_profile(db, nickname="Bob"))

    response = client.post(f"/api/v1/posts/{post.id}/ups/toggle")

    assert response.status_code == 401


def test_toggle_and_read_engagement_state(client, db, redis_client):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)

    toggled = client.post(f"/api/v1/posts/{post.id}/ups/toggle", headers=_auth(alice))
    state = client.get(f"/api/v1/posts/{post.id}/engagement", headers=_auth(alice))
    anonymous = client.get(f"/api/v1/posts/{post.id}/engagement")

    assert toggled.status_code == 200
    assert toggled.json()["active"] is True
    assert toggled.json()["new_count"] == 1
    assert state.json()["active"] is True
    assert anonymous.json() == {**state.json(), "active": False}
    channel = redis_client.publish.call_args.args[0]
    assert channel == f"notifications:{bob.id}"


def test_unknown_post_maps_to_not_found_code(client, db):
    alice = make_profile(db, nickname="Alice")

    response = client.post(f"/api/v1/posts/{uuid4()}/ups/toggle", headers=_auth(alice))

    assert response.status_code == 404
    assert response.json() == {"detail": "post not found", "code": "not_found"}


def test_engagement_write_failure_maps_to_503(client, db, monkeypatch):
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=alice)

    def fail(self, **kwargs):
        raise EngagementWriteFailed()

    monkeypatch.setattr(EngagementService, "toggle", fail)
    response = client.post(f"/api/v1/posts/{post.id}/ups/toggle", headers=_auth(alice))

    assert response.status_code == 503
    assert response.json()["code"] == "engagement_write_failed"


def test_comment_flow_notifies_post_author(client, db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob, title="Moss walls")

    created = client.post(
        f"/api/v1/posts/{post.id}/comments",
        json={"content": "  lovely  "},
        headers=_auth(alice),
    )
    listed = client.get("/api/v1/notifications", headers=_auth(bob))

    assert created.status_code == 201
    assert created.json()["content"] == "lovely"
    body = listed.json()
    assert body["unread_count"] == 1
    assert body["items"][0]["type"] == "comment"
    assert body["items"][0]["content"] == 'Alice commented on your post "Moss walls"'
    assert body["items"][0]["post_title"] == "Moss walls"


def test_blank_comment_is_rejected(client, db):
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=alice)

    response = client.post(f"/api/v1/posts/{post.id}/comments", json={"content": "   "}, headers=_auth(alice))

    assert response.status_code == 422


def test_comment_like_and_list_marks_liked(client, db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    comment = make_comment(db, post=post, author=bob)

    client.post(f"/api/v1/comments/{comment.id}/likes/toggle", headers=_auth(alice))
    mine = client.get(f"/api/v1/posts/{post.id}/comments", headers=_auth(alice)).json()["items"]
    theirs = client.get(f"/api/v1/posts/{post.id}/comments", headers=_auth(bob)).json()["items"]

    assert mine[0]["liked"] is True
    assert mine[0]["like_count"] == 1
    assert theirs[0]["liked"] is False


def test_notification_read_state_endpoints(client, db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    first = make_post(db, author=bob, title="First")
    second = make_post(db, author=bob, title="Second")
    client.post(f"/api/v1/posts/{first.id}/ups/toggle", headers=_auth(alice))
    client.post(f"/api/v1/posts/{second.id}/ups/toggle", headers=_auth(alice))
    items = client.get("/api/v1/notifications", headers=_auth(bob)).json()["items"]

    read = client.post(f"/api/v1/notifications/{items[0]['id']}/read", headers=_auth(bob)).json()
    foreign = client.post(f"/api/v1/notifications/{items[1]['id']}/read", headers=_auth(alice)).json()
    deleted = client.delete("/api/v1/notifications/read", headers=_auth(bob)).json()
    selected = client.post(
        "/api/v1/notifications/delete",
        json={"ids": [items[1]["id"]]},
        headers=_auth(bob),
    ).json()
    unread = client.get("/api/v1/notifications/unread-count", headers=_auth(bob)).json()

    assert read == {"changed": True, "unread_count": 1}
    assert foreign == {"changed": False, "unread_count": 0}
    assert deleted == {"deleted": 1}
    assert selected["deleted_unread"] == 1
    assert unread == {"unread_count": 0}


def test_notification_limit_is_validated(client, db):
    bob = make_profile(db, nickname="Bob")

    response = client.get("/api/v1/notifications?limit=0", headers=_auth(bob))

    assert response.status_code == 422


class FakeSubscription:
    def __init__(self, events):
        self.channel = "notifications:test"
        self.events = list(events)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed:
            raise StopAsyncIteration
        if self.events:
            return self.events.pop(0)
        await asyncio.Event().wait()

    def close(self):
        self.closed = True


def test_notifications_socket_rejects_invalid_token(client, db, monkeypatch):
    monkeypatch.setattr(realtime_api, "_authenticate", lambda token: authenticate_token(token, db))

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/api/v1/ws/notifications?token=garbage"):
            pass

    assert exc.value.code == 1008


def test_notifications_socket_forwards_own_inserts(client, db, monkeypatch):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    client.post(f"/api/v1/posts/{post.id}/ups/toggle", headers=_auth(alice))
    notification = client.get("/api/v1/notifications", headers=_auth(bob)).json()["items"][0]
    subscribed = []

    class FakeHub:
        async def subscribe_notifications(self, user_id):
            subscribed.append(user_id)
            return FakeSubscription([NotificationPublic.model_validate(notification)])

    monkeypatch.setattr(realtime_api, "_authenticate", lambda token: authenticate_token(token, db))
    monkeypatch.setattr(realtime_api, "RealtimeHub", FakeHub)

    with client.websocket_connect(f"/api/v1/ws/notifications?token={make_token(bob.id)}") as websocket:
        message = websocket.receive_json()

    assert subscribed == [bob.id]
    assert message["type"] == "notification.insert"
    assert message["data"]["id"] == notification["id"]


def test_comments_socket_forwards_post_inserts(client, db, monkeypatch):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    created = client.post(
        f"/api/v1/posts/{post.id}/comments",
        json={"content": "first!"},
        headers=_auth(alice),
    ).json()
    subscribed = []

    class FakeHub:
        async def subscribe_comments(self, post_id):
            subscribed.append(post_id)
            return FakeSubscription([CommentPublic.model_validate(created)])

    monkeypatch.setattr(realtime_api, "RealtimeHub", FakeHub)

    with client.websocket_connect(f"/api/v1/ws/posts/{post.id}/comments") as websocket:
        message = websocket.receive_json()

    assert subscribed == [post.id]
    assert message["type"] == "comment.insert"
    assert message["data"]["id"] == created["id"]
    assert message["data"]["content"] == "first!"
