from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import redis
from sqlalchemy import select

from community.core.errors import Forbidden, NotFound, Unauthorized
from community.models.comment import Comment
from community.models.notification import Notification
from community.schemas.comment import CreateCommentRequest, UpdateCommentRequest
from community.services.comment_service import CommentService
from factories import make_comment, make_post, make_profile


def _service(db):
    publisher = MagicMock()
    return CommentService(db, publisher=publisher), publisher


def test_create_comment_publishes_and_notifies_post_author(db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    service, publisher = _service(db)

    created = service.create_comment(user=alice, post_id=post.id, payload=CreateCommentRequest(content="hi"))

    assert created.author.nickname == "Alice"
    publisher.publish_comment.assert_called_once_with(created)
    notification = db.scalar(select(Notification))
    assert notification.user_id == bob.id
    assert notification.comment_id == created.id


def test_comment_on_own_post_does_not_notify(db):
    bob = make_profile(db, nickname="Bob")
    post = make_post(db, author=bob)
    service, _ = _service(db)

    service.create_comment(user=bob, post_id=post.id, payload=CreateCommentRequest(content="bump"))

    assert db.scalar(select(Notification)) is None


def test_create_comment_survives_publish_failure(db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    service, publisher = _service(db)
    publisher.publish_comment.side_effect = redis.ConnectionError("down")
    publisher.publish_notification.side_effect = redis.ConnectionError("down")

    created = service.create_comment(user=alice, post_id=post.id, payload=CreateCommentRequest(content="hi"))

    assert db.get(Comment, created.id) is not None
    assert db.scalar(select(Notification)) is not None


def test_create_comment_validates_user_post_and_parent(db):
    bob = make_profile(db, nickname="Bob")
    post = make_post(db, author=bob)
    other_post = make_post(db, author=bob, title="Other")
    foreign_parent = make_comment(db, post=other_post, author=bob)
    service, _ = _service(db)

    with pytest.raises(Unauthorized):
        service.create_comment(user=None, post_id=post.id, payload=CreateCommentRequest(content="x"))
    with pytest.raises(NotFound):
        service.create_comment(user=bob, post_id=uuid4(), payload=CreateCommentRequest(content="x"))
    with pytest.raises(NotFound):
        service.create_comment(
            user=bob,
            post_id=post.id,
            payload=CreateCommentRequest(content="x", parent_id=foreign_parent.id),
        )


def test_only_author_can_edit_or_delete(db):
    bob = make_profile(db, nickname="Bob")
    alice = make_profile(db, nickname="Alice")
    post = make_post(db, author=bob)
    comment = make_comment(db, post=post, author=bob)
    service, _ = _service(db)

    with pytest.raises(Forbidden):
        service.update_comment(user=alice, comment_id=comment.id, payload=UpdateCommentRequest(content="mine now"))
    with pytest.raises(Forbidden):
        service.delete_comment(user=alice, comment_id=comment.id)

    updated = service.update_comment(user=bob, comment_id=comment.id, payload=UpdateCommentRequest(content="edited"))
    service.delete_comment(user=bob, comment_id=comment.id)
    service.delete_comment(user=bob, comment_id=comment.id)

    assert updated.content == "edited"
    assert db.get(Comment, comment.id) is None
