import logging
from uuid import UUID

import redis
from sqlalchemy.orm import Session

from community.core.errors import Forbidden, NotFound, Unauthorized
from community.infra.realtime import RealtimePublisher
from community.models.notification import NOTIFICATION_TYPE_COMMENT
from community.models.post import Post
from community.models.profile import Profile
from community.repositories.comment_repo import CommentRepository
from community.repositories.engagement_repo import EngagementRepository
from community.schemas.comment import (
    CommentListResponse,
    CommentPublic,
    CreateCommentRequest,
    UpdateCommentRequest,
)
from community.services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(
        self,
        db: Session,
        publisher: RealtimePublisher | None = None,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self.db = db
        self.comment_repo = CommentRepository(db)
        self.engagement_repo = EngagementRepository(db)
        self._publisher = publisher
        self.emitter = emitter or NotificationEmitter(db, publisher=publisher)

    @property
    def publisher(self) -> RealtimePublisher:
        if self._publisher is None:
            self._publisher = RealtimePublisher()
        return self._publisher

    def list_comments(self, *, user: Profile | None, post_id: UUID) -> CommentListResponse:
        self._get_post(post_id)
        comments = self.comment_repo.list_top_level(post_id)
        liked_ids: set[UUID] = set()
        if user is not None:
            liked_ids = self.engagement_repo.liked_comment_ids(
                user_id=user.id,
                comment_ids=[comment.id for comment in comments],
            )
        items = []
        for comment in comments:
            item = CommentPublic.model_validate(comment)
            item.liked = comment.id in liked_ids
            items.append(item)
        return CommentListResponse(items=items)

    def create_comment(self, *, user: Profile | None, post_id: UUID, payload: CreateCommentRequest) -> CommentPublic:
        if user is None:
            raise Unauthorized()
        post = self._get_post(post_id)
        if payload.parent_id is not None:
            parent = self.comment_repo.get_by_id(payload.parent_id)
            if not parent or parent.post_id != post.id:
                raise NotFound("parent comment not found")

        comment = self.comment_repo.create(
            post_id=post.id,
            author_id=user.id,
            content=payload.content,
            parent_id=payload.parent_id,
        )
        self.db.commit()
        comment = self.comment_repo.get_by_id(comment.id)
        result = CommentPublic.model_validate(comment)

        try:
            self.publisher.publish_comment(result)
        except redis.RedisError:
            logger.warning("comment publish failed", extra={"post_id": str(post.id), "comment_id": str(result.id)})

        self.emitter.emit_if_applicable(
            actor_user_id=user.id,
            recipient_user_id=post.author_id,
            kind=NOTIFICATION_TYPE_COMMENT,
            related_post_id=post.id,
            related_comment_id=result.id,
        )
        return result

    def update_comment(self, *, user: Profile, comment_id: UUID, payload: UpdateCommentRequest) -> CommentPublic:
        comment = self._get_own_comment(user=user, comment_id=comment_id)
        comment.content = payload.content
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return CommentPublic.model_validate(comment)

    def delete_comment(self, *, user: Profile, comment_id: UUID) -> None:
        comment = self.comment_repo.get_by_id(comment_id)
        if not comment:
            return
        if comment.author_id != user.id:
            raise Forbidden("cannot delete another user's comment")
        self.comment_repo.delete(comment)
        self.db.commit()

    def _get_post(self, post_id: UUID) -> Post:
        post = self.engagement_repo.get_post(post_id)
        if not post:
            raise NotFound("post not found")
        return post

    def _get_own_comment(self, *, user: Profile, comment_id: UUID):
        comment = self.comment_repo.get_by_id(comment_id)
        if not comment:
            raise NotFound("comment not found")
        if comment.author_id != user.id:
            raise Forbidden("cannot edit another user's comment")
        return comment
