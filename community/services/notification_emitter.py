import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.errors import NotificationEmitFailed
from community.infra.realtime import RealtimePublisher
from community.models.notification import (
    NOTIFICATION_TYPE_COMMENT,
    NOTIFICATION_TYPE_LIKE,
    NOTIFICATION_TYPE_UP,
    NOTIFICATION_TYPES,
)
from community.models.post import Post
from community.repositories.notification_repo import NotificationRepository
from community.repositories.profile_repo import ProfileRepository
from community.schemas.notification import NotificationPublic

logger = logging.getLogger(__name__)

DEFAULT_ACTOR_NAME = "Someone"
DEFAULT_POST_TITLE = "a post"
MESSAGE_TEMPLATES = {
    NOTIFICATION_TYPE_COMMENT: '{actor} commented on your post "{post_title}"',
    NOTIFICATION_TYPE_UP: '{actor} upped your post "{post_title}"',
    NOTIFICATION_TYPE_LIKE: '{actor} liked your comment on "{post_title}"',
}


class NotificationEmitter:
    """Writes a notification after an action on someone else's content committed.

    Emission never fails the caller: errors are logged as
    :class:`NotificationEmitFailed` and ``None`` is returned.
    """

    def __init__(self, db: Session, publisher: RealtimePublisher | None = None) -> None:
        self.db = db
        self.notification_repo = NotificationRepository(db)
        self.profile_repo = ProfileRepository(db)
        self._publisher = publisher

    @property
    def publisher(self) -> RealtimePublisher:
        if self._publisher is None:
            self._publisher = RealtimePublisher()
        return self._publisher

    def emit_if_applicable(
        self,
        *,
        actor_user_id: UUID,
        recipient_user_id: UUID,
        kind: str,
        related_post_id: UUID,
        related_comment_id: UUID | None = None,
    ) -> UUID | None:
        if actor_user_id == recipient_user_id:
            return None
        if kind not in NOTIFICATION_TYPES:
            raise ValueError(f"unknown notification kind: {kind}")

        try:
            notification = self.notification_repo.create(
                user_id=recipient_user_id,
                actor_id=actor_user_id,
                type=kind,
                content=self.build_message(kind=kind, actor_user_id=actor_user_id, post_id=related_post_id),
                post_id=related_post_id,
                comment_id=related_comment_id,
            )
            notification_id = notification.id
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._log_failure(exc, kind=kind, recipient_user_id=recipient_user_id, post_id=related_post_id)
            return None

        try:
            self.publisher.publish_notification(NotificationPublic.model_validate(notification))
        except Exception as exc:  # noqa: BLE001
            # the row is stored; recipients pick it up on their next fetch
            self._log_failure(exc, kind=kind, recipient_user_id=recipient_user_id, post_id=related_post_id)
        return notification_id

    def build_message(self, *, kind: str, actor_user_id: UUID, post_id: UUID) -> str:
        actor = self.profile_repo.display_name(actor_user_id) or DEFAULT_ACTOR_NAME
        post = self.db.get(Post, post_id)
        post_title = post.title if post else DEFAULT_POST_TITLE
        return MESSAGE_TEMPLATES[kind].format(actor=actor, post_title=post_title)

    def _log_failure(self, exc: Exception, *, kind: str, recipient_user_id: UUID, post_id: UUID) -> None:
        error = NotificationEmitFailed(str(exc))
        logger.warning(
            "notification emit failed",
            extra={
                "code": error.code,
                "kind": kind,
                "recipient_user_id": str(recipient_user_id),
                "post_id": str(post_id),
                "error": error.message,
            },
        )
