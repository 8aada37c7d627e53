import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from community.core.errors import EngagementWriteFailed, NotFound, Unauthorized
from community.models.engagement_edge import TARGET_KIND_COMMENT, TARGET_KIND_POST, TARGET_KINDS
from community.models.notification import NOTIFICATION_TYPE_LIKE, NOTIFICATION_TYPE_UP
from community.repositories.engagement_repo import EngagementRepository, EngagementTarget
from community.schemas.engagement import (
    EngagementStateResponse,
    ReconcileCounterResponse,
    ToggleEngagementResponse,
)
from community.services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)


class EngagementService:
    def __init__(self, db: Session, emitter: NotificationEmitter | None = None) -> None:
        self.db = db
        self.engagement_repo = EngagementRepository(db)
        self.emitter = emitter or NotificationEmitter(db)

    def toggle_post_up(self, *, user_id: UUID | None, post_id: UUID) -> ToggleEngagementResponse:
        return self.toggle(user_id=user_id, target_kind=TARGET_KIND_POST, target_id=post_id)

    def toggle_comment_like(self, *, user_id: UUID | None, comment_id: UUID) -> ToggleEngagementResponse:
        return self.toggle(user_id=user_id, target_kind=TARGET_KIND_COMMENT, target_id=comment_id)

    def toggle(self, *, user_id: UUID | None, target_kind: str, target_id: UUID) -> ToggleEngagementResponse:
        if user_id is None:
            raise Unauthorized()
        target = self._target(target_kind, target_id)
        owner_id, post_id = self._load_owner(target)

        try:
            # deleting first makes the membership check and the flip one statement
            if self.engagement_repo.remove_edge(user_id=user_id, target=target):
                self.engagement_repo.bump_counter(target=target, delta=-1)
                active = False
            else:
                self.engagement_repo.add_edge(user_id=user_id, target=target)
                self.engagement_repo.bump_counter(target=target, delta=1)
                active = True
            new_count = self.engagement_repo.read_counter(target)
            self.db.commit()
        except IntegrityError:
            # a concurrent toggle by the same user inserted the edge first
            self.db.rollback()
            logger.info(
                "duplicate engagement edge, keeping committed state",
                extra={"user_id": str(user_id), "target_kind": target.kind, "target_id": str(target.id)},
            )
            return self._response(target, active=True, new_count=self._safe_read_counter(target))
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "engagement toggle failed",
                extra={"user_id": str(user_id), "target_kind": target.kind, "target_id": str(target.id)},
            )
            raise EngagementWriteFailed() from exc

        if active:
            self.emitter.emit_if_applicable(
                actor_user_id=user_id,
                recipient_user_id=owner_id,
                kind=NOTIFICATION_TYPE_UP if target.kind == TARGET_KIND_POST else NOTIFICATION_TYPE_LIKE,
                related_post_id=post_id,
                related_comment_id=target.id if target.kind == TARGET_KIND_COMMENT else None,
            )
        return self._response(target, active=active, new_count=new_count)

    def engagement_state(
        self,
        *,
        user_id: UUID | None,
        target_kind: str,
        target_id: UUID,
    ) -> EngagementStateResponse:
        target = self._target(target_kind, target_id)
        self._load_owner(target)
        active = False
        if user_id is not None:
            active = self.engagement_repo.has_edge(user_id=user_id, target=target)
        return EngagementStateResponse(
            target_kind=target.kind,
            target_id=target.id,
            active=active,
            count=self.engagement_repo.read_counter(target),
        )

    def liked_comment_ids(self, *, user_id: UUID | None, comment_ids: list[UUID]) -> set[UUID]:
        if user_id is None:
            return set()
        return self.engagement_repo.liked_comment_ids(user_id=user_id, comment_ids=comment_ids)

    def reconcile_counter(self, *, target_kind: str, target_id: UUID) -> ReconcileCounterResponse:
        target = self._target(target_kind, target_id)
        self._load_owner(target)
        try:
            previous = self.engagement_repo.read_counter(target)
            current = self.engagement_repo.count_edges(target)
            if previous != current:
                self.engagement_repo.set_counter(target=target, value=current)
                logger.warning(
                    "engagement counter drift repaired",
                    extra={
                        "target_kind": target.kind,
                        "target_id": str(target.id),
                        "previous": previous,
                        "current": current,
                    },
                )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EngagementWriteFailed() from exc
        return ReconcileCounterResponse(
            target_kind=target.kind,
            target_id=target.id,
            previous=previous,
            current=current,
        )

    def _target(self, target_kind: str, target_id: UUID) -> EngagementTarget:
        if target_kind not in TARGET_KINDS:
            raise ValueError(f"unknown engagement target kind: {target_kind}")
        return EngagementTarget(kind=target_kind, id=target_id)

    def _load_owner(self, target: EngagementTarget) -> tuple[UUID, UUID]:
        """Return ``(owner_id, post_id)`` for the target or raise NotFound."""
        if target.kind == TARGET_KIND_POST:
            post = self.engagement_repo.get_post(target.id)
            if not post:
                raise NotFound("post not found")
            return post.author_id, post.id
        comment = self.engagement_repo.get_comment(target.id)
        if not comment:
            raise NotFound("comment not found")
        return comment.author_id, comment.post_id

    def _safe_read_counter(self, target: EngagementTarget) -> int:
        try:
            return self.engagement_repo.read_counter(target)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EngagementWriteFailed() from exc

    def _response(self, target: EngagementTarget, *, active: bool, new_count: int) -> ToggleEngagementResponse:
        return ToggleEngagementResponse(
            target_kind=target.kind,
            target_id=target.id,
            active=active,
            new_count=new_count,
        )
