import logging
from uuid import UUID

from sqlalchemy.orm import Session

from community.core.config import MAX_NOTIFICATION_LIST_LIMIT, settings
from community.models.profile import Profile
from community.repositories.notification_repo import NotificationRepository
from community.schemas.notification import (
    DeleteReadResponse,
    DeleteSelectedResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
    NotificationPublic,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)


class NotificationService:
    """Read-state operations, always scoped to the recipient passed in.

    Ids that are missing, already handled, or owned by someone else are
    treated as resolved rather than as errors.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.notification_repo = NotificationRepository(db)

    def list_notifications(self, *, user: Profile, limit: int | None = None) -> NotificationListResponse:
        limit_value = self._normalize_limit(limit)
        rows = self.notification_repo.list_for_user(user_id=user.id, limit=limit_value)
        return NotificationListResponse(
            items=[NotificationPublic.model_validate(row) for row in rows],
            unread_count=self.notification_repo.count_unread(user.id),
        )

    def unread_count(self, *, user: Profile) -> UnreadCountResponse:
        return UnreadCountResponse(unread_count=self.notification_repo.count_unread(user.id))

    def mark_read(self, *, user: Profile, notification_id: UUID) -> MarkReadResponse:
        changed = self.notification_repo.mark_read(notification_id=notification_id, user_id=user.id)
        self.db.commit()
        return MarkReadResponse(changed=changed > 0, unread_count=self.notification_repo.count_unread(user.id))

    def mark_all_read(self, *, user: Profile) -> MarkAllReadResponse:
        updated = self.notification_repo.mark_all_read(user.id)
        self.db.commit()
        return MarkAllReadResponse(updated=updated, unread_count=0)

    def delete_read(self, *, user: Profile) -> DeleteReadResponse:
        deleted = self.notification_repo.delete_read(user.id)
        self.db.commit()
        logger.info("deleted read notifications", extra={"user_id": str(user.id), "deleted": deleted})
        return DeleteReadResponse(deleted=deleted)

    def delete_selected(self, *, user: Profile, notification_ids: list[UUID]) -> DeleteSelectedResponse:
        unique_ids = list(dict.fromkeys(notification_ids))
        owned = self.notification_repo.list_ids_for_user(user_id=user.id, notification_ids=unique_ids)
        owned_ids = [notification_id for notification_id, _ in owned]
        deleted_unread = sum(1 for _, is_read in owned if not is_read)

        self.notification_repo.delete_by_ids(user_id=user.id, notification_ids=owned_ids)
        self.db.commit()
        return DeleteSelectedResponse(
            deleted_ids=owned_ids,
            deleted_unread=deleted_unread,
            unread_count=self.notification_repo.count_unread(user.id),
        )

    def _normalize_limit(self, limit: int | None) -> int:
        if limit is None:
            return settings.notification_list_limit
        return max(1, min(limit, MAX_NOTIFICATION_LIST_LIMIT))
