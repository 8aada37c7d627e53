import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, joinedload

from community.models.notification import Notification


class NotificationRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        *,
        user_id: uuid.UUID,
        actor_id: uuid.UUID,
        type: str,
        content: str,
        post_id: uuid.UUID | None,
        comment_id: uuid.UUID | None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            actor_id=actor_id,
            type=type,
            content=content,
            post_id=post_id,
            comment_id=comment_id,
            is_read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_for_user(self, *, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification | None:
        stmt = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        return self.db.scalar(stmt)

    def list_for_user(self, *, user_id: uuid.UUID, limit: int) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .options(joinedload(Notification.post))
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def count_unread(self, user_id: uuid.UUID) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        return int(self.db.scalar(stmt) or 0)

    def mark_read(self, *, notification_id: uuid.UUID, user_id: uuid.UUID) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount or 0

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount or 0

    def delete_read(self, user_id: uuid.UUID) -> int:
        stmt = delete(Notification).where(Notification.user_id == user_id, Notification.is_read.is_(True))
        return self.db.execute(stmt).rowcount or 0

    def list_ids_for_user(
        self,
        *,
        user_id: uuid.UUID,
        notification_ids: list[uuid.UUID],
    ) -> list[tuple[uuid.UUID, bool]]:
        stmt = select(Notification.id, Notification.is_read).where(
            Notification.user_id == user_id,
            Notification.id.in_(notification_ids),
        )
        return [(row.id, row.is_read) for row in self.db.execute(stmt)]

    def delete_by_ids(self, *, user_id: uuid.UUID, notification_ids: list[uuid.UUID]) -> int:
        if not notification_ids:
            return 0
        stmt = delete(Notification).where(
            Notification.user_id == user_id,
            Notification.id.in_(notification_ids),
        )
        return self.db.execute(stmt).rowcount or 0
