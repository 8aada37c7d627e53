from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from community.api.deps import get_current_user
from community.core.config import MAX_NOTIFICATION_LIST_LIMIT
from community.db.session import get_db
from community.models.profile import Profile
from community.schemas.notification import (
    DeleteReadResponse,
    DeleteSelectedRequest,
    DeleteSelectedResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
    UnreadCountResponse,
)
from community.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    limit: int | None = Query(default=None, ge=1, le=MAX_NOTIFICATION_LIST_LIMIT),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).list_notifications(user=current_user, limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).unread_count(user=current_user)


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).mark_all_read(user=current_user)


@router.delete("/read", response_model=DeleteReadResponse)
def delete_read(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).delete_read(user=current_user)


@router.post("/delete", response_model=DeleteSelectedResponse)
def delete_selected(
    payload: DeleteSelectedRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).delete_selected(user=current_user, notification_ids=payload.ids)


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
def mark_read(
    notification_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).mark_read(user=current_user, notification_id=notification_id)
