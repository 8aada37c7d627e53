from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from community.api.deps import get_current_user, get_optional_user
from community.db.session import get_db
from community.models.engagement_edge import TARGET_KIND_COMMENT, TARGET_KIND_POST
from community.models.profile import Profile
from community.schemas.engagement import (
    EngagementStateResponse,
    ReconcileCounterResponse,
    ToggleEngagementResponse,
)
from community.services.engagement_service import EngagementService

router = APIRouter(tags=["engagement"])


@router.get("/posts/{post_id}/engagement", response_model=EngagementStateResponse)
def get_post_engagement(
    post_id: UUID,
    current_user: Profile | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).engagement_state(
        user_id=current_user.id if current_user else None,
        target_kind=TARGET_KIND_POST,
        target_id=post_id,
    )


@router.post("/posts/{post_id}/ups/toggle", response_model=ToggleEngagementResponse)
def toggle_post_up(
    post_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).toggle_post_up(user_id=current_user.id, post_id=post_id)


@router.post("/posts/{post_id}/ups/reconcile", response_model=ReconcileCounterResponse)
def reconcile_post_ups(
    post_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).reconcile_counter(target_kind=TARGET_KIND_POST, target_id=post_id)


@router.post("/comments/{comment_id}/likes/toggle", response_model=ToggleEngagementResponse)
def toggle_comment_like(
    comment_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).toggle_comment_like(user_id=current_user.id, comment_id=comment_id)


@router.post("/comments/{comment_id}/likes/reconcile", response_model=ReconcileCounterResponse)
def reconcile_comment_likes(
    comment_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).reconcile_counter(target_kind=TARGET_KIND_COMMENT, target_id=comment_id)
