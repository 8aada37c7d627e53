from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from community.api.deps import get_current_user, get_optional_user
from community.db.session import get_db
from community.models.profile import Profile
from community.schemas.comment import (
    CommentListResponse,
    CommentPublic,
    CreateCommentRequest,
    UpdateCommentRequest,
)
from community.services.comment_service import CommentService

router = APIRouter(tags=["comments"])


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
def list_comments(
    post_id: UUID,
    current_user: Profile | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return CommentService(db).list_comments(user=current_user, post_id=post_id)


@router.post("/posts/{post_id}/comments", response_model=CommentPublic, status_code=status.HTTP_201_CREATED)
def create_comment(
    post_id: UUID,
    payload: CreateCommentRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CommentService(db).create_comment(user=current_user, post_id=post_id, payload=payload)


@router.patch("/comments/{comment_id}", response_model=CommentPublic)
def update_comment(
    comment_id: UUID,
    payload: UpdateCommentRequest,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CommentService(db).update_comment(user=current_user, comment_id=comment_id, payload=payload)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: UUID,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    CommentService(db).delete_comment(user=current_user, comment_id=comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
