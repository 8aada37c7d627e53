from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    actor_id: UUID | None
    type: Literal["comment", "up", "like"]
    content: str
    post_id: UUID | None
    comment_id: UUID | None
    post_title: str | None = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationPublic]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkReadResponse(BaseModel):
    changed: bool
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
    unread_count: int


class DeleteReadResponse(BaseModel):
    deleted: int


class DeleteSelectedRequest(BaseModel):
    ids: list[UUID] = Field(min_length=1, max_length=200)


class DeleteSelectedResponse(BaseModel):
    deleted_ids: list[UUID]
    deleted_unread: int
    unread_count: int
