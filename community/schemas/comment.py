from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from community.core.config import MAX_COMMENT_LENGTH


class CommentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    nickname: str
    avatar_url: str | None
    avatar_color: str | None


class CommentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    author_id: UUID
    parent_id: UUID | None
    content: str
    like_count: int
    created_at: datetime
    updated_at: datetime
    author: CommentAuthor | None = None
    liked: bool = False


class CommentListResponse(BaseModel):
    items: list[CommentPublic]


class CreateCommentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=MAX_COMMENT_LENGTH)
    parent_id: UUID | None = None


class UpdateCommentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=MAX_COMMENT_LENGTH)
