import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from community.models.base import Base

TARGET_KIND_POST = "post"
TARGET_KIND_COMMENT = "comment"
TARGET_KINDS = {TARGET_KIND_POST, TARGET_KIND_COMMENT}


class EngagementEdge(Base):
    """A user's up on a post or like on a comment."""

    __tablename__ = "engagement_edges"
    __table_args__ = (
        CheckConstraint(
            "(post_id IS NOT NULL AND comment_id IS NULL) "
            "OR (post_id IS NULL AND comment_id IS NOT NULL)",
            name="ck_engagement_edges_target_oneof",
        ),
        UniqueConstraint("user_id", "post_id", name="uq_engagement_edges_user_post"),
        UniqueConstraint("user_id", "comment_id", name="uq_engagement_edges_user_comment"),
        Index("ix_engagement_edges_post_id", "post_id"),
        Index("ix_engagement_edges_comment_id", "comment_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    post_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=True,
    )
    comment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def target_kind(self) -> str:
        return TARGET_KIND_POST if self.post_id is not None else TARGET_KIND_COMMENT
