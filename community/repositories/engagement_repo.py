import uuid
from dataclasses import dataclass

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from community.models.comment import Comment
from community.models.engagement_edge import TARGET_KIND_COMMENT, TARGET_KIND_POST, EngagementEdge
from community.models.post import Post


@dataclass(frozen=True, slots=True)
class EngagementTarget:
    kind: str
    id: uuid.UUID

    @property
    def model(self) -> type[Post] | type[Comment]:
        return Post if self.kind == TARGET_KIND_POST else Comment

    @property
    def counter_column(self):
        return Post.up_count if self.kind == TARGET_KIND_POST else Comment.like_count

    @property
    def edge_column(self):
        return EngagementEdge.post_id if self.kind == TARGET_KIND_POST else EngagementEdge.comment_id


class EngagementRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_post(self, post_id: uuid.UUID) -> Post | None:
        return self.db.get(Post, post_id)

    def get_comment(self, comment_id: uuid.UUID) -> Comment | None:
        return self.db.get(Comment, comment_id)

    def has_edge(self, *, user_id: uuid.UUID, target: EngagementTarget) -> bool:
        stmt = select(EngagementEdge.id).where(
            EngagementEdge.user_id == user_id,
            target.edge_column == target.id,
        )
        return self.db.scalar(stmt) is not None

    def add_edge(self, *, user_id: uuid.UUID, target: EngagementTarget) -> EngagementEdge:
        edge = EngagementEdge(
            user_id=user_id,
            post_id=target.id if target.kind == TARGET_KIND_POST else None,
            comment_id=target.id if target.kind == TARGET_KIND_COMMENT else None,
        )
        self.db.add(edge)
        self.db.flush()
        return edge

    def remove_edge(self, *, user_id: uuid.UUID, target: EngagementTarget) -> int:
        stmt = delete(EngagementEdge).where(
            EngagementEdge.user_id == user_id,
            target.edge_column == target.id,
        )
        result = self.db.execute(stmt)
        return result.rowcount or 0

    def bump_counter(self, *, target: EngagementTarget, delta: int) -> None:
        column = target.counter_column
        model = target.model
        if delta >= 0:
            value = column + delta
        else:
            value = case((column + delta > 0, column + delta), else_=0)
        stmt = (
            update(model)
            .where(model.id == target.id)
            .values({column.key: value})
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def set_counter(self, *, target: EngagementTarget, value: int) -> None:
        model = target.model
        stmt = (
            update(model)
            .where(model.id == target.id)
            .values({target.counter_column.key: value})
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def read_counter(self, target: EngagementTarget) -> int:
        stmt = select(target.counter_column).where(target.model.id == target.id)
        return int(self.db.scalar(stmt) or 0)

    def count_edges(self, target: EngagementTarget) -> int:
        stmt = select(func.count(EngagementEdge.id)).where(target.edge_column == target.id)
        return int(self.db.scalar(stmt) or 0)

    def liked_comment_ids(self, *, user_id: uuid.UUID, comment_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        if not comment_ids:
            return set()
        stmt = select(EngagementEdge.comment_id).where(
            EngagementEdge.user_id == user_id,
            EngagementEdge.comment_id.in_(comment_ids),
        )
        return {comment_id for comment_id in self.db.scalars(stmt) if comment_id is not None}
