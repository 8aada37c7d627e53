import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from community.models.comment import Comment


class CommentRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        *,
        post_id: uuid.UUID,
        author_id: uuid.UUID,
        content: str,
        parent_id: uuid.UUID | None,
    ) -> Comment:
        comment = Comment(
            post_id=post_id,
            author_id=author_id,
            content=content,
            parent_id=parent_id,
            like_count=0,
        )
        self.db.add(comment)
        self.db.flush()
        return comment

    def get_by_id(self, comment_id: uuid.UUID) -> Comment | None:
        stmt = select(Comment).where(Comment.id == comment_id).options(joinedload(Comment.author))
        return self.db.scalar(stmt)

    def list_top_level(self, post_id: uuid.UUID) -> list[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.post_id == post_id, Comment.parent_id.is_(None))
            .options(joinedload(Comment.author))
            .order_by(Comment.created_at.desc())
        )
        return list(self.db.scalars(stmt))

    def delete(self, comment: Comment) -> None:
        self.db.delete(comment)
        self.db.flush()
