from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import jwt
from sqlalchemy.orm import Session

from community.core.config import settings
from community.models.comment import Comment
from community.models.post import Post
from community.models.profile import Profile


def make_profile(db: Session, *, nickname: str) -> Profile:
    profile = Profile(id=uuid4(), username=nickname.lower(), nickname=nickname)
    db.add(profile)
    db.commit()
    return profile


def make_post(db: Session, *, author: Profile, title: str = "Hello garden") -> Post:
    post = Post(author_id=author.id, title=title)
    db.add(post)
    db.commit()
    return post


def make_comment(db: Session, *, post: Post, author: Profile, content: str = "nice post") -> Comment:
    comment = Comment(post_id=post.id, author_id=author.id, content=content)
    db.add(comment)
    db.commit()
    return comment


def make_token(user_id: UUID, *, email: str | None = "user@example.com") -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.auth_jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=10),
    }
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm="HS256")
