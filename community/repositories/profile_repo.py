import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from community.models.profile import Profile


class ProfileRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_id(self, profile_id: uuid.UUID) -> Profile | None:
        return self.db.get(Profile, profile_id)

    def get_by_username(self, username: str) -> Profile | None:
        stmt = select(Profile).where(Profile.username == username)
        return self.db.scalar(stmt)

    def display_name(self, profile_id: uuid.UUID) -> str | None:
        stmt = select(Profile.nickname).where(Profile.id == profile_id)
        return self.db.scalar(stmt)
