from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProfilePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    nickname: str
    avatar_url: str | None
    avatar_color: str | None
    created_at: datetime
