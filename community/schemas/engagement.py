from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class ToggleEngagementResponse(BaseModel):
    target_kind: Literal["post", "comment"]
    target_id: UUID
    active: bool
    new_count: int


class EngagementStateResponse(BaseModel):
    target_kind: Literal["post", "comment"]
    target_id: UUID
    active: bool
    count: int


class ReconcileCounterResponse(BaseModel):
    target_kind: Literal["post", "comment"]
    target_id: UUID
    previous: int
    current: int
