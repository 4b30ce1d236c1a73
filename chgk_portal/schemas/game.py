"""Game Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from chgk_portal.schemas.base import CamelModel


class GameCreate(CamelModel):
    name: str = Field(..., min_length=1)
    date: Optional[datetime] = None


class GameOut(CamelModel):
    id: int
    name: str
    date: datetime
    expert_ids: List[int] = []
    captain_id: Optional[int] = None


class ExpertsUpdate(CamelModel):
    user_ids: List[int]


class CaptainUpdate(CamelModel):
    user_id: Optional[int] = None
