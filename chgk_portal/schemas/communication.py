"""Announcement, poll and feed Pydantic schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from chgk_portal.schemas.base import CamelModel


# ── Announcements ──

class AnnouncementCreate(CamelModel):
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None


class AnnouncementUpdate(CamelModel):
    title: Optional[str] = None
    message: Optional[str] = None
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None


class AnnouncementOut(CamelModel):
    id: int
    title: str
    message: str
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    link_text: Optional[str] = None
    created_at: datetime
    views: int = 0


class AnnouncementFeed(CamelModel):
    current: List[AnnouncementOut]
    archived: List[AnnouncementOut]


# ── Polls ──

def _clean_options(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    cleaned = [o.strip() for o in v if o and o.strip()]
    if not cleaned:
        raise ValueError("A poll needs at least one option")
    return cleaned


class PollCreate(CamelModel):
    question: str = Field(..., min_length=1)
    options: List[str]
    is_active: bool = True
    allow_multiple: bool = False
    ends_at: Optional[datetime] = None

    @field_validator("options")
    @classmethod
    def clean_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_options(v)


class PollUpdate(CamelModel):
    question: Optional[str] = None
    options: Optional[List[str]] = None
    is_active: Optional[bool] = None
    allow_multiple: Optional[bool] = None
    ends_at: Optional[datetime] = None

    @field_validator("options")
    @classmethod
    def clean_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_options(v)


class PollOut(CamelModel):
    id: int
    question: str
    options: List[str]
    is_active: bool
    allow_multiple: bool = False
    ends_at: Optional[datetime] = None
    created_at: datetime
    is_closed: bool = False
    results: Dict[int, int] = {}
    user_votes: List[int] = []


class PollFeed(CamelModel):
    current: List[PollOut]
    archived: List[PollOut]


class VoteIn(CamelModel):
    option_index: int


class VoteDetail(CamelModel):
    user_id: int
    full_name: str
    avatar_url: Optional[str] = None
    option_index: int
