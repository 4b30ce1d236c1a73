"""Question Pydantic schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, field_validator

from chgk_portal.models.question import QuestionStatus, QuestionTag
from chgk_portal.schemas.base import CamelModel


class QuestionDraft(CamelModel):
    """A viewer submission. Any status sent by the client is ignored."""
    author_name: str = Field(..., min_length=1)
    author_email: EmailStr
    telegram: Optional[str] = None
    author_avatar_url: Optional[str] = None
    question_text: str = Field(..., min_length=1)
    answer_text: str = Field(..., min_length=1)
    image_urls: List[str] = []


class QuestionOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    author_name: str
    author_email: str
    telegram: Optional[str] = None
    author_avatar_url: Optional[str] = None
    question_text: str
    answer_text: str
    image_urls: List[str] = []
    status: QuestionStatus
    submission_date: datetime
    feedback: Optional[str] = None
    game_id: Optional[int] = None
    tags: List[QuestionTag] = []
    is_answered_correctly: Optional[bool] = None


class QuestionUpdate(CamelModel):
    """Partial moderator update; only fields present in the payload are written."""
    game_id: Optional[int] = None
    tags: Optional[List[QuestionTag]] = None
    is_answered_correctly: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Optional[List[QuestionTag]]) -> Optional[List[QuestionTag]]:
        if v is None:
            return v
        return list(dict.fromkeys(v))


class StatusChange(CamelModel):
    status: QuestionStatus
    feedback: Optional[str] = None


class AuthorStats(CamelModel):
    counts: Dict[QuestionStatus, int]
    total: int
