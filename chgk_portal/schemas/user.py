"""User Pydantic schemas — sign-up, login, session and profile output."""

from typing import List, Optional

from pydantic import EmailStr, Field

from chgk_portal.models.profile import ExpertStatus
from chgk_portal.schemas.base import CamelModel
from chgk_portal.session import Role


class UserCreate(CamelModel):
    """Fields submitted on the registration form."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None
    telegram: Optional[str] = None


class UserLogin(CamelModel):
    """Fields submitted on the login form."""
    email: EmailStr
    password: str


class HostLogin(CamelModel):
    password: str


class SessionOut(CamelModel):
    role: Role
    user_id: Optional[int] = None
    email: Optional[str] = None


class ProfileOut(CamelModel):
    """Profile as shown in the cabinet and in the moderator directory."""
    user_id: int
    full_name: str = ""
    telegram: Optional[str] = None
    avatar_url: Optional[str] = None
    expert_status: ExpertStatus = ExpertStatus.NOVICE
    is_expert: bool = False
    knowledge_tags: List[str] = []
    was_captain: bool = False


class DirectoryEntry(ProfileOut):
    question_count: int = 0


class ProfileSelfUpdate(CamelModel):
    """Fields the owning viewer may change."""
    full_name: Optional[str] = None
    telegram: Optional[str] = None
    avatar_url: Optional[str] = None
    knowledge_tags: Optional[List[str]] = None


class ProfileAdminUpdate(CamelModel):
    """Fields only the moderator may change."""
    expert_status: Optional[ExpertStatus] = None
    is_expert: Optional[bool] = None
    was_captain: Optional[bool] = None
