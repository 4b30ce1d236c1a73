"""UserProfile model — display data, expertise rank and club roles."""

import enum
import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chgk_portal.database import Base


class ExpertStatus(str, enum.Enum):
    NOVICE = "NOVICE"
    EXPERIENCED = "EXPERIENCED"
    MASTER = "MASTER"


class UserProfile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    telegram: Mapped[Optional[str]] = mapped_column(String(100))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Club roles ──
    expert_status: Mapped[ExpertStatus] = mapped_column(
        Enum(ExpertStatus), default=ExpertStatus.NOVICE
    )
    is_expert: Mapped[bool] = mapped_column(Boolean, default=False)
    was_captain: Mapped[bool] = mapped_column(Boolean, default=False)

    # ── JSON list (stored as Text for SQLite compat) ──
    knowledge_tags_json: Mapped[Optional[str]] = mapped_column(Text, default="[]")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")  # noqa: F821

    # ── JSON helpers ──
    @property
    def knowledge_tags(self) -> List[str]:
        try:
            return json.loads(self.knowledge_tags_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @knowledge_tags.setter
    def knowledge_tags(self, value: List[str]) -> None:
        self.knowledge_tags_json = json.dumps(list(value or []), ensure_ascii=False)
