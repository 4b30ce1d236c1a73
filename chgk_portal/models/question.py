"""Question model — a viewer-submitted candidate question and its review state."""

import enum
import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from chgk_portal.database import Base


class QuestionStatus(str, enum.Enum):
    PENDING = "PENDING"        # Ожидает рассмотрения
    APPROVED = "APPROVED"      # Одобрен (в базе)
    REJECTED = "REJECTED"      # Отклонен
    SELECTED = "SELECTED"      # Отобран на игру
    PLAYED = "PLAYED"          # Сыгран
    NOT_PLAYED = "NOT_PLAYED"  # Не выпал


class QuestionTag(str, enum.Enum):
    BLACK_BOX = "BLACK_BOX"
    BLITZ = "BLITZ"
    SUPER_BLITZ = "SUPER_BLITZ"


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # ── Authorship ──
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    author_name: Mapped[str] = mapped_column(String(200), nullable=False)
    author_email: Mapped[str] = mapped_column(String(255), nullable=False)
    telegram: Mapped[Optional[str]] = mapped_column(String(100))
    author_avatar_url: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Content ──
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    answer_text: Mapped[str] = mapped_column(Text, nullable=False)
    image_urls_json: Mapped[Optional[str]] = mapped_column(Text, default="[]")

    # ── Review ──
    status: Mapped[QuestionStatus] = mapped_column(
        Enum(QuestionStatus), default=QuestionStatus.PENDING, index=True
    )
    feedback: Mapped[Optional[str]] = mapped_column(Text)
    game_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("games.id", ondelete="SET NULL"), index=True
    )
    tags_json: Mapped[Optional[str]] = mapped_column(Text, default="[]")
    is_answered_correctly: Mapped[Optional[bool]] = mapped_column(Boolean)

    submission_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── JSON helpers ──
    @property
    def image_urls(self) -> List[str]:
        try:
            return json.loads(self.image_urls_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @image_urls.setter
    def image_urls(self, value: List[str]) -> None:
        self.image_urls_json = json.dumps(list(value or []))

    @property
    def tags(self) -> List[str]:
        try:
            return json.loads(self.tags_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @tags.setter
    def tags(self, value: List[str]) -> None:
        self.tags_json = json.dumps(list(value or []))
