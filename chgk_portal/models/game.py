"""Game model — a scheduled session with its expert panel."""

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from chgk_portal.database import Base


class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Expert panel ──
    expert_ids_json: Mapped[Optional[str]] = mapped_column(Text, default="[]")
    captain_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )

    @property
    def expert_ids(self) -> List[int]:
        try:
            return json.loads(self.expert_ids_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @expert_ids.setter
    def expert_ids(self, value: List[int]) -> None:
        self.expert_ids_json = json.dumps(list(value or []))
