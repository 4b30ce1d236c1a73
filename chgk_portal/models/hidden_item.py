"""HiddenItem model — per-user archive marker for feed items."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from chgk_portal.database import Base


class HiddenItemType(str, enum.Enum):
    ANNOUNCEMENT = "ANNOUNCEMENT"
    POLL = "POLL"


class HiddenItem(Base):
    __tablename__ = "hidden_items"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_type: Mapped[HiddenItemType] = mapped_column(Enum(HiddenItemType), primary_key=True)

    hidden_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
