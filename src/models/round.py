"""rounds table model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class GameRound(Base):
    __tablename__ = "rounds"
    __table_args__ = (UniqueConstraint("game_id", "round_index", name="uq_rounds_game_index"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), nullable=False)
    round_index: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    winner: Mapped[str | None] = mapped_column(String(2), nullable=True)
    participant_ids: Mapped[list[Any]] = mapped_column(JSONType, nullable=False)
