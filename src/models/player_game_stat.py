"""player_game_stats table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class PlayerGameStat(Base):
    """Per-player statistic line and rating change for one game."""

    __tablename__ = "player_game_stats"
    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_player_game_stats_game_player"),
        CheckConstraint("headshot_kills <= kills", name="ck_player_game_stats_headshots"),
        CheckConstraint("damage_dealt >= 0", name="ck_player_game_stats_damage"),
        Index("idx_player_game_stats_player_time", "player_id", "event_time", "game_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), nullable=False)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    kills: Mapped[int] = mapped_column(Integer, nullable=False)
    deaths: Mapped[int] = mapped_column(Integer, nullable=False)
    assists: Mapped[int] = mapped_column(Integer, nullable=False)
    headshot_kills: Mapped[int] = mapped_column(Integer, nullable=False)
    damage_dealt: Mapped[int] = mapped_column(Integer, nullable=False)
    rounds_played: Mapped[int] = mapped_column(Integer, nullable=False)
    pre_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_delta: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_algorithm: Mapped[str | None] = mapped_column(String(32), nullable=True)
