"""Typed game events parsed from CS2 server logs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, TypeAlias


class EventType(str, Enum):
    """Event categories persisted in game_events.event_type."""

    KILL = "KILL"
    ASSIST = "ASSIST"
    ATTACK = "ATTACK"
    BOMB = "BOMB"
    ROUND_START = "ROUND_START"
    ROUND_END = "ROUND_END"
    GAME_OVER = "GAME_OVER"


class BombAction(str, Enum):
    PLANT = "PLANT"
    DEFUSE = "DEFUSE"
    EXPLODE = "EXPLODE"


@dataclass(frozen=True)
class PlayerRef:
    """Player as printed on one log line: name<slot><steam id|BOT><team>."""

    name: str
    slot: int | None = None
    steam_id: str | None = None
    team: str | None = None

    @property
    def is_bot(self) -> bool:
        return self.steam_id is None

    @property
    def raw_id(self) -> str:
        """Best raw identifier for this player (steam id, else the bot name)."""
        if self.steam_id is not None:
            return self.steam_id
        return f"BOT:{self.name}"


@dataclass(frozen=True)
class ServerAccolade:
    """One `ACCOLADE, FINAL` line printed before Game Over."""

    accolade_type: str
    player_name: str
    slot: int
    value: float
    position: int
    score: float


@dataclass(frozen=True)
class KillEvent:
    event_type: ClassVar[EventType] = EventType.KILL

    timestamp: datetime
    attacker: PlayerRef
    victim: PlayerRef
    weapon: str
    is_headshot: bool = False
    round_index: int | None = None

    @property
    def actor_id(self) -> str:
        return self.attacker.raw_id

    @property
    def target_id(self) -> str | None:
        return self.victim.raw_id


@dataclass(frozen=True)
class AssistEvent:
    event_type: ClassVar[EventType] = EventType.ASSIST

    timestamp: datetime
    assister: PlayerRef
    victim: PlayerRef
    is_flash: bool = False
    round_index: int | None = None

    @property
    def actor_id(self) -> str:
        return self.assister.raw_id

    @property
    def target_id(self) -> str | None:
        return self.victim.raw_id


@dataclass(frozen=True)
class AttackEvent:
    event_type: ClassVar[EventType] = EventType.ATTACK

    timestamp: datetime
    attacker: PlayerRef
    victim: PlayerRef
    weapon: str
    reported_damage: int
    armor_damage: int
    health_remaining: int
    hitgroup: str | None = None
    computed_damage: int | None = None
    damage_anomaly: bool = False
    round_index: int | None = None

    @property
    def actor_id(self) -> str:
        return self.attacker.raw_id

    @property
    def target_id(self) -> str | None:
        return self.victim.raw_id


@dataclass(frozen=True)
class BombEvent:
    event_type: ClassVar[EventType] = EventType.BOMB

    timestamp: datetime
    player: PlayerRef
    action: BombAction
    bombsite: str | None = None
    round_index: int | None = None

    @property
    def actor_id(self) -> str:
        return self.player.raw_id

    @property
    def target_id(self) -> str | None:
        return None


@dataclass(frozen=True)
class RoundStartEvent:
    event_type: ClassVar[EventType] = EventType.ROUND_START

    timestamp: datetime
    round_index: int | None = None

    @property
    def actor_id(self) -> str | None:
        return None

    @property
    def target_id(self) -> str | None:
        return None


@dataclass(frozen=True)
class RoundEndEvent:
    event_type: ClassVar[EventType] = EventType.ROUND_END

    timestamp: datetime
    participant_ids: tuple[str, ...] = ()
    round_index: int | None = None

    @property
    def actor_id(self) -> str | None:
        return None

    @property
    def target_id(self) -> str | None:
        return None


@dataclass(frozen=True)
class GameOverEvent:
    event_type: ClassVar[EventType] = EventType.GAME_OVER

    timestamp: datetime
    mode: str
    map_name: str
    team1_score: int
    team2_score: int
    duration_minutes: int | None = None
    accolades: tuple[ServerAccolade, ...] = ()
    round_index: int | None = None

    @property
    def actor_id(self) -> str | None:
        return None

    @property
    def target_id(self) -> str | None:
        return None

    @property
    def total_rounds(self) -> int:
        return self.team1_score + self.team2_score


GameEvent: TypeAlias = (
    KillEvent
    | AssistEvent
    | AttackEvent
    | BombEvent
    | RoundStartEvent
    | RoundEndEvent
    | GameOverEvent
)


def event_players(event: GameEvent) -> tuple[PlayerRef, ...]:
    """Players named on an event line, actor first."""
    match event:
        case KillEvent() | AttackEvent():
            return (event.attacker, event.victim)
        case AssistEvent():
            return (event.assister, event.victim)
        case BombEvent():
            return (event.player,)
        case _:
            return ()


__all__ = [
    "AssistEvent",
    "AttackEvent",
    "BombAction",
    "BombEvent",
    "EventType",
    "GameEvent",
    "GameOverEvent",
    "KillEvent",
    "PlayerRef",
    "RoundEndEvent",
    "RoundStartEvent",
    "ServerAccolade",
    "event_players",
]
