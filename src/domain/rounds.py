"""Group parsed events into rounds and games, reconstructing per-hit damage."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from domain.errors import GameReconstructionError
from domain.events import (
    AttackEvent,
    GameEvent,
    GameOverEvent,
    PlayerRef,
    RoundEndEvent,
    RoundStartEvent,
    event_players,
)

logger = logging.getLogger(__name__)

FULL_HEALTH = 100


class Side(str, Enum):
    CT = "CT"
    T = "T"


@dataclass(frozen=True)
class Round:
    index: int
    start_time: datetime
    end_time: datetime | None = None
    winner: Side | None = None
    participant_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class GameSignature:
    """Natural key of a finished game; at most one stored game per signature."""

    end_time: datetime
    map_name: str


@dataclass(frozen=True)
class ReconstructedGame:
    game_over: GameOverEvent
    rounds: tuple[Round, ...]
    events: tuple[GameEvent, ...]
    damage_anomalies: int = 0

    @property
    def signature(self) -> GameSignature:
        return GameSignature(end_time=self.game_over.timestamp, map_name=self.game_over.map_name)

    @property
    def map_name(self) -> str:
        return self.game_over.map_name

    @property
    def start_time(self) -> datetime:
        return self.rounds[0].start_time

    @property
    def end_time(self) -> datetime:
        return self.game_over.timestamp

    @property
    def players(self) -> list[PlayerRef]:
        """Distinct players named on any event, in order of first appearance."""
        seen: dict[str, PlayerRef] = {}
        for event in self.events:
            for player in event_players(event):
                seen.setdefault(player.raw_id, player)
        return list(seen.values())


@dataclass
class _RoundBuffer:
    start_time: datetime
    end_time: datetime | None = None
    participant_ids: tuple[str, ...] = ()
    events: list[GameEvent] = field(default_factory=list)


class RoundStateTracker:
    """Splits one log's event stream into reconstructed games.

    Games that cannot be reconstructed are collected in ``skipped_games``
    rather than raised, so one bad game never blocks the rest of the log.
    """

    def __init__(self) -> None:
        self.skipped_games: list[GameReconstructionError] = []

    def reconstruct(self, events: Iterable[GameEvent]) -> list[ReconstructedGame]:
        self.skipped_games = []
        games: list[ReconstructedGame] = []
        rounds: list[_RoundBuffer] = []
        current: _RoundBuffer | None = None
        warmup_events = 0

        for event in events:
            match event:
                case RoundStartEvent():
                    current = _RoundBuffer(start_time=event.timestamp, events=[event])
                    rounds.append(current)
                case GameOverEvent():
                    game = self._close_game(event, rounds)
                    if game is not None:
                        games.append(game)
                    rounds = []
                    current = None
                case _ if current is None:
                    warmup_events += 1
                case RoundEndEvent():
                    current.end_time = event.timestamp
                    current.participant_ids = event.participant_ids
                    current.events.append(event)
                case _:
                    current.events.append(event)

        if warmup_events:
            logger.debug("Dropped %s events before the first Round_Start", warmup_events)
        if rounds:
            logger.debug("Dropped %s trailing rounds without a Game Over line", len(rounds))
        return games

    def _close_game(
        self,
        game_over: GameOverEvent,
        rounds: list[_RoundBuffer],
    ) -> ReconstructedGame | None:
        total_rounds = game_over.total_rounds
        if total_rounds <= 0:
            return self._skip(game_over, "final score has no rounds")
        if len(rounds) < total_rounds:
            return self._skip(
                game_over,
                f"score {game_over.team1_score}:{game_over.team2_score} needs {total_rounds} rounds, "
                f"only {len(rounds)} tracked",
            )

        # Anything before the last N rounds is warmup or a restarted half.
        selected = rounds[-total_rounds:]
        selected[-1].events.append(game_over)

        built_rounds: list[Round] = []
        indexed_events: list[GameEvent] = []
        for index, buffer in enumerate(selected, start=1):
            participant_ids = buffer.participant_ids
            if not participant_ids and index == len(selected) and built_rounds:
                participant_ids = built_rounds[-1].participant_ids
            built_rounds.append(
                Round(
                    index=index,
                    start_time=buffer.start_time,
                    end_time=buffer.end_time,
                    participant_ids=participant_ids,
                )
            )
            indexed_events.extend(replace(event, round_index=index) for event in buffer.events)

        events, anomalies = _reconstruct_damage(sorted(indexed_events, key=lambda item: item.timestamp))
        if anomalies:
            logger.warning(
                "Game on %s ending %s had %s damage anomalies",
                game_over.map_name,
                game_over.timestamp,
                anomalies,
            )
        return ReconstructedGame(
            game_over=next(event for event in events if isinstance(event, GameOverEvent)),
            rounds=tuple(built_rounds),
            events=tuple(events),
            damage_anomalies=anomalies,
        )

    def _skip(self, game_over: GameOverEvent, reason: str) -> None:
        error = GameReconstructionError(game_over, reason)
        logger.warning("Skipping game: %s", error)
        self.skipped_games.append(error)
        return None


def _reconstruct_damage(events: list[GameEvent]) -> tuple[list[GameEvent], int]:
    """Derive per-hit damage from the victim's remaining health within each round."""
    ledger: dict[tuple[str, int | None], int] = {}
    annotated: list[GameEvent] = []
    anomalies = 0

    for event in events:
        if not isinstance(event, AttackEvent):
            annotated.append(event)
            continue

        key = (event.victim.raw_id, event.round_index)
        previous = ledger.get(key, FULL_HEALTH)
        damage = previous - event.health_remaining
        ledger[key] = event.health_remaining

        anomaly = damage < 0 or damage > FULL_HEALTH
        if anomaly:
            damage = min(max(FULL_HEALTH - event.health_remaining, 0), FULL_HEALTH)
            anomalies += 1
            logger.debug(
                "Damage anomaly for %s in round %s: previous=%s remaining=%s",
                event.victim.raw_id,
                event.round_index,
                previous,
                event.health_remaining,
            )
        annotated.append(replace(event, computed_damage=damage, damage_anomaly=anomaly))

    return annotated, anomalies


__all__ = [
    "FULL_HEALTH",
    "GameSignature",
    "ReconstructedGame",
    "Round",
    "RoundStateTracker",
    "Side",
]
