"""Per-player combat statistics and accolades for one reconstructed game."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import assert_never

from domain.events import (
    AssistEvent,
    AttackEvent,
    BombEvent,
    GameOverEvent,
    KillEvent,
    PlayerRef,
    RoundEndEvent,
    RoundStartEvent,
)
from domain.identity import PlayerIdentityResolver
from domain.rounds import ReconstructedGame

logger = logging.getLogger(__name__)


@dataclass
class PlayerGameStats:
    player_id: str
    nickname: str | None = None
    resolved: bool = True
    is_bot: bool = False
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    headshot_kills: int = 0
    damage_dealt: int = 0
    rounds_played: int = 0
    pre_rating: float | None = None
    rating: float | None = None
    rating_delta: float | None = None

    @property
    def headshot_percentage(self) -> float:
        if self.kills == 0:
            return 0.0
        return self.headshot_kills / self.kills * 100.0


class AccoladeSource(str, Enum):
    DERIVED = "derived"
    SERVER = "server"


@dataclass(frozen=True)
class Accolade:
    accolade_type: str
    player_id: str
    value: float
    position: int
    source: AccoladeSource
    score: float | None = None


class StatsAggregator:
    """Folds a game's events into one ``PlayerGameStats`` per canonical player."""

    def __init__(self, resolver: PlayerIdentityResolver, *, include_bots: bool = False) -> None:
        self.resolver = resolver
        self.include_bots = include_bots

    def aggregate(self, game: ReconstructedGame) -> list[PlayerGameStats]:
        stats: dict[str, PlayerGameStats] = {}

        def entry(player: PlayerRef) -> PlayerGameStats | None:
            if player.is_bot and not self.include_bots:
                return None
            self.resolver.observe(player)
            identity = self.resolver.resolve(player.raw_id)
            current = stats.get(identity.player_id)
            if current is None:
                current = PlayerGameStats(
                    player_id=identity.player_id,
                    nickname=player.name,
                    resolved=identity.is_resolved,
                    is_bot=player.is_bot,
                )
                stats[identity.player_id] = current
            return current

        for event in game.events:
            match event:
                case KillEvent():
                    killer = entry(event.attacker)
                    victim = entry(event.victim)
                    if killer is not None:
                        killer.kills += 1
                        if event.is_headshot:
                            killer.headshot_kills += 1
                    if victim is not None:
                        victim.deaths += 1
                case AssistEvent():
                    assister = entry(event.assister)
                    entry(event.victim)
                    if assister is not None:
                        assister.assists += 1
                case AttackEvent():
                    attacker = entry(event.attacker)
                    entry(event.victim)
                    if attacker is not None and event.computed_damage is not None and event.computed_damage > 0:
                        attacker.damage_dealt += event.computed_damage
                case BombEvent():
                    entry(event.player)
                case RoundStartEvent() | RoundEndEvent() | GameOverEvent():
                    pass
                case _:
                    assert_never(event)

        self._count_rounds_played(game, stats)
        return [stats[player_id] for player_id in sorted(stats)]

    def _count_rounds_played(self, game: ReconstructedGame, stats: dict[str, PlayerGameStats]) -> None:
        for game_round in game.rounds:
            participants: set[str] = set()
            for raw_id in game_round.participant_ids:
                identity = self.resolver.resolve(raw_id)
                participants.add(identity.player_id)
                if identity.player_id not in stats:
                    # Played the round without a single logged action.
                    if not identity.is_resolved:
                        logger.warning(
                            "Round %s participant %r is not a known player, keeping the raw id",
                            game_round.index,
                            raw_id,
                        )
                    stats[identity.player_id] = PlayerGameStats(
                        player_id=identity.player_id,
                        nickname=self.resolver.nickname(identity.player_id),
                        resolved=identity.is_resolved,
                    )
            for player_id in participants:
                stats[player_id].rounds_played += 1


_DERIVED_ACCOLADES: tuple[tuple[str, Callable[[PlayerGameStats], float]], ...] = (
    ("most_kills", lambda item: item.kills),
    ("most_damage", lambda item: item.damage_dealt),
    ("most_assists", lambda item: item.assists),
    ("most_headshots", lambda item: item.headshot_kills),
)


def derive_accolades(stats: Sequence[PlayerGameStats], top_n: int = 3) -> list[Accolade]:
    """Rank players on each tracked statistic; zero values earn nothing."""
    if top_n <= 0:
        raise ValueError("top_n must be greater than 0")

    accolades: list[Accolade] = []
    for accolade_type, metric in _DERIVED_ACCOLADES:
        ranked = sorted(
            (item for item in stats if metric(item) > 0),
            key=lambda item: (-metric(item), item.player_id),
        )
        for position, item in enumerate(ranked[:top_n], start=1):
            accolades.append(
                Accolade(
                    accolade_type=accolade_type,
                    player_id=item.player_id,
                    value=float(metric(item)),
                    position=position,
                    source=AccoladeSource.DERIVED,
                )
            )
    return accolades


def server_accolades(game: ReconstructedGame, resolver: PlayerIdentityResolver) -> list[Accolade]:
    """Convert the server's end-of-game ACCOLADE lines, matching players by nickname."""
    accolades: list[Accolade] = []
    for server_accolade in game.game_over.accolades:
        identity = resolver.resolve(server_accolade.player_name)
        if not identity.is_resolved:
            logger.warning(
                "Accolade %s names unknown player %r",
                server_accolade.accolade_type,
                server_accolade.player_name,
            )
        accolades.append(
            Accolade(
                accolade_type=server_accolade.accolade_type,
                player_id=identity.player_id,
                value=server_accolade.value,
                position=server_accolade.position,
                source=AccoladeSource.SERVER,
                score=server_accolade.score,
            )
        )
    return accolades


__all__ = [
    "Accolade",
    "AccoladeSource",
    "PlayerGameStats",
    "StatsAggregator",
    "derive_accolades",
    "server_accolades",
]
