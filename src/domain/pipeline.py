"""Turn reconstructed games into persistable bundles and replay stored ratings."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from domain.identity import PlayerIdentityResolver
from domain.ratings.common import GamePerformance
from domain.ratings.protocol import RankingAlgorithm
from domain.round_winner import estimate_round_winners
from domain.rounds import ReconstructedGame, Round
from domain.stats import Accolade, PlayerGameStats, StatsAggregator, derive_accolades, server_accolades

if TYPE_CHECKING:
    from repositories.game_repository import GameRepository

logger = logging.getLogger(__name__)

FetchPriorsFn = Callable[[Sequence[str]], Mapping[str, float]]


@dataclass(frozen=True)
class GameBundle:
    """Everything written for one game in a single unit of work."""

    game: ReconstructedGame
    rounds: tuple[Round, ...]
    player_stats: tuple[PlayerGameStats, ...]
    accolades: tuple[Accolade, ...]
    rating_algorithm: str
    source_path: str | None = None


@dataclass(frozen=True)
class RatingChange:
    player_id: str
    pre_rating: float
    rating: float

    @property
    def delta(self) -> float:
        return self.rating - self.pre_rating


@dataclass(frozen=True)
class ReplaySummary:
    """Outcome for one rating replay."""

    algorithm: str
    processed_games: int
    updated_rows: int
    tracked_players: int
    dry_run: bool


def performance_from_stats(stats: PlayerGameStats) -> GamePerformance:
    return GamePerformance(
        kills=stats.kills,
        deaths=stats.deaths,
        assists=stats.assists,
        headshot_kills=stats.headshot_kills,
        damage_dealt=stats.damage_dealt,
        rounds_played=stats.rounds_played,
    )


def rate_game(
    performances: Mapping[str, GamePerformance],
    priors: Mapping[str, float],
    algorithm: RankingAlgorithm,
) -> list[RatingChange]:
    """Update every player of one game against the lobby's average prior."""
    if not performances:
        return []

    pre_ratings = {player_id: priors.get(player_id, algorithm.initial_rating) for player_id in performances}
    lobby_rating = sum(pre_ratings.values()) / len(pre_ratings)

    changes: list[RatingChange] = []
    for player_id in sorted(performances):
        performance = replace(performances[player_id], lobby_rating=lobby_rating)
        prior = pre_ratings[player_id]
        changes.append(
            RatingChange(
                player_id=player_id,
                pre_rating=prior,
                rating=algorithm.update(prior, performance),
            )
        )
    return changes


def build_game_bundle(
    game: ReconstructedGame,
    *,
    resolver: PlayerIdentityResolver,
    algorithm: RankingAlgorithm,
    fetch_priors: FetchPriorsFn,
    include_bots: bool = False,
    accolade_top_n: int = 3,
    source_path: str | None = None,
) -> GameBundle:
    """Estimate winners, aggregate stats, rate players and collect accolades."""
    rounds = estimate_round_winners(
        game.rounds,
        game.game_over.team1_score,
        game.game_over.team2_score,
    )
    stats = StatsAggregator(resolver, include_bots=include_bots).aggregate(game)

    priors = fetch_priors([item.player_id for item in stats])
    changes = rate_game(
        {item.player_id: performance_from_stats(item) for item in stats},
        priors,
        algorithm,
    )
    by_player = {change.player_id: change for change in changes}
    for item in stats:
        change = by_player[item.player_id]
        item.pre_rating = change.pre_rating
        item.rating = change.rating
        item.rating_delta = change.delta

    accolades = derive_accolades(stats, accolade_top_n) + server_accolades(game, resolver)
    return GameBundle(
        game=game,
        rounds=tuple(rounds),
        player_stats=tuple(stats),
        accolades=tuple(accolades),
        rating_algorithm=algorithm.algorithm,
        source_path=source_path,
    )


def replay_ratings(
    *,
    session_factory,
    repository: GameRepository,
    algorithm: RankingAlgorithm,
    batch_size: int = 5000,
    dry_run: bool = False,
    echo: Callable[[str], None] | None = None,
) -> ReplaySummary:
    """Recompute every stored rating from scratch in chronological game order."""
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")

    with session_factory() as session:
        history = repository.fetch_rating_history(session)
        ratings: dict[str, float] = {}
        updates: list[dict[str, Any]] = []
        processed_games = 0

        for game_rows in _group_by_game(history):
            performances = {
                row.player_id: GamePerformance(
                    kills=row.kills,
                    deaths=row.deaths,
                    assists=row.assists,
                    headshot_kills=row.headshot_kills,
                    damage_dealt=row.damage_dealt,
                    rounds_played=row.rounds_played,
                )
                for row in game_rows
            }
            changes = {change.player_id: change for change in rate_game(performances, ratings, algorithm)}
            for row in game_rows:
                change = changes[row.player_id]
                ratings[row.player_id] = change.rating
                updates.append(
                    {
                        "id": row.id,
                        "pre_rating": change.pre_rating,
                        "rating": change.rating,
                        "rating_delta": change.delta,
                        "rating_algorithm": algorithm.algorithm,
                    }
                )
            processed_games += 1

        if dry_run:
            if echo is not None:
                echo(
                    f"[dry-run] algorithm={algorithm.algorithm} "
                    f"processed_games={processed_games} "
                    f"tracked_players={len(ratings)}"
                )
            session.rollback()
            return ReplaySummary(
                algorithm=algorithm.algorithm,
                processed_games=processed_games,
                updated_rows=0,
                tracked_players=len(ratings),
                dry_run=True,
            )

        updated_rows = 0
        try:
            for start in range(0, len(updates), batch_size):
                payload = updates[start : start + batch_size]
                repository.update_ratings(session, payload)
                updated_rows += len(payload)
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info(
        "Replayed ratings algorithm=%s games=%s rows=%s",
        algorithm.algorithm,
        processed_games,
        updated_rows,
    )
    if echo is not None:
        echo(
            "completed "
            f"algorithm={algorithm.algorithm} "
            f"processed_games={processed_games} "
            f"updated_rows={updated_rows} "
            f"tracked_players={len(ratings)}"
        )
    return ReplaySummary(
        algorithm=algorithm.algorithm,
        processed_games=processed_games,
        updated_rows=updated_rows,
        tracked_players=len(ratings),
        dry_run=False,
    )


def _group_by_game(rows: Sequence[Any]) -> list[list[Any]]:
    groups: list[list[Any]] = []
    current_game_id = None
    for row in rows:
        if not groups or row.game_id != current_game_id:
            groups.append([])
            current_game_id = row.game_id
        groups[-1].append(row)
    return groups


__all__ = [
    "GameBundle",
    "RatingChange",
    "ReplaySummary",
    "build_game_bundle",
    "performance_from_stats",
    "rate_game",
    "replay_ratings",
]
