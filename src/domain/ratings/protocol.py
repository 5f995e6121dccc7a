"""Shared contract for player ranking algorithms."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.ratings.common import GamePerformance


@runtime_checkable
class RankingAlgorithm(Protocol):
    """Pure per-game rating update.

    Called once per player per game, in chronological game order. The same
    inputs always produce the same output, so a replay over stored stats
    reproduces the stored ratings.
    """

    algorithm: str
    initial_rating: float

    def update(self, prior_rating: float, performance: GamePerformance) -> float: ...


__all__ = ["RankingAlgorithm"]
