"""Shared types for player ranking algorithms."""

from __future__ import annotations

from dataclasses import dataclass
from math import exp


@dataclass(frozen=True)
class GamePerformance:
    """One player's statistic line for one game, as seen by a ranking algorithm."""

    kills: int
    deaths: int
    assists: int = 0
    headshot_kills: int = 0
    damage_dealt: int = 0
    rounds_played: int = 0
    lobby_rating: float | None = None


@dataclass(frozen=True)
class PerformanceWeights:
    kill_margin_weight: float = 1.0
    adr_weight: float = 0.5
    adr_baseline: float = 80.0
    headshot_weight: float = 0.25
    assist_weight: float = 0.25
    index_scale: float = 2.0


def performance_index(performance: GamePerformance, weights: PerformanceWeights) -> float:
    """Relative performance around 0 (an average line scores roughly 0)."""
    rounds = max(performance.rounds_played, 1)
    kill_margin = (performance.kills - performance.deaths) / rounds
    adr_term = (performance.damage_dealt / rounds - weights.adr_baseline) / weights.adr_baseline
    headshot_rate = performance.headshot_kills / rounds
    assist_rate = performance.assists / rounds
    return (
        weights.kill_margin_weight * kill_margin
        + weights.adr_weight * adr_term
        + weights.headshot_weight * headshot_rate
        + weights.assist_weight * assist_rate
    )


def performance_score(performance: GamePerformance, weights: PerformanceWeights) -> float:
    """Squash the performance index into an Elo-style actual score in (0, 1)."""
    index = performance_index(performance, weights) * weights.index_scale
    # Clamp before exp() so extreme lines cannot overflow.
    index = max(min(index, 50.0), -50.0)
    return 1.0 / (1.0 + exp(-index))


__all__ = ["GamePerformance", "PerformanceWeights", "performance_index", "performance_score"]
