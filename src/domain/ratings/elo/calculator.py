"""Performance-based player Elo."""

from __future__ import annotations

from dataclasses import dataclass, field

from domain.ratings.common import GamePerformance, PerformanceWeights, performance_score


@dataclass(frozen=True)
class EloParameters:
    initial_rating: float = 1000.0
    k_factor: float = 32.0
    scale_factor: float = 400.0
    weights: PerformanceWeights = field(default_factory=PerformanceWeights)


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


class EloRankingAlgorithm:
    """Rates a player's game line against the lobby's average prior.

    The actual score is the squashed performance index, so the per-game
    change is always strictly less than ``k_factor`` in magnitude.
    """

    algorithm = "elo"

    def __init__(self, params: EloParameters) -> None:
        self.params = params

    @property
    def initial_rating(self) -> float:
        return self.params.initial_rating

    def expected_score(self, prior_rating: float, performance: GamePerformance) -> float:
        lobby_rating = prior_rating if performance.lobby_rating is None else performance.lobby_rating
        return calculate_expected_score(prior_rating, lobby_rating, self.params.scale_factor)

    def update(self, prior_rating: float, performance: GamePerformance) -> float:
        actual = performance_score(performance, self.params.weights)
        expected = self.expected_score(prior_rating, performance)
        return prior_rating + self.params.k_factor * (actual - expected)


__all__ = ["EloParameters", "EloRankingAlgorithm", "calculate_expected_score"]
