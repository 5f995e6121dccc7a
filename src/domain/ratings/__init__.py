"""Player ranking algorithms."""

from domain.ratings.common import GamePerformance, PerformanceWeights, performance_index
from domain.ratings.protocol import RankingAlgorithm

__all__ = [
    "GamePerformance",
    "PerformanceWeights",
    "RankingAlgorithm",
    "performance_index",
]
