"""Elo ranking modules."""

from domain.ratings.elo.calculator import EloParameters, EloRankingAlgorithm, calculate_expected_score
from domain.ratings.elo.config import EloSystemConfig, load_elo_system_configs

__all__ = [
    "EloParameters",
    "EloRankingAlgorithm",
    "EloSystemConfig",
    "calculate_expected_score",
    "load_elo_system_configs",
]
