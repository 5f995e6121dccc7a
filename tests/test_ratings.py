"""Tests for the per-game ranking algorithms and lobby rating."""

from __future__ import annotations

from dataclasses import replace

import pytest

from domain.pipeline import rate_game
from domain.ratings.common import GamePerformance, PerformanceWeights, performance_index, performance_score
from domain.ratings.elo.calculator import EloParameters, EloRankingAlgorithm, calculate_expected_score
from domain.ratings.openskill.calculator import OpenSkillParameters, OpenSkillRankingAlgorithm
from domain.ratings.protocol import RankingAlgorithm


def _line(kills: int, deaths: int, *, damage: int | None = None, lobby: float | None = None) -> GamePerformance:
    return GamePerformance(
        kills=kills,
        deaths=deaths,
        assists=2,
        headshot_kills=min(kills, 5),
        damage_dealt=damage if damage is not None else kills * 100,
        rounds_played=20,
        lobby_rating=lobby,
    )


def test_expected_score_is_symmetric() -> None:
    assert calculate_expected_score(1000.0, 1000.0, 400.0) == pytest.approx(0.5)
    stronger = calculate_expected_score(1200.0, 1000.0, 400.0)
    weaker = calculate_expected_score(1000.0, 1200.0, 400.0)
    assert stronger + weaker == pytest.approx(1.0)
    assert stronger > 0.5


def test_performance_index_rises_with_better_lines() -> None:
    weights = PerformanceWeights()
    indexes = [performance_index(_line(kills, 10), weights) for kills in (2, 8, 14, 25)]

    assert indexes == sorted(indexes)
    assert 0.0 < performance_score(_line(2, 10), weights) < 0.5 < performance_score(_line(25, 10), weights) < 1.0


def test_performance_score_survives_extreme_lines() -> None:
    line = GamePerformance(kills=500, deaths=0, damage_dealt=50_000, rounds_played=1)

    assert performance_score(line, PerformanceWeights()) == pytest.approx(1.0)


def test_elo_is_monotonic_in_performance() -> None:
    algorithm = EloRankingAlgorithm(EloParameters())
    ratings = [algorithm.update(1000.0, _line(kills, 12, lobby=1000.0)) for kills in (3, 9, 15, 30)]

    assert ratings == sorted(ratings)
    assert ratings[0] < 1000.0 < ratings[-1]


def test_elo_change_is_bounded_by_k_factor() -> None:
    params = EloParameters(k_factor=24.0)
    algorithm = EloRankingAlgorithm(params)

    best = algorithm.update(800.0, GamePerformance(kills=60, deaths=0, damage_dealt=9000, rounds_played=13, lobby_rating=2000.0))
    worst = algorithm.update(2000.0, GamePerformance(kills=0, deaths=30, rounds_played=13, lobby_rating=800.0))

    assert 0.0 < best - 800.0 < params.k_factor
    assert 0.0 < 2000.0 - worst < params.k_factor


def test_elo_stronger_prior_gains_less_for_the_same_line() -> None:
    algorithm = EloRankingAlgorithm(EloParameters())
    line = _line(20, 10, lobby=1000.0)

    assert algorithm.update(1200.0, line) - 1200.0 < algorithm.update(900.0, line) - 900.0


def test_openskill_direction_follows_performance() -> None:
    algorithm = OpenSkillRankingAlgorithm(OpenSkillParameters())

    assert algorithm.update(1000.0, _line(25, 8, lobby=1000.0)) > 1000.0
    assert algorithm.update(1000.0, _line(2, 18, damage=150, lobby=1000.0)) < 1000.0


def test_openskill_change_is_bounded() -> None:
    params = OpenSkillParameters()
    algorithm = OpenSkillRankingAlgorithm(params)

    new_rating = algorithm.update(1000.0, _line(40, 0, lobby=1000.0))

    assert abs(new_rating - 1000.0) < params.sigma


@pytest.mark.parametrize(
    "algorithm",
    [EloRankingAlgorithm(EloParameters()), OpenSkillRankingAlgorithm(OpenSkillParameters())],
)
def test_updates_are_pure(algorithm: RankingAlgorithm) -> None:
    assert isinstance(algorithm, RankingAlgorithm)
    line = _line(17, 11, lobby=1040.0)

    assert algorithm.update(1010.0, line) == algorithm.update(1010.0, line)


def test_rate_game_uses_the_lobby_average_prior() -> None:
    algorithm = EloRankingAlgorithm(EloParameters())
    performances = {"a": _line(20, 10), "b": _line(10, 20)}

    changes = rate_game(performances, {"a": 1100.0}, algorithm)

    assert [change.player_id for change in changes] == ["a", "b"]
    assert changes[0].pre_rating == pytest.approx(1100.0)
    assert changes[1].pre_rating == pytest.approx(algorithm.initial_rating)
    lobby = (1100.0 + 1000.0) / 2
    expected_a = algorithm.update(1100.0, replace(_line(20, 10), lobby_rating=lobby))
    assert changes[0].rating == pytest.approx(expected_a)
    assert changes[0].delta == pytest.approx(changes[0].rating - 1100.0)


def test_rate_game_with_no_players() -> None:
    assert rate_game({}, {}, EloRankingAlgorithm(EloParameters())) == []
