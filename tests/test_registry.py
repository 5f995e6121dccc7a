"""Tests for the ranking algorithm registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.ratings.elo.calculator import EloRankingAlgorithm
from domain.ratings.openskill.calculator import OpenSkillRankingAlgorithm
from domain.ratings.registry import get, get_all, load_algorithm


def test_registered_algorithms() -> None:
    assert [descriptor.algorithm for descriptor in get_all()] == ["elo", "openskill"]
    assert get("ELO").algorithm == "elo"


def test_unknown_algorithm_lists_available_ones() -> None:
    with pytest.raises(ValueError, match="Available: elo, openskill"):
        get("glicko")


def test_shipped_default_configs_load() -> None:
    elo, elo_config = load_algorithm("elo")
    openskill, openskill_config = load_algorithm("openskill")

    assert isinstance(elo, EloRankingAlgorithm)
    assert isinstance(openskill, OpenSkillRankingAlgorithm)
    assert elo_config.name == "player_elo_default"
    assert openskill_config.name == "player_openskill_default"


def test_load_algorithm_from_custom_directory(tmp_path: Path) -> None:
    (tmp_path / "fast.toml").write_text('[system]\nname = "fast"\n[elo]\nk_factor = 64.0\n')

    algorithm, config = load_algorithm("elo", config_dir=tmp_path, config_name="fast.toml")

    assert config.name == "fast"
    assert algorithm.params.k_factor == pytest.approx(64.0)

    with pytest.raises(ValueError, match="No config named 'default.toml'"):
        load_algorithm("elo", config_dir=tmp_path)
