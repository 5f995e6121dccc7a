"""Tests for TOML-based ranking and ingestion config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.config import load_ingestion_settings
from domain.ratings.common import PerformanceWeights
from domain.ratings.elo.config import load_elo_system_configs
from domain.ratings.openskill.config import load_openskill_system_configs


def test_load_elo_system_configs_from_directory(tmp_path: Path) -> None:
    config_path = tmp_path / "default.toml"
    config_path.write_text(
        """
[system]
name = "system_a"
description = "A test system"

[elo]
initial_rating = 1200.0
k_factor = 24.0
scale_factor = 420.0

[performance]
adr_baseline = 75.0
assist_weight = 0.5
""".strip()
    )

    configs = load_elo_system_configs(tmp_path)
    assert len(configs) == 1

    system = configs[0]
    assert system.name == "system_a"
    assert system.description == "A test system"
    assert system.file_path == config_path
    assert system.parameters.initial_rating == pytest.approx(1200.0)
    assert system.parameters.k_factor == pytest.approx(24.0)
    assert system.parameters.scale_factor == pytest.approx(420.0)
    assert system.parameters.weights.adr_baseline == pytest.approx(75.0)
    assert system.parameters.weights.assist_weight == pytest.approx(0.5)
    assert system.parameters.weights.kill_margin_weight == pytest.approx(1.0)


def test_elo_config_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / "default.toml").write_text('[system]\nname = "defaults"\n')

    system = load_elo_system_configs(tmp_path)[0]

    assert system.description is None
    assert system.parameters.initial_rating == pytest.approx(1000.0)
    assert system.parameters.k_factor == pytest.approx(32.0)


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ('[elo]\nk_factor = 10.0\n', "[system].name is required"),
        ('[system]\nname = "x"\n[elo]\nk_factor = 0.0\n', "[elo].k_factor must be > 0"),
        ('[system]\nname = "x"\n[performance]\nadr_baseline = 0.0\n', "[performance].adr_baseline must be > 0"),
        ('[system]\nname = "x"\n[performance]\nadr_weight = -1.0\n', "[performance].adr_weight must be >= 0"),
    ],
)
def test_invalid_elo_configs_are_rejected(tmp_path: Path, body: str, message: str) -> None:
    (tmp_path / "bad.toml").write_text(body)

    with pytest.raises(ValueError, match=message.replace("[", r"\[").replace("]", r"\]")):
        load_elo_system_configs(tmp_path)


def test_duplicate_system_names_are_rejected(tmp_path: Path) -> None:
    (tmp_path / "a.toml").write_text('[system]\nname = "same"\n')
    (tmp_path / "b.toml").write_text('[system]\nname = "same"\n')

    with pytest.raises(ValueError, match="Duplicate elo system names"):
        load_elo_system_configs(tmp_path)


def test_missing_or_empty_config_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_elo_system_configs(tmp_path / "missing")
    with pytest.raises(ValueError, match="No .toml config files"):
        load_elo_system_configs(tmp_path)


def test_load_openskill_system_configs(tmp_path: Path) -> None:
    (tmp_path / "default.toml").write_text(
        """
[system]
name = "os"

[openskill]
initial_mu = 1500.0
sigma = 80.0
beta = 40.0
tau = 0.5
limit_sigma = "yes"
balance = true
""".strip()
    )

    system = load_openskill_system_configs(tmp_path)[0]

    assert system.parameters.initial_mu == pytest.approx(1500.0)
    assert system.parameters.sigma == pytest.approx(80.0)
    assert system.parameters.field_sigma == pytest.approx(100.0)
    assert system.parameters.beta == pytest.approx(40.0)
    assert system.parameters.tau == pytest.approx(0.5)
    assert system.parameters.limit_sigma is True
    assert system.parameters.balance is True
    assert system.parameters.weights == PerformanceWeights()


def test_openskill_rejects_non_boolean_flags(tmp_path: Path) -> None:
    (tmp_path / "default.toml").write_text('[system]\nname = "os"\n[openskill]\nbalance = "sometimes"\n')

    with pytest.raises(ValueError, match="must be a boolean"):
        load_openskill_system_configs(tmp_path)


def test_load_ingestion_settings(tmp_path: Path) -> None:
    configs_dir = tmp_path / "configs"
    configs_dir.mkdir()
    config_path = configs_dir / "ingestion.toml"
    config_path.write_text(
        """
[ingestion]
max_workers = 2
min_server_accolades = 6
include_bots = true
accolade_top_n = 5
storage_root = "logs"

[ranking]
algorithm = "OpenSkill"
config_name = "fast.toml"
config_dir = "ratings/openskill"
""".strip()
    )

    settings = load_ingestion_settings(config_path)

    assert settings.max_workers == 2
    assert settings.min_server_accolades == 6
    assert settings.include_bots is True
    assert settings.accolade_top_n == 5
    assert settings.storage_root == tmp_path / "logs"
    assert settings.ranking.algorithm == "openskill"
    assert settings.ranking.config_name == "fast.toml"
    assert settings.ranking.config_dir == configs_dir / "ratings" / "openskill"


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("[ingestion]\nmax_workers = 0\n", "max_workers must be > 0"),
        ("[ingestion]\naccolade_top_n = 0\n", "accolade_top_n must be > 0"),
        ("[ingestion]\ninclude_bots = 1\n", "include_bots must be a boolean"),
        ("[ingestion]\nmin_server_accolades = -1\n", "min_server_accolades must be >= 0"),
    ],
)
def test_invalid_ingestion_settings(tmp_path: Path, body: str, message: str) -> None:
    config_path = tmp_path / "ingestion.toml"
    config_path.write_text(body)

    with pytest.raises(ValueError, match=message):
        load_ingestion_settings(config_path)


def test_missing_ingestion_config(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_ingestion_settings(tmp_path / "nope.toml")
