"""Load ingestion settings from TOML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import load_toml

ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_INGESTION_CONFIG = ROOT_DIR / "configs" / "ingestion.toml"


@dataclass(frozen=True)
class RankingSettings:
    algorithm: str = "elo"
    config_name: str = "default.toml"
    config_dir: Path | None = None


@dataclass(frozen=True)
class IngestionSettings:
    max_workers: int = 4
    min_server_accolades: int = 0
    include_bots: bool = False
    accolade_top_n: int = 3
    storage_root: Path = Path("data/logs")
    ranking: RankingSettings = field(default_factory=RankingSettings)


def load_ingestion_settings(file_path: Path = DEFAULT_INGESTION_CONFIG) -> IngestionSettings:
    """Read and validate ``[ingestion]`` and ``[ranking]``; relative paths resolve against the file."""
    raw = load_toml(file_path)
    ingestion_raw: dict[str, Any] = raw.get("ingestion", {})
    ranking_raw: dict[str, Any] = raw.get("ranking", {})
    defaults = IngestionSettings()

    include_bots = ingestion_raw.get("include_bots", defaults.include_bots)
    if not isinstance(include_bots, bool):
        raise ValueError(f"{file_path}: [ingestion].include_bots must be a boolean")

    storage_root = Path(str(ingestion_raw.get("storage_root", defaults.storage_root)))
    if not storage_root.is_absolute():
        storage_root = file_path.parent.parent / storage_root

    config_dir_value = ranking_raw.get("config_dir")
    config_dir = None
    if config_dir_value is not None:
        config_dir = Path(str(config_dir_value))
        if not config_dir.is_absolute():
            config_dir = file_path.parent / config_dir

    settings = IngestionSettings(
        max_workers=int(ingestion_raw.get("max_workers", defaults.max_workers)),
        min_server_accolades=int(ingestion_raw.get("min_server_accolades", defaults.min_server_accolades)),
        include_bots=include_bots,
        accolade_top_n=int(ingestion_raw.get("accolade_top_n", defaults.accolade_top_n)),
        storage_root=storage_root,
        ranking=RankingSettings(
            algorithm=str(ranking_raw.get("algorithm", defaults.ranking.algorithm)).strip().lower(),
            config_name=str(ranking_raw.get("config_name", defaults.ranking.config_name)),
            config_dir=config_dir,
        ),
    )
    _validate_settings(file_path=file_path, settings=settings)
    return settings


def _validate_settings(*, file_path: Path, settings: IngestionSettings) -> None:
    if settings.max_workers <= 0:
        raise ValueError(f"{file_path}: [ingestion].max_workers must be > 0")
    if settings.min_server_accolades < 0:
        raise ValueError(f"{file_path}: [ingestion].min_server_accolades must be >= 0")
    if settings.accolade_top_n <= 0:
        raise ValueError(f"{file_path}: [ingestion].accolade_top_n must be > 0")
    if not settings.ranking.algorithm:
        raise ValueError(f"{file_path}: [ranking].algorithm is required")


__all__ = [
    "DEFAULT_INGESTION_CONFIG",
    "IngestionSettings",
    "RankingSettings",
    "load_ingestion_settings",
]
