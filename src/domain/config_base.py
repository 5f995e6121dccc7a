"""Shared config-loading utilities for ranking algorithms."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar
import tomllib

from domain.ratings.common import PerformanceWeights


@dataclass(frozen=True)
class BaseSystemConfig:
    """Metadata shared across all ranking-algorithm configs."""

    name: str
    description: str | None
    file_path: Path


T = TypeVar("T", bound=BaseSystemConfig)


def load_toml(file_path: Path) -> dict[str, Any]:
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    with file_path.open("rb") as file:
        return tomllib.load(file)


def load_system_configs(
    config_dir: Path,
    parser: Callable[[dict[str, Any], Path], T],
    *,
    duplicate_name_label: str = "ranking",
) -> list[T]:
    """Load all TOML files in a directory with duplicate-name validation."""
    if not config_dir.exists():
        raise FileNotFoundError(f"Config directory not found: {config_dir}")
    if not config_dir.is_dir():
        raise NotADirectoryError(f"Config path is not a directory: {config_dir}")

    config_files = sorted(config_dir.glob("*.toml"))
    if not config_files:
        raise ValueError(f"No .toml config files found in: {config_dir}")

    systems: list[T] = []
    for file_path in config_files:
        systems.append(parser(load_toml(file_path), file_path))

    names = [system.name for system in systems]
    if len(names) != len(set(names)):
        raise ValueError(
            f"Duplicate {duplicate_name_label} system names found in {config_dir}: {names}"
        )

    return systems


def parse_system_section(raw: dict[str, Any], file_path: Path) -> tuple[str, str | None]:
    system_raw = raw.get("system", {})
    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)
    return name, description


def parse_performance_weights(raw: dict[str, Any], file_path: Path) -> PerformanceWeights:
    """Read the optional [performance] section shared by every algorithm."""
    defaults = PerformanceWeights()
    performance_raw = raw.get("performance", {})
    weights = PerformanceWeights(
        kill_margin_weight=float(performance_raw.get("kill_margin_weight", defaults.kill_margin_weight)),
        adr_weight=float(performance_raw.get("adr_weight", defaults.adr_weight)),
        adr_baseline=float(performance_raw.get("adr_baseline", defaults.adr_baseline)),
        headshot_weight=float(performance_raw.get("headshot_weight", defaults.headshot_weight)),
        assist_weight=float(performance_raw.get("assist_weight", defaults.assist_weight)),
        index_scale=float(performance_raw.get("index_scale", defaults.index_scale)),
    )

    for key in ("kill_margin_weight", "adr_weight", "headshot_weight", "assist_weight"):
        if getattr(weights, key) < 0.0:
            raise ValueError(f"{file_path}: [performance].{key} must be >= 0")
    if weights.adr_baseline <= 0.0:
        raise ValueError(f"{file_path}: [performance].adr_baseline must be > 0")
    if weights.index_scale <= 0.0:
        raise ValueError(f"{file_path}: [performance].index_scale must be > 0")
    return weights


__all__ = [
    "BaseSystemConfig",
    "load_system_configs",
    "load_toml",
    "parse_performance_weights",
    "parse_system_section",
]
