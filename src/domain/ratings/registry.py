"""Registry of available ranking algorithm implementations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from domain.config_base import BaseSystemConfig
from domain.ratings.elo.calculator import EloRankingAlgorithm
from domain.ratings.elo.config import EloSystemConfig, load_elo_system_configs
from domain.ratings.openskill.calculator import OpenSkillRankingAlgorithm
from domain.ratings.openskill.config import OpenSkillSystemConfig, load_openskill_system_configs
from domain.ratings.protocol import RankingAlgorithm

ROOT_DIR = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_NAME = "default.toml"

LoadConfigsFn = Callable[[Path], list[Any]]
CreateAlgorithmFn = Callable[[Any], RankingAlgorithm]


@dataclass(frozen=True)
class RankingDescriptor:
    """Everything required to build one ranking algorithm from config."""

    algorithm: str
    config_dir: Path
    load_configs: LoadConfigsFn
    create_algorithm: CreateAlgorithmFn


_REGISTRY: dict[str, RankingDescriptor] = {}


def register(descriptor: RankingDescriptor) -> None:
    """Register one ranking descriptor."""
    key = descriptor.algorithm.lower()
    if key in _REGISTRY:
        raise ValueError(f"Duplicate ranking descriptor registration for algorithm={key}")
    _REGISTRY[key] = descriptor


def get_all() -> list[RankingDescriptor]:
    """Return all registered descriptors in deterministic order."""
    return [_REGISTRY[key] for key in sorted(_REGISTRY)]


def get(algorithm: str) -> RankingDescriptor:
    """Get one registered descriptor by algorithm name."""
    try:
        return _REGISTRY[algorithm.lower()]
    except KeyError as exc:
        available = ", ".join(sorted(_REGISTRY))
        raise ValueError(f"Unknown ranking algorithm '{algorithm}'. Available: {available}") from exc


def load_algorithm(
    algorithm: str,
    *,
    config_dir: Path | None = None,
    config_name: str = DEFAULT_CONFIG_NAME,
) -> tuple[RankingAlgorithm, BaseSystemConfig]:
    """Build the named algorithm from one config file in its config directory."""
    descriptor = get(algorithm)
    target_dir = config_dir or descriptor.config_dir
    configs = descriptor.load_configs(target_dir)
    for config in configs:
        if config.file_path.name == config_name:
            return descriptor.create_algorithm(config), config
    raise ValueError(f"No config named '{config_name}' found in {target_dir}")


def _create_elo(config: EloSystemConfig) -> RankingAlgorithm:
    return EloRankingAlgorithm(config.parameters)


def _create_openskill(config: OpenSkillSystemConfig) -> RankingAlgorithm:
    return OpenSkillRankingAlgorithm(config.parameters)


register(
    RankingDescriptor(
        algorithm="elo",
        config_dir=ROOT_DIR / "configs" / "ratings" / "elo",
        load_configs=load_elo_system_configs,
        create_algorithm=_create_elo,
    )
)
register(
    RankingDescriptor(
        algorithm="openskill",
        config_dir=ROOT_DIR / "configs" / "ratings" / "openskill",
        load_configs=load_openskill_system_configs,
        create_algorithm=_create_openskill,
    )
)


__all__ = ["RankingDescriptor", "get", "get_all", "load_algorithm", "register"]
