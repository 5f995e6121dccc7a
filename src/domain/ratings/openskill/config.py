"""Load OpenSkill ranking definitions from TOML files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from domain.config_base import (
    BaseSystemConfig,
    load_system_configs,
    parse_performance_weights,
    parse_system_section,
)
from domain.ratings.openskill.calculator import OpenSkillParameters


@dataclass(frozen=True)
class OpenSkillSystemConfig(BaseSystemConfig):
    """Configuration for one OpenSkill ranking setup."""

    parameters: OpenSkillParameters


def load_openskill_system_configs(config_dir: Path) -> list[OpenSkillSystemConfig]:
    """Load and validate all OpenSkill TOML config files in a directory."""
    return load_system_configs(config_dir, _parse_config, duplicate_name_label="openskill")


def _parse_bool(value: Any, *, file_path: Path, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes", "on"):
            return True
        if normalized in ("false", "0", "no", "off"):
            return False
    raise ValueError(f"{file_path}: [openskill].{key} must be a boolean")


def _parse_config(raw: dict[str, Any], file_path: Path) -> OpenSkillSystemConfig:
    name, description = parse_system_section(raw, file_path)
    openskill_raw = raw.get("openskill", {})
    defaults = OpenSkillParameters()

    parameters = OpenSkillParameters(
        initial_mu=float(openskill_raw.get("initial_mu", defaults.initial_mu)),
        sigma=float(openskill_raw.get("sigma", defaults.sigma)),
        field_sigma=float(openskill_raw.get("field_sigma", defaults.field_sigma)),
        beta=float(openskill_raw.get("beta", defaults.beta)),
        kappa=float(openskill_raw.get("kappa", defaults.kappa)),
        tau=float(openskill_raw.get("tau", defaults.tau)),
        limit_sigma=_parse_bool(openskill_raw.get("limit_sigma", False), file_path=file_path, key="limit_sigma"),
        balance=_parse_bool(openskill_raw.get("balance", False), file_path=file_path, key="balance"),
        weights=parse_performance_weights(raw, file_path),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    return OpenSkillSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
    )


def _validate_parameters(*, file_path: Path, parameters: OpenSkillParameters) -> None:
    if parameters.initial_mu <= 0.0:
        raise ValueError(f"{file_path}: [openskill].initial_mu must be > 0")
    if parameters.sigma <= 0.0:
        raise ValueError(f"{file_path}: [openskill].sigma must be > 0")
    if parameters.field_sigma <= 0.0:
        raise ValueError(f"{file_path}: [openskill].field_sigma must be > 0")
    if parameters.beta <= 0.0:
        raise ValueError(f"{file_path}: [openskill].beta must be > 0")
    if parameters.kappa <= 0.0:
        raise ValueError(f"{file_path}: [openskill].kappa must be > 0")
    if parameters.tau < 0.0:
        raise ValueError(f"{file_path}: [openskill].tau must be >= 0")


__all__ = ["OpenSkillSystemConfig", "load_openskill_system_configs"]
