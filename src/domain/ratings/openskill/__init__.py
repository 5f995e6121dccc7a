"""OpenSkill ranking modules."""

from domain.ratings.openskill.calculator import OpenSkillParameters, OpenSkillRankingAlgorithm
from domain.ratings.openskill.config import OpenSkillSystemConfig, load_openskill_system_configs

__all__ = [
    "OpenSkillParameters",
    "OpenSkillRankingAlgorithm",
    "OpenSkillSystemConfig",
    "load_openskill_system_configs",
]
