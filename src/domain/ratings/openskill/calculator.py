"""Player OpenSkill ranking (Plackett-Luce model)."""

from __future__ import annotations

from dataclasses import dataclass, field

from openskill.models import PlackettLuce

from domain.ratings.common import GamePerformance, PerformanceWeights, performance_index


@dataclass(frozen=True)
class OpenSkillParameters:
    initial_mu: float = 1000.0
    sigma: float = 100.0
    field_sigma: float = 100.0
    beta: float = 50.0
    kappa: float = 0.0001
    tau: float = 0.0
    limit_sigma: bool = False
    balance: bool = False
    weights: PerformanceWeights = field(default_factory=PerformanceWeights)


class OpenSkillRankingAlgorithm:
    """Rates each player as a one-on-one game against the lobby field.

    The player enters with ``mu = prior`` and a fixed sigma, so the update is
    pure in (prior, performance); positive performance ranks the player first,
    negative ranks the field first, and zero is a draw.
    """

    algorithm = "openskill"

    def __init__(self, params: OpenSkillParameters) -> None:
        self.params = params
        self._model = PlackettLuce(
            mu=self.params.initial_mu,
            sigma=self.params.sigma,
            beta=self.params.beta,
            kappa=self.params.kappa,
            tau=self.params.tau,
            limit_sigma=self.params.limit_sigma,
            balance=self.params.balance,
        )

    @property
    def initial_rating(self) -> float:
        return self.params.initial_mu

    def update(self, prior_rating: float, performance: GamePerformance) -> float:
        lobby_rating = prior_rating if performance.lobby_rating is None else performance.lobby_rating
        player = self._model.rating(mu=prior_rating, sigma=self.params.sigma, name="player")
        lobby = self._model.rating(mu=lobby_rating, sigma=self.params.field_sigma, name="lobby")

        index = performance_index(performance, self.params.weights)
        if index > 0.0:
            ranks = [1, 2]
        elif index < 0.0:
            ranks = [2, 1]
        else:
            ranks = [1, 1]

        updated = self._model.rate([[player], [lobby]], ranks=ranks)
        return float(updated[0][0].mu)


__all__ = ["OpenSkillParameters", "OpenSkillRankingAlgorithm"]
