"""Infer per-round winners from the final score alone."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from domain.rounds import Round, Side


def estimate_round_winners(
    rounds: Sequence[Round],
    team1_score: int,
    team2_score: int,
) -> list[Round]:
    """Allocate the final CT/T score back over the rounds, last round first.

    The log carries no per-round win signal, so this is a heuristic kept for
    parity with previously ingested games. When ``len(rounds)`` equals the score
    total, the winners always add up to the final score.
    """
    if team1_score < 0 or team2_score < 0:
        raise ValueError("team scores must be >= 0")

    remaining_ct = team1_score
    remaining_t = team2_score
    estimated: list[Round] = list(rounds)

    for position, game_round in enumerate(reversed(rounds), start=1):
        rounds_remaining = position
        if remaining_ct > rounds_remaining:
            winner = Side.CT
        elif remaining_t > rounds_remaining:
            winner = Side.T
        elif remaining_ct / rounds_remaining >= remaining_t / rounds_remaining:
            winner = Side.CT
        else:
            winner = Side.T

        if winner is Side.CT and remaining_ct > 0:
            remaining_ct -= 1
        elif winner is Side.T and remaining_t > 0:
            remaining_t -= 1

        estimated[len(rounds) - position] = replace(game_round, winner=winner)

    return estimated


__all__ = ["estimate_round_winners"]
