"""Domain exceptions raised or recorded during log ingestion."""

from __future__ import annotations

from domain.events import GameOverEvent


class IngestionError(Exception):
    """Base class for ingestion failures."""


class GameReconstructionError(IngestionError):
    """A Game Over line whose rounds could not be reconstructed; the game is skipped."""

    def __init__(self, game_over: GameOverEvent, reason: str) -> None:
        super().__init__(f"{game_over.map_name} at {game_over.timestamp}: {reason}")
        self.game_over = game_over
        self.reason = reason


class DuplicateGameError(IngestionError):
    """A game with the same (end_time, map_name) signature is already stored."""


__all__ = ["DuplicateGameError", "GameReconstructionError", "IngestionError"]
