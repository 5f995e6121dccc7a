"""Database repositories."""

from repositories.game_repository import GameRepository

__all__ = ["GameRepository"]
