"""ORM models."""

from models.accolade import AccoladeRecord
from models.base import Base
from models.game import Game
from models.game_event import GameEventRecord
from models.player_game_stat import PlayerGameStat
from models.round import GameRound

__all__ = [
    "AccoladeRecord",
    "Base",
    "Game",
    "GameEventRecord",
    "GameRound",
    "PlayerGameStat",
]
