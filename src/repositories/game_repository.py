"""Persistence for ingested games, their events, stats and accolades."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from domain.errors import DuplicateGameError
from domain.events import (
    AssistEvent,
    AttackEvent,
    BombEvent,
    GameEvent,
    GameOverEvent,
    KillEvent,
    RoundEndEvent,
    RoundStartEvent,
)
from domain.pipeline import GameBundle
from domain.rounds import GameSignature, ReconstructedGame, Round
from domain.stats import Accolade, PlayerGameStats
from models import AccoladeRecord, Base, Game, GameEventRecord, GameRound, PlayerGameStat

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING_RELATION_MARKERS = ("no such table", "does not exist", "undefinedtable")


class GameRepository:
    """Reusable persistence operations for the ingestion pipeline.

    Write methods flush but never commit; ``save_game_bundle`` is the unit of
    work that commits (or rolls back) one whole game.
    """

    models = (Game, GameRound, GameEventRecord, PlayerGameStat, AccoladeRecord)

    def ensure_schema(self, engine: Engine) -> None:
        """Create required tables and indexes when missing."""
        with engine.begin() as connection:
            Base.metadata.create_all(
                bind=connection,
                tables=[model.__table__ for model in self.models],
                checkfirst=True,
            )

    def find_game_by_signature(self, session: Session, signature: GameSignature) -> Game | None:
        statement = select(Game).where(
            Game.end_time == signature.end_time,
            Game.map_name == signature.map_name,
        )
        return self._read(session, lambda: session.execute(statement).scalar_one_or_none(), None)

    def save_game(self, session: Session, game: ReconstructedGame, *, source_path: str | None = None) -> Game:
        """Insert the game row; a signature conflict rolls back and raises DuplicateGameError."""
        game_over = game.game_over
        record = Game(
            map_name=game_over.map_name,
            mode=game_over.mode,
            start_time=game.start_time,
            end_time=game.end_time,
            team1_score=game_over.team1_score,
            team2_score=game_over.team2_score,
            duration_minutes=game_over.duration_minutes,
            source_path=source_path,
        )
        session.add(record)
        try:
            session.flush()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateGameError(
                f"Game on {game_over.map_name} ending {game_over.timestamp} is already stored"
            ) from exc
        return record

    def save_rounds(self, session: Session, game_id: int, rounds: Sequence[Round]) -> None:
        if not rounds:
            return
        payload = [
            {
                "game_id": game_id,
                "round_index": game_round.index,
                "start_time": game_round.start_time,
                "end_time": game_round.end_time,
                "winner": None if game_round.winner is None else game_round.winner.value,
                "participant_ids": list(game_round.participant_ids),
            }
            for game_round in rounds
        ]
        session.execute(insert(GameRound), payload)

    def save_events(self, session: Session, game_id: int, events: Sequence[GameEvent]) -> None:
        if not events:
            return
        payload = [event_to_row(event, game_id, sequence) for sequence, event in enumerate(events, start=1)]
        session.execute(insert(GameEventRecord), payload)

    def save_player_stats(
        self,
        session: Session,
        game_id: int,
        game: ReconstructedGame,
        stats: Sequence[PlayerGameStats],
        *,
        rating_algorithm: str | None = None,
    ) -> None:
        if not stats:
            return
        payload = [
            {
                "game_id": game_id,
                "player_id": item.player_id,
                "nickname": item.nickname,
                "resolved": item.resolved,
                "event_time": game.end_time,
                "kills": item.kills,
                "deaths": item.deaths,
                "assists": item.assists,
                "headshot_kills": item.headshot_kills,
                "damage_dealt": item.damage_dealt,
                "rounds_played": item.rounds_played,
                "pre_rating": item.pre_rating,
                "rating": item.rating,
                "rating_delta": item.rating_delta,
                "rating_algorithm": rating_algorithm if item.rating is not None else None,
            }
            for item in stats
        ]
        session.execute(insert(PlayerGameStat), payload)

    def save_accolades(self, session: Session, game_id: int, accolades: Sequence[Accolade]) -> None:
        if not accolades:
            return
        payload = [
            {
                "game_id": game_id,
                "player_id": accolade.player_id,
                "accolade_type": accolade.accolade_type,
                "value": accolade.value,
                "position": accolade.position,
                "source": accolade.source.value,
                "score": accolade.score,
            }
            for accolade in accolades
        ]
        session.execute(insert(AccoladeRecord), payload)

    def save_game_bundle(self, session: Session, bundle: GameBundle) -> int:
        """Write one game with all dependent rows in a single transaction."""
        try:
            record = self.save_game(session, bundle.game, source_path=bundle.source_path)
            game_id = int(record.id)
            self.save_rounds(session, game_id, bundle.rounds)
            self.save_events(session, game_id, bundle.game.events)
            self.save_player_stats(
                session,
                game_id,
                bundle.game,
                bundle.player_stats,
                rating_algorithm=bundle.rating_algorithm,
            )
            self.save_accolades(session, game_id, bundle.accolades)
            session.commit()
        except DuplicateGameError:
            raise
        except Exception:
            session.rollback()
            raise
        return game_id

    def find_events_by_game(self, session: Session, game_id: int) -> list[GameEventRecord]:
        statement = (
            select(GameEventRecord)
            .where(GameEventRecord.game_id == game_id)
            .order_by(GameEventRecord.sequence)
        )
        return self._read(session, lambda: list(session.execute(statement).scalars()), [])

    def find_rounds_by_game(self, session: Session, game_id: int) -> list[GameRound]:
        statement = select(GameRound).where(GameRound.game_id == game_id).order_by(GameRound.round_index)
        return self._read(session, lambda: list(session.execute(statement).scalars()), [])

    def find_player_stats_by_game(self, session: Session, game_id: int) -> list[PlayerGameStat]:
        statement = (
            select(PlayerGameStat)
            .where(PlayerGameStat.game_id == game_id)
            .order_by(PlayerGameStat.player_id)
        )
        return self._read(session, lambda: list(session.execute(statement).scalars()), [])

    def find_accolades_by_game(self, session: Session, game_id: int) -> list[AccoladeRecord]:
        statement = (
            select(AccoladeRecord)
            .where(AccoladeRecord.game_id == game_id)
            .order_by(AccoladeRecord.source, AccoladeRecord.accolade_type, AccoladeRecord.position)
        )
        return self._read(session, lambda: list(session.execute(statement).scalars()), [])

    def latest_ratings(
        self,
        session: Session,
        player_ids: Iterable[str] | None = None,
        *,
        rating_algorithm: str | None = None,
    ) -> dict[str, float]:
        """Most recent stored rating per player, by game end time."""
        statement = select(PlayerGameStat).where(PlayerGameStat.rating.is_not(None))
        if player_ids is not None:
            wanted = list(player_ids)
            if not wanted:
                return {}
            statement = statement.where(PlayerGameStat.player_id.in_(wanted))
        if rating_algorithm is not None:
            statement = statement.where(PlayerGameStat.rating_algorithm == rating_algorithm)
        statement = statement.order_by(PlayerGameStat.event_time, PlayerGameStat.game_id)

        rows = self._read(session, lambda: list(session.execute(statement).scalars()), [])
        latest: dict[str, float] = {}
        for row in rows:
            if row.rating is not None:
                latest[row.player_id] = float(row.rating)
        return latest

    def latest_player_rows(self, session: Session, *, rating_algorithm: str | None = None) -> list[PlayerGameStat]:
        """Each player's newest stat row carrying a rating, for leaderboards."""
        statement = select(PlayerGameStat).where(PlayerGameStat.rating.is_not(None))
        if rating_algorithm is not None:
            statement = statement.where(PlayerGameStat.rating_algorithm == rating_algorithm)
        statement = statement.order_by(PlayerGameStat.event_time, PlayerGameStat.game_id)

        rows = self._read(session, lambda: list(session.execute(statement).scalars()), [])
        latest: dict[str, PlayerGameStat] = {}
        for row in rows:
            latest[row.player_id] = row
        return list(latest.values())

    def count_games(self, session: Session) -> int:
        return self._read(session, lambda: int(session.scalar(select(func.count(Game.id))) or 0), 0)

    def count_accolades(self, session: Session) -> int:
        return self._read(session, lambda: int(session.scalar(select(func.count(AccoladeRecord.id))) or 0), 0)

    def count_events(self, session: Session) -> int:
        return self._read(session, lambda: int(session.scalar(select(func.count(GameEventRecord.id))) or 0), 0)

    def count_player_stats(self, session: Session) -> int:
        return self._read(session, lambda: int(session.scalar(select(func.count(PlayerGameStat.id))) or 0), 0)

    def fetch_rating_history(self, session: Session) -> list[PlayerGameStat]:
        """All stat rows in chronological game order, for rating replay."""
        statement = select(PlayerGameStat).order_by(
            PlayerGameStat.event_time,
            PlayerGameStat.game_id,
            PlayerGameStat.player_id,
        )
        return self._read(session, lambda: list(session.execute(statement).scalars()), [])

    def update_ratings(self, session: Session, updates: Sequence[dict[str, Any]]) -> None:
        """Bulk update rating columns; each dict carries the row ``id``."""
        if not updates:
            return
        session.execute(update(PlayerGameStat), list(updates))

    def _read(self, session: Session, query, empty: T) -> T:
        try:
            return query()
        except (OperationalError, ProgrammingError) as exc:
            if not _is_missing_relation(exc):
                raise
            logger.debug("Relation not provisioned yet, returning empty result: %s", exc.orig)
            session.rollback()
            return empty


def _is_missing_relation(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _MISSING_RELATION_MARKERS)


def event_to_row(event: GameEvent, game_id: int, sequence: int) -> dict[str, Any]:
    """Flatten one event into a game_events row."""
    return {
        "game_id": game_id,
        "round_index": event.round_index,
        "sequence": sequence,
        "event_type": event.event_type.value,
        "event_time": event.timestamp,
        "actor_id": event.actor_id,
        "target_id": event.target_id,
        "details_json": _event_details(event),
    }


def _event_details(event: GameEvent) -> dict[str, Any]:
    match event:
        case KillEvent():
            return {
                "attacker": event.attacker.name,
                "attacker_team": event.attacker.team,
                "victim": event.victim.name,
                "victim_team": event.victim.team,
                "weapon": event.weapon,
                "is_headshot": event.is_headshot,
            }
        case AssistEvent():
            return {
                "assister": event.assister.name,
                "victim": event.victim.name,
                "is_flash": event.is_flash,
            }
        case AttackEvent():
            return {
                "attacker": event.attacker.name,
                "victim": event.victim.name,
                "weapon": event.weapon,
                "hitgroup": event.hitgroup,
                "reported_damage": event.reported_damage,
                "armor_damage": event.armor_damage,
                "health_remaining": event.health_remaining,
                "computed_damage": event.computed_damage,
                "damage_anomaly": event.damage_anomaly,
            }
        case BombEvent():
            return {"player": event.player.name, "action": event.action.value, "bombsite": event.bombsite}
        case RoundStartEvent():
            return {}
        case RoundEndEvent():
            return {"participant_ids": list(event.participant_ids)}
        case GameOverEvent():
            return {
                "mode": event.mode,
                "map_name": event.map_name,
                "team1_score": event.team1_score,
                "team2_score": event.team2_score,
                "duration_minutes": event.duration_minutes,
                "server_accolades": len(event.accolades),
            }


__all__ = ["GameRepository", "event_to_row"]
