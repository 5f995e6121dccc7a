"""Tests for persisting ingested games with SQLite."""

from __future__ import annotations

from pathlib import Path

import pytest

from db import create_db_engine, create_session_factory
from domain.errors import DuplicateGameError
from domain.identity import PlayerIdentityResolver
from domain.parser import LogParser
from domain.pipeline import GameBundle, build_game_bundle
from domain.ratings.elo.calculator import EloParameters, EloRankingAlgorithm
from domain.rounds import GameSignature, RoundStateTracker
from log_builders import LogBuilder, two_round_game
from repositories.game_repository import GameRepository


def _bundle(map_name: str = "de_dust2", priors: dict[str, float] | None = None) -> GameBundle:
    stream = LogParser().parse(two_round_game(LogBuilder(), map_name=map_name).lines)
    (game,) = RoundStateTracker().reconstruct(stream)
    return build_game_bundle(
        game,
        resolver=PlayerIdentityResolver(),
        algorithm=EloRankingAlgorithm(EloParameters()),
        fetch_priors=lambda player_ids: dict(priors or {}),
        source_path="s3://cs2-logs/server.log",
    )


def _session_factory(tmp_path: Path, *, provision: bool = True):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'rankforge.db'}")
    if provision:
        GameRepository().ensure_schema(engine)
    return create_session_factory(engine)


def test_save_game_bundle_writes_all_rows(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()
    bundle = _bundle()

    with session_factory() as session:
        game_id = repository.save_game_bundle(session, bundle)

    with session_factory() as session:
        stored = repository.find_game_by_signature(session, bundle.game.signature)
        assert stored is not None
        assert stored.id == game_id
        assert stored.map_name == "de_dust2"
        assert (stored.team1_score, stored.team2_score) == (1, 1)
        assert stored.source_path == "s3://cs2-logs/server.log"

        rounds = repository.find_rounds_by_game(session, game_id)
        assert [(row.round_index, row.winner) for row in rounds] == [(1, "T"), (2, "CT")]
        assert rounds[0].participant_ids == ["100", "200", "300"]

        events = repository.find_events_by_game(session, game_id)
        assert [row.sequence for row in events] == list(range(1, len(bundle.game.events) + 1))
        assert events[-1].event_type == "GAME_OVER"
        assert events[-1].details_json["map_name"] == "de_dust2"

        stats = repository.find_player_stats_by_game(session, game_id)
        assert [row.player_id for row in stats] == ["[U:1:100]", "[U:1:200]", "[U:1:300]"]
        assert stats[0].kills == 1
        assert stats[0].damage_dealt == 100
        assert stats[0].rating_algorithm == "elo"
        assert all(row.pre_rating == pytest.approx(1000.0) for row in stats)

        assert repository.count_accolades(session) == len(bundle.accolades)
        assert len(repository.find_accolades_by_game(session, game_id)) == len(bundle.accolades)
        assert repository.count_games(session) == 1


def test_duplicate_signature_raises_and_keeps_one_game(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()

    with session_factory() as session:
        repository.save_game_bundle(session, _bundle())
    with session_factory() as session:
        with pytest.raises(DuplicateGameError):
            repository.save_game_bundle(session, _bundle())

    with session_factory() as session:
        assert repository.count_games(session) == 1
        assert repository.count_accolades(session) == len(_bundle().accolades)


def test_same_end_time_on_another_map_is_a_new_game(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()

    with session_factory() as session:
        repository.save_game_bundle(session, _bundle("de_dust2"))
        repository.save_game_bundle(session, _bundle("de_mirage"))

    with session_factory() as session:
        assert repository.count_games(session) == 2


def test_reads_against_an_unprovisioned_database_are_empty(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path, provision=False)
    repository = GameRepository()
    signature = _bundle().game.signature

    with session_factory() as session:
        assert repository.find_game_by_signature(session, signature) is None
        assert repository.count_games(session) == 0
        assert repository.latest_ratings(session) == {}
        assert repository.find_events_by_game(session, 1) == []
        assert repository.fetch_rating_history(session) == []


def test_latest_ratings_follow_game_end_time(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()
    first = _bundle("de_dust2")
    with session_factory() as session:
        repository.save_game_bundle(session, first)
        first_ratings = repository.latest_ratings(session, rating_algorithm="elo")

    second = _bundle("de_mirage", priors=first_ratings)
    with session_factory() as session:
        repository.save_game_bundle(session, second)

    with session_factory() as session:
        latest = repository.latest_ratings(session, ["[U:1:100]", "[U:1:300]"], rating_algorithm="elo")
        assert set(latest) == {"[U:1:100]", "[U:1:300]"}
        expected = {item.player_id: item.rating for item in second.player_stats}
        assert latest["[U:1:100]"] == pytest.approx(expected["[U:1:100]"])
        assert repository.latest_ratings(session, [], rating_algorithm="elo") == {}
        assert repository.latest_ratings(session, rating_algorithm="openskill") == {}
        assert len(repository.latest_player_rows(session, rating_algorithm="elo")) == 3


def test_update_ratings_rewrites_rating_columns(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()
    with session_factory() as session:
        repository.save_game_bundle(session, _bundle())

    with session_factory() as session:
        rows = repository.fetch_rating_history(session)
        repository.update_ratings(
            session,
            [
                {"id": row.id, "pre_rating": 1.0, "rating": 2.0, "rating_delta": 1.0, "rating_algorithm": "openskill"}
                for row in rows
            ],
        )
        session.commit()

    with session_factory() as session:
        assert repository.latest_ratings(session, rating_algorithm="openskill") == {
            "[U:1:100]": 2.0,
            "[U:1:200]": 2.0,
            "[U:1:300]": 2.0,
        }


def test_signature_lookup_misses_other_games(tmp_path: Path) -> None:
    session_factory = _session_factory(tmp_path)
    repository = GameRepository()
    bundle = _bundle()
    with session_factory() as session:
        repository.save_game_bundle(session, bundle)

    other = GameSignature(end_time=bundle.game.end_time, map_name="de_vertigo")
    with session_factory() as session:
        assert repository.find_game_by_signature(session, other) is None
