"""Asynchronous, idempotent ingestion of whole server logs."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from domain.config import IngestionSettings
from domain.errors import DuplicateGameError
from domain.identity import KnownPlayer, PlayerIdentityResolver
from domain.parser import LogParser
from domain.pipeline import build_game_bundle
from domain.ratings.protocol import RankingAlgorithm
from domain.rounds import GameSignature, ReconstructedGame, RoundStateTracker
from repositories.game_repository import GameRepository
from storage import LocalLogStorage

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"


@dataclass(frozen=True)
class SubmissionReceipt:
    job_id: str
    status: str = STATUS_PROCESSING

    def as_dict(self) -> dict[str, str]:
        return {"job_id": self.job_id, "status": self.status}


@dataclass
class IngestionSummary:
    """What one job did; returned to in-process callers through ``join``."""

    job_id: str
    log_path: str
    total_lines: int = 0
    parsed_events: int = 0
    skipped_lines: int = 0
    games_found: int = 0
    games_ingested: int = 0
    games_duplicate: int = 0
    games_invalid: int = 0
    games_below_accolade_threshold: int = 0
    games_failed: int = 0
    game_ids: list[int] = field(default_factory=list)
    failed: bool = False
    error: str | None = None


class IngestionCoordinator:
    """Runs one worker task per submitted log on a thread pool.

    Failures are logged inside the worker and never reach the submitter.
    Duplicate games are skipped by signature lookup; the unique constraint on
    the games table settles races between concurrent jobs.
    """

    def __init__(
        self,
        *,
        storage: LocalLogStorage,
        session_factory,
        repository: GameRepository,
        algorithm: RankingAlgorithm,
        settings: IngestionSettings | None = None,
        known_players: Iterable[KnownPlayer] = (),
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.storage = storage
        self.session_factory = session_factory
        self.repository = repository
        self.algorithm = algorithm
        self.settings = settings or IngestionSettings()
        self.known_players = tuple(known_players)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="ingest",
        )
        self._jobs: dict[str, Future[IngestionSummary]] = {}
        self._lock = threading.Lock()

    def submit(self, log_path: str) -> SubmissionReceipt:
        """Queue a log for ingestion and return immediately."""
        job_id = str(uuid.uuid4())
        future = self._executor.submit(self.run_job, job_id, log_path)
        with self._lock:
            self._jobs[job_id] = future
        logger.info("Accepted ingestion job %s for %s", job_id, log_path)
        return SubmissionReceipt(job_id=job_id)

    def join(self, job_id: str, timeout: float | None = None) -> IngestionSummary:
        with self._lock:
            future = self._jobs.get(job_id)
        if future is None:
            raise KeyError(f"Unknown ingestion job: {job_id}")
        return future.result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> IngestionCoordinator:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)

    def run_job(self, job_id: str, log_path: str) -> IngestionSummary:
        summary = IngestionSummary(job_id=job_id, log_path=log_path)
        logger.info("Ingestion job %s started for %s", job_id, log_path)
        try:
            lines = self.storage.download_as_lines(log_path)
            stream = LogParser().parse(lines)
            tracker = RoundStateTracker()
            games = tracker.reconstruct(stream)

            summary.total_lines = stream.stats.total_lines
            summary.parsed_events = stream.stats.events
            summary.skipped_lines = stream.stats.skipped_lines
            summary.games_found = len(games) + len(tracker.skipped_games)
            summary.games_invalid = len(tracker.skipped_games)

            resolver = PlayerIdentityResolver(self.known_players)
            for game in games:
                resolver.observe_all(
                    player for player in game.players if self.settings.include_bots or not player.is_bot
                )

            seen: set[GameSignature] = set()
            for game in games:
                if game.signature in seen:
                    summary.games_duplicate += 1
                    continue
                seen.add(game.signature)
                self._ingest_game(game, resolver=resolver, summary=summary)
        except Exception as exc:
            logger.exception("Ingestion job %s failed for %s", job_id, log_path)
            summary.failed = True
            summary.error = str(exc)
            return summary

        logger.info(
            "Ingestion job %s finished: games_found=%s ingested=%s duplicate=%s invalid=%s "
            "below_accolade_threshold=%s failed=%s",
            job_id,
            summary.games_found,
            summary.games_ingested,
            summary.games_duplicate,
            summary.games_invalid,
            summary.games_below_accolade_threshold,
            summary.games_failed,
        )
        return summary

    def _ingest_game(
        self,
        game: ReconstructedGame,
        *,
        resolver: PlayerIdentityResolver,
        summary: IngestionSummary,
    ) -> None:
        accolade_count = len(game.game_over.accolades)
        if accolade_count < self.settings.min_server_accolades:
            logger.info(
                "Skipping game on %s ending %s: %s server accolades, need %s",
                game.map_name,
                game.end_time,
                accolade_count,
                self.settings.min_server_accolades,
            )
            summary.games_below_accolade_threshold += 1
            return

        with self.session_factory() as session:
            if self.repository.find_game_by_signature(session, game.signature) is not None:
                logger.info("Game on %s ending %s already ingested", game.map_name, game.end_time)
                summary.games_duplicate += 1
                return

            try:
                bundle = build_game_bundle(
                    game,
                    resolver=resolver,
                    algorithm=self.algorithm,
                    fetch_priors=lambda player_ids: self.repository.latest_ratings(
                        session,
                        player_ids,
                        rating_algorithm=self.algorithm.algorithm,
                    ),
                    include_bots=self.settings.include_bots,
                    accolade_top_n=self.settings.accolade_top_n,
                    source_path=summary.log_path,
                )
                game_id = self.repository.save_game_bundle(session, bundle)
            except DuplicateGameError:
                logger.info("Game on %s ending %s was ingested concurrently", game.map_name, game.end_time)
                summary.games_duplicate += 1
                return
            except Exception:
                logger.exception("Failed to ingest game on %s ending %s", game.map_name, game.end_time)
                summary.games_failed += 1
                return

        summary.games_ingested += 1
        summary.game_ids.append(game_id)


__all__ = ["IngestionCoordinator", "IngestionSummary", "SubmissionReceipt"]
