#!/usr/bin/env python3
"""CLI for ingesting CS2 server logs and maintaining player ratings."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import DEFAULT_DB_URL, create_db_engine, create_session_factory
from domain.config import DEFAULT_INGESTION_CONFIG, IngestionSettings, load_ingestion_settings
from domain.coordinator import IngestionCoordinator
from domain.pipeline import replay_ratings
from domain.ratings.protocol import RankingAlgorithm
from domain.ratings.registry import RankingDescriptor, get_all, load_algorithm
from repositories.game_repository import GameRepository
from storage import LocalLogStorage

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Log ingestion and player rating commands.",
)


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Python logging level (DEBUG, INFO, WARNING, ...)."),
    ] = "INFO",
) -> None:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings(config_path: Path) -> IngestionSettings:
    try:
        return load_ingestion_settings(config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


def _load_algorithm(settings: IngestionSettings, algorithm: str | None) -> RankingAlgorithm:
    try:
        ranking, _ = load_algorithm(
            algorithm or settings.ranking.algorithm,
            config_dir=settings.ranking.config_dir,
            config_name=settings.ranking.config_name,
        )
    except (FileNotFoundError, NotADirectoryError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--algorithm") from exc
    return ranking


@app.command()
def ingest(
    paths: Annotated[
        list[str],
        typer.Argument(help="Log object paths (s3://bucket/key or paths under the storage root)."),
    ],
    config: Annotated[
        Path,
        typer.Option("--config", help="Ingestion TOML config."),
    ] = DEFAULT_INGESTION_CONFIG,
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local rankforge postgres instance."),
    ] = DEFAULT_DB_URL,
    storage_root: Annotated[
        Path | None,
        typer.Option("--storage-root", help="Override the configured storage root directory."),
    ] = None,
    algorithm: Annotated[
        str | None,
        typer.Option("--algorithm", help="Ranking algorithm (elo, openskill). Defaults to the config."),
    ] = None,
) -> None:
    """Submit logs for ingestion and wait for every job to finish."""
    settings = _load_settings(config)
    ranking = _load_algorithm(settings, algorithm)

    engine = create_db_engine(db_url)
    repository = GameRepository()
    repository.ensure_schema(engine)

    coordinator = IngestionCoordinator(
        storage=LocalLogStorage(storage_root or settings.storage_root),
        session_factory=create_session_factory(engine),
        repository=repository,
        algorithm=ranking,
        settings=settings,
    )
    with coordinator:
        receipts = [coordinator.submit(path) for path in paths]
        for receipt in receipts:
            typer.echo(f"job_id={receipt.job_id} status={receipt.status}")

        failed_jobs = 0
        for receipt in receipts:
            summary = coordinator.join(receipt.job_id)
            if summary.failed:
                failed_jobs += 1
            typer.echo(
                f"completed job_id={summary.job_id} "
                f"log={summary.log_path} "
                f"failed={summary.failed} "
                f"lines={summary.total_lines} "
                f"events={summary.parsed_events} "
                f"skipped_lines={summary.skipped_lines} "
                f"games_found={summary.games_found} "
                f"games_ingested={summary.games_ingested} "
                f"games_duplicate={summary.games_duplicate} "
                f"games_invalid={summary.games_invalid} "
                f"games_below_accolade_threshold={summary.games_below_accolade_threshold}"
            )

    if failed_jobs:
        raise typer.Exit(code=1)


@app.command("replay-ratings")
def replay(
    config: Annotated[
        Path,
        typer.Option("--config", help="Ingestion TOML config."),
    ] = DEFAULT_INGESTION_CONFIG,
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local rankforge postgres instance."),
    ] = DEFAULT_DB_URL,
    algorithm: Annotated[
        str | None,
        typer.Option("--algorithm", help="Ranking algorithm (elo, openskill). Defaults to the config."),
    ] = None,
    batch_size: Annotated[
        int,
        typer.Option("--batch-size", help="Batch size for rating updates."),
    ] = 5000,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Compute ratings without writing them."),
    ] = False,
) -> None:
    """Recompute all stored ratings in chronological game order."""
    if batch_size <= 0:
        raise typer.BadParameter("--batch-size must be greater than 0")

    settings = _load_settings(config)
    ranking = _load_algorithm(settings, algorithm)

    engine = create_db_engine(db_url)
    repository = GameRepository()
    repository.ensure_schema(engine)

    replay_ratings(
        session_factory=create_session_factory(engine),
        repository=repository,
        algorithm=ranking,
        batch_size=batch_size,
        dry_run=dry_run,
        echo=typer.echo,
    )


@app.command()
def show_top(
    top_n: Annotated[
        int,
        typer.Option("--top-n", help="Number of players to return."),
    ] = 20,
    algorithm: Annotated[
        str | None,
        typer.Option("--algorithm", help="Only ratings produced by this algorithm."),
    ] = None,
    min_rounds: Annotated[
        int,
        typer.Option("--min-rounds", help="Minimum rounds in the player's latest game."),
    ] = 0,
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local rankforge postgres instance."),
    ] = DEFAULT_DB_URL,
) -> None:
    """Print top players by latest rating."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")
    if min_rounds < 0:
        raise typer.BadParameter("--min-rounds must be >= 0")

    engine = create_db_engine(db_url)
    session_factory = create_session_factory(engine)
    repository = GameRepository()

    with session_factory() as session:
        rows = repository.latest_player_rows(session, rating_algorithm=algorithm)

    rows = [row for row in rows if row.rounds_played >= min_rounds]
    rows.sort(key=lambda row: (-(row.rating or 0.0), row.player_id))
    if not rows:
        typer.echo(f"No rated players found for algorithm='{algorithm or 'any'}'.")
        return

    typer.echo(f"algorithm={algorithm or 'any'} top_n={top_n} min_rounds={min_rounds}")
    for index, row in enumerate(rows[:top_n], start=1):
        name = row.nickname or row.player_id
        typer.echo(
            f"{index:2d}. {name:<20} "
            f"rating={row.rating:8.2f} "
            f"kills={row.kills:3d} deaths={row.deaths:3d} "
            f"last_game={row.event_time}"
        )


@app.command()
def list_algorithms() -> None:
    """Print all registered ranking algorithms."""
    descriptors: list[RankingDescriptor] = get_all()
    if not descriptors:
        typer.echo("no registered algorithms")
        return

    for descriptor in descriptors:
        typer.echo(f"{descriptor.algorithm} config_dir={descriptor.config_dir}")


if __name__ == "__main__":
    app()
