"""Deck Reports CLI: mining, jobs and maintenance commands.

Usage:
    python cli/main.py --help

Command groups:
    db        database setup and maintenance
    mine      fetch and polish one source without touching the DB
    scrape    run the scrape job for a game
    generate  run the generate job for a game
    queue     inspect and feed the work queue
    summary   print the performance summary of a game's stored reports
    serve     run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from deckreports.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from deckreports.config import configure_logging, settings
from deckreports.db import get_connection, init_db
from deckreports.db.queue import (
    next_game_to_generate,
    next_game_to_scrape,
    set_game_in_queue,
)
from deckreports.db.reports import dedupe_by_hash, list_reports
from deckreports.mining import get_miner
from deckreports.mining.models import Source

app = typer.Typer(
    name="deckreports",
    help="Steam Deck compatibility report miner.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


@db_app.command("dedupe")
def db_dedupe() -> None:
    """Delete duplicate reports (same game, same content hash)."""
    conn = get_connection()
    init_db(conn)
    try:
        deleted = dedupe_by_hash(conn)
    finally:
        conn.close()
    typer.echo(f"[db dedupe] Removed {deleted} duplicate report(s)")


# ---------------------------------------------------------------------------
# Mining
# ---------------------------------------------------------------------------
@app.command("mine")
def mine(
    game_id: int = typer.Argument(..., help="Steam app id."),
    source: Source = typer.Option(..., "--source", "-s", help="Report source."),
) -> None:
    """Fetch one source page for a game and print the mined reports as JSON."""
    miner = get_miner(source)
    typer.echo(f"[mine] Fetching {source.value} for game {game_id} …", err=True)
    try:
        data = miner.polish(miner.mine(game_id))
    except Exception as e:
        typer.echo(f"[mine] Failed: {e}", err=True)
        raise typer.Exit(1)
    finally:
        miner.close()

    payload = {
        "steamdeck_rating": data.steamdeck_rating.value if data.steamdeck_rating else None,
        "steamdeck_verified": data.steamdeck_verified,
        "reports": [r.to_dict() for r in data.reports],
    }
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    game_id: Optional[int] = typer.Argument(None, help="Steam app id (default: next in queue)."),
) -> None:
    """Scrape every source for a game and store the pages."""
    from deckreports.jobs import scrape_game

    conn = get_connection()
    init_db(conn)
    try:
        if game_id is None:
            entry = next_game_to_scrape(conn)
            if entry is None:
                typer.echo("[scrape] No games in queue.")
                return
            game_id = entry.game_id
        results = scrape_game(conn, game_id)
    finally:
        conn.close()

    for source, scrape_row in results.items():
        status = f"saved {scrape_row.hash[:12]}" if scrape_row else "failed"
        typer.echo(f"[scrape] {source.value:<12} {status}")


@app.command("generate")
def generate(
    game_id: Optional[int] = typer.Argument(None, help="Steam app id (default: next in queue)."),
) -> None:
    """Mine the stored scrapes of a game and save its entry and reports."""
    from deckreports.jobs import NoScrapedDataError, generate_game

    conn = get_connection()
    init_db(conn)
    try:
        if game_id is None:
            entry = next_game_to_generate(conn)
            if entry is None:
                typer.echo("[generate] No games in queue.")
                return
            game_id = entry.game_id
        try:
            game = generate_game(conn, game_id)
        except NoScrapedDataError as e:
            typer.echo(f"[generate] {e}. Re-queued for scraping.")
            raise typer.Exit(1)
    finally:
        conn.close()

    rating = game.steamdeck_rating.value if game.steamdeck_rating else "unknown"
    typer.echo(f"[generate] Game {game.game_id}  {game.game_name or ''}  rating={rating}")
    if game.game_performance_summary:
        typer.echo(game.game_performance_summary)


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------
queue_app = typer.Typer(help="Work queue operations.", no_args_is_help=True)
app.add_typer(queue_app, name="queue")


@queue_app.command("add")
def queue_add(
    game_id: int = typer.Argument(..., help="Steam app id."),
    rescrape: bool = typer.Option(True, "--rescrape/--no-rescrape"),
    regenerate: bool = typer.Option(True, "--regenerate/--no-regenerate"),
) -> None:
    """Queue a game for scraping and/or generation."""
    conn = get_connection()
    init_db(conn)
    try:
        entry = set_game_in_queue(
            conn,
            game_id,
            rescrape=rescrape,
            regenerate=regenerate,
            rescrape_failed=False,
            regenerate_failed=False,
        )
    finally:
        conn.close()
    typer.echo(
        f"[queue add] Game {entry.game_id} queued "
        f"(rescrape={entry.rescrape}, regenerate={entry.regenerate})"
    )


@queue_app.command("next")
def queue_next() -> None:
    """Show the next games the scrape and generate jobs will pick."""
    conn = get_connection()
    init_db(conn)
    try:
        to_scrape = next_game_to_scrape(conn)
        to_generate = next_game_to_generate(conn)
    finally:
        conn.close()
    typer.echo(f"[queue next] scrape   : {to_scrape.game_id if to_scrape else '(none)'}")
    typer.echo(f"[queue next] generate : {to_generate.game_id if to_generate else '(none)'}")


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------
@app.command("summary")
def summary(
    game_id: int = typer.Argument(..., help="Steam app id."),
    show_input: bool = typer.Option(False, "--show-input", help="Print the model input too."),
) -> None:
    """Summarise the stored reports of a game with the configured chat model."""
    from deckreports.summary import generate_performance_summary, prepare_summary_input

    conn = get_connection()
    init_db(conn)
    try:
        reports = [r.body for r in list_reports(conn, game_id)]
    finally:
        conn.close()

    if not reports:
        typer.echo(f"[summary] No reports stored for game {game_id}.")
        raise typer.Exit(1)
    if show_input:
        typer.echo(prepare_summary_input(reports))
        typer.echo("")
    text = generate_performance_summary(reports)
    typer.echo(text or "[summary] The model returned no summary.")


# ---------------------------------------------------------------------------
# API server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("deckreports.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
