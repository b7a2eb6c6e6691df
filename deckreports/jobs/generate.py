"""Generate job: turn a game's latest scrapes into reports and a game entry.

Steps:
    1. Load the latest scrape of every source.  With none at all the game is
       re-queued for scraping and :class:`NoScrapedDataError` is raised.
    2. Polish each scrape with its source's miner.  If no source yields a
       single report the same retry path applies; nothing is persisted.
    3. Replace the stored reports per source present, then drop duplicates.
    4. Summarise the reports and save the game entry.
    5. Remove the game from the queue.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any, Optional

import httpx

from deckreports.db.games import save_game
from deckreports.db.models import Game
from deckreports.db.queue import remove_game_from_queue, set_game_in_queue
from deckreports.db.reports import dedupe_by_hash, replace_reports_for_game
from deckreports.db.scrapes import get_last_scrape
from deckreports.mining import get_miner
from deckreports.mining.models import GameReportBody, Source, SteamdeckRating
from deckreports.steam import SteamLookupError, get_game_display_name, get_steamdeck_verified
from deckreports.summary import generate_performance_summary

logger = logging.getLogger(__name__)


class NoScrapedDataError(RuntimeError):
    """Raised when no source has anything to generate a game entry from."""

    def __init__(self, game_id: int, reason: str) -> None:
        super().__init__(f"No data for game {game_id}: {reason}")
        self.game_id = game_id


def _requeue_for_retry(conn: sqlite3.Connection, game_id: int) -> None:
    set_game_in_queue(
        conn, game_id, rescrape=True, regenerate=True, regenerate_failed=True
    )


def _display_name(game_id: int) -> Optional[str]:
    try:
        return get_game_display_name(game_id)
    except (SteamLookupError, httpx.HTTPError) as exc:
        logger.warning("Could not resolve the name of game %s: %s", game_id, exc)
        return None


def generate_game(
    conn: sqlite3.Connection,
    game_id: int,
    llm: Optional[Any] = None,
) -> Game:
    """Mine the stored scrapes of *game_id* and save its game entry.

    Args:
        conn: Open, initialised DB connection.
        game_id: Steam app id.
        llm: Chat model override for the performance summary.

    Returns:
        The saved :class:`~deckreports.db.models.Game`.

    Raises:
        NoScrapedDataError: If there are no scrapes, or no scrape yields a
            report.  The game is re-queued with ``regenerate_failed`` set.
    """
    started = time.monotonic()
    logger.info("Generating game entry for game %s", game_id)

    scrapes = {
        source: scrape
        for source in Source
        if (scrape := get_last_scrape(conn, game_id, source)) is not None
    }
    if not scrapes:
        _requeue_for_retry(conn, game_id)
        raise NoScrapedDataError(game_id, "nothing has been scraped")

    reports: list[GameReportBody] = []
    rating: Optional[SteamdeckRating] = None
    verified: Optional[bool] = None
    for source, scrape in scrapes.items():
        mined = get_miner(source).polish(scrape.content)
        logger.debug("%s yielded %d report(s) for game %s", source.value, len(mined.reports), game_id)
        reports.extend(mined.reports)
        rating = rating or mined.steamdeck_rating
        if verified is None:
            verified = mined.steamdeck_verified

    if not reports:
        _requeue_for_retry(conn, game_id)
        raise NoScrapedDataError(game_id, "no source produced a report")

    replace_reports_for_game(conn, game_id, reports)
    dedupe_by_hash(conn)

    steam_verified = get_steamdeck_verified(game_id)
    fields: dict[str, Any] = {}
    name = _display_name(game_id)
    if name:
        fields["game_name"] = name
    game = save_game(
        conn,
        game_id,
        **fields,
        steamdeck_rating=rating,
        steamdeck_verified=steam_verified if steam_verified is not None else verified,
        game_performance_summary=generate_performance_summary(reports, llm=llm),
        generated_at=int(time.time()),
    )
    remove_game_from_queue(conn, game_id)

    logger.info(
        "Generated game %s from %d report(s) in %.1f seconds",
        game_id, len(reports), time.monotonic() - started,
    )
    return game
