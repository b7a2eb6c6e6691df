"""Scrape job: fetch one game's pages from every source and store them.

The miners fetch concurrently in a thread pool; all database writes happen on
the calling thread.  A source that fails is logged and flags the queue entry
with ``rescrape_failed``; the other sources are still saved.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from deckreports.config import settings
from deckreports.db.models import Scrape
from deckreports.db.queue import set_game_in_queue
from deckreports.db.scrapes import save_scrape
from deckreports.mining import Miner, all_miners
from deckreports.mining.models import Source
from deckreports.scraper.fetcher import RedirectRefusedError
from deckreports.scraper.models import ScrapedContent

logger = logging.getLogger(__name__)


def _mine(miner: Miner, game_id: int) -> ScrapedContent:
    try:
        return miner.mine(game_id)
    finally:
        miner.close()


def scrape_game(
    conn: sqlite3.Connection,
    game_id: int,
    miners: Optional[Sequence[Miner]] = None,
) -> dict[Source, Optional[Scrape]]:
    """Scrape *game_id* from every source and persist each page.

    Args:
        conn: Open, initialised DB connection.
        game_id: Steam app id.
        miners: Miners to run.  Defaults to one per registered source.

    Returns:
        The saved scrape per source, ``None`` for sources that failed.
    """
    started = time.monotonic()
    miners = list(miners) if miners is not None else all_miners()
    logger.info("Scraping game %s from %d source(s)", game_id, len(miners))

    with ThreadPoolExecutor(max_workers=max(1, settings.max_concurrent_scrapes)) as pool:
        futures = {miner.source: pool.submit(_mine, miner, game_id) for miner in miners}

    results: dict[Source, Optional[Scrape]] = {}
    failed = False
    for source, future in futures.items():
        try:
            content = future.result()
        except RedirectRefusedError as exc:
            # The source has no page for this game.
            logger.warning("Redirect refused scraping game %s from %s: %s", game_id, source.value, exc)
            results[source] = None
            continue
        except Exception:
            logger.exception("Scraping game %s from %s failed", game_id, source.value)
            results[source] = None
            failed = True
            continue
        results[source] = save_scrape(conn, game_id, source, content)

    if failed:
        set_game_in_queue(conn, game_id, rescrape_failed=True)
    else:
        set_game_in_queue(
            conn, game_id, rescrape=False, regenerate=True, regenerate_failed=False
        )

    logger.info(
        "Finished scraping game %s in %.1f seconds", game_id, time.monotonic() - started
    )
    return results
