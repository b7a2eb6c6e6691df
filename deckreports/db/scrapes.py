"""Storage for raw scraped pages.

A scrape is keyed by ``(game_id, source, hash)`` where the hash covers the
serialised content, so re-scraping an unchanged page refreshes the existing
row instead of adding a copy.  ``write_seq`` orders rows by their last write.
"""

from __future__ import annotations

import hashlib
import json
import sqlite3
from time import time
from typing import Optional, Union

from deckreports.db.models import Scrape
from deckreports.mining.models import Source
from deckreports.scraper.models import ScrapedContent


def _row_to_scrape(row: sqlite3.Row) -> Scrape:
    return Scrape(
        id=row["id"],
        game_id=row["game_id"],
        source=Source(row["source"]),
        hash=row["hash"],
        content=ScrapedContent.from_dict(json.loads(row["content"])),
        created_at=row["created_at"],
    )


def save_scrape(
    conn: sqlite3.Connection,
    game_id: int,
    source: Union[Source, str],
    content: ScrapedContent,
) -> Scrape:
    """Insert *content* or refresh an identical scrape.

    Either way the row gets the next ``write_seq``, which makes it the latest
    scrape of its game and source.
    """
    source = Source(source)
    payload = json.dumps(content.to_dict(), sort_keys=True, ensure_ascii=False)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    now = int(time())

    with conn:
        conn.execute(
            """
            INSERT INTO scrapes (game_id, source, hash, content, created_at, write_seq)
            VALUES (?, ?, ?, ?, ?, (SELECT IFNULL(MAX(write_seq), 0) + 1 FROM scrapes))
            ON CONFLICT (game_id, source, hash)
            DO UPDATE SET
                content = excluded.content,
                created_at = excluded.created_at,
                write_seq = excluded.write_seq
            """,
            (game_id, source.value, digest, payload, now),
        )

    row = conn.execute(
        "SELECT * FROM scrapes WHERE game_id = ? AND source = ? AND hash = ?",
        (game_id, source.value, digest),
    ).fetchone()
    return _row_to_scrape(row)


def get_last_scrape(
    conn: sqlite3.Connection,
    game_id: int,
    source: Union[Source, str],
) -> Optional[Scrape]:
    """Return the most recent scrape of *game_id* from *source*, or ``None``."""
    row = conn.execute(
        """
        SELECT * FROM scrapes
        WHERE game_id = ? AND source = ?
        ORDER BY write_seq DESC
        LIMIT 1
        """,
        (game_id, Source(source).value),
    ).fetchone()
    return _row_to_scrape(row) if row else None
