"""The game work queue.

A queue entry flags a game for the scrape job (``rescrape``), the generate
job (``regenerate``) or both.  A ``*_failed`` flag parks the entry so the
job stops picking it up until it is re-queued.  Entries are served oldest
first by ``queued_at``.
"""

from __future__ import annotations

import sqlite3
from time import time
from typing import Optional

from deckreports.db.models import QueueEntry

_FLAGS = ("rescrape", "regenerate", "rescrape_failed", "regenerate_failed")


def _row_to_entry(row: sqlite3.Row) -> QueueEntry:
    return QueueEntry(
        game_id=row["game_id"],
        rescrape=bool(row["rescrape"]),
        regenerate=bool(row["regenerate"]),
        rescrape_failed=bool(row["rescrape_failed"]),
        regenerate_failed=bool(row["regenerate_failed"]),
        queued_at=row["queued_at"],
        updated_at=row["updated_at"],
    )


def get_queue_entry(conn: sqlite3.Connection, game_id: int) -> Optional[QueueEntry]:
    row = conn.execute("SELECT * FROM game_queue WHERE game_id = ?", (game_id,)).fetchone()
    return _row_to_entry(row) if row else None


def set_game_in_queue(
    conn: sqlite3.Connection,
    game_id: int,
    **flags: bool,
) -> QueueEntry:
    """Upsert the queue entry of *game_id*, setting only the given *flags*.

    ``queued_at`` is set on first insert and kept on later updates.

    Raises:
        ValueError: If a flag name is not one of ``rescrape``,
            ``regenerate``, ``rescrape_failed``, ``regenerate_failed``.
    """
    unknown = set(flags) - set(_FLAGS)
    if unknown:
        raise ValueError(f"Unknown queue flag(s) {sorted(unknown)!r}")

    now = int(time())
    columns = ["game_id", *flags, "queued_at", "updated_at"]
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in [*flags, "updated_at"])

    with conn:
        conn.execute(
            f"INSERT INTO game_queue ({', '.join(columns)}) VALUES ({placeholders}) "  # noqa: S608
            f"ON CONFLICT (game_id) DO UPDATE SET {updates}",
            [game_id, *(int(bool(v)) for v in flags.values()), now, now],
        )

    return get_queue_entry(conn, game_id)  # type: ignore[return-value]


def next_game_to_scrape(conn: sqlite3.Connection) -> Optional[QueueEntry]:
    """Oldest entry flagged for scraping that has not failed."""
    row = conn.execute(
        """
        SELECT * FROM game_queue
        WHERE rescrape = 1 AND rescrape_failed = 0
        ORDER BY queued_at ASC, rowid ASC
        LIMIT 1
        """
    ).fetchone()
    return _row_to_entry(row) if row else None


def next_game_to_generate(conn: sqlite3.Connection) -> Optional[QueueEntry]:
    """Oldest entry flagged for generation, not failed and not awaiting a scrape."""
    row = conn.execute(
        """
        SELECT * FROM game_queue
        WHERE regenerate = 1 AND regenerate_failed = 0 AND rescrape = 0
        ORDER BY queued_at ASC, rowid ASC
        LIMIT 1
        """
    ).fetchone()
    return _row_to_entry(row) if row else None


def remove_game_from_queue(conn: sqlite3.Connection, game_id: int) -> None:
    """Delete the queue entry of *game_id*.  No-op if it is not queued."""
    with conn:
        conn.execute("DELETE FROM game_queue WHERE game_id = ?", (game_id,))
