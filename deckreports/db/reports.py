"""Persistence and merge policy for mined game reports.

Reports are replaced per ``(game, source)`` pair: a batch only ever touches
the sources it contains, so one source coming back empty on a scrape pass
leaves its previously stored reports alone.  Each replacement runs in one
transaction, so readers never see a half-replaced set.

``dedupe_by_hash`` removes exact duplicates (same game, same content hash)
left behind by overlapping job runs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from time import time
from typing import Iterable, Optional, Union

from deckreports.mining.models import GameReport, GameReportBody, Source

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_report(row: sqlite3.Row) -> GameReport:
    return GameReport(
        id=row["id"],
        game_id=row["game_id"],
        hash=row["hash"],
        body=GameReportBody.from_dict(json.loads(row["body"])),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _insert_reports(
    conn: sqlite3.Connection,
    game_id: int,
    reports: Iterable[GameReportBody],
    now: int,
) -> int:
    rows = [
        (
            game_id,
            report.source.value,
            report.content_hash(),
            json.dumps(report.to_dict(), ensure_ascii=False),
            report.steamdeck_hardware.value if report.steamdeck_hardware else None,
            report.posted_at.isoformat() if report.posted_at else None,
            now,
            now,
        )
        for report in reports
    ]
    conn.executemany(
        """
        INSERT INTO game_reports
            (game_id, source, hash, body, steamdeck_hardware, posted_at, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    return len(rows)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def save_reports_bulk(
    conn: sqlite3.Connection,
    game_id: int,
    reports: list[GameReportBody],
) -> int:
    """Insert *reports* as new rows without touching existing ones.

    Returns the number of rows inserted.
    """
    if not reports:
        return 0
    with conn:
        return _insert_reports(conn, game_id, reports, int(time()))


def replace_reports_for_source(
    conn: sqlite3.Connection,
    game_id: int,
    source: Union[Source, str],
    reports: list[GameReportBody],
) -> int:
    """Atomically swap the stored reports of ``(game_id, source)`` for *reports*.

    Raises:
        ValueError: If a report in *reports* belongs to another source.
    """
    source = Source(source)
    stray = [r for r in reports if r.source != source]
    if stray:
        raise ValueError(
            f"Cannot store {stray[0].source.value!r} reports as {source.value!r}"
        )

    with conn:
        deleted = conn.execute(
            "DELETE FROM game_reports WHERE game_id = ? AND source = ?",
            (game_id, source.value),
        ).rowcount
        inserted = _insert_reports(conn, game_id, reports, int(time()))

    logger.debug(
        "Replaced %d %s report(s) with %d for game %s",
        deleted, source.value, inserted, game_id,
    )
    return inserted


def replace_reports_for_game(
    conn: sqlite3.Connection,
    game_id: int,
    reports: list[GameReportBody],
) -> dict[Source, int]:
    """Replace the stored reports of every source present in *reports*.

    Sources without a report in *reports* are left untouched.

    Returns:
        The number of rows written per replaced source.
    """
    by_source: dict[Source, list[GameReportBody]] = {}
    for report in reports:
        by_source.setdefault(report.source, []).append(report)

    return {
        source: replace_reports_for_source(conn, game_id, source, batch)
        for source, batch in by_source.items()
    }


def dedupe_by_hash(conn: sqlite3.Connection) -> int:
    """Delete all but the earliest row of each ``(game_id, hash)`` group.

    Returns the number of rows deleted.
    """
    with conn:
        deleted = conn.execute(
            """
            DELETE FROM game_reports
            WHERE id NOT IN (
                SELECT MIN(id) FROM game_reports GROUP BY game_id, hash
            )
            """
        ).rowcount
    if deleted:
        logger.info("Removed %d duplicate game report(s)", deleted)
    return deleted


def list_reports(
    conn: sqlite3.Connection,
    game_id: int,
    source: Optional[Union[Source, str]] = None,
) -> list[GameReport]:
    """Return the stored reports of *game_id*, newest ``posted_at`` first.

    Reports without a date come last, in insertion order.
    """
    query = "SELECT * FROM game_reports WHERE game_id = ?"
    params: list = [game_id]
    if source is not None:
        query += " AND source = ?"
        params.append(Source(source).value)
    query += " ORDER BY posted_at IS NULL, posted_at DESC, id ASC"
    rows = conn.execute(query, params).fetchall()
    return [_row_to_report(r) for r in rows]
