"""Schema setup for the report store.

``init_db`` runs the bundled ``schema.sql`` (every statement is
``IF NOT EXISTS``) and then applies the numbered steps in ``MIGRATIONS`` that
the ``schema_version`` table has not recorded yet.
"""

from __future__ import annotations

import logging
import sqlite3

from deckreports.config import settings

logger = logging.getLogger(__name__)

# Numbered schema steps applied after schema.sql, oldest first
MIGRATIONS: list[tuple[int, str]] = [
    (1, "CREATE INDEX IF NOT EXISTS idx_game_reports_hardware ON game_reports (game_id, steamdeck_hardware)"),
    # Order of last write; created_at only has second resolution
    (2, "ALTER TABLE scrapes ADD COLUMN write_seq INTEGER NOT NULL DEFAULT 0"),
    (3, "UPDATE scrapes SET write_seq = id"),
    (4, "CREATE INDEX IF NOT EXISTS idx_scrapes_write_seq ON scrapes (game_id, source, write_seq DESC)"),
]

_VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at INTEGER NOT NULL
)
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create the report tables and bring the schema up to date."""
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
    with conn:
        conn.execute(_VERSION_TABLE_SQL)
    migrate(conn)


def current_version(conn: sqlite3.Connection) -> int:
    """Highest migration number recorded, ``0`` for a fresh store."""
    (version,) = conn.execute("SELECT IFNULL(MAX(version), 0) FROM schema_version").fetchone()
    return version


def migrate(conn: sqlite3.Connection) -> None:
    """Apply every step of ``MIGRATIONS`` newer than :func:`current_version`."""
    pending = [(v, sql) for v, sql in MIGRATIONS if v > current_version(conn)]
    for version, sql in pending:
        logger.info("Applying schema migration %d", version)
        with conn:
            conn.execute(sql)
            conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, strftime('%s', 'now'))",
                (version,),
            )
