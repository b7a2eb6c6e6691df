"""SQLite connection factory for the report store.

The API keeps one connection for its lifetime; CLI commands and jobs open
their own::

    conn = get_connection()
    init_db(conn)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Union

from deckreports.config import settings


def get_connection(db_path: Optional[Union[Path, str]] = None) -> sqlite3.Connection:
    """Return a connection to the report store.

    Rows come back as :class:`sqlite3.Row`.  Foreign keys are enforced and
    the journal runs in WAL mode so the API can read while a job writes.

    Args:
        db_path: Database file, or ``":memory:"`` for a throwaway store.
            Defaults to ``settings.db_path`` inside the workspace.
    """
    target = str(db_path or settings.db_path)
    if target != ":memory:":
        settings.ensure_workspace()

    # The scrape job hands the connection to worker threads.
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    for pragma in ("foreign_keys = ON", "journal_mode = WAL"):
        conn.execute(f"PRAGMA {pragma}")
    return conn
