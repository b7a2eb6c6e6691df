"""Database layer package.

Public re-exports so callers can write::

    from deckreports.db import get_connection, init_db
    from deckreports.db import reports
"""

from deckreports.db.connection import get_connection
from deckreports.db.migrations import init_db
from deckreports.db import games, queue, reports, scrapes

__all__ = ["get_connection", "init_db", "games", "queue", "reports", "scrapes"]
