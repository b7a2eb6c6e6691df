"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from deckreports.api import app

    uvicorn deckreports.api:app --reload
"""

from deckreports.api.app import app

__all__ = ["app"]
