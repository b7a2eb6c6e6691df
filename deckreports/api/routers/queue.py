"""Queue endpoint.

Routes
------
POST /queue    Flag a game for the scrape and/or generate job
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from deckreports.db.queue import set_game_in_queue

router = APIRouter()


class QueueRequest(BaseModel):
    game_id: int = Field(..., gt=0)
    rescrape: bool = True
    regenerate: bool = True


@router.post("", status_code=202)
def queue_game_endpoint(body: QueueRequest, request: Request) -> dict[str, Any]:
    """Queue a game.  Re-queuing clears earlier failure flags."""
    entry = set_game_in_queue(
        request.app.state.db,
        body.game_id,
        rescrape=body.rescrape,
        regenerate=body.regenerate,
        rescrape_failed=False,
        regenerate_failed=False,
    )
    return asdict(entry)
