"""Game endpoints.

Routes
------
GET  /games/{id}            Game entry; unknown games are queued instead
GET  /games/{id}/reports    Mined reports, optionally filtered by source
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request

from deckreports.db.games import get_game
from deckreports.db.queue import set_game_in_queue
from deckreports.db.reports import list_reports
from deckreports.mining.models import GameReport, Source

router = APIRouter()


def _report_dict(report: GameReport) -> dict[str, Any]:
    return {
        "id": report.id,
        "game_id": report.game_id,
        "hash": report.hash,
        **report.body.to_dict(),
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }


@router.get("/{game_id}")
def get_game_endpoint(
    request: Request,
    game_id: int = Path(..., gt=0),
) -> dict[str, Any]:
    """Return ``{"status": "ready", "game": {...}}``.

    A game that has not been generated yet is queued for scraping and
    generation, and ``{"status": "queued", "game": null}`` is returned.
    """
    conn = request.app.state.db
    game = get_game(conn, game_id)
    if game is None or game.generated_at is None:
        set_game_in_queue(conn, game_id, rescrape=True, regenerate=True)
        return {"status": "queued", "game": None}
    return {"status": "ready", "game": game.to_dict()}


@router.get("/{game_id}/reports")
def list_reports_endpoint(
    request: Request,
    game_id: int = Path(..., gt=0),
    source: Optional[str] = Query(default=None),
) -> list[dict[str, Any]]:
    """Return the stored reports of a game, newest first."""
    if source is not None and source not in {s.value for s in Source}:
        raise HTTPException(status_code=422, detail=f"Unknown source: {source!r}")
    reports = list_reports(request.app.state.db, game_id, source=source)
    return [_report_dict(r) for r in reports]
