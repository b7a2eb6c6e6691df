"""CRUD operations for the ``games`` table."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Any, Optional

from deckreports.db.models import Game
from deckreports.mining.models import SteamdeckRating

_UPDATABLE = {
    "game_name",
    "steamdeck_rating",
    "steamdeck_verified",
    "game_performance_summary",
    "generated_at",
}


def _row_to_game(row: sqlite3.Row) -> Game:
    verified = row["steamdeck_verified"]
    rating = row["steamdeck_rating"]
    return Game(
        game_id=row["game_id"],
        game_name=row["game_name"],
        steamdeck_rating=SteamdeckRating(rating) if rating else None,
        steamdeck_verified=None if verified is None else bool(verified),
        game_performance_summary=row["game_performance_summary"],
        generated_at=row["generated_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_game(conn: sqlite3.Connection, game_id: int) -> Optional[Game]:
    """Fetch a game by Steam app id.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM games WHERE game_id = ?", (game_id,)).fetchone()
    return _row_to_game(row) if row else None


def save_game(conn: sqlite3.Connection, game_id: int, **fields: Any) -> Game:
    """Create or update the game entry for *game_id*.

    Only the given *fields* are written; columns not named keep their value.
    Allowed fields: ``game_name``, ``steamdeck_rating``,
    ``steamdeck_verified``, ``game_performance_summary``, ``generated_at``.

    Raises:
        ValueError: If an unknown field is given.
    """
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update field(s) {sorted(unknown)!r}")

    values: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "steamdeck_rating" and value is not None:
            value = SteamdeckRating(value).value
        elif key == "steamdeck_verified" and value is not None:
            value = int(bool(value))
        values[key] = value

    now = int(time())
    columns = ["game_id", *values, "created_at", "updated_at"]
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in [*values, "updated_at"])

    with conn:
        conn.execute(
            f"INSERT INTO games ({', '.join(columns)}) VALUES ({placeholders}) "  # noqa: S608
            f"ON CONFLICT (game_id) DO UPDATE SET {updates}",
            [game_id, *values.values(), now, now],
        )

    return get_game(conn, game_id)  # type: ignore[return-value]
