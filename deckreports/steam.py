"""Steam store client: game catalog lookups and Steam Deck verification."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from deckreports.config import settings

logger = logging.getLogger(__name__)

STEAM_STORE_URL = "https://store.steampowered.com"
APP_DETAILS_URL = f"{STEAM_STORE_URL}/api/appdetails"
DECK_COMPATIBILITY_URL = f"{STEAM_STORE_URL}/saleaction/ajaxgetdeckappcompatibilityreport"

# resolved_category values of the Deck compatibility report
DECK_CATEGORY_VERIFIED = 3


class SteamLookupError(RuntimeError):
    """Raised when Steam does not return details for a game id."""


def get_game_details(game_id: int) -> dict[str, Any]:
    """Return the ``appdetails`` payload for *game_id*.

    Raises:
        SteamLookupError: If Steam reports the lookup as unsuccessful.
        httpx.HTTPError: On transport failures or 4xx/5xx responses.
    """
    with httpx.Client(timeout=settings.request_timeout) as client:
        response = client.get(APP_DETAILS_URL, params={"appids": game_id, "l": "english"})
        response.raise_for_status()
        payload = response.json()

    entry = (payload or {}).get(str(game_id)) or {}
    if not entry.get("success"):
        raise SteamLookupError(f"Steam has no details for game {game_id}")
    return entry.get("data") or {}


def get_game_display_name(game_id: int) -> str:
    """Return the store display name of *game_id*."""
    name = get_game_details(game_id).get("name")
    if not name:
        raise SteamLookupError(f"Steam returned no name for game {game_id}")
    return name


def get_steamdeck_verified(game_id: int) -> Optional[bool]:
    """Return ``True`` if Valve lists *game_id* as Deck Verified.

    Returns ``None`` when the status is unknown, including on any network or
    decoding failure.
    """
    try:
        with httpx.Client(timeout=settings.request_timeout) as client:
            response = client.get(DECK_COMPATIBILITY_URL, params={"nAppID": game_id})
        if response.is_error:
            return None
        category = ((response.json() or {}).get("results") or {}).get("resolved_category")
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Deck verification lookup failed for game %s: %s", game_id, exc)
        return None

    if category is None:
        return None
    return category == DECK_CATEGORY_VERIFIED
