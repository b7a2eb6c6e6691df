"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  Report rows use
:class:`deckreports.mining.models.GameReport`; the rest live here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from deckreports.mining.models import Source, SteamdeckRating
from deckreports.scraper.models import ScrapedContent


@dataclass
class Scrape:
    id: int
    game_id: int
    source: Source
    hash: str
    content: ScrapedContent
    created_at: int


@dataclass
class Game:
    game_id: int
    game_name: Optional[str]
    steamdeck_rating: Optional[SteamdeckRating]
    steamdeck_verified: Optional[bool]
    game_performance_summary: Optional[str]
    generated_at: Optional[int]
    created_at: int
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["steamdeck_rating"] = self.steamdeck_rating.value if self.steamdeck_rating else None
        return data


@dataclass
class QueueEntry:
    game_id: int
    rescrape: bool
    regenerate: bool
    rescrape_failed: bool
    regenerate_failed: bool
    queued_at: int
    updated_at: int
