"""The contract every source miner implements."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence, runtime_checkable

from deckreports.mining.models import MinedData, Source
from deckreports.scraper.models import ScrapedContent

# (url, section_selectors, wait_for_selector, follow_redirects) -> ScrapedContent
ScrapeFn = Callable[[str, Sequence[str], Optional[str], bool], ScrapedContent]


@runtime_checkable
class Miner(Protocol):
    """A source-specific parser.

    ``polish`` must be a pure function of its input: no network, no
    randomness, and no clock reads other than relative-date resolution.
    """

    source: Source

    def get_url(self, game_id: int) -> str:
        """Return the page to scrape for *game_id*."""

    def mine(self, game_id: int) -> ScrapedContent:
        """Fetch the page for *game_id* and return its structured content."""

    def polish(self, content: ScrapedContent) -> MinedData:
        """Turn scraped content into reports."""

    def close(self) -> None:
        """Release fetch resources."""
