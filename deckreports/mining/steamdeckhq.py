"""Steam Deck HQ miner.

A Steam Deck HQ review page is a single editorial review, so ``polish``
returns at most one report, and none when the page has no review
section of any kind.  Sections are looked up by id:

``review``
    Title, narrative paragraphs, the author link and the author avatar.
``recommended``
    ``paragraphs[0]`` is the Proton version; every later paragraph is a
    ``Label: Value`` game setting.  ``other_text`` holds the Deck settings at
    fixed offsets and the battery figures at arbitrary positions.
``entry-time``
    ``other_text[0]`` is the publication date (``"March 1, 2024"``).
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from deckreports.mining.base import ScrapeFn
from deckreports.mining.dates import parse_absolute_date
from deckreports.mining.fields import first_integer, item_at, join_paragraphs, scrub_unknown
from deckreports.mining.models import (
    BatteryPerformance,
    GameReportBody,
    MinedData,
    Reporter,
    Source,
    SteamdeckSettings,
)
from deckreports.scraper.extractor import scrape_text_structured
from deckreports.scraper.models import ScrapedContent, ScrapedSection
from deckreports.steam import get_game_display_name

logger = logging.getLogger(__name__)

STEAMDECKHQ_URL = "https://steamdeckhq.com/game-reviews/{slug}/"
REVIEW_SECTION = "review"
RECOMMENDED_SECTION = "recommended"
ENTRY_TIME_SECTION = "entry-time"
SECTION_SELECTORS = [f"#{REVIEW_SECTION}", f"#{RECOMMENDED_SECTION}", f"#{ENTRY_TIME_SECTION}"]

# Fixed offsets in the recommended section's other_text
FRAME_RATE_CAP_INDEX = 0
SCREEN_REFRESH_RATE_INDEX = 3
TDP_LIMIT_INDEX = 8
SCALING_FILTER_INDEX = 10
GPU_CLOCK_SPEED_INDEX = 12

# Battery figures are matched anywhere in the recommended other_text
CONSUMPTION_RE = re.compile(r"\d+W\s-\s\d+W", re.IGNORECASE)
TEMPS_RE = re.compile(r"\d+C\s-\s\d+C", re.IGNORECASE)
LIFE_SPAN_RE = re.compile(r"\d+\s*Hours", re.IGNORECASE)

AUTHOR_PATH = "/author/"
SITE_USERNAME = "Steam Deck HQ"
SITE_URL = "https://steamdeckhq.com/"

_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_INVALID_RE = re.compile(r"[^a-z0-9-]")


def slugify(name: str) -> str:
    """``"Game's Title: The @Adventure!"`` -> ``"games-title-the-adventure"``."""
    slug = _SLUG_SPACE_RE.sub("-", name.strip().lower())
    return _SLUG_INVALID_RE.sub("", slug)


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def find_section(content: ScrapedContent, section_id: str) -> Optional[ScrapedSection]:
    for section in content.sections or []:
        if section.id == section_id:
            return section
    return None


def extract_game_settings(recommended: Optional[ScrapedSection]) -> Optional[dict[str, str]]:
    if recommended is None:
        return None
    settings: dict[str, str] = {}
    for paragraph in recommended.paragraphs[1:]:
        key, sep, value = paragraph.partition(":")
        key, value = key.strip(), value.strip()
        if sep and key and value:
            settings[key] = value
    return settings


def extract_steamdeck_settings(recommended: Optional[ScrapedSection]) -> Optional[SteamdeckSettings]:
    if recommended is None:
        return None
    items = recommended.other_text
    return SteamdeckSettings(
        frame_rate_cap=first_integer(item_at(items, FRAME_RATE_CAP_INDEX)),
        screen_refresh_rate=first_integer(item_at(items, SCREEN_REFRESH_RATE_INDEX)),
        tdp_limit=first_integer(item_at(items, TDP_LIMIT_INDEX)),
        scaling_filter=scrub_unknown(item_at(items, SCALING_FILTER_INDEX)),
        gpu_clock_speed=first_integer(item_at(items, GPU_CLOCK_SPEED_INDEX)),
        proton_version=scrub_unknown(item_at(recommended.paragraphs, 0)),
    )


def _first_matching(items: list[str], pattern: re.Pattern) -> Optional[str]:
    for text in items:
        if pattern.search(text or ""):
            return text.strip()
    return None


def extract_battery_performance(recommended: Optional[ScrapedSection]) -> Optional[BatteryPerformance]:
    if recommended is None:
        return None
    items = recommended.other_text
    return BatteryPerformance(
        consumption=_first_matching(items, CONSUMPTION_RE),
        temps=_first_matching(items, TEMPS_RE),
        life_span=_first_matching(items, LIFE_SPAN_RE),
    )


def extract_reporter(review: Optional[ScrapedSection]) -> Reporter:
    if review is None:
        return Reporter(username=SITE_USERNAME, user_profile_url=SITE_URL)
    author = next((link for link in review.links if AUTHOR_PATH in (link.href or "")), None)
    avatar = review.images[-1].src if review.images else None
    if author is None:
        return Reporter(username=SITE_USERNAME, user_profile_url=SITE_URL, user_profile_avatar_url=avatar)
    return Reporter(
        username=author.text.strip() or SITE_USERNAME,
        user_profile_url=author.href,
        user_profile_avatar_url=avatar,
    )


# ---------------------------------------------------------------------------
# Miner
# ---------------------------------------------------------------------------

class SteamdeckhqMiner:
    source = Source.STEAMDECKHQ

    def __init__(
        self,
        scrape: ScrapeFn = scrape_text_structured,
        get_display_name: Callable[[int], str] = get_game_display_name,
    ) -> None:
        self._scrape = scrape
        self._get_display_name = get_display_name

    def get_url(self, game_id: int) -> str:
        """Build the review URL from the game's Steam display name."""
        return STEAMDECKHQ_URL.format(slug=slugify(self._get_display_name(game_id)))

    def mine(self, game_id: int) -> ScrapedContent:
        url = self.get_url(game_id)
        logger.info("Mining Steam Deck HQ review for game %s", game_id)
        # Unknown slugs redirect to the site root.
        return self._scrape(url, SECTION_SELECTORS, f"#{REVIEW_SECTION}", False)

    def polish(self, content: ScrapedContent) -> MinedData:
        if not content.sections:
            return MinedData(reports=[])

        review = find_section(content, REVIEW_SECTION)
        recommended = find_section(content, RECOMMENDED_SECTION)
        entry_time = find_section(content, ENTRY_TIME_SECTION)
        if review is None and recommended is None and entry_time is None:
            logger.info("No review sections on %s", content.url)
            return MinedData(reports=[])

        posted_at = None
        if entry_time is not None:
            raw_date = item_at(entry_time.other_text, 0)
            posted_at = parse_absolute_date(raw_date) if raw_date else None

        report = GameReportBody(
            title=review.title if review else None,
            source=self.source,
            url=content.url,
            reporter=extract_reporter(review),
            notes=join_paragraphs(review.paragraphs) if review else "",
            game_settings=extract_game_settings(recommended),
            steamdeck_settings=extract_steamdeck_settings(recommended),
            battery_performance=extract_battery_performance(recommended),
            posted_at=posted_at,
        )
        return MinedData(reports=[report])

    def close(self) -> None:
        pass
