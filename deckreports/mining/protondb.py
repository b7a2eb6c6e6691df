"""ProtonDB miner.

Each section on a ProtonDB Steam Deck page is one user report written as
free prose.  Identity and dates live at fixed positions in the section's
link, image and text lists; settings are pulled out of the prose with
regular expressions.  The two sections at the head of the page carry the
page-level rating and verification labels when they are not reports
themselves.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Pattern

from deckreports.mining.base import ScrapeFn
from deckreports.mining.dates import parse_relative_date, sort_by_posted_at, truncate_to_utc_midnight
from deckreports.mining.fields import item_at, join_paragraphs
from deckreports.mining.models import (
    GameReportBody,
    MinedData,
    Reporter,
    Source,
    SteamdeckHardware,
    SteamdeckRating,
    SteamdeckSettings,
)
from deckreports.scraper.extractor import scrape_text_structured
from deckreports.scraper.models import ScrapedContent, ScrapedSection

logger = logging.getLogger(__name__)

PROTONDB_URL = "https://www.protondb.com/app/{game_id}?device=steamDeck"
SECTION_SELECTOR = ".for-anchor-tags"

# Fixed positions inside a report section
HANDLE_TEXT_INDEX = 0
PROFILE_LINK_INDEX = 0
AVATAR_IMAGE_INDEX = 0
PERMALINK_LINK_INDEX = 2

# Fixed positions of the page summary sections
RATING_SECTION_INDEX = 0
VERIFIED_SECTION_INDEX = 1

ANONYMOUS = "Anonymous"

_RELATIVE_DATE_RE = re.compile(
    r"\d+\s+(?:second|minute|hour|day|week|month|year)s?\s+ago", re.IGNORECASE
)
_VERIFIED_RE = re.compile(r"\bverified\b", re.IGNORECASE)
_NOT_VERIFIED_RE = re.compile(r"\bnot\s+verified\b", re.IGNORECASE)

# Each setting: (suppression phrase, value-then-label, label-then-value).
# Values may be decimal. A label only reaches a number within the same
# clause, and never one that carries another setting's unit.
_NUMBER = r"(\d+(?:\.\d+)?)"
_LEADING = r"(?<![\w.])"
_LABEL_GAP = r"[^\d\n,.;]{0,20}?"
_NOT_OTHER_UNIT = r"(?!\d|\.\d|\s*(?:fps|hz|w|watts?)\b)"
_FPS_OFF_RE = re.compile(r"\bfps\s*(?:limit|cap)?\s*:?\s*(?:off|disabled)\b", re.IGNORECASE)
_FPS_VALUE_RE = re.compile(_LEADING + _NUMBER + r"\s*fps\b", re.IGNORECASE)
_FPS_LABEL_RE = re.compile(
    r"\bfps\b(?:\s*(?:limit|cap))?" + _LABEL_GAP + _NUMBER + _NOT_OTHER_UNIT, re.IGNORECASE
)

_HZ_OFF_RE = re.compile(r"\bhz\s*(?:limit)?\s*:?\s*(?:off|disabled)\b", re.IGNORECASE)
_HZ_VALUE_RE = re.compile(_LEADING + _NUMBER + r"\s*hz\b", re.IGNORECASE)
_HZ_LABEL_RE = re.compile(r"\bhz\b" + _LABEL_GAP + _NUMBER + _NOT_OTHER_UNIT, re.IGNORECASE)

_TDP_OFF_RE = re.compile(r"\btdp\s*(?:limit)?\s*:?\s*(?:off|disabled)\b", re.IGNORECASE)
_TDP_VALUE_RE = re.compile(_LEADING + _NUMBER + r"\s*(?:w|watts?)\b", re.IGNORECASE)
_TDP_LABEL_RE = re.compile(
    r"\b(?:tdp|watts?)\b(?:\s*limit)?" + _LABEL_GAP + _NUMBER + _NOT_OTHER_UNIT, re.IGNORECASE
)


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def extract_setting(
    notes: str,
    off_re: Pattern[str],
    value_re: Pattern[str],
    label_re: Pattern[str],
) -> Optional[str]:
    """Return the number attached to a setting label in *notes*.

    The off/disabled phrase is checked first; when present the setting is
    absent no matter what numbers appear elsewhere.  Otherwise the earliest
    match of either direction wins.
    """
    if off_re.search(notes):
        return None
    matches = [m for m in (value_re.search(notes), label_re.search(notes)) if m]
    if not matches:
        return None
    return min(matches, key=lambda m: m.start()).group(1)


def extract_frame_rate_cap(notes: str) -> Optional[str]:
    return extract_setting(notes, _FPS_OFF_RE, _FPS_VALUE_RE, _FPS_LABEL_RE)


def extract_refresh_rate(notes: str) -> Optional[str]:
    return extract_setting(notes, _HZ_OFF_RE, _HZ_VALUE_RE, _HZ_LABEL_RE)


def extract_tdp_limit(notes: str) -> Optional[str]:
    return extract_setting(notes, _TDP_OFF_RE, _TDP_VALUE_RE, _TDP_LABEL_RE)


def detect_hardware(notes: str) -> Optional[SteamdeckHardware]:
    """LCD wins when both variants are mentioned."""
    lowered = notes.lower()
    if "lcd" in lowered:
        return SteamdeckHardware.LCD
    if "oled" in lowered:
        return SteamdeckHardware.OLED
    return None


def extract_reporter(section: ScrapedSection) -> Reporter:
    handle = item_at(section.other_text, HANDLE_TEXT_INDEX)
    profile = item_at(section.links, PROFILE_LINK_INDEX)
    avatar = item_at(section.images, AVATAR_IMAGE_INDEX)
    return Reporter(
        username=handle.strip() if handle and handle.strip() else ANONYMOUS,
        user_profile_url=profile.href if profile else "",
        user_profile_avatar_url=avatar.src if avatar else None,
    )


def extract_permalink(section: ScrapedSection, page_url: str) -> str:
    link = item_at(section.links, PERMALINK_LINK_INDEX)
    return link.href if link and link.href else page_url


def extract_posted_at(section: ScrapedSection) -> Optional[datetime]:
    """Resolve the first relative-date link text to a UTC midnight, or ``None``."""
    for link in section.links:
        if _RELATIVE_DATE_RE.search(link.text or ""):
            resolved = parse_relative_date(link.text.strip())
            return truncate_to_utc_midnight(resolved) if resolved else None
    return None


def _is_report(section: ScrapedSection) -> bool:
    return bool(join_paragraphs(section.paragraphs).strip())


def _section_label(section: Optional[ScrapedSection]) -> Optional[str]:
    """Title or first text of a page summary section; user reports carry no label."""
    if section is None or _is_report(section):
        return None
    if section.title and section.title.strip():
        return section.title.strip()
    first = item_at(section.other_text, 0)
    return first.strip() if first and first.strip() else None


def extract_steamdeck_rating(content: ScrapedContent) -> Optional[SteamdeckRating]:
    label = _section_label(item_at(content.sections or [], RATING_SECTION_INDEX))
    if not label:
        return None
    try:
        return SteamdeckRating(label.lower())
    except ValueError:
        return None


def extract_steamdeck_verified(content: ScrapedContent) -> Optional[bool]:
    label = _section_label(item_at(content.sections or [], VERIFIED_SECTION_INDEX))
    if not label:
        return None
    return bool(_VERIFIED_RE.search(label)) and not _NOT_VERIFIED_RE.search(label)


# ---------------------------------------------------------------------------
# Miner
# ---------------------------------------------------------------------------

class ProtondbMiner:
    source = Source.PROTONDB

    def __init__(self, scrape: ScrapeFn = scrape_text_structured) -> None:
        self._scrape = scrape

    def get_url(self, game_id: int) -> str:
        return PROTONDB_URL.format(game_id=game_id)

    def mine(self, game_id: int) -> ScrapedContent:
        url = self.get_url(game_id)
        logger.info("Mining ProtonDB reports for game %s", game_id)
        return self._scrape(url, [SECTION_SELECTOR], SECTION_SELECTOR, True)

    def polish(self, content: ScrapedContent) -> MinedData:
        if not content.sections:
            return MinedData(reports=[])

        reports: list[GameReportBody] = []
        for section in content.sections:
            if not _is_report(section):
                continue
            notes = join_paragraphs(section.paragraphs)
            reports.append(self._report_from_section(section, notes, content.url))

        return MinedData(
            reports=sort_by_posted_at(reports),
            steamdeck_rating=extract_steamdeck_rating(content),
            steamdeck_verified=extract_steamdeck_verified(content),
        )

    def close(self) -> None:
        pass

    def _report_from_section(
        self, section: ScrapedSection, notes: str, page_url: str
    ) -> GameReportBody:
        return GameReportBody(
            title=section.title,
            source=self.source,
            url=extract_permalink(section, page_url),
            reporter=extract_reporter(section),
            notes=notes,
            steamdeck_hardware=detect_hardware(notes),
            steamdeck_settings=SteamdeckSettings(
                frame_rate_cap=extract_frame_rate_cap(notes),
                screen_refresh_rate=extract_refresh_rate(notes),
                tdp_limit=extract_tdp_limit(notes),
            ),
            posted_at=extract_posted_at(section),
        )
