"""ShareDeck miner.

Every report article on a ShareDeck page flattens into ``other_text``.  The
first few entries sit at fixed offsets; everything else is a label followed
by its value.  Notes are the entries between the ``Note`` label and the
``Sign in with Steam`` prompt.  If the site copy for either delimiter
changes the notes come back empty.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from deckreports.mining.base import ScrapeFn
from deckreports.mining.fields import (
    find_value_after_label,
    item_at,
    scrub_unknown,
    strip_unit_suffix,
)
from deckreports.mining.models import (
    BatteryPerformance,
    GameReportBody,
    MinedData,
    Reporter,
    Source,
    SteamdeckExperience,
    SteamdeckHardware,
    SteamdeckSettings,
)
from deckreports.scraper.extractor import scrape_text_structured
from deckreports.scraper.models import ScrapedContent, ScrapedSection

logger = logging.getLogger(__name__)

SHAREDECK_URL = "https://sharedeck.games/apps/{game_id}"
SECTION_SELECTOR = "#reports article"

# Fixed offsets in other_text
BATTERY_LIFE_INDEX = 0
POWER_DRAW_INDEX = 1
AVERAGE_FRAME_RATE_INDEX = 2
HARDWARE_INDEX = 4

# Labels whose value is the next other_text entry
VOTE_PROMPT_LABEL = re.compile(r"to be able to vote", re.IGNORECASE)
SCREEN_REFRESH_RATE_LABEL = re.compile(r"screen refresh rate", re.IGNORECASE)
TDP_LIMIT_LABEL = re.compile(r"tdp limit", re.IGNORECASE)
PROTON_VERSION_LABEL = re.compile(r"proton version", re.IGNORECASE)
STEAMOS_VERSION_LABEL = re.compile(r"steamos version", re.IGNORECASE)
GRAPHICS_PRESET_LABEL = re.compile(r"graphics preset", re.IGNORECASE)
FRAMERATE_LIMIT_LABEL = re.compile(r"framerate limit", re.IGNORECASE)
RESOLUTION_LABEL = re.compile(r"resolution", re.IGNORECASE)

NOTES_START = "Note"
NOTES_END = "Sign in with Steam"

ANONYMOUS = "Anonymous"


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def clean_value(value: str) -> str:
    """Scrub placeholders and drop a ``W``, ``Hz`` or ``fps`` unit."""
    return strip_unit_suffix(scrub_unknown(value)) or ""


def labelled_value(items: list[str], label: re.Pattern) -> str:
    return clean_value(find_value_after_label(items, label))


def clean_resolution(value: str) -> str:
    """``"1280\\nx\\n800"`` -> ``"1280x800"``."""
    return re.sub(r"\s+", "", scrub_unknown(value) or "")


def detect_hardware(text: Optional[str]) -> Optional[SteamdeckHardware]:
    """OLED wins when both variants are mentioned."""
    lowered = (text or "").lower()
    if "oled" in lowered:
        return SteamdeckHardware.OLED
    if "lcd" in lowered:
        return SteamdeckHardware.LCD
    return None


def extract_reporter(section: ScrapedSection) -> Reporter:
    username = find_value_after_label(section.other_text, VOTE_PROMPT_LABEL).strip()
    profile = item_at(section.links, 0)
    avatar = item_at(section.images, 0)
    return Reporter(
        username=username or ANONYMOUS,
        user_profile_url=profile.href if profile else "",
        user_profile_avatar_url=avatar.src if avatar else None,
    )


def extract_notes(items: list[str]) -> str:
    """Join the entries strictly between the notes delimiters."""
    try:
        start = next(i for i, text in enumerate(items) if text.strip() == NOTES_START)
        end = next(
            i for i, text in enumerate(items) if i > start and text.strip() == NOTES_END
        )
    except StopIteration:
        return ""
    return "\n\n".join(text.strip() for text in items[start + 1 : end] if text.strip())


def extract_battery_performance(items: list[str]) -> BatteryPerformance:
    life_span = item_at(items, BATTERY_LIFE_INDEX)
    return BatteryPerformance(
        life_span=life_span.replace("\n", "").strip() if life_span is not None else None,
        consumption=item_at(items, POWER_DRAW_INDEX),
    )


def extract_steamdeck_settings(items: list[str]) -> SteamdeckSettings:
    return SteamdeckSettings(
        frame_rate_cap=labelled_value(items, FRAMERATE_LIMIT_LABEL),
        screen_refresh_rate=labelled_value(items, SCREEN_REFRESH_RATE_LABEL),
        tdp_limit=labelled_value(items, TDP_LIMIT_LABEL),
        proton_version=labelled_value(items, PROTON_VERSION_LABEL),
        steamos_version=labelled_value(items, STEAMOS_VERSION_LABEL),
    )


def extract_game_settings(items: list[str]) -> dict[str, str]:
    return {
        "graphics_preset": labelled_value(items, GRAPHICS_PRESET_LABEL),
        "frame_rate_limit": labelled_value(items, FRAMERATE_LIMIT_LABEL),
        "resolution": clean_resolution(find_value_after_label(items, RESOLUTION_LABEL)),
    }


# ---------------------------------------------------------------------------
# Miner
# ---------------------------------------------------------------------------

class SharedeckMiner:
    source = Source.SHAREDECK

    def __init__(self, scrape: ScrapeFn = scrape_text_structured) -> None:
        self._scrape = scrape

    def get_url(self, game_id: int) -> str:
        return SHAREDECK_URL.format(game_id=game_id)

    def mine(self, game_id: int) -> ScrapedContent:
        url = self.get_url(game_id)
        logger.info("Mining ShareDeck reports for game %s", game_id)
        return self._scrape(url, [SECTION_SELECTOR], SECTION_SELECTOR, True)

    def polish(self, content: ScrapedContent) -> MinedData:
        if not content.sections:
            return MinedData(reports=[])

        reports = [
            self._report_from_section(section, content.url)
            for section in content.sections
            if section.other_text
        ]
        return MinedData(reports=reports)

    def close(self) -> None:
        pass

    def _report_from_section(self, section: ScrapedSection, page_url: str) -> GameReportBody:
        items = section.other_text
        return GameReportBody(
            title=None,
            source=self.source,
            url=f"{page_url}#{section.id}",
            reporter=extract_reporter(section),
            notes=extract_notes(items),
            game_settings=extract_game_settings(items),
            steamdeck_hardware=detect_hardware(item_at(items, HARDWARE_INDEX)),
            steamdeck_settings=extract_steamdeck_settings(items),
            battery_performance=extract_battery_performance(items),
            steamdeck_experience=SteamdeckExperience(
                average_frame_rate=item_at(items, AVERAGE_FRAME_RATE_INDEX),
            ),
            posted_at=None,
        )
