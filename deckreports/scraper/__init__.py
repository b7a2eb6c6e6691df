"""Page fetching and structured section extraction."""

from deckreports.scraper.extractor import extract_sections, scrape_text_structured
from deckreports.scraper.fetcher import RawPage, RedirectRefusedError, fetch_url
from deckreports.scraper.models import (
    ScrapedContent,
    ScrapedImage,
    ScrapedLink,
    ScrapedList,
    ScrapedSection,
)

__all__ = [
    "fetch_url",
    "extract_sections",
    "scrape_text_structured",
    "RawPage",
    "RedirectRefusedError",
    "ScrapedContent",
    "ScrapedSection",
    "ScrapedLink",
    "ScrapedImage",
    "ScrapedList",
]
