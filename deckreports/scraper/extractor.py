"""Structured extraction: turns a :class:`RawPage` into :class:`ScrapedContent`.

Each element matched by one of the section selectors becomes a
:class:`ScrapedSection`.  Text that is not a heading, paragraph or list item
is collected, in document order, into ``other_text``.
"""

from __future__ import annotations

from typing import Optional, Sequence

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from deckreports.scraper.fetcher import RawPage, fetch_url
from deckreports.scraper.models import (
    ScrapedContent,
    ScrapedImage,
    ScrapedLink,
    ScrapedList,
    ScrapedSection,
)

_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_STRUCTURED_TAGS = set(_HEADING_TAGS) | {"p", "li", "script", "style", "noscript"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _page_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def _inside_structured_tag(node: NavigableString, root: Tag) -> bool:
    parent = node.parent
    while parent is not None and parent is not root:
        if parent.name in _STRUCTURED_TAGS:
            return True
        parent = parent.parent
    return False


def _other_text(element: Tag) -> list[str]:
    """Return loose text nodes of *element* in document order."""
    out: list[str] = []
    for node in element.find_all(string=True):
        if isinstance(node, Comment) or _inside_structured_tag(node, element):
            continue
        text = node.strip()
        if text:
            out.append(text)
    return out


def _section_from_element(element: Tag, index: int) -> ScrapedSection:
    headings: dict[str, list[str]] = {}
    for tag in element.find_all(_HEADING_TAGS):
        text = tag.get_text(" ", strip=True)
        if text:
            headings.setdefault(tag.name, []).append(text)

    title = None
    for level in _HEADING_TAGS:
        if headings.get(level):
            title = headings[level][0]
            break

    paragraphs = [
        text for p in element.find_all("p") if (text := p.get_text(" ", strip=True))
    ]
    links = [
        ScrapedLink(href=a["href"].strip(), text=a.get_text(" ", strip=True))
        for a in element.find_all("a", href=True)
    ]
    images = [
        ScrapedImage(src=img["src"], alt=img.get("alt", ""), title=img.get("title", ""))
        for img in element.find_all("img", src=True)
    ]
    lists = [
        ScrapedList(
            type=lst.name,
            items=[li.get_text(" ", strip=True) for li in lst.find_all("li", recursive=False)],
        )
        for lst in element.find_all(["ul", "ol"])
    ]

    return ScrapedSection(
        id=element.get("id") or f"section-{index}",
        title=title,
        headings=headings,
        paragraphs=paragraphs,
        other_text=_other_text(element),
        links=links,
        images=images,
        lists=lists,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_sections(raw: RawPage, section_selectors: Sequence[str]) -> ScrapedContent:
    """Split *raw* into sections using CSS *section_selectors*.

    ``sections`` is ``None`` when no selector matched anything.
    """
    soup = BeautifulSoup(raw.html, "html.parser")
    sections: list[ScrapedSection] = []
    for selector in section_selectors:
        for element in soup.select(selector):
            sections.append(_section_from_element(element, len(sections) + 1))

    return ScrapedContent(
        title=_page_title(soup),
        url=raw.url,
        sections=sections or None,
    )


def scrape_text_structured(
    url: str,
    section_selectors: Sequence[str],
    wait_for_selector: Optional[str] = None,
    follow_redirects: bool = True,
) -> ScrapedContent:
    """Fetch *url* and return its structured content."""
    raw = fetch_url(url, wait_for_selector=wait_for_selector, follow_redirects=follow_redirects)
    return extract_sections(raw, section_selectors)
