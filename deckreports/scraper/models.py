"""Data models for the scraper pipeline.

``ScrapedContent`` is the structured page shape handed to the miners: a page
title and URL plus an ordered list of sections.  Every list on a section may
be empty but is never absent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ScrapedLink:
    href: str
    text: str = ""


@dataclass
class ScrapedImage:
    src: str
    alt: str = ""
    title: str = ""


@dataclass
class ScrapedList:
    type: str
    items: list[str] = field(default_factory=list)


@dataclass
class ScrapedSection:
    """One block of a page matched by a section selector."""

    id: str
    title: Optional[str] = None
    headings: dict[str, list[str]] = field(default_factory=dict)
    paragraphs: list[str] = field(default_factory=list)
    other_text: list[str] = field(default_factory=list)
    links: list[ScrapedLink] = field(default_factory=list)
    images: list[ScrapedImage] = field(default_factory=list)
    lists: list[ScrapedList] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScrapedSection:
        other_text = data.get("other_text", data.get("otherText")) or []
        return cls(
            id=str(data.get("id") or ""),
            title=data.get("title"),
            headings={k: list(v) for k, v in (data.get("headings") or {}).items()},
            paragraphs=list(data.get("paragraphs") or []),
            other_text=list(other_text),
            links=[
                ScrapedLink(href=link.get("href", ""), text=link.get("text", ""))
                for link in data.get("links") or []
            ],
            images=[
                ScrapedImage(
                    src=img.get("src", ""),
                    alt=img.get("alt", ""),
                    title=img.get("title", ""),
                )
                for img in data.get("images") or []
            ],
            lists=[
                ScrapedList(type=lst.get("type", "ul"), items=list(lst.get("items") or []))
                for lst in data.get("lists") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "headings": self.headings,
            "paragraphs": self.paragraphs,
            "otherText": self.other_text,
            "links": [{"href": l.href, "text": l.text} for l in self.links],
            "images": [
                {"src": i.src, "alt": i.alt, "title": i.title} for i in self.images
            ],
            "lists": [{"type": l.type, "items": l.items} for l in self.lists],
        }


@dataclass
class ScrapedContent:
    """A scraped page.  ``sections is None`` means nothing was found."""

    title: str
    url: str
    sections: Optional[list[ScrapedSection]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScrapedContent:
        raw_sections = data.get("sections")
        sections = (
            [ScrapedSection.from_dict(s) for s in raw_sections]
            if raw_sections is not None
            else None
        )
        return cls(title=data.get("title", ""), url=data.get("url", ""), sections=sections)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "url": self.url}
        if self.sections is not None:
            data["sections"] = [s.to_dict() for s in self.sections]
        return data
