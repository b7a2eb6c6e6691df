"""Small field-extraction helpers shared by the miners.

Every helper is total: a missing index, label or match yields ``None`` or an
empty string, never an exception.
"""

from __future__ import annotations

import re
from typing import Optional, Pattern, Sequence, TypeVar, Union

T = TypeVar("T")

_UNKNOWN_VALUES = {"n/a", "unknown"}
_UNIT_SUFFIX_RE = re.compile(r"(?<=\d)\s*(?:fps|hz|w)$", re.IGNORECASE)
_INTEGER_RE = re.compile(r"\d+")


def item_at(items: Sequence[T], index: int) -> Optional[T]:
    """Return ``items[index]`` or ``None`` when the list is too short."""
    if 0 <= index < len(items):
        return items[index]
    return None


def find_value_after_label(
    items: Sequence[str],
    label: Union[str, Pattern[str]],
) -> str:
    """Return the element following the first one matching *label*.

    A string *label* is searched case-insensitively.  Returns ``""`` when the
    label is missing or is the last element.
    """
    pattern = re.compile(label, re.IGNORECASE) if isinstance(label, str) else label
    for i, text in enumerate(items):
        if pattern.search(text or ""):
            return items[i + 1] if i + 1 < len(items) else ""
    return ""


def scrub_unknown(value: Optional[str]) -> Optional[str]:
    """Map placeholder values (``N/A``, ``Unknown``) to ``""``."""
    if value is None:
        return None
    value = value.strip()
    return "" if value.lower() in _UNKNOWN_VALUES else value


def strip_unit_suffix(value: Optional[str]) -> Optional[str]:
    """Drop a trailing ``W``, ``Hz`` or ``fps`` unit from a number (``"12W"`` -> ``"12"``)."""
    if value is None:
        return None
    return _UNIT_SUFFIX_RE.sub("", value.strip())


def first_integer(value: Optional[str]) -> Optional[str]:
    """Return the first run of digits in *value*, ``""`` if there is none."""
    if value is None:
        return None
    value = scrub_unknown(value)
    match = _INTEGER_RE.search(value)
    return match.group(0) if match else ""


def join_paragraphs(paragraphs: Sequence[str]) -> str:
    return "\n\n".join(paragraphs)
