"""Performance-summary composition.

``generate_performance_summary`` selects the narrative reports for a game,
numbers them into a single prompt, asks the configured chat model for a
short technical summary and cleans up the answer.  A failed model call never
propagates: the summary is simply empty.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from deckreports.config import settings
from deckreports.mining.dates import sort_by_posted_at
from deckreports.mining.models import GameReportBody, Source

logger = logging.getLogger(__name__)

# Editorial reviews are long enough to drown out the user reports.
EXCLUDED_SOURCES = frozenset({Source.STEAMDECKHQ})

SUMMARY_PROMPT = (
    "Generate a concise summary (two to three sentences) of the following Steam "
    "Deck game's user reports, focusing on key points about performance, "
    "technical aspects and fixes or workarounds.\n"
    "Avoid personal opinions or extraneous details. Don't include the name of "
    "the game in the summary and don't provide a title for the summary.\n\n"
    "Performance Review:\n"
    "{reports}\n\n"
    "Summary:"
)

_SUMMARY_LABEL_RE = re.compile(r"^\s*summary:\s*", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _get_llm() -> Any:
    """Return a LangChain chat model configured for short summaries."""
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.openai_chat_model,
            temperature=settings.summary_temperature,
            max_tokens=settings.summary_max_tokens,
        )

    from langchain_ollama import ChatOllama

    return ChatOllama(
        model=settings.ollama_chat_model,
        temperature=settings.summary_temperature,
        num_predict=settings.summary_max_tokens,
    )


# ---------------------------------------------------------------------------
# Prompt composition
# ---------------------------------------------------------------------------

def select_summary_reports(reports: Iterable[GameReportBody]) -> list[GameReportBody]:
    """Keep reports with notes from non-excluded sources, newest first."""
    kept = [
        report
        for report in reports
        if report.notes and report.notes.strip() and report.source not in EXCLUDED_SOURCES
    ]
    return sort_by_posted_at(kept)


def prepare_summary_input(reports: Iterable[GameReportBody]) -> str:
    """Return ``"Report 1: \\n<notes>\\n\\nReport 2: \\n<notes>..."``."""
    return "\n\n".join(
        f"Report {i}: \n{report.notes}"
        for i, report in enumerate(select_summary_reports(reports), start=1)
    )


def build_summary_prompt(summary_input: str) -> str:
    return SUMMARY_PROMPT.format(reports=summary_input)


def clean_summary(raw: str) -> str:
    """Strip a ``Summary:`` label and a leading ``#``, collapse whitespace."""
    cleaned = _SUMMARY_LABEL_RE.sub("", raw or "")
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned.lstrip("#").strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_performance_summary(
    reports: Iterable[GameReportBody],
    llm: Optional[Any] = None,
) -> str:
    """Summarise *reports* with the chat model, or return ``""``.

    Args:
        reports: Mined reports from every source for one game.
        llm: A LangChain chat model.  Defaults to the one built from
            ``settings``.

    Returns:
        The cleaned summary.  Empty when there is nothing to summarise or the
        model call fails.
    """
    summary_input = prepare_summary_input(reports)
    if not summary_input:
        return ""

    from langchain_core.messages import HumanMessage

    try:
        model = llm if llm is not None else _get_llm()
        response = model.invoke([HumanMessage(content=build_summary_prompt(summary_input))])
    except Exception:
        logger.exception("Performance summary generation failed")
        return ""

    content = response.content if hasattr(response, "content") else str(response)
    return clean_summary(content if isinstance(content, str) else str(content))
