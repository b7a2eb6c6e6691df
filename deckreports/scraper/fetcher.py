"""HTTP fetcher with a Playwright path for JS-rendered report pages."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from deckreports.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Markers of pages that only render client-side
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app|__next)["\']', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )
}


class RedirectRefusedError(RuntimeError):
    """Raised when a page answers with a redirect and redirects are disabled."""

    def __init__(self, url: str, location: str) -> None:
        super().__init__(f"Refused redirect from {url!r} to {location!r}")
        self.url = url
        self.location = location


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int


def _is_spa(html: str) -> bool:
    """Whether *html* is an app shell whose content only appears after JS runs."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    no_scripts = re.sub(
        r"<(script|style)[^>]*>.*?</(script|style)>", "", html, flags=re.IGNORECASE | re.DOTALL
    )
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    return len(html) > 2000 and len(stripped) < 200


def _fetch_with_playwright(url: str, wait_for_selector: Optional[str] = None) -> RawPage:
    """Load *url* in headless Chromium and capture the rendered DOM.

    A selector that never shows up is logged and the page is returned as is.
    """
    from playwright.sync_api import TimeoutError as PlaywrightTimeout  # noqa: PLC0415
    from playwright.sync_api import sync_playwright  # noqa: PLC0415

    timeout_ms = int(settings.browser_timeout * 1000)
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=True)
        try:
            page = browser.new_page(user_agent=_DEFAULT_HEADERS["User-Agent"])
            response = page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
            if wait_for_selector:
                try:
                    page.wait_for_selector(wait_for_selector, timeout=timeout_ms)
                except PlaywrightTimeout:
                    logger.warning("Selector %r never appeared on %s", wait_for_selector, url)
            html = page.content()
            status = response.status if response else 200
        finally:
            browser.close()

    return RawPage(url=url, html=html, status_code=status)


def fetch_url(
    url: str,
    wait_for_selector: Optional[str] = None,
    follow_redirects: bool = True,
) -> RawPage:
    """Download *url* as a :class:`RawPage`.

    The first attempt is a plain ``httpx`` GET.  The page is re-rendered in
    Playwright when it is an app shell, or when *wait_for_selector* is set
    and nothing in the static HTML matches it.

    Raises:
        httpx.HTTPStatusError: If the server returns a 4xx/5xx status code.
        RedirectRefusedError: If the server redirects and *follow_redirects*
            is ``False``.
    """
    with httpx.Client(
        headers=_DEFAULT_HEADERS,
        timeout=settings.request_timeout,
        follow_redirects=follow_redirects,
    ) as client:
        response = client.get(url)
        if response.is_redirect:
            raise RedirectRefusedError(url, response.headers.get("location", ""))
        response.raise_for_status()
        raw = RawPage(url=url, html=response.text, status_code=response.status_code)

    needs_render = _is_spa(raw.html)
    if wait_for_selector and not needs_render:
        from bs4 import BeautifulSoup  # noqa: PLC0415

        needs_render = BeautifulSoup(raw.html, "html.parser").select_one(wait_for_selector) is None

    if needs_render:
        logger.debug("Rendering %s with Playwright", url)
        raw = _fetch_with_playwright(url, wait_for_selector)

    return raw
