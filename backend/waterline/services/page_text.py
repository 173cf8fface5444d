"""Outage status page text extraction.

Returns the visible text of the outage page, not its markup. Two modes:
  - browser (default): headless Chromium via Playwright, waits for network
    idle since the outage list is rendered client-side
  - http: plain GET, text flattened with BeautifulSoup
"""

import logging

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError, async_playwright

from waterline.config import settings

logger = logging.getLogger(__name__)

_USER_AGENT = "Waterline/1.0 (water outage monitoring)"

_BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li",
    "main", "nav", "ol", "p", "pre", "section", "table", "tr", "ul",
]


class PageFetchError(Exception):
    """The outage page could not be retrieved."""


async def fetch_page_text(
    url: str,
    *,
    mode: str | None = None,
    timeout_s: float | None = None,
) -> str:
    mode = mode or settings.outage_fetch_mode
    timeout_s = timeout_s if timeout_s is not None else settings.outage_fetch_timeout_s

    if mode == "http":
        text = await _fetch_static(url, timeout_s)
    else:
        text = await _fetch_rendered(url, timeout_s)

    logger.debug("Fetched %d characters of page text from %s (%s)", len(text), url, mode)
    return text


async def _fetch_rendered(url: str, timeout_s: float) -> str:
    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True)
            try:
                page = await browser.new_page(user_agent=_USER_AGENT)
                resp = await page.goto(
                    url, wait_until="networkidle", timeout=timeout_s * 1000
                )
                if resp is None or resp.status != 200:
                    status = resp.status if resp is not None else "no response"
                    raise PageFetchError(f"{url} returned {status}")
                return await page.evaluate("() => document.body.innerText")
            finally:
                await browser.close()
    except PlaywrightError as e:
        raise PageFetchError(f"Browser fetch of {url} failed: {e}") from e


async def _fetch_static(url: str, timeout_s: float) -> str:
    try:
        async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as client:
            resp = await client.get(url, headers={"User-Agent": _USER_AGENT})
    except httpx.HTTPError as e:
        raise PageFetchError(f"HTTP fetch of {url} failed: {e}") from e

    if resp.status_code != 200:
        raise PageFetchError(f"{url} returned {resp.status_code}")
    return html_to_text(resp.text)


def html_to_text(html: str) -> str:
    """Flatten markup to visible text, one line per block element.

    Inline elements stay on the line they appear in, so
    "<strong>Priority:</strong> Emergency" reads "Priority: Emergency".
    """
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    body = soup.body or soup
    lines = (" ".join(line.split()) for line in body.get_text().splitlines())
    return "\n".join(line for line in lines if line)
