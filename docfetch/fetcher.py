"""
Navigator/Fetcher.

The warm-up navigation lets the site set whatever cookies its bot detection
wants; the document is then fetched from inside that page so the request
carries the same cookies and origin.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

from docfetch.browser.launcher import BrowserLauncher
from docfetch.byte_codec import bytes_from_numeric_sequence
from docfetch.config import DEFAULT_NAV_TIMEOUT_MS, DEFAULT_WAIT_UNTIL, DEFAULT_WARMUP_URL
from docfetch.errors import FetchError, NavigationError
from docfetch.models import BrowserProfile

# ArrayBuffer is not serialisable across evaluate(), so hand back plain numbers.
FETCH_AS_BYTE_LIST_JS = """
async (url) => {
    const response = await fetch(url);
    if (!response.ok) {
        throw new Error(`HTTP ${response.status} ${response.statusText} for ${url}`);
    }
    const buffer = await response.arrayBuffer();
    return Array.from(new Uint8Array(buffer));
}
"""


class DocumentFetcher:
    def __init__(
        self,
        warmup_url: str = DEFAULT_WARMUP_URL,
        wait_until: str = DEFAULT_WAIT_UNTIL,
        warmup_timeout_ms: int = DEFAULT_NAV_TIMEOUT_MS,
    ):
        self.warmup_url = warmup_url
        self.wait_until = wait_until
        self.warmup_timeout_ms = warmup_timeout_ms

    async def warm_up(self, page: Page) -> None:
        """Navigate to the warm-up page. Raises NavigationError on failure or timeout."""
        logger.info(f"Navigating to {self.warmup_url} to simulate human behavior...")
        try:
            response = await page.goto(
                self.warmup_url,
                wait_until=self.wait_until,
                timeout=self.warmup_timeout_ms,
            )
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                f"Warm-up navigation to {self.warmup_url} timed out after {self.warmup_timeout_ms} ms"
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Warm-up navigation to {self.warmup_url} failed: {e}") from e

        if response is not None and not response.ok:
            logger.warning(f"Warm-up page answered HTTP {response.status}, continuing anyway")

    async def fetch_bytes(self, page: Page, url: str) -> bytes:
        """Run fetch() inside ``page`` and return the response body."""
        logger.info(f"Fetching PDF content from {url}...")
        try:
            raw = await page.evaluate(FETCH_AS_BYTE_LIST_JS, url)
        except PlaywrightError as e:
            raise FetchError(f"In-page fetch of {url} failed: {e}") from e

        try:
            return bytes_from_numeric_sequence(raw)
        except ValueError as e:
            raise FetchError(f"In-page fetch of {url} returned an invalid byte sequence: {e}") from e

    async def fetch(self, page: Page, url: str) -> bytes:
        await self.warm_up(page)
        return await self.fetch_bytes(page, url)


async def fetch_document(
    executable_path: Path,
    target_url: str,
    *,
    profile: BrowserProfile,
    fetcher: Optional[DocumentFetcher] = None,
    launcher: Optional[BrowserLauncher] = None,
) -> bytes:
    """
    Launch a browser, warm up, fetch ``target_url`` and close the browser.

    Raises:
        BrowserEnvironmentError: if the browser cannot be launched.
        NavigationError: if the warm-up navigation fails.
        FetchError: if the in-page fetch fails.
    """
    fetcher = fetcher or DocumentFetcher()
    launcher = launcher or BrowserLauncher(profile)
    async with await launcher.launch(executable_path) as session:
        return await fetcher.fetch(session.page, target_url)
