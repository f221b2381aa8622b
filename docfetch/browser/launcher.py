from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright, async_playwright
from playwright_stealth import Stealth

from docfetch.config import USER_AGENT
from docfetch.errors import BrowserEnvironmentError
from docfetch.models import BrowserFamily, BrowserProfile


class BrowserSession:
    """
    Ownership handle for one launched browser and its single page.

    ``close()`` may be called any number of times; only the first call
    releases anything.
    """

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext, page: Page):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()
        logger.info("Browser closed.")

    async def __aenter__(self) -> BrowserSession:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()


class BrowserLauncher:
    """Launch factory configured once with a browser profile and stealth evasions."""

    def __init__(self, profile: BrowserProfile, stealth: Optional[Stealth] = None):
        self.profile = profile
        self.stealth = stealth or Stealth()

    def launch_options(self, executable_path: Path) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "executable_path": str(executable_path),
            "headless": self.profile.headless,
            "args": sorted(self.profile.launch_args),
        }
        if self.profile.user_prefs:
            options["firefox_user_prefs"] = dict(self.profile.user_prefs)
        return options

    def context_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "viewport": {"width": 1920, "height": 1080},
            "locale": "en-US",
        }
        if self.profile.family is BrowserFamily.CHROMIUM:
            options["user_agent"] = USER_AGENT
        return options

    async def launch(self, executable_path: Path) -> BrowserSession:
        """
        Start Playwright, launch the browser and open one stealth page.

        Raises:
            BrowserEnvironmentError: if the Playwright driver or the browser
                process cannot be started.
        """
        logger.info(f"Launching browser ({self.profile.family.value}, headless={self.profile.headless})...")
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise BrowserEnvironmentError(f"Failed to start the Playwright driver: {e}") from e
        browser_type = playwright.firefox if self.profile.family is BrowserFamily.FIREFOX else playwright.chromium

        try:
            browser = await browser_type.launch(**self.launch_options(executable_path))
        except PlaywrightError as e:
            await playwright.stop()
            raise BrowserEnvironmentError(f"Failed to launch {executable_path}: {e}") from e

        try:
            context = await browser.new_context(**self.context_options())
            page = await context.new_page()
            await self.stealth.apply_stealth_async(page)
        except Exception:
            await browser.close()
            await playwright.stop()
            raise

        logger.debug(f"Browser {browser.version} ready")
        return BrowserSession(playwright, browser, context, page)
