"""
A single document fetch run: resolve -> launch -> warm up + fetch -> save.

``run_fetch`` never raises. Every failure is logged with a marker and turned
into a ``FetchResult``; the browser session, once launched, is closed in the
``finally`` block whatever happened.
"""

from __future__ import annotations

import asyncio
import traceback
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from docfetch.browser.launcher import BrowserLauncher, BrowserSession
from docfetch.browser.resolver import BrowserResolver, normalize_browser_kind
from docfetch.config import FetchSettings, build_profile, load_settings
from docfetch.errors import BrowserEnvironmentError, FetchError, NavigationError, SaveError
from docfetch.fetcher import DocumentFetcher
from docfetch.models import BrowserFamily, FetchResult, FetchStatus, TargetDescriptor
from docfetch.persistence import save


def _failure(
    status: FetchStatus,
    marker: str,
    exc: BaseException,
    url: str,
    family: BrowserFamily,
) -> FetchResult:
    logger.error(f"[{marker}] An error occurred: {exc}")
    return FetchResult(
        status=status,
        url=url,
        browser=family,
        message=str(exc),
        error_details=traceback.format_exc(),
    )


async def run_fetch(
    settings: FetchSettings,
    *,
    resolver: Optional[BrowserResolver] = None,
    launcher: Optional[BrowserLauncher] = None,
    fetcher: Optional[DocumentFetcher] = None,
    saver: Callable[[bytes, Path], bool] = save,
) -> FetchResult:
    """
    Fetch ``settings.pdf_url`` through a warmed-up browser page and save it.

    Collaborators default to the real implementations built from ``settings``;
    tests pass fakes.
    """
    family = normalize_browser_kind(settings.browser)
    url = settings.pdf_url
    session: Optional[BrowserSession] = None
    try:
        resolver = resolver or BrowserResolver(settings.cache_dir, pinned_chromium_build=settings.chromium_build)
        launcher = launcher or BrowserLauncher(build_profile(family, settings))
        fetcher = fetcher or DocumentFetcher(
            warmup_url=settings.warmup_url,
            wait_until=settings.wait_until,
            warmup_timeout_ms=settings.nav_timeout_ms,
        )
        target = TargetDescriptor.from_url(url, settings.output_dir)
        executable = resolver.resolve(family)
        session = await launcher.launch(executable)

        data = await fetcher.fetch(session.page, target.url)

        if not saver(data, target.output_path):
            return FetchResult(
                status=FetchStatus.EMPTY_RESPONSE,
                url=url,
                browser=family,
                message="Failed to fetch PDF content.",
            )

        return FetchResult(
            status=FetchStatus.SUCCESS,
            url=url,
            browser=family,
            output_path=target.output_path,
            bytes_written=len(data),
            message=f"PDF saved successfully to: {target.output_path}",
        )

    except BrowserEnvironmentError as e:
        return _failure(FetchStatus.ENVIRONMENT_ERROR, "environment", e, url, family)
    except NavigationError as e:
        return _failure(FetchStatus.NAVIGATION_ERROR, "navigation", e, url, family)
    except FetchError as e:
        return _failure(FetchStatus.FETCH_ERROR, "fetch", e, url, family)
    except SaveError as e:
        return _failure(FetchStatus.IO_ERROR, "io", e, url, family)
    except Exception as e:
        return _failure(FetchStatus.UNKNOWN_ERROR, "unexpected", e, url, family)
    finally:
        if session is not None:
            try:
                await session.close()
            except Exception as e:
                logger.warning(f"Error while closing browser: {e}")


def run(settings: Optional[FetchSettings] = None, **kwargs) -> FetchResult:
    """Synchronous wrapper around ``run_fetch``."""
    return asyncio.run(run_fetch(settings or load_settings(), **kwargs))
