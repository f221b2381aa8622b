"""
Browser Resolver: turn a requested browser kind into a local executable path.

Completed installs are recorded as ``<cache_dir>/<family>.json``. A record
whose executable still exists is the fast path: no platform probing, no
build resolution, no network.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from docfetch.browser.installer import BrowserInstaller, resolve_build_id, resolve_latest_firefox_build
from docfetch.browser.platforms import detect_platform
from docfetch.config import DEFAULT_BROWSER_KIND, DEFAULT_CHROMIUM_BUILD
from docfetch.errors import BrowserEnvironmentError
from docfetch.models import BrowserFamily, InstallationRecord

# Requested kind -> installed family. Only Chromium builds exist for the
# Chromium brands, so edge and chrome share one install.
BROWSER_ALIASES = {
    "chrome": BrowserFamily.CHROMIUM,
    "chromium": BrowserFamily.CHROMIUM,
    "edge": BrowserFamily.CHROMIUM,
    "msedge": BrowserFamily.CHROMIUM,
    "firefox": BrowserFamily.FIREFOX,
}

DEFAULT_FAMILY = BrowserFamily.CHROMIUM


def normalize_browser_kind(kind: Optional[str]) -> BrowserFamily:
    """Map a requested browser kind onto an installable family."""
    key = (kind or DEFAULT_BROWSER_KIND).strip().lower() or DEFAULT_BROWSER_KIND
    family = BROWSER_ALIASES.get(key)
    if family is None:
        logger.warning(f"Unknown browser kind {kind!r}, falling back to {DEFAULT_FAMILY.value}")
        return DEFAULT_FAMILY
    return family


class BrowserResolver:
    def __init__(
        self,
        cache_dir: Path,
        installer: Optional[BrowserInstaller] = None,
        pinned_chromium_build: str = DEFAULT_CHROMIUM_BUILD,
        platform_detector: Callable[[], str] = detect_platform,
        latest_firefox_resolver: Callable[[], str] = resolve_latest_firefox_build,
    ):
        self.cache_dir = Path(cache_dir)
        self.installer = installer or BrowserInstaller(self.cache_dir)
        self.pinned_chromium_build = pinned_chromium_build
        self.platform_detector = platform_detector
        self.latest_firefox_resolver = latest_firefox_resolver

    def record_path(self, family: BrowserFamily) -> Path:
        return self.cache_dir / f"{family.value}.json"

    def lookup(self, family: BrowserFamily) -> Optional[InstallationRecord]:
        """Return the recorded installation for ``family`` if its executable still exists."""
        path = self.record_path(family)
        if not path.is_file():
            return None

        try:
            record = InstallationRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable installation record {path}: {e}")
            return None

        if record.browser is not family:
            logger.warning(f"Installation record {path} is for {record.browser.value}, ignoring")
            return None
        if not record.is_usable():
            logger.info(f"Recorded {family.value} executable is gone: {record.executable_path}")
            return None
        return record

    def save_record(self, record: InstallationRecord) -> None:
        path = self.record_path(record.browser)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise BrowserEnvironmentError(f"Cannot write installation record {path}: {e}") from e

    def resolve(self, kind: Union[BrowserFamily, str, None]) -> Path:
        """
        Resolve ``kind`` to a browser executable, installing it if needed.

        ``kind`` is either a requested browser kind or an already normalized family.

        Raises:
            BrowserEnvironmentError: if the platform is unsupported or the install fails.
        """
        family = kind if isinstance(kind, BrowserFamily) else normalize_browser_kind(kind)

        record = self.lookup(family)
        if record is not None:
            logger.info(f"Using cached {family.value} {record.build_id}: {record.executable_path}")
            return record.executable_path

        platform_id = self.platform_detector()
        build_id = resolve_build_id(
            family,
            pinned_chromium_build=self.pinned_chromium_build,
            latest_resolver=self.latest_firefox_resolver,
        )
        logger.info(f"No cached {family.value} found, installing build {build_id} for {platform_id}")

        record = self.installer.install(family, build_id, platform_id)
        self.save_record(record)
        return record.executable_path
