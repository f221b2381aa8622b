"""
Browser build resolution and installation into the local cache directory.

Two families are installable:

- chromium: a pinned Chrome for Testing ``chrome-headless-shell`` build,
  downloaded straight from Google's storage bucket and unpacked.
- firefox: the Playwright-patched Firefox (stock Firefox cannot be driven by
  Playwright). Its build id is whatever revision the installed Playwright
  driver declares as current, and the Playwright CLI does the download.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
import zipfile
from pathlib import Path
from typing import Callable, Optional

import requests
from loguru import logger

from docfetch.browser.platforms import is_mac, is_windows
from docfetch.config import DEFAULT_CHROMIUM_BUILD
from docfetch.errors import BrowserEnvironmentError
from docfetch.models import BrowserFamily, InstallationRecord

CFT_DOWNLOAD_URL = (
    "https://storage.googleapis.com/chrome-for-testing-public/"
    "{build_id}/{platform}/chrome-headless-shell-{platform}.zip"
)

DOWNLOAD_TIMEOUT = 60
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
PLAYWRIGHT_INSTALL_TIMEOUT = 600


def chromium_executable_relpath(platform_id: str) -> Path:
    name = "chrome-headless-shell.exe" if is_windows(platform_id) else "chrome-headless-shell"
    return Path(f"chrome-headless-shell-{platform_id}") / name


def firefox_executable_relpath(build_id: str, platform_id: str) -> Path:
    base = Path(f"firefox-{build_id}") / "firefox"
    if is_windows(platform_id):
        return base / "firefox.exe"
    if is_mac(platform_id):
        return base / "Nightly.app" / "Contents" / "MacOS" / "firefox"
    return base / "firefox"


def playwright_browsers_json() -> Path:
    """Location of the browser registry shipped with the installed Playwright driver."""
    import playwright

    return Path(playwright.__file__).parent / "driver" / "package" / "browsers.json"


def resolve_latest_firefox_build(registry_path: Optional[Path] = None) -> str:
    """
    Resolve the newest Firefox build the installed Playwright driver can drive.

    Raises:
        BrowserEnvironmentError: if the registry is missing or has no Firefox entry.
    """
    registry_path = registry_path or playwright_browsers_json()
    try:
        registry = json.loads(Path(registry_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise BrowserEnvironmentError(f"Cannot read Playwright browser registry {registry_path}: {e}") from e

    for entry in registry.get("browsers", []):
        if entry.get("name") == BrowserFamily.FIREFOX.value and entry.get("revision"):
            return str(entry["revision"])

    raise BrowserEnvironmentError(f"No firefox entry in Playwright browser registry {registry_path}")


def resolve_build_id(
    family: BrowserFamily,
    pinned_chromium_build: str = DEFAULT_CHROMIUM_BUILD,
    latest_resolver: Callable[[], str] = resolve_latest_firefox_build,
) -> str:
    """Pinned build for chromium, dynamically resolved latest build for firefox."""
    if family is BrowserFamily.FIREFOX:
        build_id = latest_resolver()
        logger.debug(f"Resolved latest firefox build: {build_id}")
        return build_id
    return pinned_chromium_build


def _restore_permissions(zf: zipfile.ZipFile, dest: Path) -> None:
    # ZipFile.extractall drops the executable bit.
    for info in zf.infolist():
        mode = (info.external_attr >> 16) & 0o777
        if mode:
            target = dest / info.filename
            if target.exists():
                os.chmod(target, mode)


class BrowserInstaller:
    """Downloads and unpacks browser builds under ``cache_dir``."""

    def __init__(self, cache_dir: Path, session: Optional[requests.Session] = None):
        self.cache_dir = Path(cache_dir)
        self.session = session or requests.Session()

    @property
    def playwright_browsers_path(self) -> Path:
        return self.cache_dir / "playwright"

    def install_dir(self, family: BrowserFamily, build_id: str, platform_id: str) -> Path:
        if family is BrowserFamily.FIREFOX:
            return self.playwright_browsers_path
        return self.cache_dir / "chrome-headless-shell" / f"{platform_id}-{build_id}"

    def executable_path(self, family: BrowserFamily, build_id: str, platform_id: str) -> Path:
        root = self.install_dir(family, build_id, platform_id)
        if family is BrowserFamily.FIREFOX:
            return root / firefox_executable_relpath(build_id, platform_id)
        return root / chromium_executable_relpath(platform_id)

    def install(self, family: BrowserFamily, build_id: str, platform_id: str) -> InstallationRecord:
        """
        Install ``family`` at ``build_id`` for ``platform_id``.

        Returns:
            The installation record (not yet persisted).

        Raises:
            BrowserEnvironmentError: if the download/unpack/installer fails or the
                executable is missing afterwards.
        """
        logger.info(f"Installing {family.value} build {build_id} for {platform_id} into {self.cache_dir}...")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BrowserEnvironmentError(f"Cannot create browser cache {self.cache_dir}: {e}") from e

        if family is BrowserFamily.FIREFOX:
            self._install_firefox()
        else:
            self._install_chromium(build_id, platform_id)

        executable = self.executable_path(family, build_id, platform_id)
        if not executable.is_file():
            raise BrowserEnvironmentError(
                f"Installation of {family.value} {build_id} finished but {executable} does not exist"
            )

        logger.success(f"Installed {family.value} {build_id}: {executable}")
        return InstallationRecord(
            browser=family,
            build_id=build_id,
            platform=platform_id,
            executable_path=executable,
        )

    def _install_chromium(self, build_id: str, platform_id: str) -> None:
        url = CFT_DOWNLOAD_URL.format(build_id=build_id, platform=platform_id)
        dest = self.install_dir(BrowserFamily.CHROMIUM, build_id, platform_id)
        archive = self.cache_dir / f"chrome-headless-shell-{platform_id}-{build_id}.zip"

        try:
            self._download(url, archive)
            self._unpack(archive, dest)
        finally:
            if archive.exists():
                archive.unlink()

    def _download(self, url: str, path: Path) -> None:
        logger.info(f"Downloading {url} -> {path}")
        try:
            with self.session.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as response:
                response.raise_for_status()
                with path.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise BrowserEnvironmentError(f"Browser download failed for {url}: {e}") from e
        except OSError as e:
            raise BrowserEnvironmentError(f"Cannot write browser archive {path}: {e}") from e

    def _unpack(self, archive: Path, dest: Path) -> None:
        logger.info(f"Extracting {archive.name} -> {dest}")
        try:
            dest.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive, "r") as zf:
                zf.extractall(dest)
                _restore_permissions(zf, dest)
        except (zipfile.BadZipFile, OSError) as e:
            raise BrowserEnvironmentError(f"Cannot unpack browser archive {archive}: {e}") from e

    def _install_firefox(self) -> None:
        env = {**os.environ, "PLAYWRIGHT_BROWSERS_PATH": str(self.playwright_browsers_path)}
        cmd = [sys.executable, "-m", "playwright", "install", BrowserFamily.FIREFOX.value]
        logger.info(f"Running Playwright installer: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                env=env,
                capture_output=True,
                text=True,
                timeout=PLAYWRIGHT_INSTALL_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BrowserEnvironmentError(f"Playwright installer could not run: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()[-2000:]
            raise BrowserEnvironmentError(
                f"Playwright installer exited with code {result.returncode}: {detail}"
            )
