"""
Runtime configuration for docfetch.

Defaults live here as module constants; ``load_settings`` layers the
environment (and a ``.env`` file, if present) on top of them and validates
the result once.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional
from urllib.parse import quote

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from docfetch.models import BrowserFamily, BrowserProfile

# Target document
DEFAULT_PDF_URL = (
    "https://rbidocs.rbi.org.in/rdocs/notification/PDFs/NT978AB28DBE30F440049F0EEC7EEEE9D3C5.PDF"
)
DEFAULT_WARMUP_URL = "https://www.rbi.org.in/"

# Browser selection
BROWSER_ENV_VAR = "PUPPETEER_BROWSER"
DEFAULT_BROWSER_KIND = "edge"

# Known-good Chrome for Testing build for the chromium family
DEFAULT_CHROMIUM_BUILD = "131.0.6778.204"

DEFAULT_CACHE_DIR = Path(".browser-cache")

# Warm-up navigation
DEFAULT_WAIT_UNTIL = "domcontentloaded"
DEFAULT_NAV_TIMEOUT_MS = 60_000

# Pinned DNS-over-HTTPS resolver
DEFAULT_DNS_OVERRIDE = "https://1.1.1.1/dns-query"

CHROMIUM_BASE_ARGS = frozenset(
    {
        "--disable-web-security",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
    }
)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

WaitUntil = Literal["domcontentloaded", "load", "networkidle", "commit"]

_FALSE_VALUES = {"0", "false", "no", "off"}


class FetchSettings(BaseModel):
    """Validated settings for a single run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    pdf_url: str = DEFAULT_PDF_URL
    warmup_url: str = DEFAULT_WARMUP_URL
    browser: str = DEFAULT_BROWSER_KIND
    output_dir: Path = Field(default_factory=Path.cwd)
    cache_dir: Path = DEFAULT_CACHE_DIR
    chromium_build: str = DEFAULT_CHROMIUM_BUILD
    wait_until: WaitUntil = DEFAULT_WAIT_UNTIL
    nav_timeout_ms: int = Field(DEFAULT_NAV_TIMEOUT_MS, gt=0)
    dns_override: Optional[str] = DEFAULT_DNS_OVERRIDE
    headless: bool = True

    @field_validator("pdf_url", "warmup_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Expected an http(s) URL, got {v!r}")
        return v

    @field_validator("browser")
    @classmethod
    def _normalize_browser(cls, v: str) -> str:
        return (v or "").strip().lower() or DEFAULT_BROWSER_KIND

    @field_validator("dns_override")
    @classmethod
    def _check_dns_override(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not v.startswith("https://"):
            raise ValueError(f"DNS override must be an https:// DoH template, got {v!r}")
        return v

    @field_validator("chromium_build")
    @classmethod
    def _check_build(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("chromium_build must not be empty")
        return v


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in _FALSE_VALUES


def _settings_from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    env_map = {
        "DOCFETCH_PDF_URL": "pdf_url",
        "DOCFETCH_WARMUP_URL": "warmup_url",
        BROWSER_ENV_VAR: "browser",
        "DOCFETCH_OUTPUT_DIR": "output_dir",
        "DOCFETCH_CACHE_DIR": "cache_dir",
        "DOCFETCH_CHROMIUM_BUILD": "chromium_build",
        "DOCFETCH_WAIT_UNTIL": "wait_until",
        "DOCFETCH_NAV_TIMEOUT_MS": "nav_timeout_ms",
    }
    for env_name, field_name in env_map.items():
        raw = (os.getenv(env_name) or "").strip()
        if raw:
            values[field_name] = raw

    # An explicitly empty value disables the override, so check presence rather than truthiness.
    if "DOCFETCH_DNS_OVERRIDE" in os.environ:
        values["dns_override"] = os.environ["DOCFETCH_DNS_OVERRIDE"].strip() or None

    values["headless"] = _env_flag("DOCFETCH_HEADLESS", True)
    return values


def load_settings(**overrides: Any) -> FetchSettings:
    """
    Build settings from defaults, the environment and explicit overrides.

    Overrides whose value is None are ignored so CLI flags that were not given
    fall through to the environment.

    Raises:
        pydantic.ValidationError (a ValueError) if any value is invalid.
    """
    load_dotenv()
    values = _settings_from_env()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return FetchSettings(**values)


def _chromium_dns_args(template: str) -> set[str]:
    # Secure DoH mode via field trial; Chromium has no plain command-line switch for it.
    encoded = quote(template, safe="")
    return {
        "--enable-features=DnsOverHttps<DoHTrial",
        "--force-fieldtrials=DoHTrial/Group1",
        f"--force-fieldtrial-params=DoHTrial.Group1:server/{encoded}/method/POST/mode/secure",
    }


def _firefox_dns_prefs(template: str) -> dict[str, Any]:
    return {
        "network.trr.mode": 3,
        "network.trr.uri": template,
    }


def build_profile(family: BrowserFamily, settings: FetchSettings) -> BrowserProfile:
    """Return the closed launch profile for ``family`` under ``settings``."""
    dns = settings.dns_override
    if family is BrowserFamily.FIREFOX:
        return BrowserProfile(
            family=family,
            headless=settings.headless,
            launch_args=frozenset(),
            dns_override=dns,
            user_prefs=_firefox_dns_prefs(dns) if dns else {},
        )

    args = set(CHROMIUM_BASE_ARGS)
    if dns:
        args |= _chromium_dns_args(dns)
    return BrowserProfile(
        family=family,
        headless=settings.headless,
        launch_args=frozenset(args),
        dns_override=dns,
    )
