from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, FrozenSet, Optional
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BrowserFamily(str, Enum):
    CHROMIUM = "chromium"
    FIREFOX = "firefox"


class FetchStatus(Enum):
    SUCCESS = "SUCCESS"                     # Document fetched and written to disk
    EMPTY_RESPONSE = "EMPTY_RESPONSE"       # Fetch ran but yielded zero bytes, nothing written
    ENVIRONMENT_ERROR = "ENVIRONMENT_ERROR" # Platform unknown or browser install failed
    NAVIGATION_ERROR = "NAVIGATION_ERROR"   # Warm-up navigation failed or timed out
    FETCH_ERROR = "FETCH_ERROR"             # In-page fetch threw or returned garbage
    IO_ERROR = "IO_ERROR"                   # Output file could not be written
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class TargetDescriptor(BaseModel):
    """
    The document to fetch and where it ends up.
    The filename is the basename of the URL path, so a query string never leaks into it.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    filename: str
    output_dir: Path

    @classmethod
    def from_url(cls, url: str, output_dir: Path | str) -> TargetDescriptor:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Unsupported URL scheme for {url!r}")
        # Decoded separators must not survive into the name: "..%2Fx.pdf" is "x.pdf".
        decoded = unquote(PurePosixPath(parsed.path).name).replace("\\", "/")
        filename = PurePosixPath(decoded).name
        if filename in ("", ".", ".."):
            raise ValueError(f"Cannot derive a filename from {url!r}")
        return cls(url=url, filename=filename, output_dir=Path(output_dir))

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.filename


class BrowserProfile(BaseModel):
    """Closed launch configuration for one browser family."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    family: BrowserFamily
    headless: bool = True
    launch_args: FrozenSet[str] = frozenset()
    dns_override: Optional[str] = None
    user_prefs: Dict[str, Any] = Field(default_factory=dict)

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


class InstallationRecord(BaseModel):
    """A browser build installed into the local cache directory."""
    browser: BrowserFamily
    build_id: str
    platform: str
    executable_path: Path
    installed_at: datetime = Field(default_factory=datetime.now)

    def is_usable(self) -> bool:
        return self.executable_path.is_file()


class FetchResult(BaseModel):
    status: FetchStatus
    url: str
    output_path: Optional[Path] = None
    bytes_written: int = 0
    message: str = "" # Human readable explanation
    error_details: Optional[str] = None # Stack trace of the failure, if any
    browser: Optional[BrowserFamily] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.SUCCESS
