"""Host platform detection, in Chrome for Testing naming."""

import platform
from typing import Optional

from docfetch.errors import BrowserEnvironmentError

LINUX64 = "linux64"
MAC_X64 = "mac-x64"
MAC_ARM64 = "mac-arm64"
WIN32 = "win32"
WIN64 = "win64"

SUPPORTED_PLATFORMS = (LINUX64, MAC_X64, MAC_ARM64, WIN32, WIN64)

_X64_MACHINES = {"x86_64", "amd64", "x64"}
_ARM64_MACHINES = {"arm64", "aarch64"}
_X86_MACHINES = {"x86", "i386", "i686"}


def detect_platform(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """
    Return the platform identifier for the current host.

    Raises:
        BrowserEnvironmentError: for an OS/architecture pair with no browser builds.
    """
    system = (system if system is not None else platform.system()).lower()
    machine = (machine if machine is not None else platform.machine()).lower()

    if system == "linux" and machine in _X64_MACHINES:
        return LINUX64
    if system == "darwin":
        if machine in _ARM64_MACHINES:
            return MAC_ARM64
        if machine in _X64_MACHINES:
            return MAC_X64
    if system == "windows":
        if machine in _X64_MACHINES or machine in _ARM64_MACHINES:
            # Windows on ARM runs x64 builds under emulation
            return WIN64
        if machine in _X86_MACHINES:
            return WIN32

    raise BrowserEnvironmentError(
        f"Unable to detect a supported browser platform (system={system!r}, machine={machine!r})"
    )


def is_windows(platform_id: str) -> bool:
    return platform_id in (WIN32, WIN64)


def is_mac(platform_id: str) -> bool:
    return platform_id in (MAC_X64, MAC_ARM64)
