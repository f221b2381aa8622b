"""
Browser acquisition and launch: platform detection, build resolution and
install, the resolver fast path, and the stealth launch factory.
"""
from .launcher import BrowserLauncher, BrowserSession
from .resolver import BrowserResolver, normalize_browser_kind

__all__ = ["BrowserLauncher", "BrowserSession", "BrowserResolver", "normalize_browser_kind"]
