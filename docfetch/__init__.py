"""Fetch a PDF through a warmed-up headless browser page."""

from docfetch.pipeline import run, run_fetch

__all__ = ["run", "run_fetch"]
