from __future__ import annotations

import os

import pytest

_ENV_PREFIXES = ("DOCFETCH_",)
_ENV_NAMES = ("PUPPETEER_BROWSER", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell configuration out of the tests."""
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
