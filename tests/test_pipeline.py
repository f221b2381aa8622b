"""End-to-end runs of the fetch pipeline with the browser layer faked out."""

import asyncio
from pathlib import Path

import pytest
from loguru import logger
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from docfetch.browser.resolver import BrowserResolver
from docfetch.config import FetchSettings
from docfetch.errors import BrowserEnvironmentError, SaveError
from docfetch.fetcher import DocumentFetcher
from docfetch.models import BrowserFamily, FetchStatus, InstallationRecord
from docfetch.pipeline import run_fetch

DOC_URL = "https://example.org/doc.PDF"


class FakeResolver:
    def __init__(self, error=None):
        self.error = error
        self.kinds = []

    def resolve(self, kind):
        self.kinds.append(kind)
        if self.error:
            raise self.error
        return Path("/cache/chrome-headless-shell")


class FakePage:
    def __init__(self, payload, goto_error=None, evaluate_error=None):
        self.payload = payload
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error:
            raise self.goto_error
        return None

    async def evaluate(self, script, arg=None):
        if self.evaluate_error:
            raise self.evaluate_error
        return self.payload


class FakeSession:
    def __init__(self, page):
        self.page = page
        self.close_calls = 0

    async def close(self):
        self.close_calls += 1


class FakeLauncher:
    def __init__(self, page):
        self.session = FakeSession(page)
        self.launched_with = []

    async def launch(self, executable_path):
        self.launched_with.append(executable_path)
        return self.session


def settings_for(tmp_path, **overrides):
    return FetchSettings(
        pdf_url=DOC_URL,
        warmup_url="https://example.org/",
        output_dir=tmp_path,
        cache_dir=tmp_path / "cache",
        **overrides,
    )


def run_with(tmp_path, page, resolver=None, saver=None, **overrides):
    launcher = FakeLauncher(page)
    kwargs = {}
    if saver is not None:
        kwargs["saver"] = saver
    result = asyncio.run(
        run_fetch(
            settings_for(tmp_path, **overrides),
            resolver=resolver or FakeResolver(),
            launcher=launcher,
            fetcher=DocumentFetcher("https://example.org/"),
            **kwargs,
        )
    )
    return result, launcher


def test_successful_run_saves_named_file(tmp_path):
    result, launcher = run_with(tmp_path, FakePage([1, 2, 3]))

    out = tmp_path / "doc.PDF"
    assert result.status is FetchStatus.SUCCESS
    assert result.ok
    assert result.output_path == out
    assert result.bytes_written == 3
    assert result.browser is BrowserFamily.CHROMIUM
    assert out.read_bytes() == b"\x01\x02\x03"
    assert launcher.launched_with == [Path("/cache/chrome-headless-shell")]
    assert launcher.session.close_calls == 1


def test_encoded_traversal_in_url_is_written_inside_output_dir(tmp_path):
    out = tmp_path / "out"
    launcher = FakeLauncher(FakePage([1, 2, 3]))
    settings = FetchSettings(
        pdf_url="https://example.org/docs/..%2Fescaped.PDF", output_dir=out, cache_dir=tmp_path / "cache"
    )

    result = asyncio.run(
        run_fetch(settings, resolver=FakeResolver(), launcher=launcher, fetcher=DocumentFetcher())
    )

    assert result.status is FetchStatus.SUCCESS
    assert result.output_path == out / "escaped.PDF"
    assert result.output_path.resolve().parent == out.resolve()
    assert not (tmp_path / "escaped.PDF").exists()


def test_saved_file_length_matches_payload(tmp_path):
    payload = list(range(256)) * 4

    result, _ = run_with(tmp_path, FakePage(payload))

    assert (tmp_path / "doc.PDF").stat().st_size == len(payload) == result.bytes_written


def test_requested_kind_is_passed_to_resolver(tmp_path):
    resolver = FakeResolver()

    result, _ = run_with(tmp_path, FakePage([1]), resolver=resolver, browser="firefox")

    assert resolver.kinds == [BrowserFamily.FIREFOX]
    assert result.browser is BrowserFamily.FIREFOX


def test_environment_error_never_launches(tmp_path):
    resolver = FakeResolver(BrowserEnvironmentError("Unable to detect a supported browser platform"))

    result, launcher = run_with(tmp_path, FakePage([1]), resolver=resolver)

    assert result.status is FetchStatus.ENVIRONMENT_ERROR
    assert "Unable to detect" in result.message
    assert launcher.launched_with == []
    assert launcher.session.close_calls == 0


@pytest.mark.parametrize(
    "page, status",
    [
        (FakePage([1], goto_error=PlaywrightTimeoutError("Timeout 60000ms exceeded.")), FetchStatus.NAVIGATION_ERROR),
        (FakePage([1], evaluate_error=PlaywrightError("TypeError: Failed to fetch")), FetchStatus.FETCH_ERROR),
        (FakePage([1, 2, 300]), FetchStatus.FETCH_ERROR),
    ],
)
def test_failures_still_close_the_browser(tmp_path, page, status):
    result, launcher = run_with(tmp_path, page)

    assert result.status is status
    assert result.error_details
    assert launcher.session.close_calls == 1
    assert not (tmp_path / "doc.PDF").exists()


def test_save_error_is_reported_and_browser_closed(tmp_path):
    def failing_saver(data, path):
        raise SaveError(28, "No space left on device", str(path))

    result, launcher = run_with(tmp_path, FakePage([1, 2]), saver=failing_saver)

    assert result.status is FetchStatus.IO_ERROR
    assert launcher.session.close_calls == 1


def test_empty_payload_is_reported_not_raised(tmp_path):
    result, launcher = run_with(tmp_path, FakePage([]))

    assert result.status is FetchStatus.EMPTY_RESPONSE
    assert result.message == "Failed to fetch PDF content."
    assert not (tmp_path / "doc.PDF").exists()
    assert launcher.session.close_calls == 1


def test_unexpected_error_is_contained(tmp_path):
    def exploding_saver(data, path):
        raise RuntimeError("boom")

    result, launcher = run_with(tmp_path, FakePage([1]), saver=exploding_saver)

    assert result.status is FetchStatus.UNKNOWN_ERROR
    assert "boom" in result.message
    assert launcher.session.close_calls == 1


def test_url_without_filename_fails_before_launch(tmp_path):
    launcher = FakeLauncher(FakePage([1]))
    settings = FetchSettings(pdf_url="https://example.org/", output_dir=tmp_path, cache_dir=tmp_path)

    result = asyncio.run(run_fetch(settings, resolver=FakeResolver(), launcher=launcher))

    assert result.status is FetchStatus.UNKNOWN_ERROR
    assert launcher.launched_with == []


def test_close_failure_does_not_mask_result(tmp_path):
    page = FakePage([7])
    launcher = FakeLauncher(page)

    async def broken_close():
        raise PlaywrightError("Browser has been closed")

    launcher.session.close = broken_close
    result = asyncio.run(
        run_fetch(settings_for(tmp_path), resolver=FakeResolver(), launcher=launcher, fetcher=DocumentFetcher())
    )

    assert result.status is FetchStatus.SUCCESS
    assert (tmp_path / "doc.PDF").read_bytes() == b"\x07"


class RecordingInstaller:
    def __init__(self, cache_dir):
        self.cache_dir = cache_dir
        self.families = []

    def install(self, family, build_id, platform_id):
        self.families.append(family)
        exe = self.cache_dir / "bin" / family.value
        exe.parent.mkdir(parents=True, exist_ok=True)
        exe.write_bytes(b"")
        return InstallationRecord(browser=family, build_id=build_id, platform=platform_id, executable_path=exe)


def test_unknown_browser_kind_warns_once(tmp_path):
    installer = RecordingInstaller(tmp_path)
    resolver = BrowserResolver(tmp_path / "cache", installer=installer, platform_detector=lambda: "linux64")
    warnings = []
    sink_id = logger.add(lambda message: warnings.append(message.record["message"]), level="WARNING")
    try:
        result, _ = run_with(tmp_path, FakePage([1]), resolver=resolver, browser="netscape")
    finally:
        logger.remove(sink_id)

    assert result.status is FetchStatus.SUCCESS
    assert installer.families == [BrowserFamily.CHROMIUM]
    assert len([w for w in warnings if "Unknown browser kind" in w]) == 1
