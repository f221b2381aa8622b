import pytest

from docfetch.browser.platforms import SUPPORTED_PLATFORMS, detect_platform, is_mac, is_windows
from docfetch.errors import BrowserEnvironmentError


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("Linux", "x86_64", "linux64"),
        ("Linux", "AMD64", "linux64"),
        ("Darwin", "arm64", "mac-arm64"),
        ("Darwin", "x86_64", "mac-x64"),
        ("Windows", "AMD64", "win64"),
        ("Windows", "ARM64", "win64"),
        ("Windows", "x86", "win32"),
    ],
)
def test_detect_platform(system, machine, expected):
    assert detect_platform(system, machine) == expected


@pytest.mark.parametrize("system, machine", [("Linux", "aarch64"), ("FreeBSD", "amd64"), ("", "")])
def test_unsupported_platform_is_an_environment_error(system, machine):
    with pytest.raises(BrowserEnvironmentError, match="Unable to detect"):
        detect_platform(system, machine)


def test_current_host_is_detected_or_rejected_cleanly():
    try:
        assert detect_platform() in SUPPORTED_PLATFORMS
    except BrowserEnvironmentError:
        pass


def test_platform_helpers():
    assert is_windows("win32") and is_windows("win64")
    assert is_mac("mac-arm64") and not is_mac("linux64")
