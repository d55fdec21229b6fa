"""Unit tests for device detection and fingerprinting."""

import pytest

from authguard.application.dtos.device import DeviceInfo
from authguard.application.services.device_fingerprint_service import (
    DeviceFingerprintService,
    detect_device_type,
    detect_operating_system,
    device_display_name,
    resolve_location,
)

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = "Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X) AppleWebKit/605.1.15 Mobile"
CHROME_ANDROID = "Mozilla/5.0 (Linux; Android 13; Pixel 7) Chrome/120.0 Mobile Safari/537.36"
BOTS = ("bot", "curl", "python")


@pytest.mark.parametrize(
    "user_agent,expected",
    [
        (CHROME_WINDOWS, "Desktop"),
        (SAFARI_IPHONE, "Mobile"),
        (SAFARI_IPAD, "Tablet"),
        (CHROME_ANDROID, "Mobile"),
        ("curl/8.4.0", "API"),
        ("SomethingElse/1.0", "Unknown"),
        (None, "Unknown"),
    ],
)
def test_detect_device_type(user_agent: str | None, expected: str) -> None:
    assert detect_device_type(user_agent, BOTS) == expected


@pytest.mark.parametrize(
    "user_agent,expected",
    [
        (CHROME_WINDOWS, "Windows 10/11"),
        ("Mozilla/5.0 (Windows NT 6.1; WOW64)", "Windows 7"),
        (SAFARI_IPHONE, "iOS"),
        ("Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)", "macOS"),
        (CHROME_ANDROID, "Android 13"),
        ("Mozilla/5.0 (X11; Ubuntu; Linux x86_64)", "Ubuntu"),
        ("Mozilla/5.0 (X11; Linux x86_64)", "Linux"),
        ("curl/8.4.0", "Unknown"),
    ],
)
def test_detect_operating_system(user_agent: str, expected: str) -> None:
    assert detect_operating_system(user_agent) == expected


def test_device_display_name() -> None:
    assert device_display_name("Desktop", "Windows 10/11") == "Windows 10/11 Desktop"
    assert device_display_name("Unknown", "Unknown") == "Unknown Device"


@pytest.mark.parametrize(
    "ip,expected",
    [
        ("127.0.0.1", "Local Network"),
        ("192.168.1.20", "Local Network"),
        ("10.0.0.5", "Local Network"),
        ("::1", "Local Network"),
        ("8.8.8.8", None),
        ("not-an-ip", None),
        (None, None),
    ],
)
def test_resolve_location(ip: str | None, expected: str | None) -> None:
    assert resolve_location(ip) == expected


def test_describe_fills_missing_fields_only() -> None:
    service = DeviceFingerprintService()
    described = service.describe(
        DeviceInfo(user_agent=CHROME_WINDOWS, device_name="Work laptop")
    )
    assert described.device_type == "Desktop"
    assert described.operating_system == "Windows 10/11"
    assert described.device_name == "Work laptop"


def test_fingerprint_is_deterministic_and_fixed_length() -> None:
    service = DeviceFingerprintService(fingerprint_length=32)
    device = DeviceInfo(user_agent=CHROME_WINDOWS, accept_language="en-US")
    first = service.generate_fingerprint(device, "203.0.113.7")
    second = service.generate_fingerprint(device, "203.0.113.7")
    assert first == second
    assert len(first) == 32
    assert all(c in "0123456789abcdef" for c in first)


def test_fingerprint_changes_with_network_and_browser() -> None:
    service = DeviceFingerprintService()
    device = DeviceInfo(user_agent=CHROME_WINDOWS)
    base = service.generate_fingerprint(device, "203.0.113.7")
    assert service.generate_fingerprint(device, "198.51.100.1") != base
    assert service.generate_fingerprint(DeviceInfo(user_agent=SAFARI_IPHONE), "203.0.113.7") != base


def test_fingerprint_for_prefers_supplied_value() -> None:
    service = DeviceFingerprintService()
    device = DeviceInfo(user_agent=CHROME_WINDOWS, device_fingerprint="client-fp")
    assert service.fingerprint_for(device, "203.0.113.7") == "client-fp"
