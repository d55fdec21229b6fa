"""Device detection and fingerprinting from request metadata.

The fingerprint is a SHA-256 digest over canonical JSON of the device
descriptors and a digest of the client IP. No timestamp is hashed, so the
same browser on the same network keeps the same fingerprint across days.
"""

from __future__ import annotations

import hashlib
import ipaddress
import json
import re
from dataclasses import replace
from typing import Any

from authguard.application.dtos.device import DeviceInfo
from authguard.core.constants import LOCAL_NETWORK_LOCATION
from authguard.domain.enums import DeviceType

UNKNOWN = "Unknown"
UNKNOWN_DEVICE_NAME = "Unknown Device"

_WINDOWS_VERSIONS = (
    ("windows nt 10.0", "Windows 10/11"),
    ("windows nt 6.3", "Windows 8.1"),
    ("windows nt 6.2", "Windows 8"),
    ("windows nt 6.1", "Windows 7"),
)
_ANDROID_VERSION_RE = re.compile(r"android (\d+\.?\d*)", re.IGNORECASE)


def canonical_json(data: dict[str, Any]) -> str:
    """Canonical JSON for deterministic hashing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode()).hexdigest()


def detect_device_type(user_agent: str | None, bot_signatures: tuple[str, ...] = ()) -> str:
    """Classify a user-agent as Mobile, Tablet, Desktop, API or Unknown."""
    if not user_agent:
        return DeviceType.UNKNOWN.value
    ua = user_agent.lower()
    if "tablet" in ua or "ipad" in ua:
        return DeviceType.TABLET.value
    if "mobile" in ua or "android" in ua or "iphone" in ua:
        return DeviceType.MOBILE.value
    if "windows" in ua or "macintosh" in ua or "linux" in ua:
        return DeviceType.DESKTOP.value
    if any(sig in ua for sig in bot_signatures):
        return DeviceType.API.value
    return DeviceType.UNKNOWN.value


def detect_operating_system(user_agent: str | None) -> str:
    """Best-effort operating system name from a user-agent string."""
    if not user_agent:
        return UNKNOWN
    ua = user_agent.lower()
    if "windows nt" in ua:
        return next((name for key, name in _WINDOWS_VERSIONS if key in ua), "Windows")
    if "iphone os" in ua or "ipad" in ua or re.search(r"\bios\b", ua):
        return "iOS"
    if "mac os x" in ua or "macos" in ua:
        return "macOS"
    if "android" in ua:
        match = _ANDROID_VERSION_RE.search(ua)
        return f"Android {match.group(1)}" if match else "Android"
    if "ubuntu" in ua:
        return "Ubuntu"
    if "linux" in ua:
        return "Linux"
    return UNKNOWN


def device_display_name(device_type: str | None, operating_system: str | None) -> str:
    """'<OS> <Type>', skipping unknown parts, e.g. 'Windows 10/11 Desktop'."""
    parts = [p for p in (operating_system, device_type) if p and p != UNKNOWN]
    return " ".join(parts) if parts else UNKNOWN_DEVICE_NAME


def resolve_location(ip: str | None) -> str | None:
    """Loopback and private addresses resolve to the local network; others are unresolved."""
    if not ip:
        return None
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return None
    if address.is_loopback or address.is_private:
        return LOCAL_NETWORK_LOCATION
    return None


class DeviceFingerprintService:
    """Fills in detected device descriptors and computes stable fingerprints."""

    def __init__(self, fingerprint_length: int = 32, bot_signatures: tuple[str, ...] = ()) -> None:
        self.fingerprint_length = fingerprint_length
        self.bot_signatures = bot_signatures

    def describe(self, device: DeviceInfo) -> DeviceInfo:
        """Return device with type, OS and name detected where the caller gave none."""
        device_type = device.device_type or detect_device_type(
            device.user_agent, self.bot_signatures
        )
        operating_system = device.operating_system or detect_operating_system(device.user_agent)
        return replace(
            device,
            device_type=device_type,
            operating_system=operating_system,
            device_name=device.device_name or device_display_name(device_type, operating_system),
        )

    def generate_fingerprint(self, device: DeviceInfo, ip_address: str | None) -> str:
        """Deterministic fingerprint of the device and network (hex, fixed length)."""
        described = self.describe(device)
        content = {
            "device_type": described.device_type,
            "operating_system": described.operating_system,
            "user_agent": described.user_agent or "",
            "ip": sha256_hex(ip_address.strip())[:16] if ip_address else "",
            "accept_language": described.accept_language or "",
            "accept_encoding": described.accept_encoding or "",
        }
        return sha256_hex(canonical_json(content))[: self.fingerprint_length]

    def fingerprint_for(self, device: DeviceInfo, ip_address: str | None) -> str:
        """The caller-supplied fingerprint if present, else a generated one."""
        return device.device_fingerprint or self.generate_fingerprint(device, ip_address)
