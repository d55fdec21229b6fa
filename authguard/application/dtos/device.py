"""DTOs for device descriptors and the trusted-device registry."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DeviceInfo:
    """Client device descriptor taken from request metadata.

    Missing device_type/operating_system/device_name are detected from the
    user-agent. device_fingerprint, when given, is used as-is.
    """

    user_agent: str | None = None
    device_name: str | None = None
    device_type: str | None = None
    operating_system: str | None = None
    accept_language: str | None = None
    accept_encoding: str | None = None
    device_fingerprint: str | None = None


@dataclass(frozen=True)
class TrustedDeviceResult:
    """Trusted-device read-model."""

    id: str
    user_id: str
    device_fingerprint: str
    device_name: str | None
    device_type: str | None
    operating_system: str | None
    ip_address: str | None
    location: str | None
    is_trusted: bool
    trusted_at: datetime | None
    revoked_at: datetime | None
    last_seen_at: datetime | None
