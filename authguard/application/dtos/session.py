"""DTOs for the session manager."""

from dataclasses import dataclass, field
from datetime import datetime

from authguard.application.dtos.device import DeviceInfo


@dataclass(frozen=True)
class SessionCreate:
    """Input for create_session. expires_at defaults to now + session lifetime."""

    user_id: str
    device: DeviceInfo = field(default_factory=DeviceInfo)
    ip_address: str | None = None
    location: str | None = None
    expires_at: datetime | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class SessionResult:
    """Session read-model."""

    id: str
    session_id: str
    user_id: str
    device_name: str | None
    device_type: str | None
    operating_system: str | None
    ip_address: str | None
    location: str | None
    device_fingerprint: str | None
    created_at: datetime
    last_active_at: datetime
    expires_at: datetime
    is_active: bool
    is_current: bool
    status: str
    ended_at: datetime | None
    end_reason: str | None


@dataclass(frozen=True)
class SessionStats:
    """Session statistics for one user (or all users when user_id is None)."""

    user_id: str | None
    total_sessions: int
    active_sessions: int
    ended_sessions: int
    by_device_type: dict[str, int] = field(default_factory=dict)
    by_location: dict[str, int] = field(default_factory=dict)
    by_end_reason: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CreatedSession:
    """Result of create_session: the new session plus any evicted session ids."""

    session: SessionResult
    evicted_session_ids: tuple[str, ...] = ()
