"""DTOs for login risk scoring and suspicious-activity detection."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from authguard.domain.enums import FindingType, RiskLevel


@dataclass(frozen=True)
class RiskSignals:
    """Boolean risk signals for one login attempt (input to the weight table)."""

    untrusted_device: bool = False
    location_changed: bool = False
    ip_changed: bool = False
    recent_activity: bool = False
    many_active_sessions: bool = False
    high_risk_marker: bool = False
    bot_user_agent: bool = False


@dataclass(frozen=True)
class RiskAssessment:
    """Computed per login attempt; logged, never stored as its own record."""

    user_id: str
    risk_score: int
    risk_level: RiskLevel
    factors: tuple[str, ...]
    recommended_actions: tuple[str, ...]
    requires_verification: bool
    should_block: bool
    device_fingerprint: str | None = None
    assessed_at: datetime | None = None
    fail_closed: bool = False

    @property
    def is_suspicious(self) -> bool:
        """True above the Medium band."""
        return self.risk_level >= RiskLevel.HIGH


@dataclass(frozen=True)
class SuspiciousFinding:
    """One detected suspicious condition and the sessions it implicates."""

    finding_type: FindingType
    description: str
    severity: RiskLevel
    session_ids: tuple[str, ...] = ()
    detected_at: datetime | None = None


@dataclass(frozen=True)
class SecurityActivityResult:
    """Security-activity log entry read-model."""

    id: str
    user_id: str
    activity_type: str
    description: str | None
    device_fingerprint: str | None
    ip_address: str | None
    location: str | None
    risk_level: str | None
    risk_score: int | None
    factors: tuple[str, ...]
    is_suspicious: bool
    occurred_at: datetime
    details: dict[str, Any] = field(default_factory=dict)
