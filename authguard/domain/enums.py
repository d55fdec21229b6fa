"""Domain enumerations for the authorization and session-security engine.

Enums represent fixed sets of domain values (permission actions, risk
levels, session states, suspicious-activity finding types). Stored as
their string values.
"""

from enum import Enum, IntEnum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class PermissionAction(_ValuesMixin, str, Enum):
    """Action half of a resource.action permission name."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"
    EXECUTE = "execute"
    EXPORT = "export"
    IMPORT = "import"
    PUBLISH = "publish"
    APPROVE = "approve"


class RiskLevel(IntEnum):
    """Login risk level. Ordered, so comparisons like level >= MEDIUM hold."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        """Human-readable name (e.g. 'Medium')."""
        return self.name.capitalize()


class SessionStatus(_ValuesMixin, str, Enum):
    """Session state machine. Every value except ACTIVE is terminal."""

    ACTIVE = "active"
    LOGGED_OUT = "logged_out"
    EXPIRED = "expired"
    DEVICE_LIMIT_EVICTED = "device_limit_evicted"
    ADMIN_REVOKED = "admin_revoked"
    SUSPICIOUS_TERMINATED = "suspicious_terminated"

    @property
    def is_terminal(self) -> bool:
        """True for every state a session cannot leave."""
        return self is not SessionStatus.ACTIVE


class DeviceType(_ValuesMixin, str, Enum):
    """Coarse device class detected from the user-agent."""

    DESKTOP = "Desktop"
    MOBILE = "Mobile"
    TABLET = "Tablet"
    API = "API"
    UNKNOWN = "Unknown"


class FindingType(_ValuesMixin, str, Enum):
    """Suspicious-activity finding types."""

    MULTIPLE_ACTIVE_SESSIONS = "MultipleActiveSessions"
    MULTIPLE_GEOGRAPHIC_LOCATIONS = "MultipleGeographicLocations"
    RAPID_MULTIPLE_LOGINS = "RapidMultipleLogins"
    HIGH_RISK_LOGINS = "HighRiskLogins"


class SecurityActivityType(_ValuesMixin, str, Enum):
    """Entry types in the append-only security-activity log."""

    LOGIN_RISK_ASSESSMENT = "LoginRiskAssessment"
    DEVICE_TRUSTED = "DeviceTrusted"
    DEVICE_TRUST_REVOKED = "DeviceTrustRevoked"
    SUSPICIOUS_SESSIONS_TERMINATED = "SuspiciousSessionsTerminated"
