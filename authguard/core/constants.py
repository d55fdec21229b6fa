"""Core constants: cache key prefixes and shared literal values.

Single source of truth for cache key structure (DRY). Used by
infrastructure cache key builders and the services that invalidate them.
"""

# Cache key prefixes
CACHE_PREFIX_PERMISSION = "permission"
CACHE_PREFIX_TRUSTED_DEVICE = "trusted_device"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Session end reasons (free text stored in user_session.end_reason)
END_REASON_LOGOUT = "Logout"
END_REASON_LOGOUT_ALL = "LogoutAll"
END_REASON_LOGOUT_OTHERS = "LogoutOthers"
END_REASON_REVOKED = "Revoked"
END_REASON_EXPIRED = "Expired"
END_REASON_DEVICE_LIMIT = "DeviceLimitEvicted"
END_REASON_SUSPICIOUS = "Suspicious activity detected"

# Location reported for loopback and private-range addresses
LOCAL_NETWORK_LOCATION = "Local Network"

# Role priority default: lower number = higher priority
DEFAULT_ROLE_PRIORITY = 100
