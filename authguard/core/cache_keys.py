"""Cache key builders. Single place for key format (DRY).

Key components (user_id, fingerprint) must not contain CACHE_KEY_SEP to
avoid ambiguous or colliding keys.
"""

from authguard.core.constants import (
    CACHE_KEY_SEP,
    CACHE_PREFIX_PERMISSION,
    CACHE_PREFIX_TRUSTED_DEVICE,
)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def permission_key(user_id: str) -> str:
    """Cache key for a user's effective permission names."""
    _validate_key_component(user_id, "user_id")
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}{user_id}"


def all_permissions_pattern() -> str:
    """Pattern matching every cached permission set (role/permission/grant changes)."""
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}*"


def trusted_device_key(user_id: str, fingerprint: str) -> str:
    """Cache key for the trust verdict of (user, fingerprint)."""
    _validate_key_component(user_id, "user_id")
    _validate_key_component(fingerprint, "fingerprint")
    return (
        f"{CACHE_PREFIX_TRUSTED_DEVICE}{CACHE_KEY_SEP}{user_id}"
        f"{CACHE_KEY_SEP}{fingerprint}"
    )


def user_trusted_devices_pattern(user_id: str) -> str:
    """Pattern matching every trust verdict cached for one user."""
    _validate_key_component(user_id, "user_id")
    return f"{CACHE_PREFIX_TRUSTED_DEVICE}{CACHE_KEY_SEP}{user_id}{CACHE_KEY_SEP}*"
