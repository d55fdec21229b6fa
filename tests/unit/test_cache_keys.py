"""Tests for cache key builders."""

import pytest

from authguard.core.cache_keys import (
    all_permissions_pattern,
    permission_key,
    trusted_device_key,
    user_trusted_devices_pattern,
)


def test_permission_key() -> None:
    assert permission_key("user-1") == "permission:user-1"


def test_all_permissions_pattern() -> None:
    assert all_permissions_pattern() == "permission:*"


def test_trusted_device_key() -> None:
    assert trusted_device_key("user-1", "abc123") == "trusted_device:user-1:abc123"


def test_user_trusted_devices_pattern_covers_device_keys() -> None:
    pattern = user_trusted_devices_pattern("user-1")
    assert pattern == "trusted_device:user-1:*"
    assert trusted_device_key("user-1", "fp").startswith(pattern[:-1])


@pytest.mark.parametrize("user_id", ["", "org:user"])
def test_permission_key_rejects_bad_user_id(user_id: str) -> None:
    with pytest.raises(ValueError):
        permission_key(user_id)


def test_trusted_device_key_rejects_separator_in_fingerprint() -> None:
    with pytest.raises(ValueError, match="fingerprint"):
        trusted_device_key("user-1", "a:b")
