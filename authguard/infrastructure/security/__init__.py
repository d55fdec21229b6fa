"""Security infrastructure: revoked session/token ids."""

from authguard.infrastructure.security.token_blacklist import TokenBlacklist

__all__ = ["TokenBlacklist"]
