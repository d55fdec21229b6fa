"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from authguard.application.dtos.authorization import RoleGrantVerdict
    from authguard.application.dtos.permission import PermissionResult


# Permission resolver interface
class IPermissionResolver(Protocol):
    """Protocol for resolving user permissions (used by AuthorizationService)."""

    async def get_user_permissions(self, user_id: str) -> set[str]:
        """Return lower-cased permission names granted by the user's effective roles."""

    async def get_effective_permissions(self, user_id: str) -> list[PermissionResult]:
        """Return the permission rows behind get_user_permissions (for category grouping)."""

    async def get_role_grants(
        self, user_id: str, permission_name: str
    ) -> list[RoleGrantVerdict]:
        """Return one verdict per effective role: does it grant permission_name?"""


# Cache service interface
class ICacheService(Protocol):
    """Cache contract (Redis or in-memory backend).

    Implementations never raise on backend failure: reads degrade to a
    miss and writes to a no-op, so callers fall back to the store.
    """

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True on success."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern. Returns count deleted."""

    async def exists(self, key: str) -> bool:
        """Return True if key is present and unexpired."""

    async def get_or_set(
        self, key: str, factory: Callable[[], Awaitable[Any]], ttl: int = 300
    ) -> Any:
        """Return cached value or await factory(), cache and return the result."""


# Token blacklist interface
class ITokenBlacklist(Protocol):
    """Protocol for revoking session/token ids until their natural expiry."""

    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        """Blacklist token_id until expires_at."""

    async def is_revoked(self, token_id: str) -> bool:
        """Return True while token_id is blacklisted."""
