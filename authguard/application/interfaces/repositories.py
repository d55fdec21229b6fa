"""Repository interfaces (ports) for the application layer.

Services never hold a database session. They open a unit of work per
operation and use the repositories it exposes; the block commits on
success and rolls back on error.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class IRepositories(Protocol):
    """Repositories bound to one transaction."""

    permissions: Any
    roles: Any
    role_permissions: Any
    user_roles: Any
    sessions: Any
    trusted_devices: Any
    activity_log: Any


class IUnitOfWork(Protocol):
    """Callable that opens a transaction: ``async with uow() as repos: ...``."""

    def __call__(self) -> AbstractAsyncContextManager[IRepositories]:
        """Open a new session and transaction."""
