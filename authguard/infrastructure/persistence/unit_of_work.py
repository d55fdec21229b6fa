"""Unit of work: one transaction plus the repositories bound to it.

Services call ``async with uow() as repos:``; the block commits on normal
exit and rolls back on any exception. A stale optimistic-lock write that
escapes the repositories is translated to ConcurrencyException.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from authguard.domain.exceptions import ConcurrencyException
from authguard.infrastructure.persistence.repositories import (
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
    SecurityActivityRepository,
    TrustedDeviceRepository,
    UserRoleRepository,
    UserSessionRepository,
)


class Repositories:
    """Repositories sharing one AsyncSession (and therefore one transaction)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.permissions = PermissionRepository(db)
        self.roles = RoleRepository(db)
        self.role_permissions = RolePermissionRepository(db)
        self.user_roles = UserRoleRepository(db)
        self.sessions = UserSessionRepository(db)
        self.trusted_devices = TrustedDeviceRepository(db)
        self.activity_log = SecurityActivityRepository(db)


class SqlAlchemyUnitOfWork:
    """Callable factory: each call opens a fresh session and transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[Repositories]:
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    yield Repositories(db)
            except StaleDataError as e:
                raise ConcurrencyException("transaction") from e
