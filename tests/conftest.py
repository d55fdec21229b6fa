"""Pytest configuration and fixtures for authguard.

Every test gets a fresh SQLite database (aiosqlite, temp file) with the
schema created from ORM metadata, an in-memory cache, and services wired
by build_services() exactly as the lifespan wires them.
"""

from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from authguard.api.v1.dependencies import ServiceContainer, build_services
from authguard.application.dtos.permission import PermissionCreate
from authguard.application.dtos.role import RoleCreate
from authguard.core.config import Settings, get_settings
from authguard.infrastructure.cache import InMemoryCacheService
from authguard.infrastructure.persistence import models  # noqa: F401
from authguard.infrastructure.persistence.database import Base
from authguard.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork
from authguard.shared.locks import KeyedLock
from authguard.shared.utils.datetime import utc_now


@pytest.fixture
def settings() -> Settings:
    """Defaults only: no .env, memory cache, no background sweeps."""
    return Settings(_env_file=None, cache_backend="memory", sweep_enabled=False)


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'authguard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
def uow(session_factory) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def services(settings, session_factory, cache) -> ServiceContainer:
    """Application services sharing one lock registry, cache and blacklist."""
    return build_services(settings, session_factory, cache, locks=KeyedLock())


@pytest.fixture
def later():
    """Clock factory: later(minutes=10) returns a callable fixed that far in the future."""

    def make(**delta) -> Callable[[], datetime]:
        moment = utc_now() + timedelta(**delta)
        return lambda: moment

    return make


@pytest.fixture
async def editor_role(services: ServiceContainer):
    """A custom role granted users.create and users.read."""
    create = await services.permissions.create_permission(
        PermissionCreate(resource="users", action="create")
    )
    read = await services.permissions.create_permission(
        PermissionCreate(resource="users", action="read")
    )
    role = await services.roles.create_role(RoleCreate(name="Editor", priority=50))
    await services.roles.assign_permissions_to_role(role.id, [create.id, read.id])
    return role


@pytest.fixture
async def client(
    monkeypatch, tmp_path, session_factory, cache
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the app, with the lifespan running over the test DB."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'authguard.db'}")
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setenv("SWEEP_ENABLED", "false")
    monkeypatch.setenv("TELEMETRY_ENABLED", "false")
    get_settings.cache_clear()

    from authguard.main import create_app

    app = create_app()
    app.state.session_factory = session_factory
    app.state.cache = cache
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    get_settings.cache_clear()
