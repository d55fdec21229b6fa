"""Seed the RBAC catalog: system permissions and the SuperAdmin/Admin/User roles.

Usage:
    uv run python -m scripts.seed_rbac
Idempotent: existing permissions and roles are left untouched.
Run after `alembic upgrade head`.
"""

import asyncio
import sys

from authguard.application.services.permission_cache import PermissionCache
from authguard.core.config import get_settings
from authguard.infrastructure.cache import create_cache
from authguard.infrastructure.persistence.database import (
    dispose_engine,
    get_session_factory,
)
from authguard.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork
from authguard.infrastructure.services import RbacBootstrapService


async def main() -> None:
    """Seed permissions and default roles, then invalidate cached permission sets."""
    settings = get_settings()
    cache = create_cache(settings)
    await cache.connect()
    try:
        bootstrap = RbacBootstrapService(
            SqlAlchemyUnitOfWork(get_session_factory()),
            PermissionCache(cache, ttl=settings.cache_ttl_permissions),
        )
        counts = await bootstrap.seed()
    except Exception as e:
        print(f"Seeding failed: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        await cache.disconnect()
        await dispose_engine()
    print(
        f"Seeded {counts['permissions']} permissions and {counts['roles']} roles"
    )


if __name__ == "__main__":
    asyncio.run(main())
