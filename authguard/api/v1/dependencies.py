"""Composition root.

build_services() constructs every application service from settings and
infrastructure implementations; the lifespan stores the result on
app.state.services, and the operational scripts build their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authguard.application.interfaces.services import ICacheService
from authguard.application.services.authorization_service import AuthorizationService
from authguard.application.services.device_fingerprint_service import (
    DeviceFingerprintService,
)
from authguard.application.services.device_trust_service import DeviceTrustService
from authguard.application.services.permission_cache import PermissionCache
from authguard.application.services.permission_service import PermissionService
from authguard.application.services.risk_engine import RiskEngine, RiskPolicy
from authguard.application.services.role_service import RoleService
from authguard.application.services.security_activity_service import (
    SecurityActivityService,
)
from authguard.application.services.session_service import SessionService
from authguard.application.services.user_role_service import UserRoleService
from authguard.core.config import Settings
from authguard.infrastructure.cache import InMemoryCacheService
from authguard.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork
from authguard.infrastructure.security.token_blacklist import TokenBlacklist
from authguard.infrastructure.services import (
    MaintenanceJob,
    MaintenanceScheduler,
    PermissionResolver,
    RbacBootstrapService,
)
from authguard.shared.locks import KeyedLock


@dataclass
class ServiceContainer:
    """Every service of one application instance, sharing locks, cache and blacklist."""

    settings: Settings
    cache: ICacheService
    token_blacklist: TokenBlacklist
    permissions: PermissionService
    roles: RoleService
    user_roles: UserRoleService
    authorization: AuthorizationService
    fingerprints: DeviceFingerprintService
    device_trust: DeviceTrustService
    activity: SecurityActivityService
    sessions: SessionService
    risk: RiskEngine
    bootstrap: RbacBootstrapService

    def maintenance_scheduler(self) -> MaintenanceScheduler:
        """Scheduler for the expired-session, expired-role and blacklist sweeps.

        The in-memory cache backend also gets a purge job; Redis expires
        keys itself.
        """
        s = self.settings
        jobs = [
            MaintenanceJob(
                "expired_sessions",
                s.session_sweep_interval_seconds,
                self.sessions.cleanup_expired_sessions,
            ),
            MaintenanceJob(
                "expired_user_roles",
                s.user_role_sweep_interval_seconds,
                self.user_roles.cleanup_expired_user_roles,
            ),
            MaintenanceJob(
                "token_blacklist",
                s.token_blacklist_sweep_interval_seconds,
                self.token_blacklist.sweep_expired,
            ),
        ]
        if isinstance(self.cache, InMemoryCacheService):
            jobs.append(
                MaintenanceJob(
                    "cache_purge", s.cache_purge_interval_seconds, self.cache.purge_expired
                )
            )
        return MaintenanceScheduler(jobs)


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    cache: ICacheService,
    *,
    locks: KeyedLock | None = None,
    token_blacklist: TokenBlacklist | None = None,
) -> ServiceContainer:
    """Wire the application services over one session factory and cache."""
    uow = SqlAlchemyUnitOfWork(session_factory)
    locks = locks or KeyedLock()
    blacklist = token_blacklist or TokenBlacklist()
    permission_cache = PermissionCache(cache, ttl=settings.cache_ttl_permissions)
    policy = RiskPolicy.from_settings(settings)
    fingerprints = DeviceFingerprintService(
        fingerprint_length=settings.fingerprint_length,
        bot_signatures=settings.bot_signatures,
    )
    activity = SecurityActivityService(uow)
    device_trust = DeviceTrustService(
        uow,
        cache,
        cache_ttl=settings.cache_ttl_trusted_devices,
        io_timeout=settings.security_io_timeout_seconds,
        locks=locks,
    )
    sessions = SessionService(
        uow,
        fingerprints=fingerprints,
        token_blacklist=blacklist,
        max_sessions=settings.session_max_per_user,
        session_lifetime=timedelta(minutes=settings.session_lifetime_minutes),
        device_history_days=settings.session_device_history_days,
        locks=locks,
    )
    return ServiceContainer(
        settings=settings,
        cache=cache,
        token_blacklist=blacklist,
        permissions=PermissionService(uow, permission_cache, locks),
        roles=RoleService(uow, permission_cache, locks),
        user_roles=UserRoleService(uow, permission_cache, locks),
        authorization=AuthorizationService(
            PermissionResolver(session_factory), permission_cache, uow
        ),
        fingerprints=fingerprints,
        device_trust=device_trust,
        activity=activity,
        sessions=sessions,
        risk=RiskEngine(
            uow,
            device_trust,
            sessions,
            activity,
            fingerprints=fingerprints,
            policy=policy,
            io_timeout=settings.security_io_timeout_seconds,
        ),
        bootstrap=RbacBootstrapService(uow, permission_cache, locks),
    )
