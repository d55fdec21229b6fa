"""Per-user trusted-device registry with a read-through trust cache.

Trust lookups fail closed: a cache or store error, or a lookup slower than
the configured timeout, answers "not trusted" and caches nothing.
Mutations write the new verdict through to the cache after commit. Cache
misses are filled under the same per-user lock as the mutations, so a
verdict read before a revoke cannot overwrite the revoke's cache entry.
A failed cache write after a committed mutation is logged, not raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from authguard.application.dtos.device import DeviceInfo, TrustedDeviceResult
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.interfaces.services import ICacheService
from authguard.core.cache_keys import trusted_device_key, user_trusted_devices_pattern
from authguard.domain.enums import SecurityActivityType
from authguard.domain.exceptions import AuthGuardException, SecurityEvaluationException
from authguard.shared.locks import KeyedLock, write_locks
from authguard.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def _device_lock(user_id: str) -> str:
    return f"trusted_device:{user_id}"


class DeviceTrustService:
    """Trust, revoke and look up (user, fingerprint) pairs."""

    def __init__(
        self,
        uow: IUnitOfWork,
        cache: ICacheService | None = None,
        *,
        cache_ttl: int = 3600,
        io_timeout: float = 5.0,
        locks: KeyedLock | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._io_timeout = io_timeout
        self._locks = locks or write_locks
        self._clock = clock

    def _cache_usable(self) -> bool:
        return self._cache is not None and self._cache.is_available()

    async def _lookup(self, user_id: str, fingerprint: str) -> bool:
        key = trusted_device_key(user_id, fingerprint)
        if self._cache_usable():
            cached = await self._cache.get(key)
            if cached is not None:
                return bool(cached)
        async with self._locks.hold(_device_lock(user_id)):
            async with self._uow() as repos:
                trusted = await repos.trusted_devices.is_trusted(user_id, fingerprint)
            if self._cache_usable():
                await self._cache.set(key, trusted, ttl=self._cache_ttl)
        return trusted

    async def is_device_trusted(self, user_id: str, fingerprint: str | None) -> bool:
        """True only for an active, non-revoked registry row. Errors answer False."""
        if not fingerprint:
            return False
        try:
            return await asyncio.wait_for(
                self._lookup(user_id, fingerprint), timeout=self._io_timeout
            )
        except TimeoutError:
            logger.warning("Trust lookup timed out for user %s; treating device as untrusted", user_id)
            return False
        except Exception:
            logger.exception("Trust lookup failed for user %s; treating device as untrusted", user_id)
            return False

    async def _write_verdict(self, user_id: str, fingerprint: str, trusted: bool) -> None:
        if not self._cache_usable():
            return
        try:
            await self._cache.set(
                trusted_device_key(user_id, fingerprint), trusted, ttl=self._cache_ttl
            )
        except Exception:
            logger.exception("Trust cache write failed for user %s", user_id)

    async def _drop_verdicts(self, user_id: str) -> None:
        if not self._cache_usable():
            return
        try:
            await self._cache.delete_pattern(user_trusted_devices_pattern(user_id))
        except Exception:
            logger.exception("Trust cache invalidation failed for user %s", user_id)

    async def trust_device(
        self,
        user_id: str,
        fingerprint: str,
        device: DeviceInfo | None = None,
        ip_address: str | None = None,
        location: str | None = None,
    ) -> TrustedDeviceResult:
        """Mark (user, fingerprint) trusted, creating or reactivating its row.

        Raises:
            SecurityEvaluationException: The registry write failed.
        """
        device = device or DeviceInfo()
        now = self._clock()
        try:
            async with self._locks.hold(_device_lock(user_id)):
                async with self._uow() as repos:
                    entity = await repos.trusted_devices.get_entity(user_id, fingerprint)
                    if entity is None:
                        entity = await repos.trusted_devices.add_device(
                            user_id=user_id,
                            device_fingerprint=fingerprint,
                            device_name=device.device_name,
                            device_type=device.device_type,
                            operating_system=device.operating_system,
                            user_agent=device.user_agent,
                            ip_address=ip_address,
                            location=location,
                            is_trusted=True,
                            trusted_at=now,
                            first_seen_at=now,
                            last_seen_at=now,
                        )
                    else:
                        if not entity.is_trusted or entity.revoked_at is not None:
                            entity.trusted_at = now
                        entity.is_trusted = True
                        entity.revoked_at = None
                        entity.last_seen_at = now
                        entity.device_name = device.device_name or entity.device_name
                        entity.device_type = device.device_type or entity.device_type
                        entity.operating_system = (
                            device.operating_system or entity.operating_system
                        )
                        entity.user_agent = device.user_agent or entity.user_agent
                        entity.ip_address = ip_address or entity.ip_address
                        entity.location = location or entity.location
                        await repos.trusted_devices.update(entity)
                    await repos.activity_log.append(
                        user_id=user_id,
                        activity_type=SecurityActivityType.DEVICE_TRUSTED.value,
                        description=f"Device trusted: {entity.device_name or fingerprint}",
                        device_fingerprint=fingerprint,
                        ip_address=ip_address,
                        location=location,
                        user_agent=device.user_agent,
                        occurred_at=now,
                    )
                    result = repos.trusted_devices.to_result(entity)
                await self._write_verdict(user_id, fingerprint, True)
        except AuthGuardException:
            raise
        except Exception as e:
            logger.exception("trust_device failed for user %s", user_id)
            raise SecurityEvaluationException("trust_device", type(e).__name__) from e
        logger.info("Device trusted for user %s", user_id)
        return result

    async def revoke_trust(self, user_id: str, fingerprint: str) -> bool:
        """Revoke trust. Returns False (no-op) when the device was not trusted."""
        now = self._clock()
        try:
            async with self._locks.hold(_device_lock(user_id)):
                async with self._uow() as repos:
                    entity = await repos.trusted_devices.get_entity(user_id, fingerprint)
                    revoked = bool(entity and entity.is_trusted)
                    if revoked:
                        entity.is_trusted = False
                        entity.revoked_at = now
                        await repos.trusted_devices.update(entity)
                        await repos.activity_log.append(
                            user_id=user_id,
                            activity_type=SecurityActivityType.DEVICE_TRUST_REVOKED.value,
                            description=f"Device trust revoked: {entity.device_name or fingerprint}",
                            device_fingerprint=fingerprint,
                            occurred_at=now,
                        )
                await self._write_verdict(user_id, fingerprint, False)
        except AuthGuardException:
            raise
        except Exception as e:
            logger.exception("revoke_trust failed for user %s", user_id)
            raise SecurityEvaluationException("revoke_trust", type(e).__name__) from e
        if revoked:
            logger.info("Device trust revoked for user %s", user_id)
        return revoked

    async def revoke_all_trust(self, user_id: str) -> int:
        """Revoke every trusted device of the user. Returns how many were revoked."""
        now = self._clock()
        try:
            async with self._locks.hold(_device_lock(user_id)):
                async with self._uow() as repos:
                    devices = await repos.trusted_devices.get_trusted_entities(user_id)
                    for entity in devices:
                        entity.is_trusted = False
                        entity.revoked_at = now
                        await repos.trusted_devices.update(entity)
                    if devices:
                        await repos.activity_log.append(
                            user_id=user_id,
                            activity_type=SecurityActivityType.DEVICE_TRUST_REVOKED.value,
                            description=f"Trust revoked on all devices ({len(devices)})",
                            details={"count": len(devices)},
                            occurred_at=now,
                        )
                await self._drop_verdicts(user_id)
        except AuthGuardException:
            raise
        except Exception as e:
            logger.exception("revoke_all_trust failed for user %s", user_id)
            raise SecurityEvaluationException("revoke_all_trust", type(e).__name__) from e
        return len(devices)

    async def get_trusted_devices(
        self, user_id: str, *, include_revoked: bool = False
    ) -> list[TrustedDeviceResult]:
        async with self._uow() as repos:
            return await repos.trusted_devices.list_for_user(
                user_id, trusted_only=not include_revoked
            )
