"""TrustedDevice repository (per-user trusted-device registry)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.device import TrustedDeviceResult
from authguard.domain.exceptions import ConcurrencyException
from authguard.infrastructure.persistence.models.trusted_device import TrustedDevice
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.shared.utils.datetime import ensure_utc


def _device_to_result(d: TrustedDevice) -> TrustedDeviceResult:
    """Map ORM TrustedDevice to application TrustedDeviceResult."""
    return TrustedDeviceResult(
        id=d.id,
        user_id=d.user_id,
        device_fingerprint=d.device_fingerprint,
        device_name=d.device_name,
        device_type=d.device_type,
        operating_system=d.operating_system,
        ip_address=d.ip_address,
        location=d.location,
        is_trusted=d.is_trusted,
        trusted_at=ensure_utc(d.trusted_at),
        revoked_at=ensure_utc(d.revoked_at),
        last_seen_at=ensure_utc(d.last_seen_at),
    )


class TrustedDeviceRepository(BaseRepository[TrustedDevice]):
    """One row per (user, fingerprint); trust is toggled, rows are kept."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, TrustedDevice)

    async def get_entity(self, user_id: str, fingerprint: str) -> TrustedDevice | None:
        result = await self.db.execute(
            select(TrustedDevice).where(
                TrustedDevice.user_id == user_id,
                TrustedDevice.device_fingerprint == fingerprint,
            )
        )
        return result.scalar_one_or_none()

    async def is_trusted(self, user_id: str, fingerprint: str) -> bool:
        """True only for a row that is trusted and not revoked."""
        entity = await self.get_entity(user_id, fingerprint)
        return bool(entity and entity.is_trusted and entity.revoked_at is None)

    async def add_device(self, **fields) -> TrustedDevice:
        device = TrustedDevice(**fields)
        try:
            return await self.create(device)
        except IntegrityError:
            # Another writer registered the same (user, fingerprint) first.
            raise ConcurrencyException("trusted_device", device.device_fingerprint) from None

    async def list_for_user(
        self, user_id: str, *, trusted_only: bool = True
    ) -> list[TrustedDeviceResult]:
        query = select(TrustedDevice).where(TrustedDevice.user_id == user_id)
        if trusted_only:
            query = query.where(
                TrustedDevice.is_trusted.is_(True), TrustedDevice.revoked_at.is_(None)
            )
        result = await self.db.execute(query.order_by(TrustedDevice.trusted_at.desc()))
        return [_device_to_result(d) for d in result.scalars().all()]

    async def get_trusted_entities(self, user_id: str) -> list[TrustedDevice]:
        result = await self.db.execute(
            select(TrustedDevice).where(
                TrustedDevice.user_id == user_id, TrustedDevice.is_trusted.is_(True)
            )
        )
        return list(result.scalars().all())

    @staticmethod
    def to_result(device: TrustedDevice) -> TrustedDeviceResult:
        return _device_to_result(device)
