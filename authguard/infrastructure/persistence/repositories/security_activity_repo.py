"""SecurityActivityLog repository. Append and query only; entries are never updated."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.risk import SecurityActivityResult
from authguard.infrastructure.persistence.models.security_activity import (
    SecurityActivityLog,
)
from authguard.shared.utils.datetime import ensure_utc


def _activity_to_result(a: SecurityActivityLog) -> SecurityActivityResult:
    """Map ORM SecurityActivityLog to application SecurityActivityResult."""
    return SecurityActivityResult(
        id=a.id,
        user_id=a.user_id,
        activity_type=a.activity_type,
        description=a.description,
        device_fingerprint=a.device_fingerprint,
        ip_address=a.ip_address,
        location=a.location,
        risk_level=a.risk_level,
        risk_score=a.risk_score,
        factors=tuple(a.factors or ()),
        is_suspicious=a.is_suspicious,
        occurred_at=ensure_utc(a.occurred_at),
        details=dict(a.details or {}),
    )


class SecurityActivityRepository:
    """Append-only security-activity log."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def append(self, **fields) -> SecurityActivityResult:
        entry = SecurityActivityLog(**fields)
        self.db.add(entry)
        await self.db.flush()
        return _activity_to_result(entry)

    async def list_for_user(
        self,
        user_id: str,
        *,
        since: datetime | None = None,
        activity_type: str | None = None,
        limit: int = 500,
    ) -> list[SecurityActivityResult]:
        query = select(SecurityActivityLog).where(SecurityActivityLog.user_id == user_id)
        if since is not None:
            query = query.where(SecurityActivityLog.occurred_at >= since)
        if activity_type is not None:
            query = query.where(SecurityActivityLog.activity_type == activity_type)
        result = await self.db.execute(
            query.order_by(SecurityActivityLog.occurred_at.desc()).limit(limit)
        )
        return [_activity_to_result(a) for a in result.scalars().all()]
