"""Append-only security-activity log: record and query entries."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from authguard.application.dtos.risk import SecurityActivityResult
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.domain.enums import SecurityActivityType
from authguard.shared.utils.datetime import utc_now


class SecurityActivityService:
    """Writes entries in their own transaction; readers filter by user and window."""

    def __init__(self, uow: IUnitOfWork, clock: Callable[[], datetime] = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    async def record_security_activity(
        self,
        user_id: str,
        activity_type: SecurityActivityType,
        description: str | None = None,
        *,
        device_fingerprint: str | None = None,
        ip_address: str | None = None,
        location: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
        is_suspicious: bool = False,
    ) -> SecurityActivityResult:
        async with self._uow() as repos:
            return await repos.activity_log.append(
                user_id=user_id,
                activity_type=activity_type.value,
                description=description,
                device_fingerprint=device_fingerprint,
                ip_address=ip_address,
                location=location,
                user_agent=user_agent,
                details=details,
                is_suspicious=is_suspicious,
                occurred_at=self._clock(),
            )

    async def get_security_activities(
        self,
        user_id: str,
        days: int = 30,
        activity_type: SecurityActivityType | None = None,
        limit: int = 500,
    ) -> list[SecurityActivityResult]:
        """Entries from the last days, newest first."""
        since = self._clock() - timedelta(days=days)
        async with self._uow() as repos:
            return await repos.activity_log.list_for_user(
                user_id,
                since=since,
                activity_type=activity_type.value if activity_type else None,
                limit=limit,
            )
