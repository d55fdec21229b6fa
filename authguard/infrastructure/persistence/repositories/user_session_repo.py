"""UserSession repository. Read methods return SessionResult (DTO); entity getters return ORM for writes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authguard.application.dtos.session import SessionResult
from authguard.domain.enums import SessionStatus
from authguard.infrastructure.persistence.models.session import UserSession
from authguard.infrastructure.persistence.repositories.base import BaseRepository
from authguard.shared.utils.datetime import ensure_utc


def _session_to_result(s: UserSession) -> SessionResult:
    """Map ORM UserSession to application SessionResult."""
    return SessionResult(
        id=s.id,
        session_id=s.session_id,
        user_id=s.user_id,
        device_name=s.device_name,
        device_type=s.device_type,
        operating_system=s.operating_system,
        ip_address=s.ip_address,
        location=s.location,
        device_fingerprint=s.device_fingerprint,
        created_at=ensure_utc(s.created_at),
        last_active_at=ensure_utc(s.last_active_at),
        expires_at=ensure_utc(s.expires_at),
        is_active=s.is_active,
        is_current=s.is_current,
        status=s.status,
        ended_at=ensure_utc(s.ended_at),
        end_reason=s.end_reason,
    )


class UserSessionRepository(BaseRepository[UserSession]):
    """Session rows. Ending is a conditional UPDATE so a session ends at most once."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, UserSession)

    async def get_by_session_id(self, session_id: str) -> SessionResult | None:
        result = await self.db.execute(
            select(UserSession).where(UserSession.session_id == session_id)
        )
        entity = result.scalar_one_or_none()
        return _session_to_result(entity) if entity else None

    async def get_owner(self, session_id: str) -> str | None:
        return await self.db.scalar(
            select(UserSession.user_id).where(UserSession.session_id == session_id)
        )

    async def get_active(
        self, user_id: str, now: datetime | None = None
    ) -> list[SessionResult]:
        """Active sessions, unexpired at now when given; most recently active first."""
        query = select(UserSession).where(
            UserSession.user_id == user_id, UserSession.is_active.is_(True)
        )
        if now is not None:
            query = query.where(UserSession.expires_at > now)
        result = await self.db.execute(
            query.order_by(UserSession.last_active_at.desc(), UserSession.created_at.desc())
        )
        return [_session_to_result(s) for s in result.scalars().all()]

    async def list_for_user(
        self, user_id: str, *, since: datetime | None = None
    ) -> list[SessionResult]:
        query = select(UserSession).where(UserSession.user_id == user_id)
        if since is not None:
            query = query.where(UserSession.created_at >= since)
        result = await self.db.execute(query.order_by(UserSession.created_at.desc()))
        return [_session_to_result(s) for s in result.scalars().all()]

    async def add_session(self, **fields) -> SessionResult:
        created = await self.create(UserSession(**fields))
        return _session_to_result(created)

    async def demote_current(self, user_id: str) -> int:
        """Clear is_current on every session of the user."""
        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.is_current.is_(True))
            .values(is_current=False, version=UserSession.version + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def touch(self, session_id: str, now: datetime) -> bool:
        """Heartbeat: bump last_active_at if the session is still active and unexpired."""
        result = await self.db.execute(
            update(UserSession)
            .where(
                UserSession.session_id == session_id,
                UserSession.is_active.is_(True),
                UserSession.expires_at > now,
            )
            .values(last_active_at=now, version=UserSession.version + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def end_sessions(
        self,
        session_ids: list[str],
        *,
        status: SessionStatus,
        reason: str,
        now: datetime,
    ) -> int:
        """Move active sessions to a terminal status. Ended sessions are left untouched."""
        if not session_ids:
            return 0
        result = await self.db.execute(
            update(UserSession)
            .where(
                UserSession.session_id.in_(session_ids),
                UserSession.is_active.is_(True),
            )
            .values(
                is_active=False,
                is_current=False,
                status=status.value,
                ended_at=now,
                end_reason=reason,
                version=UserSession.version + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def find_expired(self, now: datetime) -> list[str]:
        result = await self.db.execute(
            select(UserSession.session_id).where(
                UserSession.is_active.is_(True), UserSession.expires_at <= now
            )
        )
        return [row[0] for row in result.fetchall()]

    async def expire(self, session_ids: list[str], reason: str, now: datetime) -> int:
        """End sessions that are still active and still past expires_at at write time."""
        if not session_ids:
            return 0
        result = await self.db.execute(
            update(UserSession)
            .where(
                UserSession.session_id.in_(session_ids),
                UserSession.is_active.is_(True),
                UserSession.expires_at <= now,
            )
            .values(
                is_active=False,
                is_current=False,
                status=SessionStatus.EXPIRED.value,
                ended_at=now,
                end_reason=reason,
                version=UserSession.version + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    _GROUPABLE = frozenset({"device_type", "location", "end_reason", "status", "operating_system"})

    async def count_grouped(
        self, field: str, user_id: str | None, *, skip_null: bool = False
    ) -> dict[str, int]:
        """Session counts grouped by one descriptor column; NULL groups count as Unknown."""
        if field not in self._GROUPABLE:
            raise ValueError(f"Cannot group sessions by {field!r}")
        column = getattr(UserSession, field)
        query = select(column, func.count(UserSession.id))
        if user_id is not None:
            query = query.where(UserSession.user_id == user_id)
        if skip_null:
            query = query.where(column.is_not(None))
        result = await self.db.execute(query.group_by(column))
        counts: dict[str, int] = {}
        for key, count in result.fetchall():
            label = key or "Unknown"
            counts[label] = counts.get(label, 0) + count
        return counts

    async def count(self, user_id: str | None, *, active: bool | None = None) -> int:
        query = select(func.count(UserSession.id))
        if user_id is not None:
            query = query.where(UserSession.user_id == user_id)
        if active is not None:
            query = query.where(UserSession.is_active.is_(active))
        return await self.db.scalar(query) or 0
