"""Session manager: per-device sessions with a per-user limit and one current session.

Lifecycle: active -> logged_out | expired | device_limit_evicted |
admin_revoked | suspicious_terminated. Every state but active is terminal
and ended rows are kept for audit and statistics.

All writes for one user hold the ``user_session:<user_id>`` lock for the
whole transaction, so eviction, the current-session flag and heartbeats
are linearizable per user. Ended session ids go on the token blacklist
until their natural expiry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from authguard.application.dtos.session import (
    CreatedSession,
    SessionCreate,
    SessionResult,
    SessionStats,
)
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.interfaces.services import ITokenBlacklist
from authguard.application.services.device_fingerprint_service import (
    DeviceFingerprintService,
    resolve_location,
)
from authguard.core.constants import (
    END_REASON_DEVICE_LIMIT,
    END_REASON_EXPIRED,
    END_REASON_LOGOUT,
    END_REASON_LOGOUT_ALL,
    END_REASON_LOGOUT_OTHERS,
    END_REASON_REVOKED,
)
from authguard.domain.enums import SessionStatus
from authguard.domain.exceptions import ResourceNotFoundException, ValidationException
from authguard.shared.locks import KeyedLock, write_locks
from authguard.shared.telemetry import add_span_attributes, traced
from authguard.shared.utils.datetime import ensure_utc, utc_now
from authguard.shared.utils.generators import generate_session_id

logger = logging.getLogger(__name__)


def _user_lock(user_id: str) -> str:
    return f"user_session:{user_id}"


def select_evictions(active: Sequence[SessionResult], max_sessions: int) -> list[SessionResult]:
    """Oldest-by-last-activity sessions to end so one more session fits under max_sessions."""
    excess = len(active) - max_sessions + 1
    if excess <= 0:
        return []
    return sorted(active, key=lambda s: (s.last_active_at, s.created_at))[:excess]


class SessionService:
    """Create, heartbeat, end and query user sessions."""

    def __init__(
        self,
        uow: IUnitOfWork,
        *,
        fingerprints: DeviceFingerprintService | None = None,
        token_blacklist: ITokenBlacklist | None = None,
        max_sessions: int = 5,
        session_lifetime: timedelta = timedelta(minutes=480),
        device_history_days: int = 30,
        locks: KeyedLock | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._fingerprints = fingerprints or DeviceFingerprintService()
        self._blacklist = token_blacklist
        self._max_sessions = max_sessions
        self._session_lifetime = session_lifetime
        self._device_history_days = device_history_days
        self._locks = locks or write_locks
        self._clock = clock

    async def _blacklist_sessions(self, sessions: Sequence[SessionResult]) -> None:
        if self._blacklist is None:
            return
        for session in sessions:
            await self._blacklist.revoke(session.session_id, session.expires_at)

    @traced("session.create_session")
    async def create_session(self, data: SessionCreate) -> CreatedSession:
        """Create the user's new current session, evicting the oldest sessions over the limit.

        Raises:
            ValidationException: Missing user, expiry not in the future, or a
                caller-supplied session id that already exists.
        """
        if not data.user_id:
            raise ValidationException("user_id is required", field="user_id")
        now = self._clock()
        expires_at = ensure_utc(data.expires_at) or now + self._session_lifetime
        if expires_at <= now:
            raise ValidationException("expires_at must be in the future", field="expires_at")
        device = self._fingerprints.describe(data.device)
        fingerprint = self._fingerprints.fingerprint_for(device, data.ip_address)
        session_id = data.session_id or generate_session_id()
        add_span_attributes(user_id=data.user_id)

        async with self._locks.hold(_user_lock(data.user_id)):
            async with self._uow() as repos:
                if data.session_id and await repos.sessions.get_by_session_id(session_id):
                    raise ValidationException("Session id already exists", field="session_id")
                active = await repos.sessions.get_active(data.user_id, now)
                evicted = select_evictions(active, self._max_sessions)
                if evicted:
                    await repos.sessions.end_sessions(
                        [s.session_id for s in evicted],
                        status=SessionStatus.DEVICE_LIMIT_EVICTED,
                        reason=END_REASON_DEVICE_LIMIT,
                        now=now,
                    )
                await repos.sessions.demote_current(data.user_id)
                created = await repos.sessions.add_session(
                    session_id=session_id,
                    user_id=data.user_id,
                    device_name=device.device_name,
                    device_type=device.device_type,
                    operating_system=device.operating_system,
                    user_agent=device.user_agent,
                    ip_address=data.ip_address,
                    location=data.location or resolve_location(data.ip_address),
                    device_fingerprint=fingerprint,
                    created_at=now,
                    last_active_at=now,
                    expires_at=expires_at,
                    is_active=True,
                    is_current=True,
                    status=SessionStatus.ACTIVE.value,
                )
            await self._blacklist_sessions(evicted)

        if evicted:
            logger.info(
                "Session limit reached for user %s: evicted %s session(s)",
                data.user_id,
                len(evicted),
            )
        logger.info("Session created for user %s (%s)", data.user_id, created.device_name)
        return CreatedSession(
            session=created, evicted_session_ids=tuple(s.session_id for s in evicted)
        )

    async def _require_owner(self, session_id: str) -> str:
        async with self._uow() as repos:
            owner = await repos.sessions.get_owner(session_id)
        if owner is None:
            raise ResourceNotFoundException("session", session_id)
        return owner

    async def update_last_active(self, session_id: str) -> bool:
        """Heartbeat. False if the session is unknown, ended or expired."""
        async with self._uow() as repos:
            owner = await repos.sessions.get_owner(session_id)
        if owner is None:
            return False
        async with self._locks.hold(_user_lock(owner)):
            async with self._uow() as repos:
                return await repos.sessions.touch(session_id, self._clock())

    async def get_session(self, session_id: str) -> SessionResult:
        async with self._uow() as repos:
            session = await repos.sessions.get_by_session_id(session_id)
        if session is None:
            raise ResourceNotFoundException("session", session_id)
        return session

    async def get_user_sessions(self, user_id: str) -> list[SessionResult]:
        """Every session of the user, newest first."""
        async with self._uow() as repos:
            return await repos.sessions.list_for_user(user_id)

    async def get_active_sessions(self, user_id: str) -> list[SessionResult]:
        """Active, unexpired sessions, most recently active first."""
        async with self._uow() as repos:
            return await repos.sessions.get_active(user_id, self._clock())

    async def _end_one(self, session_id: str, status: SessionStatus, reason: str) -> bool:
        owner = await self._require_owner(session_id)
        async with self._locks.hold(_user_lock(owner)):
            async with self._uow() as repos:
                session = await repos.sessions.get_by_session_id(session_id)
                ended = await repos.sessions.end_sessions(
                    [session_id], status=status, reason=reason, now=self._clock()
                )
            if ended:
                await self._blacklist_sessions([session])
        return ended > 0

    async def end_session(self, session_id: str, reason: str = END_REASON_LOGOUT) -> bool:
        """Log out one session. False if it had already ended."""
        return await self._end_one(session_id, SessionStatus.LOGGED_OUT, reason)

    async def revoke_session(self, session_id: str, reason: str = END_REASON_REVOKED) -> bool:
        """Administratively end one session."""
        ended = await self._end_one(session_id, SessionStatus.ADMIN_REVOKED, reason)
        if ended:
            logger.info("Session revoked: %s", session_id)
        return ended

    async def terminate_sessions(
        self,
        user_id: str,
        session_ids: Sequence[str],
        *,
        status: SessionStatus,
        reason: str,
        keep_session_id: str | None = None,
    ) -> list[str]:
        """End the user's active sessions whose ids are in session_ids.

        Returns the ids that were active and are now ended.
        """
        wanted = set(session_ids)
        async with self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                targets = [
                    s
                    for s in await repos.sessions.get_active(user_id)
                    if s.session_id in wanted and s.session_id != keep_session_id
                ]
                await repos.sessions.end_sessions(
                    [s.session_id for s in targets],
                    status=status,
                    reason=reason,
                    now=self._clock(),
                )
            await self._blacklist_sessions(targets)
        return [s.session_id for s in targets]

    async def _end_for_user(
        self, user_id: str, reason: str, keep_session_id: str | None = None
    ) -> int:
        async with self._locks.hold(_user_lock(user_id)):
            async with self._uow() as repos:
                targets = [
                    s
                    for s in await repos.sessions.get_active(user_id)
                    if s.session_id != keep_session_id
                ]
                count = await repos.sessions.end_sessions(
                    [s.session_id for s in targets],
                    status=SessionStatus.LOGGED_OUT,
                    reason=reason,
                    now=self._clock(),
                )
            await self._blacklist_sessions(targets)
        return count

    async def end_all_user_sessions(self, user_id: str, reason: str = END_REASON_LOGOUT_ALL) -> int:
        """Log out every active session of the user."""
        return await self._end_for_user(user_id, reason)

    async def end_other_sessions(
        self, user_id: str, current_session_id: str, reason: str = END_REASON_LOGOUT_OTHERS
    ) -> int:
        """Log out every active session of the user except current_session_id."""
        return await self._end_for_user(user_id, reason, keep_session_id=current_session_id)

    async def cleanup_expired_sessions(self) -> int:
        """End sessions past expires_at. Each row is re-checked at write time."""
        now = self._clock()
        async with self._uow() as repos:
            candidates = await repos.sessions.find_expired(now)
            expired = await repos.sessions.expire(candidates, END_REASON_EXPIRED, now)
        if expired:
            logger.info("Expired %s sessions", expired)
        return expired

    async def get_session_stats(self, user_id: str | None = None) -> SessionStats:
        async with self._uow() as repos:
            total = await repos.sessions.count(user_id)
            active = await repos.sessions.count(user_id, active=True)
            by_device_type = await repos.sessions.count_grouped("device_type", user_id)
            by_location = await repos.sessions.count_grouped("location", user_id)
            by_end_reason = await repos.sessions.count_grouped(
                "end_reason", user_id, skip_null=True
            )
        return SessionStats(
            user_id=user_id,
            total_sessions=total,
            active_sessions=active,
            ended_sessions=total - active,
            by_device_type=by_device_type,
            by_location=by_location,
            by_end_reason=by_end_reason,
        )

    async def get_device_history(self, user_id: str, days: int | None = None) -> list[SessionResult]:
        """Sessions created in the last days (default from settings), newest first."""
        since = self._clock() - timedelta(days=days or self._device_history_days)
        async with self._uow() as repos:
            return await repos.sessions.list_for_user(user_id, since=since)
