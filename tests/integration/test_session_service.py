"""Integration tests for the session manager."""

import asyncio
from datetime import timedelta

import pytest

from authguard.application.dtos.device import DeviceInfo
from authguard.application.dtos.session import SessionCreate
from authguard.application.services.session_service import SessionService
from authguard.domain.enums import SessionStatus
from authguard.domain.exceptions import ResourceNotFoundException, ValidationException
from authguard.infrastructure.security.token_blacklist import TokenBlacklist
from authguard.shared.locks import KeyedLock
from authguard.shared.utils.datetime import utc_now

LAPTOP = DeviceInfo(user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0")
PHONE = DeviceInfo(user_agent="Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile")


class SteppingClock:
    """Advances one second per call so every write gets a distinct timestamp."""

    def __init__(self) -> None:
        self.now = utc_now()

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def blacklist() -> TokenBlacklist:
    return TokenBlacklist()


@pytest.fixture
def sessions(uow, blacklist) -> SessionService:
    return SessionService(
        uow,
        token_blacklist=blacklist,
        max_sessions=5,
        locks=KeyedLock(),
        clock=SteppingClock(),
    )


async def test_create_session_is_current_and_described(services) -> None:
    created = await services.sessions.create_session(
        SessionCreate(user_id="user-1", device=LAPTOP, ip_address="192.168.1.10")
    )
    session = created.session
    assert created.evicted_session_ids == ()
    assert session.is_active and session.is_current
    assert session.status == SessionStatus.ACTIVE.value
    assert session.device_type == "Desktop"
    assert session.device_name == "Windows 10/11 Desktop"
    assert session.location == "Local Network"
    assert len(session.device_fingerprint) == 32
    assert session.expires_at - session.created_at == timedelta(minutes=480)


async def test_only_newest_session_is_current(services) -> None:
    first = await services.sessions.create_session(SessionCreate(user_id="user-1", device=LAPTOP))
    second = await services.sessions.create_session(SessionCreate(user_id="user-1", device=PHONE))
    assert not (await services.sessions.get_session(first.session.session_id)).is_current
    assert (await services.sessions.get_session(second.session.session_id)).is_current


async def test_create_session_validation(services) -> None:
    with pytest.raises(ValidationException):
        await services.sessions.create_session(SessionCreate(user_id=""))
    with pytest.raises(ValidationException):
        await services.sessions.create_session(
            SessionCreate(user_id="user-1", expires_at=utc_now() - timedelta(minutes=1))
        )
    await services.sessions.create_session(SessionCreate(user_id="user-1", session_id="fixed"))
    with pytest.raises(ValidationException):
        await services.sessions.create_session(SessionCreate(user_id="user-1", session_id="fixed"))


async def test_sixth_session_evicts_least_recently_active(sessions, blacklist) -> None:
    ids = [
        (await sessions.create_session(SessionCreate(user_id="user-1", device=LAPTOP))).session.session_id
        for _ in range(5)
    ]
    assert await sessions.update_last_active(ids[0])

    created = await sessions.create_session(SessionCreate(user_id="user-1", device=PHONE))
    assert created.evicted_session_ids == (ids[1],)

    evicted = await sessions.get_session(ids[1])
    assert evicted.status == SessionStatus.DEVICE_LIMIT_EVICTED.value
    assert evicted.end_reason == "DeviceLimitEvicted"
    assert not evicted.is_active
    assert await blacklist.is_revoked(ids[1])

    active = await sessions.get_active_sessions("user-1")
    assert len(active) == 5
    assert ids[1] not in {s.session_id for s in active}
    assert [s.session_id for s in active if s.is_current] == [created.session.session_id]


async def test_session_limit_is_per_user(sessions) -> None:
    for _ in range(5):
        await sessions.create_session(SessionCreate(user_id="user-1"))
    created = await sessions.create_session(SessionCreate(user_id="user-2"))
    assert created.evicted_session_ids == ()


async def test_concurrent_logins_keep_limit_and_one_current(sessions, blacklist) -> None:
    results = await asyncio.gather(
        *(
            sessions.create_session(SessionCreate(user_id="user-1", device=LAPTOP))
            for _ in range(12)
        )
    )

    active = await sessions.get_active_sessions("user-1")
    assert len(active) == 5
    assert len([s for s in active if s.is_current]) == 1

    evicted = [sid for r in results for sid in r.evicted_session_ids]
    assert len(evicted) == len(set(evicted)) == 7
    assert not {s.session_id for s in active} & set(evicted)
    for sid in evicted:
        assert await blacklist.is_revoked(sid)


async def test_end_session_once(services) -> None:
    created = await services.sessions.create_session(SessionCreate(user_id="user-1"))
    session_id = created.session.session_id

    assert await services.sessions.end_session(session_id)
    assert not await services.sessions.end_session(session_id)
    ended = await services.sessions.get_session(session_id)
    assert ended.status == SessionStatus.LOGGED_OUT.value
    assert ended.end_reason == "Logout"
    assert ended.ended_at is not None
    assert await services.token_blacklist.is_revoked(session_id)
    assert not await services.sessions.update_last_active(session_id)


async def test_revoke_session(services) -> None:
    created = await services.sessions.create_session(SessionCreate(user_id="user-1"))
    assert await services.sessions.revoke_session(created.session.session_id)
    revoked = await services.sessions.get_session(created.session.session_id)
    assert revoked.status == SessionStatus.ADMIN_REVOKED.value
    assert revoked.end_reason == "Revoked"


async def test_unknown_session(services) -> None:
    with pytest.raises(ResourceNotFoundException):
        await services.sessions.get_session("missing")
    with pytest.raises(ResourceNotFoundException):
        await services.sessions.end_session("missing")
    assert not await services.sessions.update_last_active("missing")


async def test_end_other_and_all_sessions(sessions) -> None:
    ids = [
        (await sessions.create_session(SessionCreate(user_id="user-1"))).session.session_id
        for _ in range(3)
    ]
    assert await sessions.end_other_sessions("user-1", ids[2]) == 2
    assert [s.session_id for s in await sessions.get_active_sessions("user-1")] == [ids[2]]
    assert (await sessions.get_session(ids[0])).end_reason == "LogoutOthers"

    assert await sessions.end_all_user_sessions("user-1") == 1
    assert await sessions.get_active_sessions("user-1") == []


async def test_cleanup_expired_sessions(uow, services, blacklist, later) -> None:
    expiring = await services.sessions.create_session(
        SessionCreate(user_id="user-1", expires_at=utc_now() + timedelta(minutes=1))
    )
    lasting = await services.sessions.create_session(SessionCreate(user_id="user-1"))

    sweeper = SessionService(uow, token_blacklist=blacklist, clock=later(minutes=5))
    assert await sweeper.get_active_sessions("user-1") == [
        await services.sessions.get_session(lasting.session.session_id)
    ]
    assert await sweeper.cleanup_expired_sessions() == 1
    assert await sweeper.cleanup_expired_sessions() == 0

    expired = await services.sessions.get_session(expiring.session.session_id)
    assert expired.status == SessionStatus.EXPIRED.value
    assert expired.end_reason == "Expired"
    assert not await blacklist.is_revoked(expiring.session.session_id)


async def test_session_stats_and_history(services) -> None:
    laptop = await services.sessions.create_session(
        SessionCreate(user_id="user-1", device=LAPTOP, location="Kampala")
    )
    await services.sessions.create_session(
        SessionCreate(user_id="user-1", device=PHONE, location="Kampala")
    )
    await services.sessions.create_session(SessionCreate(user_id="user-2", device=PHONE))
    await services.sessions.end_session(laptop.session.session_id)

    stats = await services.sessions.get_session_stats("user-1")
    assert stats.total_sessions == 2
    assert stats.active_sessions == 1
    assert stats.ended_sessions == 1
    assert stats.by_device_type == {"Desktop": 1, "Mobile": 1}
    assert stats.by_location == {"Kampala": 2}
    assert stats.by_end_reason == {"Logout": 1}

    overall = await services.sessions.get_session_stats()
    assert overall.total_sessions == 3
    assert overall.by_location == {"Kampala": 2, "Unknown": 1}

    history = await services.sessions.get_device_history("user-1", days=1)
    assert len(history) == 2
    assert len(await services.sessions.get_user_sessions("user-1")) == 2
