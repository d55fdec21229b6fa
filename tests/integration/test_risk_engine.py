"""Integration tests for login risk assessment and suspicious-session handling."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from authguard.application.dtos.device import DeviceInfo
from authguard.application.dtos.session import SessionCreate
from authguard.application.services.risk_engine import RiskEngine
from authguard.domain.enums import (
    FindingType,
    RiskLevel,
    SecurityActivityType,
    SessionStatus,
)
from authguard.domain.exceptions import SecurityEvaluationException

BROWSER = DeviceInfo(user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0")
SCRIPT = DeviceInfo(user_agent="python-requests/2.31")


async def test_first_login_from_untrusted_device_is_low(services) -> None:
    assessment = await services.risk.assess_login_risk("user-1", BROWSER, "192.168.1.10")
    assert assessment.risk_score == 20
    assert assessment.risk_level is RiskLevel.LOW
    assert assessment.factors == ("New or untrusted device",)
    assert not assessment.fail_closed

    (logged,) = await services.risk.get_security_activities("user-1")
    assert logged.activity_type == SecurityActivityType.LOGIN_RISK_ASSESSMENT.value
    assert logged.risk_level == "Low"
    assert logged.risk_score == 20
    assert logged.location == "Local Network"
    assert logged.device_fingerprint == assessment.device_fingerprint
    assert not logged.is_suspicious


async def test_trusted_device_scores_zero(services) -> None:
    fingerprint = services.fingerprints.fingerprint_for(BROWSER, "203.0.113.7")
    await services.device_trust.trust_device("user-1", fingerprint, BROWSER)
    assessment = await services.risk.assess_login_risk("user-1", BROWSER, "203.0.113.7")
    assert assessment.risk_score == 0
    assert assessment.device_fingerprint == fingerprint


async def test_script_login_from_new_location_is_blocked(services) -> None:
    await services.sessions.create_session(
        SessionCreate(user_id="user-1", device=BROWSER, ip_address="203.0.113.7", location="Kampala")
    )
    assessment = await services.risk.assess_login_risk(
        "user-1", SCRIPT, "203.0.113.7", location="Nairobi"
    )
    # untrusted + location change + recent activity + bot user agent
    assert assessment.risk_score == 100
    assert assessment.risk_level is RiskLevel.CRITICAL
    assert assessment.should_block
    (logged,) = await services.risk.get_security_activities("user-1")
    assert logged.is_suspicious
    assert logged.risk_level == "Critical"


async def test_session_lookup_failure_fails_closed(services, uow) -> None:
    sessions = MagicMock()
    sessions.get_active_sessions = AsyncMock(side_effect=RuntimeError("database unavailable"))
    engine = RiskEngine(uow, services.device_trust, sessions, services.activity)

    assessment = await engine.assess_login_risk("user-1", BROWSER, "203.0.113.7")
    assert assessment.fail_closed
    assert assessment.risk_level is RiskLevel.MEDIUM
    assert assessment.risk_score == 50
    assert assessment.requires_verification and not assessment.should_block

    (logged,) = await services.activity.get_security_activities("user-1")
    assert logged.details == {"fail_closed": True}


async def test_slow_session_lookup_fails_closed(services, uow) -> None:
    async def slow(user_id):
        await asyncio.sleep(1)
        return []

    sessions = MagicMock()
    sessions.get_active_sessions = slow
    engine = RiskEngine(
        uow, services.device_trust, sessions, services.activity, io_timeout=0.01
    )
    assessment = await engine.assess_login_risk("user-1", BROWSER)
    assert assessment.fail_closed


async def test_untrusted_verdict_adds_factor(services, uow) -> None:
    device_trust = MagicMock()
    device_trust.is_device_trusted = AsyncMock(return_value=False)
    engine = RiskEngine(uow, device_trust, services.sessions, services.activity)
    assessment = await engine.assess_login_risk("user-1", BROWSER)
    assert not assessment.fail_closed
    assert "New or untrusted device" in assessment.factors


async def _spread_sessions(services, user_id: str) -> list[str]:
    ids = []
    for location in ["Kampala", "Nairobi", "Lagos", "Kampala", "Nairobi"]:
        created = await services.sessions.create_session(
            SessionCreate(user_id=user_id, device=BROWSER, location=location)
        )
        ids.append(created.session.session_id)
    return ids


async def test_detect_suspicious_activity(services) -> None:
    await _spread_sessions(services, "user-1")
    findings = await services.risk.detect_suspicious_activity("user-1")
    types = {f.finding_type for f in findings}
    assert types == {
        FindingType.MULTIPLE_ACTIVE_SESSIONS,
        FindingType.MULTIPLE_GEOGRAPHIC_LOCATIONS,
        FindingType.RAPID_MULTIPLE_LOGINS,
    }
    assert await services.risk.detect_suspicious_activity("user-2") == []


async def test_high_risk_assessments_are_a_finding(services) -> None:
    await services.sessions.create_session(
        SessionCreate(user_id="user-1", device=BROWSER, location="Kampala")
    )
    await services.risk.assess_login_risk("user-1", SCRIPT, location="Nairobi")
    findings = await services.risk.detect_suspicious_activity("user-1")
    assert FindingType.HIGH_RISK_LOGINS in {f.finding_type for f in findings}


async def test_terminate_suspicious_sessions_keeps_current(services) -> None:
    ids = await _spread_sessions(services, "user-1")
    ended = await services.risk.terminate_suspicious_sessions("user-1", keep_session_id=ids[-1])
    assert sorted(ended) == sorted(ids[:-1])

    active = await services.sessions.get_active_sessions("user-1")
    assert [s.session_id for s in active] == [ids[-1]]
    terminated = await services.sessions.get_session(ids[0])
    assert terminated.status == SessionStatus.SUSPICIOUS_TERMINATED.value
    assert terminated.end_reason == "Suspicious activity detected"
    assert await services.token_blacklist.is_revoked(ids[0])

    activities = await services.activity.get_security_activities(
        "user-1", activity_type=SecurityActivityType.SUSPICIOUS_SESSIONS_TERMINATED
    )
    assert len(activities) == 1
    assert activities[0].is_suspicious
    assert sorted(activities[0].details["session_ids"]) == sorted(ids[:-1])


async def test_terminate_with_nothing_suspicious(services) -> None:
    await services.sessions.create_session(SessionCreate(user_id="user-1", device=BROWSER))
    assert await services.risk.terminate_suspicious_sessions("user-1") == []


async def test_terminate_failure_raises_security_error(services) -> None:
    broken = MagicMock(side_effect=RuntimeError("database unavailable"))
    engine = RiskEngine(broken, services.device_trust, services.sessions, services.activity)
    with pytest.raises(SecurityEvaluationException):
        await engine.terminate_suspicious_sessions("user-1")
