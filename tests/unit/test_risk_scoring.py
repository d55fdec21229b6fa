"""Unit tests for login risk scoring and suspicious-pattern detection."""

from datetime import UTC, datetime, timedelta

import pytest

from authguard.application.dtos.risk import RiskSignals, SecurityActivityResult
from authguard.application.dtos.session import SessionResult
from authguard.application.services.risk_engine import (
    FAIL_CLOSED_FACTOR,
    RiskPolicy,
    build_assessment,
    classify,
    collect_signals,
    densest_login_burst,
    fail_closed_assessment,
    find_suspicious_patterns,
    score_signals,
)
from authguard.core.config import Settings
from authguard.domain.enums import FindingType, RiskLevel

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
POLICY = RiskPolicy()
BROWSER = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0"


def _session(
    session_id: str,
    *,
    location: str | None = None,
    ip_address: str | None = None,
    created_ago: timedelta = timedelta(hours=1),
    active_ago: timedelta = timedelta(minutes=30),
) -> SessionResult:
    return SessionResult(
        id=f"row-{session_id}",
        session_id=session_id,
        user_id="u-1",
        device_name="Windows 10/11 Desktop",
        device_type="Desktop",
        operating_system="Windows 10/11",
        ip_address=ip_address,
        location=location,
        device_fingerprint=None,
        created_at=NOW - created_ago,
        last_active_at=NOW - active_ago,
        expires_at=NOW + timedelta(days=30),
        is_active=True,
        is_current=False,
        status="active",
        ended_at=None,
        end_reason=None,
    )


def _collect(**overrides):
    kwargs = {
        "device_trusted": True,
        "active_sessions": [],
        "ip_address": None,
        "location": None,
        "user_agent": BROWSER,
        "now": NOW,
        "policy": POLICY,
    }
    kwargs.update(overrides)
    return collect_signals(**kwargs)


def test_trusted_device_with_no_history_is_low_risk() -> None:
    signals, factors = _collect()
    assessment = build_assessment("u-1", signals, factors, POLICY)
    assert assessment.risk_score == 0
    assert assessment.risk_level is RiskLevel.LOW
    assert assessment.factors == ()
    assert not assessment.requires_verification
    assert not assessment.should_block


def test_untrusted_device_location_change_and_bot_is_critical() -> None:
    signals, factors = _collect(
        device_trusted=False,
        active_sessions=[_session("s1", location="Kampala")],
        location="Nairobi",
        user_agent="curl/8.4.0",
    )
    assessment = build_assessment("u-1", signals, factors, POLICY)
    assert signals.untrusted_device and signals.location_changed and signals.bot_user_agent
    assert assessment.risk_score == 90
    assert assessment.risk_level is RiskLevel.CRITICAL
    assert assessment.should_block
    assert assessment.requires_verification
    assert assessment.is_suspicious
    assert "Location changed: Kampala -> Nairobi" in assessment.factors


def test_untrusted_device_alone_stays_low() -> None:
    signals, factors = _collect(device_trusted=False)
    assessment = build_assessment("u-1", signals, factors, POLICY)
    assert assessment.risk_score == 20
    assert assessment.risk_level is RiskLevel.LOW
    assert factors == ["New or untrusted device"]


def test_ip_change_and_recent_activity_use_latest_session() -> None:
    older = _session("old", ip_address="198.51.100.1", active_ago=timedelta(hours=3))
    latest = _session("new", ip_address="203.0.113.7", active_ago=timedelta(minutes=2))
    signals, _ = _collect(active_sessions=[older, latest], ip_address="203.0.113.7")
    assert not signals.ip_changed
    assert signals.recent_activity


def test_local_locations_never_count_as_location_change() -> None:
    signals, _ = _collect(
        active_sessions=[_session("s1", location="Local Network")],
        location="Nairobi",
    )
    assert not signals.location_changed


def test_location_comparison_ignores_case() -> None:
    signals, _ = _collect(
        active_sessions=[_session("s1", location="kampala")],
        location="Kampala",
    )
    assert not signals.location_changed


def test_high_risk_marker_matches_whole_words_only() -> None:
    toronto, _ = _collect(location="Toronto")
    tor, factors = _collect(location="Tor exit node")
    assert not toronto.high_risk_marker
    assert tor.high_risk_marker
    assert any(f.startswith("High-risk network") for f in factors)


def test_many_active_sessions_signal() -> None:
    sessions = [_session(f"s{i}") for i in range(5)]
    signals, factors = _collect(active_sessions=sessions)
    assert signals.many_active_sessions
    assert "Too many active sessions (5)" in factors


def test_score_is_capped_at_one_hundred() -> None:
    every_signal = RiskSignals(
        untrusted_device=True,
        location_changed=True,
        ip_changed=True,
        recent_activity=True,
        many_active_sessions=True,
        high_risk_marker=True,
        bot_user_agent=True,
    )
    assert score_signals(every_signal, POLICY) == 100


@pytest.mark.parametrize(
    "score,level",
    [
        (0, RiskLevel.LOW),
        (20, RiskLevel.LOW),
        (21, RiskLevel.MEDIUM),
        (50, RiskLevel.MEDIUM),
        (51, RiskLevel.HIGH),
        (80, RiskLevel.HIGH),
        (81, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ],
)
def test_classify_boundaries(score: int, level: RiskLevel) -> None:
    assert classify(score, POLICY) is level


def test_medium_untrusted_assessment_suggests_trusting_device() -> None:
    signals = RiskSignals(untrusted_device=True, ip_changed=True)
    assessment = build_assessment("u-1", signals, [], POLICY)
    assert assessment.risk_level is RiskLevel.MEDIUM
    assert "If this is your new device, mark it as trusted" in assessment.recommended_actions
    assert not assessment.is_suspicious


def test_fail_closed_assessment() -> None:
    assessment = fail_closed_assessment("u-1", "fp", NOW)
    assert assessment.fail_closed
    assert assessment.risk_score == 50
    assert assessment.risk_level is RiskLevel.MEDIUM
    assert assessment.requires_verification
    assert not assessment.should_block
    assert assessment.factors == (FAIL_CLOSED_FACTOR,)


def test_policy_from_settings_uses_configured_weights() -> None:
    settings = Settings(_env_file=None, risk_weight_bot_user_agent=55, risk_threshold_high=90)
    policy = RiskPolicy.from_settings(settings)
    assert policy.weight_bot_user_agent == 55
    assert policy.threshold_high == 90
    assert policy.weight_untrusted_device == POLICY.weight_untrusted_device


def test_densest_login_burst_finds_tightest_window() -> None:
    sessions = [
        _session("a", created_ago=timedelta(minutes=60)),
        _session("b", created_ago=timedelta(minutes=57)),
        _session("c", created_ago=timedelta(minutes=52)),
        _session("d", created_ago=timedelta(minutes=20)),
        _session("e", created_ago=timedelta(minutes=1)),
    ]
    burst = densest_login_burst(sessions, timedelta(minutes=10))
    assert [s.session_id for s in burst] == ["a", "b", "c"]


def test_densest_login_burst_of_nothing() -> None:
    assert densest_login_burst([], timedelta(minutes=10)) == []


def _activity(risk_level: str, is_suspicious: bool) -> SecurityActivityResult:
    return SecurityActivityResult(
        id="a-1",
        user_id="u-1",
        activity_type="LoginRiskAssessment",
        description=None,
        device_fingerprint=None,
        ip_address=None,
        location=None,
        risk_level=risk_level,
        risk_score=None,
        factors=(),
        is_suspicious=is_suspicious,
        occurred_at=NOW,
    )


def test_find_suspicious_patterns_reports_every_finding() -> None:
    active = [
        _session("s1", location="Kampala", created_ago=timedelta(minutes=9)),
        _session("s2", location="Nairobi", created_ago=timedelta(minutes=6)),
        _session("s3", location="Lagos", created_ago=timedelta(minutes=2)),
        _session("s4", created_ago=timedelta(hours=5)),
        _session("s5", created_ago=timedelta(hours=8)),
    ]
    findings = find_suspicious_patterns(
        active_sessions=active,
        recent_sessions=active,
        assessments=[_activity("High", True), _activity("Low", False)],
        now=NOW,
        policy=POLICY,
    )
    by_type = {f.finding_type: f for f in findings}
    assert set(by_type) == {
        FindingType.MULTIPLE_ACTIVE_SESSIONS,
        FindingType.MULTIPLE_GEOGRAPHIC_LOCATIONS,
        FindingType.RAPID_MULTIPLE_LOGINS,
        FindingType.HIGH_RISK_LOGINS,
    }
    assert len(by_type[FindingType.MULTIPLE_ACTIVE_SESSIONS].session_ids) == 5
    assert set(by_type[FindingType.MULTIPLE_GEOGRAPHIC_LOCATIONS].session_ids) == {"s1", "s2", "s3"}
    assert by_type[FindingType.RAPID_MULTIPLE_LOGINS].severity is RiskLevel.MEDIUM
    assert by_type[FindingType.HIGH_RISK_LOGINS].session_ids == ()


def test_find_suspicious_patterns_quiet_account() -> None:
    findings = find_suspicious_patterns(
        active_sessions=[_session("s1", location="Kampala")],
        recent_sessions=[_session("s1", location="Kampala")],
        assessments=[_activity("Low", False)],
        now=NOW,
        policy=POLICY,
    )
    assert findings == []


def test_activity_exactly_five_minutes_ago_counts_as_recent() -> None:
    boundary = _session("s1", active_ago=timedelta(minutes=5))
    stale = _session("s2", active_ago=timedelta(minutes=5, seconds=1))
    at_boundary, _ = _collect(active_sessions=[boundary])
    past_boundary, _ = _collect(active_sessions=[stale])
    assert at_boundary.recent_activity
    assert not past_boundary.recent_activity
