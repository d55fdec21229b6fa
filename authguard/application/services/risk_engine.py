"""Login risk scoring and suspicious-activity detection.

One canonical weight/threshold table (RiskPolicy, built from settings)
drives every assessment. Scoring itself is pure: collect_signals() turns
login facts into RiskSignals plus human-readable factors, score_signals()
sums the weights (capped at 100) and classify() maps the score to a level.

RiskEngine wires those to the trust registry, the session manager and the
security-activity log. It fails closed: if an assessment cannot be
computed the caller gets Medium risk with verification required.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, fields
from datetime import datetime, timedelta

from authguard.application.dtos.device import DeviceInfo
from authguard.application.dtos.risk import (
    RiskAssessment,
    RiskSignals,
    SecurityActivityResult,
    SuspiciousFinding,
)
from authguard.application.dtos.session import SessionResult
from authguard.application.interfaces.repositories import IUnitOfWork
from authguard.application.services.device_fingerprint_service import (
    DeviceFingerprintService,
    resolve_location,
)
from authguard.application.services.device_trust_service import DeviceTrustService
from authguard.application.services.security_activity_service import (
    SecurityActivityService,
)
from authguard.application.services.session_service import SessionService
from authguard.core.config import Settings
from authguard.core.constants import END_REASON_SUSPICIOUS
from authguard.domain.enums import (
    FindingType,
    RiskLevel,
    SecurityActivityType,
    SessionStatus,
)
from authguard.domain.exceptions import AuthGuardException, SecurityEvaluationException
from authguard.shared.telemetry import add_span_attributes, traced
from authguard.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

MAX_RISK_SCORE = 100
FAIL_CLOSED_SCORE = 50
FAIL_CLOSED_FACTOR = "Risk evaluation unavailable"

_RECOMMENDATIONS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.LOW: ("Device security looks good; keep your password up to date",),
    RiskLevel.MEDIUM: ("Enable two-factor authentication to strengthen account security",),
    RiskLevel.HIGH: (
        "Unusual sign-in pattern detected; review recent account activity",
        "Consider changing your password and reviewing other active sessions",
    ),
    RiskLevel.CRITICAL: (
        "High-risk activity detected; terminate all sessions immediately",
        "Change your password and enable every available security option",
        "Check the account for unauthorized changes",
    ),
}


@dataclass(frozen=True)
class RiskPolicy:
    """Weights, level thresholds and heuristic lists for login risk."""

    weight_untrusted_device: int = 20
    weight_location_change: int = 30
    weight_ip_change: int = 15
    weight_recent_activity: int = 25
    weight_concurrent_sessions: int = 20
    weight_high_risk_marker: int = 35
    weight_bot_user_agent: int = 40
    threshold_low: int = 20
    threshold_medium: int = 50
    threshold_high: int = 80
    recent_activity: timedelta = timedelta(minutes=5)
    concurrent_sessions_threshold: int = 5
    high_risk_markers: tuple[str, ...] = ("unknown", "tor", "proxy", "vpn")
    bot_signatures: tuple[str, ...] = (
        "bot", "crawler", "spider", "scraper", "wget", "curl", "python", "java", "nodejs",
    )
    local_markers: tuple[str, ...] = ("local",)
    suspicious_window: timedelta = timedelta(hours=24)
    login_burst_window: timedelta = timedelta(minutes=10)
    login_burst_count: int = 3
    distinct_locations: int = 3
    suspicious_concurrent_sessions: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> RiskPolicy:
        return cls(
            weight_untrusted_device=settings.risk_weight_untrusted_device,
            weight_location_change=settings.risk_weight_location_change,
            weight_ip_change=settings.risk_weight_ip_change,
            weight_recent_activity=settings.risk_weight_recent_activity,
            weight_concurrent_sessions=settings.risk_weight_concurrent_sessions,
            weight_high_risk_marker=settings.risk_weight_high_risk_marker,
            weight_bot_user_agent=settings.risk_weight_bot_user_agent,
            threshold_low=settings.risk_threshold_low,
            threshold_medium=settings.risk_threshold_medium,
            threshold_high=settings.risk_threshold_high,
            recent_activity=timedelta(minutes=settings.risk_recent_activity_minutes),
            concurrent_sessions_threshold=settings.risk_concurrent_sessions_threshold,
            high_risk_markers=settings.high_risk_markers,
            bot_signatures=settings.bot_signatures,
            local_markers=settings.local_markers,
            suspicious_window=timedelta(hours=settings.suspicious_window_hours),
            login_burst_window=timedelta(minutes=settings.suspicious_login_burst_minutes),
            login_burst_count=settings.suspicious_login_burst_count,
            distinct_locations=settings.suspicious_distinct_locations,
            suspicious_concurrent_sessions=settings.suspicious_concurrent_sessions,
        )

    def weight_for(self, signal: str) -> int:
        return {
            "untrusted_device": self.weight_untrusted_device,
            "location_changed": self.weight_location_change,
            "ip_changed": self.weight_ip_change,
            "recent_activity": self.weight_recent_activity,
            "many_active_sessions": self.weight_concurrent_sessions,
            "high_risk_marker": self.weight_high_risk_marker,
            "bot_user_agent": self.weight_bot_user_agent,
        }[signal]


def _is_local(location: str, policy: RiskPolicy) -> bool:
    lowered = location.lower()
    return any(marker in lowered for marker in policy.local_markers)


def _matches_marker(text: str | None, markers: Sequence[str]) -> str | None:
    """First marker found in text as a whole word (so 'tor' does not hit 'Toronto')."""
    if not text:
        return None
    for marker in markers:
        if re.search(rf"\b{re.escape(marker)}\b", text, re.IGNORECASE):
            return marker
    return None


def collect_signals(
    *,
    device_trusted: bool,
    active_sessions: Sequence[SessionResult],
    ip_address: str | None,
    location: str | None,
    user_agent: str | None,
    now: datetime,
    policy: RiskPolicy,
) -> tuple[RiskSignals, list[str]]:
    """Evaluate every risk signal for one login attempt.

    The most recently active session is the baseline for the location,
    IP and recency signals.
    """
    factors: list[str] = []
    untrusted = not device_trusted
    if untrusted:
        factors.append("New or untrusted device")

    location_changed = ip_changed = recent = False
    last = max(active_sessions, key=lambda s: s.last_active_at, default=None)
    if last is not None:
        if (
            location
            and last.location
            and location.lower() != last.location.lower()
            and not _is_local(location, policy)
            and not _is_local(last.location, policy)
        ):
            location_changed = True
            factors.append(f"Location changed: {last.location} -> {location}")
        if ip_address and last.ip_address and ip_address != last.ip_address:
            ip_changed = True
            factors.append(f"IP address changed: {last.ip_address} -> {ip_address}")
        since_last = now - last.last_active_at
        if since_last <= policy.recent_activity:
            recent = True
            factors.append(
                f"Rapid re-login ({since_last.total_seconds() / 60:.1f} minutes since last activity)"
            )

    many = len(active_sessions) >= policy.concurrent_sessions_threshold
    if many:
        factors.append(f"Too many active sessions ({len(active_sessions)})")

    marker = _matches_marker(location, policy.high_risk_markers) or _matches_marker(
        ip_address, policy.high_risk_markers
    )
    if marker:
        factors.append(f"High-risk network or location: {location or ip_address}")

    ua = (user_agent or "").lower()
    bot = any(sig in ua for sig in policy.bot_signatures)
    if bot:
        factors.append("Suspicious user agent")

    signals = RiskSignals(
        untrusted_device=untrusted,
        location_changed=location_changed,
        ip_changed=ip_changed,
        recent_activity=recent,
        many_active_sessions=many,
        high_risk_marker=bool(marker),
        bot_user_agent=bot,
    )
    return signals, factors


def score_signals(signals: RiskSignals, policy: RiskPolicy) -> int:
    """Sum of the weights of every firing signal, capped at 100."""
    total = sum(
        policy.weight_for(f.name) for f in fields(signals) if getattr(signals, f.name)
    )
    return min(total, MAX_RISK_SCORE)


def classify(score: int, policy: RiskPolicy) -> RiskLevel:
    if score <= policy.threshold_low:
        return RiskLevel.LOW
    if score <= policy.threshold_medium:
        return RiskLevel.MEDIUM
    if score <= policy.threshold_high:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def recommendations_for(level: RiskLevel, signals: RiskSignals | None = None) -> tuple[str, ...]:
    actions = list(_RECOMMENDATIONS[level])
    if signals is not None:
        if level is RiskLevel.MEDIUM and signals.untrusted_device:
            actions.append("If this is your new device, mark it as trusted")
        if level is RiskLevel.HIGH and signals.location_changed:
            actions.append("If you are not at this location, secure your account now")
    return tuple(actions)


def build_assessment(
    user_id: str,
    signals: RiskSignals,
    factors: Sequence[str],
    policy: RiskPolicy,
    *,
    device_fingerprint: str | None = None,
    assessed_at: datetime | None = None,
) -> RiskAssessment:
    score = score_signals(signals, policy)
    level = classify(score, policy)
    return RiskAssessment(
        user_id=user_id,
        risk_score=score,
        risk_level=level,
        factors=tuple(factors),
        recommended_actions=recommendations_for(level, signals),
        requires_verification=level >= RiskLevel.MEDIUM,
        should_block=level >= RiskLevel.CRITICAL,
        device_fingerprint=device_fingerprint,
        assessed_at=assessed_at,
    )


def fail_closed_assessment(
    user_id: str, device_fingerprint: str | None, assessed_at: datetime
) -> RiskAssessment:
    """Assessment returned when evaluation failed: Medium, verify, do not block."""
    return RiskAssessment(
        user_id=user_id,
        risk_score=FAIL_CLOSED_SCORE,
        risk_level=RiskLevel.MEDIUM,
        factors=(FAIL_CLOSED_FACTOR,),
        recommended_actions=("Retry later or contact an administrator",),
        requires_verification=True,
        should_block=False,
        device_fingerprint=device_fingerprint,
        assessed_at=assessed_at,
        fail_closed=True,
    )


def densest_login_burst(
    sessions: Sequence[SessionResult], window: timedelta
) -> list[SessionResult]:
    """Largest set of sessions created within any span of length window."""
    ordered = sorted(sessions, key=lambda s: s.created_at)
    best: list[SessionResult] = []
    start = 0
    for end, session in enumerate(ordered):
        while session.created_at - ordered[start].created_at > window:
            start += 1
        if end - start + 1 > len(best):
            best = ordered[start : end + 1]
    return best


def find_suspicious_patterns(
    *,
    active_sessions: Sequence[SessionResult],
    recent_sessions: Sequence[SessionResult],
    assessments: Sequence[SecurityActivityResult],
    now: datetime,
    policy: RiskPolicy,
) -> list[SuspiciousFinding]:
    """Session-pattern findings for one user over the detection window."""
    findings: list[SuspiciousFinding] = []
    if len(active_sessions) >= policy.suspicious_concurrent_sessions:
        findings.append(
            SuspiciousFinding(
                finding_type=FindingType.MULTIPLE_ACTIVE_SESSIONS,
                description=f"{len(active_sessions)} concurrently active sessions",
                severity=RiskLevel.HIGH,
                session_ids=tuple(s.session_id for s in active_sessions),
                detected_at=now,
            )
        )

    located = [s for s in active_sessions if s.location]
    locations = {s.location.lower() for s in located}
    if len(locations) >= policy.distinct_locations:
        findings.append(
            SuspiciousFinding(
                finding_type=FindingType.MULTIPLE_GEOGRAPHIC_LOCATIONS,
                description=f"Active sessions from {len(locations)} different locations",
                severity=RiskLevel.HIGH,
                session_ids=tuple(s.session_id for s in located),
                detected_at=now,
            )
        )

    burst = densest_login_burst(recent_sessions, policy.login_burst_window)
    if len(burst) >= policy.login_burst_count:
        minutes = int(policy.login_burst_window.total_seconds() // 60)
        findings.append(
            SuspiciousFinding(
                finding_type=FindingType.RAPID_MULTIPLE_LOGINS,
                description=f"{len(burst)} logins within {minutes} minutes",
                severity=RiskLevel.MEDIUM,
                session_ids=tuple(s.session_id for s in burst),
                detected_at=now,
            )
        )

    risky = [a for a in assessments if a.is_suspicious]
    if risky:
        findings.append(
            SuspiciousFinding(
                finding_type=FindingType.HIGH_RISK_LOGINS,
                description=f"{len(risky)} high-risk login attempts",
                severity=RiskLevel.HIGH,
                detected_at=now,
            )
        )
    return findings


class RiskEngine:
    """Assess login risk and act on suspicious session patterns."""

    def __init__(
        self,
        uow: IUnitOfWork,
        device_trust: DeviceTrustService,
        sessions: SessionService,
        activity: SecurityActivityService,
        *,
        fingerprints: DeviceFingerprintService | None = None,
        policy: RiskPolicy | None = None,
        io_timeout: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._uow = uow
        self._device_trust = device_trust
        self._sessions = sessions
        self._activity = activity
        self._policy = policy or RiskPolicy()
        self._fingerprints = fingerprints or DeviceFingerprintService(
            bot_signatures=self._policy.bot_signatures
        )
        self._io_timeout = io_timeout
        self._clock = clock

    @property
    def policy(self) -> RiskPolicy:
        return self._policy

    @traced("risk.assess_login_risk")
    async def assess_login_risk(
        self,
        user_id: str,
        device: DeviceInfo | None = None,
        ip_address: str | None = None,
        location: str | None = None,
    ) -> RiskAssessment:
        """Score one login attempt and append it to the security-activity log.

        Never raises for evaluation failures: they produce the fail-closed
        Medium assessment instead.
        """
        now = self._clock()
        device = self._fingerprints.describe(device or DeviceInfo())
        fingerprint = self._fingerprints.fingerprint_for(device, ip_address)
        location = location or resolve_location(ip_address)
        try:
            trusted = await self._device_trust.is_device_trusted(user_id, fingerprint)
            active = await asyncio.wait_for(
                self._sessions.get_active_sessions(user_id), timeout=self._io_timeout
            )
            signals, factors = collect_signals(
                device_trusted=trusted,
                active_sessions=active,
                ip_address=ip_address,
                location=location,
                user_agent=device.user_agent,
                now=now,
                policy=self._policy,
            )
            assessment = build_assessment(
                user_id,
                signals,
                factors,
                self._policy,
                device_fingerprint=fingerprint,
                assessed_at=now,
            )
        except Exception:
            logger.exception("Risk assessment failed for user %s; failing closed", user_id)
            assessment = fail_closed_assessment(user_id, fingerprint, now)

        add_span_attributes(user_id=user_id, risk_score=assessment.risk_score)
        await self._log_assessment(assessment, device, ip_address, location)
        logger.info(
            "Login risk for user %s: %s (%s)",
            user_id,
            assessment.risk_level.label,
            assessment.risk_score,
        )
        return assessment

    async def _log_assessment(
        self,
        assessment: RiskAssessment,
        device: DeviceInfo,
        ip_address: str | None,
        location: str | None,
    ) -> None:
        try:
            async with self._uow() as repos:
                await repos.activity_log.append(
                    user_id=assessment.user_id,
                    activity_type=SecurityActivityType.LOGIN_RISK_ASSESSMENT.value,
                    description=(
                        f"Risk assessment: {assessment.risk_level.label} "
                        f"({assessment.risk_score})"
                    ),
                    device_fingerprint=assessment.device_fingerprint,
                    ip_address=ip_address,
                    location=location,
                    user_agent=device.user_agent,
                    risk_level=assessment.risk_level.label,
                    risk_score=assessment.risk_score,
                    factors=list(assessment.factors),
                    details={"fail_closed": assessment.fail_closed},
                    is_suspicious=assessment.is_suspicious,
                    occurred_at=assessment.assessed_at,
                )
        except Exception:
            logger.exception("Could not log risk assessment for user %s", assessment.user_id)

    async def detect_suspicious_activity(self, user_id: str) -> list[SuspiciousFinding]:
        """Findings over the rolling detection window (24h by default)."""
        now = self._clock()
        since = now - self._policy.suspicious_window
        async with self._uow() as repos:
            active = await repos.sessions.get_active(user_id, now)
            recent = await repos.sessions.list_for_user(user_id, since=since)
            assessments = await repos.activity_log.list_for_user(
                user_id,
                since=since,
                activity_type=SecurityActivityType.LOGIN_RISK_ASSESSMENT.value,
            )
        findings = find_suspicious_patterns(
            active_sessions=active,
            recent_sessions=recent,
            assessments=assessments,
            now=now,
            policy=self._policy,
        )
        if findings:
            logger.warning(
                "Suspicious activity for user %s: %s",
                user_id,
                ", ".join(f.finding_type.value for f in findings),
            )
        return findings

    async def terminate_suspicious_sessions(
        self,
        user_id: str,
        reason: str = END_REASON_SUSPICIOUS,
        keep_session_id: str | None = None,
    ) -> list[str]:
        """End every session implicated by a current finding. Returns the ended ids.

        Raises:
            SecurityEvaluationException: Detection or termination failed.
        """
        try:
            findings = await self.detect_suspicious_activity(user_id)
            implicated = sorted({sid for f in findings for sid in f.session_ids})
            ended = await self._sessions.terminate_sessions(
                user_id,
                implicated,
                status=SessionStatus.SUSPICIOUS_TERMINATED,
                reason=reason,
                keep_session_id=keep_session_id,
            )
            if ended:
                await self._activity.record_security_activity(
                    user_id,
                    SecurityActivityType.SUSPICIOUS_SESSIONS_TERMINATED,
                    f"Terminated {len(ended)} suspicious sessions",
                    details={
                        "session_ids": ended,
                        "findings": [f.finding_type.value for f in findings],
                        "reason": reason,
                    },
                    is_suspicious=True,
                )
        except AuthGuardException:
            raise
        except Exception as e:
            logger.exception("Terminating suspicious sessions failed for user %s", user_id)
            raise SecurityEvaluationException(
                "terminate_suspicious_sessions", type(e).__name__
            ) from e
        if ended:
            logger.warning("Terminated %s suspicious sessions for user %s", len(ended), user_id)
        return ended

    async def get_security_activities(
        self, user_id: str, days: int = 30
    ) -> list[SecurityActivityResult]:
        return await self._activity.get_security_activities(user_id, days=days)
