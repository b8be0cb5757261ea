"""
agent/auto_accept.py — Auto-Accept Agent

Ties the risk assessor to a session budget and the audit log.

Decision flow for process_request():
  1. Is auto-accept enabled?               no  → reject
  2. Has the session timed out?            yes → deactivate, reject
  3. Has the accept budget run out?        yes → reject
  4. Assess the request (RiskAssessor)
  5. ALLOW → accept and count it; DENY / ASK → reject
  6. Audit every outcome, then persist the session (one flock held throughout)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from autoaccept.agent.session import SessionState, SessionStore
from autoaccept.config.settings import SecurityConfig, Settings
from autoaccept.exceptions import (
    AcceptLimitReachedError,
    SessionError,
    SessionExpiredError,
    SessionInactiveError,
)
from autoaccept.observability.audit import AuditEntry, AuditLog
from autoaccept.observability.logger import bind_session, clear_session, get_logger
from autoaccept.safety.risk_assessor import RiskAssessor
from autoaccept.safety.types import (
    Decision,
    OperationRequest,
    RiskAssessment,
    RiskLevel,
)

log = get_logger(__name__)


@dataclass(frozen=True)
class SessionStatus:
    active: bool
    session_id: str
    accept_count: int
    max_accepts: int
    remaining_accepts: int
    time_remaining: int      # seconds


@dataclass(frozen=True)
class AgentVerdict:
    accepted: bool
    assessment: RiskAssessment
    reason: str


@dataclass(frozen=True)
class PreviewResult:
    would_accept: bool
    decision: Decision
    risk_level: RiskLevel
    reason: str


class AutoAcceptAgent:
    """
    Usage:
        agent = AutoAcceptAgent(settings)
        agent.enable_auto_accept()
        verdict = agent.process_request(OperationRequest("git status", "check"))
        if verdict.accepted:
            ...  # answer the prompt automatically
    """

    def __init__(
        self,
        settings: Settings,
        assessor: Optional[RiskAssessor] = None,
        store: Optional[SessionStore] = None,
        audit: Optional[AuditLog] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._settings = settings
        self._assessor = assessor or RiskAssessor(settings.security)
        self._store = store or SessionStore(settings.session.state_path)
        self._audit = audit or AuditLog(settings.audit.path, enabled=settings.audit.enabled)
        self._clock = clock

    @property
    def assessor(self) -> RiskAssessor:
        return self._assessor

    @property
    def audit(self) -> AuditLog:
        return self._audit

    # ── Session control ───────────────────────────────────────────────────────

    def enable_auto_accept(self) -> SessionStatus:
        with self._store.transaction():
            state = SessionState.start(
                now=self._clock(),
                timeout_seconds=self._settings.session_timeout_seconds,
                max_accepts=self._settings.session.max_auto_accepts,
            )
            self._store.save(state)
        log.info(
            "auto_accept.enabled",
            session_id=state.session_id,
            max_accepts=state.max_accepts,
            timeout_seconds=state.timeout_seconds,
        )
        return self._status(state)

    def disable_auto_accept(self) -> None:
        with self._store.transaction():
            state = self._store.load()
            self._store.save(state.deactivated())
        log.info("auto_accept.disabled", session_id=state.session_id)

    def get_session_status(self) -> SessionStatus:
        state = self._store.load()
        if state.is_expired(self._clock()):
            state = state.deactivated()
        return self._status(state)

    # ── Requests ──────────────────────────────────────────────────────────────

    def process_request(self, request: OperationRequest) -> AgentVerdict:
        """Assess a request within the current session and audit the outcome."""
        # Load, decide, audit and save under one cross-process lock. The state
        # is saved only after the audit entry is written, so a failed audit
        # write does not consume an accept.
        with self._store.transaction():
            state = self._store.load()
            bind_session(state.session_id)
            try:
                verdict, state = self._decide(state, request)
                self._audit.record(AuditEntry.create(
                    session_id=state.session_id,
                    operation=request.operation,
                    message=request.message,
                    accepted=verdict.accepted,
                    assessment=verdict.assessment,
                    reason=verdict.reason,
                ))
                self._store.save(state)
            finally:
                clear_session()

        log_fn = log.info if verdict.accepted else log.warning
        log_fn(
            "auto_accept.verdict",
            session_id=state.session_id,
            operation=request.operation,
            accepted=verdict.accepted,
            decision=verdict.assessment.decision.value,
            risk_level=verdict.assessment.risk_level.value,
            reason=verdict.reason,
        )
        return verdict

    def test_operation(self, operation: str, message: str) -> PreviewResult:
        """Preview the assessment of a request without touching the session."""
        assessment = self._assessor.assess(OperationRequest(operation=operation, message=message))
        return PreviewResult(
            would_accept=assessment.is_allowed,
            decision=assessment.decision,
            risk_level=assessment.risk_level,
            reason=assessment.reason,
        )

    def update_config(self, security: SecurityConfig) -> None:
        """Swap in new security patterns. Raises InvalidPatternError on bad ones."""
        self._assessor.update_config(security)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _decide(
        self, state: SessionState, request: OperationRequest
    ) -> tuple[AgentVerdict, SessionState]:
        assessment = self._assessor.assess(request)
        try:
            self._check_session(state)
        except SessionError as exc:
            if isinstance(exc, SessionExpiredError):
                state = state.deactivated()
            return AgentVerdict(accepted=False, assessment=assessment, reason=str(exc)), state

        if assessment.is_allowed:
            return AgentVerdict(True, assessment, assessment.reason), state.with_accept()
        return AgentVerdict(False, assessment, assessment.reason), state

    def _check_session(self, state: SessionState) -> None:
        if not state.active:
            raise SessionInactiveError("Auto-accept mode is disabled")
        if state.is_expired(self._clock()):
            raise SessionExpiredError("Auto-accept session expired")
        if state.remaining_accepts <= 0:
            raise AcceptLimitReachedError(state.max_accepts)

    def _status(self, state: SessionState) -> SessionStatus:
        return SessionStatus(
            active=state.active,
            session_id=state.session_id,
            accept_count=state.accept_count,
            max_accepts=state.max_accepts or self._settings.session.max_auto_accepts,
            remaining_accepts=state.remaining_accepts if state.active else 0,
            time_remaining=state.time_remaining(self._clock()),
        )
