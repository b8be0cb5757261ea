"""
safety/risk_assessor.py — Auto-Accept Risk Assessor

Decides whether a proposed operation is auto-approved, refused, or handed
to a human.

Decision flow:
  1. Safety checks disabled?           → ALLOW / LOW
  2. First compiled check that matches the message OR the operation
     (danger → bypass → whitelist)     → check.action / check.risk_level
  3. Operation outside every allowed category
                                       → DENY / HIGH
  4. Otherwise                         → ASK / MEDIUM

Compiled state lives in an immutable snapshot that update_config() replaces
in a single assignment; assess() reads the reference once, so a concurrent
caller sees either the old check list or the new one, never a mix.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from autoaccept.observability.logger import get_logger
from autoaccept.safety import patterns as _patterns
from autoaccept.safety.categories import is_operation_allowed
from autoaccept.safety.types import (
    Decision,
    OperationRequest,
    PatternValidation,
    RiskAssessment,
    RiskLevel,
    SecurityCheck,
)

if TYPE_CHECKING:
    from autoaccept.config.settings import SecurityConfig


@dataclass(frozen=True)
class _Snapshot:
    config: "SecurityConfig"
    checks: tuple[SecurityCheck, ...]


class RiskAssessor:
    """
    Evaluates operation requests against configured patterns.

    Usage:
        assessor = RiskAssessor(settings.security)
        result = assessor.assess(OperationRequest("git status", "checking status"))
        if result.is_allowed:
            ...  # auto-accept
        elif result.needs_confirmation:
            ...  # ask the user
        else:
            ...  # refuse

    Raises InvalidPatternError from the constructor if any configured
    pattern does not compile.
    """

    def __init__(self, config: "SecurityConfig", logger: Optional[Any] = None):
        self._log = logger if logger is not None else get_logger(__name__)
        self._write_lock = threading.Lock()
        self._snapshot = self._build(config)

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def config(self) -> "SecurityConfig":
        return self._snapshot.config

    @property
    def checks(self) -> tuple[SecurityCheck, ...]:
        return self._snapshot.checks

    # ── Public API ────────────────────────────────────────────────────────────

    def assess(self, request: OperationRequest) -> RiskAssessment:
        """
        Return the decision for a request. Never raises.

        Args:
            request: Operation identifier plus the confirmation message shown
                     to the user.
        """
        snapshot = self._snapshot
        message = request.message
        operation = request.operation

        if not snapshot.config.safety_checks_enabled:
            return RiskAssessment(
                decision=Decision.ALLOW,
                risk_level=RiskLevel.LOW,
                reason="Safety checks disabled",
            )

        for check in snapshot.checks:
            if check.matches(message, operation):
                self._emit(
                    "debug",
                    "risk_assessor.check_matched",
                    check=check.name.value,
                    pattern=check.source,
                    message=message,
                    operation=operation,
                )
                return RiskAssessment(
                    decision=check.action,
                    risk_level=check.risk_level,
                    reason=f"Matched {check.name.value}: {check.source}",
                    matched_check=check,
                )

        if not is_operation_allowed(operation, snapshot.config.allowed_operations):
            return RiskAssessment(
                decision=Decision.DENY,
                risk_level=RiskLevel.HIGH,
                reason=f"Operation type '{operation}' not allowed",
            )

        return RiskAssessment(
            decision=Decision.ASK,
            risk_level=RiskLevel.MEDIUM,
            reason="No specific security rule matched",
        )

    def is_operation_allowed(self, operation: str) -> bool:
        return is_operation_allowed(operation, self._snapshot.config.allowed_operations)

    def update_config(self, new_config: "SecurityConfig") -> None:
        """
        Replace the configuration and recompile every check from scratch.

        Raises:
            InvalidPatternError: if any pattern in new_config is invalid.
                                 The previous configuration stays in effect.
        """
        with self._write_lock:
            snapshot = self._build(new_config)
            self._snapshot = snapshot
        self._emit(
            "info",
            "risk_assessor.config_updated",
            checks=len(snapshot.checks),
            safety_checks_enabled=new_config.safety_checks_enabled,
        )

    def validate_pattern(self, pattern: str) -> PatternValidation:
        return _patterns.validate_pattern(pattern)

    def test_pattern(self, pattern: str, test_string: str) -> bool:
        return _patterns.test_pattern(pattern, test_string, logger=self._log)

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _build(config: "SecurityConfig") -> _Snapshot:
        checks = _patterns.compile_checks(
            config.danger_patterns,
            config.bypass_patterns,
            config.whitelist_patterns,
        )
        return _Snapshot(config=config, checks=checks)

    def _emit(self, level: str, event: str, **fields: Any) -> None:
        # A broken log sink must not change the decision being returned.
        try:
            getattr(self._log, level)(event, **fields)
        except Exception:  # noqa: BLE001
            pass
