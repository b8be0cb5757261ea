"""
exceptions.py — autoaccept Unified Error Hierarchy

All autoaccept-specific exceptions live here. Every layer raises typed
subclasses of AutoAcceptError — never bare Exception.

Import from here, not from individual modules:
    from autoaccept.exceptions import InvalidPatternError, SessionExpiredError

Hierarchy:
    AutoAcceptError
    ├── SafetyError
    │   └── InvalidPatternError
    ├── SessionError
    │   ├── SessionInactiveError
    │   ├── SessionExpiredError
    │   └── AcceptLimitReachedError
    └── AuditLogError
"""

from __future__ import annotations

from dataclasses import dataclass


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class AutoAcceptError(Exception):
    """Base class for all autoaccept exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Safety layer
# ─────────────────────────────────────────────────────────────────────────────

class SafetyError(AutoAcceptError):
    """Base for all risk assessment errors."""


@dataclass(frozen=True)
class PatternIssue:
    """One configured pattern that failed to compile."""
    source: str          # "danger_patterns", "bypass_patterns", ...
    pattern: str
    error: str

    def __str__(self) -> str:
        return f"{self.source}: '{self.pattern}' — {self.error}"


class InvalidPatternError(SafetyError):
    """One or more configured patterns are not valid regular expressions."""

    def __init__(self, issues: list[PatternIssue], message: str = "") -> None:
        self.issues = list(issues)
        first = self.issues[0] if self.issues else None
        self.pattern = first.pattern if first else ""
        self.error = first.error if first else ""
        if not message:
            lines = "; ".join(str(i) for i in self.issues)
            message = f"Invalid pattern(s) in configuration: {lines}"
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────────────
# Session layer
# ─────────────────────────────────────────────────────────────────────────────

class SessionError(AutoAcceptError):
    """Base for auto-accept session errors."""


class SessionInactiveError(SessionError):
    """Auto-accept mode is not enabled."""


class SessionExpiredError(SessionError):
    """The auto-accept session ran past its timeout."""


class AcceptLimitReachedError(SessionError):
    """The session used up its maximum number of auto-accepts."""

    def __init__(self, limit: int, message: str = "") -> None:
        self.limit = limit
        super().__init__(message or f"Maximum auto-accepts reached ({limit})")


# ─────────────────────────────────────────────────────────────────────────────
# Audit layer
# ─────────────────────────────────────────────────────────────────────────────

class AuditLogError(AutoAcceptError):
    """An audit log read or write failed."""


__all__ = [
    "AutoAcceptError",
    # Safety
    "SafetyError",
    "PatternIssue",
    "InvalidPatternError",
    # Session
    "SessionError",
    "SessionInactiveError",
    "SessionExpiredError",
    "AcceptLimitReachedError",
    # Audit
    "AuditLogError",
]
