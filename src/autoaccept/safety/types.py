"""
safety/types.py — Risk Assessment Data Models

Shared types used by the risk assessor, the auto-accept agent and the CLI.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class RiskLevel(str, Enum):
    """Coarse severity attached to every assessment."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


class CheckName(str, Enum):
    """Which configuration list a SecurityCheck was compiled from."""
    DANGER = "danger_pattern"
    BYPASS = "bypass_pattern"
    WHITELIST = "whitelist_pattern"


# ─────────────────────────────────────────────────────────────────────────────
# Checks, requests, results
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SecurityCheck:
    """A compiled rule. Checks are evaluated in order; first match wins."""
    name: CheckName
    pattern: re.Pattern
    risk_level: RiskLevel
    action: Decision

    @property
    def source(self) -> str:
        """The pattern string as written in configuration."""
        return self.pattern.pattern

    def matches(self, *texts: str) -> bool:
        return any(self.pattern.search(t) for t in texts)


@dataclass(frozen=True)
class OperationRequest:
    """A proposed operation awaiting a decision."""
    operation: str
    message: str = ""


@dataclass(frozen=True)
class RiskAssessment:
    decision: Decision
    risk_level: RiskLevel
    reason: str
    matched_check: Optional[SecurityCheck] = None

    @property
    def is_allowed(self) -> bool:
        return self.decision == Decision.ALLOW

    @property
    def needs_confirmation(self) -> bool:
        return self.decision == Decision.ASK

    @property
    def is_denied(self) -> bool:
        return self.decision == Decision.DENY


@dataclass(frozen=True)
class PatternValidation:
    valid: bool
    error: Optional[str] = None
