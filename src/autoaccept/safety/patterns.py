"""
safety/patterns.py — Pattern Compilation & Validation

Helpers shared by the risk assessor, the settings validator and the CLI:

    validate_pattern(pattern)            → PatternValidation
    test_pattern(pattern, test_string)   → bool   (never raises)
    find_invalid_patterns(...)           → list[PatternIssue]
    compile_checks(...)                  → tuple[SecurityCheck, ...]

Every pattern is a Python regular expression matched with re.search and
re.IGNORECASE, so "DELETE" matches "please delete this".
"""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from autoaccept.exceptions import InvalidPatternError, PatternIssue
from autoaccept.observability.logger import get_logger
from autoaccept.safety.types import (
    CheckName,
    Decision,
    PatternValidation,
    RiskLevel,
    SecurityCheck,
)

log = get_logger(__name__)

# Compilation order is the evaluation order: danger → bypass → whitelist.
# Each entry: (config field, check name, risk level, action)
CHECK_SOURCES: tuple[tuple[str, CheckName, RiskLevel, Decision], ...] = (
    ("danger_patterns", CheckName.DANGER, RiskLevel.HIGH, Decision.DENY),
    ("bypass_patterns", CheckName.BYPASS, RiskLevel.LOW, Decision.ALLOW),
    ("whitelist_patterns", CheckName.WHITELIST, RiskLevel.MEDIUM, Decision.ALLOW),
)

# re.compile raises OverflowError for huge repeat counts and RecursionError
# for very deep nesting, not only re.error.
_COMPILE_ERRORS = (re.error, OverflowError, RecursionError)


def validate_pattern(pattern: str) -> PatternValidation:
    """Check that a pattern string compiles as a regular expression."""
    try:
        re.compile(pattern)
    except _COMPILE_ERRORS as exc:
        return PatternValidation(valid=False, error=str(exc) or "Invalid regex pattern")
    return PatternValidation(valid=True)


def test_pattern(pattern: str, test_string: str, logger: Optional[Any] = None) -> bool:
    """
    Preview whether a pattern matches a sample string.

    An invalid pattern yields False and an error log event instead of
    raising, so configuration editors can call this on raw user input.
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except _COMPILE_ERRORS as exc:
        try:
            (logger or log).error("pattern.test_failed", pattern=pattern, error=str(exc))
        except Exception:  # noqa: BLE001
            pass
        return False
    return regex.search(test_string) is not None


def find_invalid_patterns(
    danger_patterns: Sequence[str],
    bypass_patterns: Sequence[str],
    whitelist_patterns: Sequence[str],
) -> list[PatternIssue]:
    """Run validate_pattern over all three lists and collect every failure."""
    lists = {
        "danger_patterns": danger_patterns,
        "bypass_patterns": bypass_patterns,
        "whitelist_patterns": whitelist_patterns,
    }
    issues: list[PatternIssue] = []
    for source, patterns in lists.items():
        for pattern in patterns:
            result = validate_pattern(pattern)
            if not result.valid:
                issues.append(PatternIssue(source=source, pattern=pattern, error=result.error or ""))
    return issues


def compile_checks(
    danger_patterns: Sequence[str],
    bypass_patterns: Sequence[str],
    whitelist_patterns: Sequence[str],
) -> tuple[SecurityCheck, ...]:
    """
    Compile the three pattern lists into an ordered tuple of checks.

    Raises:
        InvalidPatternError: listing every pattern that failed to compile.
                             Nothing is compiled when any pattern is bad.
    """
    issues = find_invalid_patterns(danger_patterns, bypass_patterns, whitelist_patterns)
    if issues:
        raise InvalidPatternError(issues)

    lists = {
        "danger_patterns": danger_patterns,
        "bypass_patterns": bypass_patterns,
        "whitelist_patterns": whitelist_patterns,
    }
    checks: list[SecurityCheck] = []
    for field_name, name, risk_level, action in CHECK_SOURCES:
        for pattern in lists[field_name]:
            checks.append(SecurityCheck(
                name=name,
                pattern=re.compile(pattern, re.IGNORECASE),
                risk_level=risk_level,
                action=action,
            ))
    return tuple(checks)
