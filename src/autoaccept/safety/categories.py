"""
safety/categories.py — Operation Category Allowlist

Coarse classification of an operation string into categories, used when no
configured pattern matched a request.

    is_operation_allowed(operation, allowed_operations)
        → bool

Classification is a plain case-insensitive substring test against a fixed
keyword table; "git push origin" is a git operation, and so is anything
else that merely contains "push" or "git". The keyword lists are part of
the configuration contract and must not be changed casually.
"""

from __future__ import annotations

from typing import Iterable

# Allowlist sentinel that admits every operation.
ALL_OPERATIONS = "all"

OPERATION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "git_operations": ("git", "commit", "push", "pull", "clone", "merge"),
    "file_operations": ("read", "write", "create", "delete", "mkdir", "touch"),
    "network_operations": ("fetch", "download", "upload", "curl", "wget"),
    "system_operations": ("install", "update", "restart", "service"),
}

KNOWN_CATEGORIES: frozenset[str] = frozenset(OPERATION_CATEGORIES) | {ALL_OPERATIONS}


def is_operation_allowed(operation: str, allowed_operations: Iterable[str]) -> bool:
    """
    Decide whether an operation falls into one of the allowed categories.

    Args:
        operation:          Operation identifier, e.g. "git push origin".
        allowed_operations: Category names from configuration. May contain
                            the sentinel "all". Unknown names grant nothing.
    """
    allowed = set(allowed_operations)
    if ALL_OPERATIONS in allowed:
        return True

    op_lower = operation.lower()
    for category, keywords in OPERATION_CATEGORIES.items():
        if category not in allowed:
            continue
        if any(keyword in op_lower for keyword in keywords):
            return True
    return False


def categorize(operation: str) -> list[str]:
    """Return every category whose keywords appear in the operation."""
    op_lower = operation.lower()
    return [
        category
        for category, keywords in OPERATION_CATEGORIES.items()
        if any(keyword in op_lower for keyword in keywords)
    ]
