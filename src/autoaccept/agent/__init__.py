"""
agent/__init__.py — Auto-accept session handling
"""

from autoaccept.agent.auto_accept import AgentVerdict, AutoAcceptAgent, PreviewResult, SessionStatus
from autoaccept.agent.session import SessionState, SessionStore

__all__ = [
    "AgentVerdict",
    "AutoAcceptAgent",
    "PreviewResult",
    "SessionState",
    "SessionStatus",
    "SessionStore",
]
