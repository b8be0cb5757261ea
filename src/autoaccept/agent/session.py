"""
agent/session.py — Auto-Accept Session State

One SessionState exists per enabled auto-accept period. It carries the
accept budget and the timeout; SessionStore persists it as JSON so that
separate CLI invocations ("on", "status", "hook") share the same session.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Iterator

from autoaccept.observability.logger import get_logger

log = get_logger(__name__)


def _new_session_id() -> str:
    return f"aa_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SessionState:
    session_id: str = ""
    active: bool = False
    started_at: float = 0.0
    accept_count: int = 0
    timeout_seconds: int = 0
    max_accepts: int = 0

    @classmethod
    def start(cls, now: float, timeout_seconds: int, max_accepts: int) -> "SessionState":
        return cls(
            session_id=_new_session_id(),
            active=True,
            started_at=now,
            accept_count=0,
            timeout_seconds=timeout_seconds,
            max_accepts=max_accepts,
        )

    @property
    def remaining_accepts(self) -> int:
        return max(0, self.max_accepts - self.accept_count)

    def time_remaining(self, now: float) -> int:
        """Whole seconds left before the session expires (0 when inactive)."""
        if not self.active:
            return 0
        return max(0, int(self.started_at + self.timeout_seconds - now))

    def is_expired(self, now: float) -> bool:
        return self.active and now >= self.started_at + self.timeout_seconds

    def with_accept(self) -> "SessionState":
        return replace(self, accept_count=self.accept_count + 1)

    def deactivated(self) -> "SessionState":
        return replace(self, active=False)


class SessionStore:
    """
    JSON file store for the current session.

    A missing or unreadable file yields an inactive default state rather
    than an error, so a fresh install simply reports auto-accept as off.

    Several hook processes can share one store. Callers that read, modify
    and write the state hold transaction(), an exclusive flock on a sibling
    ".lock" file, for the whole cycle.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()
        self._lock_path = self._path.with_name(self._path.name + ".lock")
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._lock_path, "a", encoding="utf-8") as handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def load(self) -> SessionState:
        with self._lock:
            if not self._path.exists():
                return SessionState()
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
                return SessionState(**data)
            except (OSError, json.JSONDecodeError, TypeError) as exc:
                log.warning("session_store.unreadable", path=str(self._path), error=str(exc))
                return SessionState()

    def save(self, state: SessionState) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # Unique temp name per writer; os.replace makes the swap atomic.
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=self._path.name + ".",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                json.dump(asdict(state), tmp, indent=2)
            try:
                os.replace(tmp.name, self._path)
            except OSError:
                Path(tmp.name).unlink(missing_ok=True)
                raise
