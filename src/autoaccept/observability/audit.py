"""
observability/audit.py — Auto-Accept Audit Log

Append-only JSONL record of every request the auto-accept agent processed:
what was asked, what was decided, and why.

    audit = AuditLog("./data/logs/audit.jsonl")
    audit.record(AuditEntry.create(session_id, operation, message, accepted, assessment))
    for entry in audit.tail(20):
        ...
    audit.clear()
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from autoaccept.exceptions import AuditLogError
from autoaccept.observability.logger import get_logger
from autoaccept.safety.types import RiskAssessment

log = get_logger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    timestamp: str          # ISO-8601, UTC
    session_id: str
    operation: str
    message: str
    decision: str           # "accept" | "reject"
    risk_level: str
    reason: str

    @classmethod
    def create(
        cls,
        session_id: str,
        operation: str,
        message: str,
        accepted: bool,
        assessment: RiskAssessment,
        reason: str | None = None,
    ) -> "AuditEntry":
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            session_id=session_id,
            operation=operation,
            message=message,
            decision="accept" if accepted else "reject",
            risk_level=assessment.risk_level.value,
            reason=reason or assessment.reason,
        )

    @property
    def accepted(self) -> bool:
        return self.decision == "accept"


class AuditLog:
    """JSONL-backed audit log. A disabled log records and returns nothing."""

    def __init__(self, path: str | Path, enabled: bool = True):
        self._path = Path(path).expanduser()
        self._enabled = enabled
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record(self, entry: AuditEntry) -> None:
        if not self._enabled:
            return
        line = json.dumps(asdict(entry), ensure_ascii=False)
        try:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as exc:
            raise AuditLogError(f"Failed to write audit log {self._path}: {exc}") from exc

    def tail(self, limit: int = 50) -> list[AuditEntry]:
        """Return up to `limit` most recent entries, oldest first."""
        if not self._enabled or limit <= 0 or not self._path.exists():
            return []
        try:
            with self._lock:
                lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise AuditLogError(f"Failed to read audit log {self._path}: {exc}") from exc

        entries: list[AuditEntry] = []
        for lineno, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            try:
                entries.append(AuditEntry(**json.loads(raw)))
            except (json.JSONDecodeError, TypeError) as exc:
                log.warning("audit.corrupt_line", path=str(self._path), line=lineno, error=str(exc))
        return entries[-limit:]

    def clear(self) -> None:
        try:
            with self._lock:
                if self._path.exists():
                    self._path.unlink()
        except OSError as exc:
            raise AuditLogError(f"Failed to clear audit log {self._path}: {exc}") from exc
        log.info("audit.cleared", path=str(self._path))
