"""
observability/logger.py — autoaccept Structured Logger

structlog on top of stdlib logging. The rotating file under log_dir always
receives JSON; stderr optionally receives JSON or the coloured dev
renderer. stdout is never used, because `autoaccept hook` answers there.

    from autoaccept.observability.logger import get_logger, setup_logging

    setup_logging(level="DEBUG", log_dir="./data/logs")
    log = get_logger(__name__)
    log.debug("risk_assessor.check_matched", check="danger_pattern", pattern="rm -rf")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_NAME = "autoaccept.log"

# Confirmation messages can carry whole file contents.
_MAX_FIELD_CHARS = 500
_TRUNCATED_FIELDS = ("message", "operation")


def _truncate_request_fields(_logger: Any, _method: str, event_dict: dict) -> dict:
    for key in _TRUNCATED_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS:
            event_dict[key] = value[:_MAX_FIELD_CHARS] + f"... [{len(value)} chars]"
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _truncate_request_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_pre_chain(),
    )


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and the root stdlib logger. Safe to call again;
    previous handlers are replaced.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory holding autoaccept.log and its rotations.
        json_format:    Render stderr output as JSON instead of coloured text.
        console_output: Mirror log lines to stderr.
        max_bytes:      Rotate autoaccept.log past this size.
        backup_count:   Rotated files to keep.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=path / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    handlers: list[logging.Handler] = [file_handler]

    if console_output:
        stderr_handler = logging.StreamHandler(sys.stderr)
        console_renderer = (
            structlog.processors.JSONRenderer()
            if json_format
            else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
        stderr_handler.setFormatter(_formatter(console_renderer))
        handlers.append(stderr_handler)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)
    root.setLevel(numeric_level)

    structlog.configure(
        processors=_pre_chain() + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "autoaccept", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally with fields bound to every event."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial_values) if initial_values else logger


def bind_session(session_id: str) -> None:
    structlog.contextvars.bind_contextvars(session_id=session_id)


def clear_session() -> None:
    structlog.contextvars.clear_contextvars()
