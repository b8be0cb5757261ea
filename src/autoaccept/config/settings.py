"""
config/settings.py — autoaccept Runtime Settings

Merges config.yaml (patterns, limits, logging) with environment variables.
Pydantic-powered — all fields are validated and typed.

  - SecurityConfig is frozen: the risk assessor compiles a snapshot of it and
    relies on it never changing underneath.
  - allowed_operations rejects unknown category names at parse time
  - pattern lists reject empty strings (an empty pattern matches everything)
  - validate_all() performs full startup validation, including compiling
    every pattern, and raises ConfigError listing every problem found
  - load_settings() respects AUTOACCEPT_CONFIG as a fallback when no
    explicit config_path argument is given
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from autoaccept.safety.categories import KNOWN_CATEGORIES
from autoaccept.safety.patterns import find_invalid_patterns


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class SecurityConfig(BaseModel):
    """Pattern lists and toggles consumed by the risk assessor."""

    model_config = ConfigDict(frozen=True)

    danger_patterns: tuple[str, ...] = (
        r"rm\s+-rf",
        r"\bsudo\b",
        r"git\s+push\s+.*--force",
        r"drop\s+(table|database)",
        r"\bmkfs\b",
        r"\bdd\s+if=",
        r"chmod\s+777",
    )
    bypass_patterns: tuple[str, ...] = ()
    whitelist_patterns: tuple[str, ...] = (
        r"^git status$",
        r"^git diff",
        r"^git log",
    )
    allowed_operations: tuple[str, ...] = ("git_operations", "file_operations")
    safety_checks_enabled: bool = True

    @field_validator("allowed_operations")
    @classmethod
    def _known_categories(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        bad = [c for c in v if c not in KNOWN_CATEGORIES]
        if bad:
            raise ValueError(
                f"security.allowed_operations has unknown categories: {bad}. "
                f"Valid values: {sorted(KNOWN_CATEGORIES)}"
            )
        return v

    @field_validator("danger_patterns", "bypass_patterns", "whitelist_patterns")
    @classmethod
    def _no_empty_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(p == "" for p in v):
            raise ValueError(
                "pattern lists may not contain an empty string — it matches "
                "every request. Remove it."
            )
        return v


class SessionConfig(BaseModel):
    session_timeout_minutes: int = 30
    max_auto_accepts: int = 50
    state_path: str = "./data/session.json"

    @field_validator("session_timeout_minutes")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("session.session_timeout_minutes must be >= 1")
        return v

    @field_validator("max_auto_accepts")
    @classmethod
    def _positive_accepts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("session.max_auto_accepts must be >= 1")
        return v


class AuditConfig(BaseModel):
    enabled: bool = True
    path: str = "./data/logs/audit.jsonl"


class LoggingConfig(BaseModel):
    """Where autoaccept.log goes and whether it is mirrored to stderr."""

    level: str = "INFO"
    log_dir: str = "./data/logs"
    console_output: bool = False      # stdout belongs to the hook response
    json_format: bool = True          # stderr rendering only; the file is always JSON
    max_file_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=0)

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if v.upper() in _VALID_LOG_LEVELS:
            return v.upper()
        raise ValueError(
            f"logging.level must be one of {sorted(_VALID_LOG_LEVELS)}, got '{v}'"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

_KNOWN_SECTIONS = {"security", "session", "audit", "logging"}


class Settings(BaseSettings):
    """
    autoaccept runtime settings.

    Priority (highest to lowest):
      1. Environment variables (AUTOACCEPT_SESSION__MAX_AUTO_ACCEPTS=10)
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTOACCEPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    security: SecurityConfig = Field(default_factory=SecurityConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; env must still win over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    # -- Convenience properties ----------------------------------------------

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    @property
    def session_timeout_seconds(self) -> int:
        return self.session.session_timeout_minutes * 60

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches what they can't see: patterns that are not valid
        regular expressions and file paths that collide.
        """
        errors: list[str] = []

        # ── Every pattern must compile ───────────────────────────────────────
        for issue in find_invalid_patterns(
            self.security.danger_patterns,
            self.security.bypass_patterns,
            self.security.whitelist_patterns,
        ):
            errors.append(
                f"security.{issue.source} contains an invalid regular "
                f"expression '{issue.pattern}': {issue.error}"
            )

        # ── State and audit files must not collide ───────────────────────────
        state = Path(self.session.state_path).expanduser().resolve()
        audit = Path(self.audit.path).expanduser().resolve()
        if state == audit:
            errors.append(
                f"session.state_path and audit.path both point to '{state}'. "
                "Use separate files."
            )

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nautoaccept configuration is invalid — {len(errors)} "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in your config file and retry.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = threading.Lock()


def _read_sections(path: Path) -> dict[str, Any]:
    """Known top-level sections of a YAML config file; {} if it doesn't exist."""
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")
    return {k: v for k, v in data.items() if k in _KNOWN_SECTIONS}


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """--config wins, then $AUTOACCEPT_CONFIG, then config/config.yaml."""
    if config_path is not None:
        return Path(config_path)
    from_env = os.environ.get("AUTOACCEPT_CONFIG")
    return Path(from_env) if from_env else DEFAULT_CONFIG_PATH


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build Settings from the YAML file plus environment overrides and make
    it the instance get_settings() returns.

    Raises:
        pydantic.ValidationError: a field holds an invalid value
        ConfigError:              the file is not a YAML mapping
        yaml.YAMLError:           the file is not valid YAML
    """
    global _singleton
    instance = Settings(**_read_sections(resolve_config_path(config_path)))
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use.
    """
    with _singleton_lock:
        instance = _singleton
    if instance is not None:
        return instance
    return load_settings()


def save_settings(settings: Settings, config_path: str | Path | None = None) -> Path:
    """Write the structured sections of settings back to the YAML file."""
    path = resolve_config_path(config_path)
    data: dict[str, Any] = settings.model_dump(mode="json", include=_KNOWN_SECTIONS)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
    return path


def reset_settings(config_path: str | Path | None = None) -> Settings:
    """Overwrite the config file with built-in defaults and return them."""
    defaults = Settings.model_construct(
        security=SecurityConfig(),
        session=SessionConfig(),
        audit=AuditConfig(),
        logging=LoggingConfig(),
    )
    save_settings(defaults, config_path)
    return load_settings(config_path)
