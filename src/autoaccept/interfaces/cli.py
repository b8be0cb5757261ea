"""
interfaces/cli.py — autoaccept Command Line Interface

Subcommands for managing auto-accept mode, its configuration and its audit
trail. Uses rich for terminal rendering and confirmation prompts.

Commands:
  on [-f]                      Enable auto-accept (asks first unless --force)
  off                          Disable auto-accept
  status                       Show session and configuration summary
  config --show|--edit|--reset|--validate
  logs [-n N] [--clear]        Show or clear the audit log
  test <operation> <message>   Preview the decision for a request
  pattern validate <pattern>   Check that a pattern compiles
  pattern test <pattern> <text>
  hook                         Answer a PreToolUse hook payload read from stdin
                               (allow when auto-accepted, otherwise ask)

Usage:
    autoaccept on --force
    autoaccept test "git push origin" "Push to main?"
    echo '{"tool_name": "Bash", "tool_input": {"command": "git status"}}' | autoaccept hook
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from autoaccept.agent.auto_accept import AutoAcceptAgent
from autoaccept.config.settings import (
    ConfigError,
    SecurityConfig,
    SessionConfig,
    Settings,
    reset_settings,
    save_settings,
)
from autoaccept.exceptions import AuditLogError, InvalidPatternError
from autoaccept.observability.logger import get_logger
from autoaccept.safety.categories import OPERATION_CATEGORIES, categorize
from autoaccept.safety.patterns import validate_pattern
from autoaccept.safety.patterns import test_pattern as preview_pattern
from autoaccept.safety.types import OperationRequest, RiskLevel

log = get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────────

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2

_RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}

# Tool input keys that name the target of a non-shell tool call.
_TARGET_KEYS = ("file_path", "path", "notebook_path", "url", "pattern")


def format_risk(level: str | RiskLevel) -> str:
    try:
        risk = RiskLevel(level)
    except ValueError:
        return "[dim]UNKNOWN[/dim]"
    style = _RISK_STYLES[risk]
    return f"[{style}]{risk.value.upper()}[/{style}]"


def request_from_hook(payload: dict[str, Any]) -> OperationRequest:
    """
    Map a PreToolUse hook payload onto an operation request.

    Bash calls use the command itself as the operation so that category
    keywords ("git", "curl", ...) apply to it. Other tools use the tool name
    plus their target, with the full input serialised as the message.
    """
    tool_name = str(payload.get("tool_name", ""))
    tool_input = payload.get("tool_input") or {}
    if not isinstance(tool_input, dict):
        tool_input = {"value": tool_input}

    if tool_name == "Bash":
        command = str(tool_input.get("command", ""))
        return OperationRequest(
            operation=command,
            message=str(tool_input.get("description") or command),
        )

    target = next(
        (str(tool_input[k]) for k in _TARGET_KEYS if tool_input.get(k)),
        "",
    )
    operation = f"{tool_name} {target}".strip()
    return OperationRequest(
        operation=operation,
        message=json.dumps(tool_input, sort_keys=True, ensure_ascii=False),
    )


class CLIInterface:
    """Runs one parsed CLI command against the loaded settings."""

    def __init__(
        self,
        settings: Settings,
        config_path: Optional[str | Path] = None,
        console: Optional[Console] = None,
        agent: Optional[AutoAcceptAgent] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self._settings = settings
        self._config_path = config_path
        self._console = console or Console()
        self._agent = agent
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout

    @property
    def agent(self) -> AutoAcceptAgent:
        # Built on first use so that `config --reset` still works when the
        # current configuration holds an invalid pattern.
        if self._agent is None:
            self._agent = AutoAcceptAgent(self._settings)
        return self._agent

    def dispatch(self, args: argparse.Namespace) -> int:
        handlers = {
            "on": lambda: self._cmd_on(args.force),
            "off": self._cmd_off,
            "status": self._cmd_status,
            "config": lambda: self._cmd_config(args),
            "logs": lambda: self._cmd_logs(args.lines, args.clear),
            "test": lambda: self._cmd_test(args.operation, args.message),
            "pattern": lambda: self._cmd_pattern(args),
            "hook": self._cmd_hook,
        }
        handler = handlers.get(args.command)
        if handler is None:
            self._console.print("[yellow]No command given. Use --help to list commands.[/yellow]")
            return EXIT_ERROR

        try:
            return handler()
        except InvalidPatternError as exc:
            self._print_pattern_issues(exc)
            return EXIT_CONFIG
        except AuditLogError as exc:
            log.error("cli.audit_failed", command=args.command, error=str(exc))
            self._console.print(f"[red]Audit log error:[/red] {exc}")
            return EXIT_ERROR

    # ── on / off / status ─────────────────────────────────────────────────────

    def _cmd_on(self, force: bool = False) -> int:
        if not force:
            confirmed = Confirm.ask(
                "Enable auto-accept mode? This will automatically accept certain operations.",
                default=False,
                console=self._console,
            )
            if not confirmed:
                self._console.print("[yellow]Auto-accept mode not enabled.[/yellow]")
                return EXIT_OK

        status = self.agent.enable_auto_accept()
        self._console.print("[green]✓ Auto-accept mode enabled[/green]")
        self._console.print(f"[blue]Session ID: {status.session_id}[/blue]")
        self._console.print(f"[blue]Max accepts: {status.remaining_accepts}[/blue]")
        self._console.print(f"[blue]Session timeout: {status.time_remaining // 60} minutes[/blue]")
        return EXIT_OK

    def _cmd_off(self) -> int:
        self.agent.disable_auto_accept()
        self._console.print("[green]✓ Auto-accept mode disabled[/green]")
        return EXIT_OK

    def _cmd_status(self) -> int:
        status = self.agent.get_session_status()
        security = self._settings.security

        table = Table(title="Auto-Accept Status", box=box.ROUNDED, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Mode", "[green]ENABLED[/green]" if status.active else "[red]DISABLED[/red]")
        table.add_row("Session ID", status.session_id or "—")
        table.add_row("Accepts used", f"{status.accept_count}/{status.max_accepts}")
        minutes, seconds = divmod(status.time_remaining, 60)
        table.add_row("Time remaining", f"{minutes}m {seconds}s")
        table.add_row("Allowed operations", ", ".join(security.allowed_operations) or "—")
        table.add_row(
            "Safety checks",
            "[green]ENABLED[/green]" if security.safety_checks_enabled else "[red]DISABLED[/red]",
        )
        table.add_row(
            "Patterns",
            f"{len(security.danger_patterns)} danger · "
            f"{len(security.bypass_patterns)} bypass · "
            f"{len(security.whitelist_patterns)} whitelist",
        )
        self._console.print(table)
        return EXIT_OK

    # ── config ────────────────────────────────────────────────────────────────

    def _cmd_config(self, args: argparse.Namespace) -> int:
        if args.show:
            return self._config_show()
        if args.edit:
            return self._config_edit()
        if args.reset:
            return self._config_reset()
        if args.validate:
            return self._config_validate()
        self._console.print(
            "[yellow]Use --show, --edit, --reset, or --validate with the config command[/yellow]"
        )
        return EXIT_ERROR

    def _config_show(self) -> int:
        data = self._settings.model_dump(mode="json", include={"security", "session", "audit", "logging"})
        self._console.print(Panel(
            yaml.safe_dump(data, sort_keys=False, default_flow_style=False).rstrip(),
            title="Configuration",
            border_style="dim",
        ))
        return EXIT_OK

    def _config_edit(self) -> int:
        session = self._settings.session
        security = self._settings.security

        timeout = self._ask_positive_int("Session timeout (minutes)", session.session_timeout_minutes)
        max_accepts = self._ask_positive_int("Maximum auto-accepts per session", session.max_auto_accepts)

        choices = ", ".join([*OPERATION_CATEGORIES, "all"])
        raw_ops = Prompt.ask(
            f"Allowed operation types ({choices})",
            default=",".join(security.allowed_operations),
            console=self._console,
        )
        allowed = tuple(op.strip() for op in raw_ops.split(",") if op.strip())
        safety = Confirm.ask(
            "Enable safety checks",
            default=security.safety_checks_enabled,
            console=self._console,
        )

        try:
            new_security = SecurityConfig.model_validate({
                **security.model_dump(),
                "allowed_operations": allowed,
                "safety_checks_enabled": safety,
            })
            new_session = SessionConfig.model_validate({
                **session.model_dump(),
                "session_timeout_minutes": timeout,
                "max_auto_accepts": max_accepts,
            })
        except ValidationError as exc:
            for err in exc.errors():
                self._console.print(f"[red]✗ {err['msg']}[/red]")
            return EXIT_CONFIG

        self.agent.update_config(new_security)
        self._settings = self._settings.model_copy(
            update={"security": new_security, "session": new_session}
        )
        path = save_settings(self._settings, self._config_path)
        log.info("cli.config_updated", path=str(path))
        self._console.print(f"[green]✓ Configuration updated[/green] ({path})")
        return EXIT_OK

    def _config_reset(self) -> int:
        if not Confirm.ask("Reset configuration to defaults?", default=False, console=self._console):
            return EXIT_OK
        self._settings = reset_settings(self._config_path)
        if self._agent is not None:
            self._agent.update_config(self._settings.security)
        self._console.print("[green]✓ Configuration reset to defaults[/green]")
        return EXIT_OK

    def _config_validate(self) -> int:
        security = self._settings.security
        table = Table(title="Pattern Validation", box=box.SIMPLE)
        table.add_column("List", style="cyan")
        table.add_column("Pattern")
        table.add_column("Status")

        invalid = 0
        for name in ("danger_patterns", "bypass_patterns", "whitelist_patterns"):
            for pattern in getattr(security, name):
                result = validate_pattern(pattern)
                if result.valid:
                    status = "[green]OK[/green]"
                else:
                    invalid += 1
                    status = f"[red]{escape(result.error or '')}[/red]"
                table.add_row(name, escape(pattern), status)
        self._console.print(table)

        try:
            self._settings.validate_all()
        except ConfigError as exc:
            self._console.print(f"[red]{escape(str(exc).strip())}[/red]")
            return EXIT_CONFIG
        if invalid:
            return EXIT_CONFIG
        self._console.print("[green]✓ Configuration is valid[/green]")
        return EXIT_OK

    # ── logs ──────────────────────────────────────────────────────────────────

    def _cmd_logs(self, lines: int = 50, clear: bool = False) -> int:
        audit = self.agent.audit
        if clear:
            if Confirm.ask("Clear all audit logs?", default=False, console=self._console):
                audit.clear()
                self._console.print("[green]✓ Audit logs cleared[/green]")
            return EXIT_OK

        entries = audit.tail(lines)
        if not entries:
            self._console.print("[yellow]No audit logs found[/yellow]")
            return EXIT_OK

        self._console.print(f"\n[bold]Audit Logs (last {len(entries)} entries)[/bold]")
        self._console.rule(style="dim")
        for entry in entries:
            decision = "[green]ACCEPT[/green]" if entry.accepted else "[red]REJECT[/red]"
            self._console.print(
                f"[dim]{entry.timestamp}[/dim] {decision} {format_risk(entry.risk_level)} "
                f"[cyan]{escape(entry.operation)}[/cyan]",
                highlight=False,
            )
            message = entry.message if len(entry.message) <= 60 else entry.message[:60] + "..."
            self._console.print(f"  [dim]Message:[/dim] {escape(message)}", highlight=False)
            self._console.print(f"  [dim]Reason:[/dim] {escape(entry.reason)}\n", highlight=False)
        return EXIT_OK

    # ── test / pattern ────────────────────────────────────────────────────────

    def _cmd_test(self, operation: str, message: str) -> int:
        result = self.agent.test_operation(operation, message)

        table = Table(title="Test Result", box=box.ROUNDED, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Operation", escape(operation))
        table.add_row("Message", escape(message))
        table.add_row("Categories", ", ".join(categorize(operation)) or "—")
        table.add_row("Decision", result.decision.value.upper())
        table.add_row("Would accept", "[green]YES[/green]" if result.would_accept else "[red]NO[/red]")
        table.add_row("Risk level", format_risk(result.risk_level))
        table.add_row("Reason", escape(result.reason))
        self._console.print(table)
        return EXIT_OK

    def _cmd_pattern(self, args: argparse.Namespace) -> int:
        result = validate_pattern(args.pattern)
        if not result.valid:
            self._console.print(f"[red]✗ Invalid pattern:[/red] {escape(result.error or '')}")
            return EXIT_ERROR

        if args.pattern_command == "validate":
            self._console.print(f"[green]✓ Valid pattern:[/green] {escape(args.pattern)}")
            return EXIT_OK

        if preview_pattern(args.pattern, args.text):
            self._console.print("[green]MATCH[/green]")
        else:
            self._console.print("[yellow]NO MATCH[/yellow]")
        return EXIT_OK

    # ── hook ──────────────────────────────────────────────────────────────────

    def _cmd_hook(self) -> int:
        try:
            payload = json.load(self._stdin)
        except json.JSONDecodeError as exc:
            log.error("hook.invalid_payload", error=str(exc))
            print(f"autoaccept hook: invalid JSON payload: {exc}", file=sys.stderr)
            return EXIT_ERROR
        if not isinstance(payload, dict):
            print("autoaccept hook: payload must be a JSON object", file=sys.stderr)
            return EXIT_ERROR

        # stdout carries only the hook response; every error goes to stderr.
        try:
            verdict = self.agent.process_request(request_from_hook(payload))
        except (InvalidPatternError, AuditLogError) as exc:
            log.error("hook.failed", error=str(exc))
            print(f"autoaccept hook: {exc}", file=sys.stderr)
            return EXIT_ERROR

        # Anything not auto-accepted goes back to the human, including
        # assessments that came out as deny.
        permission = "allow" if verdict.accepted else "ask"

        print(
            json.dumps({
                "hookSpecificOutput": {
                    "hookEventName": payload.get("hook_event_name", "PreToolUse"),
                    "permissionDecision": permission,
                    "permissionDecisionReason": f"[autoaccept] {verdict.reason}",
                }
            }),
            file=self._stdout,
        )
        return EXIT_OK

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _ask_positive_int(self, prompt: str, default: int) -> int:
        while True:
            value = IntPrompt.ask(prompt, default=default, console=self._console)
            if value > 0:
                return value
            self._console.print("[red]Must be greater than 0[/red]")

    def _print_pattern_issues(self, exc: InvalidPatternError) -> None:
        self._console.print("[red]✗ Configuration contains invalid patterns:[/red]")
        for issue in exc.issues:
            self._console.print(f"  • {escape(str(issue))}", highlight=False)


def run_command(
    args: argparse.Namespace,
    settings: Settings,
    console: Optional[Console] = None,
) -> int:
    """Entry point called from main.py."""
    cli = CLIInterface(settings=settings, config_path=args.config, console=console)
    log.debug("cli.command", command=args.command)
    return cli.dispatch(args)
