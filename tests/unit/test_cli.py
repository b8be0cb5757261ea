"""
tests/unit/test_cli.py — CLI Interface Unit Tests

Tests CLIInterface command dispatch and rendering, the PreToolUse hook
bridge, and the main() entry point. Prompts are patched; console output is
captured from a rich Console writing to a StringIO.

Run with:
    pytest tests/unit/test_cli.py -v
"""

from __future__ import annotations

import json
from io import StringIO

import pytest
import yaml
from rich.console import Console

from autoaccept.agent.auto_accept import AutoAcceptAgent
from autoaccept.config.settings import Settings, load_settings
from autoaccept.interfaces.cli import (
    EXIT_CONFIG,
    EXIT_ERROR,
    EXIT_OK,
    CLIInterface,
    request_from_hook,
)
from autoaccept.main import build_parser, main
from autoaccept.observability.audit import AuditLog


# ── Helpers ───────────────────────────────────────────────────────────────────


def make_settings(tmp_path, **security) -> Settings:
    values = {
        "danger_patterns": ["rm -rf"],
        "bypass_patterns": [],
        "whitelist_patterns": ["^git status$"],
        "allowed_operations": ["git_operations"],
    }
    values.update(security)
    return Settings(
        security=values,
        session={
            "max_auto_accepts": 5,
            "state_path": str(tmp_path / "session.json"),
        },
        audit={"path": str(tmp_path / "audit.jsonl")},
    )


class Harness:
    def __init__(
        self,
        tmp_path,
        settings: Settings | None = None,
        stdin: str = "",
        agent: AutoAcceptAgent | None = None,
    ):
        self.settings = settings or make_settings(tmp_path)
        self.config_path = tmp_path / "config.yaml"
        self.buffer = StringIO()
        self.stdout = StringIO()
        self.cli = CLIInterface(
            settings=self.settings,
            config_path=self.config_path,
            console=Console(file=self.buffer, width=120),
            agent=agent,
            stdin=StringIO(stdin),
            stdout=self.stdout,
        )

    def run(self, *argv: str) -> int:
        return self.cli.dispatch(build_parser().parse_args(list(argv)))

    @property
    def output(self) -> str:
        return self.buffer.getvalue()

    def hook_output(self) -> dict:
        return json.loads(self.stdout.getvalue())["hookSpecificOutput"]


@pytest.fixture
def harness(tmp_path):
    return Harness(tmp_path)


@pytest.fixture
def confirm_yes(monkeypatch):
    monkeypatch.setattr("autoaccept.interfaces.cli.Confirm.ask", lambda *a, **k: True)


@pytest.fixture
def confirm_no(monkeypatch):
    monkeypatch.setattr("autoaccept.interfaces.cli.Confirm.ask", lambda *a, **k: False)


# ── on / off / status ─────────────────────────────────────────────────────────


class TestSessionCommands:
    def test_on_force(self, harness):
        assert harness.run("on", "--force") == EXIT_OK
        assert "Auto-accept mode enabled" in harness.output
        assert "Max accepts: 5" in harness.output
        assert harness.cli.agent.get_session_status().active

    def test_on_declined(self, harness, confirm_no):
        assert harness.run("on") == EXIT_OK
        assert "Auto-accept mode not enabled." in harness.output
        assert not harness.cli.agent.get_session_status().active

    def test_on_confirmed(self, harness, confirm_yes):
        assert harness.run("on") == EXIT_OK
        assert harness.cli.agent.get_session_status().active

    def test_off(self, harness):
        harness.run("on", "-f")
        assert harness.run("off") == EXIT_OK
        assert "Auto-accept mode disabled" in harness.output
        assert not harness.cli.agent.get_session_status().active

    def test_status_disabled(self, harness):
        assert harness.run("status") == EXIT_OK
        assert "DISABLED" in harness.output
        assert "git_operations" in harness.output

    def test_status_enabled(self, harness):
        harness.run("on", "-f")
        harness.run("status")
        assert "0/5" in harness.output
        assert harness.cli.agent.get_session_status().session_id in harness.output


# ── test / pattern ────────────────────────────────────────────────────────────


class TestPreviewCommands:
    def test_test_whitelisted(self, harness):
        assert harness.run("test", "git status", "checking status") == EXIT_OK
        out = harness.output
        assert "ALLOW" in out
        assert "YES" in out
        assert "MEDIUM" in out
        assert "Matched whitelist_pattern: ^git status$" in out

    def test_test_unmatched_in_category(self, harness):
        harness.run("test", "git push origin", "Push to main?")
        assert "ASK" in harness.output
        assert "NO" in harness.output
        assert "No specific security rule matched" in harness.output

    def test_test_does_not_consume_budget(self, harness):
        harness.run("on", "-f")
        harness.run("test", "git status", "checking status")
        assert harness.cli.agent.get_session_status().accept_count == 0

    def test_pattern_validate(self, harness):
        assert harness.run("pattern", "validate", "^git") == EXIT_OK
        assert "Valid pattern" in harness.output

    def test_pattern_validate_invalid(self, harness):
        assert harness.run("pattern", "validate", "[") == EXIT_ERROR
        assert "Invalid pattern" in harness.output

    def test_pattern_validate_oversized_repeat(self, harness):
        assert harness.run("pattern", "validate", "a{4294967296}") == EXIT_ERROR
        assert "Invalid pattern" in harness.output

    def test_pattern_test_oversized_repeat(self, harness):
        assert harness.run("pattern", "test", "a{4294967296}", "aaa") == EXIT_ERROR

    def test_pattern_match(self, harness):
        harness.run("pattern", "test", "^GIT", "git status")
        assert "MATCH" in harness.output
        assert "NO MATCH" not in harness.output

    def test_pattern_no_match(self, harness):
        harness.run("pattern", "test", "[a-z]+$", "123")
        assert "NO MATCH" in harness.output


# ── config ────────────────────────────────────────────────────────────────────


class TestConfigCommand:
    def test_requires_an_action(self, harness):
        assert harness.run("config") == EXIT_ERROR

    def test_show(self, harness):
        assert harness.run("config", "--show") == EXIT_OK
        assert "danger_patterns" in harness.output
        assert "max_auto_accepts: 5" in harness.output

    def test_validate_ok(self, harness):
        assert harness.run("config", "--validate") == EXIT_OK
        assert "Configuration is valid" in harness.output

    def test_validate_reports_bad_pattern(self, tmp_path):
        h = Harness(tmp_path, settings=make_settings(tmp_path, bypass_patterns=["(npm"]))
        assert h.run("config", "--validate") == EXIT_CONFIG
        assert "security.bypass_patterns" in h.output

    def test_validate_reports_oversized_repeat(self, tmp_path):
        h = Harness(tmp_path, settings=make_settings(tmp_path, danger_patterns=["a{4294967296}"]))
        assert h.run("config", "--validate") == EXIT_CONFIG
        assert "security.danger_patterns" in h.output

    def test_edit(self, harness, monkeypatch):
        ints = iter([15, 3])
        monkeypatch.setattr("autoaccept.interfaces.cli.IntPrompt.ask", lambda *a, **k: next(ints))
        monkeypatch.setattr(
            "autoaccept.interfaces.cli.Prompt.ask",
            lambda *a, **k: "git_operations, network_operations",
        )
        monkeypatch.setattr("autoaccept.interfaces.cli.Confirm.ask", lambda *a, **k: False)

        assert harness.run("config", "--edit") == EXIT_OK

        saved = load_settings(harness.config_path)
        assert saved.session.session_timeout_minutes == 15
        assert saved.session.max_auto_accepts == 3
        assert saved.security.allowed_operations == ("git_operations", "network_operations")
        assert saved.security.safety_checks_enabled is False
        # the running agent picks up the new patterns immediately
        assert harness.cli.agent.assessor.is_operation_allowed("curl x")

    def test_edit_rejects_unknown_category(self, harness, monkeypatch):
        ints = iter([30, 50])
        monkeypatch.setattr("autoaccept.interfaces.cli.IntPrompt.ask", lambda *a, **k: next(ints))
        monkeypatch.setattr("autoaccept.interfaces.cli.Prompt.ask", lambda *a, **k: "bogus_operations")
        monkeypatch.setattr("autoaccept.interfaces.cli.Confirm.ask", lambda *a, **k: True)

        assert harness.run("config", "--edit") == EXIT_CONFIG
        assert not harness.config_path.exists()

    def test_edit_reprompts_non_positive(self, harness, monkeypatch):
        ints = iter([0, 10, 4])
        monkeypatch.setattr("autoaccept.interfaces.cli.IntPrompt.ask", lambda *a, **k: next(ints))
        monkeypatch.setattr("autoaccept.interfaces.cli.Prompt.ask", lambda *a, **k: "all")
        monkeypatch.setattr("autoaccept.interfaces.cli.Confirm.ask", lambda *a, **k: True)

        assert harness.run("config", "--edit") == EXIT_OK
        assert "Must be greater than 0" in harness.output
        assert load_settings(harness.config_path).session.max_auto_accepts == 4

    def test_reset(self, tmp_path, confirm_yes):
        h = Harness(tmp_path, settings=make_settings(tmp_path, danger_patterns=["("]))
        assert h.run("config", "--reset") == EXIT_OK
        assert "Configuration reset to defaults" in h.output
        data = yaml.safe_load(h.config_path.read_text(encoding="utf-8"))
        assert r"rm\s+-rf" in data["security"]["danger_patterns"]

    def test_reset_declined(self, harness, confirm_no):
        assert harness.run("config", "--reset") == EXIT_OK
        assert not harness.config_path.exists()


# ── logs ──────────────────────────────────────────────────────────────────────


class TestLogsCommand:
    def test_empty(self, harness):
        assert harness.run("logs") == EXIT_OK
        assert "No audit logs found" in harness.output

    def test_lists_entries(self, tmp_path):
        h = Harness(
            tmp_path,
            stdin=json.dumps({"tool_name": "Bash", "tool_input": {"command": "git status"}}),
        )
        h.run("on", "-f")
        h.run("hook")
        h.run("logs", "-n", "10")
        assert "ACCEPT" in h.output
        assert "git status" in h.output
        assert "Audit Logs (last 1 entries)" in h.output

    def test_clear(self, tmp_path, confirm_yes):
        h = Harness(tmp_path, stdin=json.dumps({"tool_name": "Bash", "tool_input": {"command": "ls"}}))
        h.run("hook")
        assert h.cli.agent.audit.tail()
        assert h.run("logs", "--clear") == EXIT_OK
        assert "Audit logs cleared" in h.output
        assert h.cli.agent.audit.tail() == []


# ── hook ──────────────────────────────────────────────────────────────────────


class TestHook:
    def _hook(self, tmp_path, payload, enable=True) -> Harness:
        h = Harness(tmp_path, stdin=json.dumps(payload))
        if enable:
            h.cli.agent.enable_auto_accept()
        assert h.run("hook") == EXIT_OK
        return h

    def test_whitelisted_command_allowed(self, tmp_path):
        h = self._hook(tmp_path, {"tool_name": "Bash", "tool_input": {"command": "git status"}})
        out = h.hook_output()
        assert out["hookEventName"] == "PreToolUse"
        assert out["permissionDecision"] == "allow"
        assert out["permissionDecisionReason"] == "[autoaccept] Matched whitelist_pattern: ^git status$"

    def test_dangerous_command_goes_back_to_user(self, tmp_path):
        h = self._hook(tmp_path, {"tool_name": "Bash", "tool_input": {"command": "rm -rf /"}})
        out = h.hook_output()
        assert out["permissionDecision"] == "ask"
        assert out["permissionDecisionReason"] == "[autoaccept] Matched danger_pattern: rm -rf"

    def test_uncategorised_command_goes_back_to_user(self, tmp_path):
        h = self._hook(tmp_path, {"tool_name": "Bash", "tool_input": {"command": "ls -la"}})
        assert h.hook_output()["permissionDecision"] == "ask"

    def test_unmatched_command_asks(self, tmp_path):
        h = self._hook(tmp_path, {"tool_name": "Bash", "tool_input": {"command": "git push"}})
        assert h.hook_output()["permissionDecision"] == "ask"

    def test_disabled_session_asks(self, tmp_path):
        h = self._hook(
            tmp_path,
            {"tool_name": "Bash", "tool_input": {"command": "git status"}},
            enable=False,
        )
        out = h.hook_output()
        assert out["permissionDecision"] == "ask"
        assert out["permissionDecisionReason"] == "[autoaccept] Auto-accept mode is disabled"

    @pytest.mark.parametrize("command", ["ls -la", "rm -rf /", "pytest -q"])
    def test_disabled_session_never_blocks(self, tmp_path, command):
        h = self._hook(
            tmp_path,
            {"tool_name": "Bash", "tool_input": {"command": command}},
            enable=False,
        )
        assert h.hook_output()["permissionDecision"] == "ask"

    def test_audit_failure_keeps_stdout_clean(self, tmp_path, capsys):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        settings = make_settings(tmp_path)
        agent = AutoAcceptAgent(settings, audit=AuditLog(blocker / "audit.jsonl"))
        agent.enable_auto_accept()
        h = Harness(
            tmp_path,
            settings=settings,
            agent=agent,
            stdin=json.dumps({"tool_name": "Bash", "tool_input": {"command": "git status"}}),
        )

        assert h.run("hook") == EXIT_ERROR
        assert h.stdout.getvalue() == ""
        assert h.output == ""
        assert "autoaccept hook:" in capsys.readouterr().err
        # the failed request did not use up an accept
        assert agent.get_session_status().accept_count == 0

    def test_invalid_pattern_reported_on_stderr(self, tmp_path, capsys):
        h = Harness(
            tmp_path,
            settings=make_settings(tmp_path, danger_patterns=["("]),
            stdin=json.dumps({"tool_name": "Bash", "tool_input": {"command": "ls"}}),
        )
        assert h.run("hook") == EXIT_ERROR
        assert h.stdout.getvalue() == ""
        assert "danger_patterns" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path):
        h = Harness(tmp_path, stdin="{oops")
        assert h.run("hook") == EXIT_ERROR
        assert h.stdout.getvalue() == ""

    def test_non_object_payload(self, tmp_path):
        h = Harness(tmp_path, stdin="[1, 2]")
        assert h.run("hook") == EXIT_ERROR


class TestRequestFromHook:
    def test_bash_uses_command_and_description(self):
        req = request_from_hook({
            "tool_name": "Bash",
            "tool_input": {"command": "git log", "description": "Show history"},
        })
        assert req.operation == "git log"
        assert req.message == "Show history"

    def test_bash_without_description(self):
        req = request_from_hook({"tool_name": "Bash", "tool_input": {"command": "ls -la"}})
        assert req.message == "ls -la"

    def test_file_tool_uses_target(self):
        req = request_from_hook({
            "tool_name": "Write",
            "tool_input": {"file_path": "/tmp/a.txt", "content": "hi"},
        })
        assert req.operation == "Write /tmp/a.txt"
        assert json.loads(req.message) == {"file_path": "/tmp/a.txt", "content": "hi"}

    def test_missing_fields(self):
        req = request_from_hook({})
        assert req.operation == ""
        assert req.message == "{}"


# ── main() ────────────────────────────────────────────────────────────────────


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: autoaccept" in capsys.readouterr().out

    def test_pattern_validate(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        code = main(["--config", str(tmp_path / "config.yaml"), "pattern", "validate", "^git"])
        assert code == 0
        assert "Valid pattern" in capsys.readouterr().out
        assert (tmp_path / "data" / "logs" / "autoaccept.log").exists()

    def test_invalid_pattern_exits_with_config_code(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"security": {"danger_patterns": ["("]}}), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(path), "status"])
        assert exc_info.value.code == EXIT_CONFIG

    def test_config_command_runs_with_invalid_pattern(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"security": {"danger_patterns": ["("]}}), encoding="utf-8")
        assert main(["--config", str(path), "config", "--validate"]) == EXIT_CONFIG

    def test_invalid_value_exits_with_config_code(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"session": {"max_auto_accepts": 0}}), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(path), "status"])
        assert exc_info.value.code == EXIT_CONFIG
        assert "session.max_auto_accepts" in capsys.readouterr().err
