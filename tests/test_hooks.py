"""Tests for the shell hook session."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from unittest.mock import AsyncMock, patch

import pytest

from shellprompt.hooks import PromptSession, handle_precmd, handle_preexec, shell_init
from shellprompt.services.classifier import CommandClassifier
from shellprompt.services.prompt import PromptBuilder
from shellprompt.services.timer import IDLE_STATE
from shellprompt.storage.models import Classification, TimerPhase


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(app_config, no_tools, clock):
    return PromptSession(app_config, no_tools, clock=clock)


class TestPromptSession:
    def test_slow_command_reports(self, session, clock, tmp_path):
        assert session.preexec("make test") is Classification.TIMED
        clock.advance(125)
        context = session.precmd(0, cwd=str(tmp_path), environ={})
        assert context.render() == "took 2m5s"
        assert session.state == IDLE_STATE

    def test_fast_command_silent(self, session, clock, tmp_path):
        session.preexec("ls")
        clock.advance(2)
        context = session.precmd(0, cwd=str(tmp_path), environ={})
        assert context.elapsed is None
        assert session.state == IDLE_STATE

    def test_threshold_is_inclusive(self, session, clock, tmp_path):
        session.preexec("sleep 3")
        clock.advance(3)
        assert session.precmd(0, cwd=str(tmp_path), environ={}).elapsed.text == "took 3s"

    def test_interactive_not_timed(self, session, clock, tmp_path):
        assert session.preexec("vim notes.md") is Classification.INTERACTIVE
        clock.advance(600)
        assert session.precmd(0, cwd=str(tmp_path), environ={}).render() == ""

    def test_interactive_discards_pending_timer(self, session, clock, tmp_path):
        session.preexec("make")
        assert session.state.phase is TimerPhase.RUNNING
        session.preexec("sudo -n less /var/log/syslog")
        assert session.state == IDLE_STATE
        clock.advance(60)
        assert session.precmd(0, cwd=str(tmp_path), environ={}).elapsed is None

    def test_blank_line_skips(self, session, clock, tmp_path):
        assert session.preexec("   ") is Classification.SKIP
        clock.advance(10)
        assert session.precmd(0, cwd=str(tmp_path), environ={}).elapsed is None

    def test_second_render_does_not_repeat_report(self, session, clock, tmp_path):
        session.preexec("cargo build")
        clock.advance(30)
        first = session.precmd(0, cwd=str(tmp_path), environ={})
        clock.advance(30)
        second = session.precmd(0, cwd=str(tmp_path), environ={})
        assert first.elapsed.text == "took 30s"
        assert second.elapsed is None

    def test_failed_command_status(self, session, clock, tmp_path):
        session.preexec("false")
        context = session.precmd(1, cwd=str(tmp_path), environ={})
        assert context.render() == "[1]"

    def test_broken_pipe_status_hidden(self, session, tmp_path):
        session.preexec("yes | head -1")
        assert session.precmd(141, cwd=str(tmp_path), environ={}).render() == ""


class TestHistoryRecording:
    def test_reported_timing_recorded(self, app_config, no_tools, clock, tmp_path):
        app_config.history.enabled = True
        session = PromptSession(app_config, no_tools, clock=clock)
        with patch("shellprompt.hooks.record_timing", new_callable=AsyncMock) as record:
            session.preexec("make")
            clock.advance(10)
            session.precmd(2, cwd="/work", environ={})
        assert record.call_count == 1
        args, kwargs = record.call_args
        assert args[0] == app_config.history.db_path
        assert kwargs["command"] == "make"
        assert kwargs["elapsed_seconds"] == 10
        assert kwargs["exit_status"] == 2
        assert kwargs["cwd"] == "/work"

    def test_fast_timing_not_recorded(self, app_config, no_tools, clock, tmp_path):
        app_config.history.enabled = True
        session = PromptSession(app_config, no_tools, clock=clock)
        with patch("shellprompt.hooks.record_timing", new_callable=AsyncMock) as record:
            session.preexec("ls")
            clock.advance(1)
            session.precmd(0, cwd=str(tmp_path), environ={})
        record.assert_not_called()

    def test_disabled_history(self, session, clock, tmp_path):
        with patch("shellprompt.hooks.record_timing", new_callable=AsyncMock) as record:
            session.preexec("make")
            clock.advance(10)
            session.precmd(0, cwd=str(tmp_path), environ={})
        record.assert_not_called()


class TestStatelessHandlers:
    def test_state_threaded_explicitly(self, app_config, no_tools, tmp_path):
        classifier = CommandClassifier(app_config)
        builder = PromptBuilder(app_config, no_tools)

        state, classification = handle_preexec(IDLE_STATE, "npm install", classifier, now=50.0)
        assert classification is Classification.TIMED
        assert state.started_at == 50.0

        state, context = handle_precmd(state, 0, builder, now=55.0, cwd=str(tmp_path), environ={})
        assert state == IDLE_STATE
        assert context.elapsed.text == "took 5s"


class TestShellInit:
    @pytest.mark.parametrize("shell", ["bash", "zsh"])
    def test_scripts_register_hooks(self, shell):
        script = shell_init(shell)
        assert "shellprompt preexec" in script
        assert "shellprompt precmd --status" in script
        assert '_SHELLPROMPT_STATE=""' in script

    def test_zsh_uses_add_zsh_hook(self):
        script = shell_init("zsh")
        assert "add-zsh-hook preexec _shellprompt_preexec" in script
        assert "add-zsh-hook precmd _shellprompt_precmd" in script

    def test_bash_prepends_prompt_command(self):
        script = shell_init("bash")
        assert "trap '_shellprompt_preexec' DEBUG" in script
        assert 'PROMPT_COMMAND="_shellprompt_precmd' in script
        assert '; _shellprompt_arm"\n' in script

    def test_custom_executable(self):
        script = shell_init("zsh", exe="/opt/bin/shellprompt")
        assert "command /opt/bin/shellprompt precmd" in script
        assert "__EXE__" not in script

    def test_unsupported_shell(self):
        with pytest.raises(ValueError, match="Unsupported shell"):
            shell_init("fish")


RECORDING_EXE = """#!/bin/sh
if [ "$1" = "preexec" ]; then
  while [ "$#" -gt 0 ] && [ "$1" != "--" ]; do shift; done
  shift
  printf 'preexec %s\\n' "$*" >> "$SP_LOG"
fi
"""


@pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")
class TestBashIntegration:
    """Drive a real interactive bash through the generated script."""

    def _run(self, tmp_path, prompt_command: str) -> list[str]:
        exe = tmp_path / "recorder"
        exe.write_text(RECORDING_EXE)
        exe.chmod(0o755)
        log = tmp_path / "calls.log"

        rc = tmp_path / "bashrc"
        lines = ["_log() { printf 'ran %s\\n' \"$1\" >> \"$SP_LOG\"; }"]
        if prompt_command:
            lines.append(f"PROMPT_COMMAND={shlex.quote(prompt_command)}")
        rc.write_text("\n".join(lines) + "\n" + shell_init("bash", exe=str(exe)))

        env = {k: v for k, v in os.environ.items() if k not in ("PROMPT_COMMAND", "HISTCONTROL", "BASH_ENV")}
        env.update(HOME=str(tmp_path), HISTFILE=str(tmp_path / "history"), SP_LOG=str(log))
        subprocess.run(
            ["bash", "--noprofile", "--rcfile", str(rc), "-i"],
            input="_log first\n_log second\n\nexit\n",
            env=env,
            capture_output=True,
            text=True,
            timeout=30,
        )
        return log.read_text().splitlines() if log.exists() else []

    @pytest.mark.parametrize("prompt_command", ["", "true", "history -a"])
    def test_each_line_reaches_preexec_once(self, tmp_path, prompt_command):
        assert self._run(tmp_path, prompt_command) == [
            "preexec _log first",
            "ran first",
            "preexec _log second",
            "ran second",
            "preexec exit",
        ]
