"""Shell hook handlers and shell integration scripts.

The host shell calls two hooks: ``preexec`` with the command line about to
run and ``precmd`` with the previous exit status, right before the prompt
is drawn. Timer state travels between them explicitly: ``PromptSession``
keeps it on the instance for in-process use, and the shell scripts below
keep its wire form in ``$_SHELLPROMPT_STATE`` and clear it after every
prompt.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Callable, Mapping

from shellprompt.config import AppConfig
from shellprompt.services.classifier import CommandClassifier
from shellprompt.services.prompt import PromptBuilder
from shellprompt.services.timer import IDLE_STATE, on_command, on_prompt
from shellprompt.storage.database import record_timing
from shellprompt.storage.models import Classification, PromptContext, TimerPhase, TimerState
from shellprompt.utils.system import Capabilities

logger = logging.getLogger(__name__)

SUPPORTED_SHELLS = ("bash", "zsh")


def handle_preexec(
    state: TimerState,
    command_line: str,
    classifier: CommandClassifier,
    now: float,
) -> tuple[TimerState, Classification]:
    """Classify a command and advance the timer."""
    classification, _ = classifier.classify(command_line)
    return on_command(state, classification, now, command=command_line), classification


def handle_precmd(
    state: TimerState,
    exit_status: int,
    builder: PromptBuilder,
    now: float,
    cwd: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[TimerState, PromptContext]:
    """Consume the timer and build the prompt context."""
    threshold = builder.config.timer.threshold_seconds
    next_state, elapsed = on_prompt(state, now, threshold)
    context = builder.build(exit_status, elapsed=elapsed, cwd=cwd, environ=environ)
    if elapsed:
        remember_timing(builder.config, state, now, exit_status, cwd)
    return next_state, context


def remember_timing(
    config: AppConfig,
    state: TimerState,
    now: float,
    exit_status: int,
    cwd: str | None = None,
) -> None:
    """Store a reported duration in the history database, if enabled."""
    if not config.history.enabled or state.phase is not TimerPhase.RUNNING or state.started_at is None:
        return
    if cwd is None:
        try:
            cwd = os.getcwd()
        except OSError:
            cwd = ""
    try:
        asyncio.run(
            record_timing(
                config.history.db_path,
                command=state.command,
                elapsed_seconds=now - state.started_at,
                exit_status=exit_status,
                cwd=cwd,
            )
        )
    except RuntimeError:
        logger.exception("Could not record timing for %r", state.command)


class PromptSession:
    """In-process pair of shell hooks sharing one timer."""

    def __init__(
        self,
        config: AppConfig,
        capabilities: Capabilities | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.classifier = CommandClassifier(config)
        self.builder = PromptBuilder(config, capabilities)
        self.clock = clock
        self.state: TimerState = IDLE_STATE

    def preexec(self, command_line: str) -> Classification:
        self.state, classification = handle_preexec(self.state, command_line, self.classifier, self.clock())
        return classification

    def precmd(
        self,
        exit_status: int,
        cwd: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> PromptContext:
        self.state, context = handle_precmd(self.state, exit_status, self.builder, self.clock(), cwd, environ)
        return context


ZSH_INIT = r"""# shellprompt: zsh integration
typeset -g _SHELLPROMPT_STATE=""
typeset -g _SHELLPROMPT_COMMAND=""
typeset -g SHELLPROMPT_FRAGMENTS=""

_shellprompt_preexec() {
  _SHELLPROMPT_COMMAND="$1"
  _SHELLPROMPT_STATE="$(command __EXE__ preexec --state "$_SHELLPROMPT_STATE" -- "$1" 2>/dev/null)"
}

_shellprompt_precmd() {
  local exit_status=$?
  SHELLPROMPT_FRAGMENTS="$(command __EXE__ precmd --status "$exit_status" --state "$_SHELLPROMPT_STATE" --command "$_SHELLPROMPT_COMMAND" 2>/dev/null)"
  _SHELLPROMPT_STATE=""
  _SHELLPROMPT_COMMAND=""
}

autoload -Uz add-zsh-hook
add-zsh-hook preexec _shellprompt_preexec
add-zsh-hook precmd _shellprompt_precmd
setopt prompt_subst
PROMPT='${SHELLPROMPT_FRAGMENTS:+$SHELLPROMPT_FRAGMENTS }'"$PROMPT"

if [[ -o interactive && -z "$_SHELLPROMPT_BANNER_SHOWN" ]]; then
  export _SHELLPROMPT_BANNER_SHOWN=1
  command __EXE__ banner 2>/dev/null
fi
"""

BASH_INIT = r"""# shellprompt: bash integration
_SHELLPROMPT_STATE=""
_SHELLPROMPT_COMMAND=""
_SHELLPROMPT_ARMED=""
SHELLPROMPT_FRAGMENTS=""

_shellprompt_preexec() {
  [[ -n "$COMP_LINE" ]] && return
  # Only the first command after _shellprompt_arm belongs to the user.
  [[ -n "$_SHELLPROMPT_ARMED" ]] || return
  [[ "$BASH_COMMAND" == _shellprompt_precmd* ]] && return
  _SHELLPROMPT_ARMED=""
  local line
  line="$(HISTTIMEFORMAT= builtin history 1 | sed -e 's/^ *[0-9]* *//')"
  line="${line:-$BASH_COMMAND}"
  _SHELLPROMPT_COMMAND="$line"
  _SHELLPROMPT_STATE="$(command __EXE__ preexec --state "$_SHELLPROMPT_STATE" -- "$line" 2>/dev/null)"
}

_shellprompt_precmd() {
  local exit_status=$?
  _SHELLPROMPT_ARMED=""
  SHELLPROMPT_FRAGMENTS="$(command __EXE__ precmd --status "$exit_status" --state "$_SHELLPROMPT_STATE" --command "$_SHELLPROMPT_COMMAND" 2>/dev/null)"
  _SHELLPROMPT_STATE=""
  _SHELLPROMPT_COMMAND=""
}

_shellprompt_arm() {
  _SHELLPROMPT_ARMED=1
}

trap '_shellprompt_preexec' DEBUG
PROMPT_COMMAND="_shellprompt_precmd${PROMPT_COMMAND:+; $PROMPT_COMMAND}; _shellprompt_arm"
PS1='${SHELLPROMPT_FRAGMENTS:+$SHELLPROMPT_FRAGMENTS }'"$PS1"

if [[ $- == *i* && -z "$_SHELLPROMPT_BANNER_SHOWN" ]]; then
  export _SHELLPROMPT_BANNER_SHOWN=1
  command __EXE__ banner 2>/dev/null
fi
"""


def shell_init(shell: str, exe: str = "shellprompt") -> str:
    """Return the integration script for ``shell``."""
    scripts = {"bash": BASH_INIT, "zsh": ZSH_INIT}
    if shell not in scripts:
        raise ValueError(f"Unsupported shell: {shell} (supported: {', '.join(SUPPORTED_SHELLS)})")
    return scripts[shell].replace("__EXE__", exe)
