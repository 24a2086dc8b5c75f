"""Command classifier - decides whether a command line is timed."""

from __future__ import annotations

import logging
import re
import shlex
from typing import Collection

from shellprompt.config import AppConfig
from shellprompt.storage.models import Classification, CommandInvocation

logger = logging.getLogger(__name__)

END_OF_OPTIONS = "--"
_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


def tokenize(line: str) -> list[str] | None:
    """Split a command line into words, honouring shell quoting.

    Returns ``None`` for unbalanced quoting.
    """
    try:
        return shlex.split(line, comments=False, posix=True)
    except ValueError:
        return None


def _command_name(token: str) -> str:
    return token.rsplit("/", 1)[-1]


def resolve_command(tokens: list[str], wrappers: Collection[str]) -> str:
    """Return the command that actually runs, looking through one wrapper.

    ``sudo -n vim file`` resolves to ``vim``. A wrapper followed only by
    flags resolves to the wrapper itself.
    """
    if not tokens:
        return ""
    candidate = _command_name(tokens[0])
    if candidate not in wrappers:
        return candidate

    for token in tokens[1:]:
        if token == END_OF_OPTIONS or token.startswith("-"):
            continue
        if candidate == "env" and _ASSIGNMENT.match(token):
            continue
        return _command_name(token)
    return candidate


def classify(
    line: str,
    interactive: Collection[str],
    wrappers: Collection[str],
) -> tuple[Classification, CommandInvocation | None]:
    """Classify a command line for the timer."""
    if not line.strip():
        return Classification.SKIP, None

    tokens = tokenize(line)
    if tokens is None:
        logger.debug("Unbalanced quoting, timing anyway: %r", line)
        return Classification.TIMED, CommandInvocation(line=line)
    if not tokens:
        return Classification.SKIP, None

    name = resolve_command(tokens, wrappers)
    first = _command_name(tokens[0])
    invocation = CommandInvocation(
        line=line,
        tokens=tokens,
        name=name,
        wrapper=first if first in wrappers and name != first else "",
    )
    if name in interactive:
        return Classification.INTERACTIVE, invocation
    return Classification.TIMED, invocation


class CommandClassifier:
    """Classifier bound to the configured command sets."""

    def __init__(self, config: AppConfig) -> None:
        self.interactive = frozenset(config.timer.interactive_commands)
        self.wrappers = frozenset(config.timer.wrapper_commands)

    def classify(self, line: str) -> tuple[Classification, CommandInvocation | None]:
        return classify(line, self.interactive, self.wrappers)
