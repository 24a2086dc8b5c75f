"""Prompt context builder."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Mapping

from shellprompt.config import AppConfig, PromptConfig
from shellprompt.services.runtime import runtime_fragment, venv_fragment
from shellprompt.services.vcs import probe_git, vcs_fragment
from shellprompt.storage.models import Fragment, PromptContext
from shellprompt.utils.system import Capabilities, detect_capabilities

logger = logging.getLogger(__name__)


def status_fragment(exit_status: int, prompt: PromptConfig) -> Fragment | None:
    """Fragment for a failed previous command.

    Zero and the ignored codes (by default 141, a pipe reader closing early)
    produce nothing.
    """
    if exit_status == 0 or exit_status in prompt.ignored_exit_codes:
        return None
    return Fragment(text=prompt.status_format.format(status=exit_status), style="error")


def timer_fragment(elapsed: str, prompt: PromptConfig) -> Fragment | None:
    if not elapsed:
        return None
    return Fragment(text=prompt.timer_format.format(elapsed=elapsed), style="timer")


def _safe(name: str, build: Callable[[], Fragment | None]) -> Fragment | None:
    try:
        return build()
    except (OSError, subprocess.SubprocessError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        logger.debug("Skipping %s fragment: %s", name, e)
        return None


class PromptBuilder:
    """Assemble the prompt context for one render."""

    def __init__(self, config: AppConfig, capabilities: Capabilities | None = None) -> None:
        self.config = config
        self.capabilities = capabilities if capabilities is not None else detect_capabilities(config)

    def build(
        self,
        exit_status: int,
        elapsed: str = "",
        cwd: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> PromptContext:
        prompt = self.config.prompt
        probe = self.config.probe
        if environ is None:
            environ = os.environ
        if cwd is None:
            try:
                cwd = os.getcwd()
            except OSError:
                # Working directory was removed underneath the shell
                cwd = None

        context = PromptContext(separator=prompt.separator)
        context.status = _safe("status", lambda: status_fragment(exit_status, prompt))
        context.elapsed = _safe("timer", lambda: timer_fragment(elapsed, prompt))
        if self.capabilities.git and cwd is not None:
            context.vcs = _safe("vcs", lambda: vcs_fragment(probe_git(cwd, probe.timeout), prompt))
        context.venv = _safe("venv", lambda: venv_fragment(environ, prompt))
        if cwd is not None:
            context.runtime = _safe("runtime", lambda: runtime_fragment(cwd, probe))
        return context
