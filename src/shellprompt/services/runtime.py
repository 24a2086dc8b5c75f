"""Virtual environment and language runtime fragments."""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Mapping

from shellprompt.config import ProbeConfig, PromptConfig
from shellprompt.storage.models import Fragment
from shellprompt.utils.system import check_tool, run_probe

logger = logging.getLogger(__name__)


def venv_fragment(environ: Mapping[str, str], prompt: PromptConfig) -> Fragment | None:
    """Base name of the first active environment marker variable."""
    for variable in prompt.venv_variables:
        value = environ.get(variable, "").strip()
        if not value:
            continue
        name = Path(value.rstrip("/")).name or value
        return Fragment(text=prompt.venv_format.format(name=name), style="venv")
    return None


def runtime_version(command: str, cwd: str | None, timeout: float) -> str:
    """First line of a runtime's version output, or empty on any failure."""
    try:
        args = shlex.split(command)
    except ValueError:
        logger.warning("Invalid runtime version command: %r", command)
        return ""
    if not args or not check_tool(args[0])[0]:
        return ""

    result = run_probe(args, cwd=cwd, timeout=timeout)
    if result is None or result.returncode != 0:
        return ""
    output = result.stdout.strip() or result.stderr.strip()
    return output.splitlines()[0].strip() if output else ""


def runtime_fragment(cwd: str | Path, probe: ProbeConfig) -> Fragment | None:
    """Version of the runtime matching a project descriptor in ``cwd``."""
    directory = Path(cwd)
    for descriptor, command in probe.runtimes.items():
        if not (directory / descriptor).is_file():
            continue
        version = runtime_version(command, str(directory), probe.timeout)
        if version:
            return Fragment(text=version, style="runtime")
    return None
