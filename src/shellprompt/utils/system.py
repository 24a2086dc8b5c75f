"""System utility checks and external tool probes."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from shellprompt.config import AppConfig

logger = logging.getLogger(__name__)


def run_probe(
    args: Sequence[str],
    cwd: str | None = None,
    timeout: float = 2.0,
) -> subprocess.CompletedProcess[str] | None:
    """Run an external tool and capture its output.

    Returns ``None`` when the tool is missing, cannot be started or does not
    finish within ``timeout`` seconds. A nonzero exit is returned as-is; the
    caller decides what it means.
    """
    try:
        return subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.debug("Probe timed out after %ss: %s", timeout, " ".join(args))
    except (OSError, ValueError) as e:
        logger.debug("Probe failed: %s (%s)", " ".join(args), e)
    return None


def check_tool(name: str) -> tuple[bool, str]:
    """Check if a tool is installed and return its path."""
    path = shutil.which(name)
    if not path:
        return False, f"{name} not found on PATH"
    return True, path


@dataclass(frozen=True)
class Capabilities:
    """Tool availability, computed once per session."""

    git: bool = False
    banner: bool = False


def detect_capabilities(config: AppConfig) -> Capabilities:
    git = config.probe.git and check_tool("git")[0]
    banner_tool = config.banner.command.split()[0] if config.banner.command.strip() else ""
    banner = config.banner.enabled and bool(banner_tool) and check_tool(banner_tool)[0]
    logger.debug("Capabilities: git=%s banner=%s", git, banner)
    return Capabilities(git=git, banner=banner)
