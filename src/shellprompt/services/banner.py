"""Startup banner from a system-info tool."""

from __future__ import annotations

import logging
import shlex

from shellprompt.config import AppConfig
from shellprompt.utils.system import check_tool, run_probe

logger = logging.getLogger(__name__)

BANNER_TIMEOUT = 10.0


def run_banner(config: AppConfig) -> str:
    """Run the configured fetch tool once and return its output verbatim."""
    if not config.banner.enabled:
        return ""
    try:
        args = shlex.split(config.banner.command)
    except ValueError:
        logger.warning("Invalid banner command: %r", config.banner.command)
        return ""
    if not args:
        return ""

    installed, info = check_tool(args[0])
    if not installed:
        logger.info("Banner skipped: %s", info)
        return ""

    result = run_probe(args, timeout=BANNER_TIMEOUT)
    if result is None or result.returncode != 0:
        return ""
    return result.stdout
