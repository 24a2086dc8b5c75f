"""Shared test fixtures."""

from __future__ import annotations

import pytest

from shellprompt.config import (
    AppConfig,
    BannerConfig,
    HistoryConfig,
    LoggingConfig,
    ProbeConfig,
    PromptConfig,
    TimerConfig,
)
from shellprompt.utils.system import Capabilities


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        timer=TimerConfig(
            threshold_seconds=3,
            interactive_commands=["vim", "less", "htop", "man"],
            wrapper_commands=["sudo", "env", "nice", "nohup"],
        ),
        prompt=PromptConfig(),
        probe=ProbeConfig(timeout=1.0, runtimes={"package.json": "node --version"}),
        banner=BannerConfig(command="fastfetch", enabled=True),
        history=HistoryConfig(enabled=False, db_path=str(tmp_path / "history.db")),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def no_tools():
    """Capabilities with every external tool unavailable."""
    return Capabilities(git=False, banner=False)
