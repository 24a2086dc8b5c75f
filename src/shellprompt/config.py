"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".shellprompt"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_INTERACTIVE_COMMANDS: list[str] = [
    "vi", "vim", "nvim", "nano", "emacs", "micro", "helix", "hx", "kak",
    "less", "more", "most", "man", "bat",
    "top", "htop", "btop", "atop", "glances", "watch",
    "ssh", "mosh", "tmux", "screen",
    "fzf", "lazygit", "tig", "ranger", "nnn", "mc",
]

DEFAULT_WRAPPER_COMMANDS: list[str] = [
    "sudo", "doas", "env", "nice", "ionice", "nohup", "time",
    "timeout", "chrt", "taskset", "prlimit", "command", "exec", "builtin",
]

DEFAULT_RUNTIMES: dict[str, str] = {
    "package.json": "node --version",
    "Cargo.toml": "rustc --version",
    "go.mod": "go version",
    "pyproject.toml": "python3 --version",
}


@dataclass
class TimerConfig:
    threshold_seconds: int = 3
    interactive_commands: list[str] = field(default_factory=lambda: list(DEFAULT_INTERACTIVE_COMMANDS))
    wrapper_commands: list[str] = field(default_factory=lambda: list(DEFAULT_WRAPPER_COMMANDS))


@dataclass
class PromptConfig:
    status_format: str = "[{status}]"
    ignored_exit_codes: list[int] = field(default_factory=lambda: [141])
    timer_format: str = "took {elapsed}"
    staged_marker: str = "+"
    unstaged_marker: str = "!"
    untracked_marker: str = "?"
    venv_variables: list[str] = field(default_factory=lambda: ["VIRTUAL_ENV"])
    venv_format: str = "({name})"
    separator: str = " "


@dataclass
class ProbeConfig:
    timeout: float = 2.0
    git: bool = True
    runtimes: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RUNTIMES))


@dataclass
class BannerConfig:
    command: str = "fastfetch"
    enabled: bool = True


@dataclass
class HistoryConfig:
    enabled: bool = True
    db_path: str = "~/.shellprompt/history.db"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.shellprompt/shellprompt.log"


@dataclass
class AppConfig:
    timer: TimerConfig = field(default_factory=TimerConfig)
    prompt: PromptConfig = field(default_factory=PromptConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    banner: BannerConfig = field(default_factory=BannerConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def sections(self) -> dict[str, object]:
        return {
            "timer": self.timer,
            "prompt": self.prompt,
            "probe": self.probe,
            "banner": self.banner,
            "history": self.history,
            "logging": self.logging,
        }


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        for name, section in config.sections().items():
            values = data.get(name, {})
            for key, value in values.items():
                if hasattr(section, key):
                    setattr(section, key, value)
                else:
                    logger.debug("Ignoring unknown config key %s.%s", name, key)

    # Environment variable overrides
    if env_threshold := os.environ.get("SHELLPROMPT_THRESHOLD"):
        try:
            config.timer.threshold_seconds = int(env_threshold)
        except ValueError:
            logger.warning("Invalid SHELLPROMPT_THRESHOLD: %r", env_threshold)
    if env_interactive := os.environ.get("SHELLPROMPT_INTERACTIVE"):
        config.timer.interactive_commands = _split_names(env_interactive)
    if env_wrappers := os.environ.get("SHELLPROMPT_WRAPPERS"):
        config.timer.wrapper_commands = _split_names(env_wrappers)
    if env_probe_timeout := os.environ.get("SHELLPROMPT_PROBE_TIMEOUT"):
        try:
            config.probe.timeout = float(env_probe_timeout)
        except ValueError:
            logger.warning("Invalid SHELLPROMPT_PROBE_TIMEOUT: %r", env_probe_timeout)
    if env_banner := os.environ.get("SHELLPROMPT_BANNER"):
        config.banner.command = env_banner
    if env_db := os.environ.get("SHELLPROMPT_HISTORY_DB"):
        config.history.db_path = env_db
    if env_log_level := os.environ.get("SHELLPROMPT_LOG_LEVEL"):
        config.logging.level = env_log_level

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "timer": {
            "threshold_seconds": config.timer.threshold_seconds,
            "interactive_commands": config.timer.interactive_commands,
            "wrapper_commands": config.timer.wrapper_commands,
        },
        "prompt": {
            "status_format": config.prompt.status_format,
            "ignored_exit_codes": config.prompt.ignored_exit_codes,
            "timer_format": config.prompt.timer_format,
            "staged_marker": config.prompt.staged_marker,
            "unstaged_marker": config.prompt.unstaged_marker,
            "untracked_marker": config.prompt.untracked_marker,
            "venv_variables": config.prompt.venv_variables,
            "venv_format": config.prompt.venv_format,
            "separator": config.prompt.separator,
        },
        "probe": {
            "timeout": config.probe.timeout,
            "git": config.probe.git,
            "runtimes": config.probe.runtimes,
        },
        "banner": {
            "command": config.banner.command,
            "enabled": config.banner.enabled,
        },
        "history": {
            "enabled": config.history.enabled,
            "db_path": config.history.db_path,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)


# Global singleton
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load the global config singleton."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
