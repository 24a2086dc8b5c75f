"""Data models for shellprompt."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


class Classification(str, Enum):
    """How a submitted command line affects the timer."""

    SKIP = "skip"
    INTERACTIVE = "interactive"
    TIMED = "timed"


class TimerPhase(str, Enum):
    # REPORTED only exists inside timer.on_prompt and is never handed back.
    IDLE = "idle"
    RUNNING = "running"
    REPORTED = "reported"


@dataclass
class CommandInvocation:
    """A command line as submitted to the shell."""

    line: str
    tokens: list[str] = field(default_factory=list)
    name: str = ""
    wrapper: str = ""


@dataclass(frozen=True)
class TimerState:
    """Timer value threaded between the two shell hooks."""

    phase: TimerPhase = TimerPhase.IDLE
    started_at: float | None = None
    command: str = ""


@dataclass(frozen=True)
class Fragment:
    """One independently computed piece of the prompt."""

    text: str
    style: str = ""


@dataclass
class PromptContext:
    """Snapshot assembled at each prompt render."""

    status: Fragment | None = None
    elapsed: Fragment | None = None
    vcs: Fragment | None = None
    venv: Fragment | None = None
    runtime: Fragment | None = None
    separator: str = " "

    def fragments(self) -> Iterator[Fragment]:
        """Non-empty context fragments in render order."""
        for fragment in (self.status, self.vcs, self.venv, self.runtime):
            if fragment is not None and fragment.text:
                yield fragment

    def line(self) -> str:
        return self.separator.join(f.text for f in self.fragments())

    def render(self) -> str:
        """Context fragments followed by the elapsed-time report, if any."""
        parts = [f.text for f in self.fragments()]
        if self.elapsed is not None and self.elapsed.text:
            parts.append(self.elapsed.text)
        return self.separator.join(parts)

    def to_dict(self) -> dict[str, dict[str, str] | None]:
        data: dict[str, dict[str, str] | None] = {}
        for name in ("status", "elapsed", "vcs", "venv", "runtime"):
            fragment = getattr(self, name)
            data[name] = {"text": fragment.text, "style": fragment.style} if fragment else None
        return data


@dataclass
class TimingRecord:
    """A stored timing history entry."""

    id: int = 0
    command: str = ""
    elapsed_seconds: float = 0.0
    exit_status: int = 0
    cwd: str = ""
    created_at: str = ""
