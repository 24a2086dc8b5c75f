"""Command timer state machine.

The timer moves IDLE -> RUNNING -> REPORTED -> IDLE. State is a frozen
``TimerState`` value passed into and returned from each transition, so the
caller (an in-process session or the shell, via ``encode_state``) owns it.
REPORTED never outlives a single ``on_prompt`` call.
"""

from __future__ import annotations

import logging

from shellprompt.storage.models import Classification, TimerPhase, TimerState

logger = logging.getLogger(__name__)

IDLE_STATE = TimerState()


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as ``45s`` or ``2m5s``."""
    total = max(int(seconds), 0)
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    return f"{minutes}m{secs}s"


def on_command(
    state: TimerState,
    classification: Classification,
    now: float,
    command: str = "",
) -> TimerState:
    """Apply a submitted command to the timer."""
    if classification is Classification.TIMED:
        return TimerState(phase=TimerPhase.RUNNING, started_at=now, command=command)
    if state.phase is TimerPhase.RUNNING:
        logger.debug("Discarding pending timer for %r", state.command)
    return IDLE_STATE


def on_prompt(state: TimerState, now: float, threshold: float) -> tuple[TimerState, str]:
    """Consume a running timer at prompt time.

    Returns the next state (always IDLE) and the elapsed report, which is
    empty unless the command ran for at least ``threshold`` seconds.
    """
    if state.phase is not TimerPhase.RUNNING or state.started_at is None:
        return IDLE_STATE, ""

    elapsed = now - state.started_at
    if elapsed < threshold:
        return IDLE_STATE, ""

    report = format_elapsed(elapsed)
    logger.debug("Reporting %s for %r", report, state.command)
    return IDLE_STATE, report


def encode_state(state: TimerState) -> str:
    """Wire form of a timer state for storage in a shell variable."""
    if state.phase is not TimerPhase.RUNNING or state.started_at is None:
        return ""
    return repr(state.started_at)


def decode_state(text: str | None, command: str = "") -> TimerState:
    """Inverse of ``encode_state``. Malformed input decodes to IDLE."""
    if not text or not text.strip():
        return IDLE_STATE
    try:
        started_at = float(text)
    except ValueError:
        logger.debug("Ignoring malformed timer state: %r", text)
        return IDLE_STATE
    return TimerState(phase=TimerPhase.RUNNING, started_at=started_at, command=command)
