"""Refresh loop state machine.

The dashboard feeds events in; `transition` returns the next state and the
commands the driver must execute (start a collection cycle, schedule the
next tick, quit). Transitions are pure so the scheduling policy can be
tested without timers, threads or a terminal.

Collection cycles never overlap: a new one is only started when the
previous cycle's snapshot has been delivered via MetricsReady.
"""

from dataclasses import dataclass, replace
from enum import Enum

from hostpulse.collector import MetricsSnapshot


class Command(Enum):
    """Side effects requested by a transition."""

    COLLECT = "collect"
    SCHEDULE_TICK = "schedule_tick"
    QUIT = "quit"


@dataclass(frozen=True)
class Tick:
    """Timer fired."""


@dataclass(frozen=True)
class RefreshRequested:
    """User asked for an immediate refresh."""


@dataclass(frozen=True)
class MetricsReady:
    """A collection cycle finished."""

    snapshot: MetricsSnapshot


@dataclass(frozen=True)
class ToggleDisplay:
    """User toggled the trend panel."""


@dataclass(frozen=True)
class Quit:
    """User asked to exit."""


Event = Tick | RefreshRequested | MetricsReady | ToggleDisplay | Quit


@dataclass(frozen=True)
class RefreshState:
    """Dashboard state driven by events."""

    frame: int = 0
    collecting: bool = False
    ready: bool = False  # At least one snapshot has arrived
    show_trends: bool = True
    quitting: bool = False
    snapshot: MetricsSnapshot | None = None


def initial_state() -> RefreshState:
    """State before the dashboard has started."""
    return RefreshState()


def start() -> tuple[RefreshState, tuple[Command, ...]]:
    """Initial state: collect immediately and start ticking."""
    return replace(initial_state(), collecting=True), (Command.COLLECT, Command.SCHEDULE_TICK)


def transition(
    state: RefreshState,
    event: Event,
    collect_every: int = 2,
) -> tuple[RefreshState, tuple[Command, ...]]:
    """Apply an event.

    Args:
        state: Current state.
        event: Incoming event.
        collect_every: Start a collection on every Nth tick.

    Returns:
        (new_state, commands) where commands is possibly empty.
    """
    if state.quitting:
        return state, ()

    if isinstance(event, Tick):
        frame = state.frame + 1
        if frame % collect_every == 0 and not state.collecting:
            return (
                replace(state, frame=frame, collecting=True),
                (Command.COLLECT, Command.SCHEDULE_TICK),
            )
        return replace(state, frame=frame), (Command.SCHEDULE_TICK,)

    if isinstance(event, RefreshRequested):
        if state.collecting:
            return state, ()
        return replace(state, collecting=True), (Command.COLLECT,)

    if isinstance(event, MetricsReady):
        return replace(state, snapshot=event.snapshot, ready=True, collecting=False), ()

    if isinstance(event, ToggleDisplay):
        return replace(state, show_trends=not state.show_trends), ()

    if isinstance(event, Quit):
        return replace(state, quitting=True), (Command.QUIT,)

    raise TypeError(f"Unknown refresh event: {event!r}")
