"""Cue mount lifecycle.

Each cue moves through

    unmounted -> preloading -> active -> cleanup_pending -> unmounted

driven by one update(current_time) call per tick:

  - A cue mounts once ``current_time + preload lookahead`` reaches the start
    of its domLifetime (and the lifetime has not ended).
  - A mounted cue is active while current_time is inside its domLifetime,
    preloading otherwise.
  - Once the cue is no longer relevant (past its end, or seeked back before
    its preload point) the unmount is deferred by the cleanup delay. If the
    cue becomes relevant again first, the pending unmount is cancelled and
    the cue never leaves the mounted set.
  - A cue further than the cleanup delay outside its relevant window is
    unmounted during update even if no timer has fired, so offline playback
    without a timer driver still cleans up.

Above max_mounted_cues, inactive cues are evicted oldest-mount first. Active
cues are never evicted.
"""

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .config import PlaybackConfig
from .models import Cue, ResolvedScenario
from .timers import ManualTimers, TimerHandle, Timers
from .timing import is_within, snap_to_frame


logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNMOUNTED = "unmounted"
    PRELOADING = "preloading"
    ACTIVE = "active"
    CLEANUP_PENDING = "cleanup_pending"


@dataclass
class MountedEntry:
    cue_id: str
    track_id: str
    mounted_at: float
    sequence: int
    state: LifecycleState
    preloaded: bool

    @property
    def is_active(self) -> bool:
        return self.state == LifecycleState.ACTIVE


@dataclass(frozen=True)
class LifecycleEvent:
    type: str  # "mount" | "unmount" | "activate" | "deactivate"
    cue_id: str
    time: float


LifecycleListener = Callable[[LifecycleEvent], None]


class LifecycleScheduler:
    """Decide which cues exist in the render tree at each tick.

    Args:
        config: Preload/cleanup/memory settings. Defaults to PlaybackConfig().
        timers: Delayed-task driver for deferred unmounts. Defaults to a
            ManualTimers virtual clock.
    """

    def __init__(self, config: PlaybackConfig | None = None, timers: Timers | None = None):
        self.config = config or PlaybackConfig()
        self.timers = timers if timers is not None else ManualTimers()
        self.scenario: ResolvedScenario | None = None
        self._mounted: dict[str, MountedEntry] = {}
        self._pending: dict[str, TimerHandle] = {}
        self._listeners: list[LifecycleListener] = []
        self._sequence = itertools.count()
        self._generation = 0
        self._now = 0.0
        self.stats = {"total_mounts": 0, "total_unmounts": 0, "current": 0, "peak": 0}

    # ── Scenario ───────────────────────────────────────────────────

    def load(self, scenario: ResolvedScenario | None) -> None:
        """Switch scenarios. Cancels every pending unmount first."""
        self.unmount_all()
        self._generation += 1
        self.scenario = scenario
        if scenario is not None:
            logger.debug("Scheduler loaded %d cues", len(scenario.cues))

    def unmount_all(self) -> None:
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        for cue_id in list(self._mounted):
            self._unmount(cue_id)

    def dispose(self) -> None:
        self.load(None)
        self._listeners.clear()

    # ── Tick ───────────────────────────────────────────────────────

    def update(self, current_time: float) -> list[str]:
        """Advance lifecycles to *current_time*; return mounted cue ids.

        Calling update twice with the same time changes nothing.
        """
        if self.scenario is None:
            return []
        current_time = snap_to_frame(current_time, self.config.snap_fps)
        self._now = current_time

        for cue in self.scenario.cues:
            self._process(cue, current_time)
        self._enforce_memory_limit()
        return self.mounted_cue_ids()

    def _process(self, cue: Cue, t: float) -> None:
        start, end = cue.dom_lifetime
        lookahead = self.config.preload_lookahead
        relevant = t + lookahead >= start and t <= end
        state = LifecycleState.ACTIVE if is_within(t, cue.dom_lifetime) else LifecycleState.PRELOADING

        entry = self._mounted.get(cue.id)
        if entry is None:
            if relevant:
                self._mount(cue, t, state)
            return

        if relevant:
            if entry.state == LifecycleState.CLEANUP_PENDING:
                self._cancel_pending(cue.id)
                logger.debug("Cue %r relevant again at %.3f, unmount cancelled", cue.id, t)
            self._set_state(entry, state, t)
            return

        overshoot = t - end if t > end else (start - lookahead) - t
        if overshoot > self.config.cleanup_delay:
            self._unmount(cue.id)
        elif entry.state != LifecycleState.CLEANUP_PENDING:
            self._set_state(entry, LifecycleState.CLEANUP_PENDING, t)
            self._schedule_unmount(cue.id)

    # ── Transitions ────────────────────────────────────────────────

    def _mount(self, cue: Cue, t: float, state: LifecycleState) -> None:
        entry = MountedEntry(
            cue_id=cue.id,
            track_id=cue.track,
            mounted_at=t,
            sequence=next(self._sequence),
            state=state,
            preloaded=state == LifecycleState.PRELOADING,
        )
        self._mounted[cue.id] = entry
        self.stats["total_mounts"] += 1
        self.stats["current"] = len(self._mounted)
        self.stats["peak"] = max(self.stats["peak"], self.stats["current"])
        logger.debug("Mounted cue %r at %.3f (%s)", cue.id, t, state.value)
        self._notify("mount", cue.id, t)

    def _set_state(self, entry: MountedEntry, state: LifecycleState, t: float) -> None:
        if state == entry.state:
            return
        was_active = entry.is_active
        entry.state = state
        if was_active != entry.is_active:
            self._notify("activate" if entry.is_active else "deactivate", entry.cue_id, t)

    def _schedule_unmount(self, cue_id: str) -> None:
        if cue_id in self._pending:
            return
        generation = self._generation
        self._pending[cue_id] = self.timers.call_later(
            self.config.cleanup_delay,
            lambda: self._on_cleanup_due(cue_id, generation),
        )
        logger.debug("Scheduled unmount of cue %r in %.3fs", cue_id, self.config.cleanup_delay)

    def _cancel_pending(self, cue_id: str) -> None:
        handle = self._pending.pop(cue_id, None)
        if handle is not None:
            handle.cancel()

    def _on_cleanup_due(self, cue_id: str, generation: int) -> None:
        if generation != self._generation:
            return
        self._pending.pop(cue_id, None)
        entry = self._mounted.get(cue_id)
        if entry is not None and entry.state == LifecycleState.CLEANUP_PENDING:
            self._unmount(cue_id)

    def _unmount(self, cue_id: str) -> None:
        self._cancel_pending(cue_id)
        entry = self._mounted.pop(cue_id, None)
        if entry is None:
            return
        self.stats["total_unmounts"] += 1
        self.stats["current"] = len(self._mounted)
        logger.debug("Unmounted cue %r", cue_id)
        self._notify("unmount", cue_id, self._now)

    def _enforce_memory_limit(self) -> None:
        excess = len(self._mounted) - self.config.max_mounted_cues
        if excess <= 0:
            return
        inactive = sorted(
            (e for e in self._mounted.values() if not e.is_active),
            key=lambda e: e.sequence,
        )
        evicted = inactive[:excess]
        for entry in evicted:
            self._unmount(entry.cue_id)
        if evicted:
            logger.warning(
                "Mounted cue limit (%d) exceeded: evicted %d inactive cues",
                self.config.max_mounted_cues, len(evicted),
            )

    # ── Queries ────────────────────────────────────────────────────

    def state(self, cue_id: str) -> LifecycleState:
        entry = self._mounted.get(cue_id)
        return entry.state if entry is not None else LifecycleState.UNMOUNTED

    def is_mounted(self, cue_id: str) -> bool:
        return cue_id in self._mounted

    def is_active(self, cue_id: str) -> bool:
        entry = self._mounted.get(cue_id)
        return entry is not None and entry.is_active

    def has_pending_unmount(self, cue_id: str) -> bool:
        return cue_id in self._pending

    @property
    def mounted(self) -> dict[str, MountedEntry]:
        return dict(self._mounted)

    def mounted_cue_ids(self) -> list[str]:
        """Mounted cue ids in document order."""
        if self.scenario is None:
            return []
        return [cue.id for cue in self.scenario.cues if cue.id in self._mounted]

    # ── Listeners ──────────────────────────────────────────────────

    def add_listener(self, listener: LifecycleListener) -> Callable[[], None]:
        """Register *listener*; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, event_type: str, cue_id: str, t: float) -> None:
        event = LifecycleEvent(event_type, cue_id, t)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Lifecycle listener failed on %s of cue %r", event_type, cue_id)
