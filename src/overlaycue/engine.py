"""Per-tick playback: live node set plus composed channels.

    engine = OverlayEngine(evaluator=table.evaluate)
    result = engine.update(scenario, current_time)
    result.live_nodes   # node ids of every mounted cue, document order
    result.channels     # {node_id: {"translateX": 4.0, ...}}

Passing a different scenario to update() reloads the scheduler, which
cancels every pending unmount of the previous document.
"""

import logging
from dataclasses import dataclass, field

from .channels import ChannelComposer, Channels, Evaluator
from .config import PlaybackConfig
from .lifecycle import LifecycleScheduler
from .models import ResolvedScenario
from .timers import Timers
from .timing import snap_to_frame


logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    time: float
    live_nodes: list[str] = field(default_factory=list)
    channels: dict[str, Channels] = field(default_factory=dict)
    mounted_cues: list[str] = field(default_factory=list)


class OverlayEngine:
    """Glue between the lifecycle scheduler and the channel composer.

    Args:
        evaluator: ``(plugin, progress) -> partial channels``.
        timers: Delayed-task driver for deferred unmounts.
        max_active_plugins: Per-node cap passed to the composer.
        clamp_windows: Clamp plugin windows to the node's time range.
        **overrides: PlaybackConfig fields that win over the document's
            behavior settings (preload_ms, cleanup_delay_ms, ...).
    """

    def __init__(
        self,
        evaluator: Evaluator,
        timers: Timers | None = None,
        max_active_plugins: int = 10,
        clamp_windows: bool = False,
        **overrides,
    ):
        self.evaluator = evaluator
        self.overrides = overrides
        self.scheduler = LifecycleScheduler(timers=timers)
        self.composer = ChannelComposer(
            max_active_plugins=max_active_plugins, clamp_windows=clamp_windows,
        )
        self.scenario: ResolvedScenario | None = None

    def load(self, scenario: ResolvedScenario) -> None:
        config = PlaybackConfig.from_scenario(scenario, **self.overrides)
        self.scheduler.config = config
        self.scheduler.load(scenario)
        self.composer.fps = config.snap_fps
        self.scenario = scenario
        logger.info("Engine loaded scenario with %d cues", len(scenario.cues))

    def update(self, scenario: ResolvedScenario, current_time: float) -> TickResult:
        """Advance to *current_time* and compute this tick's output."""
        if scenario is not self.scenario:
            self.load(scenario)
        current_time = snap_to_frame(current_time, self.scheduler.config.snap_fps)

        mounted = self.scheduler.update(current_time)
        result = TickResult(time=current_time, mounted_cues=mounted)
        for cue_id in mounted:
            cue = scenario.cue(cue_id)
            for node in cue.iter_nodes():
                result.live_nodes.append(node.id)
                result.channels[node.id] = self.composer.compose_node(
                    node, current_time, self.evaluator,
                )
        return result
