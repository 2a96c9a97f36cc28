"""Per-tick channel composition for a node's plugin chain.

Each active plugin returns a partial channel map (``{"translateX": 12.0}``).
The partials are folded into one map in ascending priority, chain order
breaking ties, according to each plugin's compose mode:

  - replace: the later contribution wins.
  - add: numbers are summed.
  - multiply: numbers are multiplied.

A channel that a plugin adds to or multiplies before anything has set it
starts from its base value: 0 for additive channels (translation, rotation),
1 for multiplicative ones (scale, opacity). Modes a channel does not support,
and non-numeric values, fall back to replace with a warning.

Plugin logic lives elsewhere; it is handed in as an evaluator callable
``(plugin, progress) -> partial channels``. A raising evaluator only loses
its own contribution for this tick.
"""

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from .common import is_number
from .models import ComposeMode, PluginSpec
from .timing import compute_window, is_within, progress


logger = logging.getLogger(__name__)

Channels = dict[str, float | str]

Evaluator = Callable[[PluginSpec, float], Mapping[str, float | str]]


@dataclass(frozen=True)
class ChannelRule:
    default: float | str
    additive: bool
    multiplicative: bool
    unit: str | None = None


CHANNEL_RULES = {
    "translateX": ChannelRule(0, additive=True, multiplicative=False, unit="px"),
    "translateY": ChannelRule(0, additive=True, multiplicative=False, unit="px"),
    "rotation": ChannelRule(0, additive=True, multiplicative=False, unit="deg"),
    "scale": ChannelRule(1, additive=False, multiplicative=True),
    "scaleX": ChannelRule(1, additive=False, multiplicative=True),
    "scaleY": ChannelRule(1, additive=False, multiplicative=True),
    "opacity": ChannelRule(1, additive=False, multiplicative=True),
    # String channel: "add" appends another filter function.
    "filter": ChannelRule("", additive=True, multiplicative=False),
}

MODE_IDENTITY = {ComposeMode.ADD: 0, ComposeMode.MULTIPLY: 1}


# ── Pure composition helpers ───────────────────────────────────────


def apply_mode(mode, current, value, channel: str | None = None, rules=CHANNEL_RULES):
    """Combine *value* into *current* under *mode* for one channel."""
    mode = ComposeMode(mode)
    if mode == ComposeMode.REPLACE:
        return value

    rule = rules.get(channel) if channel is not None else None
    supported = rule is None or (
        rule.additive if mode == ComposeMode.ADD else rule.multiplicative
    )
    if not supported:
        logger.warning(
            "Channel %r does not support %s composition, using replace", channel, mode.value,
        )
        return value

    if is_number(current) and is_number(value):
        return current + value if mode == ComposeMode.ADD else current * value
    if mode == ComposeMode.ADD and isinstance(current, str) and isinstance(value, str):
        return f"{current} {value}" if current else value

    logger.warning(
        "Channel %r value %r cannot be composed with %s, using replace",
        channel, value, mode.value,
    )
    return value


def compose_values(mode, base, values: Iterable, channel: str | None = None):
    """Fold *values* into *base*, in order, under one compose mode.

    >>> compose_values("add", 10, [5, 3])
    18
    """
    result = base
    for value in values:
        result = apply_mode(mode, result, value, channel)
    return result


# ── Plugin windows ─────────────────────────────────────────────────


def plugin_window(plugin: PluginSpec, base_range, clamp: bool = False, fps: float | None = None):
    return compute_window(base_range, plugin.time_offset, clamp=clamp, fps=fps)


def is_plugin_active(plugin: PluginSpec, current_time: float, base_range) -> bool:
    return is_within(current_time, plugin_window(plugin, base_range))


def plugin_progress(plugin: PluginSpec, current_time: float, base_range) -> float:
    """Progress inside the plugin's window, 0 when inactive."""
    window = plugin_window(plugin, base_range)
    if not is_within(current_time, window):
        return 0.0
    return progress(current_time, window)


# ── Composer ───────────────────────────────────────────────────────


class ChannelComposer:
    """Evaluate a plugin chain at one point in time and merge the results.

    Args:
        max_active_plugins: Plugins past this many active ones are skipped.
        clamp_windows: Clamp plugin windows to the node's time range.
        fps: Snap plugin windows to this frame rate.
        rules: Channel rules; defaults to CHANNEL_RULES.
    """

    def __init__(
        self,
        max_active_plugins: int = 10,
        clamp_windows: bool = False,
        fps: float | None = None,
        rules: Mapping[str, ChannelRule] | None = None,
    ):
        self.max_active_plugins = max_active_plugins
        self.clamp_windows = clamp_windows
        self.fps = fps
        self.rules = dict(CHANNEL_RULES if rules is None else rules)
        self._base_values: dict[str, float | str] = {}

    def set_base_value(self, channel: str, value) -> None:
        """Override the starting value the renderer has for *channel*."""
        self._base_values[channel] = value

    def base_value(self, channel: str, mode: ComposeMode):
        if channel in self._base_values:
            return self._base_values[channel]
        rule = self.rules.get(channel)
        if rule is not None:
            return rule.default
        return MODE_IDENTITY.get(mode, 0)

    def compose(
        self,
        chain: Iterable[PluginSpec],
        display_time,
        current_time: float,
        evaluator: Evaluator,
        base_time=None,
        node_id: str | None = None,
    ) -> Channels:
        """Combined channels of every plugin active at *current_time*.

        Plugin windows are measured against *base_time* when given,
        otherwise *display_time*.
        """
        timing_base = base_time if base_time is not None else display_time
        contributions = []
        active = 0

        for index, plugin in enumerate(chain):
            window = plugin_window(plugin, timing_base, self.clamp_windows, self.fps)
            if not is_within(current_time, window):
                continue
            if active >= self.max_active_plugins:
                logger.warning(
                    "Node %r: more than %d active plugins, skipping the rest",
                    node_id, self.max_active_plugins,
                )
                break
            active += 1

            partial = self._evaluate(plugin, progress(current_time, window), evaluator, node_id)
            if partial:
                contributions.append((plugin.priority, index, plugin, partial))

        contributions.sort(key=lambda c: (c[0], c[1]))

        channels: Channels = {}
        for _, _, plugin, partial in contributions:
            self._merge(channels, partial, plugin.compose)
        return channels

    def compose_node(self, node, current_time: float, evaluator: Evaluator) -> Channels:
        """compose() for a resolved node model."""
        return self.compose(
            node.plugin_chain,
            node.display_time,
            current_time,
            evaluator,
            base_time=node.base_time,
            node_id=node.id,
        )

    def _evaluate(self, plugin, plugin_progress_value, evaluator, node_id) -> dict:
        try:
            partial = evaluator(plugin, plugin_progress_value)
            if partial is None:
                return {}
            if not isinstance(partial, Mapping):
                raise TypeError(
                    f"evaluator returned {type(partial).__name__}, expected a channel mapping"
                )
            return dict(partial)
        except Exception:
            logger.exception(
                "Plugin %r failed on node %r; it contributes nothing this tick",
                plugin.name, node_id,
            )
            return {}

    def _merge(self, channels: Channels, partial: Mapping, mode: ComposeMode) -> None:
        for channel, value in partial.items():
            if value is None or (isinstance(value, float) and math.isnan(value)):
                continue
            current = channels.get(channel, self.base_value(channel, mode))
            channels[channel] = apply_mode(mode, current, value, channel, self.rules)
