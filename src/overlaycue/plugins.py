"""Plugin evaluator table.

Plugin code is loaded by the host application. What the channel composer
receives is a single evaluator callable; PluginTable builds one from an
explicit ``{plugin name: evaluator}`` mapping handed in by the caller.

Two small evaluators ship for offline tooling:
  - static_channels: returns ``params["channels"]`` unchanged.
  - linear_ramp: interpolates ``params["from"]`` to ``params["to"]``.
"""

from collections.abc import Mapping

from .channels import Evaluator
from .common import is_number
from .models import PluginSpec


class UnknownPluginError(KeyError):
    pass


class PluginTable:
    """Dispatch evaluation by plugin name.

    Args:
        evaluators: Plugin name -> evaluator.
        fallback: Evaluator for names not in the table. Without one, an
            unknown name raises UnknownPluginError, which the composer logs
            and drops for that plugin only.
    """

    def __init__(self, evaluators: Mapping[str, Evaluator] | None = None, fallback: Evaluator | None = None):
        self.evaluators = dict(evaluators or {})
        self.fallback = fallback

    def register(self, name: str, evaluator: Evaluator) -> None:
        self.evaluators[name] = evaluator

    def __contains__(self, name: str) -> bool:
        return name in self.evaluators

    def evaluate(self, plugin: PluginSpec, progress: float) -> Mapping:
        evaluator = self.evaluators.get(plugin.name, self.fallback)
        if evaluator is None:
            raise UnknownPluginError(f"No evaluator for plugin '{plugin.name}'")
        return evaluator(plugin, progress)

    __call__ = evaluate


def static_channels(plugin: PluginSpec, progress: float) -> Mapping:
    return dict(plugin.params.get("channels") or {})


def linear_ramp(plugin: PluginSpec, progress: float) -> Mapping:
    """Interpolate numeric channels between ``params.from`` and ``params.to``.

    Channels present on only one side, or non-numeric, are returned as the
    ``to`` value once progress reaches 1 and the ``from`` value before that.
    """
    start = plugin.params.get("from") or {}
    end = plugin.params.get("to") or {}
    channels = {}
    for name in {**start, **end}:
        a, b = start.get(name), end.get(name)
        if is_number(a) and is_number(b):
            channels[name] = a + (b - a) * progress
        elif progress >= 1 and name in end:
            channels[name] = b
        elif name in start:
            channels[name] = a
    return channels


def default_table() -> PluginTable:
    """Table used by the CLI: built-in ramp, static for everything else."""
    return PluginTable({"ramp": linear_ramp, "static": static_channels}, fallback=static_channels)
