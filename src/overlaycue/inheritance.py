"""Field inheritance over the cue node tree.

Every node ends up with a concrete value for each inheritable field. Values
are looked up in a fixed priority order per field:

    field         sources (highest first)            combine
    displayTime   direct, parent, system             first defined
    style         direct, parent, track              merged
    layout        direct, parent, track              merged
    boxStyle      direct, track (groups only)        merged
    pluginChain   direct                             first defined
    effectScope   direct, parent                     first defined
    baseTime      direct                             first defined

Merged fields are a shallow union: every defined source contributes, and a
higher-priority source wins per key. The parent source is the parent's
already-inherited value, so styles cascade down the whole tree.

Cues without a domLifetime get one computed from their node tree.
"""

import logging
import math
from dataclasses import dataclass

from .common import iter_nodes
from .timing import UNBOUNDED, union


logger = logging.getLogger(__name__)

DOM_LIFETIME_MARGIN = 0.5


@dataclass(frozen=True)
class FieldRule:
    sources: tuple[str, ...]
    merge: bool = False
    system_default: object = None


INHERITANCE_RULES = {
    "displayTime": FieldRule(("direct", "parent", "system"), system_default=UNBOUNDED),
    "style": FieldRule(("direct", "parent", "track"), merge=True),
    "layout": FieldRule(("direct", "parent", "track"), merge=True),
    "boxStyle": FieldRule(("direct", "track"), merge=True),
    "pluginChain": FieldRule(("direct",)),
    "effectScope": FieldRule(("direct", "parent")),
    "baseTime": FieldRule(("direct",)),
}

# Track field feeding the "track" source of each field.
TRACK_DEFAULTS = {
    "style": "defaultStyle",
    "layout": "defaultConstraints",
    "boxStyle": "defaultBoxStyle",
}


# ── Scenario-level entry point ─────────────────────────────────────


def apply_inheritance(scenario: dict) -> dict:
    """Return a new scenario with inherited fields filled in on every node.

    The input is left untouched. Tracks that a cue names but the scenario
    does not declare contribute no defaults; the validator reports them.
    """
    # Malformed ids are left for the validator to report with their path.
    tracks = {
        t["id"]: t for t in scenario.get("tracks") or []
        if isinstance(t, dict) and isinstance(t.get("id"), str)
    }

    cues = []
    for cue in scenario.get("cues") or []:
        if not isinstance(cue, dict) or not isinstance(cue.get("root"), dict):
            cues.append(cue)
            continue
        track_ref = cue.get("track")
        track = tracks.get(track_ref) if isinstance(track_ref, str) else None
        inherited = dict(cue)
        if cue.get("domLifetime") is None:
            inherited["domLifetime"] = default_dom_lifetime(cue["root"])
            logger.debug(
                "Cue %r: computed domLifetime %s", cue.get("id"), inherited["domLifetime"],
            )
        inherited["root"] = inherit_node(cue["root"], None, track)
        cues.append(inherited)

    result = dict(scenario)
    result["cues"] = cues
    return result


# ── Node-level inheritance ─────────────────────────────────────────


def inherit_node(node: dict, parent: dict | None, track: dict | None) -> dict:
    """Resolve one node's inheritable fields, then recurse into children."""
    resolved = dict(node)
    for field_name, rule in INHERITANCE_RULES.items():
        value = inherit_field(field_name, rule, node, parent, track)
        if value is None:
            resolved.pop(field_name, None)
        else:
            resolved[field_name] = value

    children = node.get("children")
    if node.get("eType") == "group" and isinstance(children, list):
        resolved["children"] = [
            inherit_node(child, resolved, track) if isinstance(child, dict) else child
            for child in children
        ]
    return resolved


def inherit_field(
    field_name: str,
    rule: FieldRule,
    node: dict,
    parent: dict | None,
    track: dict | None,
):
    """Collect candidate values in priority order and combine them."""
    candidates = []
    for source in rule.sources:
        value = _source_value(source, field_name, rule, node, parent, track)
        if value is not None:
            candidates.append(value)

    if not candidates:
        return rule.system_default
    if rule.merge:
        return merge_fields(candidates)
    return candidates[0]


def _source_value(source, field_name, rule, node, parent, track):
    if source == "direct":
        return node.get(field_name)
    if source == "parent":
        return parent.get(field_name) if parent is not None else None
    if source == "track":
        if track is None:
            return None
        if field_name == "boxStyle" and node.get("eType") != "group":
            return None
        return track.get(TRACK_DEFAULTS[field_name])
    if source == "system":
        return rule.system_default
    raise ValueError(f"Unknown inheritance source '{source}'")


def merge_fields(candidates: list) -> dict:
    """Shallow union of mapping candidates, first (highest priority) wins.

    A non-mapping candidate is passed through unmerged so validation can
    report it.
    """
    for value in candidates:
        if not isinstance(value, dict):
            return value
    merged = {}
    for value in reversed(candidates):
        merged.update(value)
    return merged


# ── domLifetime ────────────────────────────────────────────────────


def default_dom_lifetime(root: dict, margin: float = DOM_LIFETIME_MARGIN) -> tuple[float, float]:
    """Union of every displayTime in the subtree, widened by *margin*.

    Falls back to an unbounded lifetime when no node carries a finite
    displayTime.
    """
    ranges = [
        node.get("displayTime")
        for node, _ in iter_nodes(root, "root")
        if isinstance(node, dict) and node.get("displayTime") is not None
    ]
    covered = union(ranges)
    if covered is None:
        return UNBOUNDED
    start, end = covered
    return start - margin, end + margin


# ── Reporting ──────────────────────────────────────────────────────


def inheritance_report(original: dict, inherited: dict) -> dict:
    """Count what inheritance filled in, for diagnostics.

    Returns:
        Dict with cue_count, node_count, inherited_display_times,
        inherited_styles and generated_dom_lifetimes.
    """
    report = {
        "cue_count": len(inherited.get("cues") or []),
        "node_count": 0,
        "inherited_display_times": 0,
        "inherited_styles": 0,
        "generated_dom_lifetimes": 0,
    }
    for before, after in zip(original.get("cues") or [], inherited.get("cues") or []):
        if before.get("domLifetime") is None and after.get("domLifetime") is not None:
            report["generated_dom_lifetimes"] += 1
        pairs = zip(iter_nodes(before["root"], "root"), iter_nodes(after["root"], "root"))
        for (node_before, _), (node_after, _) in pairs:
            report["node_count"] += 1
            if node_before.get("displayTime") is None and _is_bounded(node_after.get("displayTime")):
                report["inherited_display_times"] += 1
            if node_after.get("style") and node_after.get("style") != node_before.get("style"):
                report["inherited_styles"] += 1
    return report


def _is_bounded(time_range) -> bool:
    return time_range is not None and all(math.isfinite(t) for t in time_range)
