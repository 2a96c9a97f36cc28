"""Structural validation of a resolved, inherited scenario.

Checks run in a fixed order and stop at the first failure:
  1. Required fields present and well typed (document, tracks, cues, nodes,
     plugin specs, timebase/behavior settings).
  2. Time ranges: every domLifetime/displayTime/baseTime is a numeric
     [start, end] with start <= end; every timeOffset parses.
  3. Identities: node ids non-empty and unique across the whole document,
     cue ids unique among cues.
  4. Tracks: ids unique, every cue's track reference declared.

A node displayTime reaching outside its cue's domLifetime is only a warning:
the node may mount late or unmount early, but the document still loads.
"""

import logging
import math

from .common import (
    NODE_TYPES,
    SCENARIO_VERSION,
    index_path,
    is_finite_number,
    is_number,
    iter_nodes,
    key_path,
)
from .errors import ValidationError
from .timing import parse_offset, validate_time_range


logger = logging.getLogger(__name__)

VALID_TRACK_TYPES = {"subtitle", "free"}

VALID_OVERLAP_POLICIES = {"push", "stack", "ignore"}

VALID_COMPOSE_MODES = {"replace", "add", "multiply"}

MAPPING_NODE_FIELDS = ("layout", "style", "boxStyle", "effectScope")

# Variant payload: field -> required?
NODE_PAYLOADS = {
    "group": {},
    "text": {"text": True},
    "image": {"src": True, "alt": False},
    "video": {"src": True},
}

BEHAVIOR_FIELDS = {
    "preloadMs": "finite non-negative number",
    "cleanupDelayMs": "finite non-negative number",
    "maxMountedCues": "positive integer",
    "snapToFrame": "boolean",
}


def validate_scenario(scenario: dict, strict: bool = False) -> list[str]:
    """Validate a scenario; return the soft warnings it produced.

    Args:
        scenario: Define-resolved, inherited scenario dict.
        strict: Raise the first soft warning as an error instead.

    Raises:
        ValidationError: First violated invariant, prefixed with its path.
    """
    _validate_required_fields(scenario)
    _validate_time_ranges(scenario)
    _validate_identities(scenario)
    _validate_track_references(scenario)

    warnings = _check_dom_lifetime_coverage(scenario)
    for message in warnings:
        logger.warning(message)
    if strict and warnings:
        raise ValidationError(f"Strict validation failed: {warnings[0]}")
    return warnings


# ── 1. Required fields ─────────────────────────────────────────────


def _is_one_of(value, choices) -> bool:
    return isinstance(value, str) and value in choices


def _validate_mapping_keys(value, path: str) -> None:
    """Every mapping key in the document must be a string (YAML allows others)."""
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValidationError(
                    f"mapping keys must be strings, got {key!r}", path or "<root>"
                )
            _validate_mapping_keys(item, key_path(path, key))
    elif isinstance(value, list):
        for i, item in enumerate(value):
            _validate_mapping_keys(item, index_path(path, i))


def _validate_required_fields(scenario) -> None:
    if not isinstance(scenario, dict):
        raise ValidationError("Scenario must be a mapping")
    _validate_mapping_keys(scenario, "")

    if "version" not in scenario:
        raise ValidationError("missing required field 'version'")
    if scenario["version"] != SCENARIO_VERSION:
        raise ValidationError(
            f"unsupported version {scenario['version']!r}, expected '{SCENARIO_VERSION}'",
            "version",
        )

    define = scenario.get("define")
    if define is not None and not isinstance(define, dict):
        raise ValidationError("must be a mapping", "define")

    for field in ("tracks", "cues"):
        if field not in scenario:
            raise ValidationError(f"missing required field '{field}'")
        if not isinstance(scenario[field], list):
            raise ValidationError("must be a list", field)

    _validate_timebase(scenario.get("timebase"))
    _validate_behavior(scenario.get("behavior"))

    for i, track in enumerate(scenario["tracks"]):
        _validate_track(track, index_path("tracks", i))

    for i, cue in enumerate(scenario["cues"]):
        path = index_path("cues", i)
        if not isinstance(cue, dict):
            raise ValidationError("cue must be a mapping", path)
        if not isinstance(cue.get("root"), dict):
            raise ValidationError("missing required node 'root'", path)
        for node, node_path in iter_nodes(cue["root"], key_path(path, "root")):
            _validate_node_shape(node, node_path)


def _validate_timebase(timebase) -> None:
    if timebase is None:
        return
    if not isinstance(timebase, dict):
        raise ValidationError("must be a mapping", "timebase")
    unit = timebase.get("unit", "seconds")
    if unit != "seconds":
        raise ValidationError(f"unit must be 'seconds', got {unit!r}", "timebase")
    fps = timebase.get("fps")
    if fps is not None and (not is_finite_number(fps) or not fps > 0):
        raise ValidationError(f"fps must be a finite positive number, got {fps!r}", "timebase")


def _validate_behavior(behavior) -> None:
    if behavior is None:
        return
    if not isinstance(behavior, dict):
        raise ValidationError("must be a mapping", "behavior")
    for field, expected in BEHAVIOR_FIELDS.items():
        if field not in behavior:
            continue
        value = behavior[field]
        if expected == "boolean":
            ok = isinstance(value, bool)
        elif expected == "positive integer":
            ok = isinstance(value, int) and not isinstance(value, bool) and value > 0
        else:
            ok = is_finite_number(value) and value >= 0
        if not ok:
            raise ValidationError(
                f"{field} must be a {expected}, got {value!r}", "behavior"
            )


def _validate_track(track, path: str) -> None:
    if not isinstance(track, dict):
        raise ValidationError("track must be a mapping", path)
    track_id = track.get("id")
    if not isinstance(track_id, str) or not track_id:
        raise ValidationError("track id is required and must be a non-empty string", path)
    if not _is_one_of(track.get("type"), VALID_TRACK_TYPES):
        raise ValidationError(
            f"invalid type {track.get('type')!r}. Valid: {sorted(VALID_TRACK_TYPES)}",
            key_path(path, "type"),
        )
    layer = track.get("layer", 0)
    if not isinstance(layer, int) or isinstance(layer, bool):
        raise ValidationError(f"layer must be an integer, got {layer!r}", key_path(path, "layer"))
    policy = track.get("overlapPolicy")
    if policy is not None and not _is_one_of(policy, VALID_OVERLAP_POLICIES):
        raise ValidationError(
            f"invalid overlapPolicy {policy!r}. Valid: {sorted(VALID_OVERLAP_POLICIES)}",
            key_path(path, "overlapPolicy"),
        )
    for field in ("defaultStyle", "defaultConstraints", "defaultBoxStyle"):
        value = track.get(field)
        if value is not None and not isinstance(value, dict):
            raise ValidationError("must be a mapping", key_path(path, field))


def _validate_node_shape(node, path: str) -> None:
    if not isinstance(node, dict):
        raise ValidationError("node must be a mapping", path)

    e_type = node.get("eType")
    if not _is_one_of(e_type, NODE_TYPES):
        raise ValidationError(
            f"invalid eType {e_type!r}. Valid: {sorted(NODE_TYPES)}", key_path(path, "eType")
        )

    if e_type == "group":
        children = node.get("children", [])
        if not isinstance(children, list):
            raise ValidationError("must be a list", key_path(path, "children"))
    elif "children" in node:
        raise ValidationError(f"{e_type} nodes cannot have children", key_path(path, "children"))

    for field, required in NODE_PAYLOADS[e_type].items():
        if field not in node:
            if required:
                raise ValidationError(f"missing required field '{field}'", path)
            continue
        if not isinstance(node[field], str):
            raise ValidationError("must be a string", key_path(path, field))

    for field in MAPPING_NODE_FIELDS:
        value = node.get(field)
        if value is not None and not isinstance(value, dict):
            raise ValidationError("must be a mapping", key_path(path, field))

    chain = node.get("pluginChain")
    if chain is None:
        return
    if not isinstance(chain, list):
        raise ValidationError("must be a list", key_path(path, "pluginChain"))
    for i, plugin in enumerate(chain):
        _validate_plugin_spec(plugin, index_path(key_path(path, "pluginChain"), i))


def _validate_plugin_spec(plugin, path: str) -> None:
    if isinstance(plugin, str):
        if not plugin:
            raise ValidationError("plugin name must be a non-empty string", path)
        return
    if not isinstance(plugin, dict):
        raise ValidationError("plugin must be a name or a mapping", path)
    name = plugin.get("name")
    if not isinstance(name, str) or not name:
        raise ValidationError("plugin name is required and must be a non-empty string", path)
    params = plugin.get("params")
    if params is not None and not isinstance(params, dict):
        raise ValidationError("must be a mapping", key_path(path, "params"))
    compose = plugin.get("compose", "replace")
    if not _is_one_of(compose, VALID_COMPOSE_MODES):
        raise ValidationError(
            f"invalid compose mode {compose!r}. Valid: {sorted(VALID_COMPOSE_MODES)}",
            key_path(path, "compose"),
        )
    priority = plugin.get("priority", 0)
    if not is_number(priority) or math.isnan(priority):
        raise ValidationError(f"must be a number, got {priority!r}", key_path(path, "priority"))


# ── 2. Time ranges ─────────────────────────────────────────────────


def _validate_time_ranges(scenario: dict) -> None:
    for i, cue in enumerate(scenario["cues"]):
        path = index_path("cues", i)
        if cue.get("domLifetime") is not None:
            _check_range(cue["domLifetime"], key_path(path, "domLifetime"))

        for node, node_path in iter_nodes(cue["root"], key_path(path, "root")):
            for field in ("displayTime", "baseTime"):
                if node.get(field) is not None:
                    _check_range(node[field], key_path(node_path, field))
            for j, plugin in enumerate(node.get("pluginChain") or []):
                if isinstance(plugin, dict) and "timeOffset" in plugin:
                    offset_path = key_path(
                        index_path(key_path(node_path, "pluginChain"), j), "timeOffset"
                    )
                    try:
                        parse_offset(plugin["timeOffset"])
                    except ValueError as e:
                        raise ValidationError(str(e), offset_path) from e


def _check_range(value, path: str) -> None:
    try:
        validate_time_range(value)
    except ValueError as e:
        raise ValidationError(str(e), path) from e


# ── 3. Identities ──────────────────────────────────────────────────


def _validate_identities(scenario: dict) -> None:
    cue_paths = {}
    node_paths = {}
    for i, cue in enumerate(scenario["cues"]):
        path = index_path("cues", i)
        cue_id = cue.get("id")
        if not isinstance(cue_id, str) or not cue_id:
            raise ValidationError("cue id is required and must be a non-empty string", path)
        if cue_id in cue_paths:
            raise ValidationError(
                f"Duplicate cue id '{cue_id}' at {path} (also used by {cue_paths[cue_id]})"
            )
        cue_paths[cue_id] = path

        for node, node_path in iter_nodes(cue["root"], key_path(path, "root")):
            node_id = node.get("id")
            if not isinstance(node_id, str) or not node_id:
                raise ValidationError(
                    "node id is required and must be a non-empty string", node_path
                )
            if node_id in node_paths:
                raise ValidationError(
                    f"Duplicate node id '{node_id}' at {node_path} "
                    f"(also used by {node_paths[node_id]})"
                )
            node_paths[node_id] = node_path


# ── 4. Tracks ──────────────────────────────────────────────────────


def _validate_track_references(scenario: dict) -> None:
    track_paths = {}
    for i, track in enumerate(scenario["tracks"]):
        track_id = track["id"]
        if track_id in track_paths:
            raise ValidationError(
                f"Duplicate track id '{track_id}' at tracks[{i}] "
                f"(also used by {track_paths[track_id]})"
            )
        track_paths[track_id] = index_path("tracks", i)

    for i, cue in enumerate(scenario["cues"]):
        path = key_path(index_path("cues", i), "track")
        track_ref = cue.get("track")
        if not isinstance(track_ref, str) or not track_ref:
            raise ValidationError("track reference is required and must be a string", path)
        if track_ref not in track_paths:
            raise ValidationError(
                f"unknown track '{track_ref}'. Declared: {sorted(track_paths)}", path
            )


# ── Soft checks ────────────────────────────────────────────────────


def _check_dom_lifetime_coverage(scenario: dict) -> list[str]:
    """Warn where a finite node displayTime leaves its cue's domLifetime.

    Unbounded displayTimes come from the system default and are skipped. A
    child whose displayTime equals its parent's (usually inherited) is
    reported once, at the parent.
    """
    warnings = []
    for i, cue in enumerate(scenario["cues"]):
        lifetime = cue.get("domLifetime")
        if lifetime is None:
            continue
        path = key_path(index_path("cues", i), "root")
        _check_node_coverage(cue["root"], path, None, lifetime, warnings)
    return warnings


def _check_node_coverage(node, path, parent_display, lifetime, warnings) -> None:
    dom_start, dom_end = lifetime
    display = node.get("displayTime")
    if display is not None and (
        parent_display is None or tuple(display) != tuple(parent_display)
    ):
        start, end = display
        if math.isfinite(start) and start < dom_start:
            warnings.append(
                f"{path}.displayTime starts ({start}) before domLifetime "
                f"({dom_start}); the node may mount late"
            )
        if math.isfinite(end) and end > dom_end:
            warnings.append(
                f"{path}.displayTime ends ({end}) after domLifetime "
                f"({dom_end}); the node may unmount early"
            )

    if node.get("eType") != "group":
        return
    for j, child in enumerate(node.get("children") or []):
        child_path = index_path(key_path(path, "children"), j)
        _check_node_coverage(child, child_path, display, lifetime, warnings)
