"""Resolved scenario models.

The load pipeline works on plain dicts; once a document has been resolved,
inherited and validated it is frozen into these models. Nodes are a closed
union discriminated on ``e_type``.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .timing import DEFAULT_OFFSET, OffsetBound, parse_offset


TimeRange = tuple[float, float]


class ComposeMode(str, Enum):
    REPLACE = "replace"
    ADD = "add"
    MULTIPLY = "multiply"


class TrackType(str, Enum):
    SUBTITLE = "subtitle"
    FREE = "free"


class OverlapPolicy(str, Enum):
    PUSH = "push"
    STACK = "stack"
    IGNORE = "ignore"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ── Plugins ────────────────────────────────────────────────────────


class PluginSpec(_Frozen):
    """One entry of a node's plugin chain."""

    name: str
    params: dict[str, Any] = Field(default_factory=dict)
    time_offset: tuple[OffsetBound, OffsetBound] = DEFAULT_OFFSET
    compose: ComposeMode = ComposeMode.REPLACE
    priority: float = 0.0


# ── Nodes ──────────────────────────────────────────────────────────


class _NodeBase(_Frozen):
    id: str
    display_time: TimeRange
    base_time: TimeRange | None = None
    layout: dict[str, Any] = Field(default_factory=dict)
    style: dict[str, Any] = Field(default_factory=dict)
    box_style: dict[str, Any] = Field(default_factory=dict)
    effect_scope: dict[str, Any] | None = None
    plugin_chain: tuple[PluginSpec, ...] = ()

    @property
    def timing_base(self) -> TimeRange:
        """Range plugin offsets are measured against."""
        return self.base_time if self.base_time is not None else self.display_time


class GroupNode(_NodeBase):
    e_type: Literal["group"] = "group"
    children: tuple[Node, ...] = ()


class TextNode(_NodeBase):
    e_type: Literal["text"] = "text"
    text: str


class ImageNode(_NodeBase):
    e_type: Literal["image"] = "image"
    src: str
    alt: str | None = None


class VideoNode(_NodeBase):
    e_type: Literal["video"] = "video"
    src: str
    autoplay: bool = False
    muted: bool = False
    loop: bool = False


Node = Annotated[
    Union[GroupNode, TextNode, ImageNode, VideoNode],
    Field(discriminator="e_type"),
]

GroupNode.model_rebuild()


# ── Scenario ───────────────────────────────────────────────────────


class Track(_Frozen):
    id: str
    type: TrackType
    layer: int = 0
    overlap_policy: OverlapPolicy = OverlapPolicy.PUSH
    default_style: dict[str, Any] = Field(default_factory=dict)
    default_constraints: dict[str, Any] = Field(default_factory=dict)
    default_box_style: dict[str, Any] = Field(default_factory=dict)


class Cue(_Frozen):
    id: str
    track: str
    dom_lifetime: TimeRange
    root: Node

    def iter_nodes(self) -> Iterator[Node]:
        """Depth-first over the cue's node tree."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, GroupNode):
                stack.extend(reversed(node.children))


class Timebase(_Frozen):
    unit: Literal["seconds"] = "seconds"
    fps: float | None = None


class Behavior(_Frozen):
    preload_ms: float = 300
    cleanup_delay_ms: float = 500
    max_mounted_cues: int = 50
    snap_to_frame: bool = False


class ResolvedScenario(_Frozen):
    """A fully resolved document. Immutable for the rest of its life."""

    version: str
    define: dict[str, Any] = Field(default_factory=dict)
    timebase: Timebase = Timebase()
    behavior: Behavior = Behavior()
    tracks: tuple[Track, ...] = ()
    cues: tuple[Cue, ...] = ()

    def track(self, track_id: str) -> Track | None:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def cue(self, cue_id: str) -> Cue | None:
        for cue in self.cues:
            if cue.id == cue_id:
                return cue
        return None

    def iter_nodes(self) -> Iterator[tuple[Cue, Node]]:
        for cue in self.cues:
            for node in cue.iter_nodes():
                yield cue, node


# ── Construction from validated dicts ──────────────────────────────


def build_scenario(doc: dict) -> ResolvedScenario:
    """Freeze a validated scenario dict into a ResolvedScenario."""
    timebase = doc.get("timebase") or {}
    behavior = doc.get("behavior") or {}
    return ResolvedScenario(
        version=doc["version"],
        define=doc.get("define") or {},
        timebase=Timebase(unit=timebase.get("unit", "seconds"), fps=timebase.get("fps")),
        behavior=Behavior(**_pick(behavior, {
            "preloadMs": "preload_ms",
            "cleanupDelayMs": "cleanup_delay_ms",
            "maxMountedCues": "max_mounted_cues",
            "snapToFrame": "snap_to_frame",
        })),
        tracks=tuple(build_track(t) for t in doc["tracks"]),
        cues=tuple(build_cue(c) for c in doc["cues"]),
    )


def build_track(track: dict) -> Track:
    return Track(
        id=track["id"],
        type=TrackType(track["type"]),
        layer=track.get("layer", 0),
        overlap_policy=OverlapPolicy(track.get("overlapPolicy", "push")),
        default_style=track.get("defaultStyle") or {},
        default_constraints=track.get("defaultConstraints") or {},
        default_box_style=track.get("defaultBoxStyle") or {},
    )


def build_cue(cue: dict) -> Cue:
    return Cue(
        id=cue["id"],
        track=cue["track"],
        dom_lifetime=tuple(cue["domLifetime"]),
        root=build_node(cue["root"]),
    )


def build_node(node: dict) -> Node:
    common = dict(
        id=node["id"],
        display_time=tuple(node["displayTime"]),
        base_time=tuple(node["baseTime"]) if node.get("baseTime") is not None else None,
        layout=node.get("layout") or {},
        style=node.get("style") or {},
        box_style=node.get("boxStyle") or {},
        effect_scope=node.get("effectScope"),
        plugin_chain=tuple(build_plugin(p) for p in node.get("pluginChain") or []),
    )
    e_type = node["eType"]
    if e_type == "group":
        return GroupNode(
            children=tuple(build_node(child) for child in node.get("children") or []),
            **common,
        )
    if e_type == "text":
        return TextNode(text=node["text"], **common)
    if e_type == "image":
        return ImageNode(src=node["src"], alt=node.get("alt"), **common)
    if e_type == "video":
        return VideoNode(
            src=node["src"],
            autoplay=bool(node.get("autoplay", False)),
            muted=bool(node.get("muted", False)),
            loop=bool(node.get("loop", False)),
            **common,
        )
    raise ValueError(f"Unknown node eType '{e_type}'")


def build_plugin(plugin) -> PluginSpec:
    if isinstance(plugin, str):
        return PluginSpec(name=plugin)
    return PluginSpec(
        name=plugin["name"],
        params=plugin.get("params") or {},
        time_offset=parse_offset(plugin.get("timeOffset")),
        compose=ComposeMode(plugin.get("compose", "replace")),
        priority=plugin.get("priority", 0),
    )


def _pick(source: dict, names: dict[str, str]) -> dict:
    return {attr: source[key] for key, attr in names.items() if key in source}
