"""overlaycue.common — shared helpers for scenario documents.

Contains: number checks, location paths used in error messages, and the
depth-first node walk shared by inheritance, validation and the model builder.
"""

import math
from collections.abc import Iterator


SCENARIO_VERSION = "2.0"

NODE_TYPES = {"group", "text", "image", "video"}


# ── Value checks ───────────────────────────────────────────────────

def is_number(value) -> bool:
    """True for int/float values, excluding bools (JSON true/false)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value) -> bool:
    """True for numbers that are neither NaN nor infinite."""
    return is_number(value) and math.isfinite(value)


# ── Location paths ─────────────────────────────────────────────────
# Paths read like `cues[2].root.children[0].displayTime`.

def key_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def index_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


# ── Node tree walk ─────────────────────────────────────────────────

def iter_nodes(node, path: str) -> Iterator[tuple[dict, str]]:
    """Yield (node, path) for *node* and every descendant, depth-first.

    Non-dict entries are yielded too so validators can report them; children
    are only followed on group nodes whose ``children`` is a list.
    """
    yield node, path
    if not isinstance(node, dict) or node.get("eType") != "group":
        return
    children = node.get("children")
    if not isinstance(children, list):
        return
    for i, child in enumerate(children):
        yield from iter_nodes(child, index_path(key_path(path, "children"), i))
