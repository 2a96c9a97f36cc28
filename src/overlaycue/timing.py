"""Time-range arithmetic for overlay playback.

Every time value is in seconds. A time range is a ``(start, end)`` pair with
``start <= end``; infinite bounds are allowed and mean "unbounded".

Plugin offsets are two bounds, each one of:
  - a tagged bound ``{"seconds": 1.5}`` / ``{"fraction": 0.5}`` (canonical),
  - a percentage string ``"50%"`` (a fraction of the parent duration),
  - a bare number, read as a fraction (legacy documents).

All functions here are pure: they are called every tick and cache nothing.
"""

import math
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

from .common import is_number


PERCENT_RE = re.compile(r"^-?\d+(\.\d+)?%$")

UNBOUNDED = (-math.inf, math.inf)


# ── Offset bounds ──────────────────────────────────────────────────


class OffsetKind(str, Enum):
    SECONDS = "seconds"
    FRACTION = "fraction"


class OffsetBound(BaseModel):
    """One end of a plugin time offset, measured from the parent start."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: OffsetKind
    value: float

    def to_absolute(self, start: float, end: float) -> float:
        if self.kind == OffsetKind.SECONDS:
            return start + self.value
        # Exact endpoints keep unbounded parents usable (inf * 0 is NaN).
        if self.value == 0:
            return start
        if self.value == 1:
            return end
        return start + (end - start) * self.value


DEFAULT_OFFSET = (
    OffsetBound(kind=OffsetKind.FRACTION, value=0.0),
    OffsetBound(kind=OffsetKind.FRACTION, value=1.0),
)


def parse_offset_bound(raw) -> OffsetBound:
    """Convert one raw offset bound to an OffsetBound.

    Raises:
        ValueError: The bound is not a number, percentage string or tagged
            ``{"seconds"|"fraction": number}`` mapping.
    """
    if isinstance(raw, OffsetBound):
        return raw
    if is_number(raw):
        if math.isnan(raw):
            raise ValueError("offset bound must not be NaN")
        return OffsetBound(kind=OffsetKind.FRACTION, value=float(raw))
    if isinstance(raw, str):
        if not PERCENT_RE.fullmatch(raw):
            raise ValueError(
                f"offset bound {raw!r} must be a percentage string like '50%'"
            )
        return OffsetBound(kind=OffsetKind.FRACTION, value=float(raw[:-1]) / 100)
    if isinstance(raw, dict):
        if set(raw) == {"kind", "value"}:
            kind, value = raw["kind"], raw["value"]
        elif len(raw) == 1 and next(iter(raw)) in ("seconds", "fraction"):
            kind, value = next(iter(raw.items()))
        else:
            raise ValueError(
                f"offset bound {raw!r} must be {{'seconds': n}} or {{'fraction': n}}"
            )
        if kind not in ("seconds", "fraction") or not is_number(value):
            raise ValueError(f"offset bound {raw!r} has an invalid kind or value")
        return OffsetBound(kind=OffsetKind(kind), value=float(value))
    raise ValueError(f"offset bound {raw!r} has unsupported type {type(raw).__name__}")


def parse_offset(raw) -> tuple[OffsetBound, OffsetBound]:
    """Parse a two-element ``timeOffset``; ``None`` means the whole parent."""
    if raw is None:
        return DEFAULT_OFFSET
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValueError("timeOffset must be a [start, end] pair")
    return parse_offset_bound(raw[0]), parse_offset_bound(raw[1])


# ── Range predicates ───────────────────────────────────────────────


def _bounds(time_range):
    """Return (start, end) or None when the range is malformed."""
    if not isinstance(time_range, (list, tuple)) or len(time_range) != 2:
        return None
    start, end = time_range
    if not is_number(start) or not is_number(end):
        return None
    if math.isnan(start) or math.isnan(end):
        return None
    return start, end


def is_within(t: float, time_range) -> bool:
    """True when ``start <= t <= end``. Malformed ranges are never matched."""
    bounds = _bounds(time_range)
    if bounds is None or not is_number(t) or math.isnan(t):
        return False
    return bounds[0] <= t <= bounds[1]


def progress(t: float, time_range) -> float:
    """Normalized position of *t* inside *time_range*, clamped to [0, 1].

    Zero-length, negative, unbounded and malformed ranges give 0.
    """
    bounds = _bounds(time_range)
    if bounds is None or not is_number(t) or not math.isfinite(t):
        return 0.0
    start, end = bounds
    if not (math.isfinite(start) and math.isfinite(end)):
        return 0.0
    span = end - start
    if span <= 0:
        return 0.0
    return max(0.0, min(1.0, (t - start) / span))


def duration(time_range) -> float:
    bounds = _bounds(time_range)
    if bounds is None:
        return 0.0
    return max(0.0, bounds[1] - bounds[0])


def overlaps(a, b) -> bool:
    ba, bb = _bounds(a), _bounds(b)
    if ba is None or bb is None:
        return False
    return ba[0] <= bb[1] and bb[0] <= ba[1]


def union(ranges) -> tuple[float, float] | None:
    """Smallest range covering every finite, well-formed input range."""
    valid = [
        b for b in (_bounds(r) for r in ranges)
        if b is not None and math.isfinite(b[0]) and math.isfinite(b[1])
    ]
    if not valid:
        return None
    return min(b[0] for b in valid), max(b[1] for b in valid)


def clamp_range(time_range, lo: float, hi: float) -> tuple[float, float]:
    """Clamp both bounds into [lo, hi]. Missing or NaN bounds take lo/hi."""
    if not isinstance(time_range, (list, tuple)) or len(time_range) != 2:
        return lo, hi
    start, end = time_range
    start = start if is_number(start) and not math.isnan(start) else lo
    end = end if is_number(end) and not math.isnan(end) else hi
    return max(lo, min(hi, start)), max(lo, min(hi, end))


# ── Validation ─────────────────────────────────────────────────────


def validate_time_range(time_range) -> None:
    """Raise ValueError unless *time_range* is a numeric [start, end] pair
    with ``start <= end``."""
    if not isinstance(time_range, (list, tuple)):
        raise ValueError("time range must be a [start, end] array")
    if len(time_range) != 2:
        raise ValueError(
            f"time range must have exactly 2 elements, got {len(time_range)}"
        )
    start, end = time_range
    if not is_number(start) or math.isnan(start):
        raise ValueError(f"time range start must be a number, got {start!r}")
    if not is_number(end) or math.isnan(end):
        raise ValueError(f"time range end must be a number, got {end!r}")
    if start > end:
        raise ValueError(f"time range start ({start}) must not be greater than end ({end})")


def is_valid_time_range(time_range) -> bool:
    try:
        validate_time_range(time_range)
    except ValueError:
        return False
    return True


# ── Frame snapping ─────────────────────────────────────────────────


def snap_to_frame(t: float, fps: float | None) -> float:
    """Round *t* to the nearest multiple of 1/fps. No-op without a valid fps."""
    if not is_number(fps) or not math.isfinite(fps) or fps <= 0 or not math.isfinite(t):
        return t
    return round(t * fps) / fps


def snap_range(time_range, fps: float | None) -> tuple[float, float]:
    start, end = time_range
    return snap_to_frame(start, fps), snap_to_frame(end, fps)


# ── Plugin windows ─────────────────────────────────────────────────


def compute_window(
    parent_range,
    offset=None,
    clamp: bool = False,
    fps: float | None = None,
) -> tuple[float, float]:
    """Absolute execution window for a plugin attached to *parent_range*.

    Fractions outside [0, 1] and negative seconds extend the window past the
    parent range; ``clamp=True`` pulls the result back inside it. With *fps*
    the resulting bounds are snapped to frame boundaries.

    Args:
        parent_range: The node's [start, end] (its baseTime or displayTime).
        offset: Two raw or parsed bounds, or None for the whole parent.
        clamp: Clamp the window to the parent range.
        fps: Frame rate for snapping; None disables snapping.

    Raises:
        ValueError: Malformed parent range or offset.
    """
    bounds = _bounds(parent_range)
    if bounds is None:
        raise ValueError(f"parent range must be a numeric [start, end] pair, got {parent_range!r}")
    start, end = bounds
    first, second = parse_offset(offset)

    window = (first.to_absolute(start, end), second.to_absolute(start, end))
    if clamp:
        window = clamp_range(window, start, end)
    if fps:
        window = snap_range(window, fps)
    return window
