"""CLI for offline playback sampling.

Steps a virtual clock across a time span and prints, per tick, which cues are
mounted and the composed channels of every live node that has any. Plugins
are evaluated with the built-in table (``ramp``, everything else static).

Usage:
    overlaycue timeline --scenario scenario.json --start 0 --end 10 --step 0.5
    overlaycue timeline --scenario scenario.json --end 4 --fps 30 --json
"""

import argparse
import json

import numpy as np

from .engine import OverlayEngine
from .plugins import default_table
from .scenario import load_scenario
from .timers import ManualTimers


def sample_times(start: float, end: float, step: float) -> list[float]:
    """Tick times from start to end inclusive."""
    if step <= 0:
        raise ValueError(f"step must be > 0, got {step}")
    if end < start:
        raise ValueError(f"end ({end}) must be >= start ({start})")
    return [round(float(t), 6) for t in np.arange(start, end + step / 2, step)]


def run_timeline(
    scenario_path: str,
    start: float,
    end: float,
    step: float,
    fps: float | None = None,
    as_json: bool = False,
) -> list[dict]:
    """Sample playback and print one line (or JSON object) per tick."""
    scenario = load_scenario(scenario_path)
    timers = ManualTimers(now=start)
    overrides = {"fps": fps, "snap_to_frame": True} if fps else {}
    engine = OverlayEngine(default_table(), timers=timers, **overrides)

    rows = []
    for t in sample_times(start, end, step):
        # Wall clock follows the media clock during offline sampling.
        timers.advance_to(t)
        result = engine.update(scenario, t)
        row = {
            "time": result.time,
            "mounted": result.mounted_cues,
            "states": {c: engine.scheduler.state(c).value for c in result.mounted_cues},
            "channels": {n: ch for n, ch in result.channels.items() if ch},
        }
        rows.append(row)
        if as_json:
            print(json.dumps(row))
        else:
            states = ", ".join(f"{c}:{s}" for c, s in row["states"].items()) or "-"
            print(f"t={row['time']:8.3f}  {states}")
            for node_id, channels in row["channels"].items():
                values = " ".join(
                    f"{k}={v:.3f}" if isinstance(v, float) else f"{k}={v}"
                    for k, v in sorted(channels.items())
                )
                print(f"           {node_id}: {values}")
    return rows


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Sample overlay playback over a time span.",
    )
    parser.add_argument(
        "--scenario", required=True,
        help="Path to a JSON or YAML scenario file",
    )
    parser.add_argument("--start", type=float, default=0.0, help="First tick time (s)")
    parser.add_argument("--end", type=float, required=True, help="Last tick time (s)")
    parser.add_argument("--step", type=float, default=0.5, help="Tick interval (s)")
    parser.add_argument(
        "--fps", type=float, default=None,
        help="Snap tick times and plugin windows to this frame rate",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print one JSON object per tick",
    )
    parsed = parser.parse_args(args)

    if parsed.step <= 0:
        parser.error("--step must be > 0")
    if parsed.end < parsed.start:
        parser.error("--end must be >= --start")

    run_timeline(
        parsed.scenario, parsed.start, parsed.end, parsed.step,
        fps=parsed.fps, as_json=parsed.json,
    )


if __name__ == "__main__":
    main()
