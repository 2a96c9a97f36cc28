"""CLI for scenario validation.

Loads a scenario, runs the full resolve pipeline, and prints a summary of
tracks, cues and what inheritance filled in.

Usage:
    overlaycue validate --scenario scenario.json
    overlaycue validate --scenario scenario.yaml --strict --check-assets
"""

import argparse
from pathlib import Path

import yaml

from .errors import ScenarioError
from .scenario import resolve_with_report, validate_assets


def _format_range(time_range) -> str:
    start, end = time_range
    return f"[{start:g}, {end:g}]"


def validate(scenario_path: str, strict: bool = False, check_assets: bool = False) -> int:
    """Validate one scenario file. Returns a process exit code."""
    with open(scenario_path) as f:
        raw = yaml.safe_load(f)

    try:
        scenario, report = resolve_with_report(raw, strict=strict)
    except ScenarioError as e:
        print(f"Scenario invalid: {e}")
        return 1

    if check_assets:
        validate_assets(scenario, base_dir=Path(scenario_path).parent)

    print(f"Scenario valid: {len(scenario.tracks)} tracks, {len(scenario.cues)} cues")
    for track in scenario.tracks:
        print(f"  track {track.id}: {track.type.value}, layer {track.layer}")
    for i, cue in enumerate(scenario.cues):
        nodes = sum(1 for _ in cue.iter_nodes())
        print(f"  {i}: {cue.id} [{cue.track}] domLifetime {_format_range(cue.dom_lifetime)}, {nodes} nodes")
    print(
        f"Inheritance: {report['inherited_display_times']} display times, "
        f"{report['inherited_styles']} styles, "
        f"{report['generated_dom_lifetimes']} generated domLifetimes"
    )
    for warning in report["warnings"]:
        print(f"  warning: {warning}")
    if check_assets:
        print("All assets verified.")
    return 0


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate an overlay scenario document.",
    )
    parser.add_argument(
        "--scenario", required=True,
        help="Path to a JSON or YAML scenario file",
    )
    parser.add_argument(
        "--strict", action="store_true",
        help="Treat soft warnings (displayTime outside domLifetime) as errors",
    )
    parser.add_argument(
        "--check-assets", action="store_true",
        help="Check that local image/video sources exist",
    )
    args = parser.parse_args(args)

    code = validate(args.scenario, strict=args.strict, check_assets=args.check_assets)
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
