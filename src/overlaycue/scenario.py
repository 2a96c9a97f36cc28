"""Scenario loader.

Reads JSON or YAML scenario documents and runs the load pipeline:

  1. Parse the file (JSON is valid YAML, so both go through yaml.safe_load).
  2. Resolve ``define.<path>`` references.
  3. Apply field inheritance and compute missing domLifetimes.
  4. Validate structure, time ranges, identities and track references.
  5. Freeze the result into a ResolvedScenario.

Each stage builds new structures, so a failure never leaves the caller's
document half-modified. Any failure rejects the whole document.
"""

import logging
from pathlib import Path
from urllib.parse import urlparse

import pydantic
import yaml

from .common import SCENARIO_VERSION
from .defines import resolve_defines
from .errors import ScenarioError
from .inheritance import apply_inheritance, inheritance_report
from .models import ImageNode, ResolvedScenario, VideoNode, build_scenario
from .validation import validate_scenario


logger = logging.getLogger(__name__)


def resolve(raw: dict, strict: bool = False) -> ResolvedScenario:
    """Resolve, inherit, validate and freeze a raw scenario document.

    Args:
        raw: Parsed scenario document.
        strict: Treat soft validation warnings as errors.

    Returns:
        The immutable resolved scenario.

    Raises:
        ScenarioError: Any load-time failure (bad reference, reference cycle,
            malformed time range, duplicate id, unknown track).
    """
    scenario, _ = resolve_with_report(raw, strict=strict)
    return scenario


def resolve_with_report(raw: dict, strict: bool = False) -> tuple[ResolvedScenario, dict]:
    """resolve(), plus the inheritance report and the soft warnings.

    The report is inheritance_report() of this run, with the validator's
    warnings under ``"warnings"``.
    """
    if not isinstance(raw, dict):
        raise ScenarioError("Scenario must be a JSON/YAML mapping")
    if raw.get("version") != SCENARIO_VERSION:
        raise ScenarioError(
            f"Only v{SCENARIO_VERSION} scenarios are supported, "
            f"got version {raw.get('version', 'unknown')!r}"
        )

    resolved = resolve_defines(raw)
    inherited = apply_inheritance(resolved)
    warnings = validate_scenario(inherited, strict=strict)
    try:
        scenario = build_scenario(inherited)
    except pydantic.ValidationError as e:
        raise ScenarioError(f"Scenario could not be frozen: {e}") from e

    report = inheritance_report(resolved, inherited)
    report["warnings"] = warnings

    logger.info(
        "Resolved scenario: %d tracks, %d cues, %d warnings",
        len(scenario.tracks), len(scenario.cues), len(warnings),
    )
    return scenario, report


def load_scenario(scenario_path: str | Path, strict: bool = False) -> ResolvedScenario:
    """Load a scenario file and resolve it.

    Raises:
        FileNotFoundError: Missing scenario file.
        ScenarioError: The document was rejected.
    """
    with open(scenario_path) as f:
        raw = yaml.safe_load(f)
    return resolve(raw, strict=strict)


def validate_assets(scenario: ResolvedScenario, base_dir: str | Path = ".") -> None:
    """Check that every local image/video ``src`` exists on disk.

    URLs (anything with a scheme such as http: or data:) are skipped.
    Relative paths are taken from *base_dir*. Reports all missing files at
    once.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    missing = []
    for _, node in scenario.iter_nodes():
        if not isinstance(node, (ImageNode, VideoNode)):
            continue
        if len(urlparse(node.src).scheme) > 1:
            continue
        path = Path(base_dir) / node.src
        if not path.exists():
            missing.append(f"{node.id}: {node.src}")

    if missing:
        msg = f"Missing {len(missing)} asset(s):\n"
        for entry in missing:
            msg += f"  - {entry}\n"
        raise FileNotFoundError(msg)
