"""Shared test fixtures for overlaycue tests."""

import json

import pytest
import yaml


def minimal_scenario(**overrides):
    """Return a minimal valid v2.0 scenario dict with one track and one cue."""
    s = {
        "version": "2.0",
        "timebase": {"unit": "seconds", "fps": 30},
        "behavior": {"preloadMs": 300, "cleanupDelayMs": 500},
        "tracks": [{"id": "subs", "type": "subtitle", "layer": 1}],
        "cues": [
            {
                "id": "cue-1",
                "track": "subs",
                "domLifetime": [2, 5],
                "root": {
                    "id": "root-1",
                    "eType": "group",
                    "displayTime": [2, 5],
                    "children": [
                        {"id": "text-1", "eType": "text", "text": "Hello"},
                    ],
                },
            },
        ],
    }
    s.update(overrides)
    return s


@pytest.fixture
def write_scenario(tmp_path):
    """Write a scenario dict to a temp file (YAML or JSON), return its path."""
    def _write(content: dict, name: str = "scenario.yaml") -> str:
        path = tmp_path / name
        with open(path, "w") as f:
            if name.endswith(".json"):
                json.dump(content, f)
            else:
                yaml.dump(content, f)
        return str(path)
    return _write
