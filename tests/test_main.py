"""Tests for the subcommand dispatcher and CLIs."""

import json

import pytest

from conftest import minimal_scenario


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self, capsys):
        from overlaycue.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0  # should error without subcommand

    def test_validate_subcommand_exists(self):
        """Verify validate is registered (will fail on missing --scenario)."""
        from overlaycue.main import main

        with pytest.raises(SystemExit):
            main(["validate"])

    def test_timeline_subcommand_exists(self):
        from overlaycue.main import main

        with pytest.raises(SystemExit):
            main(["timeline"])

    def test_invalid_subcommand_errors(self, capsys):
        from overlaycue.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0


class TestValidateCli:
    def test_valid_scenario(self, write_scenario, capsys):
        from overlaycue.main import main

        main(["validate", "--scenario", write_scenario(minimal_scenario())])
        out = capsys.readouterr().out
        assert "Scenario valid: 1 tracks, 1 cues" in out
        assert "cue-1 [subs] domLifetime [2, 5], 2 nodes" in out

    def test_invalid_scenario_exits_nonzero(self, write_scenario, capsys):
        from overlaycue.main import main

        s = minimal_scenario()
        s["cues"][0]["track"] = "missing"
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--scenario", write_scenario(s)])
        assert exc_info.value.code == 1
        assert "unknown track 'missing'" in capsys.readouterr().out

    def test_non_string_key_reported(self, tmp_path, capsys):
        from overlaycue.cli import validate

        path = tmp_path / "scenario.yaml"
        path.write_text(
            "version: '2.0'\n"
            "define: {1: x}\n"
            "tracks: [{id: subs, type: subtitle}]\n"
            "cues: [{id: c, track: subs, root: {id: r, eType: text, text: hi}}]\n"
        )
        assert validate(str(path)) == 1
        assert "Scenario invalid: define: mapping keys must be strings" in capsys.readouterr().out

    def test_warnings_printed(self, write_scenario, capsys):
        from overlaycue.cli import validate

        s = minimal_scenario()
        s["cues"][0]["root"]["displayTime"] = [1, 5]
        assert validate(write_scenario(s)) == 0
        out = capsys.readouterr().out
        assert "Inheritance: 1 display times" in out
        assert "  warning: cues[0].root.displayTime starts" in out

    def test_check_assets(self, write_scenario):
        from overlaycue.cli import main

        s = minimal_scenario()
        s["cues"][0]["root"]["children"].append({"id": "img", "eType": "image", "src": "missing.png"})
        with pytest.raises(FileNotFoundError, match="img: missing.png"):
            main(["--scenario", write_scenario(s), "--check-assets"])


class TestTimelineCli:
    def test_sample_times_inclusive(self):
        from overlaycue.timeline_cli import sample_times

        assert sample_times(0, 1, 0.25) == [0.0, 0.25, 0.5, 0.75, 1.0]

    def test_sample_times_bad_step(self):
        from overlaycue.timeline_cli import sample_times

        with pytest.raises(ValueError, match="step must be > 0"):
            sample_times(0, 1, 0)

    def test_json_rows(self, write_scenario, capsys):
        from overlaycue.main import main

        main([
            "timeline", "--scenario", write_scenario(minimal_scenario()),
            "--start", "1", "--end", "6", "--step", "1", "--json",
        ])
        rows = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [r["time"] for r in rows] == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        assert rows[0]["mounted"] == []
        assert rows[1]["states"] == {"cue-1": "active"}
        assert rows[5]["mounted"] == []

    def test_rejects_reversed_span(self, write_scenario):
        from overlaycue.timeline_cli import main

        with pytest.raises(SystemExit):
            main(["--scenario", write_scenario(minimal_scenario()), "--start", "5", "--end", "1"])
