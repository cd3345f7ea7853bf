"""Tests for the command line interface."""

import json

import pytest

from training_physiology.cli import build_parser, load_workouts, main


@pytest.fixture
def workouts_file(tmp_path, threshold_log):
    path = tmp_path / "workouts.json"
    path.write_text(json.dumps({"workouts": [w.to_dict() for w in threshold_log]}))
    return path


class TestLoadWorkouts:
    """Tests for reading workout exports."""

    def test_reads_wrapped_list(self, workouts_file):
        assert len(load_workouts(workouts_file)) == 20

    def test_reads_bare_list_and_skips_bad_rows(self, tmp_path):
        path = tmp_path / "bare.json"
        path.write_text(json.dumps([
            {"date": "2024-06-01", "distance_miles": 5, "duration_seconds": 2500},
            {"date": "not-a-date", "distance_miles": 5, "duration_seconds": 2500},
        ]))
        workouts = load_workouts(path)

        assert len(workouts) == 1
        assert workouts[0].average_pace_seconds_per_mile == 500


class TestCommands:
    """Tests for CLI commands and exit codes."""

    def test_zones(self, capsys):
        assert main(["zones", "--vdot", "50"]) == 0
        assert "Threshold" in capsys.readouterr().out

    def test_zones_adjusted_for_weather(self, capsys):
        assert main(["zones", "--vdot", "50", "--temperature", "80", "--humidity", "50"]) == 0
        assert "+20s/mi" in capsys.readouterr().out

    def test_threshold(self, workouts_file):
        assert main(["threshold", str(workouts_file), "--vdot", "50", "--as-of", "2024-06-30"]) == 0

    def test_fitness(self, workouts_file):
        assert main(["fitness", str(workouts_file), "--days", "14", "--as-of", "2024-06-30"]) == 0

    def test_vdot(self):
        assert main(["vdot", "--distance", "5k", "--time", "20:00"]) == 0

    def test_predict(self):
        assert main(["predict", "--vdot", "50", "--quality", "low"]) == 0

    def test_unknown_distance_exits_with_error(self):
        assert main(["vdot", "--distance", "ultra", "--time", "5:00:00"]) == 2

    def test_missing_file_exits_with_error(self, tmp_path):
        assert main(["threshold", str(tmp_path / "missing.json")]) == 2

    def test_no_command(self):
        assert main([]) == 1

    def test_invalid_quality_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["predict", "--vdot", "50", "--quality", "perfect"])
