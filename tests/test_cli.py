"""
Tests for the click command line interface.

Run: python3 -m pytest tests/test_cli.py -v
"""

import json

import pytest
from click.testing import CliRunner

import main
from commands import CommandError

PROJECT = {
    "source": "NodeArchitect",
    "nodes": [
        {"id": "gw", "label": "Gateway", "role": "controller", "lat": 39.8283, "lng": -98.5795},
        {"id": "rl", "label": "Relay", "role": "relay", "lat": 39.8287, "lng": -98.5795},
        {"id": "sn", "label": "Sensor", "role": "sensor", "lat": 39.8291, "lng": -98.5795},
    ],
}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep CliRunner's swapped streams out of the root logger."""
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project_file(tmp_path):
    path = tmp_path / "project.json"
    path.write_text(json.dumps(PROJECT))
    return path


class TestGroup:

    def test_version(self, runner):
        result = runner.invoke(main.cli, ["--version"])
        assert result.exit_code == 0
        assert "Mesh Architect v0.3.1" in result.output

    def test_help_without_command(self, runner):
        result = runner.invoke(main.cli, [])
        assert result.exit_code == 0
        assert "analyze" in result.output
        assert "demo" in result.output

    def test_history(self, runner):
        result = runner.invoke(main.cli, ["history"])
        assert result.exit_code == 0
        assert "0.3.0" in result.output


class TestDemo:

    def test_json(self, runner):
        result = runner.invoke(main.cli, ["demo", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data['links']['links']) == 6
        assert data['summary']['risk'] == "Watch"

    def test_tables(self, runner):
        result = runner.invoke(main.cli, ["demo"])
        assert result.exit_code == 0
        assert "Demo mesh scenario" in result.output
        assert "Estimated Links" in result.output
        assert "Coverage hints" in result.output

    def test_named_preset(self, runner):
        result = runner.invoke(main.cli, ["demo", "--preset", "urban-grid", "--json"])
        assert result.exit_code == 0
        assert len(json.loads(result.output)['links']['links']) == 55

    def test_unknown_preset(self, runner):
        result = runner.invoke(main.cli, ["demo", "--preset", "nope"])
        assert result.exit_code == 2


class TestAnalyze:

    def test_json(self, runner, project_file):
        result = runner.invoke(main.cli, ["analyze", str(project_file), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data['robustness']['spofIds'] == []
        assert len(data['links']['links']) == 3

    def test_tables(self, runner, project_file):
        result = runner.invoke(main.cli, ["analyze", str(project_file)])
        assert result.exit_code == 0
        assert "Gateway" in result.output
        assert "Mesh Summary" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main.cli, ["analyze", str(tmp_path / "none.json")])
        assert result.exit_code == 1
        assert isinstance(result.exception, CommandError)

    def test_unpositioned_warning(self, runner, tmp_path):
        path = tmp_path / "bare.json"
        path.write_text(json.dumps({"source": "NodeArchitect", "nodes": [{"id": "a"}]}))
        result = runner.invoke(main.cli, ["analyze", str(path)])
        assert result.exit_code == 0
        assert "Warning:" in result.output


class TestExport:

    def test_stdout(self, runner, project_file):
        result = runner.invoke(main.cli, ["export", str(project_file), "--format", "geojson"])
        assert result.exit_code == 0
        assert json.loads(result.output)['type'] == "FeatureCollection"

    def test_output_file(self, runner, project_file, tmp_path):
        out = tmp_path / "mission.json"
        result = runner.invoke(main.cli, ["export", str(project_file), "-o", str(out)])
        assert result.exit_code == 0
        document = json.loads(out.read_text())
        assert document['schema'] == "MissionProject"
        assert [n['id'] for n in document['nodes']] == ["gw", "rl", "sn"]

    def test_bad_format(self, runner, project_file):
        result = runner.invoke(main.cli, ["export", str(project_file), "--format", "kml"])
        assert result.exit_code == 2
