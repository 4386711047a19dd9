"""
Tests for the varmap CLI commands.

Runs each command through typer's CliRunner against a variable map written
to a temporary directory.
"""

from __future__ import annotations

import pytest
import yaml
from typer.testing import CliRunner

from varmap_cli.main import app

runner = CliRunner()

BIOPOWER = "Biopower-LCOE Calculator"
PV = "Flat Plate PV-Commercial"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every command from an empty directory with no VARMAP_ overrides."""
    monkeypatch.chdir(tmp_path)
    for key in ("VARMAP_LOG_LEVEL", "VARMAP_JSON_LOGS", "VARMAP_DATA_PATH", "VARMAP_LOG_DIR"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def cyclic_map_file(tmp_path, variable_map):
    variable_map["configurations"][BIOPOWER]["equations"] = [
        {"name": "loop", "inputs": ["loop_var"], "outputs": ["loop_var"]}
    ]
    path = tmp_path / "cyclic.yaml"
    path.write_text(yaml.safe_dump(variable_map, sort_keys=False))
    return path


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "Variable Map Engine v0.1.0" in result.output


class TestValidate:
    """Tests for varmap validate."""

    def test_all_loaded(self, variable_map_file):
        result = runner.invoke(app, ["validate", "--data", str(variable_map_file)])

        assert result.exit_code == 0
        assert "2 loaded, 0 rejected" in result.output
        assert "All configurations loaded" in result.output

    def test_rejected_configuration_fails(self, tmp_path, variable_map):
        variable_map["configurations"][PV]["bindings"]["ssc_to_eval"].append(["x", "undeclared"])
        path = tmp_path / "broken.yaml"
        path.write_text(yaml.safe_dump(variable_map, sort_keys=False))

        result = runner.invoke(app, ["validate", "--data", str(path)])

        assert result.exit_code == 1
        assert "1 loaded, 1 rejected" in result.output

    def test_missing_data_file(self, tmp_path):
        result = runner.invoke(app, ["validate", "--data", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Variable map file not found" in result.output

    def test_data_path_from_settings(self, tmp_path, variable_map_file):
        settings = tmp_path / "settings.yaml"
        settings.write_text(f"data_path: {variable_map_file}\n")

        result = runner.invoke(app, ["validate", "--settings", str(settings)])

        assert result.exit_code == 0
        assert "2 loaded" in result.output


class TestConfigs:
    def test_lists_configurations(self, variable_map_file):
        result = runner.invoke(app, ["configs", "--data", str(variable_map_file)])

        assert result.exit_code == 0
        assert "Biopower" in result.output
        assert "pvsamv1" in result.output


class TestPlan:
    """Tests for varmap plan."""

    def test_plan(self, variable_map_file):
        result = runner.invoke(app, ["plan", BIOPOWER, "--data", str(variable_map_file)])

        assert result.exit_code == 0
        assert "1 invocations" in result.output
        assert "Primary inputs: biomass_feed_rate, biomass_moisture" in result.output

    def test_cycle_reported(self, cyclic_map_file):
        result = runner.invoke(app, ["plan", BIOPOWER, "--data", str(cyclic_map_file)])

        assert result.exit_code == 1
        assert "Cyclic dependency detected" in result.output
        assert "RESOLUTION HINTS:" in result.output

    def test_unknown_configuration(self, variable_map_file):
        result = runner.invoke(app, ["plan", "Wind", "--data", str(variable_map_file)])

        assert result.exit_code == 1
        assert "is not registered" in result.output


class TestExport:
    """Tests for varmap export."""

    def test_export_all(self, variable_map_file):
        result = runner.invoke(app, ["export", "--data", str(variable_map_file)])

        assert result.exit_code == 0
        assert result.output.startswith("config_variables_info = {\n")
        assert result.output.index(f"'{BIOPOWER}'") < result.output.index(f"'{PV}'")

    def test_export_one_to_file(self, tmp_path, variable_map_file):
        out = tmp_path / "bindings.txt"

        result = runner.invoke(app, ["export", PV, "--data", str(variable_map_file), "--output", str(out)])

        assert result.exit_code == 0
        text = out.read_text()
        assert f"'{PV}'" in text
        assert f"'{BIOPOWER}'" not in text

    def test_export_is_stable(self, variable_map_file):
        first = runner.invoke(app, ["export", "--data", str(variable_map_file)])
        second = runner.invoke(app, ["export", "--data", str(variable_map_file)])

        assert first.output == second.output
