"""Tests for the gridcalc command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from gridcalc import __version__
from gridcalc.cli import main
from gridcalc.logging.events import set_log_dir


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_sink():
    yield
    set_log_dir(None)


@pytest.fixture
def sheet_file(tmp_path: Path) -> Path:
    path = tmp_path / "budget.yaml"
    path.write_text(
        yaml.dump(
            {
                "name": "Budget",
                "cells": {
                    "A1": "10",
                    "A2": "20",
                    "A3": "x",
                    "B1": "=SUM(A1:A3)",
                    "B2": "=B1/2",
                    "C1": '=IF(B1>25,"High","Low")',
                },
            }
        )
    )
    return path


class TestVersion:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestEval:
    def test_literal_arithmetic(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["eval", "=1+2*3"])
        assert result.exit_code == 0
        assert result.output.strip() == "7"

    def test_error_token(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["eval", "=1/0"])
        assert result.exit_code == 0
        assert result.output.strip() == "#DIV/0!"

    def test_against_sheet(self, runner: CliRunner, sheet_file: Path) -> None:
        result = runner.invoke(main, ["eval", "=B2+1", "--sheet", str(sheet_file)])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "16"

    def test_json(self, runner: CliRunner, sheet_file: Path) -> None:
        result = runner.invoke(main, ["eval", "=C1", "--sheet", str(sheet_file), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"type": "text", "display": "High"}

    def test_config_depth(self, runner: CliRunner, tmp_path: Path) -> None:
        cfg = tmp_path / "gridcalc.yaml"
        cfg.write_text(yaml.dump({"max_depth": 1}))
        result = runner.invoke(main, ["eval", "=ROUND(ROUND(ROUND(1, 0), 0), 0)", "--config", str(cfg)])
        assert result.exit_code == 0
        assert result.output.strip() == "#ERROR!"

    def test_invalid_sheet_file(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("cells: [1, 2")
        result = runner.invoke(main, ["eval", "=A1", "--sheet", str(bad)])
        assert result.exit_code != 0
        assert "Invalid YAML" in result.output

    def test_invalid_address_in_sheet(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text(yaml.dump({"cells": {"1A": "5"}}))
        result = runner.invoke(main, ["eval", "=1", "--sheet", str(bad)])
        assert result.exit_code != 0
        assert "Invalid cell address" in result.output


class TestRecalc:
    def test_tab_separated_output(self, runner: CliRunner, sheet_file: Path) -> None:
        result = runner.invoke(main, ["recalc", str(sheet_file)])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert lines == ["B1\t30", "C1\tHigh", "B2\t15"]

    def test_json_output(self, runner: CliRunner, sheet_file: Path) -> None:
        result = runner.invoke(main, ["recalc", str(sheet_file), "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["sheet"] == "Budget"
        assert payload["cells"]["B2"] == {"type": "number", "display": "15"}
        assert payload["errors"] == {}

    def test_cycle_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "cycle.yaml"
        path.write_text(yaml.dump({"cells": {"A1": "=B1", "B1": "=A1"}}))
        result = runner.invoke(main, ["recalc", str(path), "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["cells"]["A1"]["display"] == "#ERROR!"
        assert set(payload["errors"]) == {"A1", "B1"}

    def test_events_logged(self, runner: CliRunner, sheet_file: Path, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        result = runner.invoke(main, ["recalc", str(sheet_file), "--log-dir", str(log_dir)])
        assert result.exit_code == 0, result.output
        assert (log_dir / "events.ndjson").exists()

        shown = runner.invoke(main, ["events", "--log-dir", str(log_dir), "--json"])
        assert shown.exit_code == 0, shown.output
        types = [e["event_type"] for e in json.loads(shown.output)]
        assert types == ["recalc_completed", "recalc_started"]

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["recalc", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestEvents:
    def test_empty_log(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["events", "--log-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No events." in result.output


class TestFunctions:
    def test_lists_dispatch_order(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["functions"])
        assert result.exit_code == 0
        names = result.output.split()
        assert names[0] == "CONCATENATE"
        assert "SUM" in names and "IF" in names
        assert len(names) == 13


class TestColumn:
    @pytest.mark.parametrize("value,expected", [("0", "A"), ("27", "AB"), ("702", "AAA"), ("zz", "701"), ("A", "0")])
    def test_conversion(self, runner: CliRunner, value: str, expected: str) -> None:
        result = runner.invoke(main, ["column", value])
        assert result.exit_code == 0
        assert result.output.strip() == expected

    def test_invalid(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["column", "A1"])
        assert result.exit_code != 0
