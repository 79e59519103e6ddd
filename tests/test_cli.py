"""CLI integration tests for actuals-consolidator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook, load_workbook
from rich.console import Console
from typer.testing import CliRunner

import actuals_consolidator.cli as cli_mod
from actuals_consolidator import __version__
from actuals_consolidator.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_mod, "console", Console(width=200))


def _write_source(path: Path, sheet: str = "Actuals") -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet
    rows: list[list[Any]] = [
        [None, "East", "West"],
        ["4000", 100, 200],
        ["  ", 5, 6],
        ["5000", "(75)", 0],
    ]
    for row in rows:
        ws.append(row)
    wb.create_sheet("Notes")
    wb.save(path)
    return path


def _source_entry(**overrides: str) -> dict[str, str]:
    entry = {
        "sourcePath": "",
        "sourceSheet": "Actuals",
        "accountRange": "A2:A4",
        "valueRange": "B2:C4",
        "entityMode": "constant",
        "entityConstant": "Corp",
        "entityRange": "",
        "departmentMode": "range",
        "departmentConstant": "",
        "departmentRange": "B1:C1",
        "dateMode": "constant",
        "dateConstant": "2026-01-31",
        "dateRange": "",
    }
    entry.update(overrides)
    return entry


def _write_config(path: Path, *sources: dict[str, str], output: str = "merged.xlsx") -> Path:
    payload = {
        "version": "1.0.0",
        "createdAtUtc": "2026-02-01T08:00:00+00:00",
        "outputFileName": output,
        "sources": list(sources),
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_init_writes_template(tmp_path: Path) -> None:
    out = tmp_path / "template.json"

    result = runner.invoke(app, ["init", "--out", str(out), "--sources", "3", "--output-file-name", "q1"])

    assert result.exit_code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["outputFileName"] == "q1.xlsx"
    assert len(payload["sources"]) == 3
    assert payload["sources"][0]["dateMode"] == "constant"
    assert payload["sources"][0]["entityMode"] == "blank"


def test_init_rejects_too_many_sources(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--out", str(tmp_path / "t.json"), "--sources", "13"])

    assert result.exit_code != 0
    assert not (tmp_path / "t.json").exists()


def test_sheets_lists_names(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "jan.xlsx")

    result = runner.invoke(app, ["sheets", "--input", str(source)])

    assert result.exit_code == 0
    assert result.stdout.split() == ["Actuals", "Notes"]


def test_run_success_writes_output_and_manifest(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "jan.xlsx")
    config = _write_config(tmp_path / "run.json", _source_entry())
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["run", "--config", str(config), "--source", str(source), "--out-dir", str(out_dir)],
    )

    assert result.exit_code == 0, result.stdout
    assert "4 rows" in result.stdout
    rows = list(load_workbook(out_dir / "merged.xlsx")["Consolidated"].iter_rows(values_only=True))
    assert rows[0] == ("Account", "Entity", "Department", "Date", "Value", "SourceFile", "SourceSheet")
    assert rows[1:] == [
        ("4000", "Corp", "East", "2026-01-31", 100, "jan.xlsx", "Actuals"),
        ("4000", "Corp", "West", "2026-01-31", 200, "jan.xlsx", "Actuals"),
        ("5000", "Corp", "East", "2026-01-31", -75, "jan.xlsx", "Actuals"),
        ("5000", "Corp", "West", "2026-01-31", 0, "jan.xlsx", "Actuals"),
    ]
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["rows_out"] == 4
    assert manifest["sources"] == 1
    assert len(manifest["sha256"]) == 64


def test_run_falls_back_to_configured_source_path(tmp_path: Path) -> None:
    (tmp_path / "books").mkdir()
    _write_source(tmp_path / "books" / "jan.xlsx")
    config = _write_config(
        tmp_path / "run.json", _source_entry(sourcePath="books/jan.xlsx"), output="fallback"
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--config", str(config), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0, result.stdout
    rows = list(load_workbook(out_dir / "fallback.xlsx")["Consolidated"].iter_rows(values_only=True))
    assert {row[5] for row in rows[1:]} == {"books/jan.xlsx"}


def test_run_without_source_file_fails_cleanly(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "run.json", _source_entry(sourcePath="missing.xlsx"))
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["run", "--config", str(config), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert "File 1: Source file is required" in result.stdout
    assert not (out_dir / "merged.xlsx").exists()
    assert not (out_dir / "run_manifest.json").exists()


def test_run_shape_error_names_source_and_field(tmp_path: Path) -> None:
    good = _write_source(tmp_path / "jan.xlsx")
    config = _write_config(
        tmp_path / "run.json",
        _source_entry(),
        _source_entry(departmentMode="blank"),
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "run", "--config", str(config),
            "--source", str(good), "--source", str(good),
            "--out-dir", str(out_dir), "--quiet",
        ],
    )

    assert result.exit_code == 2
    assert "File 2" in result.stdout
    assert "multi-column" in result.stdout
    assert not (out_dir / "merged.xlsx").exists()


def test_run_rejects_extra_source_files(tmp_path: Path) -> None:
    good = _write_source(tmp_path / "jan.xlsx")
    config = _write_config(tmp_path / "run.json", _source_entry())

    result = runner.invoke(
        app,
        ["run", "--config", str(config), "--source", str(good), "--source", str(good), "--quiet"],
    )

    assert result.exit_code == 2
    assert "2 --source files" in result.stdout


def test_run_invalid_config(tmp_path: Path) -> None:
    config = tmp_path / "run.json"
    config.write_text(json.dumps({"sources": []}), encoding="utf-8")

    result = runner.invoke(app, ["run", "--config", str(config), "--quiet"])

    assert result.exit_code == 2
    assert "between 1 and 12" in result.stdout


def test_validate_pass_shows_summary(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "jan.xlsx")
    config = _write_config(tmp_path / "run.json", _source_entry())

    result = runner.invoke(app, ["validate", "--config", str(config), "--source", str(source)])

    assert result.exit_code == 0, result.stdout
    assert "Validation Summary" in result.stdout
    assert "PASS" in result.stdout
    assert not (tmp_path / "output").exists()


def test_validate_failure_exit_code(tmp_path: Path) -> None:
    source = _write_source(tmp_path / "jan.xlsx")
    config = _write_config(tmp_path / "run.json", _source_entry(valueRange="B2:C3"))

    result = runner.invoke(
        app, ["validate", "--config", str(config), "--source", str(source), "--quiet"]
    )

    assert result.exit_code == 2
    assert "same row count" in result.stdout
