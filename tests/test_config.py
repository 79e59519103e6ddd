from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from actuals_consolidator.config import (
    build_config_file_name,
    decode_config,
    encode_config,
    load_config,
    normalize_output_file_name,
    save_config,
)
from actuals_consolidator.errors import ConfigurationError
from actuals_consolidator.models import DimensionMode, RunConfig, SourceMapping
from actuals_consolidator.workbook import SourceWorkbook


def _config() -> RunConfig:
    return RunConfig(
        sources=[
            SourceMapping(
                source_path="C:\\Finance\\Jan Actuals.xlsx",
                source_sheet="P&L",
                account_range="$A$5:$A$40",
                value_range="C5:N40",
                entity_mode=DimensionMode.CONSTANT,
                entity_constant="  Corp ",
                department_mode=DimensionMode.RANGE,
                department_range="C4:N4",
                date_mode=DimensionMode.CONSTANT,
                date_constant="2026-01-31",
            ),
            SourceMapping(
                source_path="west.xlsx",
                source_sheet="Sheet1",
                account_range="B2:B9",
                value_range="D2:D9",
                date_mode=DimensionMode.RANGE,
                date_range="E2:E9",
                entity_range="left over",
            ),
        ],
        output_file_name="q1.xlsx",
        version="1.0.0",
        created_at_utc="2026-02-01T08:00:00+00:00",
    )


def test_encode_uses_document_keys_in_order() -> None:
    payload = encode_config(_config())

    assert list(payload) == ["version", "createdAtUtc", "outputFileName", "sources"]
    assert list(payload["sources"][0]) == [
        "sourcePath",
        "sourceSheet",
        "accountRange",
        "valueRange",
        "entityMode",
        "entityConstant",
        "entityRange",
        "departmentMode",
        "departmentConstant",
        "departmentRange",
        "dateMode",
        "dateConstant",
        "dateRange",
    ]
    assert payload["sources"][0]["departmentMode"] == "range"
    assert payload["sources"][0]["entityConstant"] == "  Corp "


def test_decode_encode_round_trip() -> None:
    config = _config()

    decoded = decode_config(json.loads(json.dumps(encode_config(config))))

    assert decoded == config
    assert [s.source_path for s in decoded.sources] == ["C:\\Finance\\Jan Actuals.xlsx", "west.xlsx"]


def test_round_trip_drops_attached_workbook() -> None:
    config = _config()
    config.sources[0].workbook = SourceWorkbook({})
    config.sources[0].file_name = "Jan Actuals.xlsx"

    decoded = decode_config(encode_config(config))

    assert decoded == config
    assert decoded.sources[0].workbook is None
    assert decoded.sources[0].file_name == ""


def test_round_trip_keeps_empty_output_name_and_version() -> None:
    config = RunConfig(sources=[SourceMapping()], output_file_name="", version="")

    decoded = decode_config(encode_config(config))

    assert decoded == config
    assert decoded.output_file_name == ""
    assert decoded.version == ""


def test_decode_applies_defaults() -> None:
    config = decode_config({"sources": [{}]})

    source = config.sources[0]
    assert config.output_file_name == "consolidated-actuals.xlsx"
    assert config.version == "1.0.0"
    assert source.entity_mode is DimensionMode.BLANK
    assert source.department_mode is DimensionMode.BLANK
    assert source.date_mode is DimensionMode.CONSTANT
    assert source.account_range == ""


@pytest.mark.parametrize("payload", [None, [], {"sources": "x"}, {"version": "1.0.0"}])
def test_decode_rejects_invalid_format(payload: object) -> None:
    with pytest.raises(ConfigurationError, match="Invalid config format"):
        decode_config(payload)


@pytest.mark.parametrize("count", [0, 13])
def test_decode_rejects_source_count_out_of_bounds(count: int) -> None:
    with pytest.raises(ConfigurationError, match="between 1 and 12"):
        decode_config({"sources": [{} for _ in range(count)]})


def test_decode_rejects_unknown_mode_with_position() -> None:
    with pytest.raises(ConfigurationError, match="File 2: entityMode"):
        decode_config({"sources": [{}, {"entityMode": "sometimes"}]})


def test_decode_rejects_blank_date_mode() -> None:
    with pytest.raises(ConfigurationError, match="dateMode"):
        decode_config({"sources": [{"dateMode": "blank"}]})


def test_decode_rejects_non_string_fields() -> None:
    with pytest.raises(ConfigurationError, match="File 1: accountRange must be a string"):
        decode_config({"sources": [{"accountRange": 5}]})


def test_save_then_load(tmp_path: Path) -> None:
    config = _config()
    path = save_config(tmp_path / "cfg" / "run.xf1config.json", config)

    loaded = load_config(path)
    raw = json.loads(path.read_text(encoding="utf-8"))

    assert loaded.sources == config.sources
    assert loaded.output_file_name == "q1.xlsx"
    assert loaded.created_at_utc != config.created_at_utc
    assert raw["createdAtUtc"] == loaded.created_at_utc
    assert list(raw) == ["version", "createdAtUtc", "outputFileName", "sources"]


def test_load_config_rejects_broken_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Unable to load config"):
        load_config(path)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("", "consolidated-actuals.xlsx"),
        ("   ", "consolidated-actuals.xlsx"),
        (None, "consolidated-actuals.xlsx"),
        (" q1 ", "q1.xlsx"),
        ("Q1.XLSX", "Q1.XLSX"),
        ("report.csv", "report.csv.xlsx"),
    ],
)
def test_normalize_output_file_name(name: str | None, expected: str) -> None:
    assert normalize_output_file_name(name) == expected


def test_build_config_file_name() -> None:
    assert (
        build_config_file_name(datetime(2026, 1, 5, 7, 8, 9))
        == "xf1-config-20260105-070809.xf1config.json"
    )
