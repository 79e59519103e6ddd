"""Run configuration documents — encode, decode, save, load.

A document looks like::

    {
      "version": "1.0.0",
      "createdAtUtc": "2026-01-31T09:00:00+00:00",
      "outputFileName": "consolidated-actuals.xlsx",
      "sources": [{"sourcePath": "...", "sourceSheet": "...", ...}]
    }

Attached workbooks are never persisted; decoded sources must have their
files reselected before a run.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from pathlib import Path
from typing import Any

from actuals_consolidator import (
    CONFIG_FILE_EXTENSION,
    CONFIG_VERSION,
    DEFAULT_OUTPUT_FILE_NAME,
    MAX_SOURCES,
)
from actuals_consolidator.errors import ConfigurationError
from actuals_consolidator.io import read_json, write_json
from actuals_consolidator.models import DimensionMode, RunConfig, SourceField, SourceMapping
from actuals_consolidator.utils import utcnow_iso

_MODE_DEFAULTS: dict[SourceField, DimensionMode] = {
    SourceField.ENTITY_MODE: DimensionMode.BLANK,
    SourceField.DEPARTMENT_MODE: DimensionMode.BLANK,
    SourceField.DATE_MODE: DimensionMode.CONSTANT,
}


def normalize_output_file_name(file_name: str | None) -> str:
    trimmed = (file_name or "").strip()
    if not trimmed:
        return DEFAULT_OUTPUT_FILE_NAME
    return trimmed if trimmed.lower().endswith(".xlsx") else f"{trimmed}.xlsx"


def build_config_file_name(now: datetime | None = None) -> str:
    """Return a timestamped file name such as ``xf1-config-20260131-090000.xf1config.json``."""
    now = now or datetime.now()
    return f"xf1-config-{now:%Y%m%d-%H%M%S}{CONFIG_FILE_EXTENSION}"


# ── Encoding ─────────────────────────────────────────────────────


def _encode_source(source: SourceMapping) -> dict[str, str]:
    payload: dict[str, str] = {}
    for source_field in SourceField:
        value = getattr(source, source_field.attr)
        payload[source_field.value] = value.value if isinstance(value, DimensionMode) else value
    return payload


def encode_config(config: RunConfig) -> dict[str, Any]:
    return {
        "version": config.version,
        "createdAtUtc": config.created_at_utc,
        "outputFileName": config.output_file_name,
        "sources": [_encode_source(source) for source in config.sources],
    }


# ── Decoding ─────────────────────────────────────────────────────


def _decode_text(raw: dict[str, Any], key: str, label: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"{key} must be a string.", label=label)
    return value


def _decode_source(raw: Any, source_number: int) -> SourceMapping:
    label = f"File {source_number}"
    if not isinstance(raw, dict):
        raise ConfigurationError("Invalid source entry.", label=label)

    kwargs: dict[str, Any] = {}
    for source_field in SourceField:
        value = _decode_text(raw, source_field.value, label)
        if source_field in _MODE_DEFAULTS and not value:
            kwargs[source_field.attr] = _MODE_DEFAULTS[source_field]
        else:
            kwargs[source_field.attr] = value
    try:
        return SourceMapping(**kwargs)
    except ConfigurationError as exc:
        raise ConfigurationError(exc.detail, label=label) from exc


def decode_config(payload: Any) -> RunConfig:
    """Build a :class:`RunConfig` from a parsed config document.

    Raises
    ------
    ConfigurationError
        If the document is malformed, has an unknown mode, or does not hold
        between 1 and ``MAX_SOURCES`` sources.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("sources"), list):
        raise ConfigurationError("Invalid config format.")

    raw_sources = payload["sources"]
    if not 1 <= len(raw_sources) <= MAX_SOURCES:
        raise ConfigurationError(f"Config must include between 1 and {MAX_SOURCES} sources.")

    return RunConfig(
        sources=[_decode_source(raw, idx) for idx, raw in enumerate(raw_sources, start=1)],
        output_file_name=_decode_text(
            payload, "outputFileName", "Config", DEFAULT_OUTPUT_FILE_NAME
        ),
        version=_decode_text(payload, "version", "Config", CONFIG_VERSION),
        created_at_utc=_decode_text(payload, "createdAtUtc", "Config"),
    )


# ── Files ────────────────────────────────────────────────────────


def save_config(path: Path, config: RunConfig) -> Path:
    """Write *config* to *path*, stamped with the current UTC time."""
    stamped = dataclasses.replace(config, created_at_utc=utcnow_iso())
    return write_json(path, encode_config(stamped), sort_keys=False)


def load_config(path: Path) -> RunConfig:
    try:
        payload = read_json(path)
    except ValueError as exc:
        raise ConfigurationError(f"Unable to load config. {exc}") from exc
    return decode_config(payload)
