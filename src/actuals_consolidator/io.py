"""I/O helpers — load source workbooks, read/write JSON artifacts."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any

from actuals_consolidator.workbook import SourceWorkbook

# ── Loading ──────────────────────────────────────────────────────


def load_source_workbook(path: Path) -> SourceWorkbook:
    """Read an ``.xlsx`` file into a :class:`SourceWorkbook`.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is a directory, not ``.xlsx``, or cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    if path.is_dir():
        raise ValueError(f"Source path is a directory, not a file: {path}")
    if path.suffix.lower() != ".xlsx":
        raise ValueError(f"Unsupported file type: {path.suffix!r}. Only .xlsx is supported")
    return SourceWorkbook.from_bytes(path.read_bytes(), name=path.name)


def read_json(path: Path) -> Any:
    """Parse the JSON document at *path*.

    Raises
    ------
    ValueError
        If the file cannot be read or is not valid JSON.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any, *, sort_keys: bool = True) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=sort_keys,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
