"""Cell value helpers — the closed cell variant, text trimming, numeric parsing."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from numbers import Real
from typing import Union

CellValue = Union[int, float, str, datetime, date, time, timedelta, bool, None]
"""Raw value as delivered by the workbook-access layer."""


class CellKind(str, Enum):
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"
    OTHER = "other"


# ── Classification ──────────────────────────────────────────────


def cell_kind(value: object) -> CellKind:
    """Return the variant *value* belongs to.

    Booleans are reported as ``OTHER`` even though Python treats them as ints.
    """
    if value is None:
        return CellKind.EMPTY
    if isinstance(value, bool):
        return CellKind.OTHER
    if isinstance(value, Real):
        return CellKind.NUMBER
    if isinstance(value, str):
        return CellKind.TEXT
    if isinstance(value, (datetime, date, time, timedelta)):
        return CellKind.DATE
    return CellKind.OTHER


# ── Text ─────────────────────────────────────────────────────────


def trim_text(value: object) -> str:
    """Render *value* as stripped text; empty cells become ``""``."""
    kind = cell_kind(value)
    if kind is CellKind.EMPTY:
        return ""
    if kind is CellKind.NUMBER and isinstance(value, float) and value.is_integer():
        # 4000.0 is the account code "4000", not "4000.0"
        return str(int(value))
    return str(value).strip()


# ── Numbers ──────────────────────────────────────────────────────


_CURRENCY_RE = re.compile(r"[\$€£¥]")
_WHITESPACE_RE = re.compile(r"\s+")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def _parse_text_number(text: str) -> float | None:
    token = text.strip()
    if token in {"", "-"}:
        return None

    negative = False
    if token.startswith("(") and token.endswith(")"):
        negative = True
        token = token[1:-1]

    token = _CURRENCY_RE.sub("", token)
    token = token.replace(",", "")
    token = _WHITESPACE_RE.sub("", token)
    if not token or not _DECIMAL_RE.fullmatch(token):
        return None

    parsed = float(token)
    if not math.isfinite(parsed):
        return None
    return -parsed if negative else parsed


def parse_number(value: object) -> int | float | None:
    """Coerce a raw cell value to a finite number, or ``None`` if not numeric.

    ``0`` is numeric.  Text such as ``"$1,234.50"`` and ``"(500)"`` is
    accepted; parentheses mark a negative amount.
    """
    kind = cell_kind(value)
    if kind is CellKind.NUMBER:
        number = float(value)  # type: ignore[arg-type]
        if not math.isfinite(number):
            return None
        return value if isinstance(value, (int, float)) else number  # type: ignore[return-value]
    if kind is CellKind.TEXT:
        return _parse_text_number(value)  # type: ignore[arg-type]
    return None
