"""A1 range parsing and range → matrix reads."""

from __future__ import annotations

import re
from typing import NamedTuple

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

from actuals_consolidator.errors import ConfigurationError, RangeOutOfBounds, RangeSyntaxError
from actuals_consolidator.models import Matrix
from actuals_consolidator.workbook import SheetView

_CELL_ADDRESS_RE = re.compile(r"^[A-Z]+[1-9][0-9]*$")

_INVALID_HINT = "is invalid. Please provide a valid A1 range like B10:B110."


class RangeBounds(NamedTuple):
    """Inclusive 1-based bounds of a decoded range."""

    min_row: int
    min_col: int
    max_row: int
    max_col: int

    @property
    def rows(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def cols(self) -> int:
        return self.max_col - self.min_col + 1


# ── Parsing ──────────────────────────────────────────────────────


def is_cell_address(token: str) -> bool:
    return bool(_CELL_ADDRESS_RE.fullmatch(token))


def normalize_range(text: str | None) -> str | None:
    """Return *text* as ``TOPLEFT:BOTTOMRIGHT``, or ``None`` if it is not a range.

    ``Sheet1!$b$10`` becomes ``B10:B10``; ``a1:c3`` becomes ``A1:C3``.
    """
    value = (text or "").strip().replace("$", "")
    if not value:
        return None

    bang = value.rfind("!")
    if bang >= 0:
        value = value[bang + 1:]
    value = value.upper()

    parts = value.split(":")
    if len(parts) == 1:
        return f"{parts[0]}:{parts[0]}" if is_cell_address(parts[0]) else None
    if len(parts) == 2 and is_cell_address(parts[0]) and is_cell_address(parts[1]):
        return f"{parts[0]}:{parts[1]}"
    return None


def decode_range(canonical: str, *, label: str = "Range") -> RangeBounds:
    """Decode a normalized ``A1:B2`` range into numeric bounds.

    The bounds are not reordered: ``B2:A1`` decodes to an empty span.
    """
    start, end = canonical.split(":")
    try:
        start_col, start_row = coordinate_from_string(start)
        end_col, end_row = coordinate_from_string(end)
        return RangeBounds(
            min_row=start_row,
            min_col=column_index_from_string(start_col),
            max_row=end_row,
            max_col=column_index_from_string(end_col),
        )
    except (CellCoordinatesException, ValueError) as exc:
        raise RangeOutOfBounds(f"{canonical} is outside the worksheet grid", label=label) from exc


# ── Reading ──────────────────────────────────────────────────────


def read_range_matrix(sheet: SheetView, range_text: str, label: str) -> Matrix:
    """Read *range_text* from *sheet* as a row-major :class:`Matrix`.

    Cells with no stored value are ``None``.

    Raises
    ------
    ConfigurationError
        If *range_text* is blank.
    RangeSyntaxError
        If *range_text* does not parse or decodes to no cells.
    RangeOutOfBounds
        If the span leaves the worksheet grid.
    """
    if not (range_text or "").strip():
        raise ConfigurationError("is required.", label=label)

    canonical = normalize_range(range_text)
    if canonical is None:
        raise RangeSyntaxError(_INVALID_HINT, label=label)

    bounds = decode_range(canonical, label=label)
    if bounds.rows < 1 or bounds.cols < 1:
        raise RangeSyntaxError(f"{canonical} must include at least one cell.", label=label)
    sheet.check_bounds(*bounds, label=label)

    values = tuple(
        tuple(sheet.value_at(row, col) for col in range(bounds.min_col, bounds.max_col + 1))
        for row in range(bounds.min_row, bounds.max_row + 1)
    )
    return Matrix(rows=bounds.rows, cols=bounds.cols, values=values)
