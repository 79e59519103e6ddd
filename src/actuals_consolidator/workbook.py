"""Read-only workbook access — sheet names and per-sheet cell lookup."""

from __future__ import annotations

import zipfile
from collections.abc import Mapping
from io import BytesIO

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from actuals_consolidator.errors import RangeOutOfBounds
from actuals_consolidator.values import CellValue

# Worksheet grid limits of the .xlsx format.
MAX_ROW = 1_048_576
MAX_COLUMN = 16_384


class SheetView:
    """Address → value lookup over one worksheet (1-based row/column).

    Cells with no stored value read as ``None``.
    """

    def __init__(self, title: str, cells: Mapping[tuple[int, int], CellValue]) -> None:
        self.title = title
        self._cells = dict(cells)

    def __repr__(self) -> str:
        return f"SheetView({self.title!r}, {len(self._cells)} cells)"

    def value_at(self, row: int, column: int) -> CellValue:
        return self._cells.get((row, column))

    def check_bounds(
        self, min_row: int, min_col: int, max_row: int, max_col: int, *, label: str
    ) -> None:
        """Raise :class:`RangeOutOfBounds` if the span leaves the worksheet grid."""
        if min_row < 1 or min_col < 1 or max_row > MAX_ROW or max_col > MAX_COLUMN:
            raise RangeOutOfBounds(
                f"range exceeds the worksheet grid ({MAX_ROW} rows x {MAX_COLUMN} columns)",
                label=label,
            )


class SourceWorkbook:
    """Immutable in-memory snapshot of a source workbook's stored values."""

    def __init__(self, sheets: Mapping[str, SheetView]) -> None:
        self._sheets = dict(sheets)

    @property
    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def sheet(self, name: str) -> SheetView | None:
        return self._sheets.get(name)

    @classmethod
    def from_workbook(cls, wb: Workbook) -> SourceWorkbook:
        sheets: dict[str, SheetView] = {}
        for ws in wb.worksheets:
            cells: dict[tuple[int, int], CellValue] = {}
            for row in ws.iter_rows():
                for cell in row:
                    if cell.value is not None:
                        cells[(cell.row, cell.column)] = cell.value
            sheets[ws.title] = SheetView(ws.title, cells)
        return cls(sheets)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "workbook") -> SourceWorkbook:
        """Parse ``.xlsx`` bytes, reading cached formula results.

        Raises
        ------
        ValueError
            If *data* is not a readable ``.xlsx`` workbook.
        """
        try:
            wb = load_workbook(BytesIO(data), data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise ValueError(f"Unable to read {name}: {exc}") from exc
        try:
            return cls.from_workbook(wb)
        finally:
            wb.close()
