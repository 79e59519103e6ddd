"""Excel output writer — produces the consolidated workbook."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from actuals_consolidator import OUTPUT_HEADERS
from actuals_consolidator.models import ConsolidatedRow

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)
VALUE_FONT = Font(name="Calibri", size=11)

VALUE_FMT = '#,##0.00'
DATE_FMT = 'yyyy-mm-dd'

SHEET_NAME = "Consolidated"

_AUTO_WIDTH_SAMPLE_ROWS = 300


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, 40)


def _excel_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, pd.Timestamp):
        dt = val.to_pydatetime()
        return dt.replace(tzinfo=None) if dt.tzinfo else dt

    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)

    return val


def rows_to_frame(rows: Sequence[ConsolidatedRow]) -> pd.DataFrame:
    """Return *rows* as a DataFrame with the fixed output headers.

    Columns are ``object`` dtype so raw Date values are not re-inferred.
    """
    return pd.DataFrame(
        [row.as_tuple() for row in rows], columns=OUTPUT_HEADERS, dtype=object
    )


def _df_to_sheet(wb: Workbook, name: str, df: pd.DataFrame) -> Worksheet:
    ws = wb.create_sheet(title=name)
    col_names = list(df.columns)

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=col_name)
    for r_idx, row_vals in enumerate(df.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            cell = ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
            if cell.data_type == "f":
                # openpyxl reads a leading "=" as a formula; store the text as-is
                cell.data_type = "s"
            if col_names[c_idx - 1] == "Value":
                cell.number_format = VALUE_FMT
            elif isinstance(cell.value, (datetime, date)):
                cell.number_format = DATE_FMT
    _style_header(ws, len(col_names))
    ws.freeze_panes = "A2"
    if len(df) > 0:
        ws.auto_filter.ref = ws.dimensions
    _auto_width(ws)
    return ws


# ── Public API ───────────────────────────────────────────────────


def write_consolidated_workbook(path: Path, rows: Sequence[ConsolidatedRow]) -> Path:
    """Write *rows* to a single-sheet ``.xlsx`` at *path* and return the path.

    An existing file at *path* is replaced wholesale.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _df_to_sheet(wb, SHEET_NAME, rows_to_frame(rows))

    tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
    wb.save(tmp_path)
    tmp_path.replace(path)
    return path
