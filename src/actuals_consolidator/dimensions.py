"""Axis shape classification and per-position axis lookup."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from actuals_consolidator.errors import ConfigurationError, MultiColumnConflict, ShapeMismatch
from actuals_consolidator.models import Axis, DimensionMode, DimensionShape, DimensionSpec, Matrix
from actuals_consolidator.ranges import read_range_matrix
from actuals_consolidator.values import CellValue, trim_text
from actuals_consolidator.workbook import SheetView

RangeReader = Callable[[SheetView, str, str], Matrix]

_SHAPE_HINT = (
    "is incompatible with Value range shape. Use constant, blank, single-column "
    "with same rows, or 1 row x N columns matching Value columns."
)


def classify_shape(matrix: Matrix, value_matrix: Matrix, label: str) -> DimensionSpec:
    """Classify a range matrix against the Value matrix.

    Checked in order: 1x1 → single cell, one column spanning the Value rows →
    single column, one row spanning a multi-column Value → multi column.
    """
    if matrix.rows == 1 and matrix.cols == 1:
        return DimensionSpec(DimensionShape.SINGLE_CELL, matrix=matrix)
    if matrix.cols == 1 and matrix.rows == value_matrix.rows:
        return DimensionSpec(DimensionShape.SINGLE_COLUMN, matrix=matrix)
    if value_matrix.cols > 1 and matrix.rows == 1 and matrix.cols == value_matrix.cols:
        return DimensionSpec(DimensionShape.MULTI_COLUMN, matrix=matrix)
    raise ShapeMismatch(_SHAPE_HINT, label=label)


def classify_dimension(
    axis: Axis,
    mode: DimensionMode,
    constant_text: str,
    range_text: str,
    value_matrix: Matrix,
    sheet: SheetView,
    label: str,
    *,
    reader: RangeReader = read_range_matrix,
) -> DimensionSpec:
    """Resolve one axis mapping into a :class:`DimensionSpec`.

    Entity/Department constants are trimmed; a Date constant is kept exactly
    as supplied.
    """
    mode = DimensionMode(mode)
    if mode is DimensionMode.BLANK:
        if axis is Axis.DATE:
            raise ConfigurationError("mode must be constant or range.", label=label)
        return DimensionSpec(DimensionShape.BLANK, constant="")
    if mode is DimensionMode.CONSTANT:
        if axis is Axis.DATE:
            return DimensionSpec(DimensionShape.CONSTANT, constant=constant_text or "")
        return DimensionSpec(DimensionShape.CONSTANT, constant=trim_text(constant_text))

    matrix = reader(sheet, range_text, f"{label} range")
    return classify_shape(matrix, value_matrix, label)


def check_multi_column(specs: Iterable[DimensionSpec], value_matrix: Matrix, label: str) -> None:
    """Require exactly one multi-column axis for a wide Value range, none otherwise."""
    count = sum(1 for spec in specs if spec.shape is DimensionShape.MULTI_COLUMN)
    if value_matrix.cols > 1 and count != 1:
        raise MultiColumnConflict(
            "When Value has multiple columns, exactly one of Entity/Department/Date "
            "must be multi-column (1 row x N columns).",
            label=label,
        )
    if value_matrix.cols == 1 and count != 0:
        raise MultiColumnConflict(
            "Multi-column Entity/Department/Date is not allowed when Value has a single column.",
            label=label,
        )


def resolve_axis(spec: DimensionSpec, row: int, col: int) -> CellValue:
    """Return the raw axis value for Value position (*row*, *col*)."""
    shape = spec.shape
    if shape is DimensionShape.BLANK:
        return ""
    if shape is DimensionShape.CONSTANT:
        return spec.constant
    if spec.matrix is None:
        raise ValueError(f"{shape.value} dimension has no matrix")
    if shape is DimensionShape.SINGLE_CELL:
        return spec.matrix.cell(0, 0)
    if shape is DimensionShape.SINGLE_COLUMN:
        return spec.matrix.cell(row, 0)
    if shape is DimensionShape.MULTI_COLUMN:
        return spec.matrix.cell(0, col)
    raise ValueError(f"Unknown dimension shape: {shape!r}")
