"""Data models shared across the package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral
from pathlib import PurePath
from typing import Any

from actuals_consolidator import CONFIG_VERSION, DEFAULT_OUTPUT_FILE_NAME, MAX_SOURCES, OUTPUT_HEADERS
from actuals_consolidator.errors import ConfigurationError
from actuals_consolidator.values import CellValue
from actuals_consolidator.workbook import SourceWorkbook


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


# ── Matrix ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Matrix:
    """Immutable row-major snapshot of one range read."""

    rows: int
    cols: int
    values: tuple[tuple[CellValue, ...], ...]

    def __post_init__(self) -> None:
        rows = _to_non_negative_int(self.rows, "rows")
        cols = _to_non_negative_int(self.cols, "cols")
        if rows < 1 or cols < 1:
            raise ValueError("Matrix must have at least one row and one column")
        grid = tuple(tuple(row) for row in self.values)
        if len(grid) != rows or any(len(row) != cols for row in grid):
            raise ValueError(f"Matrix values must be {rows} x {cols}")
        object.__setattr__(self, "values", grid)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[CellValue]]) -> Matrix:
        height = len(rows)
        width = len(rows[0]) if height else 0
        return cls(rows=height, cols=width, values=tuple(tuple(r) for r in rows))

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def cell(self, row: int, col: int) -> CellValue:
        return self.values[row][col]


# ── Dimensions ───────────────────────────────────────────────────


class Axis(str, Enum):
    ENTITY = "Entity"
    DEPARTMENT = "Department"
    DATE = "Date"


class DimensionMode(str, Enum):
    BLANK = "blank"
    CONSTANT = "constant"
    RANGE = "range"


class DimensionShape(str, Enum):
    BLANK = "blank"
    CONSTANT = "constant"
    SINGLE_CELL = "singleCell"
    SINGLE_COLUMN = "singleColumn"
    MULTI_COLUMN = "multiColumn"


@dataclass(frozen=True)
class DimensionSpec:
    """Resolved shape of one axis for one source."""

    shape: DimensionShape
    constant: CellValue = None
    matrix: Matrix | None = None


# ── Source mapping ───────────────────────────────────────────────


class SourceField(str, Enum):
    """Persisted per-source fields, valued by their config-document key."""

    SOURCE_PATH = "sourcePath"
    SOURCE_SHEET = "sourceSheet"
    ACCOUNT_RANGE = "accountRange"
    VALUE_RANGE = "valueRange"
    ENTITY_MODE = "entityMode"
    ENTITY_CONSTANT = "entityConstant"
    ENTITY_RANGE = "entityRange"
    DEPARTMENT_MODE = "departmentMode"
    DEPARTMENT_CONSTANT = "departmentConstant"
    DEPARTMENT_RANGE = "departmentRange"
    DATE_MODE = "dateMode"
    DATE_CONSTANT = "dateConstant"
    DATE_RANGE = "dateRange"

    @property
    def attr(self) -> str:
        return self.name.lower()


_MODE_FIELDS = {SourceField.ENTITY_MODE, SourceField.DEPARTMENT_MODE, SourceField.DATE_MODE}


def _to_mode(value: Any, field_name: str) -> DimensionMode:
    try:
        return DimensionMode(value)
    except ValueError:
        raise ConfigurationError(
            f"{field_name} must be one of: blank, constant, range (got {value!r})"
        ) from None


@dataclass
class SourceMapping:
    """User-edited mapping for one source block.

    ``workbook`` and ``file_name`` describe the attached file and are never
    persisted; a mapping loaded from a config has neither until a file is
    reselected.
    """

    source_path: str = ""
    source_sheet: str = ""
    account_range: str = ""
    value_range: str = ""
    entity_mode: DimensionMode = DimensionMode.BLANK
    entity_constant: str = ""
    entity_range: str = ""
    department_mode: DimensionMode = DimensionMode.BLANK
    department_constant: str = ""
    department_range: str = ""
    date_mode: DimensionMode = DimensionMode.CONSTANT
    date_constant: str = ""
    date_range: str = ""
    workbook: SourceWorkbook | None = field(default=None, repr=False, compare=False)
    file_name: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        self.entity_mode = _to_mode(self.entity_mode, "entityMode")
        self.department_mode = _to_mode(self.department_mode, "departmentMode")
        self.date_mode = _to_mode(self.date_mode, "dateMode")
        if self.date_mode is DimensionMode.BLANK:
            raise ConfigurationError("dateMode must be constant or range")

    def update(self, source_field: SourceField, value: str) -> None:
        """Set one persisted field, validating mode values."""
        source_field = SourceField(source_field)
        if source_field in _MODE_FIELDS:
            mode = _to_mode(value, source_field.value)
            if source_field is SourceField.DATE_MODE and mode is DimensionMode.BLANK:
                raise ConfigurationError("dateMode must be constant or range")
            setattr(self, source_field.attr, mode)
            return
        setattr(self, source_field.attr, value)

    def mode_for(self, axis: Axis) -> DimensionMode:
        if axis is Axis.ENTITY:
            return self.entity_mode
        if axis is Axis.DEPARTMENT:
            return self.department_mode
        if axis is Axis.DATE:
            return self.date_mode
        raise ValueError(f"Unknown axis: {axis!r}")

    def constant_for(self, axis: Axis) -> str:
        if axis is Axis.ENTITY:
            return self.entity_constant
        if axis is Axis.DEPARTMENT:
            return self.department_constant
        if axis is Axis.DATE:
            return self.date_constant
        raise ValueError(f"Unknown axis: {axis!r}")

    def range_for(self, axis: Axis) -> str:
        if axis is Axis.ENTITY:
            return self.entity_range
        if axis is Axis.DEPARTMENT:
            return self.department_range
        if axis is Axis.DATE:
            return self.date_range
        raise ValueError(f"Unknown axis: {axis!r}")

    @property
    def is_attached(self) -> bool:
        return self.workbook is not None and bool(self.file_name)

    def attach(self, workbook: SourceWorkbook, file_name: str) -> None:
        """Attach an opened ``.xlsx`` workbook to this mapping.

        Keeps the configured sheet when the workbook has it, otherwise selects
        the first sheet.  An empty ``source_path`` defaults to *file_name*.
        """
        if PurePath(file_name).suffix.lower() != ".xlsx":
            raise ConfigurationError(f"{file_name} is not .xlsx. Please choose a .xlsx file.")
        self.workbook = workbook
        self.file_name = file_name
        if self.source_sheet not in workbook.sheet_names:
            self.source_sheet = workbook.sheet_names[0] if workbook.sheet_names else ""
        if not self.source_path:
            self.source_path = file_name

    def detach(self) -> None:
        self.workbook = None
        self.file_name = ""
        self.source_sheet = ""


# ── Prepared source / output rows ────────────────────────────────


@dataclass(frozen=True)
class PreparedSource:
    """One validated source, ready for expansion.

    Provenance is captured at preparation so later edits to the mapping do
    not leak into the expanded rows.
    """

    source_file: str
    source_sheet: str
    account_matrix: Matrix
    value_matrix: Matrix
    entity: DimensionSpec
    department: DimensionSpec
    date: DimensionSpec

    def dimension(self, axis: Axis) -> DimensionSpec:
        if axis is Axis.ENTITY:
            return self.entity
        if axis is Axis.DEPARTMENT:
            return self.department
        if axis is Axis.DATE:
            return self.date
        raise ValueError(f"Unknown axis: {axis!r}")


@dataclass(frozen=True)
class ConsolidatedRow:
    account: str
    entity: str
    department: str
    date: CellValue
    value: int | float
    source_file: str
    source_sheet: str

    def as_tuple(self) -> tuple[Any, ...]:
        return (
            self.account,
            self.entity,
            self.department,
            self.date,
            self.value,
            self.source_file,
            self.source_sheet,
        )

    def to_dict(self) -> dict[str, Any]:
        return dict(zip(OUTPUT_HEADERS, self.as_tuple()))


# ── Run configuration ────────────────────────────────────────────


@dataclass
class RunConfig:
    """Unit of save/load: ordered sources plus output settings."""

    sources: list[SourceMapping] = field(default_factory=list)
    output_file_name: str = DEFAULT_OUTPUT_FILE_NAME
    version: str = CONFIG_VERSION
    created_at_utc: str = ""

    def add_source(self) -> SourceMapping:
        if len(self.sources) >= MAX_SOURCES:
            raise ConfigurationError(
                f"You can configure a maximum of {MAX_SOURCES} source files in one run."
            )
        source = SourceMapping()
        self.sources.append(source)
        return source

    def remove_source(self, index: int) -> SourceMapping:
        if len(self.sources) <= 1:
            raise ConfigurationError("At least one source block is required.")
        return self.sources.pop(index)


@dataclass
class RunManifest:
    """Audit-trail manifest for a successful run."""

    tool: str = "actuals-consolidator"
    version: str = ""
    config_path: str = ""
    output_path: str = ""
    created_at_utc: str = ""
    sources: int = 0
    rows_out: int = 0
    sha256: str = ""

    def __post_init__(self) -> None:
        self.sources = _to_non_negative_int(self.sources, "sources")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "config_path": self.config_path,
            "output_path": self.output_path,
            "created_at_utc": self.created_at_utc,
            "sources": self.sources,
            "rows_out": self.rows_out,
            "sha256": self.sha256,
        }
