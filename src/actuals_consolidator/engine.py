"""Consolidation engine — prepare sources, expand rows, run end to end.

``prepare_sources`` and ``expand`` are pure: they read the attached
workbooks and return new objects.  Only :class:`Consolidator` touches the
filesystem, through its sink.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

from actuals_consolidator import MAX_SOURCES
from actuals_consolidator.dimensions import check_multi_column, classify_dimension, resolve_axis
from actuals_consolidator.errors import ConfigurationError, RunInProgressError, ShapeMismatch
from actuals_consolidator.models import Axis, ConsolidatedRow, PreparedSource, SourceMapping
from actuals_consolidator.ranges import read_range_matrix
from actuals_consolidator.report import write_consolidated_workbook
from actuals_consolidator.values import parse_number, trim_text

RowSink = Callable[[Path, Sequence[ConsolidatedRow]], Path]


# ── Preparation ──────────────────────────────────────────────────


def prepare_source(mapping: SourceMapping, source_number: int) -> PreparedSource:
    """Validate one mapping and materialize its matrices.

    *source_number* is the 1-based position used in error messages.
    """
    label = f"File {source_number}"

    if mapping.workbook is None or not mapping.file_name:
        raise ConfigurationError(
            "Source file is required. Please select a .xlsx file.", label=label
        )
    if PurePath(mapping.file_name).suffix.lower() != ".xlsx":
        raise ConfigurationError("Only .xlsx source files are supported.", label=label)
    if not mapping.source_sheet:
        raise ConfigurationError("Source sheet is required.", label=label)

    sheet = mapping.workbook.sheet(mapping.source_sheet)
    if sheet is None:
        raise ConfigurationError(
            f'Sheet "{mapping.source_sheet}" was not found in selected file.', label=label
        )

    account_matrix = read_range_matrix(sheet, mapping.account_range, f"{label} Account range")
    value_matrix = read_range_matrix(sheet, mapping.value_range, f"{label} Value range")

    if account_matrix.cols != 1:
        raise ShapeMismatch("Account range must be a single column.", label=label)
    if account_matrix.rows != value_matrix.rows:
        raise ShapeMismatch(
            "Account and Value ranges must have the same row count "
            f"({account_matrix.rows} vs {value_matrix.rows}).",
            label=label,
        )

    specs = {
        axis: classify_dimension(
            axis,
            mapping.mode_for(axis),
            mapping.constant_for(axis),
            mapping.range_for(axis),
            value_matrix,
            sheet,
            f"{label} {axis.value}",
        )
        for axis in Axis
    }
    check_multi_column(specs.values(), value_matrix, label)

    return PreparedSource(
        source_file=mapping.source_path or mapping.file_name,
        source_sheet=mapping.source_sheet,
        account_matrix=account_matrix,
        value_matrix=value_matrix,
        entity=specs[Axis.ENTITY],
        department=specs[Axis.DEPARTMENT],
        date=specs[Axis.DATE],
    )


def prepare_sources(sources: Sequence[SourceMapping]) -> list[PreparedSource]:
    """Prepare every source in configured order; the first failure aborts."""
    if not sources:
        raise ConfigurationError("At least one source block is required.")
    if len(sources) > MAX_SOURCES:
        raise ConfigurationError(
            f"A run supports at most {MAX_SOURCES} sources (got {len(sources)})."
        )
    return [prepare_source(mapping, idx) for idx, mapping in enumerate(sources, start=1)]


# ── Expansion ────────────────────────────────────────────────────


def expand_source(prepared: PreparedSource) -> list[ConsolidatedRow]:
    rows: list[ConsolidatedRow] = []
    source_file = prepared.source_file
    source_sheet = prepared.source_sheet
    value_matrix = prepared.value_matrix

    for row_idx in range(value_matrix.rows):
        account = trim_text(prepared.account_matrix.cell(row_idx, 0))
        if not account:
            continue

        for col_idx in range(value_matrix.cols):
            value = parse_number(value_matrix.cell(row_idx, col_idx))
            if value is None:
                continue

            rows.append(
                ConsolidatedRow(
                    account=account,
                    entity=trim_text(resolve_axis(prepared.entity, row_idx, col_idx)),
                    department=trim_text(resolve_axis(prepared.department, row_idx, col_idx)),
                    # Dates pass through untouched, serial numbers included.
                    date=resolve_axis(prepared.date, row_idx, col_idx),
                    value=value,
                    source_file=source_file,
                    source_sheet=source_sheet,
                )
            )
    return rows


def expand(prepared_sources: Sequence[PreparedSource]) -> list[ConsolidatedRow]:
    """Generate output rows: sources in order, then rows, then Value columns."""
    rows: list[ConsolidatedRow] = []
    for prepared in prepared_sources:
        rows.extend(expand_source(prepared))
    return rows


# ── Run orchestration ────────────────────────────────────────────


@dataclass(frozen=True)
class RunResult:
    rows: list[ConsolidatedRow]
    output_path: Path

    @property
    def row_count(self) -> int:
        return len(self.rows)


class Consolidator:
    """Runs prepare → expand → write, one run at a time.

    A call to :meth:`run` while another run is active raises
    :class:`RunInProgressError` instead of waiting.  *on_status* receives
    short progress messages.
    """

    def __init__(
        self,
        sink: RowSink = write_consolidated_workbook,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self._sink = sink
        self._on_status = on_status
        self._lock = threading.Lock()

    def _status(self, message: str) -> None:
        if self._on_status is not None:
            self._on_status(message)

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def run(self, sources: Sequence[SourceMapping], output_path: Path) -> RunResult:
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError("A consolidation run is already in progress.")
        try:
            self._status("Validating source mappings …")
            prepared = prepare_sources(sources)
            self._status("Consolidating data …")
            rows = expand(prepared)
            self._status("Writing output workbook …")
            written = self._sink(Path(output_path), rows)
            return RunResult(rows=rows, output_path=written)
        finally:
            self._lock.release()
