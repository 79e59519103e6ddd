"""CLI entry point for actuals-consolidator."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from actuals_consolidator import MAX_SOURCES, __version__
from actuals_consolidator.config import (
    build_config_file_name,
    load_config,
    normalize_output_file_name,
    save_config,
)
from actuals_consolidator.engine import Consolidator, expand_source, prepare_sources
from actuals_consolidator.errors import ConfigurationError, ConsolidationError
from actuals_consolidator.io import load_source_workbook, write_json
from actuals_consolidator.models import RunConfig, RunManifest
from actuals_consolidator.utils import resolve_source_path, sha256_file, utcnow_iso

app = typer.Typer(
    name="consolidate",
    help="actuals-consolidator — Merge mapped spreadsheet ranges into one normalized table.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"actuals-consolidator v{__version__}")
        raise typer.Exit()


def _attach_sources(
    config: RunConfig,
    config_path: Path,
    source_files: list[Path],
    echo: Callable[..., None],
) -> None:
    """Attach workbooks to configured sources, positionally.

    A source without an explicit ``--source`` falls back to its configured
    ``sourcePath`` when that file exists; otherwise it stays unattached.
    """
    if len(source_files) > len(config.sources):
        raise ConfigurationError(
            f"Got {len(source_files)} --source files for {len(config.sources)} configured sources."
        )

    for idx, mapping in enumerate(config.sources):
        label = f"File {idx + 1}"
        if idx < len(source_files):
            path: Path | None = source_files[idx]
        else:
            path = resolve_source_path(config_path.parent, mapping.source_path)
        if path is None:
            echo(f"  [yellow]![/yellow] {label}: no source file selected")
            continue

        workbook = load_source_workbook(path)
        try:
            mapping.attach(workbook, path.name)
        except ConfigurationError as exc:
            raise ConfigurationError(exc.detail, label=label) from exc
        echo(f"  {label}: {path.name} [dim]({mapping.source_sheet or 'no sheet'})[/dim]")


def _write_manifest(
    out_dir: Path, config_path: Path, output_path: Path, created_at: str, sources: int, rows_out: int
) -> Path:
    manifest = RunManifest(
        version=__version__,
        config_path=str(config_path.resolve()),
        output_path=str(output_path.resolve()),
        created_at_utc=created_at,
        sources=sources,
        rows_out=rows_out,
        sha256=sha256_file(output_path),
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """actuals-consolidator CLI."""


# ── init command ─────────────────────────────────────────────────


@app.command()
def init(
    out: Path | None = typer.Option(
        None, "--out", "-o",
        help="Where to write the config (default: timestamped name in the current directory).",
    ),
    sources: int = typer.Option(
        1, "--sources", "-n",
        min=1, max=MAX_SOURCES,
        help="Number of source blocks to create.",
    ),
    output_file_name: str = typer.Option(
        "", "--output-file-name",
        help="Output workbook name stored in the config.",
    ),
) -> None:
    """Write a config template with empty source blocks."""
    config = RunConfig(output_file_name=normalize_output_file_name(output_file_name))
    for _ in range(sources):
        config.add_source()
    path = out or Path(build_config_file_name())
    try:
        written = save_config(path, config)
    except OSError as exc:
        _err(f"Unable to save config. {exc}")
        raise typer.Exit(code=2)
    console.print(f"Config exported: {written}")


# ── sheets command ───────────────────────────────────────────────


@app.command()
def sheets(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an .xlsx workbook.",
        exists=True, readable=True,
    ),
) -> None:
    """List the worksheet names of a workbook."""
    try:
        workbook = load_source_workbook(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    for name in workbook.sheet_names:
        console.print(name, markup=False, highlight=False)


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    config_path: Path = typer.Option(
        ..., "--config", "-c",
        help="Path to a run config (.json).",
        exists=True, readable=True, dir_okay=False,
    ),
    source_files: list[Path] | None = typer.Option(
        None, "--source", "-s",
        help="Source .xlsx for each configured source, in order.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress the summary table.",
    ),
) -> None:
    """Check every source mapping without writing any output.

    Exit 0 = OK, exit 2 = configuration or shape failure.
    """
    echo = _printer(quiet)
    try:
        config = load_config(config_path)
        echo(Panel(
            f"[bold]actuals-consolidator[/bold] v{__version__}  [dim]validate mode[/dim]\n"
            f"Config: {config_path}",
            title="Validate", border_style="cyan",
        ))
        _attach_sources(config, config_path, source_files or [], echo)
        prepared = prepare_sources(config.sources)
    except (ConsolidationError, FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    if quiet:
        return

    tbl = RichTable(title="Validation Summary", show_lines=True)
    tbl.add_column("File", style="bold")
    tbl.add_column("Sheet")
    tbl.add_column("Value")
    tbl.add_column("Entity")
    tbl.add_column("Department")
    tbl.add_column("Date")
    tbl.add_column("Rows", justify="right")
    for idx, item in enumerate(prepared, start=1):
        tbl.add_row(
            f"{idx}: {item.source_file}",
            item.source_sheet,
            f"{item.value_matrix.rows} x {item.value_matrix.cols}",
            item.entity.shape.value,
            item.department.shape.value,
            item.date.shape.value,
            str(len(expand_source(item))),
        )
    tbl.add_row("Status", "[green]PASS[/green]", "", "", "", "", "")
    console.print(tbl)


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    config_path: Path = typer.Option(
        ..., "--config", "-c",
        help="Path to a run config (.json).",
        exists=True, readable=True, dir_okay=False,
    ),
    source_files: list[Path] | None = typer.Option(
        None, "--source", "-s",
        help=(
            "Source .xlsx for each configured source, in order. "
            "Omitted sources fall back to their configured sourcePath."
        ),
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for the consolidated workbook + manifest.",
    ),
    output_file_name: str | None = typer.Option(
        None, "--output-file-name",
        help="Override the output workbook name stored in the config.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output.",
    ),
) -> None:
    """Consolidate every configured source into one workbook."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    try:
        config = load_config(config_path)
        output_path = out_dir / normalize_output_file_name(
            output_file_name or config.output_file_name
        )
        echo(Panel(
            f"[bold]actuals-consolidator[/bold] v{__version__}\n"
            f"Config: {config_path}\nOutput: {output_path}",
            title="Consolidation Start", border_style="blue",
        ))
        _attach_sources(config, config_path, source_files or [], echo)

        consolidator = Consolidator(on_status=lambda msg: echo(f"[blue]>[/blue] {msg}"))
        result = consolidator.run(config.sources, output_path)
        manifest_path = _write_manifest(
            out_dir, config_path, result.output_path, created_at,
            sources=len(config.sources), rows_out=result.row_count,
        )
    except (ConsolidationError, FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    echo(f"  Manifest -> {manifest_path}")
    echo(Panel(
        f"[green]Consolidation complete.[/green] {result.row_count} rows written to "
        f"{result.output_path.name}.",
        title="Consolidation Complete", border_style="green",
    ))
