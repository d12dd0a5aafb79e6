"""
Command line interface for cellgeo.

Commands:
    cellgeo detect PATH...     Show the layout detected for local files
    cellgeo fetch GSE...       Download a series and build expression matrices
    cellgeo version            Print the installed version
"""

from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from cellgeo.config.settings import get_settings
from cellgeo.core.exceptions import CellGeoError
from cellgeo.core.expression import ExpressionMatrix
from cellgeo.services.geo.facade import SingleCellGEOService
from cellgeo.services.geo.format_detection import NotDetected, classify
from cellgeo.utils.logger import setup_cli_logging
from cellgeo.version import __version__

console = Console()

app = typer.Typer(
    name="cellgeo",
    help="Build single-cell expression matrices from GEO supplementary files",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show progress messages"
    ),
):
    """Configure logging before any command runs."""
    level = "INFO" if verbose else get_settings().LOG_LEVEL
    setup_cli_logging(level, console=Console(stderr=True))


def _expand_paths(paths: List[Path]) -> List[Path]:
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file()))
        else:
            files.append(path)
    return files


@app.command()
def detect(
    paths: List[Path] = typer.Argument(..., help="Files or directories to classify"),
):
    """Classify files into a supported layout and list the samples found."""
    files = _expand_paths(paths)
    format_info = classify(files)

    if isinstance(format_info, NotDetected):
        console.print(f"[red]No supported format detected[/red]: {format_info.reason}")
        raise typer.Exit(code=1)

    table = Table(title=f"Detected format: {format_info.format_kind.value}")
    table.add_column("Sample")
    table.add_column("Role")
    table.add_column("File")
    for sample_id, sample in format_info.samples.items():
        for role, path in sample.role_to_path.items():
            table.add_row(sample_id, role.value, str(path))
    console.print(table)


def _save(results: Dict[str, ExpressionMatrix], save: Path) -> None:
    for sample_id, matrix in results.items():
        target = save
        if len(results) > 1:
            target = save.with_name(f"{save.stem}_{sample_id}{save.suffix}")
        target.parent.mkdir(parents=True, exist_ok=True)
        matrix.to_anndata().write_h5ad(target)
        console.print(f"Saved {sample_id} to {target}")


@app.command()
def fetch(
    accession: str = typer.Argument(..., help="GEO series accession, e.g. GSE111108"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Download directory"
    ),
    min_cells: Optional[int] = typer.Option(
        None, "--min-cells", min=0, help="Minimum cells expressing a gene"
    ),
    min_features: Optional[int] = typer.Option(
        None, "--min-features", min=0, help="Minimum genes expressed per cell"
    ),
    project_name: Optional[str] = typer.Option(
        None, "--project-name", "-p", help="Project label (default: accession)"
    ),
    save: Optional[Path] = typer.Option(
        None, "--save", help="Write the result to this .h5ad file"
    ),
):
    """Download a GEO series and build expression matrices."""
    service = SingleCellGEOService(tool_version=__version__)
    try:
        result = service.fetch_dataset(
            accession,
            output_dir=output_dir,
            min_cells=min_cells,
            min_features=min_features,
            project_name=project_name,
        )
    except CellGeoError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)

    results = result if isinstance(result, dict) else {"sample1": result}

    table = Table(title=accession)
    table.add_column("Sample")
    table.add_column("Label")
    table.add_column("Genes", justify="right")
    table.add_column("Cells", justify="right")
    for sample_id, matrix in results.items():
        table.add_row(sample_id, matrix.label, str(matrix.n_genes), str(matrix.n_cells))
    console.print(table)

    if save is not None:
        _save(results, save)


@app.command()
def version():
    """Print the cellgeo version."""
    console.print(f"cellgeo {__version__}")
