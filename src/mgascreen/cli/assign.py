"""
Assign command for multi-genome alignment screening.

Merges the per-genome alignment files of a run, breaks ties between equally
good alignments with a genome prior learned in a first pass, and writes one
summary row per dataset and reference genome.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mgascreen.cli.utils import QuietConsole, configure_logging, spinner_progress
from mgascreen.core.assignment import ScreeningResult, screen_alignments
from mgascreen.core.discovery import find_alignment_files
from mgascreen.core.exceptions import ConfigurationError, MgaScreenError
from mgascreen.core.io_utils import summaries_to_dataframe, write_dataframe
from mgascreen.core.metadata import (
    DatasetCounts,
    apply_adapter_counts,
    collect_dataset_counts,
    count_adapter_alignments,
    load_dataset_counts,
    seed_context,
)
from mgascreen.models.config import ScreenConfig

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="assign",
    help="Assign reads to reference genomes from multi-genome alignments",
    no_args_is_help=True,
)

console = Console()


def load_config(
    config_path: Path | None,
    **overrides: str | None,
) -> ScreenConfig:
    """
    Build the run configuration from an optional YAML file and CLI overrides.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid
    """
    try:
        config = ScreenConfig.from_yaml(config_path) if config_path else ScreenConfig()
        return config.with_overrides(**overrides)
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            suggestion="Check the YAML file and the --aligner/--format/--output-format values.",
        ) from e


def load_counts(
    counts: Path | None,
    count_summaries: list[Path],
    sampling_summaries: list[Path],
) -> list[DatasetCounts]:
    """
    Load dataset counts from a table or from per-dataset XML summaries.

    Raises:
        ConfigurationError: If neither or both sources are given
        MetadataError: If a metadata file is invalid
    """
    summaries_given = bool(count_summaries or sampling_summaries)
    if counts and summaries_given:
        raise ConfigurationError(
            "Both --counts and XML summaries were given",
            suggestion="Use either --counts or --count-summary/--sampling-summary.",
        )
    if counts:
        return load_dataset_counts(counts)
    if summaries_given:
        return collect_dataset_counts(count_summaries, sampling_summaries)
    raise ConfigurationError(
        "No dataset sequence counts given",
        suggestion="Pass a dataset table with --counts, or --count-summary and --sampling-summary files.",
    )


def display_results(result: ScreeningResult, out: QuietConsole) -> None:
    """Print one table per dataset with its per-genome counts."""
    for summary in result.summaries.values():
        title = (
            f"{summary.dataset_id}: {summary.sampled_count:,} sampled, "
            f"{summary.aligned_count:,} aligned ({summary.aligned_pct:.1f}%), "
            f"{summary.adapter_count:,} adapter, {summary.unmapped_count:,} unmapped"
        )
        table = Table(title=escape(title), show_header=True)
        table.add_column("Reference Genome", style="cyan", no_wrap=True)
        table.add_column("Aligned", justify="right", style="magenta")
        table.add_column("Unique", justify="right")
        table.add_column("Preferential", justify="right")
        table.add_column("Assigned", justify="right", style="green")
        table.add_column("Error Rate", justify="right", style="yellow")

        for genome_id in summary.reference_genome_ids:
            genome = summary.alignment_summaries[genome_id]
            table.add_row(
                escape(genome_id),
                f"{genome.aligned_count:,}",
                f"{genome.uniquely_aligned_count:,}",
                f"{genome.preferentially_aligned_count:,}",
                f"{genome.assigned_count:,}",
                f"{genome.assigned_error_rate:.4f}",
            )

        out.print()
        out.print(table)


@app.command(name="run")
def run(
    alignment_paths: list[Path] = typer.Argument(
        ...,
        help="Alignment files and/or directories containing them",
    ),
    run_id: str | None = typer.Option(
        None,
        "--run-id",
        "-r",
        help="Run identifier prefixed to alignment file names",
    ),
    aligner: str | None = typer.Option(
        None,
        "--aligner",
        "-a",
        help="Aligner name in the alignment file suffix (default: bowtie)",
    ),
    alignment_format: str | None = typer.Option(
        None,
        "--format",
        "-f",
        help="Alignment record format: 'auto', 'text' (bowtie) or 'sam'",
    ),
    counts: Path | None = typer.Option(
        None,
        "--counts",
        "-c",
        help="Dataset table (CSV/TSV/Parquet) with dataset_id, sequence_count, sampled_count",
    ),
    count_summaries: list[Path] | None = typer.Option(
        None,
        "--count-summary",
        help="SequenceCountSummary XML file (repeatable)",
    ),
    sampling_summaries: list[Path] | None = typer.Option(
        None,
        "--sampling-summary",
        help="SamplingSummary XML file (repeatable)",
    ),
    adapter_alignments: list[Path] | None = typer.Option(
        None,
        "--adapter-alignment",
        help="Adapter alignment file (repeatable)",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file; command-line options take precedence",
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output summary table, one row per dataset and genome",
    ),
    output_format: str | None = typer.Option(
        None,
        "--output-format",
        help="Output format: 'csv' or 'parquet' (default: from --output extension)",
    ),
    json_output: Path | None = typer.Option(
        None,
        "--json",
        help="Also write the full screening result as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress progress output (for scripting)",
    ),
) -> None:
    """
    Assign sampled reads to reference genomes.

    Alignment files must be named
    <run_id>.<dataset_id>.<reference_genome_id>.<aligner>.alignment and be
    sorted by dataset id, then sequence id, then mismatch count.

    Example:

        mgascreen assign run alignments/ \\
            --run-id RUN01 \\
            --counts datasets.tsv \\
            --output summary.csv

        # Per-dataset XML summaries and adapter alignments:
        mgascreen assign run alignments/ \\
            --run-id RUN01 \\
            --count-summary lib_A.count.xml --sampling-summary lib_A.sampled.xml \\
            --adapter-alignment RUN01.lib_A.adapter.alignment \\
            --output summary.parquet --json result.json
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, verbose=verbose)

    out.print("\n[bold blue]mgascreen Multi-Genome Alignment Screening[/bold blue]\n")

    if output_format is None and output.suffix.lower() == ".parquet":
        output_format = "parquet"

    try:
        config = load_config(
            config_path,
            run_id=run_id,
            aligner=aligner,
            alignment_format=alignment_format.lower() if alignment_format else None,
            output_format=output_format.lower() if output_format else None,
        )

        dataset_counts = load_counts(counts, count_summaries or [], sampling_summaries or [])
        context = seed_context(dataset_counts)
        out.print(f"[dim]Datasets: {len(context.summaries)}[/dim]")

        for path in adapter_alignments or []:
            apply_adapter_counts(context, count_adapter_alignments(path), path)

        sources = find_alignment_files(alignment_paths, config.aligner, config.run_id)
        if not sources:
            raise ConfigurationError(
                f"No {config.alignment_suffix} files found",
                suggestion="Check the alignment paths, --aligner and --run-id.",
            )
        out.print(
            f"[dim]Alignment files: {len(sources)} "
            f"({config.resolved_format()} format)[/dim]"
        )

        with spinner_progress("Screening alignments...", console, quiet):
            result = screen_alignments(sources, context, config)

        output.parent.mkdir(parents=True, exist_ok=True)
        write_dataframe(
            summaries_to_dataframe(result.summaries.values()),
            output,
            config.output_format,
        )
        if json_output:
            json_output.parent.mkdir(parents=True, exist_ok=True)
            result.to_json(json_output)

    except MgaScreenError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        if e.suggestion:
            console.print(f"[dim]Suggestion: {escape(e.suggestion)}[/dim]")
        raise typer.Exit(code=1) from None
    except OSError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    display_results(result, out)

    out.print(f"\n[green]Summary written to:[/green] {output}")
    if json_output:
        out.print(f"[green]Screening result written to:[/green] {json_output}")
