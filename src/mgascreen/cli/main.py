"""
Main CLI entry point for mgascreen.

Provides subcommands for each stage of multi-genome alignment screening:
- assign: Merge per-genome alignments and assign reads to genomes
"""

from __future__ import annotations

import typer
from rich import print as rprint

from mgascreen import __version__

app = typer.Typer(
    name="mgascreen",
    help="Multi-genome alignment screening of sequencing datasets",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"mgascreen version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    mgascreen: multi-genome alignment screening.

    Reads sampled from each dataset are aligned against many reference
    genomes; mgascreen merges the sorted alignment files and reports which
    genome each read belongs to, breaking ties with a prior learned from the
    whole run.
    """


# Import subcommands
from mgascreen.cli import assign

# Register subcommands
app.add_typer(assign.app, name="assign")


if __name__ == "__main__":
    app()
