"""
I/O utilities for DataFrame serialization.

Provides consistent handling of output formats (CSV/Parquet) and the flat
tabular view of screening summaries.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import polars as pl

from mgascreen.models.config import OutputFormat
from mgascreen.models.summary import MultiGenomeAlignmentSummary

SUMMARY_SCHEMA: dict[str, type[pl.DataType]] = {
    "dataset_id": pl.Utf8,
    "sequence_count": pl.Int64,
    "sampled_count": pl.Int64,
    "adapter_count": pl.Int64,
    "unmapped_count": pl.Int64,
    "aligned_read_count": pl.Int64,
    "reference_genome_id": pl.Utf8,
    "aligned_count": pl.Int64,
    "aligned_error_rate": pl.Float64,
    "uniquely_aligned_count": pl.Int64,
    "uniquely_aligned_error_rate": pl.Float64,
    "preferentially_aligned_count": pl.Int64,
    "preferentially_aligned_error_rate": pl.Float64,
    "assigned_count": pl.Int64,
    "assigned_error_rate": pl.Float64,
}


def write_dataframe(
    df: pl.DataFrame,
    path: Path,
    output_format: OutputFormat = "csv",
) -> None:
    """
    Write DataFrame to file in specified format.

    For Parquet output, uses zstd compression.

    Args:
        df: Polars DataFrame to write.
        path: Output file path.
        output_format: Output format - 'csv' or 'parquet'.

    Example:
        >>> df = pl.DataFrame({"a": [1, 2, 3]})
        >>> write_dataframe(df, Path("output.parquet"), "parquet")
    """
    if output_format == "parquet":
        df.write_parquet(path, compression="zstd")
    else:
        df.write_csv(path)


def read_dataframe(path: Path, infer_schema: bool = True) -> pl.DataFrame:
    """
    Read DataFrame from file, auto-detecting format from extension.

    Supports: .csv, .tsv, .parquet, .csv.gz, .tsv.gz

    Args:
        path: Input file path.
        infer_schema: If False, delimited files are read with every column
            as a string.

    Returns:
        Polars DataFrame.

    Raises:
        ValueError: If file extension is not recognized.
    """
    suffix = path.suffix.lower()
    name = path.name.lower()
    csv_options = {} if infer_schema else {"infer_schema_length": 0}

    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix == ".csv" or name.endswith(".csv.gz"):
        return pl.read_csv(path, **csv_options)
    if suffix == ".tsv" or name.endswith(".tsv.gz"):
        return pl.read_csv(path, separator="\t", **csv_options)
    msg = f"Unrecognized file format: {path}"
    raise ValueError(msg)


def summaries_to_dataframe(
    summaries: Iterable[MultiGenomeAlignmentSummary],
) -> pl.DataFrame:
    """
    Flatten dataset summaries into one row per (dataset, genome).

    Datasets without any alignment still get a single row with a null
    reference genome so their counts are not lost. Rows are sorted by
    dataset id then reference genome id.

    Args:
        summaries: Dataset summaries after screening

    Returns:
        DataFrame with the columns of SUMMARY_SCHEMA
    """
    rows = []
    for summary in sorted(summaries, key=lambda s: s.dataset_id):
        dataset_columns = {
            "dataset_id": summary.dataset_id,
            "sequence_count": summary.sequence_count,
            "sampled_count": summary.sampled_count,
            "adapter_count": summary.adapter_count,
            "unmapped_count": summary.unmapped_count,
            "aligned_read_count": summary.aligned_count,
        }
        if not summary.alignment_summaries:
            rows.append({**dataset_columns, "reference_genome_id": None})
            continue
        for genome_id in summary.reference_genome_ids:
            genome = summary.alignment_summaries[genome_id]
            rows.append({
                **dataset_columns,
                "reference_genome_id": genome_id,
                "aligned_count": genome.aligned_count,
                "aligned_error_rate": genome.aligned_error_rate,
                "uniquely_aligned_count": genome.uniquely_aligned_count,
                "uniquely_aligned_error_rate": genome.uniquely_aligned_error_rate,
                "preferentially_aligned_count": genome.preferentially_aligned_count,
                "preferentially_aligned_error_rate": genome.preferentially_aligned_error_rate,
                "assigned_count": genome.assigned_count,
                "assigned_error_rate": genome.assigned_error_rate,
            })

    return pl.DataFrame(rows, schema=SUMMARY_SCHEMA)
