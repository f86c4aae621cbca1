"""
Dataset sequence count metadata.

Before screening, every dataset needs its total sequence count and the
number of reads sampled for alignment. These come either from the per-dataset
XML summaries written by the sequence counting and sampling steps:

    <SequenceCountSummary>
      <DatasetId>lib_A</DatasetId>
      <SequenceCount>2500000</SequenceCount>
    </SequenceCountSummary>

    <SamplingSummary>
      <DatasetId>lib_A</DatasetId>
      <SampledCount>100000</SampledCount>
    </SamplingSummary>

or from a single CSV/TSV table with columns dataset_id, sequence_count and
sampled_count. Adapter alignment files add an adapter read count per dataset.
"""

from __future__ import annotations

import gzip
import logging
import xml.etree.ElementTree as ET
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

import polars as pl
from pydantic import BaseModel, Field, ValidationError

from mgascreen.core.assignment import ScreeningContext
from mgascreen.core.constants import (
    DATASET_COUNT_COLUMNS,
    SAMPLING_SUMMARY_ROOT,
    SEQUENCE_COUNT_SUMMARY_ROOT,
    TEXT_FIELD_SEPARATOR,
    TEXT_READ_ID_FIELD,
)
from mgascreen.core.exceptions import MetadataError, UndecodableFileError
from mgascreen.core.io_utils import read_dataframe
from mgascreen.core.readers import parse_read_id

logger = logging.getLogger(__name__)


class DatasetCounts(BaseModel):
    """Sequence counts of one dataset, before any alignment."""

    model_config = {"frozen": True}

    dataset_id: str = Field(min_length=1, description="Dataset identifier")
    sequence_count: int = Field(default=0, ge=0, description="Reads before sampling")
    sampled_count: int = Field(default=0, ge=0, description="Reads fed to alignment")


def _parse_summary_xml(path: Path, root_name: str, count_name: str) -> tuple[str, int]:
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise MetadataError(path, f"not well-formed XML ({e})") from e

    if root.tag != root_name:
        raise MetadataError(path, f"root element is <{root.tag}>, expected <{root_name}>")

    dataset_id = (root.findtext("DatasetId") or "").strip()
    if not dataset_id:
        raise MetadataError(path, f"missing DatasetId child element of {root_name}")

    value = root.findtext(count_name)
    if value is None:
        raise MetadataError(path, f"missing {count_name} child element of {root_name}")
    try:
        count = int(value.strip())
    except ValueError:
        raise MetadataError(
            path, f"non-integer value of {count_name} child element of {root_name}"
        ) from None
    if count < 0:
        raise MetadataError(path, f"negative {count_name}: {count}")

    return dataset_id, count


def read_sequence_count_summary(path: Path) -> tuple[str, int]:
    """
    Read a sequence count summary XML file.

    Args:
        path: File with root element SequenceCountSummary

    Returns:
        Tuple of (dataset_id, sequence_count)

    Raises:
        MetadataError: If the file is not a valid sequence count summary
    """
    return _parse_summary_xml(path, SEQUENCE_COUNT_SUMMARY_ROOT, "SequenceCount")


def read_sampling_summary(path: Path) -> tuple[str, int]:
    """
    Read a sampling summary XML file.

    Args:
        path: File with root element SamplingSummary

    Returns:
        Tuple of (dataset_id, sampled_count)

    Raises:
        MetadataError: If the file is not a valid sampling summary
    """
    return _parse_summary_xml(path, SAMPLING_SUMMARY_ROOT, "SampledCount")


def collect_dataset_counts(
    count_files: Iterable[Path] = (),
    sampling_files: Iterable[Path] = (),
) -> list[DatasetCounts]:
    """
    Combine per-dataset XML summaries into one DatasetCounts per dataset.

    A dataset seen in only one kind of summary gets zero for the other count.
    When several files describe the same dataset, the last one read wins.

    Returns:
        DatasetCounts sorted by dataset id
    """
    sequence_counts: dict[str, int] = {}
    sampled_counts: dict[str, int] = {}

    for path in count_files:
        dataset_id, count = read_sequence_count_summary(Path(path))
        sequence_counts[dataset_id] = count
    for path in sampling_files:
        dataset_id, count = read_sampling_summary(Path(path))
        sampled_counts[dataset_id] = count

    dataset_ids = sorted(sequence_counts.keys() | sampled_counts.keys())
    logger.info("Read count metadata for %d datasets", len(dataset_ids))

    return [
        DatasetCounts(
            dataset_id=dataset_id,
            sequence_count=sequence_counts.get(dataset_id, 0),
            sampled_count=sampled_counts.get(dataset_id, 0),
        )
        for dataset_id in dataset_ids
    ]


def load_dataset_counts(path: Path) -> list[DatasetCounts]:
    """
    Load dataset counts from a CSV, TSV or Parquet table.

    Args:
        path: Table with columns dataset_id, sequence_count, sampled_count

    Returns:
        DatasetCounts in table order

    Raises:
        MetadataError: If the file is missing, unreadable, lacks required
            columns, repeats a dataset or has invalid counts
    """
    if not path.exists():
        raise MetadataError(path, "file not found")

    try:
        df = read_dataframe(path, infer_schema=False)
    except (ValueError, pl.exceptions.PolarsError) as e:
        raise MetadataError(path, str(e)) from e

    missing = set(DATASET_COUNT_COLUMNS) - set(df.columns)
    if missing:
        raise MetadataError(path, f"missing required columns: {sorted(missing)}")

    df = df.with_columns(pl.col("dataset_id").cast(pl.Utf8))

    duplicated = df.filter(pl.col("dataset_id").is_duplicated())["dataset_id"].unique()
    if len(duplicated) > 0:
        raise MetadataError(path, f"duplicate dataset ids: {sorted(duplicated.to_list())}")

    try:
        counts = [
            DatasetCounts.model_validate(row)
            for row in df.select(list(DATASET_COUNT_COLUMNS)).iter_rows(named=True)
        ]
    except ValidationError as e:
        raise MetadataError(path, str(e)) from e

    logger.info("Loaded count metadata for %d datasets from %s", len(counts), path)
    return counts


def seed_context(counts: Iterable[DatasetCounts]) -> ScreeningContext:
    """Create a ScreeningContext with one empty summary per dataset."""
    context = ScreeningContext()
    for dataset in counts:
        context.add_dataset(
            dataset.dataset_id,
            sequence_count=dataset.sequence_count,
            sampled_count=dataset.sampled_count,
        )
    return context


def count_adapter_alignments(path: Path) -> dict[str, int]:
    """
    Count reads matching adapter sequences in an adapter alignment file.

    The file is tab separated with the read name in the first field. A read
    may match several adapters, so distinct sequence ids are counted.

    Args:
        path: Adapter alignment file (optionally gzipped)

    Returns:
        Mapping of dataset id to number of distinct adapter-matching reads

    Raises:
        MalformedRecordError: If a read name is not "<dataset_id>_<sequence_id>"
        UndecodableFileError: If the file is not UTF-8 text
    """
    sequence_ids: dict[str, set[int]] = defaultdict(set)
    line_number = 0

    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt", encoding="utf-8") as handle:
        try:
            for line_number, line in enumerate(handle, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                read_id = line.split(TEXT_FIELD_SEPARATOR)[TEXT_READ_ID_FIELD]
                dataset_id, sequence_id = parse_read_id(read_id, path, line_number, "line")
                sequence_ids[dataset_id].add(sequence_id)
        except UnicodeDecodeError:
            raise UndecodableFileError(path, line_number + 1) from None

    return {dataset_id: len(ids) for dataset_id, ids in sequence_ids.items()}


def apply_adapter_counts(
    context: ScreeningContext,
    counts: dict[str, int],
    source: Path | None = None,
) -> None:
    """
    Add adapter read counts to the matching dataset summaries.

    Raises:
        UnknownDatasetError: If a dataset was not seeded in the context
    """
    for dataset_id, count in counts.items():
        summary = context.summary_for(dataset_id, source)
        summary.adapter_count += count
