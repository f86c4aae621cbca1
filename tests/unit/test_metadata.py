"""
Unit tests for dataset count metadata loading and adapter counting.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from mgascreen.core.exceptions import (
    MalformedRecordError,
    MetadataError,
    UndecodableFileError,
    UnknownDatasetError,
)
from mgascreen.core.metadata import (
    DatasetCounts,
    apply_adapter_counts,
    collect_dataset_counts,
    count_adapter_alignments,
    load_dataset_counts,
    read_sampling_summary,
    read_sequence_count_summary,
    seed_context,
)


def write_count_summary(path: Path, dataset_id: str, count: str) -> Path:
    path.write_text(
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n"
        f"<SequenceCountSummary><DatasetId>{dataset_id}</DatasetId>"
        f"<SequenceCount>{count}</SequenceCount></SequenceCountSummary>\n"
    )
    return path


def write_sampling_summary(path: Path, dataset_id: str, count: str) -> Path:
    path.write_text(
        f"<SamplingSummary><DatasetId>{dataset_id}</DatasetId>"
        f"<SampledCount>{count}</SampledCount></SamplingSummary>\n"
    )
    return path


class TestSummaryXml:
    """Tests for the per-dataset XML summaries."""

    def test_sequence_count_summary(self, temp_dir: Path) -> None:
        path = write_count_summary(temp_dir / "a.count.xml", "lib_A", "2500000")
        assert read_sequence_count_summary(path) == ("lib_A", 2500000)

    def test_sampling_summary(self, temp_dir: Path) -> None:
        path = write_sampling_summary(temp_dir / "a.sampled.xml", "lib_A", " 100000 ")
        assert read_sampling_summary(path) == ("lib_A", 100000)

    def test_wrong_root(self, temp_dir: Path) -> None:
        path = write_sampling_summary(temp_dir / "a.xml", "lib_A", "10")
        with pytest.raises(MetadataError, match="expected <SequenceCountSummary>"):
            read_sequence_count_summary(path)

    def test_missing_count(self, temp_dir: Path) -> None:
        path = temp_dir / "a.xml"
        path.write_text("<SamplingSummary><DatasetId>x</DatasetId></SamplingSummary>")
        with pytest.raises(MetadataError, match="missing SampledCount"):
            read_sampling_summary(path)

    def test_non_integer_count(self, temp_dir: Path) -> None:
        path = write_count_summary(temp_dir / "a.xml", "lib_A", "many")
        with pytest.raises(MetadataError, match="non-integer value of SequenceCount"):
            read_sequence_count_summary(path)

    def test_not_xml(self, temp_dir: Path) -> None:
        path = temp_dir / "a.xml"
        path.write_text("dataset_id,count\n")
        with pytest.raises(MetadataError, match="not well-formed"):
            read_sequence_count_summary(path)

    def test_collect_merges_per_dataset(self, temp_dir: Path) -> None:
        counts = [
            write_count_summary(temp_dir / "b.count.xml", "B", "50"),
            write_count_summary(temp_dir / "a.count.xml", "A", "100"),
        ]
        sampling = [write_sampling_summary(temp_dir / "a.sampled.xml", "A", "10")]

        result = collect_dataset_counts(counts, sampling)

        assert result == [
            DatasetCounts(dataset_id="A", sequence_count=100, sampled_count=10),
            DatasetCounts(dataset_id="B", sequence_count=50, sampled_count=0),
        ]


class TestDatasetTable:
    """Tests for the CSV/TSV dataset table."""

    def test_load_tsv(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.tsv"
        path.write_text("dataset_id\tsequence_count\tsampled_count\nlib_A\t1000\t100\n007\t50\t5\n")

        counts = load_dataset_counts(path)

        assert counts == [
            DatasetCounts(dataset_id="lib_A", sequence_count=1000, sampled_count=100),
            DatasetCounts(dataset_id="007", sequence_count=50, sampled_count=5),
        ]

    def test_load_csv_with_extra_columns(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.csv"
        pl.DataFrame({
            "dataset_id": ["A"],
            "sample_name": ["liver"],
            "sequence_count": [10],
            "sampled_count": [3],
        }).write_csv(path)

        assert load_dataset_counts(path) == [
            DatasetCounts(dataset_id="A", sequence_count=10, sampled_count=3)
        ]

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(MetadataError, match="file not found"):
            load_dataset_counts(temp_dir / "missing.tsv")

    def test_missing_columns(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.csv"
        path.write_text("dataset_id,sequence_count\nA,10\n")
        with pytest.raises(MetadataError, match="sampled_count"):
            load_dataset_counts(path)

    def test_duplicate_dataset(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.csv"
        path.write_text("dataset_id,sequence_count,sampled_count\nA,10,1\nA,20,2\n")
        with pytest.raises(MetadataError, match="duplicate dataset ids"):
            load_dataset_counts(path)

    def test_negative_count(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.csv"
        path.write_text("dataset_id,sequence_count,sampled_count\nA,10,-1\n")
        with pytest.raises(MetadataError):
            load_dataset_counts(path)

    def test_unrecognized_extension(self, temp_dir: Path) -> None:
        path = temp_dir / "datasets.txt"
        path.write_text("dataset_id,sequence_count,sampled_count\n")
        with pytest.raises(MetadataError, match="Unrecognized file format"):
            load_dataset_counts(path)


class TestSeedContext:
    """Tests for creating the screening context."""

    def test_one_summary_per_dataset(self) -> None:
        context = seed_context([
            DatasetCounts(dataset_id="A", sequence_count=100, sampled_count=10),
            DatasetCounts(dataset_id="B", sequence_count=50, sampled_count=5),
        ])

        assert context.dataset_ids == ["A", "B"]
        assert context.summaries["A"].sequence_count == 100
        assert context.summaries["B"].sampled_count == 5
        assert context.summaries["A"].alignment_summaries == {}


class TestAdapterCounts:
    """Tests for adapter alignment files."""

    def test_counts_distinct_reads(self, temp_dir: Path) -> None:
        path = temp_dir / "RUN1.adapter.alignment"
        path.write_text(
            "A_1\tadapter1\t10\n"
            "A_1\tadapter2\t12\n"
            "A_2\tadapter1\t10\n"
            "lib_B_7\tadapter1\t9\n"
            "\n"
        )

        assert count_adapter_alignments(path) == {"A": 2, "lib_B": 1}

    def test_malformed_read_id(self, temp_dir: Path) -> None:
        path = temp_dir / "adapter.alignment"
        path.write_text("A_1\tx\nabc\tx\n")

        with pytest.raises(MalformedRecordError, match="line 2"):
            count_adapter_alignments(path)

    def test_invalid_utf8(self, temp_dir: Path) -> None:
        path = temp_dir / "adapter.alignment"
        path.write_bytes(b"A_1\tx\n\xff\xfe\tx\n")

        with pytest.raises(UndecodableFileError, match="adapter.alignment"):
            count_adapter_alignments(path)

    def test_apply_adds_to_summaries(self) -> None:
        context = seed_context([DatasetCounts(dataset_id="A", sampled_count=10)])

        apply_adapter_counts(context, {"A": 2})
        apply_adapter_counts(context, {"A": 3})

        assert context.summaries["A"].adapter_count == 5

    def test_apply_unknown_dataset(self) -> None:
        context = seed_context([DatasetCounts(dataset_id="A", sampled_count=10)])

        with pytest.raises(UnknownDatasetError, match="in adapter.alignment"):
            apply_adapter_counts(context, {"Z": 1}, Path("adapter.alignment"))
