"""
Unit tests for alignment summary models.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from mgascreen.models.alignment import Alignment
from mgascreen.models.summary import (
    AlignmentCategory,
    AlignmentSummary,
    MultiGenomeAlignmentSummary,
)


def alignment(mismatches: int, length: int, genome: str = "A") -> Alignment:
    return Alignment(
        dataset_id="D",
        sequence_id=1,
        mismatch_count=mismatches,
        reference_genome_id=genome,
        aligned_length=length,
    )


class TestAlignmentCategory:
    """Tests for per-category counters."""

    def test_add_accumulates(self) -> None:
        category = AlignmentCategory()
        category.add(alignment(2, 50))
        category.add(alignment(1, 50))

        assert category.count == 2
        assert category.total_aligned_length == 100
        assert category.total_mismatch_count == 3
        assert category.error_rate == pytest.approx(0.03)

    def test_error_rate_zero_when_empty(self) -> None:
        assert AlignmentCategory().error_rate == 0.0

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AlignmentCategory(count=-1)

    def test_error_rate_serialized(self) -> None:
        category = AlignmentCategory(count=1, total_aligned_length=10, total_mismatch_count=1)
        assert category.model_dump()["error_rate"] == pytest.approx(0.1)


class TestAlignmentSummary:
    """Tests for per-genome summaries."""

    def test_categories_independent(self) -> None:
        summary = AlignmentSummary(reference_genome_id="A")
        summary.aligned.add(alignment(1, 36))
        summary.aligned.add(alignment(0, 36))
        summary.preferentially_aligned.add(alignment(0, 36))

        assert summary.aligned_count == 2
        assert summary.preferentially_aligned_count == 1
        assert summary.uniquely_aligned_count == 0
        assert summary.assigned_count == 0
        assert summary.aligned_error_rate == pytest.approx(1 / 72)
        assert summary.preferentially_aligned_error_rate == 0.0


class TestMultiGenomeAlignmentSummary:
    """Tests for per-dataset summaries."""

    def test_get_alignment_summary_create(self) -> None:
        summary = MultiGenomeAlignmentSummary(dataset_id="D", sampled_count=10)

        assert summary.get_alignment_summary("A") is None
        created = summary.get_alignment_summary("A", create=True)
        assert created.reference_genome_id == "A"
        assert summary.get_alignment_summary("A") is created

    def test_reference_genome_ids_sorted(self) -> None:
        summary = MultiGenomeAlignmentSummary(dataset_id="D")
        for genome in ("C", "A", "B"):
            summary.get_alignment_summary(genome, create=True)

        assert summary.reference_genome_ids == ["A", "B", "C"]

    def test_totals(self) -> None:
        summary = MultiGenomeAlignmentSummary(dataset_id="D")
        summary.get_alignment_summary("A", create=True).preferentially_aligned.add(alignment(0, 36))
        b = summary.get_alignment_summary("B", create=True)
        b.preferentially_aligned.add(alignment(0, 36, "B"))
        b.assigned.add(alignment(0, 36, "B"))

        assert summary.total_preferentially_aligned_count == 2
        assert summary.total_assigned_count == 1

    def test_aligned_pct(self) -> None:
        summary = MultiGenomeAlignmentSummary(dataset_id="D", sampled_count=8, aligned_count=2)
        assert summary.aligned_pct == pytest.approx(25.0)
        assert MultiGenomeAlignmentSummary(dataset_id="D").aligned_pct == 0.0

    def test_json_round_trip(self, temp_dir: Path) -> None:
        summary = MultiGenomeAlignmentSummary(
            dataset_id="D", sequence_count=100, sampled_count=10, aligned_count=3
        )
        summary.get_alignment_summary("A", create=True).assigned.add(alignment(1, 36))
        path = temp_dir / "summary.json"

        summary.to_json(path)
        loaded = MultiGenomeAlignmentSummary.from_json(path)

        assert loaded.sequence_count == 100
        assert loaded.alignment_summaries["A"].assigned_count == 1
        assert loaded.alignment_summaries["A"].assigned.total_mismatch_count == 1
