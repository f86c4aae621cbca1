"""
Pydantic models for per-genome and per-dataset alignment summaries.

These aggregates are filled in while scanning merged alignments during the
two assignment passes and read afterwards by report writers.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, computed_field

from mgascreen.models.alignment import Alignment


class AlignmentCategory(BaseModel):
    """
    Counters for one measurement category of a genome's alignments.

    Attributes:
        count: Number of alignments folded into this category
        total_aligned_length: Summed aligned length
        total_mismatch_count: Summed mismatch count
    """

    count: int = Field(default=0, ge=0, description="Number of alignments")
    total_aligned_length: int = Field(default=0, ge=0, description="Summed aligned length")
    total_mismatch_count: int = Field(default=0, ge=0, description="Summed mismatches")

    def add(self, alignment: Alignment) -> None:
        """Fold one alignment into the counters."""
        self.count += 1
        self.total_aligned_length += alignment.aligned_length
        self.total_mismatch_count += alignment.mismatch_count

    @computed_field
    @property
    def error_rate(self) -> float:
        """Mismatches per aligned base (0.0 when nothing is aligned)."""
        if self.total_aligned_length == 0:
            return 0.0
        return self.total_mismatch_count / self.total_aligned_length


class AlignmentSummary(BaseModel):
    """
    Alignment statistics for one reference genome within one dataset.

    Four disjointly accumulated categories:
        aligned: every alignment seen against this genome
        uniquely_aligned: this genome was the read's only tied-best alignment
        preferentially_aligned: this genome was among the read's tied-best
            alignments, before the final tie-break
        assigned: this genome won the read after the tie-break

    assigned_count <= preferentially_aligned_count <= aligned_count always holds.
    """

    reference_genome_id: str = Field(description="Reference genome identifier")
    aligned: AlignmentCategory = Field(default_factory=AlignmentCategory)
    uniquely_aligned: AlignmentCategory = Field(default_factory=AlignmentCategory)
    preferentially_aligned: AlignmentCategory = Field(default_factory=AlignmentCategory)
    assigned: AlignmentCategory = Field(default_factory=AlignmentCategory)

    @property
    def aligned_count(self) -> int:
        return self.aligned.count

    @property
    def aligned_error_rate(self) -> float:
        return self.aligned.error_rate

    @property
    def uniquely_aligned_count(self) -> int:
        return self.uniquely_aligned.count

    @property
    def uniquely_aligned_error_rate(self) -> float:
        return self.uniquely_aligned.error_rate

    @property
    def preferentially_aligned_count(self) -> int:
        return self.preferentially_aligned.count

    @property
    def preferentially_aligned_error_rate(self) -> float:
        return self.preferentially_aligned.error_rate

    @property
    def assigned_count(self) -> int:
        return self.assigned.count

    @property
    def assigned_error_rate(self) -> float:
        return self.assigned.error_rate


class MultiGenomeAlignmentSummary(BaseModel):
    """
    Alignment summary for one dataset across all screened genomes.

    Created before the merge scan from external sequence count metadata,
    mutated only by the two assignment passes and read-only afterwards.

    Attributes:
        dataset_id: Dataset (sample) identifier
        sequence_count: Total reads in the dataset before sampling
        sampled_count: Reads sampled and fed to the aligner
        adapter_count: Sampled reads matching an adapter sequence
        unmapped_count: Sampled reads with no alignment to any genome
        aligned_count: Sampled reads with at least one alignment
        alignment_summaries: Per-genome summaries, created lazily
    """

    dataset_id: str = Field(description="Dataset identifier")
    sequence_count: int = Field(default=0, ge=0, description="Reads before sampling")
    sampled_count: int = Field(default=0, ge=0, description="Reads fed to alignment")
    adapter_count: int = Field(default=0, ge=0, description="Reads matching adapters")
    unmapped_count: int = Field(default=0, ge=0, description="Reads without alignments")
    aligned_count: int = Field(default=0, ge=0, description="Reads with alignments")
    alignment_summaries: dict[str, AlignmentSummary] = Field(default_factory=dict)

    def get_alignment_summary(
        self,
        reference_genome_id: str,
        create: bool = False,
    ) -> AlignmentSummary | None:
        """
        Return the summary for a reference genome.

        Args:
            reference_genome_id: Genome identifier
            create: Create and register an empty summary if none exists yet

        Returns:
            The genome's AlignmentSummary, or None if absent and create is False
        """
        summary = self.alignment_summaries.get(reference_genome_id)
        if summary is None and create:
            summary = AlignmentSummary(reference_genome_id=reference_genome_id)
            self.alignment_summaries[reference_genome_id] = summary
        return summary

    @property
    def reference_genome_ids(self) -> list[str]:
        return sorted(self.alignment_summaries)

    @property
    def total_preferentially_aligned_count(self) -> int:
        """Preferential hits summed over every genome of this dataset."""
        return sum(
            s.preferentially_aligned_count for s in self.alignment_summaries.values()
        )

    @property
    def total_assigned_count(self) -> int:
        return sum(s.assigned_count for s in self.alignment_summaries.values())

    @computed_field
    @property
    def aligned_pct(self) -> float:
        """Percentage of sampled reads aligned to at least one genome."""
        if self.sampled_count == 0:
            return 0.0
        return 100.0 * self.aligned_count / self.sampled_count

    def to_json(self, path: Path) -> None:
        """Write summary to JSON file."""
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def from_json(cls, path: Path) -> MultiGenomeAlignmentSummary:
        """Load summary from JSON file."""
        return cls.model_validate_json(path.read_text())
