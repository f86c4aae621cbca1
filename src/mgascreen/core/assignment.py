"""
Two-pass assignment of reads to reference genomes.

A read often aligns equally well (same mismatch count) to several genomes,
e.g. a host genome and a closely related contaminant. Local information
cannot break such ties, so the merged alignments are scanned twice:

1. tally_alignments: accumulate aligned, preferentially aligned (tied-best)
   and uniquely aligned counts for every genome of every dataset.
2. compute_genome_scores: turn each dataset's preferential counts into a
   prior, score(dataset, genome) = preferential(genome) / preferential(all).
3. assign_alignments: rescan from the start and assign each read to the
   tied-best genome with the highest score; the first one wins on equal
   scores.

Each pass uses its own MultiGenomeAlignmentReader over the same files. The
per-dataset summaries live in a ScreeningContext owned by screen_alignments.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field

from mgascreen.core.discovery import AlignmentSource
from mgascreen.core.exceptions import SequenceIdOutOfRangeError, UnknownDatasetError
from mgascreen.core.merge import MultiGenomeAlignmentReader
from mgascreen.models.config import ScreenConfig
from mgascreen.models.summary import MultiGenomeAlignmentSummary

logger = logging.getLogger(__name__)

# dataset_id -> reference_genome_id -> prior score in [0, 1]
GenomeScores = dict[str, dict[str, float]]


@dataclass
class ScreeningContext:
    """
    Per-dataset summaries shared by both assignment passes.

    Seeded from sequence count metadata before scanning; alignments for a
    dataset that was not seeded are an error.
    """

    summaries: dict[str, MultiGenomeAlignmentSummary] = field(default_factory=dict)

    def add_dataset(
        self,
        dataset_id: str,
        sequence_count: int = 0,
        sampled_count: int = 0,
    ) -> MultiGenomeAlignmentSummary:
        """Register a dataset, or return it if already registered."""
        summary = self.summaries.get(dataset_id)
        if summary is None:
            summary = MultiGenomeAlignmentSummary(
                dataset_id=dataset_id,
                sequence_count=sequence_count,
                sampled_count=sampled_count,
            )
            self.summaries[dataset_id] = summary
        return summary

    def summary_for(self, dataset_id: str, source: Path | str | None = None) -> MultiGenomeAlignmentSummary:
        """
        Return the summary of a seeded dataset.

        Raises:
            UnknownDatasetError: If the dataset was never seeded
        """
        summary = self.summaries.get(dataset_id)
        if summary is None:
            raise UnknownDatasetError(dataset_id, source)
        return summary

    @property
    def dataset_ids(self) -> list[str]:
        return sorted(self.summaries)

    def sorted_summaries(self) -> list[MultiGenomeAlignmentSummary]:
        return [self.summaries[dataset_id] for dataset_id in self.dataset_ids]

    def update_unmapped_counts(self) -> None:
        """Set each dataset's unmapped count from its sampled and aligned reads."""
        for summary in self.summaries.values():
            summary.unmapped_count = max(0, summary.sampled_count - summary.aligned_count)


class TallyResult(BaseModel):
    """
    Outcome of the first pass.

    Attributes:
        read_count: Reads with at least one alignment, over all datasets
        tie_histogram: Number of tied-best genomes -> number of reads
    """

    read_count: int = Field(default=0, ge=0)
    tie_histogram: dict[int, int] = Field(default_factory=dict)


class ScreeningResult(BaseModel):
    """
    Final output of a screening run.

    Attributes:
        summaries: Per-dataset summaries keyed and ordered by dataset id
        genome_scores: Priors used to break ties in the second pass
        tie_histogram: Number of tied-best genomes -> number of reads
    """

    summaries: dict[str, MultiGenomeAlignmentSummary] = Field(default_factory=dict)
    genome_scores: GenomeScores = Field(default_factory=dict)
    tie_histogram: dict[int, int] = Field(default_factory=dict)

    def to_json(self, path: Path) -> None:
        """Write result to JSON file."""
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def from_json(cls, path: Path) -> ScreeningResult:
        """Load result from JSON file."""
        return cls.model_validate_json(path.read_text())


def tally_alignments(
    reader: MultiGenomeAlignmentReader,
    context: ScreeningContext,
) -> TallyResult:
    """
    First pass: accumulate per-genome counts for every read.

    For each read's alignment group, with m the lowest mismatch count:
        - the dataset's aligned read count is incremented
        - every alignment updates its genome's aligned category
        - alignments with m mismatches (tied-best) also update the
          preferentially aligned category
        - a single tied-best alignment also updates uniquely aligned

    Args:
        reader: Fresh merge reader over the run's alignment files
        context: Seeded per-dataset summaries (mutated)

    Returns:
        TallyResult with read count and tie histogram

    Raises:
        UnknownDatasetError: If a read's dataset was not seeded
        SequenceIdOutOfRangeError: If a sequence id exceeds the sampled count
    """
    histogram: Counter[int] = Counter()
    read_count = 0

    for group in reader.iter_groups():
        first = group[0]
        summary = context.summary_for(first.dataset_id)

        if first.sequence_id > summary.sampled_count:
            raise SequenceIdOutOfRangeError(
                first.dataset_id, first.sequence_id, summary.sampled_count
            )

        summary.aligned_count += 1
        read_count += 1

        best_mismatch_count = first.mismatch_count
        tied_best = 0

        for alignment in group:
            genome_summary = summary.get_alignment_summary(
                alignment.reference_genome_id, create=True
            )
            genome_summary.aligned.add(alignment)
            if alignment.mismatch_count == best_mismatch_count:
                genome_summary.preferentially_aligned.add(alignment)
                tied_best += 1

        if tied_best == 1:
            summary.get_alignment_summary(first.reference_genome_id).uniquely_aligned.add(first)

        histogram[tied_best] += 1

    logger.info("Tallied alignments for %d reads", read_count)
    for tied, reads in sorted(histogram.items()):
        logger.debug("%d reads with %d tied-best genomes", reads, tied)

    return TallyResult(read_count=read_count, tie_histogram=dict(sorted(histogram.items())))


def compute_genome_scores(context: ScreeningContext) -> GenomeScores:
    """
    Turn first-pass preferential counts into per-dataset genome priors.

    score(dataset, genome) = preferentially aligned count of the genome divided
    by the dataset's total preferentially aligned count. Scores of a dataset
    sum to 1.0; datasets without alignments get an empty table.

    Args:
        context: Summaries after tally_alignments

    Returns:
        Nested dict dataset_id -> reference_genome_id -> score
    """
    scores: GenomeScores = {}
    for dataset_id, summary in context.summaries.items():
        total = summary.total_preferentially_aligned_count
        if total == 0:
            scores[dataset_id] = {}
            continue
        scores[dataset_id] = {
            genome_id: genome_summary.preferentially_aligned_count / total
            for genome_id, genome_summary in summary.alignment_summaries.items()
        }
    return scores


def assign_alignments(
    reader: MultiGenomeAlignmentReader,
    context: ScreeningContext,
    scores: GenomeScores,
) -> int:
    """
    Second pass: assign every read to a single genome.

    The tied-best alignments are a prefix of each (mismatch-sorted) group.
    The one whose genome has the highest score wins; an incumbent is only
    replaced by a strictly greater score, so the first encountered wins ties.

    Args:
        reader: Fresh merge reader over the same files as the first pass
        context: Summaries after tally_alignments (mutated)
        scores: Output of compute_genome_scores

    Returns:
        Number of reads assigned

    Raises:
        UnknownDatasetError: If a read's dataset was not seeded
    """
    assigned = 0

    for group in reader.iter_groups():
        first = group[0]
        summary = context.summary_for(first.dataset_id)
        dataset_scores = scores.get(first.dataset_id, {})

        best = first
        best_score = dataset_scores.get(first.reference_genome_id, 0.0)
        for alignment in group[1:]:
            if alignment.mismatch_count != first.mismatch_count:
                break
            score = dataset_scores.get(alignment.reference_genome_id, 0.0)
            if score > best_score:
                best = alignment
                best_score = score

        summary.get_alignment_summary(best.reference_genome_id, create=True).assigned.add(best)
        assigned += 1

    logger.info("Assigned %d reads", assigned)
    return assigned


def screen_alignments(
    sources: Iterable[AlignmentSource],
    context: ScreeningContext,
    config: ScreenConfig | None = None,
) -> ScreeningResult:
    """
    Run both assignment passes over a run's alignment files.

    Args:
        sources: Alignment files with their reference genome ids
        context: Summaries seeded from sequence count metadata (mutated)
        config: Run configuration (alignment format, NM sentinel)

    Returns:
        ScreeningResult with the populated summaries

    Example:
        >>> context = seed_context(load_dataset_counts(Path("counts.tsv")))
        >>> sources = find_alignment_files([Path("alignments/")], "bowtie", "RUN1")
        >>> result = screen_alignments(sources, context)
        >>> result.summaries["lib_A"].alignment_summaries["hg38"].assigned_count
    """
    config = config or ScreenConfig()
    sources = list(sources)
    alignment_format = config.resolved_format()

    logger.info(
        "Screening %d alignment files (%s format) for %d datasets",
        len(sources),
        alignment_format,
        len(context.summaries),
    )

    with MultiGenomeAlignmentReader(
        sources, alignment_format, config.missing_edit_distance
    ) as reader:
        tally = tally_alignments(reader, context)

    scores = compute_genome_scores(context)

    with MultiGenomeAlignmentReader(
        sources, alignment_format, config.missing_edit_distance
    ) as reader:
        assign_alignments(reader, context, scores)

    context.update_unmapped_counts()

    return ScreeningResult(
        summaries={summary.dataset_id: summary for summary in context.sorted_summaries()},
        genome_scores=scores,
        tie_histogram=tally.tie_histogram,
    )
