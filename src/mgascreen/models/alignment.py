"""
Alignment record and its total order.

Alignments are created in the hot path of every stream read, so they are
plain frozen dataclasses rather than pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, order=True, slots=True)
class Alignment:
    """
    One candidate alignment of one read against one reference genome.

    Field order defines the total order: dataset id, sequence id, mismatch
    count, then reference genome id. This is both the required on-disk order
    of every alignment file and the merge key, so all alignments of a read are
    adjacent with the best (fewest mismatches) first. The aligned length takes
    no part in comparisons.

    Attributes:
        dataset_id: Sequenced-read dataset (sample) identifier
        sequence_id: Ordinal of the read within the dataset's sampled subset
        mismatch_count: Number of mismatches in this alignment
        reference_genome_id: Genome this alignment is against
        aligned_length: Length of the aligned portion of the read
    """

    dataset_id: str
    sequence_id: int
    mismatch_count: int
    reference_genome_id: str
    aligned_length: int = field(default=0, compare=False)

    @property
    def read_key(self) -> tuple[str, int]:
        """(dataset_id, sequence_id) shared by all alignments of one read."""
        return (self.dataset_id, self.sequence_id)
