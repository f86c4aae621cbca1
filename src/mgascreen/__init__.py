"""
mgascreen: multi-genome alignment screening of sequencing datasets.

Screens sampled reads from each dataset against many reference genomes and
reports, per dataset and genome, how many reads aligned, how many aligned
uniquely or preferentially, and to which genome each read is finally
assigned once ties are broken by a genome prior learned from the data.
"""

__version__ = "0.1.0"
__author__ = "mgascreen developers"

from mgascreen.core.assignment import (
    ScreeningContext,
    ScreeningResult,
    screen_alignments,
)
from mgascreen.core.merge import MultiGenomeAlignmentReader
from mgascreen.models.alignment import Alignment
from mgascreen.models.summary import AlignmentSummary, MultiGenomeAlignmentSummary

__all__ = [
    "Alignment",
    "AlignmentSummary",
    "MultiGenomeAlignmentReader",
    "MultiGenomeAlignmentSummary",
    "ScreeningContext",
    "ScreeningResult",
    "__version__",
    "screen_alignments",
]
