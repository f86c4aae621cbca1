"""
Data models for mgascreen.

Provides the alignment record, the per-genome and per-dataset summary
aggregates, and the run configuration.
"""

from mgascreen.models.alignment import Alignment
from mgascreen.models.config import ScreenConfig
from mgascreen.models.summary import (
    AlignmentCategory,
    AlignmentSummary,
    MultiGenomeAlignmentSummary,
)

__all__ = [
    "Alignment",
    "AlignmentCategory",
    "AlignmentSummary",
    "MultiGenomeAlignmentSummary",
    "ScreenConfig",
]
