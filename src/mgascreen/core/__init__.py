"""
Core components for multi-genome alignment screening.

This module contains the per-genome alignment streams, file discovery and
the sorted multi-stream merge the assignment passes are built on.
"""

from mgascreen.core.discovery import AlignmentSource, find_alignment_files
from mgascreen.core.merge import MultiGenomeAlignmentReader
from mgascreen.core.readers import (
    AlignmentStream,
    DelimitedAlignmentStream,
    SamAlignmentStream,
    open_alignment_stream,
)

__all__ = [
    "AlignmentSource",
    "AlignmentStream",
    "DelimitedAlignmentStream",
    "MultiGenomeAlignmentReader",
    "SamAlignmentStream",
    "find_alignment_files",
    "open_alignment_stream",
]
