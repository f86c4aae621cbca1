"""
Shared pytest fixtures for mgascreen tests.

Provides temporary directories, alignment file writers and a small
screening run with known outcomes.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mgascreen.core.assignment import ScreeningContext
from mgascreen.core.discovery import AlignmentSource
from tests.factories import AlignmentFileFactory


# =============================================================================
# Temporary File Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory that is cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def alignment_files(temp_dir: Path) -> AlignmentFileFactory:
    """Writer for RUN1.<dataset>.<genome>.bowtie.alignment files."""
    return AlignmentFileFactory(temp_dir)


@pytest.fixture
def sam_files(temp_dir: Path) -> AlignmentFileFactory:
    """Writer for RUN1.<dataset>.<genome>.bwa.alignment SAM files."""
    return AlignmentFileFactory(temp_dir, aligner="bwa")


# =============================================================================
# Screening Scenario Fixtures
# =============================================================================


@pytest.fixture
def tie_break_run(alignment_files: AlignmentFileFactory) -> list[AlignmentSource]:
    """
    Dataset D against genomes A and B.

    Reads 1-2 align only to A (0 mismatches), reads 3-6 only to B, and
    read 7 ties between A and B with 1 mismatch each.
    """
    a = alignment_files.write_bowtie("D", "A", [(1, 0), (2, 0), (7, 1)])
    b = alignment_files.write_bowtie("D", "B", [(3, 0), (4, 0), (5, 0), (6, 0), (7, 1)])
    return [AlignmentSource(a, "A"), AlignmentSource(b, "B")]


@pytest.fixture
def tie_break_context() -> ScreeningContext:
    """Context seeded for dataset D with 10 sampled reads."""
    context = ScreeningContext()
    context.add_dataset("D", sequence_count=100, sampled_count=10)
    return context


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Typer CLI test runner."""
    return CliRunner()
