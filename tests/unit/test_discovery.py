"""
Unit tests for alignment file discovery and genome id resolution.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from mgascreen.core.discovery import (
    AlignmentSource,
    alignment_suffix,
    find_alignment_files,
    reference_genome_id_for,
)
from mgascreen.core.exceptions import ReferenceGenomeError


class TestReferenceGenomeId:
    """Tests for deriving genome ids from file names."""

    def test_standard_name(self) -> None:
        path = Path("/data/RUN1.lib_A.hg38.bowtie.alignment")
        assert reference_genome_id_for(path, "bowtie", "RUN1") == "hg38"

    def test_genome_id_may_contain_dots(self) -> None:
        path = Path("RUN1.lib_A.GRCh38.p14.bowtie.alignment")
        assert reference_genome_id_for(path, "bowtie", "RUN1") == "GRCh38.p14"

    def test_without_run_id(self) -> None:
        path = Path("lib_A.ecoli.bowtie.alignment")
        assert reference_genome_id_for(path, "bowtie") == "ecoli"

    def test_other_aligner(self) -> None:
        path = Path("RUN1.lib_A.hg38.bwa.alignment")
        assert reference_genome_id_for(path, "bwa", "RUN1") == "hg38"

    def test_no_separator(self) -> None:
        with pytest.raises(ReferenceGenomeError, match="Error determining reference genome"):
            reference_genome_id_for(Path("RUN1.hg38.bowtie.alignment"), "bowtie", "RUN1")

    def test_empty_genome(self) -> None:
        with pytest.raises(ReferenceGenomeError):
            reference_genome_id_for(Path("RUN1.lib_A..bowtie.alignment"), "bowtie", "RUN1")

    def test_suffix(self) -> None:
        assert alignment_suffix("bowtie") == ".bowtie.alignment"


class TestFindAlignmentFiles:
    """Tests for expanding paths into alignment sources."""

    def test_directory_expansion_and_filtering(self, temp_dir: Path) -> None:
        for name in [
            "RUN1.D.B.bowtie.alignment",
            "RUN1.D.A.bowtie.alignment",
            "RUN1.D.A.bwa.alignment",
            "RUN1.D.count.xml",
        ]:
            (temp_dir / name).write_text("")
        (temp_dir / "nested").mkdir()

        sources = find_alignment_files([temp_dir], "bowtie", "RUN1")

        assert sources == [
            AlignmentSource(temp_dir / "RUN1.D.A.bowtie.alignment", "A"),
            AlignmentSource(temp_dir / "RUN1.D.B.bowtie.alignment", "B"),
        ]

    def test_explicit_files(self, temp_dir: Path) -> None:
        path = temp_dir / "RUN1.D.A.bowtie.alignment"
        path.write_text("")

        sources = find_alignment_files([path, path], "bowtie", "RUN1")

        assert sources == [AlignmentSource(path, "A")]

    def test_no_matches(self, temp_dir: Path) -> None:
        assert find_alignment_files([temp_dir], "bowtie", "RUN1") == []

    def test_unresolvable_name(self, temp_dir: Path) -> None:
        (temp_dir / "RUN1.nogenome.bowtie.alignment").write_text("")

        with pytest.raises(ReferenceGenomeError):
            find_alignment_files([temp_dir], "bowtie", "RUN1")
