"""
Alignment file discovery by naming convention.

Alignment files are named
``<run_id>.<dataset_id>.<reference_genome_id>.<aligner>.alignment``.
The reference genome id is everything after the first dot once the run
prefix and aligner suffix are removed, so genome ids may contain dots
(e.g. GRCh38.p14) but dataset ids may not.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from mgascreen.core.constants import ALIGNMENT_FILE_EXTENSION
from mgascreen.core.exceptions import ReferenceGenomeError

logger = logging.getLogger(__name__)


class AlignmentSource(NamedTuple):
    """One alignment file and the reference genome it was aligned against."""

    path: Path
    reference_genome_id: str


def alignment_suffix(aligner: str) -> str:
    """File name suffix of the given aligner's alignment files."""
    return f".{aligner}{ALIGNMENT_FILE_EXTENSION}"


def reference_genome_id_for(path: Path, aligner: str, run_id: str | None = None) -> str:
    """
    Derive the reference genome id from an alignment file name.

    Args:
        path: Alignment file path
        aligner: Aligner name used in the file suffix
        run_id: Run identifier prefixed to the file name (optional)

    Returns:
        Reference genome identifier

    Raises:
        ReferenceGenomeError: If the name has no dataset/genome separator or
            the genome part is empty

    Example:
        >>> reference_genome_id_for(Path("RUN1.lib_A.hg38.bowtie.alignment"), "bowtie", "RUN1")
        'hg38'
    """
    name = Path(path).name

    suffix = alignment_suffix(aligner)
    if name.endswith(suffix):
        name = name[: -len(suffix)]

    if run_id:
        prefix = f"{run_id}."
        if name.startswith(prefix):
            name = name[len(prefix):]

    _, separator, reference_genome_id = name.partition(".")
    if not name or not separator or not reference_genome_id:
        raise ReferenceGenomeError(path)
    return reference_genome_id


def find_alignment_files(
    paths: Iterable[Path],
    aligner: str,
    run_id: str | None = None,
) -> list[AlignmentSource]:
    """
    Select the given aligner's alignment files and resolve their genomes.

    Directories are searched (non-recursively) for matching files; plain files
    not ending in the aligner's suffix are ignored.

    Args:
        paths: Files and/or directories
        aligner: Aligner name, e.g. "bowtie"
        run_id: Run identifier prefixed to file names

    Returns:
        AlignmentSource list sorted by path

    Raises:
        ReferenceGenomeError: If a matching file name cannot be resolved
    """
    suffix = alignment_suffix(aligner)
    candidates: set[Path] = set()

    for path in paths:
        path = Path(path)
        if path.is_dir():
            candidates.update(p for p in path.iterdir() if p.is_file())
        else:
            candidates.add(path)

    sources = []
    for path in sorted(candidates):
        if not path.name.endswith(suffix):
            logger.debug("Ignoring %s: not a %s alignment file", path, aligner)
            continue
        sources.append(AlignmentSource(path, reference_genome_id_for(path, aligner, run_id)))

    logger.info("Found %d %s alignment files", len(sources), aligner)
    return sources
