"""
Multi-stream merge of per-genome alignment files.

The MultiGenomeAlignmentReader exposes the union of many sorted alignment
files as a single sorted sequence, and groups consecutive alignments of the
same read. Exactly one record per open stream is held in memory (the head of
each stream, kept in a binary heap), so memory is bounded by the number of
genomes regardless of file sizes.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from mgascreen.core.constants import MISSING_EDIT_DISTANCE
from mgascreen.core.discovery import AlignmentSource
from mgascreen.core.exceptions import OutOfOrderInputError
from mgascreen.core.readers import AlignmentStream, open_alignment_stream
from mgascreen.models.alignment import Alignment

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class MultiGenomeAlignmentReader:
    """
    Sorted merge over one alignment stream per reference genome.

    On construction every file is opened and its first alignment pushed onto
    a heap keyed by the alignment order, with the stream index as tie-break.
    Files that cannot be opened are logged and skipped; empty files are
    closed and dropped straight away.

    Each stream must be strictly increasing. A record that is not greater
    than its predecessor from the same file closes every stream and raises
    OutOfOrderInputError.

    Example:
        >>> sources = find_alignment_files([Path("alignments/")], "bowtie", "RUN1")
        >>> with MultiGenomeAlignmentReader(sources) as reader:
        ...     for group in reader.iter_groups():
        ...         best = group[0]
    """

    def __init__(
        self,
        sources: Iterable[AlignmentSource],
        alignment_format: Literal["text", "sam"] = "text",
        missing_edit_distance: int = MISSING_EDIT_DISTANCE,
    ) -> None:
        """
        Open all alignment streams and read one alignment from each.

        Args:
            sources: Alignment files with their reference genome ids
            alignment_format: Record format shared by all files
            missing_edit_distance: Mismatch count for SAM records without NM

        Raises:
            MalformedRecordError: If a file's first record cannot be decoded
            ValueError: If the alignment format is unknown
        """
        if alignment_format not in ("text", "sam"):
            msg = f"Unknown alignment format '{alignment_format}', expected 'text' or 'sam'"
            raise ValueError(msg)

        self.sources = list(sources)
        self.alignment_format = alignment_format
        self._streams: list[AlignmentStream | None] = []
        self._heap: list[tuple[Alignment, int]] = []

        try:
            for source in self.sources:
                self._open_stream(source, missing_edit_distance)
        except Exception:
            self.close()
            raise

        logger.debug(
            "Merging %d non-empty streams from %d alignment files",
            len(self._heap),
            len(self.sources),
        )

    def _open_stream(self, source: AlignmentSource, missing_edit_distance: int) -> None:
        index = len(self._streams)
        try:
            stream = open_alignment_stream(
                source.path,
                source.reference_genome_id,
                self.alignment_format,
                missing_edit_distance,
            )
        except (OSError, ValueError) as e:
            logger.warning("Could not open %s: %s: %s", source.path, type(e).__name__, e)
            self._streams.append(None)
            return

        self._streams.append(stream)
        try:
            alignment = stream.read()
        except OSError as e:
            # e.g. a corrupt gzip file
            logger.warning("Could not read %s: %s: %s", source.path, type(e).__name__, e)
            stream.close()
            self._streams[index] = None
            return

        if alignment is None:
            logger.debug("No alignments in %s", source.path)
            self._streams[index] = None
        else:
            heapq.heappush(self._heap, (alignment, index))

    @property
    def alignment_files(self) -> list[Path]:
        return [source.path for source in self.sources]

    @property
    def reference_genome_ids(self) -> set[str]:
        return {source.reference_genome_id for source in self.sources}

    @property
    def open_stream_count(self) -> int:
        return sum(1 for stream in self._streams if stream is not None and not stream.closed)

    def next_alignment(self) -> Alignment | None:
        """
        Remove and return the lowest alignment across all streams.

        The stream it came from is advanced by one record; an exhausted stream
        is dropped.

        Returns:
            The next alignment in global order, or None when all streams are done

        Raises:
            OutOfOrderInputError: If the stream's next record is not strictly
                greater than the one just returned
        """
        if not self._heap:
            return None

        alignment, index = heapq.heappop(self._heap)
        stream = self._streams[index]
        next_alignment = stream.read() if stream is not None else None

        if next_alignment is None:
            self._streams[index] = None
        elif next_alignment <= alignment:
            position = stream.position
            self.close()
            raise OutOfOrderInputError(position.path, position.record_number, position.unit)
        else:
            heapq.heappush(self._heap, (next_alignment, index))

        return alignment

    def next_alignment_group(self) -> list[Alignment]:
        """
        Return all alignments of the next read.

        Alignments sharing (dataset_id, sequence_id) are contiguous in the
        merge order and come out sorted by mismatch count then genome id, so
        the read's tied-best alignments form a prefix of the group.

        Returns:
            The read's alignments, or an empty list at end of input
        """
        first = self.next_alignment()
        if first is None:
            return []

        group = [first]
        key = first.read_key
        while self._heap and self._heap[0][0].read_key == key:
            group.append(self.next_alignment())
        return group

    def iter_groups(self) -> Iterator[list[Alignment]]:
        """Yield per-read alignment groups until the input is exhausted."""
        while group := self.next_alignment_group():
            yield group

    def __iter__(self) -> Iterator[Alignment]:
        while (alignment := self.next_alignment()) is not None:
            yield alignment

    def close(self) -> None:
        """Close any still-open streams."""
        for index, stream in enumerate(self._streams):
            if stream is not None:
                stream.close()
                self._streams[index] = None
        self._heap.clear()

    def __enter__(self) -> MultiGenomeAlignmentReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
