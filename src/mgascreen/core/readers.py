"""
Per-genome alignment streams.

Each stream wraps one sorted alignment-result file produced by aligning one
dataset against one reference genome, and decodes its records lazily into
Alignment values. Two formats are supported behind the same contract:

- DelimitedAlignmentStream: bowtie default tab-separated output
- SamAlignmentStream: SAM/BAM/CRAM read through pysam

Only one record is held in memory per stream, so arbitrarily large files
can be merged.
"""

from __future__ import annotations

import gzip
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Literal, NamedTuple, TextIO

import pysam

from mgascreen.core.constants import (
    EDIT_DISTANCE_TAG,
    MISMATCH_SEPARATOR,
    MISSING_EDIT_DISTANCE,
    READ_ID_SEPARATOR,
    SAM_SKIP_FLAGS,
    TEXT_FIELD_SEPARATOR,
    TEXT_MIN_FIELDS,
    TEXT_MISMATCHES_FIELD,
    TEXT_READ_ID_FIELD,
    TEXT_SEQUENCE_FIELD,
)
from mgascreen.core.exceptions import MalformedRecordError, UndecodableFileError
from mgascreen.models.alignment import Alignment

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class StreamPosition(NamedTuple):
    """Location of the most recently read record, for diagnostics."""

    path: Path
    record_number: int
    unit: str = "record"

    def __str__(self) -> str:
        return f"{self.unit} {self.record_number} in file {self.path}"


def parse_read_id(
    read_id: str,
    path: Path,
    record_number: int,
    unit: str = "record",
) -> tuple[str, int]:
    """
    Split a read name of the form "<dataset_id>_<sequence_id>".

    The last underscore is the separator since dataset ids may contain
    underscores themselves.

    Args:
        read_id: Read name from the alignment record
        path: File the record came from (for error reporting)
        record_number: Position of the record in the file
        unit: "line" or "record", used in error messages

    Returns:
        Tuple of (dataset_id, sequence_id)

    Raises:
        MalformedRecordError: If there is no separator or the suffix is not an integer

    Example:
        >>> parse_read_id("lib_A_42", Path("x.alignment"), 1)
        ('lib_A', 42)
    """
    dataset_id, separator, suffix = read_id.rpartition(READ_ID_SEPARATOR)
    if not separator:
        raise MalformedRecordError(
            path, record_number, read_id, reason="no dataset separator", unit=unit
        )
    # sequence ids are unsigned decimal integers
    if not suffix.isdigit() or not suffix.isascii():
        raise MalformedRecordError(
            path, record_number, read_id, reason="non-integer sequence id", unit=unit
        )
    return dataset_id, int(suffix)


class AlignmentStream(ABC):
    """
    Sorted stream of alignments against a single reference genome.

    Contract:
        - the constructor opens the file
        - read() returns the next Alignment, or None once exhausted
        - position describes the last record read
        - close() releases the file handle; calling it again is a no-op

    The handle is closed automatically when the stream is exhausted.
    Streams are iterable and usable as context managers.
    """

    POSITION_UNIT: ClassVar[str] = "record"

    def __init__(self, path: Path, reference_genome_id: str) -> None:
        self.path = Path(path)
        self.reference_genome_id = reference_genome_id
        self.record_number = 0
        self._closed = False

    @property
    def position(self) -> StreamPosition:
        return StreamPosition(self.path, self.record_number, self.POSITION_UNIT)

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self) -> Alignment | None:
        """Return the next alignment, or None at end of stream."""
        if self._closed:
            return None
        alignment = self._read_alignment()
        if alignment is None:
            logger.debug(
                "Finished %s after %d %ss", self.path, self.record_number, self.POSITION_UNIT
            )
            self.close()
        return alignment

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    @abstractmethod
    def _read_alignment(self) -> Alignment | None:
        """Decode the next record from the backend."""

    @abstractmethod
    def _release(self) -> None:
        """Close the backend file handle."""

    def _parse_read_id(self, read_id: str) -> tuple[str, int]:
        return parse_read_id(read_id, self.path, self.record_number, self.POSITION_UNIT)

    def __iter__(self) -> Iterator[Alignment]:
        while (alignment := self.read()) is not None:
            yield alignment

    def __enter__(self) -> AlignmentStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(path={str(self.path)!r}, "
            f"reference_genome_id={self.reference_genome_id!r})"
        )


class DelimitedAlignmentStream(AlignmentStream):
    """
    Stream over bowtie default (tab-separated) alignment output.

    Expected layout, no header:
        0 read name "<dataset_id>_<sequence_id>"
        1 strand
        2 reference sequence name
        3 offset
        4 read sequence (only its length is used)
        5 qualities
        6 alignment count
        7 comma-separated mismatch descriptors (only their number is used)

    Files ending in .gz are decompressed on the fly.
    """

    POSITION_UNIT: ClassVar[str] = "line"

    def __init__(self, path: Path, reference_genome_id: str) -> None:
        super().__init__(path, reference_genome_id)
        self._handle: TextIO = self._open()

    def _open(self) -> TextIO:
        if self.path.suffix == ".gz":
            return gzip.open(self.path, "rt", encoding="utf-8")
        return self.path.open("r", encoding="utf-8")

    def _read_alignment(self) -> Alignment | None:
        try:
            line = self._handle.readline()
        except UnicodeDecodeError:
            raise UndecodableFileError(
                self.path, self.record_number + 1, self.POSITION_UNIT
            ) from None
        if not line:
            return None
        self.record_number += 1

        fields = line.rstrip("\r\n").split(TEXT_FIELD_SEPARATOR)
        read_id = fields[TEXT_READ_ID_FIELD]
        dataset_id, sequence_id = self._parse_read_id(read_id)

        if len(fields) < TEXT_MIN_FIELDS:
            raise MalformedRecordError(
                self.path,
                self.record_number,
                read_id,
                reason=f"expected at least {TEXT_MIN_FIELDS} fields, got {len(fields)}",
                unit=self.POSITION_UNIT,
            )

        mismatches = fields[TEXT_MISMATCHES_FIELD]
        mismatch_count = len(mismatches.split(MISMATCH_SEPARATOR)) if mismatches else 0

        return Alignment(
            dataset_id=dataset_id,
            sequence_id=sequence_id,
            mismatch_count=mismatch_count,
            reference_genome_id=self.reference_genome_id,
            aligned_length=len(fields[TEXT_SEQUENCE_FIELD]),
        )

    def _release(self) -> None:
        self._handle.close()


class SamAlignmentStream(AlignmentStream):
    """
    Stream over SAM/BAM/CRAM alignment output, read with pysam.

    Secondary and supplementary records are skipped; unmapped records are
    kept like any other. The aligned length is the read length and the
    mismatch count is the NM (edit distance) tag; records without NM get
    ``missing_edit_distance`` instead of failing.
    Record numbers count every record read, including skipped ones.
    """

    MODES: ClassVar[dict[str, str]] = {".bam": "rb", ".cram": "rc"}

    def __init__(
        self,
        path: Path,
        reference_genome_id: str,
        missing_edit_distance: int = MISSING_EDIT_DISTANCE,
    ) -> None:
        super().__init__(path, reference_genome_id)
        self.missing_edit_distance = missing_edit_distance
        mode = self.MODES.get(self.path.suffix.lower(), "r")
        self._file = pysam.AlignmentFile(str(self.path), mode, check_sq=False)
        self._records = iter(self._file)

    def _read_alignment(self) -> Alignment | None:
        for record in self._records:
            self.record_number += 1

            if record.flag & SAM_SKIP_FLAGS:
                continue

            dataset_id, sequence_id = self._parse_read_id(record.query_name)

            if record.has_tag(EDIT_DISTANCE_TAG):
                mismatch_count = int(record.get_tag(EDIT_DISTANCE_TAG))
            else:
                mismatch_count = self.missing_edit_distance

            return Alignment(
                dataset_id=dataset_id,
                sequence_id=sequence_id,
                mismatch_count=mismatch_count,
                reference_genome_id=self.reference_genome_id,
                aligned_length=record.query_length,
            )
        return None

    def _release(self) -> None:
        self._file.close()


def open_alignment_stream(
    path: Path,
    reference_genome_id: str,
    alignment_format: Literal["text", "sam"] = "text",
    missing_edit_distance: int = MISSING_EDIT_DISTANCE,
) -> AlignmentStream:
    """
    Open an alignment stream of the requested format.

    Args:
        path: Alignment result file
        reference_genome_id: Genome the file's reads were aligned against
        alignment_format: "text" for bowtie output, "sam" for SAM/BAM/CRAM
        missing_edit_distance: Mismatch count for SAM records without NM

    Returns:
        Open AlignmentStream

    Raises:
        OSError: If the file cannot be opened
        ValueError: If the format is unknown
    """
    if alignment_format == "text":
        return DelimitedAlignmentStream(path, reference_genome_id)
    if alignment_format == "sam":
        return SamAlignmentStream(path, reference_genome_id, missing_edit_distance)
    msg = f"Unknown alignment format '{alignment_format}', expected 'text' or 'sam'"
    raise ValueError(msg)
