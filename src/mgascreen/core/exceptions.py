"""
Custom exceptions with actionable guidance.

Provides specific error types for the failure scenarios of a screening run,
each with helpful suggestions for resolution. All of them are fatal: the run
stops at the first one raised.
"""

from __future__ import annotations

from pathlib import Path


class MgaScreenError(Exception):
    """Base exception for mgascreen errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class AlignmentFileError(MgaScreenError):
    """Base class for alignment file errors."""

    def __init__(
        self,
        message: str,
        path: Path | str,
        record_number: int = 0,
        suggestion: str | None = None,
    ):
        self.path = Path(path)
        self.record_number = record_number
        super().__init__(message=message, suggestion=suggestion)


class MalformedRecordError(AlignmentFileError):
    """Raised when an alignment record cannot be decoded."""

    def __init__(
        self,
        path: Path | str,
        record_number: int,
        read_id: str,
        reason: str | None = None,
        unit: str = "record",
    ):
        detail = f" ({reason})" if reason else ""
        super().__init__(
            message=(
                f"Incorrect sequence identifier ({read_id}){detail} "
                f"at {unit} {record_number} in file {path}"
            ),
            path=path,
            record_number=record_number,
            suggestion=(
                "Read names must have the form <dataset_id>_<sequence_id>, where "
                "sequence_id is the integer position of the read in the sampled "
                "subset. Check that reads were renamed before alignment."
            ),
        )
        self.read_id = read_id


class UndecodableFileError(AlignmentFileError):
    """Raised when a text alignment file is not valid UTF-8."""

    def __init__(self, path: Path | str, record_number: int, unit: str = "line"):
        super().__init__(
            message=f"File is not valid UTF-8 text near {unit} {record_number} in file {path}",
            path=path,
            record_number=record_number,
            suggestion=(
                "Text alignment files must be plain (or gzipped) UTF-8 text. "
                "Check whether the file is truncated, binary or in the SAM/BAM "
                "format (use --format sam)."
            ),
        )


class OutOfOrderInputError(AlignmentFileError):
    """Raised when a stream yields a record not strictly greater than its predecessor."""

    def __init__(self, path: Path | str, record_number: int, unit: str = "record"):
        super().__init__(
            message=(
                f"Alignments in unexpected sort order at {unit} {record_number} "
                f"in file {path}"
            ),
            path=path,
            record_number=record_number,
            suggestion=(
                "Alignment files must be sorted by dataset id, sequence id, "
                "mismatch count and reference genome, without duplicates. "
                "Re-sort the aligner output before screening."
            ),
        )


class ReferenceGenomeError(AlignmentFileError):
    """Raised when the reference genome cannot be derived from a file name."""

    def __init__(self, path: Path | str):
        super().__init__(
            message=f"Error determining reference genome for file: {path}",
            path=path,
            suggestion=(
                "Alignment files must be named "
                "<run_id>.<dataset_id>.<reference_genome_id>.<aligner>.alignment"
            ),
        )


class DatasetError(MgaScreenError):
    """Base class for inconsistencies between alignments and dataset metadata."""


class UnknownDatasetError(DatasetError):
    """Raised when an alignment or count file references an unseeded dataset."""

    def __init__(self, dataset_id: str, source: Path | str | None = None):
        where = f" in {source}" if source is not None else ""
        super().__init__(
            message=f"No sequence count metadata for dataset {dataset_id}{where}",
            suggestion=(
                "Provide sequence count and sampling summaries (or a dataset "
                "table) covering every dataset in the alignment files."
            ),
        )
        self.dataset_id = dataset_id


class SequenceIdOutOfRangeError(DatasetError):
    """Raised when a read ordinal exceeds the dataset's sampled count."""

    def __init__(self, dataset_id: str, sequence_id: int, sampled_count: int):
        super().__init__(
            message=(
                f"Sequence id {sequence_id} for dataset {dataset_id} exceeds "
                f"the sampled count of {sampled_count}"
            ),
            suggestion=(
                "The sampling summary does not match the reads that were aligned. "
                "Check that the sampling summary comes from the same run."
            ),
        )
        self.dataset_id = dataset_id
        self.sequence_id = sequence_id
        self.sampled_count = sampled_count


class MetadataError(MgaScreenError):
    """Raised when dataset count metadata cannot be read."""

    def __init__(self, path: Path | str, problem: str):
        super().__init__(
            message=f"Invalid dataset metadata in {path}: {problem}",
            suggestion=(
                "Sequence count summaries need DatasetId and SequenceCount elements, "
                "sampling summaries need DatasetId and SampledCount, and dataset "
                "tables need dataset_id, sequence_count and sampled_count columns."
            ),
        )
        self.path = Path(path)


class ConfigurationError(MgaScreenError):
    """Raised when configuration is invalid."""
