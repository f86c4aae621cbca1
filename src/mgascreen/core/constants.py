"""
Constants used throughout the mgascreen package.

Centralizes file naming conventions, SAM flag masks and default values
shared by the readers, the merge reader and the assignment passes.
"""

from __future__ import annotations

# =============================================================================
# Alignment File Naming
#
# One alignment file per (run, dataset, genome):
#     <run_id>.<dataset_id>.<reference_genome_id>.<aligner>.alignment
# =============================================================================

ALIGNMENT_FILE_EXTENSION = ".alignment"

# Aligner whose default output is the delimited-text format; every other
# aligner is expected to produce SAM/BAM.
TEXT_FORMAT_ALIGNER = "bowtie"

DEFAULT_ALIGNER = TEXT_FORMAT_ALIGNER

# =============================================================================
# Read Identifiers
#
# Reads are renamed "<dataset_id>_<sequence_id>" before alignment. Dataset ids
# may contain underscores, so the last one is the separator.
# =============================================================================

READ_ID_SEPARATOR = "_"

# =============================================================================
# Delimited-text (bowtie) Record Layout
# =============================================================================

TEXT_FIELD_SEPARATOR = "\t"
TEXT_READ_ID_FIELD = 0
TEXT_SEQUENCE_FIELD = 4
TEXT_MISMATCHES_FIELD = 7
TEXT_MIN_FIELDS = TEXT_MISMATCHES_FIELD + 1
MISMATCH_SEPARATOR = ","

# =============================================================================
# SAM/BAM Records
# =============================================================================

SAM_FLAG_UNMAPPED = 0x4
SAM_FLAG_SECONDARY = 0x100
SAM_FLAG_SUPPLEMENTARY = 0x800

# Records with any of these bits set are not primary alignments. Unmapped
# records (SAM_FLAG_UNMAPPED) are kept and count as alignments.
SAM_SKIP_FLAGS = SAM_FLAG_SECONDARY | SAM_FLAG_SUPPLEMENTARY

EDIT_DISTANCE_TAG = "NM"

# Mismatch count used when a record carries no edit-distance tag. Treated as
# a very poor but valid alignment.
MISSING_EDIT_DISTANCE = 255

# =============================================================================
# Metadata Files
# =============================================================================

SEQUENCE_COUNT_SUMMARY_ROOT = "SequenceCountSummary"
SAMPLING_SUMMARY_ROOT = "SamplingSummary"

DATASET_COUNT_COLUMNS = ("dataset_id", "sequence_count", "sampled_count")
