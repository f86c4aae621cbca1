"""
Pydantic configuration model for mgascreen.

Defines the settings of a screening run: how alignment files are named and
decoded, and how results are written. Configuration can be loaded from a
YAML file and overridden by CLI arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import BaseModel, Field, model_validator

from mgascreen.core.constants import (
    DEFAULT_ALIGNER,
    MISSING_EDIT_DISTANCE,
    TEXT_FORMAT_ALIGNER,
)

logger = logging.getLogger(__name__)

AlignmentFormat = Literal["auto", "text", "sam"]
OutputFormat = Literal["csv", "parquet"]


class ScreenConfig(BaseModel):
    """
    Configuration for a multi-genome screening run.

    Alignment files follow the naming convention
    ``<run_id>.<dataset_id>.<reference_genome_id>.<aligner>.alignment``;
    ``run_id`` and ``aligner`` are needed to recover the genome id.

    Alignment formats:
        - text: bowtie default output (tab separated, one alignment per line)
        - sam: SAM/BAM/CRAM read through pysam
        - auto: text for the bowtie aligner, sam for every other aligner
    """

    run_id: str | None = Field(
        default=None,
        description="Run identifier prefixed to every alignment file name",
    )
    aligner: str = Field(
        default=DEFAULT_ALIGNER,
        min_length=1,
        description="Aligner name used in the alignment file suffix",
    )
    alignment_format: AlignmentFormat = Field(
        default="auto",
        description="Alignment record format ('auto', 'text' or 'sam')",
    )
    missing_edit_distance: int = Field(
        default=MISSING_EDIT_DISTANCE,
        ge=0,
        description="Mismatch count used for SAM records without an NM tag",
    )
    output_format: OutputFormat = Field(
        default="csv",
        description="Tabular summary output format ('csv' or 'parquet')",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_aligner_name(self) -> Self:
        """Aligner names end up in file suffixes and must not contain dots."""
        if "." in self.aligner or "/" in self.aligner:
            msg = f"Invalid aligner name '{self.aligner}': must not contain '.' or '/'"
            raise ValueError(msg)
        return self

    def resolved_format(self) -> Literal["text", "sam"]:
        """Concrete record format, resolving 'auto' from the aligner name."""
        if self.alignment_format != "auto":
            return self.alignment_format
        return "text" if self.aligner == TEXT_FORMAT_ALIGNER else "sam"

    @property
    def alignment_suffix(self) -> str:
        """File name suffix of this aligner's alignment files."""
        return f".{self.aligner}.alignment"

    def with_overrides(self, **overrides: Any) -> ScreenConfig:
        """Return a copy with the given non-None fields replaced."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return ScreenConfig(**{**self.model_dump(), **updates})

    @classmethod
    def from_yaml(cls, path: Path) -> ScreenConfig:
        """
        Load configuration from a YAML file.

        Expected structure::

            run_id: RUN01
            alignment:
              aligner: bowtie
              format: auto
              missing_edit_distance: 255
            output:
              format: csv

        Args:
            path: Path to the YAML configuration file

        Returns:
            ScreenConfig instance
        """
        import yaml

        raw = yaml.safe_load(path.read_text()) or {}
        if not isinstance(raw, dict):
            msg = f"Configuration file {path} must contain a mapping"
            raise ValueError(msg)
        flat = _flatten_yaml_config(raw)
        logger.debug("Loaded configuration from %s: %s", path, flat)
        return cls(**flat)

    def to_yaml(self, path: Path) -> None:
        """Write configuration to a YAML file."""
        path.write_text(self.to_yaml_str())

    def to_yaml_str(self) -> str:
        """Serialize configuration to a YAML string."""
        import yaml

        data = {
            "run_id": self.run_id,
            "alignment": {
                "aligner": self.aligner,
                "format": self.alignment_format,
                "missing_edit_distance": self.missing_edit_distance,
            },
            "output": {
                "format": self.output_format,
            },
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


def _flatten_yaml_config(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested YAML structure into ScreenConfig keyword arguments.

    Maps:
        alignment.aligner -> aligner
        alignment.format -> alignment_format
        alignment.missing_edit_distance -> missing_edit_distance
        output.format -> output_format
    """
    flat: dict[str, Any] = {}

    _map_if_present(raw, "run_id", flat, "run_id")

    alignment = raw.get("alignment") or {}
    _map_if_present(alignment, "aligner", flat, "aligner")
    _map_if_present(alignment, "format", flat, "alignment_format")
    _map_if_present(alignment, "missing_edit_distance", flat, "missing_edit_distance")

    output = raw.get("output") or {}
    _map_if_present(output, "format", flat, "output_format")

    return flat


def _map_if_present(
    source: dict[str, Any],
    source_key: str,
    target: dict[str, Any],
    target_key: str,
) -> None:
    """Copy value from source dict to target dict if key exists."""
    if source_key in source and source[source_key] is not None:
        target[target_key] = source[source_key]
