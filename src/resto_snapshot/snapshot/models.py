"""Snapshot archive and result models.

``SnapshotMetadata`` is the ``metadata.json`` section of an archive.
``ValidatedArchive`` is what the reader hands to restore: every registry
dataset present and every record schema-valid.

Usage:
    from resto_snapshot.snapshot.models import SnapshotMetadata

    metadata = SnapshotMetadata(created_by="admin", counts={"role": 3})
    metadata.model_dump_json(indent=2)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from resto_snapshot.snapshot.records import FlatRecord

FORMAT_VERSION = "1.0"
SUPPORTED_FORMAT_VERSIONS = frozenset({FORMAT_VERSION})

METADATA_ENTRY = "metadata.json"


class FilteredReference(BaseModel):
    """One dangling reference dropped or cleared during export."""

    dataset: str                                # dataset holding the reference
    record_id: int                              # pk of the referencing record
    field: str                                  # FK column
    parent: str                                 # referenced dataset
    missing_id: int                             # referenced id absent from the parent
    action: Literal["excluded", "cleared"]      # record dropped or field nulled


class SnapshotMetadata(BaseModel):
    """Contents of ``metadata.json``."""

    model_config = ConfigDict(extra="ignore")

    backup_at: datetime = Field(default_factory=datetime.now)
    created_by: str
    format_version: str = FORMAT_VERSION
    app_version: str | None = None
    schema_version: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)
    filtered: list[FilteredReference] = Field(default_factory=list)


class RestoreSummary(BaseModel):
    """Result of a successful restore."""

    actor: str
    backup_at: datetime
    counts: dict[str, int]                      # rows loaded per dataset
    next_ids: dict[str, int]                    # next identity value per dataset
    recorded: bool = False                      # outcome audit/notification written

    @property
    def total_records(self) -> int:
        return sum(self.counts.values())


@dataclass
class ValidatedArchive:
    """Archive that passed structural validation."""

    metadata: SnapshotMetadata
    datasets: dict[str, list[FlatRecord]]
    extra_sections: list[str] = field(default_factory=list)


@dataclass
class ExportResult:
    """Archive bytes plus the metadata written into them."""

    content: bytes
    metadata: SnapshotMetadata


@dataclass
class ExportedArchive:
    """Downloadable archive: bytes plus transport headers."""

    content: bytes
    filename: str
    media_type: str = "application/octet-stream"

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'
