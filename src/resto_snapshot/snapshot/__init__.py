"""Snapshot engine: registry-driven export, validation and restore.

Usage:
    from resto_snapshot.snapshot import export_snapshot, restore_snapshot, validate_archive
    from resto_snapshot.snapshot import default_registry, StaticActorProvider
"""

from resto_snapshot.snapshot.archive import open_archive, validate_archive, write_archive
from resto_snapshot.snapshot.errors import (
    ConfirmationRequiredError,
    ExportError,
    IdentityError,
    PreconditionError,
    RestoreInProgressError,
    SnapshotError,
    StorageError,
    StructuralError,
)
from resto_snapshot.snapshot.exporter import export_snapshot
from resto_snapshot.snapshot.identity import (
    Actor,
    ActorProvider,
    DatabaseActorProvider,
    StaticActorProvider,
)
from resto_snapshot.snapshot.models import (
    ExportedArchive,
    ExportResult,
    RestoreSummary,
    SnapshotMetadata,
    ValidatedArchive,
)
from resto_snapshot.snapshot.registry import (
    DatasetDef,
    DatasetRegistry,
    ForeignKey,
    default_registry,
)
from resto_snapshot.snapshot.restore import restore_snapshot

__all__ = [
    # Registry
    "DatasetDef",
    "DatasetRegistry",
    "ForeignKey",
    "default_registry",
    # Archive
    "open_archive",
    "validate_archive",
    "write_archive",
    # Operations
    "export_snapshot",
    "restore_snapshot",
    # Identity
    "Actor",
    "ActorProvider",
    "DatabaseActorProvider",
    "StaticActorProvider",
    # Models
    "ExportedArchive",
    "ExportResult",
    "RestoreSummary",
    "SnapshotMetadata",
    "ValidatedArchive",
    # Errors
    "SnapshotError",
    "StructuralError",
    "PreconditionError",
    "RestoreInProgressError",
    "StorageError",
    "IdentityError",
    "ExportError",
    "ConfirmationRequiredError",
]
