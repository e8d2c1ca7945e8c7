"""Error taxonomy for snapshot export and restore.

Every failure surfaced by the engine derives from ``SnapshotError`` so
callers can catch one type and report ``str(error)`` to the user.

Usage:
    from resto_snapshot.snapshot.errors import SnapshotError, StructuralError

    try:
        await service.restore_archive(content, confirm=True)
    except StructuralError as e:
        print(f"Bad archive, missing: {e.missing}")
    except SnapshotError as e:
        print(f"Restore failed: {e}")
"""


class SnapshotError(Exception):
    """Base class for all snapshot engine errors."""


class StructuralError(SnapshotError):
    """Archive is unreadable, malformed, or missing required datasets.

    Raised before any mutation.  ``missing`` lists the absent archive
    entries (``metadata.json`` first, then datasets in registry order);
    it is empty for format errors.
    """

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing: list[str] = list(missing or [])


class PreconditionError(SnapshotError):
    """Live store holds state that a destructive restore would discard."""


class RestoreInProgressError(PreconditionError):
    """Another restore is already running in this process."""


class StorageError(SnapshotError):
    """Reset, load, resync or commit failed; the transaction was rolled back."""


class IdentityError(SnapshotError):
    """The initiating actor could not be determined."""


class ExportError(SnapshotError):
    """Export failed; no archive was produced."""


class ConfirmationRequiredError(SnapshotError):
    """Restore was requested without explicit confirmation."""
