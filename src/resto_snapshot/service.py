"""Trigger surface for export and restore requests.

``SnapshotService`` is what an HTTP handler or the CLI calls: it binds an
adapter, an actor provider, the registry and settings, produces download
metadata for exports and enforces explicit confirmation for restores.

Usage:
    from resto_snapshot.service import SnapshotService
    from resto_snapshot.snapshot import StaticActorProvider

    service = SnapshotService(adapter, StaticActorProvider("admin"))
    archive = await service.export_archive()
    archive.filename              # 'backup_2026-01-15T10-30-00.zip'
    archive.content_disposition   # 'attachment; filename="backup_..."'

    summary = await service.restore_archive(archive.content, confirm=True)
"""

import logging
from datetime import datetime

from resto_snapshot.adapters.base import DatabaseClient
from resto_snapshot.config.models import SnapshotSettings
from resto_snapshot.snapshot.archive import validate_archive
from resto_snapshot.snapshot.errors import ConfirmationRequiredError
from resto_snapshot.snapshot.exporter import export_snapshot
from resto_snapshot.snapshot.identity import ActorProvider, resolve_actor
from resto_snapshot.snapshot.models import ExportedArchive, RestoreSummary
from resto_snapshot.snapshot.registry import DatasetRegistry, default_registry
from resto_snapshot.snapshot.restore import restore_snapshot

logger = logging.getLogger(__name__)


def archive_filename(backup_at: datetime) -> str:
    """``backup_<YYYY-MM-DDTHH-MM-SS>.zip`` (colons are not filename-safe)."""
    return f"backup_{backup_at.strftime('%Y-%m-%dT%H-%M-%S')}.zip"


class SnapshotService:
    """Export/restore entry points bound to one database."""

    def __init__(
        self,
        adapter: DatabaseClient,
        actor_provider: ActorProvider | None,
        registry: DatasetRegistry | None = None,
        settings: SnapshotSettings | None = None,
    ) -> None:
        self.adapter = adapter
        self.actor_provider = actor_provider
        self.registry = registry or default_registry()
        self.settings = settings or SnapshotSettings()

    async def export_archive(self) -> ExportedArchive:
        """Export the full dataset as a downloadable archive.

        Raises:
            IdentityError: If no actor is identified.
            ExportError: If the export fails.
        """
        actor = await resolve_actor(self.actor_provider)
        result = await export_snapshot(self.adapter, actor, self.registry, self.settings)
        return ExportedArchive(
            content=result.content,
            filename=archive_filename(result.metadata.backup_at),
        )

    async def restore_archive(self, content: bytes, confirm: bool = False) -> RestoreSummary:
        """Destructively restore from archive bytes.

        Args:
            content: Uploaded archive bytes.
            confirm: Must be ``True``; the restore replaces all data.

        Raises:
            ConfirmationRequiredError: If ``confirm`` is not ``True``.
            SnapshotError: Any restore failure (see ``restore_snapshot``).
        """
        if confirm is not True:
            raise ConfirmationRequiredError(
                "Restore replaces ALL data; pass confirm=True to proceed"
            )
        return await restore_snapshot(
            self.adapter, content, self.actor_provider, self.registry, self.settings
        )

    def validate(self, content: bytes) -> dict:
        """Non-raising structural report for archive bytes."""
        return validate_archive(content, self.registry)
