"""Snapshot exporter: live store -> archive bytes.

Reads every registry dataset, parents first, inside one REPEATABLE READ
read-only transaction so the archive is a consistent point-in-time view.
Rows are flattened, then checked against the ids already exported for
their parent datasets:

- a required reference to a missing parent excludes the record;
- an optional reference to a missing parent is cleared to ``None``.

Both cases are logged and listed in ``metadata.filtered``.  Because
children are checked against the *filtered* parent ids, exclusions cascade
down the graph and the archive is referentially closed.

Usage:
    from resto_snapshot.snapshot.exporter import export_snapshot

    result = await export_snapshot(adapter, actor)
    Path("backup.zip").write_bytes(result.content)
"""

import logging
from datetime import datetime

from resto_snapshot.adapters.base import DatabaseClient, Transaction
from resto_snapshot.config.models import SnapshotSettings
from resto_snapshot.snapshot.archive import write_archive
from resto_snapshot.snapshot.errors import ExportError, SnapshotError
from resto_snapshot.snapshot.identity import Actor
from resto_snapshot.snapshot.mapper import flatten_all
from resto_snapshot.snapshot.models import ExportResult, FilteredReference, SnapshotMetadata
from resto_snapshot.snapshot.records import FlatRecord
from resto_snapshot.snapshot.registry import DatasetDef, DatasetRegistry, default_registry

logger = logging.getLogger(__name__)


def filter_dangling(
    dataset: DatasetDef,
    records: list[FlatRecord],
    exported_ids: dict[str, set[int]],
) -> tuple[list[FlatRecord], list[FilteredReference]]:
    """Drop or repair records whose references point at unexported parents.

    Args:
        dataset: Dataset the records belong to.
        records: Flattened records in export order.
        exported_ids: Dataset name -> ids already kept for that dataset.

    Returns:
        Tuple of (kept records, filtered reference entries).
    """
    kept: list[FlatRecord] = []
    filtered: list[FilteredReference] = []

    for record in records:
        dangling = [
            ref for ref in dataset.refs
            if getattr(record, ref.field) is not None
            and getattr(record, ref.field) not in exported_ids.get(ref.table, set())
        ]
        if not dangling:
            kept.append(record)
            continue

        required = [ref for ref in dangling if not ref.optional]
        refs = required or dangling
        action = "excluded" if required else "cleared"
        for ref in refs:
            entry = FilteredReference(
                dataset=dataset.name,
                record_id=record.id,
                field=ref.field,
                parent=ref.table,
                missing_id=getattr(record, ref.field),
                action=action,
            )
            logger.warning(
                "%s %s: %s=%s not found in %s, record %s",
                entry.dataset, entry.record_id, entry.field,
                entry.missing_id, entry.parent, action,
            )
            filtered.append(entry)

        if not required:
            kept.append(record.model_copy(update={ref.field: None for ref in dangling}))

    return kept, filtered


async def _read_dataset(tx: Transaction, dataset: DatasetDef) -> list[FlatRecord]:
    columns = ", ".join(dataset.record.model_fields)
    rows = await tx.select(dataset.table_name, columns, order_by=dataset.pk)
    return flatten_all(dataset, rows)


async def export_snapshot(
    adapter: DatabaseClient,
    actor: Actor,
    registry: DatasetRegistry | None = None,
    settings: SnapshotSettings | None = None,
) -> ExportResult:
    """Capture every registry dataset into one archive.

    Export never writes to the store.

    Args:
        adapter: Database client.
        actor: Identified actor, recorded as ``metadata.created_by``.
        registry: Dataset registry (default: restaurant registry).
        settings: Snapshot settings providing app/schema versions.

    Returns:
        ``ExportResult`` with archive bytes and the metadata written.

    Raises:
        ExportError: If any read, mapping or serialization step fails.
            No partial archive is returned.
    """
    registry = registry or default_registry()
    settings = settings or SnapshotSettings()

    datasets: dict[str, list[FlatRecord]] = {}
    exported_ids: dict[str, set[int]] = {}
    filtered: list[FilteredReference] = []

    try:
        async with adapter.transaction("REPEATABLE READ", read_only=True) as tx:
            for dataset in registry.load_order:
                records = await _read_dataset(tx, dataset)
                kept, dropped = filter_dangling(dataset, records, exported_ids)
                datasets[dataset.name] = kept
                exported_ids[dataset.name] = {record.id for record in kept}
                filtered.extend(dropped)
                logger.debug("Exported %s: %d record(s)", dataset.name, len(kept))

        metadata = SnapshotMetadata(
            backup_at=datetime.now(),
            created_by=actor.username,
            app_version=settings.app_version,
            schema_version=settings.schema_version,
            counts={name: len(records) for name, records in datasets.items()},
            filtered=filtered,
        )
        content = write_archive(metadata, datasets, registry)
    except SnapshotError:
        raise
    except Exception as e:
        logger.error("Export failed: %s", e)
        raise ExportError(f"Export failed: {e}") from e

    logger.info(
        "Exported %d dataset(s), %d record(s), %d filtered reference(s)",
        len(datasets), sum(metadata.counts.values()), len(filtered),
    )
    return ExportResult(content=content, metadata=metadata)
