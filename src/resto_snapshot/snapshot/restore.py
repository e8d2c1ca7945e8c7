"""Destructive restore: rebuild the whole store from one archive.

Stages, in order:

1. Identify the actor (``IdentityError``).
2. Read and validate the archive (``StructuralError``).
3. In ONE transaction:
   a. lock every managed table (ACCESS EXCLUSIVE, load order);
   b. refuse if open orders exist (``PreconditionError``);
   c. delete all rows, children first, and restart identity generators;
   d. insert every dataset with original ids, parents first, in batches;
   e. move each identity generator past the highest restored id.
4. Record the outcome (audit + notification) in a separate transaction.

Any failure in step 3 rolls the transaction back and surfaces as
``StorageError`` (or the ``PreconditionError`` raised by 3b): the store is
either fully restored or untouched.

Usage:
    from resto_snapshot.snapshot.restore import restore_snapshot
    from resto_snapshot.snapshot.identity import StaticActorProvider

    summary = await restore_snapshot(
        adapter,
        Path("backup.zip").read_bytes(),
        StaticActorProvider("admin"),
    )
    print(summary.counts, summary.next_ids)
"""

import asyncio
import logging

from resto_snapshot.adapters.base import DatabaseClient, Transaction
from resto_snapshot.config.models import SnapshotSettings
from resto_snapshot.snapshot.archive import open_archive
from resto_snapshot.snapshot.errors import (
    PreconditionError,
    RestoreInProgressError,
    SnapshotError,
    StorageError,
)
from resto_snapshot.snapshot.identity import Actor, ActorProvider, resolve_actor
from resto_snapshot.snapshot.models import RestoreSummary, ValidatedArchive
from resto_snapshot.snapshot.outcome import record_outcome
from resto_snapshot.snapshot.registry import DatasetRegistry, default_registry

logger = logging.getLogger(__name__)

# One restore at a time per process; cross-process callers serialize on table locks
_restore_lock = asyncio.Lock()


# ============================================================================
# Stages (each runs inside the caller's transaction)
# ============================================================================


async def check_safe_to_restore(
    tx: Transaction,
    settings: SnapshotSettings | None = None,
    table: str = "orders",
) -> None:
    """Refuse to restore while orders are still open.

    Raises:
        PreconditionError: If any order has a status listed in
            ``settings.open_order_statuses``.
    """
    settings = settings or SnapshotSettings()
    statuses = list(settings.open_order_statuses)
    rows = await tx.select(table, "id, status", filters={"status": statuses})
    if rows:
        raise PreconditionError(
            f"Cannot restore while {len(rows)} order(s) are open "
            f"(status {', '.join(statuses)}); close them first"
        )


async def reset_all(tx: Transaction, registry: DatasetRegistry) -> dict[str, int]:
    """Delete every managed row (children first) and restart generators.

    Returns:
        Rows deleted per dataset.
    """
    deleted: dict[str, int] = {}
    for dataset in registry.reset_order:
        deleted[dataset.name] = await tx.delete_all(dataset.table_name)
    for dataset in registry.reset_order:
        if dataset.identity:
            await tx.reset_identity(dataset.table_name, dataset.pk)

    logger.info("Reset %d table(s), %d row(s) deleted", len(deleted), sum(deleted.values()))
    return deleted


async def load_all(
    tx: Transaction,
    archive: ValidatedArchive,
    registry: DatasetRegistry,
    batch_size: int = 200,
) -> dict[str, int]:
    """Insert every dataset in load order, keeping original ids.

    Batching only bounds statement size; nothing is skipped and the first
    failing batch aborts the restore.

    Returns:
        Rows inserted per dataset.
    """
    counts: dict[str, int] = {}
    for dataset in registry.load_order:
        records = archive.datasets[dataset.name]
        inserted = 0
        for start in range(0, len(records), batch_size):
            batch = records[start:start + batch_size]
            inserted += await tx.insert_many(dataset.table_name, [r.to_row() for r in batch])
        counts[dataset.name] = inserted
        logger.debug("Loaded %s: %d row(s)", dataset.name, inserted)
    return counts


async def resync_all(tx: Transaction, registry: DatasetRegistry) -> dict[str, int]:
    """Move every identity generator past the highest loaded id.

    Returns:
        Next id per identity dataset (1 for empty tables).
    """
    next_ids: dict[str, int] = {}
    for dataset in registry.load_order:
        if dataset.identity:
            next_ids[dataset.name] = await tx.resync_identity(dataset.table_name, dataset.pk)
    return next_ids


# ============================================================================
# Orchestration
# ============================================================================


async def _restore_in_transaction(
    adapter: DatabaseClient,
    archive: ValidatedArchive,
    registry: DatasetRegistry,
    settings: SnapshotSettings,
) -> tuple[dict[str, int], dict[str, int]]:
    try:
        async with adapter.transaction() as tx:
            await tx.lock_tables([d.table_name for d in registry.load_order])
            await check_safe_to_restore(tx, settings)
            await reset_all(tx, registry)
            counts = await load_all(tx, archive, registry, settings.batch_size)
            next_ids = await resync_all(tx, registry)
    except SnapshotError:
        raise
    except Exception as e:
        raise StorageError(f"Restore failed, all changes rolled back: {e}") from e
    return counts, next_ids


async def restore_snapshot(
    adapter: DatabaseClient,
    content: bytes,
    actor_provider: ActorProvider | None,
    registry: DatasetRegistry | None = None,
    settings: SnapshotSettings | None = None,
) -> RestoreSummary:
    """Replace the whole store with the archive's contents.

    Args:
        adapter: Database client.
        content: Raw archive bytes.
        actor_provider: Source of the initiating actor.
        registry: Dataset registry (default: restaurant registry).
        settings: Snapshot settings (batch size, open order statuses).

    Returns:
        ``RestoreSummary`` with per-dataset counts and next ids.

    Raises:
        RestoreInProgressError: If another restore is running in this process.
        IdentityError: If no actor can be determined.
        StructuralError: If the archive is unreadable or incomplete.
        PreconditionError: If open orders exist.
        StorageError: If reset, load, resync or commit fails.
    """
    registry = registry or default_registry()
    settings = settings or SnapshotSettings()

    if _restore_lock.locked():
        raise RestoreInProgressError("Another restore is already in progress")

    async with _restore_lock:
        actor: Actor | None = None
        try:
            actor = await resolve_actor(actor_provider)
            archive = open_archive(content, registry)
            logger.info(
                "Restoring snapshot of %s (created by %s) as %s",
                archive.metadata.backup_at.isoformat(),
                archive.metadata.created_by,
                actor.username,
            )
            counts, next_ids = await _restore_in_transaction(adapter, archive, registry, settings)
        except SnapshotError as e:
            logger.error("Restore failed: %s", e)
            await record_outcome(adapter, actor, success=False, error=str(e))
            raise

        recorded = await record_outcome(adapter, actor, success=True)

    logger.info("Restore complete: %d record(s) in %d dataset(s)", sum(counts.values()), len(counts))
    return RestoreSummary(
        actor=actor.username,
        backup_at=archive.metadata.backup_at,
        counts=counts,
        next_ids=next_ids,
        recorded=recorded,
    )
