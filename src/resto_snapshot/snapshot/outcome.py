"""Outcome recorder: audit and notification entries for restore attempts.

Runs in its own transaction after the restore transaction has ended, so a
failed restore still leaves a trace and a recording failure can never undo
a successful restore.  Errors are logged and swallowed.
"""

import json
import logging
from datetime import datetime

from resto_snapshot.adapters.base import DatabaseClient
from resto_snapshot.snapshot.identity import Actor

logger = logging.getLogger(__name__)

RESTORE_ACTION = "BACKUP_RESTORE"


def _outcome_payload(success: bool, error: str | None) -> str:
    if success:
        return json.dumps({"result": "SUCCESS"})
    return json.dumps({"result": "FAILED", "error": error or ""}, ensure_ascii=False)


async def record_outcome(
    adapter: DatabaseClient,
    actor: Actor | None,
    success: bool,
    error: str | None = None,
) -> bool:
    """Write one audit_log row and one SYSTEM notification for a restore.

    The actor's ``user_id`` is attached to the audit entry only if that
    user exists in the store as it is now (after the restore it may not).

    Args:
        adapter: Database client.
        actor: Initiating actor, or ``None`` if identification failed.
        success: Whether the restore committed.
        error: Failure message for unsuccessful restores.

    Returns:
        ``True`` if both entries were written, ``False`` otherwise.
    """
    now = datetime.now()
    try:
        async with adapter.transaction() as tx:
            user_id = None
            if actor is not None and actor.user_id is not None:
                rows = await tx.select("app_user", "id", filters={"id": actor.user_id})
                user_id = actor.user_id if rows else None

            await tx.insert("audit_log", {
                "action": RESTORE_ACTION,
                "entity": "system",
                "after_data": _outcome_payload(success, error),
                "user_id": user_id,
                "created_at": now,
            })
            await tx.insert("notification", {
                "title": "Data restore",
                "message": "Data restore succeeded" if success else f"Data restore failed: {error or ''}",
                "type": "SYSTEM",
                "created_at": now,
            })
    except Exception as e:
        logger.warning("Could not record restore outcome: %s", e)
        return False

    return True
