"""Database client protocol definitions.

Defines the ``DatabaseClient`` and ``Transaction`` Protocols that adapters
must implement.  Every snapshot operation runs inside one transaction, so
row-level methods live on ``Transaction`` and the client only opens
transactions.  All methods are ``async def``.

Usage:
    from resto_snapshot.adapters.base import DatabaseClient

    async def count_roles(client: DatabaseClient) -> int:
        async with client.transaction(read_only=True) as tx:
            rows = await tx.select("role", "id")
        return len(rows)
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class Transaction(Protocol):
    """Operations available inside one open database transaction.

    The transaction commits when its context exits normally and rolls back
    when the context exits with an exception.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names (e.g., ``"id, status"``).
            filters: Optional dict of field=value filters (all must match via
                AND).  A list or tuple value matches any of its members (IN).
            order_by: Optional column name to sort by.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await tx.select(
                "orders",
                "id",
                filters={"status": ["NEW", "SERVING"]},
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Insert one row (explicit primary key allowed) and return it."""
        ...

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        """Insert a batch of rows with one statement.

        Args:
            table: Table name.
            rows: Row dicts sharing the same keys.

        Returns:
            Number of rows inserted.

        Raises:
            Exception: On any constraint violation (the transaction must
                then be abandoned).
        """
        ...

    async def delete_all(self, table: str) -> int:
        """Delete every row of ``table`` and return the number deleted."""
        ...

    async def reset_identity(self, table: str, pk: str = "id") -> None:
        """Restart the identity generator of ``table`` at its initial value.

        Must roll back with the transaction, like every other write.
        """
        ...

    async def resync_identity(self, table: str, pk: str = "id") -> int:
        """Set the identity generator past ``max(pk)``.

        Returns:
            The value the generator will hand out next (``max + 1``, or
            ``1`` for an empty table).
        """
        ...

    async def lock_tables(self, tables: list[str]) -> None:
        """Take exclusive locks on ``tables`` in the given order."""
        ...


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    All methods are async -- callers must ``await`` every operation.
    """

    def transaction(
        self,
        isolation_level: str | None = None,
        read_only: bool = False,
    ) -> AbstractAsyncContextManager[Transaction]:
        """Open a transaction.

        Args:
            isolation_level: Optional isolation level name (e.g.,
                ``"REPEATABLE READ"``).  ``None`` uses the server default.
            read_only: Open the transaction read-only.

        Returns:
            Async context manager yielding a ``Transaction``.

        Example:
            async with client.transaction("REPEATABLE READ", read_only=True) as tx:
                rows = await tx.select("dish", "*", order_by="id")
        """
        ...

    async def get_column_names(self) -> dict[str, set[str]]:
        """Return table name -> column names for the live schema."""
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
