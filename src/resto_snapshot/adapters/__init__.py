"""Database adapters package.

Provides the ``DatabaseClient`` and ``Transaction`` Protocols and the async
PostgreSQL implementation.

Usage:
    from resto_snapshot.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from resto_snapshot.adapters.base import DatabaseClient, Transaction
from resto_snapshot.adapters.postgres import AsyncPostgresAdapter, PostgresTransaction

__all__ = [
    "DatabaseClient",
    "Transaction",
    "AsyncPostgresAdapter",
    "PostgresTransaction",
]
