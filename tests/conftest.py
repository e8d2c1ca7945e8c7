"""Shared fixtures: an in-memory transactional store implementing the adapter protocol.

``MemoryDatabase`` behaves like the PostgreSQL adapter where the snapshot
engine depends on it: transactions roll back on exceptions, foreign keys
are enforced on insert and delete, identity sequences hand out ids, and
read-only transactions refuse writes.  Every operation is appended to
``db.ops`` so tests can assert on ordering.

Sequences follow server semantics: ids handed out by ``nextval`` are never
given back on rollback, and ``setval`` is not transactional.  Only
restarts made through ``reset_identity``/``resync_identity`` (``ALTER
SEQUENCE ... RESTART``) are undone when the transaction rolls back.
"""

import asyncio
import copy
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pytest

from resto_snapshot.snapshot.identity import StaticActorProvider
from resto_snapshot.snapshot.registry import DatasetRegistry, default_registry


class ForeignKeyViolation(Exception):
    """Raised by the memory store on a broken reference."""


class UniqueViolation(Exception):
    """Raised by the memory store on a duplicate primary key."""


class MemoryTransaction:
    def __init__(self, db: "MemoryDatabase", read_only: bool) -> None:
        self._db = db
        self._read_only = read_only
        self.restarted: dict[str, int] = {}  # table -> sequence value before the first restart

    def _restart(self, table: str, value: int) -> None:
        self.restarted.setdefault(table, self._db.sequences[table])
        self._db.sequences[table] = value

    def _check_writable(self, table: str) -> None:
        if self._read_only:
            raise RuntimeError(f"cannot write to {table} in a read-only transaction")

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
    ) -> list[dict]:
        self._db.ops.append(("select", table))
        if table == self._db.fail_on_select:
            raise RuntimeError(f"injected read failure on {table}")

        rows = list(self._db.tables[table].values())
        for key, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                rows = [r for r in rows if r.get(key) in value]
            else:
                rows = [r for r in rows if r.get(key) == value]
        if order_by:
            rows = sorted(rows, key=lambda r: r.get(order_by))

        if columns.strip() == "*":
            return [dict(r) for r in rows]
        names = [c.strip() for c in columns.split(",")]
        return [{name: r.get(name) for name in names} for r in rows]

    async def insert(self, table: str, data: dict) -> dict:
        self._check_writable(table)
        self._db.ops.append(("insert", table, 1))
        return self._db.put(table, dict(data))

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        self._check_writable(table)
        if table == self._db.fail_on_insert:
            raise RuntimeError(f"injected write failure on {table}")
        self._db.ops.append(("insert", table, len(rows)))
        for row in rows:
            self._db.put(table, dict(row))
        return len(rows)

    async def delete_all(self, table: str) -> int:
        self._check_writable(table)
        self._db.ops.append(("delete", table))
        for child, field, parent in self._db.foreign_keys:
            if parent == table and child != table and self._db.tables[table]:
                if any(r.get(field) is not None for r in self._db.tables[child].values()):
                    raise ForeignKeyViolation(f"{child}.{field} still references {table}")
        count = len(self._db.tables[table])
        self._db.tables[table].clear()
        return count

    async def reset_identity(self, table: str, pk: str = "id") -> None:
        self._check_writable(table)
        self._db.ops.append(("reset", table))
        self._restart(table, 1)

    async def resync_identity(self, table: str, pk: str = "id") -> int:
        self._check_writable(table)
        self._db.ops.append(("resync", table))
        ids = list(self._db.tables[table])
        self._restart(table, max(ids) + 1 if ids else 1)
        return self._db.sequences[table]

    async def lock_tables(self, tables: list[str]) -> None:
        self._db.ops.append(("lock", tuple(tables)))
        if self._db.lock_entered is not None:
            self._db.lock_entered.set()
        if self._db.lock_gate is not None:
            await self._db.lock_gate.wait()


class MemoryDatabase:
    """In-memory ``DatabaseClient`` with transactions, FKs and sequences."""

    def __init__(self, registry: DatasetRegistry) -> None:
        self.tables: dict[str, dict[int, dict]] = {d.table_name: {} for d in registry.load_order}
        self.sequences: dict[str, int] = {d.table_name: 1 for d in registry.load_order}
        self.foreign_keys: list[tuple[str, str, str]] = [
            (d.table_name, ref.field, registry.get(ref.table).table_name)
            for d in registry.load_order
            for ref in d.refs
        ]
        self.columns: dict[str, set[str]] = registry.expected_columns()
        self.ops: list[tuple] = []
        self.transactions: list[dict] = []
        self.fail_on_insert: str | None = None
        self.fail_on_select: str | None = None
        self.fail_on_begin: Exception | None = None
        self.lock_entered: asyncio.Event | None = None
        self.lock_gate: asyncio.Event | None = None
        self.closed = False

    # ------------------------------------------------------------------
    # Storage helpers
    # ------------------------------------------------------------------

    def put(self, table: str, row: dict, check: bool = True) -> dict:
        if row.get("id") is None:
            row["id"] = self.sequences[table]
            self.sequences[table] += 1
        if row["id"] in self.tables[table]:
            raise UniqueViolation(f"duplicate key {table}.id={row['id']}")
        if check:
            for child, field, parent in self.foreign_keys:
                value = row.get(field)
                if child == table and value is not None and value not in self.tables[parent]:
                    raise ForeignKeyViolation(f"{table}.{field}={value} not present in {parent}")
        self.tables[table][row["id"]] = row
        return dict(row)

    def load(self, table: str, rows: list[dict], check: bool = True) -> None:
        """Seed rows directly and move the sequence past them."""
        for row in rows:
            self.put(table, dict(row), check=check)
        if self.tables[table]:
            self.sequences[table] = max(self.tables[table]) + 1

    def state(self) -> tuple[dict, dict]:
        return copy.deepcopy(self.tables), dict(self.sequences)

    # ------------------------------------------------------------------
    # DatabaseClient protocol
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self, isolation_level: str | None = None, read_only: bool = False):
        if self.fail_on_begin is not None:
            raise self.fail_on_begin
        self.transactions.append({"isolation_level": isolation_level, "read_only": read_only})
        saved_tables = copy.deepcopy(self.tables)
        tx = MemoryTransaction(self, read_only)
        try:
            yield tx
        except BaseException:
            self.tables = saved_tables
            self.sequences.update(tx.restarted)
            self.ops.append(("rollback",))
            raise
        self.ops.append(("commit",))

    async def get_column_names(self) -> dict[str, set[str]]:
        return {table: set(cols) for table, cols in self.columns.items()}

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Sample restaurant data
# ============================================================================

_NOW = datetime(2026, 1, 15, 10, 30, 0)


def seed_restaurant(db: MemoryDatabase) -> None:
    """A small, consistent restaurant covering all 18 datasets (no open orders)."""
    db.load("system_setting", [
        {"id": 1, "setting_group": "GENERAL", "setting_key": "restaurant_name",
         "setting_value": "Pho 24", "value_type": "STRING", "created_at": _NOW},
        {"id": 2, "setting_group": "TAX", "setting_key": "vat_rate",
         "setting_value": "10", "value_type": "NUMBER", "created_at": _NOW},
    ])
    db.load("role", [
        {"id": 1, "code": "ADMIN", "name": "Administrator", "created_at": _NOW},
        {"id": 2, "code": "CASHIER", "name": "Cashier", "created_at": _NOW},
    ])
    db.load("permission", [
        {"id": 1, "code": "ORDER_VIEW", "name": "View orders"},
        {"id": 2, "code": "BACKUP_RESTORE", "name": "Restore backups"},
    ])
    db.load("role_permission", [
        {"id": 1, "role_id": 1, "permission_id": 1},
        {"id": 2, "role_id": 1, "permission_id": 2},
        {"id": 3, "role_id": 2, "permission_id": 1},
    ])
    db.load("app_user", [
        {"id": 1, "username": "admin", "password": "$2a$10$hash", "full_name": "Admin", "status": "ACTIVE"},
        {"id": 2, "username": "cashier", "password": "$2a$10$hash", "full_name": "Mai", "status": "ACTIVE"},
    ])
    db.load("user_role", [
        {"id": 1, "user_id": 1, "role_id": 1},
        {"id": 2, "user_id": 2, "role_id": 2},
    ])
    db.load("member", [
        {"id": 1, "name": "Lan", "phone": "0901234567", "active": True,
         "birthday": date(1990, 5, 1), "tier": "GOLD", "total_point": 120,
         "used_point": 0, "lifetime_point": 120},
    ])
    db.load("member_point_history", [
        {"id": 1, "member_id": 1, "change_amount": 12, "balance_after": 120,
         "type": "EARN", "order_id": 1, "created_at": _NOW},
    ])
    db.load("restaurant_table", [
        {"id": 1, "name": "T1", "capacity": 4, "status": "AVAILABLE"},
        {"id": 2, "name": "T2", "capacity": 2, "status": "AVAILABLE"},
    ])
    db.load("dish", [
        {"id": 1, "name": "Pho bo", "category_id": 3, "price": Decimal("55000.00"), "status": "ACTIVE"},
        {"id": 2, "name": "Tra da", "category_id": 4, "price": Decimal("5000.00"), "status": "ACTIVE"},
    ])
    db.load("orders", [
        {"id": 1, "order_code": "OD0001", "total_price": Decimal("120000.00"), "status": "PAID",
         "created_by": 2, "table_id": 1, "member_id": 1, "created_at": _NOW},
        {"id": 2, "order_code": "OD0002", "total_price": Decimal("55000.00"), "status": "CANCELED",
         "created_by": 2, "table_id": 2, "created_at": _NOW},
    ])
    db.load("order_item", [
        {"id": 1, "order_id": 1, "dish_id": 1, "quantity": 2,
         "snapshot_price": Decimal("55000.00"), "status": "DONE"},
        {"id": 2, "order_id": 1, "dish_id": 2, "quantity": 2,
         "snapshot_price": Decimal("5000.00"), "status": "DONE"},
        {"id": 3, "order_id": 2, "dish_id": 1, "quantity": 1,
         "snapshot_price": Decimal("55000.00"), "status": "CANCELED"},
    ])
    db.load("invoice", [
        {"id": 1, "order_id": 1, "total_amount": Decimal("120000.00"), "payment_method": "CASH",
         "paid_at": _NOW, "vat_rate": Decimal("10.00"), "loyalty_earned_point": 12},
    ])
    db.load("invoice_item", [
        {"id": 1, "invoice_id": 1, "dish_id": 1, "dish_name": "Pho bo",
         "dish_price": Decimal("55000.00"), "quantity": 2, "subtotal": Decimal("110000.00")},
        {"id": 2, "invoice_id": 1, "dish_id": 2, "dish_name": "Tra da",
         "dish_price": Decimal("5000.00"), "quantity": 2, "subtotal": Decimal("10000.00")},
    ])
    db.load("payment", [
        {"id": 1, "order_id": 1, "invoice_id": 1, "amount": Decimal("120000.00"),
         "method": "CASH", "created_by": 2, "paid_at": _NOW},
    ])
    db.load("notification", [
        {"id": 1, "title": "Order paid", "message": "OD0001 paid", "type": "ORDER", "created_at": _NOW},
    ])
    db.load("notification_user_status", [
        {"id": 1, "notification_id": 1, "user_id": 1, "status": "READ", "read_at": _NOW},
    ])
    db.load("audit_log", [
        {"id": 1, "action": "LOGIN", "entity": "user", "entity_id": 1, "user_id": 1, "created_at": _NOW},
        {"id": 2, "action": "ORDER_PAY", "entity": "order", "entity_id": 1, "user_id": 2, "created_at": _NOW},
    ])


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def registry() -> DatasetRegistry:
    return default_registry()


@pytest.fixture
def empty_db(registry) -> MemoryDatabase:
    return MemoryDatabase(registry)


@pytest.fixture
def db(registry) -> MemoryDatabase:
    database = MemoryDatabase(registry)
    seed_restaurant(database)
    return database


@pytest.fixture
def actor_provider() -> StaticActorProvider:
    return StaticActorProvider("admin", user_id=1)
