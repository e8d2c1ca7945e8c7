"""Dataset registry: the catalog of exported tables and their FK edges.

The registry is the single source of ordering.  ``load_order`` is a
topological sort of the dependency DAG (parents first, declaration order
as tie-break) and ``reset_order`` is its reverse, so restore never keeps
two hand-written table lists.

Usage:
    from resto_snapshot.snapshot.registry import DatasetRegistry, DatasetDef, ForeignKey

    registry = DatasetRegistry(datasets=[
        DatasetDef(name="authors", record=AuthorRecord),
        DatasetDef(name="books", record=BookRecord,
                   refs=[ForeignKey(table="authors", field="author_id")]),
    ])
    [d.name for d in registry.load_order]   # ['authors', 'books']
    [d.name for d in registry.reset_order]  # ['books', 'authors']
"""

from functools import lru_cache

from pydantic import BaseModel, Field, model_validator

from resto_snapshot.snapshot import records as r


class ForeignKey(BaseModel):
    """Reference from a dataset column to a parent dataset's primary key."""

    table: str                      # parent dataset name
    field: str                      # FK column in this dataset
    relation: str | None = None     # attribute holding the parent object on in-memory entities
    optional: bool = False          # nullable: dangling values are cleared, not excluded


class DatasetDef(BaseModel):
    """Definition of one exported dataset (one table)."""

    name: str                                       # dataset name, also the archive section name
    record: type[r.FlatRecord]                      # flattened record schema
    table: str | None = None                        # table name (defaults to name)
    pk: str = "id"                                  # primary key column
    refs: list[ForeignKey] = Field(default_factory=list)
    identity: bool = True                           # pk is generated by a sequence

    @property
    def table_name(self) -> str:
        return self.table or self.name

    @property
    def entry_name(self) -> str:
        """Archive section file name."""
        return f"{self.name}.json"

    @property
    def parents(self) -> set[str]:
        return {ref.table for ref in self.refs}

    def columns(self) -> set[str]:
        return set(self.record.model_fields)


class DatasetRegistry(BaseModel):
    """Ordered catalog of datasets forming a dependency DAG."""

    datasets: list[DatasetDef]

    @model_validator(mode="after")
    def _check_graph(self) -> "DatasetRegistry":
        names = [d.name for d in self.datasets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate dataset names: {', '.join(duplicates)}")

        known = set(names)
        for dataset in self.datasets:
            for ref in dataset.refs:
                if ref.table not in known:
                    raise ValueError(
                        f"{dataset.name}.{ref.field} references unknown dataset '{ref.table}'"
                    )
                if ref.table == dataset.name:
                    raise ValueError(
                        f"{dataset.name}.{ref.field} is a self-reference; "
                        f"declare it as a plain column"
                    )
                if ref.field not in dataset.record.model_fields:
                    raise ValueError(
                        f"{dataset.name} record has no field '{ref.field}'"
                    )

        # Raises on cycles
        _topological_sort(self.datasets)
        return self

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    @property
    def load_order(self) -> list[DatasetDef]:
        """Datasets with every parent before its children."""
        return _topological_sort(self.datasets)

    @property
    def reset_order(self) -> list[DatasetDef]:
        """Datasets with every child before its parents."""
        return list(reversed(self.load_order))

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.load_order]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> DatasetDef:
        for dataset in self.datasets:
            if dataset.name == name:
                return dataset
        raise KeyError(f"Unknown dataset: {name}")

    def edges(self) -> list[tuple[str, str]]:
        """Dependency edges as ``(parent, child)`` pairs, in load order."""
        return [
            (parent, dataset.name)
            for dataset in self.load_order
            for parent in sorted(dataset.parents)
        ]

    def expected_columns(self) -> dict[str, set[str]]:
        """Table name -> columns the record schemas need (for schema checks)."""
        return {d.table_name: d.columns() for d in self.load_order}


def _topological_sort(datasets: list[DatasetDef]) -> list[DatasetDef]:
    """Depth-first topological sort, parents first.

    Declaration order is preserved wherever the graph allows it.

    Raises:
        ValueError: If the dependency graph contains a cycle.
    """
    by_name = {d.name: d for d in datasets}
    ordered: list[DatasetDef] = []
    visited: set[str] = set()
    visiting: list[str] = []

    def visit(name: str) -> None:
        if name in visited:
            return
        if name in visiting:
            cycle = visiting[visiting.index(name):] + [name]
            raise ValueError(f"Dependency cycle: {' -> '.join(cycle)}")
        visiting.append(name)
        for parent in sorted(by_name[name].parents, key=lambda n: list(by_name).index(n)):
            visit(parent)
        visiting.pop()
        visited.add(name)
        ordered.append(by_name[name])

    for dataset in datasets:
        visit(dataset.name)

    return ordered


# ============================================================================
# Restaurant registry
# ============================================================================


@lru_cache
def default_registry() -> DatasetRegistry:
    """The restaurant operations registry (18 datasets, load order)."""
    return DatasetRegistry(datasets=[
        DatasetDef(name="system_setting", record=r.SystemSettingRecord),
        DatasetDef(name="role", record=r.RoleRecord),
        DatasetDef(name="permission", record=r.PermissionRecord),
        DatasetDef(
            name="role_permission",
            record=r.RolePermissionRecord,
            refs=[
                ForeignKey(table="role", field="role_id", relation="role"),
                ForeignKey(table="permission", field="permission_id", relation="permission"),
            ],
        ),
        DatasetDef(name="app_user", record=r.UserRecord),
        DatasetDef(
            name="user_role",
            record=r.UserRoleRecord,
            refs=[
                ForeignKey(table="app_user", field="user_id", relation="user"),
                ForeignKey(table="role", field="role_id", relation="role"),
            ],
        ),
        DatasetDef(name="member", record=r.MemberRecord),
        DatasetDef(
            name="member_point_history",
            record=r.MemberPointHistoryRecord,
            refs=[ForeignKey(table="member", field="member_id", relation="member")],
        ),
        DatasetDef(name="restaurant_table", record=r.RestaurantTableRecord),
        DatasetDef(name="dish", record=r.DishRecord),
        DatasetDef(
            name="orders",
            record=r.OrderRecord,
            refs=[
                ForeignKey(table="restaurant_table", field="table_id", relation="table", optional=True),
                ForeignKey(table="app_user", field="created_by", optional=True),
            ],
        ),
        DatasetDef(
            name="order_item",
            record=r.OrderItemRecord,
            refs=[
                ForeignKey(table="orders", field="order_id", relation="order"),
                ForeignKey(table="dish", field="dish_id", relation="dish"),
            ],
        ),
        DatasetDef(
            name="invoice",
            record=r.InvoiceRecord,
            refs=[ForeignKey(table="orders", field="order_id", relation="order")],
        ),
        DatasetDef(
            name="invoice_item",
            record=r.InvoiceItemRecord,
            refs=[ForeignKey(table="invoice", field="invoice_id", relation="invoice")],
        ),
        DatasetDef(
            name="payment",
            record=r.PaymentRecord,
            refs=[
                ForeignKey(table="orders", field="order_id", relation="order"),
                ForeignKey(table="invoice", field="invoice_id", relation="invoice"),
                ForeignKey(table="app_user", field="created_by", optional=True),
            ],
        ),
        DatasetDef(name="notification", record=r.NotificationRecord),
        DatasetDef(
            name="notification_user_status",
            record=r.NotificationUserStatusRecord,
            refs=[
                ForeignKey(table="notification", field="notification_id", relation="notification"),
                ForeignKey(table="app_user", field="user_id", relation="user"),
            ],
        ),
        DatasetDef(
            name="audit_log",
            record=r.AuditLogRecord,
            refs=[ForeignKey(table="app_user", field="user_id", relation="user", optional=True)],
        ),
    ])
