"""Live schema vs. dataset registry comparison.

Every column a flattened record carries must exist in the live table,
otherwise export cannot read it and restore cannot write it.  Pure logic,
no I/O.

Usage:
    from resto_snapshot.schema.comparator import validate_schema
    from resto_snapshot.snapshot.registry import default_registry

    actual_columns = await adapter.get_column_names()
    result = validate_schema(actual_columns, default_registry())
    if not result.valid:
        print(result.format_report())
"""

from resto_snapshot.schema.models import DatasetIssue, SchemaValidationResult
from resto_snapshot.snapshot.registry import DatasetRegistry


def validate_schema(
    actual_columns: dict[str, set[str]],
    registry: DatasetRegistry,
) -> SchemaValidationResult:
    """Check each registry dataset against the live columns.

    A dataset is reported when its table is absent or when its record has
    fields the table lacks.  Live tables outside the registry are listed
    as unmanaged (warning only; restore leaves them untouched).  Extra
    live columns are fine.

    Args:
        actual_columns: Table name -> live column names, as returned by
            ``adapter.get_column_names()``.
        registry: Datasets to check, reported in load order.

    Returns:
        ``SchemaValidationResult``; ``valid`` is ``True`` if no dataset
        has an issue.
    """
    issues: list[DatasetIssue] = []
    for dataset in registry.load_order:
        live = actual_columns.get(dataset.table_name)
        if live is None:
            issues.append(DatasetIssue(dataset=dataset.name, table=dataset.table_name, table_missing=True))
            continue

        missing = sorted(dataset.columns() - set(live))
        if missing:
            issues.append(DatasetIssue(dataset=dataset.name, table=dataset.table_name, missing_columns=missing))

    managed = {d.table_name for d in registry.datasets}
    return SchemaValidationResult(
        issues=issues,
        unmanaged_tables=sorted(set(actual_columns) - managed),
    )
