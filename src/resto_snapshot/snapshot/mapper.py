"""Flattening mapper: relational rows and entities -> flattened records.

Sources may be plain row mappings (``{"order_id": 7, ...}``) or in-memory
entities whose relationships hold parent objects (``item.order.id``).
A foreign-key field missing from the source is resolved through the
``ForeignKey.relation`` attribute and reduced to the parent's primary key,
so nested objects, and the cycles they can form, never reach the archive.

Usage:
    from resto_snapshot.snapshot.mapper import flatten
    from resto_snapshot.snapshot.registry import default_registry

    dataset = default_registry().get("order_item")
    record = flatten(dataset, {"id": 1, "order": {"id": 7}, "dish_id": 3})
    record.order_id   # 7
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from resto_snapshot.snapshot.records import FlatRecord
from resto_snapshot.snapshot.registry import DatasetDef

_MISSING = object()


def _lookup(source: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an object attribute."""
    if isinstance(source, Mapping):
        return source.get(name, _MISSING)
    return getattr(source, name, _MISSING)


def _scalar(value: Any) -> Any:
    # Foreign enum types (ORM-side) are reduced to their code
    if isinstance(value, Enum):
        return value.name
    return value


def flatten(dataset: DatasetDef, source: Any, parent_pk: str = "id") -> FlatRecord:
    """Project one row or entity onto the dataset's flattened record.

    Args:
        dataset: Dataset definition providing the record schema and refs.
        source: Row mapping or entity object.
        parent_pk: Primary-key attribute read from related parent objects.

    Returns:
        Validated ``FlatRecord`` instance of ``dataset.record``.

    Raises:
        pydantic.ValidationError: If a required field is missing or a
            value cannot be coerced to the schema type.
    """
    relations = {ref.field: ref.relation for ref in dataset.refs if ref.relation}
    values: dict[str, Any] = {}

    for field_name in dataset.record.model_fields:
        value = _lookup(source, field_name)

        if value is _MISSING and field_name in relations:
            parent = _lookup(source, relations[field_name])
            if parent is None:
                value = None
            elif parent is not _MISSING:
                value = _lookup(parent, parent_pk)

        if value is _MISSING:
            continue
        values[field_name] = _scalar(value)

    return dataset.record.model_validate(values)


def flatten_all(dataset: DatasetDef, sources: list[Any]) -> list[FlatRecord]:
    """Flatten every source of one dataset, preserving order."""
    return [flatten(dataset, source) for source in sources]
