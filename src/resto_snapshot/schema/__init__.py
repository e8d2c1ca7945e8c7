"""Live schema validation against the snapshot dataset registry.

Usage:
    from resto_snapshot.schema import validate_schema, SchemaValidationResult
"""

from resto_snapshot.schema.comparator import validate_schema
from resto_snapshot.schema.models import ConnectionResult, DatasetIssue, SchemaValidationResult

__all__ = [
    "validate_schema",
    "DatasetIssue",
    "ConnectionResult",
    "SchemaValidationResult",
]
