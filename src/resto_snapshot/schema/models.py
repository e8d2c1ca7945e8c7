"""Pydantic models for live-schema checks against the dataset registry.

- DatasetIssue: one dataset the live database cannot hold
- SchemaValidationResult: every issue, in load order
- ConnectionResult: outcome of connect_and_validate()
"""

from pydantic import BaseModel, Field


# ============================================================================
# Validation Result Models
# ============================================================================


class DatasetIssue(BaseModel):
    """A dataset whose table is absent or lacks record columns."""

    dataset: str
    table: str
    table_missing: bool = False
    missing_columns: list[str] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return 1 if self.table_missing else len(self.missing_columns)

    def describe(self) -> str:
        if self.table_missing:
            return f"{self.dataset}: table '{self.table}' not found"
        return f"{self.dataset}: table '{self.table}' lacks {', '.join(self.missing_columns)}"


class SchemaValidationResult(BaseModel):
    """Datasets that could not be exported or restored against the live schema.

    Example:
        >>> result = SchemaValidationResult()
        >>> result.valid, result.error_count
        (True, 0)
        >>> result.format_report()
        'Schema matches every dataset'
    """

    issues: list[DatasetIssue] = Field(default_factory=list)
    unmanaged_tables: list[str] = Field(default_factory=list)  # Warning only

    @property
    def valid(self) -> bool:
        return not self.issues

    @property
    def error_count(self) -> int:
        """Missing tables plus missing columns."""
        return sum(issue.error_count for issue in self.issues)

    @property
    def missing_tables(self) -> list[str]:
        return [issue.table for issue in self.issues if issue.table_missing]

    @property
    def datasets(self) -> list[str]:
        """Names of the affected datasets, in load order."""
        return [issue.dataset for issue in self.issues]

    def format_report(self) -> str:
        """Format validation result as human-readable report, one line per dataset."""
        if self.valid:
            return "Schema matches every dataset"

        lines = [f"{len(self.issues)} dataset(s) do not match the live schema:"]
        lines.extend(f"  - {issue.describe()}" for issue in self.issues)

        if self.unmanaged_tables:
            lines.append(
                f"\n  Tables outside the snapshot (warning): {', '.join(self.unmanaged_tables)}"
            )

        return "\n".join(lines)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate().

    Example:
        >>> result = ConnectionResult(success=True, profile_name="local", schema_valid=True)
        >>> result.success
        True
    """

    success: bool
    profile_name: str | None = None
    schema_valid: bool | None = None
    schema_report: SchemaValidationResult | None = None
    error: str | None = None
