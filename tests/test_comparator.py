"""Tests for the live schema comparator."""

from resto_snapshot.schema.comparator import validate_schema
from resto_snapshot.schema.models import DatasetIssue, SchemaValidationResult


class TestValidateSchema:
    """validate_schema checks each registry dataset against the live tables."""

    def test_matching_schema(self, registry):
        result = validate_schema(registry.expected_columns(), registry)
        assert result.valid is True
        assert result.error_count == 0
        assert result.issues == []

    def test_extra_live_columns_are_fine(self, registry):
        live = registry.expected_columns()
        live["role"].add("legacy_flag")
        assert validate_schema(live, registry).valid is True

    def test_missing_table(self, registry):
        live = registry.expected_columns()
        del live["dish"]
        result = validate_schema(live, registry)

        assert result.valid is False
        assert result.missing_tables == ["dish"]
        [issue] = result.issues
        assert issue.dataset == "dish"
        assert issue.table_missing is True

    def test_missing_columns_grouped_per_dataset(self, registry):
        live = registry.expected_columns()
        live["dish"] -= {"price", "status"}
        result = validate_schema(live, registry)

        [issue] = result.issues
        assert (issue.dataset, issue.table) == ("dish", "dish")
        assert issue.missing_columns == ["price", "status"]
        assert result.error_count == 2
        assert result.missing_tables == []

    def test_issues_follow_load_order(self, registry):
        live = registry.expected_columns()
        del live["audit_log"]
        live["orders"].discard("status")
        del live["role"]
        result = validate_schema(live, registry)
        assert result.datasets == ["role", "orders", "audit_log"]

    def test_unmanaged_tables_only_warn(self, registry):
        live = registry.expected_columns()
        live["flyway_schema_history"] = {"version"}
        result = validate_schema(live, registry)
        assert result.valid is True
        assert result.unmanaged_tables == ["flyway_schema_history"]


class TestFormatReport:
    def test_valid(self):
        assert SchemaValidationResult().format_report() == "Schema matches every dataset"

    def test_one_line_per_dataset(self, registry):
        live = registry.expected_columns()
        live["dish"].discard("price")
        del live["orders"]
        live["ingredient"] = {"id"}

        report = validate_schema(live, registry).format_report()

        assert report.startswith("2 dataset(s) do not match the live schema:")
        assert "  - dish: table 'dish' lacks price" in report
        assert "  - orders: table 'orders' not found" in report
        assert "Tables outside the snapshot (warning): ingredient" in report

    def test_issue_counts(self):
        assert DatasetIssue(dataset="dish", table="dish", table_missing=True).error_count == 1
        assert DatasetIssue(dataset="dish", table="dish", missing_columns=["a", "b"]).error_count == 2
