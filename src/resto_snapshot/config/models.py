"""Pydantic models for snapshot.toml configuration."""

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from snapshot.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"


class SnapshotSettings(BaseModel):
    """``[snapshot]`` section: export/restore tuning and archive metadata."""

    batch_size: int = 200
    output_dir: str = "backups"
    app_version: str = "1.0.0"
    schema_version: str = "UNKNOWN"
    open_order_statuses: list[str] = Field(default_factory=lambda: ["NEW", "SERVING"])
    jsonb_columns: list[str] = Field(default_factory=list)

    @field_validator("batch_size")
    @classmethod
    def _positive_batch(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch_size must be >= 1")
        return v

    @field_validator("open_order_statuses")
    @classmethod
    def _statuses_present(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("open_order_statuses must list at least one status")
        return v


class SnapshotConfig(BaseModel):
    """Complete configuration from snapshot.toml."""

    profiles: dict[str, DatabaseProfile]
    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)
