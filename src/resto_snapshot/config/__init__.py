"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from resto_snapshot.config import load_config, SnapshotConfig, SnapshotSettings
"""

from resto_snapshot.config.loader import load_config
from resto_snapshot.config.models import DatabaseProfile, SnapshotConfig, SnapshotSettings

__all__ = ["load_config", "DatabaseProfile", "SnapshotConfig", "SnapshotSettings"]
