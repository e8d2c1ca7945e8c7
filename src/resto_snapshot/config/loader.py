"""TOML configuration loading for resto-snapshot."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from resto_snapshot.config.models import DatabaseProfile, SnapshotConfig, SnapshotSettings


def load_config(config_path: Path | None = None) -> SnapshotConfig:
    """Load profiles and snapshot settings from a TOML file.

    Args:
        config_path: Path to snapshot.toml (default: ``./snapshot.toml``)

    Returns:
        SnapshotConfig with all profiles and the ``[snapshot]`` settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "snapshot.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Snapshot config not found: {config_path}\n"
            f"Copy snapshot.toml.example to snapshot.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        profiles = {
            name: DatabaseProfile(**profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        settings = SnapshotSettings(**data.get("snapshot", {}))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {config_path}: {e}") from e

    return SnapshotConfig(profiles=profiles, snapshot=settings)
