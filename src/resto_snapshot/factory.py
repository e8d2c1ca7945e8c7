"""Database client factory and profile management.

Profiles live in ``snapshot.toml``; the active one is chosen by the
``{prefix}DB_PROFILE`` environment variable or, failing that, by the
``.db-profile`` lock file written after a successful ``connect``.

Usage:
    from resto_snapshot.factory import connect_and_validate, get_adapter

    result = await connect_and_validate("local")
    if result.success:
        adapter = await get_adapter()
"""

import os
from pathlib import Path
from urllib.parse import quote

from resto_snapshot.adapters.postgres import AsyncPostgresAdapter
from resto_snapshot.config.loader import load_config
from resto_snapshot.config.models import DatabaseProfile
from resto_snapshot.schema.comparator import validate_schema
from resto_snapshot.schema.models import ConnectionResult
from resto_snapshot.snapshot.registry import DatasetRegistry, default_registry

# Profile lock file path
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


# ============================================================================
# Profile Lock File Operations
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip()
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after successful schema validation.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var
    2. .db-profile file (validated profile from previous connect)
    3. Raise ProfileNotFoundError

    Args:
        env_prefix: Prefix for the environment variable (e.g., ``"RESTO_"``
            reads ``RESTO_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_prefix}DB_PROFILE=<name> resto-snapshot connect\n"
        "Profiles are defined in snapshot.toml"
    )


def get_active_profile(
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in snapshot.toml
    """
    profile_name = get_active_profile_name(env_prefix)
    config = load_config(config_path)

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in snapshot.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with ``[YOUR-PASSWORD]`` substitution (URL-quoted)."""
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Connection and Validation
# ============================================================================


async def connect_and_validate(
    profile_name: str | None = None,
    env_prefix: str = "",
    registry: DatasetRegistry | None = None,
    validate_only: bool = False,
    config_path: Path | None = None,
) -> ConnectionResult:
    """Connect to a profile's database and check it against the registry.

    On success the profile is persisted to the lock file (unless
    ``validate_only``), so later commands use it without an env var.

    Args:
        profile_name: Profile from snapshot.toml.  If None, uses the
            ``{env_prefix}DB_PROFILE`` env var or the lock file.
        env_prefix: Prefix for environment variable lookup.
        registry: Dataset registry (default: restaurant registry).
        validate_only: Only validate; do not write the lock file.
        config_path: Path to snapshot.toml (default: ``./snapshot.toml``).

    Returns:
        ConnectionResult with success status and validation report

    Example:
        >>> result = await connect_and_validate("local")
        >>> if not result.success:
        ...     print(result.error)
    """
    registry = registry or default_registry()

    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Profile '{profile_name}' not found. Available: {available}",
        )

    adapter = AsyncPostgresAdapter(resolve_url(config.profiles[profile_name]))
    try:
        actual_columns = await adapter.get_column_names()
    except Exception as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )
    finally:
        await adapter.close()

    validation = validate_schema(actual_columns, registry)

    if validation.valid:
        if not validate_only:
            write_profile_lock(profile_name)
        return ConnectionResult(
            success=True,
            profile_name=profile_name,
            schema_valid=True,
            schema_report=validation,
        )

    return ConnectionResult(
        success=False,
        profile_name=profile_name,
        schema_valid=False,
        schema_report=validation,
        error=f"Schema validation failed: {validation.error_count} errors",
    )


# ============================================================================
# Database Adapter Factory
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> AsyncPostgresAdapter:
    """Create an adapter for a profile (default: the active profile).

    JSONB columns come from ``[snapshot].jsonb_columns``.

    Raises:
        ProfileNotFoundError: If no profile is configured
        KeyError: If the profile is not in snapshot.toml
    """
    config = load_config(config_path)
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in snapshot.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return AsyncPostgresAdapter(
        resolve_url(config.profiles[profile_name]),
        jsonb_columns=config.snapshot.jsonb_columns,
    )
