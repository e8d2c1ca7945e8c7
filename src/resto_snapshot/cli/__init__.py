"""CLI for restaurant snapshot export, validation and restore.

Usage:
    DB_PROFILE=local resto-snapshot connect
    resto-snapshot status
    resto-snapshot profiles
    resto-snapshot datasets
    resto-snapshot export --actor admin
    resto-snapshot export -o backups/nightly.zip --actor admin
    resto-snapshot validate backups/backup_2026-01-15T10-30-00.zip
    resto-snapshot restore backups/backup_2026-01-15T10-30-00.zip --confirm --actor admin

Commands:
    connect   - Connect to database and validate schema against the datasets
    status    - Show current connection status
    profiles  - List available profiles
    datasets  - Show the dataset registry in load order
    export    - Export every dataset to a snapshot archive
    validate  - Check a snapshot archive without touching the database
    restore   - Replace ALL data with a snapshot archive
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from resto_snapshot.config.loader import load_config
from resto_snapshot.config.models import SnapshotSettings
from resto_snapshot.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    read_profile_lock,
)
from resto_snapshot.service import SnapshotService
from resto_snapshot.snapshot.archive import validate_archive
from resto_snapshot.snapshot.errors import SnapshotError, StructuralError
from resto_snapshot.snapshot.identity import DatabaseActorProvider
from resto_snapshot.snapshot.registry import default_registry

console = Console()

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _actor_name(args: argparse.Namespace) -> str | None:
    """``--actor`` or the ``{prefix}SNAPSHOT_ACTOR`` environment variable."""
    env_prefix = getattr(args, "env_prefix", "")
    return getattr(args, "actor", None) or os.environ.get(f"{env_prefix}SNAPSHOT_ACTOR")


def _load_settings() -> SnapshotSettings:
    try:
        return load_config().snapshot
    except FileNotFoundError:
        return SnapshotSettings()


def _print_counts(title: str, counts: dict[str, int]) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Dataset")
    table.add_column("Records", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{sum(counts.values())}[/bold]")
    console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    previous_profile = read_profile_lock()

    console.print("Connecting to database...", style="dim")

    result = await connect_and_validate(env_prefix=env_prefix)

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected to profile: "
            f"[bold cyan]{result.profile_name}[/bold cyan]"
        )
        console.print("  Schema validation: [green]PASSED[/green]")
        if result.schema_report and result.schema_report.unmanaged_tables:
            console.print(
                f"  Tables outside the snapshot: [yellow]"
                f"{', '.join(result.schema_report.unmanaged_tables)}[/yellow]"
            )

        if previous_profile and previous_profile != result.profile_name:
            console.print(
                f"\n[dim]Switched from[/dim] [bold]{previous_profile}[/bold] "
                f"[dim]to[/dim] [bold cyan]{result.profile_name}[/bold cyan]"
            )

        return 0
    else:
        console.print()
        console.print(f"[bold red]x[/bold red] {result.error}")

        if result.schema_report:
            console.print("\n[bold]Schema validation report:[/bold]")
            console.print(result.schema_report.format_report())

        return 1


async def _async_export(args: argparse.Namespace) -> int:
    """Async implementation for export command.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")
    settings = _load_settings()

    try:
        adapter = await get_adapter(env_prefix=env_prefix)
    except (ProfileNotFoundError, KeyError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        service = SnapshotService(
            adapter,
            DatabaseActorProvider(adapter, _actor_name(args)),
            settings=settings,
        )
        archive = await service.export_archive()
    except SnapshotError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await adapter.close()

    output = Path(args.output) if args.output else Path(settings.output_dir) / archive.filename
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(archive.content)

    console.print(f"[bold green]v[/bold green] Snapshot written to [cyan]{output}[/cyan]")
    report = validate_archive(archive.content, service.registry)
    _print_counts("Exported datasets", report["counts"])
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 on success, 1 on failure.
    """
    if not args.confirm:
        console.print("[red]Error: restore replaces ALL data; pass --confirm to proceed[/red]")
        return 1

    env_prefix = getattr(args, "env_prefix", "")
    settings = _load_settings()

    path = Path(args.path)
    if not path.exists():
        console.print(f"[red]Error: archive not found: {path}[/red]")
        return 1

    try:
        adapter = await get_adapter(env_prefix=env_prefix)
    except (ProfileNotFoundError, KeyError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        service = SnapshotService(
            adapter,
            DatabaseActorProvider(adapter, _actor_name(args)),
            settings=settings,
        )
        summary = await service.restore_archive(path.read_bytes(), confirm=args.confirm)
    except StructuralError as e:
        console.print(f"[bold red]x[/bold red] Invalid archive: {e}")
        return 1
    except SnapshotError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await adapter.close()

    console.print(
        f"[bold green]v[/bold green] Restored snapshot from "
        f"{summary.backup_at.isoformat()} as [cyan]{summary.actor}[/cyan]"
    )
    _print_counts("Restored datasets", summary.counts)
    if not summary.recorded:
        console.print("[yellow]Restore outcome could not be recorded (see log)[/yellow]")
    return 0


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_connect(args: argparse.Namespace) -> int:
    """Connect to database and validate schema.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_connect(args))


def cmd_status(args: argparse.Namespace) -> int:
    """Show current connection status.

    Reads only local files (lock file and TOML config) -- no database calls.

    Returns:
        0 always (informational command).
    """
    profile = read_profile_lock()

    if profile:
        table = Table(title="Connection Status", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
        table.add_row("Profile source", ".db-profile (validated)")

        try:
            config = load_config()
            if profile in config.profiles:
                p = config.profiles[profile]
                table.add_row("Provider", p.provider)
                if p.description:
                    table.add_row("Description", p.description)
            table.add_row("Output dir", config.snapshot.output_dir)
        except FileNotFoundError:
            table.add_row("Warning", "[yellow]snapshot.toml not found[/yellow]")

        console.print(table)
    else:
        console.print("[yellow]No validated profile.[/yellow]")
        console.print(
            "[dim]Run:[/dim] [cyan]DB_PROFILE=<name> resto-snapshot connect[/cyan]"
        )

    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from snapshot.toml.

    Returns:
        0 on success, 1 if snapshot.toml not found.
    """
    try:
        config = load_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_datasets(args: argparse.Namespace) -> int:
    """Show the dataset registry in load order.

    Returns:
        0 always (informational command).
    """
    table = Table(title="Snapshot Datasets (load order)", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Dataset")
    table.add_column("Requires")
    table.add_column("Optional refs")
    table.add_column("Identity")

    for position, dataset in enumerate(default_registry().load_order, start=1):
        required = [f"{ref.table} ({ref.field})" for ref in dataset.refs if not ref.optional]
        optional = [f"{ref.table} ({ref.field})" for ref in dataset.refs if ref.optional]
        table.add_row(
            str(position),
            dataset.name,
            ", ".join(required),
            ", ".join(optional),
            "yes" if dataset.identity else "no",
        )

    console.print(table)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export every dataset to a snapshot archive.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_export(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Check a snapshot archive without touching the database.

    Returns:
        0 if the archive is restorable, 1 otherwise.
    """
    path = Path(args.path)
    if not path.exists():
        console.print(f"[red]Error: archive not found: {path}[/red]")
        return 1

    report = validate_archive(path.read_bytes(), default_registry())

    for error in report["errors"]:
        console.print(f"[red]  - {error}[/red]")
    for warning in report["warnings"]:
        console.print(f"[yellow]  - {warning}[/yellow]")

    if not report["valid"]:
        console.print(f"[bold red]x[/bold red] {path} is not a valid snapshot")
        return 1

    _print_counts(str(path), report["counts"])
    console.print("[bold green]v[/bold green] Archive is valid")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    """Replace ALL data with a snapshot archive.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="resto-snapshot",
        description="Full-dataset snapshot export and restore for the restaurant database",
    )

    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE and APP_SNAPSHOT_ACTOR)"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_connect = subparsers.add_parser(
        "connect",
        help="Connect to database and validate schema",
    )
    p_connect.set_defaults(func=cmd_connect)

    p_status = subparsers.add_parser(
        "status",
        help="Show current connection status",
    )
    p_status.set_defaults(func=cmd_status)

    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    p_datasets = subparsers.add_parser(
        "datasets",
        help="Show the dataset registry in load order",
    )
    p_datasets.set_defaults(func=cmd_datasets)

    p_export = subparsers.add_parser(
        "export",
        help="Export every dataset to a snapshot archive",
    )
    p_export.add_argument(
        "--output",
        "-o",
        help="Archive path (default: <output_dir>/backup_<timestamp>.zip)",
    )
    p_export.add_argument(
        "--actor",
        help="Username recorded as the archive creator",
    )
    p_export.set_defaults(func=cmd_export)

    p_validate = subparsers.add_parser(
        "validate",
        help="Check a snapshot archive without touching the database",
    )
    p_validate.add_argument("path", help="Snapshot archive (.zip)")
    p_validate.set_defaults(func=cmd_validate)

    p_restore = subparsers.add_parser(
        "restore",
        help="Replace ALL data with a snapshot archive",
    )
    p_restore.add_argument("path", help="Snapshot archive (.zip)")
    p_restore.add_argument(
        "--confirm",
        action="store_true",
        help="Required: acknowledge that all current data is replaced",
    )
    p_restore.add_argument(
        "--actor",
        help="Username performing the restore",
    )
    p_restore.set_defaults(func=cmd_restore)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
