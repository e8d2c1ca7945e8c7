"""Snapshot archive writer, reader and validator.

An archive is a ZIP container holding ``metadata.json`` plus one
``<dataset>.json`` section (a JSON array of flattened records) per
registry dataset.

``open_archive`` is the gate in front of restore: it either returns a
``ValidatedArchive`` or raises ``StructuralError``.  ``validate_archive``
runs the same checks without raising and adds informational warnings
(unknown sections, references to ids absent from the archive).

Usage:
    from resto_snapshot.snapshot.archive import open_archive, validate_archive
    from resto_snapshot.snapshot.registry import default_registry

    report = validate_archive(data, default_registry())
    if report["valid"]:
        archive = open_archive(data, default_registry())
"""

import io
import json
import zipfile
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from resto_snapshot.snapshot.errors import StructuralError
from resto_snapshot.snapshot.models import (
    METADATA_ENTRY,
    SUPPORTED_FORMAT_VERSIONS,
    SnapshotMetadata,
    ValidatedArchive,
)
from resto_snapshot.snapshot.records import FlatRecord
from resto_snapshot.snapshot.registry import DatasetRegistry


# ============================================================================
# Writing
# ============================================================================


def write_archive(
    metadata: SnapshotMetadata,
    datasets: dict[str, list[FlatRecord]],
    registry: DatasetRegistry,
) -> bytes:
    """Serialize metadata and every registry dataset into ZIP bytes.

    Sections are written in load order.  Decimals are written as strings
    and timestamps as ISO-8601 (pydantic JSON mode).

    Raises:
        KeyError: If ``datasets`` lacks a registry dataset.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(METADATA_ENTRY, metadata.model_dump_json(indent=2))
        for dataset in registry.load_order:
            records = datasets[dataset.name]
            payload = [record.model_dump(mode="json") for record in records]
            zf.writestr(dataset.entry_name, json.dumps(payload, ensure_ascii=False))
    return buffer.getvalue()


# ============================================================================
# Reading
# ============================================================================


@dataclass
class _Inspection:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    archive: ValidatedArchive | None = None


def _read_entries(data: bytes) -> dict[str, bytes]:
    """Read every file entry of the ZIP container into memory."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {
            info.filename: zf.read(info)
            for info in zf.infolist()
            if not info.is_dir()
        }


def _inspect(data: bytes, registry: DatasetRegistry) -> _Inspection:
    """Run all structural checks and collect errors instead of raising."""
    result = _Inspection()

    try:
        entries = _read_entries(data)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, OSError) as e:
        result.errors.append(f"Archive is not a readable ZIP container: {e}")
        return result

    # Required entries: metadata first, then datasets in registry order
    required = [METADATA_ENTRY] + [d.entry_name for d in registry.load_order]
    result.missing = [name for name in required if name not in entries]
    if result.missing:
        result.errors.append(f"Archive is missing: {', '.join(result.missing)}")
        return result

    known = set(required)
    extra_sections = sorted(name for name in entries if name not in known)
    for name in extra_sections:
        result.warnings.append(f"Unknown archive section ignored: {name}")

    # Metadata
    metadata: SnapshotMetadata | None = None
    try:
        metadata = SnapshotMetadata.model_validate_json(entries[METADATA_ENTRY])
    except ValidationError as e:
        result.errors.append(f"Invalid {METADATA_ENTRY}: {e.error_count()} error(s): {e}")
    else:
        if metadata.format_version not in SUPPORTED_FORMAT_VERSIONS:
            result.errors.append(
                f"Unsupported archive format version '{metadata.format_version}' "
                f"(expected one of: {', '.join(sorted(SUPPORTED_FORMAT_VERSIONS))})"
            )

    # Dataset sections
    datasets: dict[str, list[FlatRecord]] = {}
    for dataset in registry.load_order:
        try:
            payload: Any = json.loads(entries[dataset.entry_name])
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            result.errors.append(f"{dataset.entry_name}: invalid JSON: {e}")
            continue

        if not isinstance(payload, list):
            result.errors.append(f"{dataset.entry_name}: expected a JSON array")
            continue

        records: list[FlatRecord] = []
        seen: set[int] = set()
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                result.errors.append(f"{dataset.entry_name}[{index}]: expected an object")
                continue
            try:
                record = dataset.record.model_validate(item)
            except ValidationError as e:
                result.errors.append(f"{dataset.entry_name}[{index}]: {e}")
                continue
            if record.id in seen:
                result.errors.append(
                    f"{dataset.entry_name}: duplicate {dataset.pk} {record.id}"
                )
                continue
            seen.add(record.id)
            records.append(record)
        datasets[dataset.name] = records

    if not result.errors and metadata is not None:
        result.archive = ValidatedArchive(
            metadata=metadata,
            datasets=datasets,
            extra_sections=extra_sections,
        )
    return result


def open_archive(data: bytes, registry: DatasetRegistry) -> ValidatedArchive:
    """Read and structurally validate an archive.

    Referential integrity across datasets is not checked here; the
    database foreign keys enforce it during load.

    Args:
        data: Raw archive bytes.
        registry: Registry whose datasets must all be present.

    Returns:
        ``ValidatedArchive`` with schema-valid records per dataset.

    Raises:
        StructuralError: If the container or any section is unreadable or
            invalid, or required entries are missing (``missing`` lists
            them).
    """
    result = _inspect(data, registry)
    if result.archive is None:
        raise StructuralError("; ".join(result.errors), missing=result.missing)
    return result.archive


def _orphan_warnings(archive: ValidatedArchive, registry: DatasetRegistry) -> list[str]:
    """References to ids absent from the archive's own parent datasets."""
    ids = {
        name: {record.id for record in records}
        for name, records in archive.datasets.items()
    }
    warnings: list[str] = []
    for dataset in registry.load_order:
        for ref in dataset.refs:
            parent_ids = ids[ref.table]
            for record in archive.datasets[dataset.name]:
                value = getattr(record, ref.field)
                if value is not None and value not in parent_ids:
                    warnings.append(
                        f"Orphaned {dataset.name} {record.id}: "
                        f"{ref.field}={value} not in {ref.table}"
                    )
    return warnings


def validate_archive(data: bytes, registry: DatasetRegistry) -> dict:
    """Validate an archive without raising.

    This function is **sync** -- it only inspects the bytes, with no
    database I/O.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]), ``warnings``
        (list[str]), ``missing`` (list[str]) and ``counts`` (records per
        dataset, empty when invalid).

    Example:
        report = validate_archive(Path("backup.zip").read_bytes(), registry)
        for warning in report["warnings"]:
            print(warning)
    """
    result = _inspect(data, registry)
    warnings = list(result.warnings)
    counts: dict[str, int] = {}
    if result.archive is not None:
        warnings.extend(_orphan_warnings(result.archive, registry))
        counts = {name: len(records) for name, records in result.archive.datasets.items()}

    return {
        "valid": result.archive is not None,
        "errors": result.errors,
        "warnings": warnings,
        "missing": result.missing,
        "counts": counts,
    }
