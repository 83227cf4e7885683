"""
Functions for loading migration unit descriptors from a unit manifest
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from unit_migrator.constants import DEFAULT_MANIFEST_NAME
from unit_migrator.exceptions import ManifestError
from unit_migrator.types import MigrationUnit
from unit_migrator.utils.logging import log_with_context


def default_manifest_path(source_dir: Path) -> Path:
    """Where the manifest lives when none is given explicitly."""
    return source_dir / DEFAULT_MANIFEST_NAME


def parse_units(data: Any, origin: str = "<manifest>") -> list[MigrationUnit]:
    """Build unit descriptors from parsed manifest content.

    Accepts either ``{"units": [...]}`` or a bare list of unit entries.

    Args:
        data: Parsed YAML/JSON content.
        origin: Name used in error messages.

    Returns:
        Units in manifest order.

    Raises:
        ManifestError: If the structure or an entry is invalid.
    """
    if isinstance(data, dict):
        entries = data.get("units")
    else:
        entries = data

    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ManifestError(f"{origin}: 'units' must be a list")

    units: list[MigrationUnit] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ManifestError(f"{origin}: unit #{index + 1} must be a mapping")
        if not entry.get("id"):
            raise ManifestError(f"{origin}: unit #{index + 1} has no 'id'")
        deps = entry.get("dependencies") or []
        if not isinstance(deps, list) or not all(isinstance(d, dict) for d in deps):
            raise ManifestError(
                f"{origin}: dependencies of unit '{entry['id']}' must be a list of mappings"
            )
        try:
            units.append(MigrationUnit.from_dict(entry))
        except (KeyError, ValueError) as e:
            raise ManifestError(
                f"{origin}: invalid unit '{entry['id']}': {e}"
            ) from e
    return units


def load_units(manifest_path: Path) -> list[MigrationUnit]:
    """
    Load unit descriptors from a YAML or JSON manifest file.

    Args:
        manifest_path: Path to the manifest

    Returns:
        Units in manifest order

    Raises:
        ManifestError: If the file is missing, unreadable or malformed
    """
    if not manifest_path.is_file():
        raise ManifestError(f"Unit manifest {manifest_path} not found")

    try:
        with open(manifest_path) as f:
            # YAML is a superset of JSON, so one loader covers both
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        raise ManifestError(f"Failed to read unit manifest {manifest_path}: {e}") from e

    units = parse_units(data, origin=str(manifest_path))
    log_with_context(
        logging.INFO,
        f"Loaded {len(units)} units from {manifest_path}",
    )
    return units
