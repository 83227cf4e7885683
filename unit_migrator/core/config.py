"""
Configuration module for the migration-unit orchestrator.

This module provides functions for loading run settings from YAML files,
creating a default configuration, and deciding which units take part in a
run based on the configured include/exclude lists and tier/complexity filters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from unit_migrator.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_TIER,
    DEFAULT_UNIT_TIMEOUT,
    TIER_BY_COMPLEXITY,
)
from unit_migrator.exceptions import ConfigError
from unit_migrator.types import MigrationUnit, ReportFormat, SchedulingStrategy
from unit_migrator.utils.logging import log_with_context


def _default_report_formats() -> list[ReportFormat]:
    return [ReportFormat.JSON, ReportFormat.MARKDOWN]


def parse_report_formats(values: Any) -> list[ReportFormat]:
    """Convert a list of format names into ReportFormat members.

    Raises:
        ConfigError: If a name is not a known report format.
    """
    if values is None:
        return _default_report_formats()
    if isinstance(values, str):
        values = [values]
    formats: list[ReportFormat] = []
    for value in values:
        try:
            fmt = ReportFormat(str(value).lower())
        except ValueError:
            valid = ", ".join(f.value for f in ReportFormat)
            raise ConfigError(
                f"Invalid report format '{value}'. Must be one of: {valid}"
            ) from None
        if fmt not in formats:
            formats.append(fmt)
    return formats


@dataclass
class MigrationConfig:
    """Typed configuration for a migration run.

    All fields have defaults so an empty or missing config file is valid.
    """

    # Execution
    concurrency_limit: int = DEFAULT_CONCURRENCY
    continue_on_error: bool = False
    scheduling: SchedulingStrategy = SchedulingStrategy.FIXED_BATCH
    # Passed through to the unit processor, which is responsible for enforcing it
    unit_timeout: float | None = DEFAULT_UNIT_TIMEOUT

    # Unit filtering
    include_units: list[str] = field(default_factory=list)
    exclude_units: list[str] = field(default_factory=list)

    # Reporting
    report_formats: list[ReportFormat] = field(default_factory=_default_report_formats)

    # "package.module:attribute" of the unit processor
    processor: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.concurrency_limit, bool) or not isinstance(
            self.concurrency_limit, int
        ):
            raise ConfigError(
                f"concurrency_limit must be an integer, got {self.concurrency_limit!r}"
            )
        if self.concurrency_limit < 1:
            raise ConfigError(
                f"concurrency_limit must be at least 1, got {self.concurrency_limit}"
            )
        if self.unit_timeout is not None and (
            isinstance(self.unit_timeout, bool)
            or not isinstance(self.unit_timeout, (int, float))
        ):
            raise ConfigError(
                f"unit_timeout must be a number, got {self.unit_timeout!r}"
            )
        if self.unit_timeout is not None and self.unit_timeout <= 0:
            raise ConfigError(
                f"unit_timeout must be positive, got {self.unit_timeout}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """Create a MigrationConfig from a raw config dictionary."""
        scheduling_raw = data.get("scheduling", SchedulingStrategy.FIXED_BATCH.value)
        try:
            scheduling = SchedulingStrategy(scheduling_raw)
        except ValueError:
            valid = ", ".join(s.value for s in SchedulingStrategy)
            raise ConfigError(
                f"Invalid scheduling '{scheduling_raw}'. Must be one of: {valid}"
            ) from None

        return cls(
            concurrency_limit=data.get("concurrency_limit", DEFAULT_CONCURRENCY),
            continue_on_error=bool(data.get("continue_on_error", False)),
            scheduling=scheduling,
            unit_timeout=data.get("unit_timeout", DEFAULT_UNIT_TIMEOUT),
            include_units=list(data.get("include_units") or []),
            exclude_units=list(data.get("exclude_units") or []),
            report_formats=parse_report_formats(data.get("report_formats")),
            processor=data.get("processor"),
        )


def load_config(config_path: Path) -> MigrationConfig:
    """
    Load configuration from YAML file and apply default values.

    A missing or unreadable file is logged and the defaults are used. A file
    that parses but holds invalid values raises ``ConfigError``.

    Args:
        config_path: Path to the config YAML file

    Returns:
        MigrationConfig with all necessary defaults applied
    """
    raw: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                loaded_config = yaml.safe_load(f)
                # Handle None result from empty file
                if loaded_config is not None:
                    raw = loaded_config
            log_with_context(logging.INFO, f"Loaded configuration from {config_path}")
        except (yaml.YAMLError, OSError) as e:
            log_with_context(
                logging.WARNING, f"Failed to load config file {config_path}: {e}"
            )
    else:
        log_with_context(
            logging.DEBUG,
            f"Config file {config_path} not found, using default settings",
        )

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    return MigrationConfig.from_dict(raw)


def create_default_config(output_path: Path) -> bool:
    """
    Create a default configuration file with recommended settings.

    The function will not overwrite an existing configuration file.

    Args:
        output_path: Path where the default config should be saved

    Returns:
        True if the config file was created successfully, False otherwise
    """
    if output_path.exists():
        log_with_context(
            logging.WARNING,
            f"Config file {output_path} already exists, not overwriting",
        )
        return False

    default_config = {
        # Execution
        "concurrency_limit": DEFAULT_CONCURRENCY,
        "continue_on_error": False,
        "scheduling": SchedulingStrategy.FIXED_BATCH.value,
        "unit_timeout": DEFAULT_UNIT_TIMEOUT,
        # Unit filtering
        "include_units": [],
        "exclude_units": [],
        # Reporting
        "report_formats": [f.value for f in _default_report_formats()],
        # Unit processor, e.g. "my_package.processors:TransformProcessor"
        "processor": None,
    }

    try:
        with open(output_path, "w") as f:
            yaml.safe_dump(default_config, f, default_flow_style=False, sort_keys=False)
        log_with_context(logging.INFO, f"Created default config file at {output_path}")
        return True
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to create default config file: {e}")
        return False


def determine_tier(complexity: str) -> int:
    """Map a complexity tag to its migration tier (unknown tags are tier 1)."""
    return TIER_BY_COMPLEXITY.get(complexity, DEFAULT_TIER)


def should_process_unit(
    unit: MigrationUnit,
    config: MigrationConfig,
    tier: int | None = None,
    complexity: str | None = None,
) -> bool:
    """
    Determine if a unit takes part in the run.

    Rules, in order:
    1. If include_units is set, only units listed there (by id or name) run
    2. Units listed in exclude_units are skipped
    3. A tier filter keeps only units whose complexity maps to that tier
    4. A complexity filter keeps only units with that exact complexity tag

    Args:
        unit: The unit descriptor
        config: The MigrationConfig instance
        tier: Optional tier filter (1-4)
        complexity: Optional complexity filter

    Returns:
        True if the unit should be processed, False if it should be skipped
    """
    keys = {unit.id, unit.name}

    include_units = set(config.include_units)
    if include_units and not keys & include_units:
        log_with_context(
            logging.DEBUG,
            f"UNIT CHECK: '{unit.id}' not in include list, skipping",
            unit_id=unit.id,
        )
        return False

    if keys & set(config.exclude_units):
        log_with_context(
            logging.DEBUG,
            f"UNIT CHECK: '{unit.id}' is in exclude list, skipping",
            unit_id=unit.id,
        )
        return False

    if tier is not None and determine_tier(unit.complexity) != tier:
        log_with_context(
            logging.DEBUG,
            f"UNIT CHECK: '{unit.id}' is not tier {tier}, skipping",
            unit_id=unit.id,
        )
        return False

    if complexity is not None and unit.complexity != complexity:
        log_with_context(
            logging.DEBUG,
            f"UNIT CHECK: '{unit.id}' complexity is {unit.complexity}, skipping",
            unit_id=unit.id,
        )
        return False

    return True
