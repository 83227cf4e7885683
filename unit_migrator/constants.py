"""Shared constants for the migration-unit orchestrator."""

LOGGER_NAME = "unit_migrator"

# Run defaults
DEFAULT_CONCURRENCY = 4
DEFAULT_UNIT_TIMEOUT = 30.0
DEFAULT_MANIFEST_NAME = "units.yaml"
DEFAULT_CONFIG_NAME = "config.yaml"

# Report output
REPORTS_DIRNAME = "reports"
REPORT_FILE_PREFIX = "migration-report"
MAIN_LOG_FILENAME = "migration.log"

# Record metadata keys that hold raw source/target payloads and are left out
# of rendered reports.
BULKY_METADATA_KEYS = frozenset(
    {"source_content", "target_content", "source_unit", "target_unit"}
)

# Complexity tag -> migration tier
TIER_BY_COMPLEXITY = {
    "simple": 1,
    "moderate": 2,
    "complex": 3,
    "critical": 4,
}
DEFAULT_TIER = 1

DRY_RUN_NOTE = "Dry run: unit processor was not invoked"
