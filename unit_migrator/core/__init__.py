"""Core migration logic: resolution, execution, tracking and reporting."""

__all__ = [
    "config",
    "context",
    "engine",
    "migration_logging",
    "orchestrator",
    "report",
    "resolver",
    "tracker",
]
