"""Command-line interface: the click group and its subcommands."""

__all__ = [
    "commands",
    "common",
    "init_config_cmd",
    "migrate_cmd",
    "plan_cmd",
    "report",
]
