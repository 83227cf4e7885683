"""Unit processor interface and adapters.

A unit processor does the actual work for one unit. The engine only knows the
:class:`UnitProcessor` protocol; plain functions (sync or async) are wrapped
in :class:`CallableProcessor`, and processors named in configuration as
``"package.module:attribute"`` are loaded with :func:`load_processor`.
"""

from __future__ import annotations

import importlib
import inspect
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from unit_migrator.exceptions import ConfigError
from unit_migrator.types import ProcessResult

if TYPE_CHECKING:
    from unit_migrator.types import MigrationUnit


@runtime_checkable
class UnitProcessor(Protocol):
    """Anything with a ``process(unit, run_config)`` method.

    ``process`` may be a coroutine function. It returns a
    :class:`~unit_migrator.types.ProcessResult`, a mapping with a ``success``
    key, or a bool, and may raise to signal failure.
    """

    def process(self, unit: MigrationUnit, run_config: Any) -> Any: ...


class CallableProcessor:
    """Adapts a plain ``func(unit, run_config)`` to the UnitProcessor protocol."""

    def __init__(self, func: Callable[[MigrationUnit, Any], Any]) -> None:
        self._func = func

    def process(self, unit: MigrationUnit, run_config: Any) -> Any:
        return self._func(unit, run_config)

    def __repr__(self) -> str:
        name = getattr(self._func, "__qualname__", repr(self._func))
        return f"CallableProcessor({name})"


class DryRunProcessor:
    """Stand-in used for dry runs when no processor is configured.

    The engine never calls a processor during a dry run, so in that role it
    only gives ``resolve_processor`` something to return. Named explicitly
    with ``--processor`` it turns a real run into a no-op that reports every
    unit as successful, with a warning, without touching it.
    """

    def process(self, unit: MigrationUnit, run_config: Any) -> ProcessResult:
        return ProcessResult(
            success=True,
            warnings=[f"Dry run: no unit processor configured for {unit.id}"],
        )


def as_processor(obj: Any) -> UnitProcessor:
    """Return *obj* as a UnitProcessor, wrapping bare callables.

    Raises:
        ConfigError: If *obj* is neither a processor nor callable.
    """
    if isinstance(obj, UnitProcessor):
        return obj
    if callable(obj):
        return CallableProcessor(obj)
    raise ConfigError(
        f"{obj!r} is not a unit processor: expected a callable or an object "
        "with a process(unit, run_config) method"
    )


def load_processor(spec: str) -> UnitProcessor:
    """Import a processor from a ``"package.module:attribute"`` reference.

    A class whose instances implement ``process`` is instantiated without
    arguments; functions and ready-made processor objects are used as is.

    Raises:
        ConfigError: If the reference is malformed or cannot be imported.
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(
            f"Invalid processor reference '{spec}', expected 'package.module:attribute'"
        )

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import processor module '{module_name}': {e}") from e

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ConfigError(
                f"Processor '{attr_path}' not found in module '{module_name}'"
            ) from None

    if inspect.isclass(obj) and callable(getattr(obj, "process", None)):
        obj = obj()
    return as_processor(obj)
