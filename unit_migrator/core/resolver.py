"""
Dependency resolution for migration ordering.

Builds a directed graph over the units of a run (an edge X -> Y means X
depends on Y), rejects graphs with circular dependencies, and produces a
topological processing order so every unit comes after the units it depends on.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from unit_migrator.exceptions import GraphError
from unit_migrator.types import DependencyKind, MigrationUnit, UnitDependency
from unit_migrator.utils.logging import log_with_context

# Dependency kinds that create graph edges; external imports never do.
EDGE_KINDS = frozenset({DependencyKind.INTERNAL, DependencyKind.COMPONENT})

_TRAILING_SEGMENT = re.compile(r"/([^/]+)$")


@dataclass
class DependencyGraphNode:
    """A unit with its resolved outgoing and incoming edges."""

    unit: MigrationUnit
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)


@dataclass
class ResolutionResult:
    """Outcome of :meth:`DependencyGraphResolver.resolve`."""

    success: bool
    ordered_units: list[MigrationUnit] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def raise_for_cycles(self) -> None:
        """Raise GraphError if resolution failed because of cycles."""
        if self.success:
            return
        details = "; ".join(" -> ".join(cycle) for cycle in self.cycles)
        message = self.errors[0] if self.errors else "Dependency resolution failed"
        raise GraphError(f"{message}: {details}", cycles=self.cycles)


def resolve_dependency_id(dependency: UnitDependency) -> str:
    """Target unit id of a dependency reference.

    The id is the last path segment of the import path, e.g.
    ``"@/components/Button"`` -> ``"Button"``. When the import path has no
    ``/`` separator the raw dependency name is used.
    """
    match = _TRAILING_SEGMENT.search(dependency.import_path)
    return match.group(1) if match else dependency.name


def dependency_ids(unit: MigrationUnit, known_ids: Iterable[str]) -> list[str]:
    """Resolved edge targets of *unit* that exist in *known_ids*.

    External references and references to unknown units are dropped;
    duplicates collapse to a single edge.
    """
    known = set(known_ids)
    resolved: list[str] = []
    for dep in unit.dependencies:
        if dep.kind not in EDGE_KINDS:
            continue
        dep_id = resolve_dependency_id(dep)
        if dep_id in known and dep_id not in resolved:
            resolved.append(dep_id)
    return resolved


def _canonical_cycle(cycle: list[str]) -> tuple[str, ...]:
    """Rotation-independent key for a closed cycle ``[a, b, c, a]``."""
    body = cycle[:-1]
    if not body:
        return ()
    pivot = body.index(min(body))
    return tuple(body[pivot:] + body[:pivot])


class DependencyGraphResolver:
    """Resolves unit dependencies and returns a migration order."""

    def __init__(self) -> None:
        self.nodes: dict[str, DependencyGraphNode] = {}

    def resolve(self, units: list[MigrationUnit]) -> ResolutionResult:
        """Resolve dependencies and return the processing order.

        Resolution is all-or-nothing: when a cycle exists no partial order is
        produced.

        Args:
            units: Unit descriptors in their original order.

        Returns:
            ResolutionResult with either the ordered units or the cycles found.
        """
        self._build_graph(units)

        cycles = self._detect_cycles()
        if cycles:
            log_with_context(
                logging.ERROR,
                f"Found {len(cycles)} circular dependency cycles",
                cycle_count=len(cycles),
            )
            return ResolutionResult(
                success=False,
                ordered_units=[],
                cycles=cycles,
                errors=[f"Found {len(cycles)} circular dependency cycles"],
            )

        ordered = self._topological_sort()
        log_with_context(
            logging.DEBUG,
            f"Resolved migration order for {len(ordered)} units",
        )
        return ResolutionResult(success=True, ordered_units=ordered)

    def _build_graph(self, units: list[MigrationUnit]) -> None:
        self.nodes.clear()

        for unit in units:
            if unit.id in self.nodes:
                log_with_context(
                    logging.WARNING,
                    f"Duplicate unit id '{unit.id}' ignored",
                    unit_id=unit.id,
                )
                continue
            self.nodes[unit.id] = DependencyGraphNode(unit=unit)

        known_ids = self.nodes.keys()
        for node in self.nodes.values():
            node.dependencies = dependency_ids(node.unit, known_ids)

        # Reverse edges
        for unit_id, node in self.nodes.items():
            for dep_id in node.dependencies:
                self.nodes[dep_id].dependents.append(unit_id)

    def _detect_cycles(self) -> list[list[str]]:
        """Find circular dependencies with an iterative depth-first search."""
        cycles: list[list[str]] = []
        seen: set[tuple[str, ...]] = set()
        visited: set[str] = set()
        on_stack: set[str] = set()
        path: list[str] = []
        stack: list[tuple[str, Iterator[str]]] = []

        def enter(node_id: str) -> None:
            visited.add(node_id)
            on_stack.add(node_id)
            path.append(node_id)
            stack.append((node_id, iter(self.nodes[node_id].dependencies)))

        for start in self.nodes:
            if start in visited:
                continue

            enter(start)
            while stack:
                node_id, deps = stack[-1]
                dep_id = next(deps, None)
                if dep_id is None:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node_id)
                elif dep_id not in visited:
                    enter(dep_id)
                elif dep_id in on_stack:
                    cycle = path[path.index(dep_id) :] + [dep_id]
                    key = _canonical_cycle(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)

        return cycles

    def _topological_sort(self) -> list[MigrationUnit]:
        """Kahn's algorithm; ready nodes are emitted in input order."""
        in_degree = {
            unit_id: len(node.dependencies) for unit_id, node in self.nodes.items()
        }
        queue = deque(unit_id for unit_id, degree in in_degree.items() if degree == 0)
        result: list[MigrationUnit] = []

        while queue:
            node = self.nodes[queue.popleft()]
            result.append(node.unit)
            for dependent_id in node.dependents:
                in_degree[dependent_id] -= 1
                if in_degree[dependent_id] == 0:
                    queue.append(dependent_id)

        return result

    def get_dependency_tree(self, unit_id: str) -> list[str]:
        """Transitive dependencies of *unit_id* in pre-order, the unit first.

        Only meaningful after :meth:`resolve`; unknown ids give an empty list.
        """
        if unit_id not in self.nodes:
            return []

        result: list[str] = []
        visited: set[str] = set()
        stack = [unit_id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            result.append(current)
            # Reversed so the first declared dependency is visited first
            stack.extend(reversed(self.nodes[current].dependencies))
        return result

    def get_dependents(self, unit_id: str) -> list[str]:
        """Units that directly depend on *unit_id*."""
        node = self.nodes.get(unit_id)
        return list(node.dependents) if node else []


def resolve_dependencies(units: list[MigrationUnit]) -> ResolutionResult:
    """Resolve dependencies for a list of units with a fresh resolver."""
    return DependencyGraphResolver().resolve(units)
