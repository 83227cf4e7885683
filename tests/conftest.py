"""Shared test fixtures for the unit_migrator test suite."""

import logging

import pytest

from unit_migrator.types import DependencyKind, MigrationUnit, UnitDependency


def make_unit(unit_id, *deps, complexity="simple", kind=DependencyKind.COMPONENT):
    """Build a MigrationUnit whose dependencies point at the given unit ids."""
    return MigrationUnit(
        id=unit_id,
        name=unit_id,
        complexity=complexity,
        dependencies=tuple(
            UnitDependency(name=dep, kind=kind, import_path=f"@/components/{dep}")
            for dep in deps
        ),
    )


@pytest.fixture()
def unit_factory():
    """Return the make_unit builder."""
    return make_unit


@pytest.fixture()
def diamond_units():
    """B and C depend on A, D on B and C, E stands alone."""
    return [
        make_unit("A"),
        make_unit("B", "A"),
        make_unit("C", "A"),
        make_unit("D", "B", "C"),
        make_unit("E"),
    ]


@pytest.fixture()
def six_units():
    """Six independent units U1..U6."""
    return [make_unit(f"U{i}") for i in range(1, 7)]


@pytest.fixture()
def manifest_data():
    """Raw manifest content as it would appear in units.yaml."""
    return {
        "units": [
            {"id": "Button", "name": "Button", "complexity": "simple"},
            {
                "id": "Form",
                "name": "Form",
                "complexity": "moderate",
                "dependencies": [
                    {
                        "name": "Button",
                        "kind": "component",
                        "import_path": "@/components/Button",
                    },
                    {"name": "react", "kind": "external", "import_path": "react"},
                ],
            },
            {
                "id": "Page",
                "complexity": "complex",
                "dependencies": [
                    {"name": "Form", "kind": "internal", "import_path": "./Form"},
                ],
            },
        ]
    }


@pytest.fixture(autouse=True)
def _clean_logger():
    """Remove handlers from the unit_migrator logger after each test."""
    yield
    logger = logging.getLogger("unit_migrator")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
