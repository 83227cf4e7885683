"""Unit tests for loading unit manifests."""

import json

import pytest
import yaml

from unit_migrator.exceptions import ManifestError
from unit_migrator.services.discovery import (
    default_manifest_path,
    load_units,
    parse_units,
)
from unit_migrator.types import DependencyKind


class TestLoadUnits:
    """Tests for load_units()."""

    def test_yaml_manifest(self, tmp_path, manifest_data):
        path = tmp_path / "units.yaml"
        path.write_text(yaml.safe_dump(manifest_data))

        units = load_units(path)

        assert [u.id for u in units] == ["Button", "Form", "Page"]
        form = units[1]
        assert form.complexity == "moderate"
        assert [d.kind for d in form.dependencies] == [
            DependencyKind.COMPONENT,
            DependencyKind.EXTERNAL,
        ]
        assert form.dependencies[0].import_path == "@/components/Button"

    def test_json_manifest(self, tmp_path, manifest_data):
        path = tmp_path / "units.json"
        path.write_text(json.dumps(manifest_data))
        assert len(load_units(path)) == 3

    def test_name_defaults_to_id(self, tmp_path, manifest_data):
        path = tmp_path / "units.yaml"
        path.write_text(yaml.safe_dump(manifest_data))
        page = load_units(path)[2]
        assert page.name == "Page"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            load_units(tmp_path / "units.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("units: [unclosed\n")
        with pytest.raises(ManifestError, match="Failed to read"):
            load_units(path)

    def test_empty_file_gives_no_units(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("")
        assert load_units(path) == []

    def test_default_manifest_path(self, tmp_path):
        assert default_manifest_path(tmp_path) == tmp_path / "units.yaml"


class TestParseUnits:
    """Tests for parse_units() validation."""

    def test_bare_list(self):
        units = parse_units([{"id": "A"}, {"id": "B", "complexity": "critical"}])
        assert [(u.id, u.complexity) for u in units] == [("A", "simple"), ("B", "critical")]

    def test_units_must_be_a_list(self):
        with pytest.raises(ManifestError, match="must be a list"):
            parse_units({"units": {"id": "A"}})

    def test_entry_must_be_mapping(self):
        with pytest.raises(ManifestError, match="unit #1 must be a mapping"):
            parse_units(["A"])

    def test_entry_needs_id(self):
        with pytest.raises(ManifestError, match="unit #2 has no 'id'"):
            parse_units([{"id": "A"}, {"name": "nameless"}])

    def test_bad_dependency_kind(self):
        with pytest.raises(ManifestError, match="invalid unit 'A'"):
            parse_units(
                [{"id": "A", "dependencies": [{"name": "B", "kind": "sideways"}]}]
            )

    def test_dependency_without_name(self):
        with pytest.raises(ManifestError, match="invalid unit 'A'"):
            parse_units([{"id": "A", "dependencies": [{"kind": "internal"}]}])

    def test_dependencies_must_be_mappings(self):
        with pytest.raises(ManifestError, match="list of mappings"):
            parse_units([{"id": "A", "dependencies": ["B"]}])
