"""Tests for loading declaration documents."""

import pytest

from waypoint.schema.errors import SchemaLoadError, SchemaValidationError
from waypoint.schema.loader import (
    load_yaml,
    parse_declarations,
    parse_declarations_from_string,
)


class TestLoadYaml:
    def test_load_valid_yaml(self, tmp_path):
        path = tmp_path / "doc.yaml"
        path.write_text("relations: {}\n")

        assert load_yaml(path) == {"relations": {}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError) as exc_info:
            load_yaml(tmp_path / "missing.yaml")

        assert "File not found" in str(exc_info.value)
        assert exc_info.value.path.endswith("missing.yaml")

    def test_directory(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            load_yaml(tmp_path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml(path) == {}

    def test_invalid_yaml(self, examples_dir):
        with pytest.raises(SchemaLoadError) as exc_info:
            load_yaml(examples_dir / "invalid" / "not_yaml.yaml")

        assert "Invalid YAML" in str(exc_info.value)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(SchemaLoadError):
            load_yaml(path)


class TestParseDeclarations:
    def test_parse_example(self, examples_dir):
        document = parse_declarations(examples_dir / "membership.yaml")

        assert document.get_all_relation_names() == ["members", "people", "associates"]
        assert "membership" in document.datasets

    def test_parse_string(self, minimal_declarations_yaml):
        document = parse_declarations_from_string(minimal_declarations_yaml)

        assert document.get_relation("members").target.entity == "Group"

    def test_empty_string(self):
        document = parse_declarations_from_string("")

        assert document.relations == {}
        assert document.datasets == {}

    def test_validation_errors(self):
        yaml = """
relations:
  broken:
    target: Group
"""
        with pytest.raises(SchemaValidationError) as exc_info:
            parse_declarations_from_string(yaml)

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert errors[0]["loc"] == "relations.broken.source"

    def test_invalid_yaml_string(self):
        with pytest.raises(SchemaLoadError):
            parse_declarations_from_string("relations: [unclosed")

    def test_root_must_be_mapping_string(self):
        with pytest.raises(SchemaLoadError):
            parse_declarations_from_string("just text")
