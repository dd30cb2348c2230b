"""Tests for the validation runner."""

import pytest

from waypoint.graph.builder import build_graph
from waypoint.schema.errors import SchemaLoadError
from waypoint.schema.loader import parse_declarations_from_string
from waypoint.schema.resolver import resolve_document
from waypoint.validators.runner import run_validators, validate_declaration_file
from waypoint.validators.unused_datasets import check_unused_datasets


class TestRunValidators:
    def test_valid_document(self, minimal_document, entities):
        result = run_validators(minimal_document, entities)

        assert result.is_valid
        assert not result.has_warnings

    def test_example_file(self, examples_dir, entities):
        result = validate_declaration_file(examples_dir / "membership.yaml", entities)

        assert result.is_valid
        assert result.issues == []

    def test_broken_references_skip_compilation(self, examples_dir, entities):
        result = validate_declaration_file(
            examples_dir / "invalid" / "broken_reference.yaml", entities
        )

        codes = {e.code for e in result.errors}
        assert codes == {"UNDEFINED_ENTITY_REF", "UNDEFINED_PROPERTY_REF"}

    def test_without_entities(self, minimal_document):
        result = run_validators(minimal_document)

        assert {e.entity for e in result.errors} == {"Group", "Person"}

    def test_invalid_dataset(self, entities):
        document = parse_declarations_from_string("""
datasets:
  bad:
    schema: {a: INTEGER}
    id: [b]
""")

        result = run_validators(document, entities)

        assert result.errors[0].code == "COMPILE_ERROR"
        assert result.errors[0].entity == "bad"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            validate_declaration_file(tmp_path / "missing.yaml")


class TestUnusedDatasets:
    def test_detects_unused(self, examples_dir, entities):
        result = validate_declaration_file(examples_dir / "invalid" / "unused_dataset.yaml", entities)

        assert result.is_valid
        assert len(result.warnings) == 1
        assert result.warnings[0].code == "UNUSED_DATASET"
        assert result.warnings[0].entity == "leftover"

    def test_used_dataset(self, minimal_document, entities):
        graph = build_graph(resolve_document(minimal_document, entities))

        assert check_unused_datasets(minimal_document, graph).is_valid
