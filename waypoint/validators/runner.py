"""Validation runner that orchestrates all validators."""

from pathlib import Path
from typing import Any, Mapping

from ..errors import DeclarationError
from ..graph.builder import build_graph
from ..schema.loader import parse_declarations
from ..schema.models import DeclarationDocument
from ..schema.resolver import EntityCatalog, describe_dataset
from .base import ValidationResult
from .chain_integrity import check_circular_waypoints, check_compilation, check_reference_widths
from .reference_integrity import check_reference_integrity
from .unused_datasets import check_unused_datasets


def build_catalog(
    document: DeclarationDocument,
    entities: Mapping[str, Any] | None = None,
) -> tuple[EntityCatalog, ValidationResult]:
    """Collect declared entities and the document's valid datasets.

    Returns:
        Tuple of (catalog, ValidationResult with errors for bad datasets).
    """
    result = ValidationResult()
    catalog = EntityCatalog(entities)

    for name, dataset in document.datasets.items():
        try:
            catalog.register(name, describe_dataset(dataset))
        except DeclarationError as e:
            result.add_error(
                code="COMPILE_ERROR",
                message=str(e),
                entity=name,
                error=type(e).__name__,
            )

    return catalog, result


def run_validators(
    document: DeclarationDocument,
    entities: Mapping[str, Any] | None = None,
) -> ValidationResult:
    """Run all validators on a declaration document.

    Args:
        document: The parsed declaration document.
        entities: Declared entity types by name.

    Returns:
        Combined ValidationResult from all validators.
    """
    catalog, result = build_catalog(document, entities)

    # Run reference integrity first (most fundamental)
    result.merge(check_reference_integrity(document, catalog))

    result.merge(check_circular_waypoints(document, catalog))
    result.merge(check_reference_widths(document, catalog))

    relations, compiled = check_compilation(document, catalog, skip=result.failing_relations())
    result.merge(compiled)

    datasets = [catalog.get(name) for name in document.datasets if name in catalog]
    graph = build_graph(relations, datasets)
    result.merge(check_unused_datasets(document, graph))

    return result


def validate_declaration_file(
    path: str | Path, entities: Mapping[str, Any] | None = None
) -> ValidationResult:
    """Load and validate a declaration file.

    Args:
        path: Path to the YAML declaration file.
        entities: Declared entity types by name.

    Returns:
        ValidationResult from all validators.

    Raises:
        SchemaLoadError: If the file cannot be loaded.
        SchemaValidationError: If the document fails schema validation.
    """
    document = parse_declarations(path)
    return run_validators(document, entities)
