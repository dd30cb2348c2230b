"""Unused dataset detection validator."""

from ..graph.relation_graph import RelationGraph
from ..schema.models import DeclarationDocument
from .base import ValidationResult


def check_unused_datasets(
    document: DeclarationDocument, graph: RelationGraph
) -> ValidationResult:
    """Check for datasets no relation passes.

    An unused dataset may indicate a missing waypoint or a leftover
    declaration that should be removed.

    Args:
        document: The parsed declaration document.
        graph: The relation graph of all resolved relations.

    Returns:
        ValidationResult with warnings for unused datasets.
    """
    result = ValidationResult()

    for name in document.datasets:
        if not graph.has_any_references(name):
            result.add_warning(
                code="UNUSED_DATASET",
                message=f"Dataset '{name}' isn't used by any relation",
                entity=name,
            )

    return result
