"""Relation chain validators."""

from collections import Counter

from ..errors import DeclarationError
from ..relation import Relation
from ..schema.models import DeclarationDocument, RelationSpec
from ..schema.resolver import EntityCatalog, resolve_relation
from .base import ValidationResult


def _width(catalog: EntityCatalog, entity_name: str | None, properties: list[str] | None) -> int | None:
    """Get the number of properties a node links with, if known."""
    if properties is not None:
        return len(properties)
    entity = catalog.get(entity_name) if entity_name else None
    if entity is None or len(entity.id_properties) != 1:
        return None
    return 1


def check_circular_waypoints(
    document: DeclarationDocument, catalog: EntityCatalog
) -> ValidationResult:
    """Check that no relation passes the same waypoint name twice.

    Args:
        document: The parsed declaration document.
        catalog: Entities available to the document.

    Returns:
        ValidationResult with errors for repeated waypoint names.
    """
    result = ValidationResult()

    for name, spec in document.relations.items():
        names = []
        for step in spec.via:
            if step.alias:
                names.append(step.alias)
            elif step.entity:
                entity = catalog.get(step.entity)
                names.append(entity.set_name if entity else step.entity)
            elif step.dataset:
                names.append(step.dataset)

        for waypoint, count in Counter(names).items():
            if count > 1:
                result.add_error(
                    code="CIRCULAR_WAYPOINT",
                    message=f"Waypoint '{waypoint}' is passed {count} times; "
                    "use distinct aliases",
                    relation=name,
                    entity=waypoint,
                )

    return result


def check_reference_widths(
    document: DeclarationDocument, catalog: EntityCatalog
) -> ValidationResult:
    """Check that adjacent nodes link with the same number of properties.

    Args:
        document: The parsed declaration document.
        catalog: Entities available to the document.

    Returns:
        ValidationResult with errors for mismatching widths.
    """
    result = ValidationResult()

    for name, spec in document.relations.items():
        for left, right, left_width, right_width in _facing_widths(spec, catalog):
            if left_width is not None and right_width is not None and left_width != right_width:
                result.add_error(
                    code="WIDTH_MISMATCH",
                    message=f"'{left}' links with {left_width} property(ies), "
                    f"'{right}' with {right_width}",
                    relation=name,
                    entity=right,
                    predecessor_width=left_width,
                    successor_width=right_width,
                )

    return result


def _facing_widths(spec: RelationSpec, catalog: EntityCatalog):
    """Yield (left, right, left width, right width) of explicitly declared links."""
    previous = spec.target.entity
    previous_width = _width(catalog, previous, spec.target.property)

    for step in spec.via:
        if step.is_derived:
            previous, previous_width = None, None
            continue
        if previous is not None:
            yield previous, step.entity, previous_width, _width(catalog, None, step.referencing)
        previous = step.entity
        previous_width = _width(catalog, None, step.referenced)

    if previous is not None:
        yield previous, spec.source.entity, previous_width, _width(
            catalog, spec.source.entity, spec.source.property
        )


def check_compilation(
    document: DeclarationDocument,
    catalog: EntityCatalog,
    skip: set[str] | None = None,
) -> tuple[dict[str, Relation], ValidationResult]:
    """Resolve every relation, reporting declaration errors.

    Args:
        document: The parsed declaration document.
        catalog: Entities available to the document.
        skip: Names of relations known to be broken already.

    Returns:
        Tuple of (resolved relations by name, ValidationResult).
    """
    result = ValidationResult()
    relations: dict[str, Relation] = {}

    for name, spec in document.relations.items():
        if skip and name in skip:
            continue
        try:
            relations[name] = resolve_relation(spec, catalog)
        except DeclarationError as e:
            result.add_error(
                code="COMPILE_ERROR",
                message=str(e),
                relation=name,
                entity=getattr(e, "entity", None),
                error=type(e).__name__,
            )

    return relations, result
