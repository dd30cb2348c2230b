"""Reference integrity validator."""

from ..schema.models import DeclarationDocument
from ..schema.resolver import EntityCatalog
from .base import ValidationResult


def check_reference_integrity(
    document: DeclarationDocument, catalog: EntityCatalog
) -> ValidationResult:
    """Check that all names resolve to defined entities and properties.

    This validator checks:
    - Targets, waypoints and sources reference known entities
    - Properties of references exist in their entity
    - Visible and sorting properties exist in the node they qualify

    Args:
        document: The parsed declaration document.
        catalog: Entities available to the document.

    Returns:
        ValidationResult with errors for broken references.
    """
    result = ValidationResult()

    for name, spec in document.relations.items():
        nodes: dict[str, str] = {}

        def check(entity_name: str, properties: list[str] | None, role: str) -> None:
            entity = catalog.get(entity_name)
            if entity is None:
                result.add_error(
                    code="UNDEFINED_ENTITY_REF",
                    message=f"{role.capitalize()} references undefined entity '{entity_name}'",
                    relation=name,
                    entity=entity_name,
                    role=role,
                )
                return

            for prop in properties or []:
                if not entity.has_property(prop):
                    result.add_error(
                        code="UNDEFINED_PROPERTY_REF",
                        message=f"{role.capitalize()} references undefined property "
                        f"'{prop}' of '{entity_name}'",
                        relation=name,
                        entity=entity_name,
                        property=prop,
                    )

        check(spec.target.entity, spec.target.property, "target")
        nodes["target"] = spec.target.entity

        for step in spec.via:
            if step.entity is None:
                continue
            check(step.entity, (step.referencing or []) + (step.referenced or []), "waypoint")
            entity = catalog.get(step.entity)
            nodes[step.alias or (entity.set_name if entity else step.entity)] = step.entity

        check(spec.source.entity, spec.source.property, "source")
        nodes["source"] = spec.source.entity

        qualified = [v.property for v in spec.showing] + [s.property for s in spec.sort]
        for prop in qualified:
            node_name, _, prop_name = prop.rpartition(".")
            entity_name = nodes.get(node_name or "source")
            if entity_name is None:
                # Derived waypoints are checked on compiling
                continue
            if prop_name != "*":
                check(entity_name, [prop_name], "visible property")

    return result
