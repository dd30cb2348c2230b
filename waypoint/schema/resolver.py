"""Resolve declaration documents into relations."""

import re
from typing import Any, Iterator, Mapping, Sequence

from ..entity.descriptor import EntityDescriptor, describe, describe_virtual
from ..errors import InvalidDeclaration
from ..relation import Relation
from ..relation.chain import default_property
from ..utils.logger import get_logger
from .models import DatasetSpec, DeclarationDocument, EndSpec, RelationSpec, StepSpec

logger = get_logger(__name__)

_PRIMARY_KEY = re.compile(r"\bprimary\s+key\b", re.IGNORECASE)


class EntityCatalog:
    """Entities available to declaration documents by name.

    Declared entity types are registered under their given name and their
    set name. Datasets of a document are registered as virtual entities.
    """

    def __init__(self, entities: Mapping[str, Any] | None = None):
        self._entities: dict[str, EntityDescriptor] = {}
        for name, entity in (entities or {}).items():
            self.register(name, entity)

    @classmethod
    def from_document(
        cls, document: DeclarationDocument, entities: Mapping[str, Any] | None = None
    ) -> "EntityCatalog":
        """Create a catalog of declared entities and a document's datasets."""
        catalog = cls(entities)
        for dataset in document.datasets.values():
            catalog.register(dataset.name, describe_dataset(dataset))
        return catalog

    def register(self, name: str, entity: Any) -> EntityDescriptor:
        descriptor = describe(entity)
        self._entities[name] = descriptor
        self._entities.setdefault(descriptor.set_name, descriptor)
        return descriptor

    def get(self, name: str) -> EntityDescriptor | None:
        return self._entities.get(name)

    def require(self, name: str) -> EntityDescriptor:
        """Get an entity by name.

        Raises:
            InvalidDeclaration: If there's no entity with that name.
        """
        descriptor = self._entities.get(name)
        if descriptor is None:
            raise InvalidDeclaration(f"Unknown entity: {name!r}", entity=name)
        return descriptor

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[str]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)


def describe_dataset(dataset: DatasetSpec) -> EntityDescriptor:
    return describe_virtual(dataset.name, dataset.columns, dataset.id)


def derive_junction(
    previous: EntityDescriptor,
    previous_properties: Sequence[str],
    following: EntityDescriptor,
    following_properties: Sequence[str],
    step: StepSpec,
) -> tuple[EntityDescriptor, tuple[str, ...], tuple[str, ...]]:
    """Derive the virtual entity linking two entities in a m:n relation.

    The set is named after both neighbours unless the step names it. Its
    properties are named after the neighbour's set and property unless the
    step names them, and their types are copied from the neighbours.

    Returns:
        Tuple of (entity, referencing properties, referenced properties).

    Raises:
        InvalidDeclaration: On names clashing or mismatching in number.
    """
    set_name = step.dataset or f"{previous.set_name}_{following.set_name}"

    referencing = tuple(step.referencing or (f"{previous.set_name}_{n}" for n in previous_properties))
    referenced = tuple(step.referenced or (f"{following.set_name}_{n}" for n in following_properties))

    if len(referencing) != len(previous_properties) or len(referenced) != len(following_properties):
        raise InvalidDeclaration(
            f"Properties of derived set {set_name!r} don't match its neighbours", entity=set_name
        )

    clashing = set(referencing) & set(referenced)
    if clashing:
        raise InvalidDeclaration(
            f"Clashing property names of derived set {set_name!r}: {', '.join(sorted(clashing))}",
            entity=set_name,
        )

    columns: dict[str, str] = {}
    for name, related in zip(referencing, previous_properties):
        columns[name] = _strip_primary_key(previous.schema.get(related, ""))
    for name, related in zip(referenced, following_properties):
        columns[name] = _strip_primary_key(following.schema.get(related, ""))

    logger.debug("Derived junction %s with %s", set_name, ", ".join(columns))
    return describe_virtual(set_name, columns), referencing, referenced


def _strip_primary_key(definition: str) -> str:
    return " ".join(_PRIMARY_KEY.sub("", definition).split()) or "TEXT"


def resolve_relation(spec: RelationSpec, catalog: EntityCatalog) -> Relation:
    """Build the relation declared by a relation spec.

    Raises:
        InvalidDeclaration: On unknown entities or invalid derived sets.
        DeclarationError: On any other invalid declaration.
    """
    target = catalog.require(spec.target.entity)
    stage = Relation.create_on(target, spec.target.property)

    previous = target
    previous_properties = default_property(target, spec.target.property)

    for index, step in enumerate(spec.via):
        if step.is_derived:
            following, following_properties = _following(spec, index, catalog)
            entity, referencing, referenced = derive_junction(
                previous, previous_properties, following, following_properties, step
            )
        else:
            entity = catalog.require(step.entity)
            if step.referencing is None or step.referenced is None:
                raise InvalidDeclaration(
                    f"Waypoint {step.entity!r} requires referencing and referenced properties",
                    entity=step.entity,
                )
            referencing, referenced = step.referencing, step.referenced

        stage = stage.via(entity, referencing, referenced, alias=step.alias)
        for condition in step.on:
            stage = stage.on(condition.condition, *condition.params)

        previous = entity
        previous_properties = default_property(entity, referenced)

    relation = stage.from_(catalog.require(spec.source.entity), spec.source.property)

    for condition in spec.on:
        relation.on(condition.condition, *condition.params)
    for visible in spec.showing:
        relation.showing(visible.property, visible.alias)
    for sort in spec.sort:
        relation.sorted_by(sort.property, sort.ascending)

    return relation.named(spec.name)


def _following(
    spec: RelationSpec, index: int, catalog: EntityCatalog
) -> tuple[EntityDescriptor, tuple[str, ...]]:
    """Get the entity and properties succeeding a derived waypoint."""
    if index + 1 < len(spec.via):
        step = spec.via[index + 1]
        if step.is_derived:
            raise InvalidDeclaration("Invalid chaining of derived waypoints")
        entity = catalog.require(step.entity)
        return entity, default_property(entity, step.referencing)

    end: EndSpec = spec.source
    entity = catalog.require(end.entity)
    return entity, default_property(entity, end.property)


def resolve_document(
    document: DeclarationDocument, entities: Mapping[str, Any] | None = None
) -> dict[str, Relation]:
    """Build all relations of a document.

    Args:
        document: Parsed declaration document.
        entities: Declared entity types by name.

    Returns:
        Relations by name in document order.
    """
    catalog = EntityCatalog.from_document(document, entities)
    return {name: resolve_relation(spec, catalog) for name, spec in document.relations.items()}
