"""Uniform description of declared and virtual entities."""

import re
from functools import lru_cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from ..datasource.base import Connection
from ..errors import DatasourceError, InvalidDeclaration, RelationStateError
from .model import EntityType, Model

if TYPE_CHECKING:
    from .registry import SchemaRegistry

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

VIRTUAL_ID_GLUE = "::"


def is_identifier(name: Any) -> bool:
    """Check if a value is usable as set, alias or property name."""
    return isinstance(name, str) and bool(_IDENTIFIER.match(name))


class EntityDescriptor:
    """Wraps a declared entity type or a virtual set definition.

    Virtual entities exist in the datasource only. They are described by a
    set name and a schema and have no instances of their own, e.g. the
    junction set of a many-to-many relation.
    """

    def __init__(
        self,
        set_name: str,
        schema: Mapping[str, str],
        id_properties: Sequence[str],
        label_properties: Sequence[str],
        entity_type: EntityType | None = None,
    ):
        self._set_name = set_name
        self._schema = MappingProxyType(dict(schema))
        self._id_properties = tuple(id_properties)
        self._label_properties = tuple(label_properties)
        self._entity_type = entity_type

    def __repr__(self) -> str:
        kind = "virtual" if self.is_virtual else self.name
        return f"<EntityDescriptor {self._set_name} ({kind})>"

    @property
    def set_name(self) -> str:
        return self._set_name

    @property
    def is_virtual(self) -> bool:
        return self._entity_type is None

    @property
    def entity_type(self) -> EntityType | None:
        """Get the wrapped declared type, None for virtual entities."""
        return self._entity_type

    @property
    def name(self) -> str:
        """Get a name for messages: the declared type's name or the set name."""
        if self._entity_type is None:
            return self._set_name
        return getattr(self._entity_type, "__name__", self._set_name)

    @property
    def id_properties(self) -> tuple[str, ...]:
        return self._id_properties

    @property
    def label_properties(self) -> tuple[str, ...]:
        return self._label_properties

    @property
    def schema(self) -> Mapping[str, str]:
        return self._schema

    def has_property(self, name: str) -> bool:
        return name in self._schema

    def ensure_schema_present(
        self, datasource: Connection, registry: "SchemaRegistry"
    ) -> bool:
        """Ensure this entity's set exists in the datasource.

        Args:
            datasource: Connection to declare the set in.
            registry: Registry memoizing sets declared before.

        Returns:
            True if the set was declared on this call, False if memoized.
        """
        return registry.ensure(self, datasource)

    def declare_in(self, datasource: Connection) -> None:
        """Create this entity's set without consulting any registry.

        Raises:
            DatasourceError: If the datasource fails to create the set.
        """
        if self._entity_type is not None:
            self._entity_type.ensure_schema(datasource)
            return

        if datasource.dataset_exists(self._set_name):
            return

        if not datasource.create_dataset(
            self._set_name, dict(self._schema), self._id_properties
        ):
            raise DatasourceError(f"Failed to create data set of model {self._set_name}")

    def format_label(self, values: Mapping[str, Any]) -> str:
        """Format the label of an item from its labelling properties."""
        if self._entity_type is not None:
            return self._entity_type.format_label(values)

        parts = [str(values[n]) for n in self._label_properties if n in values]
        return f"{self._set_name} #{VIRTUAL_ID_GLUE.join(parts)}"

    def serialize_id(self, values: Mapping[str, Any]) -> str:
        """Serialize the id properties of an item into a string."""
        if self._entity_type is not None:
            return self._entity_type.serialize_id(values)

        missing = [n for n in self._id_properties if n not in values]
        if missing:
            raise ValueError(f"Missing component(s) of ID: {', '.join(missing)}")
        return VIRTUAL_ID_GLUE.join(str(values[n]) for n in self._id_properties)

    def select_instance(self, datasource: Connection, item_id: Any) -> Any:
        """Fetch a single instance of a declared entity.

        Raises:
            RelationStateError: For virtual entities.
        """
        if self._entity_type is None:
            raise RelationStateError(
                f"Cannot select instances of virtual model '{self._set_name}'"
            )
        return self._entity_type.select_instance(datasource, item_id)

    def is_same_entity(self, other: Any) -> bool:
        """Check if another entity or descriptor describes the same entity."""
        other = describe(other)
        if self.is_virtual or other.is_virtual:
            return self.is_virtual and other.is_virtual and self._set_name == other.set_name
        return self._entity_type is other.entity_type


@lru_cache(maxsize=None)
def describe_declared(entity_type: EntityType) -> EntityDescriptor:
    """Create the descriptor of a declared entity type.

    Descriptors are cached per type.

    Raises:
        InvalidDeclaration: If the type is not an entity type or labels
            items by properties missing in its schema.
    """
    if not isinstance(entity_type, EntityType):
        raise InvalidDeclaration(f"Not an entity type: {entity_type!r}")

    id_properties = tuple(entity_type.id_property_names())
    if not id_properties:
        raise InvalidDeclaration(
            f"Entity type {entity_type!r} declares no ID properties",
            entity=entity_type.set_name(),
        )

    schema = entity_type.property_schema()
    label_properties = tuple(entity_type.label_property_names()) or id_properties
    missing = [name for name in label_properties if name not in schema]
    if missing:
        raise InvalidDeclaration(
            f"Label property(ies) missing in schema: {', '.join(missing)}",
            entity=entity_type.set_name(),
        )

    return EntityDescriptor(
        set_name=entity_type.set_name(),
        schema=schema,
        id_properties=id_properties,
        label_properties=label_properties,
        entity_type=entity_type,
    )


def describe_virtual(
    set_name: str,
    schema: Mapping[str, str],
    id_properties: Sequence[str] | None = None,
) -> EntityDescriptor:
    """Create the descriptor of a virtual entity.

    Args:
        set_name: Name of the set in the datasource.
        schema: Map of property names into column declarations.
        id_properties: Properties identifying records, all properties if omitted.

    Raises:
        InvalidDeclaration: On malformed set name, empty schema or unknown
            ID properties.
    """
    if isinstance(set_name, str):
        set_name = set_name.strip()
    if not is_identifier(set_name):
        raise InvalidDeclaration(f"Invalid set name: {set_name!r}")

    if not isinstance(schema, Mapping) or not schema:
        raise InvalidDeclaration("Invalid set of property definitions", entity=set_name)

    for name in schema:
        if not is_identifier(name):
            raise InvalidDeclaration(f"Invalid property name: {name!r}", entity=set_name)

    if id_properties is None:
        id_properties = tuple(schema.keys())
    elif isinstance(id_properties, str):
        id_properties = (id_properties,)
    else:
        id_properties = tuple(id_properties)

    if not id_properties:
        raise InvalidDeclaration(
            "Invalid set of primary keys in virtual model", entity=set_name
        )

    for name in id_properties:
        if name not in schema:
            raise InvalidDeclaration(
                f"ID property missing in definition: {name}", entity=set_name
            )

    return EntityDescriptor(
        set_name=set_name,
        schema=schema,
        id_properties=id_properties,
        label_properties=id_properties,
    )


def describe(entity: Any) -> EntityDescriptor:
    """Normalize a descriptor or declared entity type into a descriptor."""
    if isinstance(entity, EntityDescriptor):
        return entity
    if isinstance(entity, Model):
        entity = type(entity)
    return describe_declared(entity)
