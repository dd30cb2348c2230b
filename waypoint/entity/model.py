"""Declared entity types."""

import types
import typing
from typing import Any, ClassVar, Mapping, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel

from ..config import get_settings
from ..datasource.base import Connection
from ..errors import DatasourceError, InvalidDeclaration, MissingRecordError

_COLUMN_TYPES: dict[type, str] = {
    bool: "INTEGER",
    int: "INTEGER",
    float: "REAL",
    str: "TEXT",
    bytes: "BLOB",
}


@runtime_checkable
class EntityType(Protocol):
    """Contract every declared entity type implements."""

    @classmethod
    def set_name(cls) -> str: ...

    @classmethod
    def id_property_names(cls) -> tuple[str, ...]: ...

    @classmethod
    def label_property_names(cls) -> tuple[str, ...]: ...

    @classmethod
    def property_schema(cls) -> dict[str, str]: ...

    @classmethod
    def select_instance(cls, datasource: Connection, item_id: Any) -> Any: ...

    @classmethod
    def format_label(cls, values: Mapping[str, Any]) -> str: ...

    @classmethod
    def serialize_id(cls, values: Mapping[str, Any]) -> str: ...

    @classmethod
    def ensure_schema(cls, datasource: Connection) -> None: ...


def _column_type(annotation: Any) -> str:
    """Derive a column declaration from a field annotation."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        annotation = args[0] if len(args) == 1 else str
    return _COLUMN_TYPES.get(annotation, "TEXT")


def _overrides(cls: type, attribute: str) -> bool:
    """Check if a subclass of Model sets a class variable itself."""
    return any(
        attribute in vars(base)
        for base in cls.__mro__
        if base is not Model and issubclass(base, Model)
    )


class Model(BaseModel):
    """Base class of declared entities.

    Subclasses are pydantic models whose fields are the entity's properties.
    Class variables describe how instances are stored and presented:

        class Person(Model):
            dataset = "persons"
            id_names = ("id",)
            label_names = ("name",)

            id: int | None = None
            name: str
    """

    dataset: ClassVar[str | None] = None
    id_names: ClassVar[tuple[str, ...]] = ("id",)
    label_names: ClassVar[tuple[str, ...]] = ("name",)
    columns: ClassVar[dict[str, str] | None] = None
    id_glue: ClassVar[str | None] = None
    label_glue: ClassVar[str | None] = None

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    @classmethod
    def set_name(cls) -> str:
        """Get the name of the set containing records of this entity."""
        return cls.dataset or cls.__name__.lower()

    @classmethod
    def id_property_names(cls) -> tuple[str, ...]:
        return tuple(cls.id_names)

    @classmethod
    def label_property_names(cls) -> tuple[str, ...]:
        """Get the properties labelling items.

        The inherited default ``("name",)`` only applies to models having a
        ``name`` property, others are labelled by their ids.
        """
        names = tuple(cls.label_names)
        if not _overrides(cls, "label_names"):
            schema = cls.property_schema()
            names = tuple(n for n in names if n in schema)
        return names or cls.id_property_names()

    @classmethod
    def property_schema(cls) -> dict[str, str]:
        """Get the map of property names into column declarations.

        Explicit ``columns`` win over declarations derived from the fields.
        A missing ``id`` property is added implicitly.

        Raises:
            InvalidDeclaration: If an id property is missing from the schema.
        """
        if cls.columns:
            schema = dict(cls.columns)
        else:
            schema = {
                name: _column_type(field.annotation)
                for name, field in cls.model_fields.items()
            }

        for name in cls.id_property_names():
            if name not in schema:
                if name == "id":
                    schema["id"] = "INTEGER NOT NULL"
                else:
                    raise InvalidDeclaration(
                        f"ID property '{name}' missing in schema of {cls.__name__}",
                        entity=cls.set_name(),
                    )

        return schema

    # -------------------------------------------------------------------------
    # Identifiers and labels
    # -------------------------------------------------------------------------

    @classmethod
    def normalize_id(cls, item_id: Any) -> dict[str, Any]:
        """Convert a scalar, sequence or mapping into a map of id properties.

        Raises:
            ValueError: If the id does not provide every id property.
        """
        names = cls.id_property_names()

        if isinstance(item_id, Mapping):
            missing = [n for n in names if n not in item_id]
            if missing:
                raise ValueError(f"Missing component(s) of ID: {', '.join(missing)}")
            return {n: item_id[n] for n in names}

        if isinstance(item_id, Sequence) and not isinstance(item_id, (str, bytes)):
            values = list(item_id)
        else:
            values = [item_id]

        if len(values) != len(names):
            raise ValueError(
                f"{cls.__name__} expects {len(names)} ID component(s), got {len(values)}"
            )
        return dict(zip(names, values))

    @classmethod
    def serialize_id(cls, values: Mapping[str, Any]) -> str:
        """Serialize the id properties of an item into a string."""
        glue = cls.id_glue if cls.id_glue is not None else get_settings().id_glue
        normalized = cls.normalize_id(values)
        return glue.join(str(v) for v in normalized.values())

    @classmethod
    def unserialize_id(cls, serialized: str) -> dict[str, Any]:
        """Split a serialized id back into its components."""
        glue = cls.id_glue if cls.id_glue is not None else get_settings().id_glue
        names = cls.id_property_names()
        parts = serialized.split(glue) if len(names) > 1 else [serialized]
        if len(parts) != len(names):
            raise ValueError(f"Invalid item ID: {serialized!r}")
        return dict(zip(names, parts))

    @classmethod
    def format_label(cls, values: Mapping[str, Any]) -> str:
        """Format the label of an item from its labelling properties."""
        glue = cls.label_glue if cls.label_glue is not None else get_settings().label_glue
        return glue.join(
            str(values[name]) for name in cls.label_property_names() if name in values
        )

    @property
    def label(self) -> str:
        return self.format_label(self.model_dump())

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @classmethod
    def ensure_schema(cls, datasource: Connection) -> None:
        """Create this entity's set in the datasource unless it exists.

        Raises:
            DatasourceError: If the set cannot be created.
        """
        name = cls.set_name()
        if not datasource.dataset_exists(name):
            if not datasource.create_dataset(
                name, cls.property_schema(), cls.id_property_names()
            ):
                raise DatasourceError(f"Updating schema of '{name}' failed")

    @classmethod
    def select_instance(cls, datasource: Connection, item_id: Any) -> "Model":
        """Fetch a single item by its id.

        Raises:
            MissingRecordError: If no record matches.
        """
        quote = datasource.quote_identifier
        item_id = cls.normalize_id(item_id)

        query = datasource.create_query(quote(cls.set_name()))
        for name, value in item_id.items():
            query.add_filter(f"{quote(name)}=?", [value])
        query.limit(1)

        record = query.execute().row()
        if record is None:
            raise MissingRecordError(cls.set_name(), item_id)
        return cls.model_validate(record)

    @classmethod
    def create(cls, datasource: Any, **properties: Any) -> "Model":
        """Store a new item and return it.

        Single-component ids missing from ``properties`` are taken from the
        datasource after inserting.
        """
        cls.ensure_schema(datasource)
        item = cls(**properties)
        values = item.model_dump(exclude_none=True)

        new_id = datasource.insert(cls.set_name(), values)

        names = cls.id_property_names()
        if len(names) == 1 and getattr(item, names[0]) is None:
            setattr(item, names[0], new_id)
        return item
