"""Pydantic models for relation declaration documents."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _as_list(value: Any) -> Any:
    if value is None or isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


class DatasetSpec(BaseModel):
    """A virtual entity declared by its data set."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""  # Will be set from the key
    columns: dict[str, str] = Field(alias="schema")
    id: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_dataset(cls, data: Any) -> Any:
        """Normalize a single id property to a list."""
        if isinstance(data, dict) and "id" in data:
            data["id"] = _as_list(data["id"])
        return data


class ConditionSpec(BaseModel):
    """An extra join condition with positional parameters."""

    condition: str
    params: list[Any] = Field(default_factory=list)


def _normalize_conditions(data: dict) -> None:
    """Normalize on/params into a list of conditions.

    String conditions consume shared ``params`` in order of their
    placeholders.
    """
    conditions = _as_list(data.get("on")) or []
    shared = list(_as_list(data.pop("params", None)) or [])

    normalized = []
    for condition in conditions:
        if isinstance(condition, str):
            count = condition.count("?")
            if count > len(shared):
                raise ValueError(f"Missing parameters of condition {condition!r}")
            normalized.append({"condition": condition, "params": shared[:count]})
            shared = shared[count:]
        else:
            normalized.append(condition)

    if shared:
        raise ValueError(f"{len(shared)} parameter(s) not used by any condition")

    data["on"] = normalized


class EndSpec(BaseModel):
    """Target or source of a relation."""

    entity: str
    property: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_end(cls, data: Any) -> Any:
        """Accept a bare entity name and single property names."""
        if isinstance(data, str):
            return {"entity": data}
        if isinstance(data, dict) and "property" in data:
            data["property"] = _as_list(data["property"])
        return data


class StepSpec(BaseModel):
    """A waypoint of a relation."""

    entity: str | None = None
    referencing: list[str] | None = None
    referenced: list[str] | None = None
    alias: str | None = None
    dataset: str | None = None
    on: list[ConditionSpec] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_step(cls, data: Any) -> Any:
        """Normalize property lists and conditions."""
        if not isinstance(data, dict):
            return data

        for key in ("referencing", "referenced"):
            if key in data:
                data[key] = _as_list(data[key])

        _normalize_conditions(data)
        return data

    @property
    def is_derived(self) -> bool:
        """Check if the waypoint's entity is derived from its neighbours."""
        return self.entity is None


class VisibleSpec(BaseModel):
    """A property shown in compiled queries."""

    property: str
    alias: str | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_visible(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"property": data}
        return data


class SortSpec(BaseModel):
    """A property compiled queries are sorted by."""

    property: str
    ascending: bool = True

    @model_validator(mode="before")
    @classmethod
    def normalize_sort(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"property": data}
        return data


class RelationSpec(BaseModel):
    """A named relation from a target through waypoints to a source."""

    name: str = ""  # Will be set from the key
    target: EndSpec
    via: list[StepSpec] = Field(default_factory=list)
    source: EndSpec
    on: list[ConditionSpec] = Field(default_factory=list)
    showing: list[VisibleSpec] = Field(default_factory=list)
    sort: list[SortSpec] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_relation(cls, data: Any) -> Any:
        """Normalize single steps, visible properties and source conditions."""
        if not isinstance(data, dict):
            return data

        for key in ("via", "showing", "sort"):
            if key in data:
                data[key] = _as_list(data[key]) or []

        _normalize_conditions(data)
        return data

    def entity_names(self) -> list[str]:
        """Get names of all explicitly named entities in chain order."""
        names = [self.target.entity]
        names.extend(step.entity for step in self.via if step.entity)
        names.append(self.source.entity)
        return names


class DeclarationDocument(BaseModel):
    """Root model of a declaration file."""

    datasets: dict[str, DatasetSpec] = Field(default_factory=dict)
    relations: dict[str, RelationSpec] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalize_document(cls, data: Any) -> Any:
        """Set dataset and relation names from keys."""
        if not isinstance(data, dict):
            return data

        for key in ("datasets", "relations"):
            section = data.get(key)
            if section is None:
                data[key] = {}
            elif isinstance(section, dict):
                for name, item in section.items():
                    if isinstance(item, dict):
                        item["name"] = name

        return data

    def get_dataset(self, name: str) -> DatasetSpec | None:
        return self.datasets.get(name)

    def get_relation(self, name: str) -> RelationSpec | None:
        return self.relations.get(name)

    def get_all_relation_names(self) -> list[str]:
        return list(self.relations.keys())
