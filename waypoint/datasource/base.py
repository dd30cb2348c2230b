"""Contracts of the datasource collaborator and its frozen query plan."""

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Protocol, Sequence


@dataclass(frozen=True)
class JoinClause:
    """A set joined into a query."""

    set_expression: str
    condition: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class FilterClause:
    """A condition restricting matching records."""

    condition: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Projection:
    """A property fetched per matching record."""

    name: str
    alias: str | None = None


@dataclass(frozen=True)
class SortClause:
    """A sorting criterion."""

    name: str
    ascending: bool = True


@dataclass(frozen=True)
class QueryPlan:
    """Snapshot of everything a query builder has been told.

    Plans are plain values so two compilations of the same relation can be
    compared for equality.
    """

    root: str
    joins: tuple[JoinClause, ...] = ()
    filters: tuple[FilterClause, ...] = ()
    projections: tuple[Projection, ...] = ()
    sorts: tuple[SortClause, ...] = ()
    limit: int | None = None
    offset: int = 0

    @property
    def sets(self) -> tuple[str, ...]:
        """Set expressions in join order, root first."""
        return (self.root,) + tuple(j.set_expression for j in self.joins)

    @property
    def parameters(self) -> tuple[Any, ...]:
        """Bound parameters: per join in join order, then per filter."""
        params: list[Any] = []
        for join in self.joins:
            params.extend(join.params)
        for flt in self.filters:
            params.extend(flt.params)
        return tuple(params)


class Cursor(Protocol):
    """Result of executing a query."""

    def row(self) -> dict[str, Any] | None: ...

    def all(self) -> list[dict[str, Any]]: ...

    def cell(self) -> Any: ...

    def __iter__(self) -> Iterator[dict[str, Any]]: ...


class Query(Protocol):
    """Query builder provided by a datasource connection."""

    def add_joined_set(
        self, set_expression: str, condition: str, params: Sequence[Any] = ()
    ) -> "Query": ...

    def add_filter(self, condition: str, params: Sequence[Any] = ()) -> "Query": ...

    def add_projected_property(self, name: str, alias: str | None = None) -> "Query": ...

    def add_sort(self, name: str, ascending: bool = True) -> "Query": ...

    def limit(self, count: int | None, offset: int = 0) -> "Query": ...

    def plan(self) -> QueryPlan: ...

    def execute(self, counting: bool = False) -> Cursor: ...


class Connection(Protocol):
    """Connection to a relational datasource."""

    def quote_identifier(self, name: str) -> str: ...

    def create_query(self, set_expression: str) -> Query: ...

    def dataset_exists(self, name: str) -> bool: ...

    def create_dataset(
        self, name: str, schema: Mapping[str, str], id_properties: Sequence[str]
    ) -> bool: ...
