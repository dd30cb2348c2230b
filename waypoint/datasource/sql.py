"""SQL datasource backed by a SQLAlchemy engine."""

import re
from typing import Any, Iterator, Mapping, Sequence

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import get_settings
from ..errors import DatasourceError
from ..utils.logger import get_logger
from .base import FilterClause, JoinClause, Projection, QueryPlan, SortClause

logger = get_logger(__name__)

_PRIMARY_KEY = re.compile(r"\bprimary\s+key\b", re.IGNORECASE)


class ResultCursor:
    """Fetched records of a query, consumed row by row or all at once."""

    def __init__(self, rows: list[dict[str, Any]], lastrowid: int | None = None):
        self._rows = rows
        self._position = 0
        self.lastrowid = lastrowid

    def row(self) -> dict[str, Any] | None:
        """Get the next record, or None when exhausted."""
        if self._position >= len(self._rows):
            return None
        record = self._rows[self._position]
        self._position += 1
        return record

    def all(self) -> list[dict[str, Any]]:
        """Get all remaining records."""
        remaining = self._rows[self._position:]
        self._position = len(self._rows)
        return remaining

    def cell(self) -> Any:
        """Get the first column of the next record."""
        record = self.row()
        if record is None:
            return None
        return next(iter(record.values()), None)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while (record := self.row()) is not None:
            yield record

    def __len__(self) -> int:
        return len(self._rows)


class SqlQuery:
    """Query builder compiling to a single SELECT statement."""

    def __init__(self, connection: "SqlConnection", set_expression: str):
        set_expression = set_expression.strip()
        if not set_expression:
            raise ValueError("Query requires a set expression")

        self._connection = connection
        self._root = set_expression
        self._joins: list[JoinClause] = []
        self._filters: list[FilterClause] = []
        self._projections: list[Projection] = []
        self._sorts: list[SortClause] = []
        self._limit: int | None = None
        self._offset = 0

    @property
    def connection(self) -> "SqlConnection":
        return self._connection

    def add_joined_set(
        self, set_expression: str, condition: str, params: Sequence[Any] = ()
    ) -> "SqlQuery":
        self._joins.append(JoinClause(set_expression, condition, tuple(params)))
        return self

    def add_filter(self, condition: str, params: Sequence[Any] = ()) -> "SqlQuery":
        self._filters.append(FilterClause(condition, tuple(params)))
        return self

    def add_projected_property(self, name: str, alias: str | None = None) -> "SqlQuery":
        self._projections.append(Projection(name, alias))
        return self

    def add_sort(self, name: str, ascending: bool = True) -> "SqlQuery":
        self._sorts.append(SortClause(name, ascending))
        return self

    def limit(self, count: int | None, offset: int = 0) -> "SqlQuery":
        if count is not None and count < 0:
            raise ValueError("Limit must not be negative")
        if offset < 0:
            raise ValueError("Offset must not be negative")
        self._limit = count
        self._offset = offset
        return self

    def plan(self) -> QueryPlan:
        """Get a frozen snapshot of the query."""
        return QueryPlan(
            root=self._root,
            joins=tuple(self._joins),
            filters=tuple(self._filters),
            projections=tuple(self._projections),
            sorts=tuple(self._sorts),
            limit=self._limit,
            offset=self._offset,
        )

    def compile(self, counting: bool = False) -> tuple[str, tuple[Any, ...]]:
        """Compile the query into SQL and its positional parameters.

        Args:
            counting: True to wrap the query for counting matches.

        Returns:
            Tuple of (statement, parameters).
        """
        plan = self.plan()
        quote = self._connection.quote_identifier

        columns = ", ".join(
            p.name if not p.alias or p.alias == p.name else f"{p.name} AS {quote(p.alias)}"
            for p in plan.projections
        ) or "*"

        sql = f"SELECT {columns} FROM {plan.root}"
        for join in plan.joins:
            sql += f" JOIN {join.set_expression} ON ({join.condition})"

        if plan.filters:
            sql += " WHERE " + " AND ".join(f"({f.condition})" for f in plan.filters)

        if plan.sorts and not counting:
            sql += " ORDER BY " + ", ".join(
                f"{s.name} {'ASC' if s.ascending else 'DESC'}" for s in plan.sorts
            )

        if plan.limit is not None and not counting:
            sql += f" LIMIT {plan.limit}"
            if plan.offset:
                sql += f" OFFSET {plan.offset}"

        if counting:
            sql = f"SELECT COUNT(*) FROM ({sql}) ca"

        return sql, plan.parameters

    def execute(self, counting: bool = False) -> ResultCursor:
        """Run the query on its connection."""
        sql, params = self.compile(counting)
        return self._connection.execute(sql, params)

    def __str__(self) -> str:
        return self.compile()[0]


class SqlConnection:
    """Datasource connection running SQL through a SQLAlchemy engine."""

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        """Initialize the connection.

        Args:
            url: Database URL, defaults to the configured ``database_url``.
            engine: Existing engine to use instead of creating one.
        """
        if engine is None:
            settings = get_settings()
            engine = create_engine(
                url or settings.database_url, echo=settings.echo_sql, future=True
            )
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """Get the underlying SQLAlchemy engine."""
        return self._engine

    def quote_identifier(self, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Cannot quote empty identifier")
        return self._engine.dialect.identifier_preparer.quote_identifier(name)

    def create_query(self, set_expression: str) -> SqlQuery:
        return SqlQuery(self, set_expression)

    def dataset_exists(self, name: str) -> bool:
        try:
            return inspect(self._engine).has_table(name)
        except SQLAlchemyError as e:
            raise DatasourceError(f"Cannot inspect dataset '{name}': {e}") from e

    def create_dataset(
        self, name: str, schema: Mapping[str, str], id_properties: Sequence[str]
    ) -> bool:
        """Create a dataset unless it exists already.

        Args:
            name: Unquoted name of the dataset.
            schema: Map of property names into column type declarations.
            id_properties: Properties forming the primary key.

        Returns:
            True if the dataset exists afterwards.
        """
        if not schema:
            raise ValueError("Missing dataset property definitions")

        if self.dataset_exists(name):
            return True

        columns = [f"{self.quote_identifier(prop)} {decl}" for prop, decl in schema.items()]
        if id_properties and not any(_PRIMARY_KEY.search(d) for d in schema.values()):
            keys = ", ".join(self.quote_identifier(p) for p in id_properties)
            columns.append(f"PRIMARY KEY ({keys})")

        statement = f"CREATE TABLE {self.quote_identifier(name)} ({', '.join(columns)})"
        self.execute(statement)
        logger.info("Created dataset %s", name)
        return True

    def insert(self, name: str, values: Mapping[str, Any]) -> int | None:
        """Insert a record and return the id assigned by the datasource."""
        names = ", ".join(self.quote_identifier(k) for k in values)
        markers = ", ".join("?" for _ in values)
        statement = f"INSERT INTO {self.quote_identifier(name)} ({names}) VALUES ({markers})"
        return self.execute(statement, tuple(values.values())).lastrowid

    def execute(self, statement: str, params: Sequence[Any] = ()) -> ResultCursor:
        """Execute a statement with positional ``?`` parameters.

        Raises:
            DatasourceError: If the datasource rejects the statement.
        """
        logger.debug("Executing %s with %d parameter(s)", statement, len(params))
        try:
            with self._engine.begin() as conn:
                result = conn.exec_driver_sql(statement, tuple(params))
                if result.returns_rows:
                    rows = [dict(r) for r in result.mappings()]
                    return ResultCursor(rows)
                return ResultCursor([], lastrowid=result.lastrowid)
        except SQLAlchemyError as e:
            raise DatasourceError(f"Statement failed: {e}", statement) from e

    def dispose(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
