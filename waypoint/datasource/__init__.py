"""Datasource collaborator: contracts and a SQL implementation."""

from .base import (
    Connection,
    Cursor,
    FilterClause,
    JoinClause,
    Projection,
    Query,
    QueryPlan,
    SortClause,
)
from .sql import ResultCursor, SqlConnection, SqlQuery

__all__ = [
    "Connection",
    "Cursor",
    "FilterClause",
    "JoinClause",
    "Projection",
    "Query",
    "QueryPlan",
    "SortClause",
    "ResultCursor",
    "SqlConnection",
    "SqlQuery",
]
