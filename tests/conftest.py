"""Shared fixtures for tests."""

from pathlib import Path

import pytest

from waypoint.datasource.sql import SqlConnection
from waypoint.entity import Model, SchemaRegistry, describe_virtual
from waypoint.schema.loader import parse_declarations_from_string


class Group(Model):
    id: int | None = None
    name: str


class Person(Model):
    id: int | None = None
    name: str
    group_id: int | None = None


class Tag(Model):
    """Entity identified by a composite id."""

    dataset = "tags"
    id_names = ("kind", "code")
    label_names = ("title",)

    kind: str
    code: int
    title: str


@pytest.fixture
def examples_dir() -> Path:
    """Return the path to the examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def group_type():
    return Group


@pytest.fixture
def person_type():
    return Person


@pytest.fixture
def tag_type():
    return Tag


@pytest.fixture
def entities():
    """Return declared entity types by name."""
    return {"Group": Group, "Person": Person, "Tag": Tag}


@pytest.fixture
def membership():
    """Return the virtual junction of persons and groups."""
    return describe_virtual(
        "membership",
        {"person_id": "INTEGER NOT NULL", "group_id": "INTEGER NOT NULL"},
    )


@pytest.fixture
def connection():
    """Return a connection to a fresh in-memory database."""
    conn = SqlConnection("sqlite://")
    yield conn
    conn.dispose()


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest.fixture
def populated(connection, registry, membership):
    """Store two persons in one group and a third person elsewhere.

    Returns:
        The connection holding the records.
    """
    membership.ensure_schema_present(connection, registry)

    group = Group.create(connection, name="Admins")
    other = Group.create(connection, name="Guests")
    alice = Person.create(connection, name="Alice", group_id=group.id)
    bob = Person.create(connection, name="Bob", group_id=group.id)
    carol = Person.create(connection, name="Carol", group_id=other.id)

    for person, target in ((alice, group), (bob, group), (carol, other)):
        connection.insert("membership", {"person_id": person.id, "group_id": target.id})

    return connection


@pytest.fixture
def minimal_declarations_yaml() -> str:
    """Return a minimal valid declaration document."""
    return """
datasets:
  membership:
    schema:
      person_id: INTEGER NOT NULL
      group_id: INTEGER NOT NULL

relations:
  members:
    target: Group
    via:
      - entity: membership
        referencing: group_id
        referenced: person_id
    source: Person
"""


@pytest.fixture
def minimal_document(minimal_declarations_yaml):
    """Return the parsed minimal document."""
    return parse_declarations_from_string(minimal_declarations_yaml)
