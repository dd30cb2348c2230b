"""Tests for the declared entity base."""

import warnings

import pytest

from waypoint.errors import InvalidDeclaration, MissingRecordError
from waypoint.entity import Model


class TestModelMetadata:
    def test_set_name_defaults_to_class_name(self, person_type, tag_type):
        assert person_type.set_name() == "person"
        assert tag_type.set_name() == "tags"

    def test_schema_from_fields(self, person_type):
        schema = person_type.property_schema()

        assert schema == {"id": "INTEGER", "name": "TEXT", "group_id": "INTEGER"}

    def test_implicit_id(self):
        class Note(Model):
            text: str

        assert Note.property_schema()["id"] == "INTEGER NOT NULL"

    def test_missing_composite_id(self):
        class Broken(Model):
            id_names = ("a", "b")
            a: int

        with pytest.raises(InvalidDeclaration):
            Broken.property_schema()

    def test_explicit_columns(self):
        class Account(Model):
            columns = {"id": "INTEGER PRIMARY KEY", "name": "VARCHAR(64)"}
            id: int | None = None
            name: str

        assert Account.property_schema()["name"] == "VARCHAR(64)"


class TestModelIds:
    def test_normalize_scalar(self, person_type):
        assert person_type.normalize_id(5) == {"id": 5}

    def test_normalize_composite(self, tag_type):
        assert tag_type.normalize_id(["prio", 2]) == {"kind": "prio", "code": 2}
        assert tag_type.normalize_id({"code": 2, "kind": "prio"}) == {"kind": "prio", "code": 2}

    def test_normalize_rejects_wrong_arity(self, tag_type):
        with pytest.raises(ValueError):
            tag_type.normalize_id(["prio"])

        with pytest.raises(ValueError):
            tag_type.normalize_id({"kind": "prio"})

    def test_serialize_round_trip(self, tag_type):
        serialized = tag_type.serialize_id({"kind": "prio", "code": 2})

        assert serialized == "prio::2"
        assert tag_type.unserialize_id(serialized) == {"kind": "prio", "code": "2"}

    def test_label(self, person_type):
        assert person_type(name="Alice").label == "Alice"

    def test_item_id_is_a_plain_field(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")

            class Owner(Model):
                id: int | None = None
                item_id: int | None = None

        assert Owner(item_id=4).item_id == 4
        assert "item_id" in Owner.property_schema()


class TestModelStorage:
    def test_create_assigns_id(self, connection, person_type):
        alice = person_type.create(connection, name="Alice")
        bob = person_type.create(connection, name="Bob")

        assert alice.id == 1
        assert bob.id == 2

    def test_select_instance(self, connection, person_type):
        person_type.create(connection, name="Alice")

        alice = person_type.select_instance(connection, 1)

        assert isinstance(alice, person_type)
        assert alice.name == "Alice"

    def test_select_missing_instance(self, connection, person_type):
        person_type.ensure_schema(connection)

        with pytest.raises(MissingRecordError) as exc_info:
            person_type.select_instance(connection, 42)

        assert exc_info.value.set_name == "person"

    def test_ensure_schema_is_idempotent(self, connection, group_type):
        group_type.ensure_schema(connection)
        group_type.ensure_schema(connection)

        assert connection.dataset_exists("group")
