"""Tests for entity descriptors."""

import pytest

from waypoint.entity import Model, describe, describe_declared, describe_virtual
from waypoint.errors import InvalidDeclaration, RelationStateError


class Item(Model):
    id: int | None = None
    title: str


class Poster(Model):
    label_names = ("caption",)

    id: int | None = None
    title: str


class TestDescribeVirtual:
    def test_id_defaults_to_all_properties(self, membership):
        assert membership.is_virtual
        assert membership.set_name == "membership"
        assert membership.id_properties == ("person_id", "group_id")
        assert membership.label_properties == membership.id_properties

    def test_explicit_id(self):
        entity = describe_virtual("ordered", {"id": "INTEGER", "note": "TEXT"}, "id")

        assert entity.id_properties == ("id",)

    @pytest.mark.parametrize("set_name", ["", "1abc", "with space", None])
    def test_rejects_invalid_set_name(self, set_name):
        with pytest.raises(InvalidDeclaration):
            describe_virtual(set_name, {"a": "INTEGER"})

    def test_rejects_empty_schema(self):
        with pytest.raises(InvalidDeclaration):
            describe_virtual("empty", {})

    def test_rejects_unknown_id_property(self):
        with pytest.raises(InvalidDeclaration) as exc_info:
            describe_virtual("ordered", {"a": "INTEGER"}, ["b"])

        assert exc_info.value.entity == "ordered"

    def test_schema_is_read_only(self, membership):
        with pytest.raises(TypeError):
            membership.schema["extra"] = "TEXT"


class TestVirtualBehaviour:
    def test_format_label(self, membership):
        label = membership.format_label({"person_id": 3, "group_id": 7})

        assert label == "membership #3::7"

    def test_serialize_id(self, membership):
        assert membership.serialize_id({"group_id": 7, "person_id": 3}) == "3::7"

    def test_serialize_id_requires_all_components(self, membership):
        with pytest.raises(ValueError):
            membership.serialize_id({"person_id": 3})

    def test_select_instance_fails(self, membership, connection):
        with pytest.raises(RelationStateError):
            membership.select_instance(connection, {"person_id": 1, "group_id": 1})

    def test_is_same_entity(self, membership, person_type):
        same = describe_virtual("membership", {"x": "INTEGER"})

        assert membership.is_same_entity(same)
        assert not membership.is_same_entity(person_type)


class TestDescribeDeclared:
    def test_describes_model(self, person_type):
        entity = describe(person_type)

        assert not entity.is_virtual
        assert entity.set_name == "person"
        assert entity.id_properties == ("id",)
        assert entity.label_properties == ("name",)
        assert entity.has_property("group_id")

    def test_descriptors_are_cached(self, person_type):
        assert describe_declared(person_type) is describe(person_type)

    def test_describe_instance(self, person_type):
        assert describe(person_type(name="Alice")) is describe(person_type)

    def test_descriptor_passes_through(self, membership):
        assert describe(membership) is membership

    def test_rejects_non_entities(self):
        with pytest.raises(InvalidDeclaration):
            describe(str)

    def test_is_same_entity(self, person_type, group_type):
        entity = describe(person_type)

        assert entity.is_same_entity(person_type)
        assert not entity.is_same_entity(group_type)

    def test_delegates_labels(self, tag_type):
        entity = describe(tag_type)

        assert entity.format_label({"title": "Urgent"}) == "Urgent"
        assert entity.serialize_id({"kind": "prio", "code": 1}) == "prio::1"


class TestDeclaredLabels:
    def test_labels_by_id_without_name_property(self):
        entity = describe(Item)

        assert entity.label_properties == ("id",)
        assert entity.format_label({"id": 7, "title": "Lamp"}) == "7"
        assert Item(id=7, title="Lamp").label == "7"

    def test_labels_by_name_property(self, person_type):
        assert describe(person_type).label_properties == ("name",)

    def test_rejects_unknown_label_property(self):
        with pytest.raises(InvalidDeclaration, match="caption"):
            describe(Poster)
