"""Tests for references between nodes."""

import pytest

from waypoint.errors import (
    AmbiguousDirection,
    ArityMismatch,
    IncompatibleEndpoints,
    WidthMismatch,
)
from waypoint.relation import Relation
from waypoint.relation.node import RelationNode
from waypoint.relation.reference import Reference


def end(entity, side, properties, referencing, alias=None):
    if side == "successor":
        return RelationNode(
            entity,
            alias=alias,
            successor_properties=properties,
            references_successor=referencing,
        )
    return RelationNode(
        entity,
        alias=alias,
        predecessor_properties=properties,
        references_predecessor=referencing,
    )


class TestReferenceConstruction:
    def test_direction_right_to_left(self, group_type, person_type):
        target = end(group_type, "successor", ("id",), False, "target")
        source = end(person_type, "predecessor", ("group_id",), True, "source")

        reference = Reference(target, source)

        assert not reference.referencing_is_left_to_right
        assert reference.referencing_node is source
        assert reference.referenced_node is target
        assert reference.referencing_properties() == ["group_id"]
        assert reference.referenced_properties(qualify=True) == ["target.id"]

    def test_incompatible_endpoints(self, group_type, person_type):
        target = end(group_type, "successor", ("id",), False)
        other = end(person_type, "successor", ("id",), False)

        with pytest.raises(IncompatibleEndpoints):
            Reference(target, other)

    def test_endpoints_checked_before_width(self, group_type, tag_type):
        target = end(group_type, "predecessor", ("id",), False)
        source = end(tag_type, "predecessor", ("kind", "code"), True)

        with pytest.raises(IncompatibleEndpoints):
            Reference(target, source)

    def test_width_mismatch(self, group_type, tag_type):
        target = end(group_type, "successor", ("id",), False)
        source = end(tag_type, "predecessor", ("kind", "code"), True)

        with pytest.raises(WidthMismatch) as exc_info:
            Reference(target, source)

        assert exc_info.value.predecessor_width == 1
        assert exc_info.value.successor_width == 2

    def test_width_checked_before_direction(self, group_type, tag_type):
        target = end(group_type, "successor", ("id",), True)
        source = end(tag_type, "predecessor", ("kind", "code"), True)

        with pytest.raises(WidthMismatch):
            Reference(target, source)

    @pytest.mark.parametrize("there,here", [(True, True), (False, False)])
    def test_ambiguous_direction(self, group_type, person_type, there, here):
        target = end(group_type, "successor", ("id",), there)
        source = end(person_type, "predecessor", ("id",), here)

        with pytest.raises(AmbiguousDirection):
            Reference(target, source)


class TestReferenceBinding:
    @pytest.fixture
    def reference(self, group_type, tag_type):
        target = end(tag_type, "successor", ("kind", "code"), False, "target")
        source = RelationNode(
            group_type,
            alias="source",
            predecessor_properties=("name", "id"),
            references_predecessor=True,
        )
        return Reference(target, source)

    def test_normalize_mapping(self, reference):
        assert reference.normalize_values_for_binding({"id": 2, "name": "x"}) == ["x", 2]

    def test_normalize_sequence(self, reference):
        assert reference.normalize_values_for_binding(["x", 2]) == ["x", 2]

    @pytest.mark.parametrize("values", [["x"], ["x", 1, 2], {"name": "x"}, {"name": "x", "other": 1}, 5])
    def test_normalize_arity_mismatch(self, reference, values):
        with pytest.raises(ArityMismatch):
            reference.normalize_values_for_binding(values)

    def test_bind_and_unbind(self, reference):
        reference.bind({"name": "x", "id": 2})

        assert reference.is_bound()
        assert reference.binding_values() == ["x", 2]
        assert reference.successor.predecessor_binding == {"name": "x", "id": 2}

        reference.unbind()

        assert not reference.is_bound()
        assert reference.binding_values() is None

    def test_binding_provider(self, reference, tag_type):
        assert reference.binding_provider.is_same_entity(tag_type)
        assert reference.binding_provider_properties == ["kind", "code"]


class TestOppositeReference:
    @pytest.fixture
    def relation(self, group_type, person_type, membership):
        return (
            Relation.create_on(group_type)
            .via(membership, "group_id", "person_id")
            .from_(person_type)
        )

    def test_neighbours(self, relation):
        first, second = relation.references
        junction = relation.waypoints[0]

        assert first.opposite_reference_at(junction) is second
        assert second.opposite_reference_at(junction) is first

    def test_chain_ends(self, relation):
        first, second = relation.references

        assert first.opposite_reference_at(relation.target) is None
        assert second.opposite_reference_at(relation.source) is None

    def test_foreign_node(self, relation):
        first, _ = relation.references

        with pytest.raises(ValueError):
            first.opposite_reference_at(relation.source)
