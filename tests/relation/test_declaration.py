"""Tests for declaring relations."""

import pytest

from waypoint.entity import describe_virtual
from waypoint.errors import (
    AmbiguousIdentifier,
    CircularWaypoint,
    InvalidDeclaration,
    RelationStateError,
)
from waypoint.relation import Relation, TargetStage, WaypointStage


class TestStages:
    def test_stage_types(self, group_type, person_type, membership):
        stage = Relation.create_on(group_type)
        assert isinstance(stage, TargetStage)

        stage = stage.via(membership, "group_id", "person_id")
        assert isinstance(stage, WaypointStage)

        relation = stage.from_(person_type)
        assert isinstance(relation, Relation)

    def test_target_stage_has_no_conditions(self, group_type):
        assert not hasattr(Relation.create_on(group_type), "on")

    def test_via_after_from_fails(self, group_type, person_type, membership):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        with pytest.raises(RelationStateError):
            relation.via(membership, "group_id", "person_id")

    def test_stage_after_from_fails(self, group_type, person_type, membership):
        stage = Relation.create_on(group_type).via(membership, "group_id", "person_id")
        stage.from_(person_type)

        with pytest.raises(RelationStateError):
            stage.via(membership, "group_id", "person_id", alias="again")


class TestPropertyDefaults:
    def test_default_to_single_id(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        assert relation.target.successor_properties == ("id",)
        assert relation.source.predecessor_properties == ("group_id",)

    def test_composite_id_requires_property(self, tag_type, group_type):
        with pytest.raises(AmbiguousIdentifier) as exc_info:
            Relation.create_on(tag_type)

        assert exc_info.value.id_properties == ("kind", "code")

    def test_composite_reference(self, tag_type):
        labels = describe_virtual(
            "labels", {"tag_kind": "TEXT", "tag_code": "INTEGER", "text": "TEXT"}, ["text"]
        )

        relation = Relation.create_on(tag_type, ["kind", "code"]).from_(labels, ["tag_kind", "tag_code"])

        assert relation.source.predecessor_properties == ("tag_kind", "tag_code")
        assert relation.references[0].referencing_node is relation.source

    def test_unknown_property(self, group_type, person_type):
        with pytest.raises(InvalidDeclaration):
            Relation.create_on(group_type).from_(person_type, "owner_id")


class TestDirectionInference:
    def test_source_referencing_target(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        reference = relation.references[0]
        assert reference.referencing_node is relation.source
        assert reference.referenced_node is relation.target

    def test_target_referencing_source(self, group_type, person_type):
        relation = Relation.create_on(person_type, "group_id").from_(group_type)

        reference = relation.references[0]
        assert reference.referencing_node is relation.target
        assert reference.referencing_is_left_to_right

    def test_junction_references_both(self, group_type, person_type, membership):
        relation = (
            Relation.create_on(group_type)
            .via(membership, "group_id", "person_id")
            .from_(person_type)
        )

        first, second = relation.references
        assert first.referencing_node is relation.waypoints[0]
        assert second.referencing_node is relation.waypoints[0]
        assert relation.is_many_to_many()

    def test_direction_is_stable(self, group_type, person_type):
        reference = Relation.create_on(group_type).from_(person_type, "group_id").references[0]

        assert [reference.referencing_node for _ in range(3)] == [reference.successor] * 3


class TestWaypointNames:
    def test_duplicate_set_without_alias(self, group_type, person_type, membership):
        stage = Relation.create_on(group_type).via(membership, "group_id", "person_id")

        with pytest.raises(CircularWaypoint) as exc_info:
            stage.via(membership, "person_id", "group_id")

        assert exc_info.value.name == "membership"

    def test_distinct_aliases(self, group_type, person_type, membership):
        stage = (
            Relation.create_on(group_type)
            .via(membership, "group_id", "person_id", alias="a")
            .via(person_type, "id", "id", alias="p")
            .via(membership, "person_id", "group_id", alias="b")
        )
        stage.on("a.group_id > ?", 0, at="a")
        stage.on("b.group_id > ?", 1, at="b")

        relation = stage.from_(group_type)

        assert [w.name for w in relation.waypoints] == ["a", "p", "b"]
        assert relation.conditions_of("a") == [("a.group_id > ?", (0,))]
        assert relation.conditions_of("b") == [("b.group_id > ?", (1,))]

    @pytest.mark.parametrize("alias", ["target", "source"])
    def test_reserved_aliases(self, group_type, membership, alias):
        with pytest.raises(InvalidDeclaration):
            Relation.create_on(group_type).via(membership, "group_id", "person_id", alias=alias)

    def test_unknown_waypoint_name(self, group_type, membership):
        stage = Relation.create_on(group_type).via(membership, "group_id", "person_id")

        with pytest.raises(InvalidDeclaration):
            stage.on("x = 1", at="missing")


class TestConditions:
    def test_conditions_accumulate(self, group_type, person_type, membership):
        relation = (
            Relation.create_on(group_type)
            .via(membership, "group_id", "person_id")
            .on("membership.person_id > ?", 1)
            .on("membership.person_id < ?", [9])
            .from_(person_type)
            .on("source.name <> ?", "x")
        )

        assert relation.conditions_of("membership") == [
            ("membership.person_id > ?", (1,)),
            ("membership.person_id < ?", (9,)),
        ]
        assert relation.conditions_of("source") == [("source.name <> ?", ("x",))]

    def test_relation_on_waypoint(self, group_type, person_type, membership):
        relation = (
            Relation.create_on(group_type)
            .via(membership, "group_id", "person_id")
            .from_(person_type)
            .on("membership.group_id = 1", at="membership")
        )

        assert relation.conditions_of("membership") == [("membership.group_id = 1", ())]

    def test_parameter_count_must_match(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        with pytest.raises(InvalidDeclaration):
            relation.on("source.id = ? AND source.name = ?", 1)

    def test_empty_condition(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        with pytest.raises(InvalidDeclaration):
            relation.on("  ")

    def test_sequence_holds_all_parameters(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        relation.on("source.id > ? AND source.id < ?", [1, 5])

        assert relation.conditions_of("source") == [("source.id > ? AND source.id < ?", (1, 5))]

    def test_sequence_value_of_single_placeholder(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        relation.on("source.pair = ?", (1, 2))
        relation.on("source.single = ?", [[3]])

        assert relation.conditions_of("source") == [
            ("source.pair = ?", ((1, 2),)),
            ("source.single = ?", ([3],)),
        ]

    def test_quoted_question_marks_are_literals(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        relation.on("source.name <> 'Who?' AND source.id = ?", 2)

        assert relation.conditions_of("source") == [
            ("source.name <> 'Who?' AND source.id = ?", (2,))
        ]
        with pytest.raises(InvalidDeclaration):
            relation.on("source.name = '?'", 1)


class TestPresentation:
    def test_showing_qualifies_to_source(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id").showing("name")

        assert relation.visible_properties == {"source.name": None}

    def test_showing_overwrites_alias(self, group_type, person_type):
        relation = (
            Relation.create_on(group_type)
            .from_(person_type, "group_id")
            .showing("source.name", "person")
            .showing("target.name", "team")
            .showing("source.name", "member")
        )

        assert relation.visible_properties == {"source.name": "member", "target.name": "team"}

    def test_showing_unknown(self, group_type, person_type):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")

        with pytest.raises(InvalidDeclaration):
            relation.showing("nowhere.name")

        with pytest.raises(InvalidDeclaration):
            relation.showing("source.missing")

    def test_sorted_by_and_named(self, group_type, person_type):
        relation = (
            Relation.create_on(group_type)
            .from_(person_type, "group_id")
            .sorted_by("name", ascending=False)
            .named("people")
        )

        assert relation.sort_spec == [("source.name", False)]
        assert relation.name == "people"

    def test_declaring_after_compiling(self, group_type, person_type, connection):
        relation = Relation.create_on(group_type).from_(person_type, "group_id")
        relation.compile_query(connection)

        assert relation.state == "compiled"
        with pytest.raises(RelationStateError):
            relation.showing("name")
