"""Tests for RelationGraph."""

import pytest

from waypoint.entity import describe, describe_virtual
from waypoint.graph.node_types import EdgeType, NodeType
from waypoint.graph.relation_graph import RelationGraph


@pytest.fixture
def graph(group_type, person_type, membership):
    graph = RelationGraph()
    graph.add_reference("members", 0, membership, describe(group_type), ["group_id"], ["id"])
    graph.add_reference("members", 1, membership, describe(person_type), ["person_id"], ["id"])
    graph.add_reference("people", 0, describe(person_type), describe(group_type), ["group_id"], ["id"])
    return graph


class TestRelationGraphBasics:
    def test_add_entity(self, person_type):
        graph = RelationGraph()
        node_id = graph.add_entity(describe(person_type), custom_attr="value")

        assert node_id == "entity:person"
        node = graph.get_entity_node("person")
        assert node["node_type"] == NodeType.ENTITY
        assert node["id_properties"] == ["id"]
        assert node["custom_attr"] == "value"

    def test_add_dataset(self, membership):
        graph = RelationGraph()
        graph.add_entity(membership)

        assert graph.get_dataset_names() == ["membership"]
        assert not graph.has_any_references("membership")

    def test_parallel_references(self, graph):
        assert graph.graph.number_of_edges("entity:person", "entity:group") == 1
        assert graph.graph.number_of_edges() == 3

        data = graph.graph.get_edge_data("entity:membership", "entity:group")["members:0"]
        assert data["edge_type"] == EdgeType.REFERENCE
        assert data["referencing_properties"] == ["group_id"]


class TestRelationGraphQueries:
    def test_references_for_entity(self, graph):
        references = graph.get_references_for_entity("group")

        assert {(r["relation"], r["entity"], r["direction"]) for r in references} == {
            ("members", "membership", "incoming"),
            ("people", "person", "incoming"),
        }

    def test_relations_using(self, graph):
        assert graph.get_relations_using("person") == {"members", "people"}
        assert graph.get_relations_using("missing") == set()

    def test_find_path(self, graph):
        assert graph.find_path("group", "person") == ["group", "person"]
        assert graph.find_path("membership", "person") == ["membership", "person"]

    def test_find_path_unlinked(self, graph):
        graph.add_entity(describe_virtual("lonely", {"a": "INTEGER"}))

        assert graph.find_path("group", "lonely") is None
        assert graph.find_path("group", "missing") is None

    def test_iter_references_ordered(self, graph):
        edges = [(a, b, d["relation"], d["index"]) for a, b, d in graph.iter_references()]

        assert edges == [
            ("membership", "group", "members", 0),
            ("membership", "person", "members", 1),
            ("person", "group", "people", 0),
        ]
