"""RelationGraph wrapper around networkx for declared relations."""

from typing import Any, Iterator

import networkx as nx

from ..entity.descriptor import EntityDescriptor
from .node_types import EdgeType, NodeType


class RelationGraph:
    """A graph of entities linked by the references of relations.

    Wraps a networkx MultiDiGraph: several relations may link the same
    entities. Edges point from the referencing to the referenced entity.
    """

    def __init__(self):
        self._graph = nx.MultiDiGraph()

    @property
    def graph(self) -> nx.MultiDiGraph:
        """Get the underlying networkx graph."""
        return self._graph

    # -------------------------------------------------------------------------
    # Node management
    # -------------------------------------------------------------------------

    def add_entity(self, entity: EntityDescriptor, **attrs: Any) -> str:
        """Add an entity node to the graph.

        Args:
            entity: Descriptor of the entity.
            **attrs: Additional attributes for the node.

        Returns:
            The node ID.
        """
        node_id = f"entity:{entity.set_name}"
        if not self._graph.has_node(node_id):
            self._graph.add_node(
                node_id,
                node_type=NodeType.DATASET if entity.is_virtual else NodeType.ENTITY,
                name=entity.set_name,
                id_properties=list(entity.id_properties),
                **attrs,
            )
        return node_id

    def add_reference(
        self,
        relation: str,
        index: int,
        referencing: EntityDescriptor,
        referenced: EntityDescriptor,
        referencing_properties: list[str],
        referenced_properties: list[str],
    ) -> None:
        """Add a reference edge between entities.

        Args:
            relation: Name of the relation declaring the reference.
            index: Position of the reference in its relation.
            referencing: Entity holding the referencing properties.
            referenced: Entity being referenced.
            referencing_properties: Properties of the referencing entity.
            referenced_properties: Properties of the referenced entity.
        """
        from_id = self.add_entity(referencing)
        to_id = self.add_entity(referenced)

        self._graph.add_edge(
            from_id,
            to_id,
            key=f"{relation}:{index}",
            edge_type=EdgeType.REFERENCE,
            relation=relation,
            index=index,
            referencing_properties=list(referencing_properties),
            referenced_properties=list(referenced_properties),
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_entity_names(self) -> list[str]:
        """Get all entity names in the graph."""
        return [data["name"] for _, data in self._graph.nodes(data=True)]

    def get_entity_node(self, name: str) -> dict[str, Any] | None:
        """Get an entity node by name."""
        node_id = f"entity:{name}"
        if self._graph.has_node(node_id):
            return dict(self._graph.nodes[node_id])
        return None

    def get_dataset_names(self) -> list[str]:
        """Get names of virtual entities."""
        return [
            data["name"]
            for _, data in self._graph.nodes(data=True)
            if data.get("node_type") == NodeType.DATASET
        ]

    def has_any_references(self, name: str) -> bool:
        """Check if an entity takes part in any reference (in or out)."""
        node_id = f"entity:{name}"
        if not self._graph.has_node(node_id):
            return False
        return self._graph.degree(node_id) > 0

    def get_references_for_entity(self, name: str) -> list[dict[str, Any]]:
        """Get all references of an entity (both directions)."""
        node_id = f"entity:{name}"
        if not self._graph.has_node(node_id):
            return []

        references = []
        for _, target, data in self._graph.out_edges(node_id, data=True):
            references.append({
                "relation": data["relation"],
                "entity": self._graph.nodes[target]["name"],
                "properties": data["referencing_properties"],
                "direction": "outgoing",
            })
        for source, _, data in self._graph.in_edges(node_id, data=True):
            references.append({
                "relation": data["relation"],
                "entity": self._graph.nodes[source]["name"],
                "properties": data["referenced_properties"],
                "direction": "incoming",
            })
        return references

    def get_relations_using(self, name: str) -> set[str]:
        """Get names of relations passing an entity."""
        return {reference["relation"] for reference in self.get_references_for_entity(name)}

    def find_path(self, from_entity: str, to_entity: str) -> list[str] | None:
        """Find the shortest chain of entities linking two entities.

        References are followed in either direction.

        Returns:
            Entity names from start to end, or None if they aren't linked.
        """
        from_id = f"entity:{from_entity}"
        to_id = f"entity:{to_entity}"
        if not self._graph.has_node(from_id) or not self._graph.has_node(to_id):
            return None

        try:
            path = nx.shortest_path(self._graph.to_undirected(as_view=True), from_id, to_id)
        except nx.NetworkXNoPath:
            return None
        return [self._graph.nodes[node_id]["name"] for node_id in path]

    def iter_references(self) -> Iterator[tuple[str, str, dict[str, Any]]]:
        """Iterate over all references.

        Yields:
            Tuples of (referencing entity, referenced entity, edge data)
            ordered by relation and position.
        """
        edges = sorted(
            self._graph.edges(data=True),
            key=lambda edge: (edge[2]["relation"], edge[2]["index"]),
        )
        for source, target, data in edges:
            yield self._graph.nodes[source]["name"], self._graph.nodes[target]["name"], data
