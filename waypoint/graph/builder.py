"""Builder for converting declared relations to a RelationGraph."""

from typing import Iterable, Mapping

from ..entity.descriptor import EntityDescriptor
from ..relation import Relation
from .relation_graph import RelationGraph


def build_graph(
    relations: Mapping[str, Relation],
    entities: Iterable[EntityDescriptor] = (),
) -> RelationGraph:
    """Build a RelationGraph from resolved relations.

    Args:
        relations: Relations by name.
        entities: Further entities to include even if no relation uses them.

    Returns:
        A RelationGraph of all entities and references.
    """
    graph = RelationGraph()

    for entity in entities:
        graph.add_entity(entity)

    for name, relation in relations.items():
        for node in relation.nodes:
            graph.add_entity(node.entity)

        for reference in relation.references:
            graph.add_reference(
                name,
                reference.index,
                reference.referencing_node.entity,
                reference.referenced_node.entity,
                reference.referencing_properties(),
                reference.referenced_properties(),
            )

    return graph
