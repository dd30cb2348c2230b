"""Stages of declaring a relation from its target to its source.

Each stage only offers the steps valid at that point of the declaration:

    Relation.create_on(Group)
        .via(membership, "group_id", "person_id")
        .on("membership.active = ?", 1)
        .from_(Person)
"""

from typing import Any, Sequence

from ..entity.descriptor import describe
from ..errors import InvalidDeclaration
from ..utils.logger import get_logger
from .chain import (
    RESERVED_NAMES,
    SOURCE,
    TARGET,
    RelationChain,
    default_property,
    is_referenced_side,
    make_condition,
)
from .node import RelationNode

logger = get_logger(__name__)


def target_node(entity: Any, target_property: str | Sequence[str] | None = None) -> RelationNode:
    """Create the node a relation starts at."""
    descriptor = describe(entity)
    properties = default_property(descriptor, target_property)
    return RelationNode(
        descriptor,
        alias=TARGET,
        successor_properties=properties,
        references_successor=not is_referenced_side(descriptor, properties),
    )


def waypoint_node(
    entity: Any,
    referencing_property: str | Sequence[str],
    referenced_proxy_property: str | Sequence[str],
    alias: str | None = None,
) -> RelationNode:
    """Create an intermediate node of a relation.

    Args:
        entity: Declared entity type or descriptor of the waypoint.
        referencing_property: Properties matched against the preceding node.
        referenced_proxy_property: Properties the succeeding node is matched
            against.
        alias: Name of the waypoint in queries, defaults to its set name.

    Raises:
        InvalidDeclaration: On reserved aliases or unknown properties.
    """
    descriptor = describe(entity)
    if alias is not None and alias in RESERVED_NAMES:
        raise InvalidDeclaration(f"Reserved waypoint alias: {alias!r}", entity=descriptor.set_name)

    predecessor_properties = default_property(descriptor, referencing_property)
    successor_properties = default_property(descriptor, referenced_proxy_property)
    return RelationNode(
        descriptor,
        alias=alias,
        predecessor_properties=predecessor_properties,
        successor_properties=successor_properties,
        references_predecessor=not is_referenced_side(descriptor, predecessor_properties),
        references_successor=not is_referenced_side(descriptor, successor_properties),
    )


def source_node(entity: Any, referencing_property: str | Sequence[str] | None = None) -> RelationNode:
    """Create the node a relation ends at."""
    descriptor = describe(entity)
    properties = default_property(descriptor, referencing_property)
    return RelationNode(
        descriptor,
        alias=SOURCE,
        predecessor_properties=properties,
        references_predecessor=not is_referenced_side(descriptor, properties),
    )


class _Stage:
    """Common steps of declaration stages sharing one chain."""

    def __init__(self, chain: RelationChain):
        self._chain = chain

    def via(
        self,
        entity: Any,
        referencing_property: str | Sequence[str],
        referenced_proxy_property: str | Sequence[str],
        alias: str | None = None,
    ) -> "WaypointStage":
        """Route the relation through another entity."""
        node = waypoint_node(entity, referencing_property, referenced_proxy_property, alias)
        self._chain.append(node)
        logger.debug("Appended waypoint %s", node.name)
        return WaypointStage(self._chain)

    def from_(self, entity: Any, referencing_property: str | Sequence[str] | None = None):
        """Complete the relation with its source entity.

        Returns:
            The declared Relation.
        """
        from .relation import Relation

        self._chain.append(source_node(entity, referencing_property), closing=True)
        return Relation(self._chain)


class TargetStage(_Stage):
    """Relation with a target but neither waypoints nor source."""

    def __repr__(self) -> str:
        return f"<TargetStage {self._chain.target.entity.set_name}>"


class WaypointStage(_Stage):
    """Relation with at least one waypoint and no source yet."""

    def on(self, condition: str, *params: Any, at: str | None = None) -> "WaypointStage":
        """Add a join condition to the latest waypoint or the one named by at."""
        position = len(self._chain.nodes) - 1 if at is None else self._chain.position_of(at)
        self._chain.add_condition(position, make_condition(condition, params))
        return self

    def __repr__(self) -> str:
        return f"<WaypointStage {' -> '.join(n.name for n in self._chain.nodes)}>"
