"""Ordered chain of nodes and references shared by builder stages and relations."""

import re
import threading
from typing import Any, NamedTuple, Sequence

from ..entity.descriptor import EntityDescriptor
from ..errors import AmbiguousIdentifier, CircularWaypoint, InvalidDeclaration, RelationStateError
from .node import RelationNode, normalize_names
from .reference import Reference

TARGET = "target"
SOURCE = "source"
RESERVED_NAMES = frozenset({TARGET, SOURCE})

_QUOTED = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"")


class Condition(NamedTuple):
    """Extra join condition with its positional parameters."""

    template: str
    params: tuple[Any, ...]


def make_condition(template: str, params: Sequence[Any]) -> Condition:
    """Validate a condition template against its parameters.

    Placeholders are positional ``?`` outside of quoted literals and
    identifiers. A single sequence argument holds all parameters, unless
    the template has exactly one placeholder and the sequence isn't of
    length one: it is the value of that placeholder then. Pass a single
    one-element sequence value wrapped, e.g. ``[[value]]``.

    Raises:
        InvalidDeclaration: On empty templates or a placeholder count not
            matching the number of parameters.
    """
    if not isinstance(template, str) or not template.strip():
        raise InvalidDeclaration("Invalid or missing condition")

    placeholders = _QUOTED.sub("", template).count("?")

    if len(params) == 1 and isinstance(params[0], (list, tuple)):
        if placeholders != 1 or len(params[0]) == 1:
            params = params[0]

    if placeholders != len(params):
        raise InvalidDeclaration(
            f"Condition {template!r} expects {placeholders} parameter(s), "
            f"got {len(params)}"
        )
    return Condition(template.strip(), tuple(params))


def default_property(entity: EntityDescriptor, names: str | Sequence[str] | None) -> tuple[str, ...]:
    """Normalize property names, defaulting to the entity's single id property.

    Raises:
        AmbiguousIdentifier: If names are omitted for a composite-id entity.
        InvalidDeclaration: If a name is malformed or not in the entity schema.
    """
    if names is None:
        if len(entity.id_properties) != 1:
            raise AmbiguousIdentifier(entity.set_name, entity.id_properties)
        return entity.id_properties

    normalized = normalize_names(names, entity=entity.set_name)
    for name in normalized:
        if not entity.has_property(name):
            raise InvalidDeclaration(
                f"Unknown property '{name}' of {entity.set_name}", entity=entity.set_name
            )
    return normalized


def is_referenced_side(entity: EntityDescriptor, properties: Sequence[str]) -> bool:
    """Check if the properties address the entity's identifier."""
    return set(properties) == set(entity.id_properties)


class RelationChain:
    """Nodes of a relation from target to source, linked by references.

    Waypoint conditions are kept per node position. The chain's lock
    serializes binding on all of its nodes.
    """

    def __init__(self, target: RelationNode):
        self.lock = threading.RLock()
        self._nodes: list[RelationNode] = [target]
        self._references: list[Reference] = []
        self._conditions: dict[int, list[Condition]] = {}
        self._closed = False

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def append(self, node: RelationNode, closing: bool = False) -> Reference:
        """Link another node to the end of the chain.

        Args:
            node: Node to append.
            closing: True if the node is the chain's source.

        Raises:
            RelationStateError: If the chain's source is set already.
            CircularWaypoint: If the node's name is in use.
        """
        if self._closed:
            raise RelationStateError("Relation is complete; can't append more nodes")

        if not closing and node.name in RESERVED_NAMES:
            raise CircularWaypoint(node.name)
        if any(existing.name == node.name for existing in self._nodes):
            raise CircularWaypoint(node.name)

        reference = Reference(self._nodes[-1], node, owner=self, index=len(self._references))
        self._nodes.append(node)
        self._references.append(reference)
        self._closed = closing
        return reference

    def add_condition(self, position: int, condition: Condition) -> None:
        if position < 1 or position >= len(self._nodes):
            raise InvalidDeclaration("Conditions apply to joined sets only")
        self._conditions.setdefault(position, []).append(condition)

    def conditions_at(self, position: int) -> list[Condition]:
        return list(self._conditions.get(position, ()))

    def position_of(self, name: str) -> int:
        """Get the position of a joined node by its name.

        Raises:
            InvalidDeclaration: If no joined node has that name.
        """
        for position, node in enumerate(self._nodes):
            if position > 0 and node.name == name:
                return position
        raise InvalidDeclaration(f"Unknown waypoint: {name!r}")

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def nodes(self) -> tuple[RelationNode, ...]:
        return tuple(self._nodes)

    @property
    def target(self) -> RelationNode:
        return self._nodes[0]

    @property
    def source(self) -> RelationNode | None:
        return self._nodes[-1] if self._closed else None

    @property
    def waypoints(self) -> tuple[RelationNode, ...]:
        end = -1 if self._closed else len(self._nodes)
        return tuple(self._nodes[1:end])

    @property
    def references(self) -> tuple[Reference, ...]:
        return tuple(self._references)

    @property
    def reference_count(self) -> int:
        return len(self._references)

    def reference_at(self, index: int) -> Reference:
        return self._references[index]

    def adjacent_references(self, node: RelationNode) -> list[Reference]:
        """Get the references linking the given node with its neighbours."""
        return [r for r in self._references if node is r.predecessor or node is r.successor]

    def clone(self) -> "RelationChain":
        """Copy the chain with independent nodes and bindings."""
        nodes = [node.clone() for node in self._nodes]
        copy = RelationChain(nodes[0])
        for position, node in enumerate(nodes[1:], start=1):
            copy.append(node, closing=self._closed and position == len(nodes) - 1)
        copy._conditions = {k: list(v) for k, v in self._conditions.items()}
        return copy
