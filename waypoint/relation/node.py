"""Nodes of a relation chain."""

from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from ..entity.descriptor import EntityDescriptor, describe, is_identifier
from ..errors import BindingArityMismatch, InvalidDeclaration, RelationStateError
from ..utils.logger import get_logger

logger = get_logger(__name__)

Quote = Callable[[str], str]


class Side(str, Enum):
    """Sides of a node facing its neighbours in a chain."""

    PREDECESSOR = "predecessor"
    SUCCESSOR = "successor"


def normalize_names(names: str | Sequence[str], entity: str | None = None) -> tuple[str, ...]:
    """Normalize one or several property names into a tuple.

    Raises:
        InvalidDeclaration: On empty, malformed or repeated names.
    """
    if isinstance(names, str):
        names = [names]

    normalized = tuple(n.strip() if isinstance(n, str) else n for n in names)
    if not normalized:
        raise InvalidDeclaration("Empty set of reference properties", entity=entity)

    for name in normalized:
        if not is_identifier(name):
            raise InvalidDeclaration(f"Invalid reference property name: {name!r}", entity=entity)

    if len(set(normalized)) != len(normalized):
        raise InvalidDeclaration("Ambiguous reference elements", entity=entity)

    return normalized


class RelationNode:
    """One entity of a relation chain.

    A node names the properties of its entity used to link with the
    preceding and succeeding node. On either side the node is referencing
    (its properties hold values identifying the neighbour) or referenced (its
    properties are matched by the neighbour). Only referencing sides can be
    bound to values.

        target.id <= membership.group_id | membership.person_id => source.id
    """

    def __init__(
        self,
        entity: Any,
        alias: str | None = None,
        predecessor_properties: Sequence[str] = (),
        successor_properties: Sequence[str] = (),
        references_predecessor: bool = False,
        references_successor: bool = False,
    ):
        self._entity: EntityDescriptor = describe(entity)

        if alias is not None and not is_identifier(alias):
            raise InvalidDeclaration(f"Invalid alias name: {alias!r}", entity=self._entity.set_name)
        self._alias = alias

        self._predecessor_properties = tuple(predecessor_properties)
        self._successor_properties = tuple(successor_properties)
        self._references_predecessor = bool(self._predecessor_properties) and references_predecessor
        self._references_successor = bool(self._successor_properties) and references_successor

        self._predecessor_binding: dict[str, Any] | None = None
        self._successor_binding: dict[str, Any] | None = None

    def __repr__(self) -> str:
        return f"<RelationNode {self.name} ({self._entity.set_name})>"

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    @property
    def entity(self) -> EntityDescriptor:
        return self._entity

    @property
    def alias(self) -> str | None:
        return self._alias

    @property
    def name(self) -> str:
        """Get the name addressing this node's set in a query."""
        return self._alias or self._entity.set_name

    @property
    def predecessor_properties(self) -> tuple[str, ...]:
        return self._predecessor_properties

    @property
    def successor_properties(self) -> tuple[str, ...]:
        return self._successor_properties

    @property
    def accepts_predecessor(self) -> bool:
        return bool(self._predecessor_properties)

    @property
    def accepts_successor(self) -> bool:
        return bool(self._successor_properties)

    @property
    def references_predecessor(self) -> bool:
        return self._references_predecessor

    @property
    def references_successor(self) -> bool:
        return self._references_successor

    @property
    def is_many_to_many(self) -> bool:
        """Check if this node references both of its neighbours."""
        return self._references_predecessor and self._references_successor

    def properties(self, side: Side | str) -> tuple[str, ...]:
        if Side(side) is Side.PREDECESSOR:
            return self._predecessor_properties
        return self._successor_properties

    def set_expression(self, quote: Quote) -> str:
        """Get the set of this node with its name as alias, quoted."""
        return f"{quote(self._entity.set_name)} {quote(self.name)}"

    def qualified(self, properties: Sequence[str], quote: Quote | None = None) -> list[str]:
        """Prefix property names with this node's name, optionally quoted."""
        if quote is None:
            return [f"{self.name}.{p}" for p in properties]
        return [f"{quote(self.name)}.{quote(p)}" for p in properties]

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    @property
    def predecessor_binding(self) -> dict[str, Any] | None:
        return None if self._predecessor_binding is None else dict(self._predecessor_binding)

    @property
    def successor_binding(self) -> dict[str, Any] | None:
        return None if self._successor_binding is None else dict(self._successor_binding)

    def binding(self, side: Side | str) -> dict[str, Any] | None:
        if Side(side) is Side.PREDECESSOR:
            return self.predecessor_binding
        return self.successor_binding

    def is_bound(self, side: Side | str) -> bool:
        """Check if the given side holds bound values."""
        if Side(side) is Side.PREDECESSOR:
            return self._predecessor_binding is not None
        return self._successor_binding is not None

    def bind_predecessor(self, values: Mapping[str, Any]) -> "RelationNode":
        self._predecessor_binding = self._checked_binding(Side.PREDECESSOR, values)
        logger.debug("Bound %s on predecessor: %r", self.name, self._predecessor_binding)
        return self

    def bind_successor(self, values: Mapping[str, Any]) -> "RelationNode":
        self._successor_binding = self._checked_binding(Side.SUCCESSOR, values)
        logger.debug("Bound %s on successor: %r", self.name, self._successor_binding)
        return self

    def unbind_predecessor(self) -> "RelationNode":
        self._predecessor_binding = None
        return self

    def unbind_successor(self) -> "RelationNode":
        self._successor_binding = None
        return self

    def _checked_binding(self, side: Side, values: Mapping[str, Any]) -> dict[str, Any]:
        """Validate values for binding one side and order them canonically.

        Raises:
            RelationStateError: If the side is not referencing or bound already.
            BindingArityMismatch: If the keys differ from the side's properties.
        """
        if side is Side.PREDECESSOR:
            referencing, bound = self._references_predecessor, self._predecessor_binding
        else:
            referencing, bound = self._references_successor, self._successor_binding

        if not referencing:
            raise RelationStateError(
                f"Invalid request for binding node '{self.name}' with its {side.value}"
            )
        if bound is not None:
            raise RelationStateError(
                f"Node '{self.name}' is bound on its {side.value} already; unbind first"
            )

        names = self.properties(side)
        if not isinstance(values, Mapping) or set(values.keys()) != set(names):
            provided = tuple(values.keys()) if isinstance(values, Mapping) else ()
            raise BindingArityMismatch(
                f"Binding '{self.name}' on its {side.value} requires exactly "
                f"{', '.join(names)}",
                expected=names,
                provided=provided,
            )

        return {name: values[name] for name in names}

    def clone(self) -> "RelationNode":
        """Copy this node including its bindings."""
        copy = RelationNode(
            self._entity,
            alias=self._alias,
            predecessor_properties=self._predecessor_properties,
            successor_properties=self._successor_properties,
            references_predecessor=self._references_predecessor,
            references_successor=self._references_successor,
        )
        copy._predecessor_binding = self.predecessor_binding
        copy._successor_binding = self.successor_binding
        return copy
