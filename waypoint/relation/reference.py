"""Directed links between adjacent relation nodes."""

import threading
from contextlib import nullcontext
from typing import Any, Mapping, Protocol, Sequence

from ..entity.descriptor import EntityDescriptor
from ..errors import AmbiguousDirection, ArityMismatch, IncompatibleEndpoints, WidthMismatch
from .node import Quote, RelationNode


class ReferenceOwner(Protocol):
    """Chain owning a list of references."""

    lock: threading.RLock

    def reference_at(self, index: int) -> "Reference": ...

    @property
    def reference_count(self) -> int: ...


class Reference:
    """Link between a predecessor and a successor node.

    Exactly one of both nodes is referencing the other. Binding a reference
    binds the referencing node's side facing the referenced node.
    """

    def __init__(
        self,
        predecessor: RelationNode,
        successor: RelationNode,
        owner: ReferenceOwner | None = None,
        index: int = 0,
    ):
        if not predecessor.accepts_successor or not successor.accepts_predecessor:
            raise IncompatibleEndpoints(
                f"Can't link {predecessor.name} with {successor.name} in this order"
            )

        predecessor_width = len(predecessor.successor_properties)
        successor_width = len(successor.predecessor_properties)
        if predecessor_width != successor_width:
            raise WidthMismatch(predecessor_width, successor_width)

        there = predecessor.references_successor
        here = successor.references_predecessor
        if there == here:
            raise AmbiguousDirection(
                f"Ambiguous reference between {predecessor.name} and {successor.name}: "
                + ("both sides are referencing" if there else "neither side is referencing")
            )

        self._predecessor = predecessor
        self._successor = successor
        self._left_to_right = there
        self._owner = owner
        self._index = index

    def __repr__(self) -> str:
        arrow = "->" if self._left_to_right else "<-"
        return f"<Reference {self._predecessor.name} {arrow} {self._successor.name}>"

    @property
    def predecessor(self) -> RelationNode:
        return self._predecessor

    @property
    def successor(self) -> RelationNode:
        return self._successor

    @property
    def index(self) -> int:
        return self._index

    @property
    def referencing_is_left_to_right(self) -> bool:
        """Check if the predecessor is referencing its successor."""
        return self._left_to_right

    @property
    def referencing_node(self) -> RelationNode:
        return self._predecessor if self._left_to_right else self._successor

    @property
    def referenced_node(self) -> RelationNode:
        return self._successor if self._left_to_right else self._predecessor

    def referencing_properties(self, qualify: bool = False, quote: Quote | None = None) -> list[str]:
        """Get the referencing node's properties facing the referenced node.

        Args:
            qualify: Prefix each name with the node's name.
            quote: Identifier quoting function used when qualifying.
        """
        if self._left_to_right:
            node, names = self._predecessor, self._predecessor.successor_properties
        else:
            node, names = self._successor, self._successor.predecessor_properties
        return node.qualified(names, quote) if qualify else list(names)

    def referenced_properties(self, qualify: bool = False, quote: Quote | None = None) -> list[str]:
        if self._left_to_right:
            node, names = self._successor, self._successor.predecessor_properties
        else:
            node, names = self._predecessor, self._predecessor.successor_properties
        return node.qualified(names, quote) if qualify else list(names)

    def properties_of(self, node: RelationNode) -> tuple[str, ...]:
        """Get the properties the given end node uses for this reference."""
        if node is self._predecessor:
            return node.successor_properties
        if node is self._successor:
            return node.predecessor_properties
        raise ValueError(f"{node!r} is not an end of {self!r}")

    def join_condition(self, quote: Quote) -> str:
        """Get the equality condition linking both ends of this reference."""
        left = self._predecessor.qualified(self._predecessor.successor_properties, quote)
        right = self._successor.qualified(self._successor.predecessor_properties, quote)
        return " AND ".join(f"{a}={b}" for a, b in zip(left, right))

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    @property
    def binding_provider(self) -> EntityDescriptor:
        """Get the entity providing values for binding this reference."""
        return self.referenced_node.entity

    @property
    def binding_provider_properties(self) -> list[str]:
        return self.referenced_properties()

    def normalize_values_for_binding(self, values: Mapping[str, Any] | Sequence[Any] | Any) -> list[Any]:
        """Map values onto the referencing properties in declared order.

        Args:
            values: Mapping of referencing property names to values, a
                positional sequence, or a single value for one property.

        Returns:
            Values ordered like the referencing properties.

        Raises:
            ArityMismatch: If the number of values doesn't fit.
        """
        names = self.referencing_properties()

        if isinstance(values, Mapping):
            rearranged = [values[name] for name in names if name in values]
            if len(rearranged) != len(names) or len(values) != len(names):
                raise ArityMismatch(
                    "Values for binding don't match referencing properties",
                    expected=tuple(names),
                    provided=tuple(values.keys()),
                )
            return rearranged

        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            values = [values]

        if len(values) != len(names):
            raise ArityMismatch(
                f"Binding requires {len(names)} value(s), got {len(values)}",
                expected=tuple(names),
                provided=tuple(values),
            )
        return list(values)

    def bind(self, values: Mapping[str, Any] | Sequence[Any] | Any) -> "Reference":
        """Bind the referencing side of this reference to values."""
        normalized = self.normalize_values_for_binding(values)
        binding = dict(zip(self.referencing_properties(), normalized))

        with self._lock():
            if self._left_to_right:
                self._predecessor.bind_successor(binding)
            else:
                self._successor.bind_predecessor(binding)
        return self

    def unbind(self) -> "Reference":
        with self._lock():
            if self._left_to_right:
                self._predecessor.unbind_successor()
            else:
                self._successor.unbind_predecessor()
        return self

    def is_bound(self) -> bool:
        if self._left_to_right:
            return self._predecessor.is_bound("successor")
        return self._successor.is_bound("predecessor")

    def binding_values(self) -> list[Any] | None:
        """Get bound values in referencing property order, if bound."""
        if self._left_to_right:
            binding = self._predecessor.successor_binding
        else:
            binding = self._successor.predecessor_binding
        return None if binding is None else list(binding.values())

    def opposite_reference_at(self, node: RelationNode) -> "Reference | None":
        """Get the reference on the other side of one of this reference's ends.

        Raises:
            ValueError: If the node isn't an end of this reference.
        """
        if node is self._predecessor:
            index = self._index - 1
        elif node is self._successor:
            index = self._index + 1
        else:
            raise ValueError(f"{node!r} is not an end of {self!r}")

        if self._owner is None or index < 0 or index >= self._owner.reference_count:
            return None
        return self._owner.reference_at(index)

    def _lock(self):
        return self._owner.lock if self._owner is not None else nullcontext()
