"""Declared relations and their compilation into queries."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..datasource.base import Connection, Query, QueryPlan
from ..entity.descriptor import describe, is_identifier
from ..entity.registry import SchemaRegistry
from ..errors import ArityMismatch, InvalidDeclaration, RelationStateError
from ..utils.logger import get_logger
from .chain import SOURCE, TARGET, RelationChain, make_condition
from .node import RelationNode
from .reference import Reference

logger = get_logger(__name__)


@dataclass
class RenderContext:
    """Data handed to a renderer for presenting related items."""

    rows: list[dict[str, Any]]
    visible_properties: dict[str, str | None]
    relation: "Relation"
    extra: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Renderer(Protocol):
    """Presents the rows of a relation."""

    def render(self, context: RenderContext) -> Any: ...


class Relation:
    """Relation between a target and a source entity.

    The source is related to the target directly or through waypoints. A
    relation compiles into a query listing source items related to some
    target item:

        members = (
            Relation.create_on(Group)
            .via(membership, "group_id", "person_id")
            .from_(Person)
        )
        members.selector(connection, bound_target_id=1)
    """

    def __init__(self, chain: RelationChain):
        if not chain.is_closed:
            raise RelationStateError("Relation requires a source")

        self._chain = chain
        self._visible: dict[str, str | None] = {}
        self._sorts: list[tuple[str, bool]] = []
        self._name: str | None = None
        self._compiled = False

    @classmethod
    def create_on(cls, target: Any, target_property: str | Sequence[str] | None = None):
        """Start declaring a relation on its target entity.

        Args:
            target: Declared entity type or descriptor of the target.
            target_property: Properties of the target the relation is
                attached to, defaulting to its single id property.

        Returns:
            TargetStage offering via() and from_().
        """
        from .builder import TargetStage, target_node

        return TargetStage(RelationChain(target_node(target, target_property)))

    def __repr__(self) -> str:
        path = " -> ".join(n.entity.set_name for n in self._chain.nodes)
        return f"<Relation {self._name or path}>"

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    def via(self, *args: Any, **kwargs: Any) -> "Relation":
        raise RelationStateError("Relation is complete; waypoints must precede the source")

    def on(self, condition: str, *params: Any, at: str | None = None) -> "Relation":
        """Add a condition to the source join or the waypoint named by at."""
        self._assert_declaring()
        position = len(self._chain.nodes) - 1 if at in (None, SOURCE) else self._chain.position_of(at)
        self._chain.add_condition(position, make_condition(condition, params))
        return self

    def showing(self, property: str, alias: str | None = None) -> "Relation":
        """Add a property to the projection of compiled queries.

        Args:
            property: Property name, qualified by a node name or relative to
                the source. ``*`` selects all properties of a node.
            alias: Name of the property in resulting rows.

        Raises:
            InvalidDeclaration: On unknown nodes, properties or bad aliases.
        """
        self._assert_declaring()
        if alias is not None and not is_identifier(alias):
            raise InvalidDeclaration(f"Invalid alias of visible property: {alias!r}")

        node_name, name = self._split(property)
        self._visible[f"{node_name}.{name}"] = alias
        return self

    def sorted_by(self, property: str, ascending: bool = True) -> "Relation":
        self._assert_declaring()
        node_name, name = self._split(property)
        if name == "*":
            raise InvalidDeclaration("Can't sort by all properties")
        self._sorts.append((f"{node_name}.{name}", bool(ascending)))
        return self

    def named(self, name: str) -> "Relation":
        self._assert_declaring()
        if not is_identifier(name):
            raise InvalidDeclaration(f"Invalid relation name: {name!r}")
        self._name = name
        return self

    def _split(self, property: str) -> tuple[str, str]:
        node_name, _, name = property.strip().rpartition(".")
        node_name = node_name or SOURCE

        node = self.find_node(name=node_name)
        if node is None:
            raise InvalidDeclaration(f"Unknown node of relation: {node_name!r}")
        if name != "*" and not node.entity.has_property(name):
            raise InvalidDeclaration(
                f"Unknown property '{name}' of {node.entity.set_name}",
                entity=node.entity.set_name,
            )
        return node_name, name

    def _assert_declaring(self) -> None:
        if self._compiled:
            raise RelationStateError("Relation has been compiled; declare a new one instead")

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def state(self) -> str:
        return "compiled" if self._compiled else "declaring"

    @property
    def target(self) -> RelationNode:
        return self._chain.target

    @property
    def source(self) -> RelationNode:
        return self._chain.source

    @property
    def waypoints(self) -> tuple[RelationNode, ...]:
        return self._chain.waypoints

    @property
    def nodes(self) -> tuple[RelationNode, ...]:
        return self._chain.nodes

    @property
    def references(self) -> tuple[Reference, ...]:
        return self._chain.references

    @property
    def visible_properties(self) -> dict[str, str | None]:
        return dict(self._visible)

    @property
    def sort_spec(self) -> list[tuple[str, bool]]:
        return list(self._sorts)

    def conditions_of(self, name: str) -> list[tuple[str, tuple[Any, ...]]]:
        """Get the extra join conditions of a waypoint or the source."""
        position = len(self._chain.nodes) - 1 if name == SOURCE else self._chain.position_of(name)
        return [tuple(c) for c in self._chain.conditions_at(position)]

    def reference_at(self, index: int) -> Reference:
        """Get a reference by its index, counting from the target.

        Raises:
            IndexError: If there's no such reference.
        """
        return self._chain.reference_at(index)

    def unbound_references(self) -> list[Reference]:
        return [r for r in self._chain.references if not r.is_bound()]

    def find_node(self, entity: Any = None, name: str | None = None) -> RelationNode | None:
        """Find a node by its entity, its name or both.

        End nodes are preferred over waypoints.

        Raises:
            ValueError: If neither entity nor name is given.
        """
        if entity is None and name is None:
            raise ValueError("Missing entity or name of node to find")

        descriptor = None if entity is None else describe(entity)
        nodes = self._chain.nodes
        for node in (nodes[0], nodes[-1], *nodes[1:-1]):
            if name is not None and node.name != name:
                continue
            if descriptor is not None and not node.entity.is_same_entity(descriptor):
                continue
            return node
        return None

    def is_many_to_many(self) -> bool:
        """Check if some waypoint references both of its neighbours."""
        return any(node.is_many_to_many for node in self._chain.waypoints)

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    def bind_on(self, name: str, values: Mapping[str, Any] | Sequence[Any] | Any) -> Reference:
        """Bind the reference next to the named node.

        End nodes have a single adjacent reference. Waypoints bind the one
        reference they are referencing in. Mappings keyed by the node's own
        properties are accepted when the node is the referenced end.

        Returns:
            The bound reference.

        Raises:
            InvalidDeclaration: If there's no node with that name.
            RelationStateError: If the reference to bind is ambiguous.
        """
        node = self.find_node(name=name)
        if node is None:
            raise InvalidDeclaration(f"Unknown node of relation: {name!r}")

        with self._chain.lock:
            candidates = self._chain.adjacent_references(node)
            if len(candidates) > 1:
                candidates = [r for r in candidates if r.referencing_node is node]
            if len(candidates) != 1:
                raise RelationStateError(f"Ambiguous request for binding on node '{name}'")

            reference = candidates[0]
            if isinstance(values, Mapping) and reference.referenced_node is node:
                own = reference.properties_of(node)
                if set(values.keys()) != set(own):
                    raise ArityMismatch(
                        f"Binding on '{name}' requires exactly {', '.join(own)}",
                        expected=own,
                        provided=tuple(values.keys()),
                    )
                values = [values[p] for p in own]

            return reference.bind(values)

    def bind_on_item(self, item: Any, name: str | None = None) -> "Relation":
        """Bind all references next to the node of an item's entity.

        Args:
            item: Instance of a declared entity type.
            name: Name of the node when the entity occurs several times.
        """
        node = self.find_node(entity=type(item), name=name)
        if node is None:
            raise InvalidDeclaration(f"Entity {type(item).__name__} is not part of the relation")

        with self._chain.lock:
            for reference in self._chain.adjacent_references(node):
                reference.bind([getattr(item, p) for p in reference.properties_of(node)])
        return self

    def unbind(self) -> "Relation":
        with self._chain.lock:
            for reference in self._chain.references:
                reference.unbind()
        return self

    def is_bound(self, require_all: bool = False) -> bool:
        """Check if some or all references are bound."""
        bound = [r.is_bound() for r in self._chain.references]
        return all(bound) if require_all else any(bound)

    def clone(self) -> "Relation":
        """Copy the relation with independent binding state."""
        with self._chain.lock:
            copy = Relation(self._chain.clone())
        copy._visible = dict(self._visible)
        copy._sorts = list(self._sorts)
        copy._name = self._name
        return copy

    # -------------------------------------------------------------------------
    # Compilation
    # -------------------------------------------------------------------------

    def compile_query(
        self,
        datasource: Connection,
        bound_target_id: Any = None,
        bound: bool = True,
    ) -> Query:
        """Compile the relation into a query of the datasource.

        Args:
            datasource: Connection creating the query.
            bound_target_id: Id of a target item to limit the query to.
            bound: False to ignore values bound to references.

        Returns:
            Query projecting visible properties in declared order.
        """
        query = self._compile(datasource, bound_target_id, bound)
        quote = datasource.quote_identifier

        self._project_visible(query, quote, self._chain.source)
        self._add_sorts(query, quote)
        return query

    def compile_plan(
        self,
        datasource: Connection,
        bound_target_id: Any = None,
        bound: bool = True,
    ) -> QueryPlan:
        return self.compile_query(datasource, bound_target_id, bound).plan()

    def _compile(self, datasource: Connection, bound_target_id: Any, bound: bool) -> Query:
        quote = datasource.quote_identifier
        chain = self._chain

        with chain.lock:
            query = datasource.create_query(chain.target.set_expression(quote))

            for position, reference in enumerate(chain.references, start=1):
                node = reference.successor
                condition = reference.join_condition(quote)
                params: list[Any] = []
                for extra in chain.conditions_at(position):
                    condition += f" AND ({extra.template})"
                    params.extend(extra.params)
                query.add_joined_set(node.set_expression(quote), condition, params)

            if bound_target_id is not None:
                target = chain.target
                values = self._target_values(bound_target_id)
                names = target.qualified(target.successor_properties, quote)
                query.add_filter(" AND ".join(f"{n}=?" for n in names), values)

            if bound:
                for reference in chain.references:
                    values = reference.binding_values()
                    if values is None:
                        continue
                    names = reference.referencing_properties(qualify=True, quote=quote)
                    query.add_filter(" AND ".join(f"{n}=?" for n in names), values)

        self._compiled = True
        logger.debug("Compiled relation %s on %d set(s)", self._name or repr(self), len(chain.nodes))
        return query

    def _target_values(self, bound_target_id: Any) -> list[Any]:
        names = self._chain.target.successor_properties

        if isinstance(bound_target_id, Mapping):
            if set(bound_target_id.keys()) != set(names):
                raise ArityMismatch(
                    f"Target id requires exactly {', '.join(names)}",
                    expected=names,
                    provided=tuple(bound_target_id.keys()),
                )
            return [bound_target_id[n] for n in names]

        if isinstance(bound_target_id, Sequence) and not isinstance(bound_target_id, (str, bytes)):
            values = list(bound_target_id)
        else:
            values = [bound_target_id]

        if len(values) != len(names):
            raise ArityMismatch(
                f"Target id requires {len(names)} value(s), got {len(values)}",
                expected=names,
                provided=tuple(values),
            )
        return values

    def _project_visible(self, query: Query, quote, listed: RelationNode) -> None:
        """Project visible properties, or all properties of the listed node."""
        if self._visible:
            for qualified, alias in self._visible.items():
                query.add_projected_property(self._quoted(qualified, quote), alias)
        else:
            query.add_projected_property(f"{quote(listed.name)}.*")

    def _add_sorts(self, query: Query, quote) -> None:
        for qualified, ascending in self._sorts:
            query.add_sort(self._quoted(qualified, quote), ascending)

    @staticmethod
    def _quoted(qualified: str, quote) -> str:
        node_name, name = qualified.split(".", 1)
        return f"{quote(node_name)}.{'*' if name == '*' else quote(name)}"

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def ensure_schema_present(self, datasource: Connection, registry: SchemaRegistry) -> None:
        """Make sure the sets of all entities of this relation exist."""
        for node in self._chain.nodes:
            node.entity.ensure_schema_present(datasource, registry)

    def _listed_node(self, node: int | str | None) -> RelationNode:
        """Resolve the node to list by its index or name, the source by default.

        Raises:
            ValueError: If the relation has no such node.
        """
        nodes = self._chain.nodes
        if node is None:
            return self._chain.source
        if isinstance(node, int):
            if not -len(nodes) <= node < len(nodes):
                raise ValueError(f"No node at index {node} of {len(nodes)}")
            return nodes[node]

        found = next((n for n in nodes if n.name == node), None)
        if found is None:
            raise ValueError(f"Unknown node of relation: {node!r}")
        return found

    def _listing_query(
        self, datasource: Connection, bound_target_id: Any, registry, listed: RelationNode
    ) -> Query:
        if registry is not None:
            self.ensure_schema_present(datasource, registry)

        quote = datasource.quote_identifier
        query = self._compile(datasource, bound_target_id, True)
        prefix = quote(listed.name)

        for index, name in enumerate(listed.entity.id_properties):
            query.add_projected_property(f"{prefix}.{quote(name)}", f"i{index}")
        for index, name in enumerate(listed.entity.label_properties):
            query.add_projected_property(f"{prefix}.{quote(name)}", f"l{index}")

        if self._sorts:
            self._add_sorts(query, quote)
        else:
            for name in listed.entity.id_properties:
                query.add_sort(f"{prefix}.{quote(name)}")
        return query

    def _listed_rows(self, datasource: Connection, bound_target_id: Any, registry, listed: RelationNode):
        ids, labels = listed.entity.id_properties, listed.entity.label_properties

        cursor = self._listing_query(datasource, bound_target_id, registry, listed).execute()
        for row in cursor:
            yield (
                {name: row[f"i{i}"] for i, name in enumerate(ids)},
                {name: row[f"l{i}"] for i, name in enumerate(labels)},
            )

    def selector(
        self,
        datasource: Connection,
        bound_target_id: Any = None,
        registry: SchemaRegistry | None = None,
        node: int | str | None = None,
    ) -> dict[str, str]:
        """List related items as serialized id -> label.

        Items are ordered by declared sorting or else by their ids.

        Args:
            datasource: Connection to query.
            bound_target_id: Id of a target item to limit the listing to.
            registry: Registry for creating missing sets first.
            node: Index or name of the node to list, the source by default.
                Listing the target of a relation bound at its source end
                reverses the relation.
        """
        listed = self._listed_node(node)
        entity = listed.entity
        return {
            entity.serialize_id(item_id): entity.format_label(label)
            for item_id, label in self._listed_rows(datasource, bound_target_id, registry, listed)
        }

    def list_related(
        self,
        datasource: Connection,
        bound_target_id: Any = None,
        registry: SchemaRegistry | None = None,
        node: int | str | None = None,
    ) -> dict[str, Any]:
        """List related items as serialized id -> instance.

        Raises:
            RelationStateError: If the listed node is a virtual entity.
        """
        listed = self._listed_node(node)
        entity = listed.entity
        if entity.is_virtual:
            raise RelationStateError(f"Cannot list instances of virtual model '{entity.set_name}'")

        return {
            entity.serialize_id(item_id): entity.select_instance(datasource, item_id)
            for item_id, _ in self._listed_rows(datasource, bound_target_id, registry, listed)
        }

    def render(
        self,
        datasource: Connection,
        renderer: Renderer,
        bound_target_id: Any = None,
        registry: SchemaRegistry | None = None,
        node: int | str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Hand the rows of visible properties to a renderer.

        Without visible properties all properties of the listed node are
        fetched. ``data`` is passed to the renderer as is.
        """
        listed = self._listed_node(node)
        if registry is not None:
            self.ensure_schema_present(datasource, registry)

        quote = datasource.quote_identifier
        query = self._compile(datasource, bound_target_id, True)
        self._project_visible(query, quote, listed)
        self._add_sorts(query, quote)

        context = RenderContext(
            rows=query.execute().all(),
            visible_properties=self.visible_properties,
            relation=self,
            extra=dict(data or {}),
        )
        return renderer.render(context)

    def count(
        self,
        datasource: Connection,
        bound_target_id: Any = None,
        registry: SchemaRegistry | None = None,
    ) -> int:
        """Count related source items."""
        if registry is not None:
            self.ensure_schema_present(datasource, registry)

        return int(self.compile_query(datasource, bound_target_id).execute(counting=True).cell())
