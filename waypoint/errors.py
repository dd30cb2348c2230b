"""Exception classes for relation declaration, binding and execution."""


class WaypointError(Exception):
    """Base exception for all waypoint errors."""

    pass


# -------------------------------------------------------------------------
# Declaration errors
# -------------------------------------------------------------------------


class DeclarationError(WaypointError):
    """Raised while declaring a relation or entity in an invalid way."""

    pass


class InvalidDeclaration(DeclarationError):
    """Raised on malformed set names, schemas or property names."""

    def __init__(self, message: str, entity: str | None = None):
        self.entity = entity
        super().__init__(message)


class AmbiguousIdentifier(DeclarationError):
    """Raised when a property must be named for a composite-id entity."""

    def __init__(self, entity: str, id_properties: tuple[str, ...]):
        self.entity = entity
        self.id_properties = id_properties
        super().__init__(
            f"Entity '{entity}' has a composite identifier "
            f"({', '.join(id_properties)}); name the property explicitly"
        )


class CircularWaypoint(DeclarationError):
    """Raised when a waypoint name is used twice in one relation."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Waypoint '{name}' is already part of the relation; "
            "use a distinct alias to join the same set again"
        )


class IncompatibleEndpoints(DeclarationError):
    """Raised when two nodes cannot be linked in the requested order."""

    pass


class WidthMismatch(DeclarationError):
    """Raised when both ends of a reference bind different numbers of properties."""

    def __init__(self, predecessor_width: int, successor_width: int):
        self.predecessor_width = predecessor_width
        self.successor_width = successor_width
        super().__init__(
            f"Mismatching width of reference: {predecessor_width} "
            f"property(ies) on predecessor, {successor_width} on successor"
        )


class AmbiguousDirection(DeclarationError):
    """Raised when neither or both ends of a reference are referencing."""

    pass


# -------------------------------------------------------------------------
# Binding errors
# -------------------------------------------------------------------------


class BindingError(WaypointError):
    """Base exception for values not matching a declared binding."""

    def __init__(self, message: str, expected: tuple[str, ...] = (), provided: tuple = ()):
        self.expected = tuple(expected)
        self.provided = tuple(provided)
        super().__init__(message)


class BindingArityMismatch(BindingError):
    """Raised when a node binding's keys differ from its declared properties."""

    pass


class ArityMismatch(BindingError):
    """Raised when a reference is bound with the wrong number of values."""

    pass


# -------------------------------------------------------------------------
# Structural and datasource errors
# -------------------------------------------------------------------------


class RelationStateError(WaypointError):
    """Raised when a relation or node is used in an invalid state."""

    pass


class DatasourceError(WaypointError):
    """Raised when the datasource fails to create schema or run a query."""

    def __init__(self, message: str, statement: str | None = None):
        self.statement = statement
        super().__init__(message)


class MissingRecordError(DatasourceError):
    """Raised when a single expected record does not exist."""

    def __init__(self, set_name: str, record_id: object):
        self.set_name = set_name
        self.record_id = record_id
        super().__init__(f"No record in '{set_name}' matches id {record_id!r}")
