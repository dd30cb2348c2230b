"""waypoint: compile declared relations between models into queries."""

from .entity import EntityDescriptor, Model, SchemaRegistry, describe, describe_virtual
from .errors import WaypointError
from .relation import Relation, RenderContext, Renderer

__all__ = [
    "EntityDescriptor",
    "Model",
    "Relation",
    "RenderContext",
    "Renderer",
    "SchemaRegistry",
    "WaypointError",
    "describe",
    "describe_virtual",
]
