"""Relation declaration, binding and compilation."""

from .builder import TargetStage, WaypointStage
from .chain import RelationChain
from .node import RelationNode, Side
from .reference import Reference
from .relation import Relation, RenderContext, Renderer

__all__ = [
    "Reference",
    "Relation",
    "RelationChain",
    "RelationNode",
    "RenderContext",
    "Renderer",
    "Side",
    "TargetStage",
    "WaypointStage",
]
