"""Graph layer for representing declared relations as networkx graphs."""

from .node_types import NodeType, EdgeType
from .relation_graph import RelationGraph
from .builder import build_graph

__all__ = [
    "NodeType",
    "EdgeType",
    "RelationGraph",
    "build_graph",
]
