"""Node and edge type definitions for the relation graph."""

from enum import Enum


class NodeType(str, Enum):
    """Types of nodes in the relation graph."""

    ENTITY = "entity"  # Declared entity type
    DATASET = "dataset"  # Virtual entity


class EdgeType(str, Enum):
    """Types of edges in the relation graph."""

    REFERENCE = "reference"  # Referencing -> referenced entity
