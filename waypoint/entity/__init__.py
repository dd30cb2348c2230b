"""Entity layer: declared and virtual entities and their schema registry."""

from .descriptor import (
    EntityDescriptor,
    describe,
    describe_declared,
    describe_virtual,
    is_identifier,
)
from .model import EntityType, Model
from .registry import SchemaRegistry

__all__ = [
    "EntityDescriptor",
    "EntityType",
    "Model",
    "SchemaRegistry",
    "describe",
    "describe_declared",
    "describe_virtual",
    "is_identifier",
]
