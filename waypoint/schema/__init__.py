"""Declaration documents of datasets and named relations."""

from .errors import SchemaLoadError, SchemaValidationError
from .models import (
    ConditionSpec,
    DatasetSpec,
    DeclarationDocument,
    EndSpec,
    RelationSpec,
    SortSpec,
    StepSpec,
    VisibleSpec,
)
from .loader import load_yaml, parse_declarations, parse_declarations_from_string
from .resolver import (
    EntityCatalog,
    derive_junction,
    describe_dataset,
    resolve_document,
    resolve_relation,
)

__all__ = [
    "SchemaLoadError",
    "SchemaValidationError",
    "ConditionSpec",
    "DatasetSpec",
    "DeclarationDocument",
    "EndSpec",
    "RelationSpec",
    "SortSpec",
    "StepSpec",
    "VisibleSpec",
    "EntityCatalog",
    "derive_junction",
    "describe_dataset",
    "resolve_document",
    "resolve_relation",
    "load_yaml",
    "parse_declarations",
    "parse_declarations_from_string",
]
