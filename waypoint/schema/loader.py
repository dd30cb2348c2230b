"""Loading declaration documents from YAML."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..utils.logger import get_logger
from .errors import SchemaLoadError, SchemaValidationError
from .models import DeclarationDocument

logger = get_logger(__name__)


def _as_mapping(data: Any, path: str | None = None) -> dict:
    """Treat an empty document as empty mapping, reject any other root."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SchemaLoadError(
            f"Declarations must be a mapping of datasets and relations, "
            f"got {type(data).__name__}",
            path,
        )
    return data


def load_yaml(path: str | Path) -> dict:
    """Read the raw mapping of a declaration file.

    Raises:
        SchemaLoadError: If the file is missing, unreadable or no YAML mapping.
    """
    path = Path(path)
    if not path.is_file():
        reason = "Not a file" if path.exists() else "File not found"
        raise SchemaLoadError(f"{reason}: {path}", str(path))

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(f"Cannot read file: {e}", str(path)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML: {e}", str(path)) from e

    return _as_mapping(data, str(path))


def parse_declarations(path: str | Path) -> DeclarationDocument:
    """Load and validate a declaration file.

    Raises:
        SchemaLoadError: If the file cannot be read or parsed.
        SchemaValidationError: If the data doesn't declare valid datasets
            and relations.
    """
    document = _parse_document_data(load_yaml(path))
    logger.debug(
        "Loaded %s: %d dataset(s), %d relation(s)",
        path,
        len(document.datasets),
        len(document.relations),
    )
    return document


def parse_declarations_from_string(yaml_string: str) -> DeclarationDocument:
    """Validate declarations given as YAML text."""
    try:
        data = yaml.safe_load(yaml_string)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML: {e}") from e

    return _parse_document_data(_as_mapping(data))


def _parse_document_data(data: dict) -> DeclarationDocument:
    try:
        return DeclarationDocument.model_validate(data)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(part) for part in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise SchemaValidationError(
            f"Invalid declarations: {len(errors)} problem(s) found", errors
        ) from e
