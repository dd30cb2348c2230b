"""Validators for structural validation of declaration documents."""

from .base import Severity, ValidationIssue, ValidationResult
from .chain_integrity import check_circular_waypoints, check_compilation, check_reference_widths
from .reference_integrity import check_reference_integrity
from .unused_datasets import check_unused_datasets
from .runner import build_catalog, run_validators, validate_declaration_file

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "check_circular_waypoints",
    "check_compilation",
    "check_reference_widths",
    "check_reference_integrity",
    "check_unused_datasets",
    "build_catalog",
    "run_validators",
    "validate_declaration_file",
]
