"""Validation issues and the result collecting them."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity level of a validation issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


_SYMBOLS = {Severity.ERROR: "✘", Severity.WARNING: "⚠", Severity.INFO: "ℹ"}


@dataclass
class ValidationIssue:
    """A problem found in a declaration document.

    Issues are located by the relation declaring the problem and the entity
    or waypoint it concerns; either may be missing, e.g. for datasets no
    relation uses.
    """

    code: str
    message: str
    severity: Severity
    relation: str | None = None
    entity: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> str:
        """Get ``relation.entity`` or whichever part is known."""
        return ".".join(part for part in (self.relation, self.entity) if part)

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self.severity]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "relation": self.relation,
            "entity": self.entity,
            "details": self.details,
        }

    def __str__(self) -> str:
        location = f" [{self.location}]" if self.location else ""
        return f"{self.severity.value.upper()}: {self.code}{location} - {self.message}"


@dataclass
class ValidationResult:
    """Issues collected by one or more validators."""

    issues: list[ValidationIssue] = field(default_factory=list)

    def _with(self, severity: Severity) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == severity]

    @property
    def errors(self) -> list[ValidationIssue]:
        return self._with(Severity.ERROR)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return self._with(Severity.WARNING)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == Severity.ERROR for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == Severity.WARNING for i in self.issues)

    @property
    def is_valid(self) -> bool:
        """Check if the document is usable, i.e. has no errors."""
        return not self.has_errors

    def codes(self) -> set[str]:
        return {i.code for i in self.issues}

    def for_relation(self, name: str) -> list[ValidationIssue]:
        """Get issues of a single relation."""
        return [i for i in self.issues if i.relation == name]

    def failing_relations(self) -> set[str]:
        """Get names of relations with errors.

        Later validators skip these to avoid reporting a broken relation
        once per check.
        """
        return {i.relation for i in self.errors if i.relation}

    def add_issue(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)

    def add_error(
        self,
        code: str,
        message: str,
        relation: str | None = None,
        entity: str | None = None,
        **details: Any,
    ) -> None:
        self.add_issue(
            ValidationIssue(code, message, Severity.ERROR, relation, entity, details)
        )

    def add_warning(
        self,
        code: str,
        message: str,
        relation: str | None = None,
        entity: str | None = None,
        **details: Any,
    ) -> None:
        self.add_issue(
            ValidationIssue(code, message, Severity.WARNING, relation, entity, details)
        )

    def merge(self, other: "ValidationResult") -> None:
        """Append the issues of another result."""
        self.issues.extend(other.issues)
