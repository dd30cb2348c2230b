"""Output formatting for validation results, compiled queries and graphs."""

import json
from typing import Any, Literal, Sequence

from ..datasource.base import QueryPlan
from ..graph.relation_graph import RelationGraph
from ..validators.base import ValidationIssue, ValidationResult


def format_validation_result(
    result: ValidationResult,
    format: Literal["text", "json"] = "text",
) -> str:
    """Format a validation result for output.

    Args:
        result: The validation result to format.
        format: Output format ("text" or "json").
    """
    if format == "json":
        return json.dumps(
            {
                "valid": result.is_valid,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
                "issues": [issue.to_dict() for issue in result.issues],
            },
            indent=2,
            default=str,
        )

    errors, warnings = result.errors, result.warnings
    lines = _issue_section("ERRORS", errors) + [""] + _issue_section("WARNINGS", warnings)

    lines.append("")
    if not result.is_valid:
        lines.append(f"Validation failed: {len(errors)} error(s), {len(warnings)} warning(s)")
    elif warnings:
        lines.append(f"Validation passed with {len(warnings)} warning(s)")
    else:
        lines.append("Validation passed")
    return "\n".join(lines)


def _issue_section(title: str, issues: list[ValidationIssue]) -> list[str]:
    lines = [f"{title}:"]
    for issue in issues:
        location = f"[{issue.location}] " if issue.location else ""
        lines.append(f"  {issue.symbol} {issue.code}: {location}{issue.message}")
    if not issues:
        lines.append("  (none)")
    return lines


def format_compiled_query(
    name: str,
    statement: str,
    params: Sequence[Any],
    plan: QueryPlan,
    format: Literal["text", "json"] = "text",
) -> str:
    """Format a compiled relation for output.

    Args:
        name: Name of the relation.
        statement: Compiled SQL statement.
        params: Positional parameters of the statement.
        plan: Query plan the statement was compiled from.
        format: Output format ("text" or "json").
    """
    if format == "json":
        data = {
            "relation": name,
            "sql": statement,
            "params": list(params),
            "sets": list(plan.sets),
            "joins": [
                {"set": j.set_expression, "condition": j.condition, "params": list(j.params)}
                for j in plan.joins
            ],
            "filters": [
                {"condition": f.condition, "params": list(f.params)} for f in plan.filters
            ],
        }
        return json.dumps(data, indent=2, default=str)

    lines = [f"RELATION: {name}", "", "SQL:", f"  {statement}", "", "PARAMS:"]
    if params:
        lines.extend(f"  {index}: {value!r}" for index, value in enumerate(params, start=1))
    else:
        lines.append("  (none)")
    return "\n".join(lines)


def format_graph(graph: RelationGraph) -> str:
    """Format the references of a relation graph as text."""
    lines = ["REFERENCES:"]
    references = list(graph.iter_references())
    if not references:
        lines.append("  (none)")

    for referencing, referenced, data in references:
        left = ", ".join(data["referencing_properties"])
        right = ", ".join(data["referenced_properties"])
        lines.append(f"  {data['relation']}: {referencing}({left}) -> {referenced}({right})")

    lines.append("")
    lines.append(
        f"{len(graph.get_entity_names())} entity(ies), {len(references)} reference(s)"
    )
    return "\n".join(lines)
