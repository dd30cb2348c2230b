"""Command-line interface for waypoint."""

import importlib
import sys
from typing import Any, Mapping

import click

from .config import get_settings
from .datasource.sql import SqlConnection
from .errors import WaypointError
from .graph.builder import build_graph
from .output.formatter import format_compiled_query, format_graph, format_validation_result
from .schema.errors import SchemaLoadError, SchemaValidationError
from .schema.loader import parse_declarations
from .schema.models import DeclarationDocument
from .schema.resolver import resolve_relation
from .utils.logger import get_logger, setup_logging
from .validators.chain_integrity import check_compilation
from .validators.runner import build_catalog, run_validators

logger = get_logger(__name__)


def _load_entities(ctx: click.Context, param: click.Parameter, value: str | None) -> Mapping[str, Any]:
    """Import a mapping of declared entity types from module:attribute."""
    if not value:
        return {}

    module_name, _, attribute = value.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter("expected module:attribute")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}") from e

    entities = getattr(module, attribute, None)
    if not isinstance(entities, Mapping):
        raise click.BadParameter(f"{value} is not a mapping of entity types")
    return entities


def _parse(declaration_file: str) -> DeclarationDocument:
    """Parse a declaration file, exiting with code 2 on failure."""
    try:
        return parse_declarations(declaration_file)
    except SchemaLoadError as e:
        click.echo(f"Error loading file: {e}", err=True)
        sys.exit(2)
    except SchemaValidationError as e:
        click.echo(f"Schema validation error: {e}", err=True)
        for err in e.errors:
            click.echo(f"  - {err['loc']}: {err['msg']}", err=True)
        sys.exit(2)


@click.group()
@click.version_option()
@click.option(
    "--entities",
    callback=_load_entities,
    help="Declared entity types as module:attribute naming a mapping",
)
@click.option(
    "--database-url",
    envvar="WAYPOINT_DATABASE_URL",
    default=None,
    help="Database URL used for compiling (defaults to WAYPOINT_DATABASE_URL env var)",
)
@click.option("--log-level", default=None, help="Log level (defaults to WAYPOINT_LOG_LEVEL)")
@click.pass_context
def main(ctx: click.Context, entities: Mapping[str, Any], database_url: str | None, log_level: str | None):
    """waypoint: compile declared model relations into queries."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["entities"] = entities
    ctx.obj["database_url"] = database_url or get_settings().database_url


@main.command()
@click.argument("declaration_file", type=click.Path(exists=True))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors",
)
@click.pass_context
def validate(ctx: click.Context, declaration_file: str, output_format: str, strict: bool):
    """Validate a declaration file.

    DECLARATION_FILE is the path to a YAML declaration file.

    Exit codes:
      0 - Validation passed
      1 - Validation failed (errors found)
      2 - File or schema error
    """
    result = run_validators(_parse(declaration_file), ctx.obj["entities"])

    logger.debug(
        "Validated %s: %d error(s), %d warning(s)",
        declaration_file,
        len(result.errors),
        len(result.warnings),
    )

    output = format_validation_result(result, output_format)  # type: ignore
    click.echo(output)

    sys.exit(1 if result.has_errors or (strict and result.has_warnings) else 0)


@main.command("compile")
@click.argument("declaration_file", type=click.Path(exists=True))
@click.argument("relation_name")
@click.option(
    "--bind",
    "bound_target_id",
    multiple=True,
    help="Target id to limit the query to; repeat for composite ids",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def compile_cmd(
    ctx: click.Context,
    declaration_file: str,
    relation_name: str,
    bound_target_id: tuple[str, ...],
    output_format: str,
):
    """Compile a declared relation into SQL.

    DECLARATION_FILE is the path to a YAML declaration file, RELATION_NAME
    names one of its relations.

    Exit codes:
      0 - Success
      1 - Relation can't be compiled
      2 - File, schema or lookup error
    """
    document = _parse(declaration_file)

    spec = document.get_relation(relation_name)
    if spec is None:
        click.echo(f"Unknown relation: {relation_name}", err=True)
        sys.exit(2)

    catalog, result = build_catalog(document, ctx.obj["entities"])
    try:
        relation = resolve_relation(spec, catalog)
        connection = SqlConnection(ctx.obj["database_url"])
        try:
            bind = None
            if bound_target_id:
                bind = bound_target_id[0] if len(bound_target_id) == 1 else list(bound_target_id)
            query = relation.compile_query(connection, bound_target_id=bind)
        finally:
            connection.dispose()
    except WaypointError as e:
        for issue in result.errors:
            click.echo(f"  - {issue}", err=True)
        click.echo(f"Compile error: {e}", err=True)
        sys.exit(1)

    plan = query.plan()
    click.echo(format_compiled_query(relation_name, str(query), plan.parameters, plan, output_format))  # type: ignore
    sys.exit(0)


@main.command()
@click.argument("declaration_file", type=click.Path(exists=True))
@click.pass_context
def graph(ctx: click.Context, declaration_file: str):
    """List the references of all relations in a declaration file.

    Exit codes:
      0 - Success
      1 - Some relation can't be compiled
      2 - File or schema error
    """
    document = _parse(declaration_file)

    catalog, result = build_catalog(document, ctx.obj["entities"])
    relations, compiled = check_compilation(document, catalog)
    result.merge(compiled)

    datasets = [catalog.get(name) for name in document.datasets if name in catalog]
    click.echo(format_graph(build_graph(relations, datasets)))

    for issue in result.errors:
        click.echo(f"  - {issue}", err=True)
    sys.exit(1 if result.has_errors else 0)


if __name__ == "__main__":
    main()
