"""
immortal command-line interface.

Commands:

- new: write a starter project file
- validate: report validator findings for a project
- generate: compile a project into a Rust crate
- components: list the built-in component catalog
- info: summarise a project's nodes, edges and groups

Generator, auth and validation options are read from an ``immortal.toml``
beside the project file; command-line options override it.
"""

from __future__ import annotations

import json
import logging
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from immortal._version import get_version
from immortal.codegen import CodeGenerator, DatabaseBackend, Framework
from immortal.components import ComponentRegistry
from immortal.core.errors import ConfigError, EngineError, ValidationFailedError
from immortal.core.ir import ComponentCategory, Node, ProjectGraph
from immortal.core.manifest import load_manifest
from immortal.core.serialization import PROJECT_EXTENSION, load_project, save_project
from immortal.core.validator import Severity, ValidationIssue

app = typer.Typer(
    help="immortal: validate node-and-wire projects and generate Rust backends.",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()

_SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"immortal {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors"),
) -> None:
    """immortal: validate node-and-wire projects and generate Rust backends."""
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# =============================================================================
# Helpers
# =============================================================================


def _load(project: Path) -> ProjectGraph:
    try:
        return load_project(project)
    except EngineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


def _issue_table(issues: list[ValidationIssue], graph: ProjectGraph) -> Table:
    table = Table(title="Validation Findings")
    table.add_column("Severity")
    table.add_column("Kind")
    table.add_column("Location")
    table.add_column("Message")
    for issue in issues:
        style = _SEVERITY_STYLES[issue.severity]
        location = ""
        if issue.node_id:
            node = graph.get_node(issue.node_id)
            location = f"node {node.name}" if node is not None else f"node {issue.node_id}"
        elif issue.edge_id:
            location = f"edge {issue.edge_id[:8]}"
        table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            issue.kind.display_name,
            location,
            issue.message,
        )
    return table


def _parse_choice(value: str | None, enum_type: type, label: str):
    if value is None:
        return None
    try:
        return enum_type(value.lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        typer.echo(f"Error: Unknown {label} '{value}' (expected one of: {choices})", err=True)
        raise typer.Exit(code=1) from None


# =============================================================================
# Commands
# =============================================================================


@app.command()
def new(
    name: str = typer.Argument(..., help="Project name"),
    entities: list[str] = typer.Option(  # noqa: B008
        [],
        "--entity",
        "-e",
        help="Entity to add (repeatable)",
    ),
    output: Path | None = typer.Option(  # noqa: B008
        None,
        "--output",
        "-o",
        help=f"Project file to write (default: <name>{PROJECT_EXTENSION})",
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """
    Create a starter project file.

    Examples:
        immortal new blog                          # Empty project
        immortal new blog -e Post -e Comment       # With two entities
    """
    path = output or Path(f"{name}{PROJECT_EXTENSION}")
    if path.exists() and not force:
        typer.echo(f"Error: {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)

    graph = ProjectGraph.new(name)
    for index, entity in enumerate(entities):
        graph.add_node(Node.new_entity(entity).with_position(100.0 + 250.0 * index, 100.0))

    save_project(graph, path)
    console.print(f"[green]Created[/green] {path} ({len(entities)} entities)")


@app.command()
def validate(
    project: Path = typer.Argument(..., help="Project file"),  # noqa: B008
    min_severity: str | None = typer.Option(
        None,
        "--min-severity",
        "-s",
        help="Least severe finding to show: info, warning, error",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print findings as JSON"),
) -> None:
    """
    Validate a project and report findings.

    Exits with status 1 when any finding is an error.
    """
    graph = _load(project)
    try:
        validator = load_manifest(project.resolve().parent).validator()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    severity = _parse_choice(min_severity, Severity, "severity")
    if severity is not None:
        validator.with_min_severity(severity)

    result = validator.validate(graph)

    if as_json:
        payload = [
            {
                "severity": issue.severity.value,
                "kind": issue.kind.value,
                "message": issue.message,
                "node_id": issue.node_id,
                "edge_id": issue.edge_id,
            }
            for issue in result.issues
        ]
        typer.echo(json.dumps(payload, indent=2))
    elif result.issues:
        console.print(_issue_table(result.issues, graph))
        console.print(
            f"{len(result.errors)} error(s), {len(result.warnings)} warning(s), "
            f"{len(result.infos)} info"
        )
    else:
        console.print(f"[green]✓[/green] '{graph.meta.name}' is valid")

    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command()
def generate(
    project: Path = typer.Argument(..., help="Project file"),  # noqa: B008
    output: Path | None = typer.Option(  # noqa: B008
        None,
        "--output",
        "-o",
        help="Output directory (overrides immortal.toml and the project)",
    ),
    framework: str | None = typer.Option(
        None, "--framework", help="Web framework: axum, actix, custom"
    ),
    database: str | None = typer.Option(
        None, "--database", help="Database backend: postgres, sqlite, mysql"
    ),
    no_migrations: bool = typer.Option(
        False, "--no-migrations", help="Skip SQL migration files"
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="List the files that would be generated without writing them",
    ),
) -> None:
    """
    Generate a Rust project from a project file.

    Examples:
        immortal generate blog.imm.json                     # Axum + Postgres
        immortal generate blog.imm.json --framework actix   # Actix-web
        immortal generate blog.imm.json --dry-run           # Preview files
    """
    graph = _load(project)
    try:
        manifest = load_manifest(project.resolve().parent)
        config = manifest.generator_config()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    chosen_framework = _parse_choice(framework, Framework, "framework")
    if chosen_framework is not None:
        config = config.with_framework(chosen_framework)
    chosen_database = _parse_choice(database, DatabaseBackend, "database")
    if chosen_database is not None:
        config = config.with_database(chosen_database)
    if no_migrations:
        config = config.without_migrations()

    # Reported severity does not affect blocking: only errors abort
    generator = CodeGenerator(config, manifest.auth_config(), manifest.validator())
    try:
        generated = generator.generate(graph)
    except ValidationFailedError as e:
        console.print(_issue_table(e.issues, graph))
        typer.echo(f"Error: generation aborted, {len(e.issues)} validation error(s)", err=True)
        raise typer.Exit(code=1) from e
    except EngineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    for warning in generated.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if output is not None:
        target = output
    elif manifest.generator.output_dir is not None:
        target = project.resolve().parent / config.output_dir
    else:
        target = project.resolve().parent / (graph.meta.output_dir or config.output_dir)

    if dry_run:
        console.print(f"[bold]Would generate {generated.file_count()} files in {target}:[/bold]")
        for path in generated.file_paths():
            console.print(f"  {path}")
        return

    try:
        written = generated.write_to_disk(target)
    except EngineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    console.print(f"[green]✓[/green] Generated {len(written)} files in {target}")


@app.command()
def components(
    category: str | None = typer.Option(
        None, "--category", "-c", help="Only show one category (auth, data, api ...)"
    ),
    search: str | None = typer.Option(None, "--search", "-s", help="Filter by keyword"),
) -> None:
    """List the built-in component catalog."""
    registry = ComponentRegistry.with_builtins()
    definitions = registry.all()
    if category is not None:
        chosen = _parse_choice(category, ComponentCategory, "category")
        definitions = registry.by_category(chosen)
    if search:
        definitions = [d for d in definitions if d.matches(search)]

    if not definitions:
        console.print("[dim]No matching components[/dim]")
        return

    table = Table(title="Components")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Description")
    for definition in definitions:
        table.add_row(
            definition.id,
            definition.name,
            definition.category.display_name,
            definition.description,
        )
    console.print(table)


@app.command()
def info(
    project: Path = typer.Argument(..., help="Project file"),  # noqa: B008
) -> None:
    """Summarise a project's nodes, edges and groups."""
    graph = _load(project)
    meta = graph.meta

    console.print(f"[bold]{meta.name}[/bold] v{meta.version}")
    if meta.description:
        console.print(meta.description)
    console.print(
        f"{graph.node_count()} nodes, {graph.edge_count()} edges, {len(graph.groups)} groups"
    )

    if graph.nodes:
        table = Table(title="Nodes")
        table.add_column("Name")
        table.add_column("Type", style="cyan")
        table.add_column("Fields", justify="right")
        table.add_column("Group")
        for node in graph.nodes.values():
            group = graph.get_group(node.group_id) if node.group_id else None
            table.add_row(
                node.name,
                node.component_type,
                str(len(node.fields)),
                group.name if group is not None else "",
            )
        console.print(table)

    enabled = meta.enabled_domains()
    if enabled:
        console.print(f"Domains: {', '.join(enabled)}")


def main(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main()
