"""
storykit command line.

Commands:
- components: List components discovered in one or more packages
- props: Show the property descriptors of a component
- stories: List the stories of a component
- render: Write a preview document for a component story
"""

from __future__ import annotations

import json
import logging
import platform
import sys
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from storykit._version import get_version
from storykit.core.errors import StorykitError
from storykit.core.models import ComponentDefinition, SkipDiagnostic
from storykit.core.properties import get_properties
from storykit.core.registry import ComponentRegistry
from storykit.runtime.config import PreviewConfig
from storykit.runtime.preview import PreviewService

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="storykit - component discovery, props introspection and previews.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"storykit {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """storykit CLI main callback for global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# =============================================================================
# Helpers
# =============================================================================


def _load_registry(packages: list[str]) -> ComponentRegistry:
    registry = ComponentRegistry()
    for package in packages:
        if not registry.register_package(package):
            err_console.print(f"[yellow]Warning:[/yellow] could not import {package}")
    return registry


def _find_component(registry: ComponentRegistry, name: str) -> ComponentDefinition:
    component = registry.find_component(name)
    if component is None:
        err_console.print(f"[red]Component not found:[/red] {name}")
        raise typer.Exit(code=1)
    return component


def _print_diagnostics(diagnostics: list[SkipDiagnostic]) -> None:
    for diagnostic in diagnostics:
        err_console.print(f"[yellow]skipped[/yellow] {diagnostic}")


# =============================================================================
# Commands
# =============================================================================


@app.command("components")
def components_command(
    packages: list[str] = typer.Argument(..., help="Component packages or modules to register"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """
    List discovered components, ordered by category then name.

    Examples:
        storykit components myapp.components
        storykit components myapp.components --json
    """
    registry = _load_registry(packages)
    result = registry.discover_components()

    if as_json:
        typer.echo(json.dumps([c.to_dict() for c in result], indent=2))
    else:
        table = Table(box=box.SIMPLE, title="Components")
        table.add_column("Name", style="bold cyan")
        table.add_column("Category")
        table.add_column("Template")
        table.add_column("Props")
        for component in result:
            props = component.model_type.__name__ if component.model_type else "-"
            table.add_row(component.name, component.category, component.path, props)
        console.print(table)

    _print_diagnostics(result.diagnostics)


@app.command("props")
def props_command(
    package: str = typer.Argument(..., help="Component package or module to register"),
    component_name: str = typer.Argument(..., help="Component name"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """
    Show the editable properties of a component.

    Examples:
        storykit props myapp.components Button
    """
    registry = _load_registry([package])
    component = _find_component(registry, component_name)
    descriptors = get_properties(component.model_type)

    if as_json:
        typer.echo(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return

    table = Table(box=box.SIMPLE, title=f"{component.name} props")
    table.add_column("Name", style="bold cyan")
    table.add_column("Display name")
    table.add_column("Kind")
    table.add_column("Default")
    table.add_column("Choices")
    for d in descriptors:
        row = d.to_dict()
        choices = ", ".join(d.enum_choices) if d.enum_choices else ""
        table.add_row(d.name, d.display_name, row["kind"], repr(row["default_value"]), choices)
    console.print(table)


@app.command("stories")
def stories_command(
    package: str = typer.Argument(..., help="Component package or module to register"),
    component_name: str = typer.Argument(..., help="Component name"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """
    List the stories of a component.

    Examples:
        storykit stories myapp.components Button
    """
    registry = _load_registry([package])
    stories = registry.discover_stories_for_component(component_name)

    if as_json:
        typer.echo(json.dumps([s.model_dump(mode="json") for s in stories], indent=2, default=str))
        return

    if not stories:
        typer.echo(f"No stories for {component_name}")
        return

    table = Table(box=box.SIMPLE, title=f"{component_name} stories")
    table.add_column("Name", style="bold cyan")
    table.add_column("Display name")
    table.add_column("Description")
    table.add_column("Presets", justify="right")
    for story in stories:
        table.add_row(story.name, story.display_name, story.description, str(len(story.properties)))
    console.print(table)


@app.command("render")
def render_command(
    package: str = typer.Argument(..., help="Component package or module to register"),
    component_name: str = typer.Argument(..., help="Component name"),
    story: str = typer.Option(None, "--story", "-s", help="Story name (default: configured default story)"),
    props_json: str = typer.Option(None, "--props-json", "-p", help="Props as a JSON object"),
    templates: list[Path] = typer.Option(None, "--templates", "-t", help="Template search directory"),
    library: str = typer.Option(None, "--library", "-l", help="Component library for static assets"),
    output: Path = typer.Option(None, "--output", "-o", help="Write HTML to this file"),
) -> None:
    """
    Render a preview document for a component.

    Examples:
        storykit render myapp.components Button -t templates
        storykit render myapp.components Button --story danger -o button.html
        storykit render myapp.components Button -p '{"text": "Save"}'
    """
    config = PreviewConfig.from_env()
    if templates:
        config.template_dirs = list(templates)
    if library:
        config.component_library = library

    registry = _load_registry([package])
    service = PreviewService(registry=registry, config=config)

    try:
        result = service.render(component_name, story, props_json)
    except StorykitError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if output:
        output.write_text(result.html, encoding="utf-8")
        typer.echo(f"Wrote {output}")
    else:
        typer.echo(result.html)

    if not result.ok:
        err_console.print(f"[red]Preview failed:[/red] {result.error}")
        raise typer.Exit(code=1)


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()
