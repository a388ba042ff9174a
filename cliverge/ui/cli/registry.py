"""
CLI commands for editing the tool registry (tools.json).

Thin wrappers over ``cliverge.core.config.loader.ConfigManager``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click


@click.group()
def registry() -> None:
    """Registry: show, add or remove tool definitions."""


@registry.command()
@click.argument("tool_id")
@click.pass_context
def show(ctx: click.Context, tool_id: str) -> None:
    """Print a tool's definition as JSON."""
    from cliverge.core.errors import ToolError
    from cliverge.main import fail, get_engine

    engine = get_engine(ctx)
    try:
        tool = engine.config.get(tool_id)
    except ToolError as e:
        fail(str(e))
    click.echo(json.dumps(tool.to_json(), indent=2))


@registry.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--replace", is_flag=True, help="Overwrite an existing tool with the same id.")
@click.pass_context
def add(ctx: click.Context, path: Path, replace: bool) -> None:
    """Add a tool from a JSON file holding one tool definition."""
    from pydantic import ValidationError

    from cliverge.core.errors import ToolError
    from cliverge.core.models.tool import ToolConfig
    from cliverge.main import fail, get_engine

    engine = get_engine(ctx)
    try:
        tool = ToolConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        fail(f"Invalid tool definition {path}: {e}")

    try:
        if replace and engine.config.find(tool.id) is not None:
            engine.config.update(tool.id, tool)
        else:
            engine.config.add(tool)
        engine.config.save()
    except ToolError as e:
        fail(str(e))

    engine.manager.clear_status_cache(tool.id)
    engine.cache.invalidate(tool.id)
    click.secho(f"✅ Saved {tool.id}", fg="green")


@registry.command()
@click.argument("tool_id")
@click.pass_context
def remove(ctx: click.Context, tool_id: str) -> None:
    """Remove a tool from the registry (does not uninstall it)."""
    from cliverge.core.errors import ToolError
    from cliverge.main import fail, get_engine

    engine = get_engine(ctx)
    try:
        engine.config.remove(tool_id)
        engine.config.save()
    except ToolError as e:
        fail(str(e))

    engine.manager.clear_status_cache(tool_id)
    engine.cache.invalidate(tool_id)
    click.secho(f"✅ Removed {tool_id}", fg="green")
