"""
CLI commands for the status/help cache.

Thin wrappers over ``cliverge.core.persistence.tool_cache``.
"""

from __future__ import annotations

import json

import click


@click.group()
def cache() -> None:
    """Cache: inspect or clear cached status and help text."""


@cache.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show how many entries are cached."""
    from cliverge.main import get_engine

    engine = get_engine(ctx)
    status_count, help_count = engine.cache.stats()

    if as_json:
        click.echo(json.dumps({"status": status_count, "help": help_count}))
        return

    click.secho("🗄️  Cache:", fg="cyan", bold=True)
    click.echo(f"   Status entries: {status_count}")
    click.echo(f"   Help entries:   {help_count}")
    click.echo(f"   File: {engine.cache.path}")


@cache.command()
@click.argument("tool_id", required=False)
@click.pass_context
def clear(ctx: click.Context, tool_id: str | None) -> None:
    """Clear one tool's cache entries, or everything."""
    from cliverge.core.errors import ToolError
    from cliverge.main import fail, get_engine

    engine = get_engine(ctx)
    if tool_id:
        if engine.config.find(tool_id) is None:
            fail(f"Tool '{tool_id}' not found")
        engine.cache.invalidate(tool_id)
        engine.manager.clear_status_cache(tool_id)
    else:
        engine.cache.clear_all()
        engine.manager.clear_status_cache()

    try:
        engine.cache.save()
    except ToolError as e:
        fail(str(e))
    click.secho(f"✅ Cleared {'cache for ' + tool_id if tool_id else 'all cache entries'}", fg="green")
