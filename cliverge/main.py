"""
CLIverge: CLI entrypoint.

Usage:
    cliverge --help
    cliverge list
    cliverge status claude-code
    cliverge install gemini-cli
    cliverge exec claude-code -- --print "hello"

Exit codes: 0 on success, 1 for an unknown tool or any failed
operation (message on stderr).  ``exec`` exits with the wrapped tool's
own exit code.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from cliverge import __version__
from cliverge.core.observability.logging_config import cli_level, setup_logging


def get_engine(ctx: click.Context):
    """Open (once per invocation) the engine for the selected config dir."""
    root = ctx.find_root()
    engine = root.obj.get("engine")
    if engine is None:
        from cliverge.core.engine import open_engine
        from cliverge.core.errors import ToolError

        kwargs = {}
        if root.obj.get("runner") is not None:
            kwargs["runner"] = root.obj["runner"]
        try:
            engine = open_engine(root.obj.get("config_dir"), **kwargs)
        except ToolError as e:
            fail(str(e))
        root.obj["engine"] = engine
        root.call_on_close(engine.close)
    return engine


def fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="cliverge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config-dir",
    "config_dir",
    type=click.Path(file_okay=False),
    default=None,
    envvar="CLIVERGE_CONFIG_DIR",
    help="Config directory (default: ~/.cliverge).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_dir: str | None,
) -> None:
    """CLIverge: install, update and run AI command-line tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug

    from cliverge.core.context import get_config_dir, set_config_dir

    if config_dir:
        set_config_dir(Path(config_dir))
    ctx.obj["config_dir"] = get_config_dir()

    setup_logging(cli_level(debug=debug, verbose=verbose, quiet=quiet))


# ── Observe ─────────────────────────────────────────────────────


@cli.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List configured tools with their last known status."""
    engine = get_engine(ctx)
    infos = engine.manager.list_tools()

    if as_json:
        click.echo(json.dumps([
            {
                "id": info.id,
                "name": info.tool.name,
                "command": info.tool.command,
                "status": info.status.model_dump(mode="json", exclude_none=True),
            }
            for info in infos
        ], indent=2))
        return

    if not infos:
        click.secho("⚠️  No tools configured", fg="yellow")
        return

    click.secho(f"🧰 Tools ({len(infos)}):", fg="cyan", bold=True)
    for info in infos:
        click.echo(f"   • {info.id:<16} {info.tool.name:<22} {info.status.label()}")


@cli.command()
@click.argument("tool_id", required=False)
@click.option("--refresh", is_flag=True, help="Ignore cached status and re-check.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, tool_id: str | None, refresh: bool, as_json: bool) -> None:
    """Show install status for one tool, or all of them."""
    from cliverge.core.errors import ToolError

    engine = get_engine(ctx)
    manager = engine.manager
    ids = [tool_id] if tool_id else engine.config.ids()

    results = {}
    for tid in ids:
        try:
            if refresh:
                manager.clear_status_cache(tid)
                engine.cache.invalidate_status(tid)
            results[tid] = manager.get_status(tid)
        except ToolError as e:
            fail(str(e))

    if as_json:
        click.echo(json.dumps(
            {tid: s.model_dump(mode="json", exclude_none=True) for tid, s in results.items()},
            indent=2,
        ))
        return

    for tid, st in results.items():
        if st.is_installed:
            click.secho(f"   ✓ {tid}", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {tid}", fg="red", nl=False)
        click.echo(f"  {st.label()}")


@cli.command()
@click.argument("tool_id")
@click.option(
    "--strategy", "-s",
    type=click.Choice(["auto", "self-check", "package-manager", "local-database"]),
    default="auto",
    show_default=True,
    help="How to find the latest version.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def versions(ctx: click.Context, tool_id: str, strategy: str, as_json: bool) -> None:
    """Compare the installed version with the latest available."""
    from cliverge.core.errors import ToolError
    from cliverge.core.models.status import VersionCheckStrategy

    engine = get_engine(ctx)
    try:
        info = engine.manager.check_version_updates(tool_id, VersionCheckStrategy(strategy))
    except ToolError as e:
        fail(str(e))

    if as_json:
        click.echo(json.dumps(info.model_dump(mode="json", by_alias=True), indent=2))
        return

    click.echo(f"   Current: {info.current or 'not installed'}")
    click.echo(f"   Latest:  {info.latest or 'unknown'}  ({info.check_method})")
    if info.update_available:
        click.secho("   ⬆️  Update available", fg="yellow")
    elif engine.version_db_is_stale() and info.check_method == "local-database":
        click.secho("   ⚠️  Local version database is stale", fg="yellow")


@cli.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Re-check every tool in parallel and show progress."""
    from cliverge.core.models.progress import ProgressPhase

    engine = get_engine(ctx)
    quiet = ctx.obj.get("quiet", False)
    failed = 0

    with engine.coordinator() as coordinator:
        coordinator.refresh_all()
        for event in coordinator.iter_events():
            if event.phase == ProgressPhase.COMPLETED:
                status = engine.manager.get_cached_status(event.tool_id)
                label = status.label() if status else event.message
                click.secho(f"   ✓ {event.tool_id}", fg="green", nl=False)
                click.echo(f"  {label}")
            elif event.phase == ProgressPhase.FAILED:
                failed += 1
                click.secho(f"   ✗ {event.tool_id}", fg="red", nl=False)
                click.echo(f"  {event.message}")
            elif not quiet and event.phase == ProgressPhase.IN_PROGRESS:
                click.echo(f"   … {event.tool_id}: {event.message}", err=True)

    if failed:
        click.secho(f"⚠️  {failed} tool(s) could not be checked", fg="yellow")


@cli.command("tool-help")
@click.argument("tool_id")
@click.pass_context
def tool_help(ctx: click.Context, tool_id: str) -> None:
    """Show a tool's own help text."""
    from cliverge.core.errors import ToolError

    engine = get_engine(ctx)
    try:
        text = engine.manager.get_help(tool_id)
    except ToolError as e:
        fail(str(e))
    click.echo(text, nl=not text.endswith("\n"))


# ── Act ─────────────────────────────────────────────────────────


def _run_lifecycle(ctx: click.Context, verb: str, tool_id: str, **kwargs) -> None:
    from cliverge.core.errors import ToolError

    engine = get_engine(ctx)
    manager = engine.manager
    quiet = ctx.obj.get("quiet", False)

    tool = engine.config.find(tool_id)
    if tool is None:
        fail(f"Tool '{tool_id}' not found")

    if not quiet:
        click.secho(f"🔧 {verb.capitalize()} {tool.name}...", fg="cyan")
    try:
        result = getattr(manager, verb)(tool_id, **kwargs)
    except ToolError as e:
        fail(str(e))

    if result.changed:
        click.secho(f"✅ {result.message}", fg="green")
    else:
        click.secho(f"✓ {result.message}", fg="yellow")


@cli.command()
@click.argument("tool_id")
@click.pass_context
def install(ctx: click.Context, tool_id: str) -> None:
    """Install a tool."""
    _run_lifecycle(ctx, "install", tool_id)


@cli.command()
@click.argument("tool_id")
@click.pass_context
def uninstall(ctx: click.Context, tool_id: str) -> None:
    """Uninstall a tool."""
    _run_lifecycle(ctx, "uninstall", tool_id)


@cli.command()
@click.argument("tool_id")
@click.option("--version", "target_version", default=None, help="Install this exact version.")
@click.pass_context
def update(ctx: click.Context, tool_id: str, target_version: str | None) -> None:
    """Update a tool (to the latest version by default)."""
    _run_lifecycle(ctx, "update", tool_id, version=target_version)


@cli.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("tool_id")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_cmd(ctx: click.Context, tool_id: str, args: tuple[str, ...]) -> None:
    """Run a tool with ARGS and pass through its output and exit code."""
    from cliverge.core.errors import ToolError

    engine = get_engine(ctx)
    try:
        result = engine.manager.execute(tool_id, list(args))
    except ToolError as e:
        fail(str(e))

    if result.stdout:
        click.echo(result.stdout, nl=False)
    if result.stderr:
        click.echo(result.stderr, nl=False, err=True)
    sys.exit(result.returncode)


# ── Sub-groups ──────────────────────────────────────────────────

from cliverge.ui.cli.cache import cache  # noqa: E402
from cliverge.ui.cli.registry import registry  # noqa: E402

cli.add_command(cache)
cli.add_command(registry)


if __name__ == "__main__":
    cli()
