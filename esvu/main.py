"""
esvu — CLI entrypoint.

Usage:
    esvu                          install / update every selected engine
    esvu install v8               install the "latest" slot of V8
    esvu install v8@11.2          install a pinned V8 next to it
    esvu uninstall v8@11.2
    esvu engines list
    esvu status
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from esvu import __version__
from esvu.core.observability.logging_config import resolve_level, setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="esvu")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: <home>/config.yml).",
)
@click.option(
    "--home",
    type=click.Path(file_okay=False),
    default=None,
    envvar="ESVU_PATH",
    help="esvu home directory (default: ~/.esvu).",
)
@click.option(
    "--engines",
    "engines_opt",
    default=None,
    help="Engines to select on first run: comma-separated ids, or 'all'.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    home: str | None,
    engines_opt: str | None,
) -> None:
    """esvu — install and keep JavaScript engines up to date."""
    from esvu.core import context
    from esvu.core.config.loader import ConfigError, load_settings

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))

    if home:
        context.set_home(Path(home))

    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["engines"] = engines_opt

    if ctx.invoked_subcommand is None:
        _update_selected(ctx)


# ── State ───────────────────────────────────────────────────────


def _selection_seed(ctx: click.Context, prompt_on_empty: bool):
    """Build the callable producing the first-run engine selection."""
    from esvu.engines.registry import get_catalog

    catalog = get_catalog()
    engines_opt: str | None = ctx.obj.get("engines")
    settings = ctx.obj["settings"]

    def seed() -> list[str]:
        if engines_opt:
            if engines_opt.strip().lower() == "all":
                return catalog.default_selection()
            return [e.strip() for e in engines_opt.split(",") if e.strip()]
        if settings.engines is not None:
            return list(settings.engines)
        if not prompt_on_empty:
            return []
        click.secho("Which engines would you like to install?", bold=True)
        return [
            installer.descriptor.id
            for installer in catalog.installers()
            if click.confirm(
                f"  {installer.descriptor.display_name}",
                default=installer.install_by_default(),
            )
        ]

    return seed


def _open_state(ctx: click.Context, prompt_on_empty: bool = False):
    """Load the installation state and arrange for it to be saved on exit."""
    from esvu.core.persistence.state_store import StateStore

    store = StateStore.get_instance()
    store.set_seed(_selection_seed(ctx, prompt_on_empty))
    store.install_exit_hooks()
    ctx.find_root().call_on_close(store.flush_quietly)
    return store.state


def _status(ctx: click.Context):
    from esvu.ui.cli.console import ConsoleStatus

    return ConsoleStatus(quiet=ctx.obj.get("quiet", False))


def _update_selected(ctx: click.Context) -> None:
    from esvu.core.services.orchestrator import update_all
    from esvu.engines.registry import get_catalog

    state = _open_state(ctx, prompt_on_empty=True)
    if not state.selected_engines:
        click.secho("No engines are configured to be installed", fg="red", err=True)
        sys.exit(1)

    catalog = get_catalog()
    names = [
        installer.descriptor.display_name if installer else engine_id
        for engine_id, installer in ((e, catalog.get(e)) for e in state.selected_engines)
    ]
    click.echo(f"Installing {', '.join(names)}")

    report = update_all(
        state, status=_status(ctx), settings=ctx.obj["settings"], catalog=catalog,
    )
    if not report.ok:
        click.secho(
            f"\n{report.failed} of {report.total} engine(s) failed", fg="red", err=True,
        )
        sys.exit(1)


# ── Single-engine commands ──────────────────────────────────────


def _check_known(identifier: str) -> None:
    from esvu.core.services.orchestrator import parse_identifier
    from esvu.engines.registry import get_installer

    name, _ = parse_identifier(identifier)
    if get_installer(name) is None:
        click.secho("Engine not recognized", fg="red", err=True)
        sys.exit(1)


def _finish(result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.argument("identifier", metavar="ENGINE[@VERSION]")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the result as JSON.")
@click.pass_context
def install(ctx: click.Context, identifier: str, as_json: bool) -> None:
    """Install an engine (optionally a pinned version)."""
    from esvu.core.services.orchestrator import install as install_engine

    _check_known(identifier)
    state = _open_state(ctx)
    result = install_engine(
        identifier, state, status=_status(ctx), settings=ctx.obj["settings"],
    )
    _finish(result, as_json)


@cli.command()
@click.argument("identifier", metavar="ENGINE[@VERSION]")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the result as JSON.")
@click.pass_context
def update(ctx: click.Context, identifier: str, as_json: bool) -> None:
    """Update an installed engine to the newest matching version."""
    from esvu.core.services.orchestrator import update as update_engine

    _check_known(identifier)
    state = _open_state(ctx)
    result = update_engine(
        identifier, state, status=_status(ctx), settings=ctx.obj["settings"],
    )
    _finish(result, as_json)


@cli.command()
@click.argument("identifier", metavar="ENGINE[@VERSION]")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the result as JSON.")
@click.pass_context
def uninstall(ctx: click.Context, identifier: str, as_json: bool) -> None:
    """Remove an installed engine slot and its entry points."""
    from esvu.core.services.orchestrator import uninstall as uninstall_engine

    state = _open_state(ctx)
    result = uninstall_engine(identifier, state, status=_status(ctx))
    if result.ok and not as_json:
        click.echo(f"Removed {result.slot}")
    _finish(result, as_json)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show selected engines and installed slots."""
    from esvu.core import context
    from esvu.engines.registry import get_catalog

    state = _open_state(ctx)

    if as_json:
        data = state.to_json_dict()
        data["home"] = str(context.get_home())
        click.echo(json.dumps(data, indent=2))
        return

    catalog = get_catalog()
    click.secho(f"\n📋 esvu {__version__}", fg="cyan", bold=True)
    click.echo(f"   Home: {context.get_home()}")
    click.echo(f"   Bin:  {context.bin_dir()}")
    click.echo()

    click.secho(f"   Selected: {len(state.selected_engines)}", fg="white", bold=True)
    for engine_id in state.selected_engines:
        marker = "" if engine_id in catalog else "  (unknown engine)"
        click.echo(f"     • {engine_id}{marker}")

    click.echo()
    click.secho(f"   Installed: {len(state.installed)}", fg="white", bold=True)
    if not state.installed:
        click.echo("     (none)")
    for key, record in sorted(state.installed.items()):
        click.echo(f"     • {key} → {record.version}")
        if record.bin_entries:
            click.echo(f"       {', '.join(record.bin_entries)}")
    click.echo()


# ── Register sub-command groups from esvu/ui/cli/ ────────────────

from esvu.ui.cli.engines import engines  # noqa: E402

cli.add_command(engines)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
