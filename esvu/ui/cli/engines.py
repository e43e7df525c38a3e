"""
CLI commands for the engine catalog.

Thin wrappers over ``esvu.engines.registry``.
"""

from __future__ import annotations

import json

import click


@click.group()
def engines() -> None:
    """Engines — what esvu can install on this machine."""


@engines.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def engines_list(as_json: bool) -> None:
    """List every known engine, its platform support, and installed slots."""
    from esvu.core.persistence.state_store import StateStore
    from esvu.core.services.platform_detect import current_platform
    from esvu.engines.registry import get_catalog

    state = StateStore.get_instance().state
    rows = get_catalog().engine_status()
    for row in rows:
        row["installed"] = {
            key: state.installed[key].version for key in state.slots_for(row["id"])
        }
        row["selected"] = row["id"] in state.selected_engines

    if as_json:
        click.echo(json.dumps({"platform": current_platform(), "engines": rows}, indent=2))
        return

    click.secho(f"🧩 Engines for {current_platform()}:", fg="cyan", bold=True)
    for row in rows:
        icon = "✅" if row["supported"] else "⛔"
        name = f"{row['name']} ({row['id']})"
        extras = []
        if row["supported"] and not row["default"]:
            extras.append("on request only")
        if row["requirements"]:
            extras.append(f"needs {', '.join(row['requirements'])}")
        if row["selected"]:
            extras.append("selected")
        suffix = f"  [{'; '.join(extras)}]" if extras else ""
        click.echo(f"   {icon} {name}{suffix}")
        for key, version in row["installed"].items():
            click.echo(f"      • {key} → {version}")
    click.echo()
