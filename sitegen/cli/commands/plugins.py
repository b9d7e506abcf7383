"""List discovered plugins."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from sitegen.errors import SiteGenError
from sitegen.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from sitegen.cli.types import AppEnv


@click.command("plugins")
@click.pass_obj
def plugins_command(env: AppEnv) -> None:
    """Show plugins in execution order with their source and hooks."""
    try:
        site = env.load_config().site
    except SiteGenError as exc:
        raise click.ClickException(str(exc)) from exc

    registrations = PluginRegistry.for_site(env.site_dir).registrations()
    if not registrations:
        click.echo("No plugins found.")
        return
    for registration in registrations:
        state = "enabled" if site.plugin_enabled(registration.name) else "disabled"
        click.echo(
            f"{registration.identity:<28} {registration.source:<13} "
            f"{registration.capabilities.describe():<26} {state}"
        )


__all__ = ["plugins_command"]
