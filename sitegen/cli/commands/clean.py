"""Remove build output and the incremental cache."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

import click

from sitegen.errors import SiteGenError

if TYPE_CHECKING:
    from sitegen.cli.types import AppEnv


@click.command("clean")
@click.option("--keep-cache", is_flag=True, help="Keep the .cache manifest directory")
@click.pass_obj
def clean_command(env: AppEnv, keep_cache: bool) -> None:
    """Delete the output directory and the build cache."""
    from sitegen.site import SiteBuilder

    try:
        builder = SiteBuilder(env.load_config(), env.site_dir)
    except SiteGenError as exc:
        raise click.ClickException(str(exc)) from exc

    targets = [builder.paths.output]
    if not keep_cache:
        targets.append(builder.paths.cache)
    for target in targets:
        if target.exists():
            shutil.rmtree(target)
            click.echo(f"Removed {target}")
        else:
            click.echo(f"Nothing to remove at {target}")


__all__ = ["clean_command"]
