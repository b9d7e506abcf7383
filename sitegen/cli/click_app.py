"""CLI entrypoint."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from sitegen.cli.commands.build import build_command
from sitegen.cli.commands.clean import clean_command
from sitegen.cli.commands.plugins import plugins_command
from sitegen.cli.types import AppEnv
from sitegen.lib.log import configure_logging
from sitegen.version import __version__


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--site",
    "site_dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=".",
    show_default=True,
    help="Site directory",
)
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file (default: site.yaml in the site directory)")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option("--log-format", type=click.Choice(["text", "json"]), default="text", show_default=True, help="Log renderer")
@click.version_option(__version__, prog_name="sitegen")
@click.pass_context
def cli(ctx: click.Context, site_dir: Path, config_path: Optional[Path], verbose: bool, log_format: str) -> None:
    """Multi-language static site generator."""
    env = AppEnv(site_dir=site_dir.resolve(), config_path=config_path, verbose=verbose, json_logs=log_format == "json")
    configure_logging("debug" if verbose else "info", json_logs=env.json_logs)
    ctx.obj = env


cli.add_command(build_command)
cli.add_command(clean_command)
cli.add_command(plugins_command)


__all__ = ["cli"]
