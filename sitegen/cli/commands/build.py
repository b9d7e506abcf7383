"""Site build command."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import click

from sitegen.config import BuildOverrides
from sitegen.errors import SiteGenError
from sitegen.lib.log import configure_logging, get_logger

if TYPE_CHECKING:
    from sitegen.cli.types import AppEnv

logger = get_logger(__name__)


@click.command("build")
@click.option("--output", "-o", default=None, help="Output directory (overrides build.output)")
@click.option("--base-url", default=None, help="Base URL path, e.g. /docs (overrides site.baseUrl)")
@click.option("--site-url", default=None, help="Absolute site URL (overrides site.url)")
@click.option("--clean/--no-clean", default=None, help="Delete the output directory first")
@click.option("--draft/--no-draft", default=None, help="Include draft content (overrides build.draft)")
@click.option("--ci", is_flag=True, help="CI mode: only warnings and errors are logged")
@click.option(
    "--incremental/--no-incremental",
    default=True,
    show_default=True,
    help="Skip pages whose content, route and templates are unchanged",
)
@click.option("--cache-dir", type=click.Path(path_type=Path), default=None, help="Manifest directory (default: .cache)")
@click.option("--metrics", "metrics_path", type=click.Path(path_type=Path), default=None, help="Write a JSON build report")
@click.pass_obj
def build_command(
    env: AppEnv,
    output: Optional[str],
    base_url: Optional[str],
    site_url: Optional[str],
    clean: Optional[bool],
    draft: Optional[bool],
    ci: bool,
    incremental: bool,
    cache_dir: Optional[Path],
    metrics_path: Optional[Path],
) -> None:
    """Build the site.

    \b
    Examples:
        sitegen build                          # site.yaml in the current directory
        sitegen --site ./blog build --clean    # fresh build of another site
        sitegen build --no-incremental         # render every page
        sitegen build --ci --metrics out.json  # quiet build with a report
    """
    from sitegen.site import SiteBuilder

    try:
        config = env.load_config()
        overrides = BuildOverrides(
            output=output,
            base_url=base_url,
            site_url=site_url,
            clean=clean,
            draft=draft,
            is_ci=ci,
            incremental=incremental,
            cache_dir=str(cache_dir) if cache_dir else None,
            metrics_path=str(metrics_path) if metrics_path else None,
        )
        builder = SiteBuilder(config, env.site_dir, overrides)
        level = "debug" if env.verbose and not ci else builder.config.logging.level
        configure_logging(level, json_logs=env.json_logs)
        report = builder.build()
    except SiteGenError as exc:
        logger.error("Build failed: %s", exc)
        raise click.ClickException(str(exc)) from exc

    for variant in report.variants:
        click.echo(
            f"[{variant.language}] rendered={variant.rendered} skipped={variant.skipped} "
            f"derived={variant.derived} lists={variant.lists} -> {variant.output_dir}"
        )
    click.echo(f"Output: {report.output_dir}")


__all__ = ["build_command"]
