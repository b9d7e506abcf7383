"""Per-variant ``sitemap.xml``."""

from __future__ import annotations

from sitegen.plugins.base import BuildContext, SitePlugin
from sitegen.site.artifacts import sitemap_entries, sitemap_routes, write_sitemap


class SitemapPlugin(SitePlugin):
    """Writes the variant sitemap unless a merged one is built across variants."""

    name = "sitemap"
    version = "2.0.0"

    def after_build(self, context: BuildContext) -> None:
        site = context.config.site
        if context.languages_configured and site.sitemap_mode == "merged":
            return
        if not site.url:
            return
        routes = sitemap_routes(context.routed, context.derived_routes)
        write_sitemap(context.output_dir, sitemap_entries(site.url, context.base_url, routes))


__all__ = ["SitemapPlugin"]
