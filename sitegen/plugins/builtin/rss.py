"""Per-variant RSS 2.0 feed."""

from __future__ import annotations

from sitegen.plugins.base import BuildContext, SitePlugin
from sitegen.site.artifacts import absolute_url, feed_posts, write_feed


class RssPlugin(SitePlugin):
    name = "rss"
    version = "2.0.0"

    def after_build(self, context: BuildContext) -> None:
        site = context.config.site
        if context.languages_configured and site.rss_mode == "merged":
            return
        if not site.url:
            return
        write_feed(
            context.output_dir,
            title=site.title,
            description=site.description,
            home_url=absolute_url(site.url, context.base_url, "/"),
            feed_url=absolute_url(site.url, context.base_url, "/rss.xml"),
            posts=feed_posts(context.routed, site.url, context.base_url),
        )


__all__ = ["RssPlugin"]
