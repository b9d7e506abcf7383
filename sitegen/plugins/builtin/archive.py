"""Blog archive pages: an index, one page per year and one per month.

Posts are grouped by their publish time in the site timezone.
"""

from __future__ import annotations

from itertools import groupby

from sitegen.plugins.base import BuildContext, DerivedPage, SitePlugin
from sitegen.plugins.builtin.common import DERIVED_TEMPLATE, blog_posts, derived_item, link_list
from sitegen.routing import Route


class ArchivePlugin(SitePlugin):
    name = "archive"
    version = "2.0.0"

    def derive_pages(self, context: BuildContext) -> list[DerivedPage]:
        posts = blog_posts(context.routed)
        if not posts:
            return []

        tz = context.config.site.tzinfo()
        local = [(item, route, item.publish_at.astimezone(tz)) for item, route in posts]
        by_year = [
            (year, list(group))
            for year, group in groupby(sorted(local, key=lambda row: row[2], reverse=True), key=lambda row: row[2].year)
        ]

        latest = posts[0][0].publish_at
        index_body = link_list((context.site_url(f"/blog/archive/{year}/"), str(year)) for year, _ in by_year)
        derived = [
            DerivedPage(
                derived_item("blog-archive-index", "Archive", "archive", latest, index_body),
                Route("/blog/archive/", "blog/archive/index.html", DERIVED_TEMPLATE),
                latest,
            )
        ]

        for year, rows in by_year:
            by_month = [(month, list(group)) for month, group in groupby(rows, key=lambda row: row[2].month)]
            derived.append(self._year_page(context, year, rows, by_month))
            for month, month_rows in by_month:
                derived.append(self._month_page(context, year, month, month_rows))
        return derived

    @staticmethod
    def _year_page(context: BuildContext, year: int, rows: list, by_month: list) -> DerivedPage:
        publish_at = rows[0][0].publish_at
        body = link_list(
            ((context.site_url(f"/blog/archive/{year}/{month:02d}/"), f"{year}-{month:02d}") for month, _ in by_month),
            counts=[len(group) for _, group in by_month],
        )
        item = derived_item(f"blog-archive-{year}", f"Archive: {year}", f"archive-{year}", publish_at, body)
        route = Route(f"/blog/archive/{year}/", f"blog/archive/{year}/index.html", DERIVED_TEMPLATE)
        return DerivedPage(item, route, publish_at)

    @staticmethod
    def _month_page(context: BuildContext, year: int, month: int, rows: list) -> DerivedPage:
        publish_at = rows[0][0].publish_at
        body = link_list((context.site_url(row[1].url), row[0].title) for row in rows)
        item = derived_item(
            f"blog-archive-{year}-{month:02d}",
            f"Archive: {year}-{month:02d}",
            f"archive-{year}-{month:02d}",
            publish_at,
            body,
        )
        route = Route(
            f"/blog/archive/{year}/{month:02d}/",
            f"blog/archive/{year}/{month:02d}/index.html",
            DERIVED_TEMPLATE,
        )
        return DerivedPage(item, route, publish_at)


__all__ = ["ArchivePlugin"]
