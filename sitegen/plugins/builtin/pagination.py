"""Numbered blog list pages beyond the first."""

from __future__ import annotations

import math

from sitegen.plugins.base import BuildContext, DerivedPage, SitePlugin
from sitegen.plugins.builtin.common import DERIVED_TEMPLATE, blog_posts, derived_item, link_list
from sitegen.routing import Route

PAGE_SIZE = 10


class PaginationPlugin(SitePlugin):
    """Emits ``/blog/page/<n>/`` for n >= 2; page 1 is the blog index."""

    name = "pagination"
    version = "2.0.0"

    def __init__(self, page_size: int = PAGE_SIZE) -> None:
        self.page_size = page_size

    def derive_pages(self, context: BuildContext) -> list[DerivedPage]:
        posts = blog_posts(context.routed)
        if len(posts) <= self.page_size:
            return []

        total_pages = math.ceil(len(posts) / self.page_size)
        derived = []
        for page in range(2, total_pages + 1):
            chunk = posts[(page - 1) * self.page_size : page * self.page_size]
            if not chunk:
                continue
            publish_at = chunk[0][0].publish_at
            body = link_list((context.site_url(route.url), item.title) for item, route in chunk)
            body += self._nav(context, page, total_pages)
            item = derived_item(f"blog-page-{page}", f"Blog - Page {page}", f"page-{page}", publish_at, body)
            route = Route(f"/blog/page/{page}/", f"blog/page/{page}/index.html", DERIVED_TEMPLATE)
            derived.append(DerivedPage(item, route, publish_at))
        return derived

    @staticmethod
    def _nav(context: BuildContext, page: int, total_pages: int) -> str:
        lines = ["<nav>"]
        if page > 1:
            previous = "/blog/" if page == 2 else f"/blog/page/{page - 1}/"
            lines.append(f'  <a href="{context.site_url(previous)}">Prev</a>')
        if page < total_pages:
            lines.append(f'  <a href="{context.site_url(f"/blog/page/{page + 1}/")}">Next</a>')
        lines.append("</nav>")
        return "\n".join(lines) + "\n"


__all__ = ["PaginationPlugin", "PAGE_SIZE"]
