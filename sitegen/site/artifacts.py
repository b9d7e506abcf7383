"""Sitemap, RSS and search-index artifact writers.

Used both by the per-variant plugins and by the cross-variant reconciliation
step, so every writer takes fully resolved entries rather than a context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any

from jinja2 import DictLoader, Environment, select_autoescape
from markupsafe import Markup

from sitegen.content.markdown import html_to_text
from sitegen.content.models import ContentItem
from sitegen.lib.json import dumps
from sitegen.routing import LIST_ROUTES, Route

FEED_MAX_ITEMS = 20
SEARCH_CONTENT_MAX_CHARS = 8000

SITEMAP_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"{% if has_alternates %} xmlns:xhtml="http://www.w3.org/1999/xhtml"{% endif %}>
{%- for entry in entries %}
  <url>
    <loc>{{ entry.loc }}</loc>
    <lastmod>{{ entry.last_modified.strftime("%Y-%m-%d") }}</lastmod>
{%- if has_alternates %}{% for alt in entry.alternates %}
    <xhtml:link rel="alternate" hreflang="{{ alt.hreflang }}" href="{{ alt.href }}" />
{%- endfor %}{% endif %}
  </url>
{%- endfor %}
</urlset>
"""

SITEMAP_INDEX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
{%- for loc in sitemaps %}
  <sitemap>
    <loc>{{ loc }}</loc>
  </sitemap>
{%- endfor %}
</sitemapindex>
"""

RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>{{ title }}</title>
    <link>{{ home_url }}</link>
    <description>{{ description }}</description>
    <lastBuildDate>{{ built_at }}</lastBuildDate>
    <generator>sitegen</generator>
    <atom:link href="{{ feed_url }}" rel="self" type="application/rss+xml" />
{%- for post in posts %}
    <item>
      <title>{{ post.title }}</title>
      <link>{{ post.url }}</link>
      <guid>{{ post.url }}</guid>
      <pubDate>{{ post.pub_date }}</pubDate>
{%- if post.description %}
      <description>{{ post.description }}</description>
{%- endif %}
{%- for category in post.categories %}
      <category>{{ category }}</category>
{%- endfor %}
{%- if post.content_html %}
      <content:encoded><![CDATA[{{ post.content_html | cdata }}]]></content:encoded>
{%- endif %}
    </item>
{%- endfor %}
  </channel>
</rss>
"""


def _cdata(value: str) -> Markup:
    return Markup(str(value).replace("]]>", "]]]]><![CDATA[>"))


_env = Environment(
    loader=DictLoader({
        "sitemap.xml": SITEMAP_TEMPLATE,
        "sitemap-index.xml": SITEMAP_INDEX_TEMPLATE,
        "rss.xml": RSS_TEMPLATE,
    }),
    autoescape=select_autoescape(["html", "xml"]),
)
_env.filters["cdata"] = _cdata


# =============================================================================
# URL helpers
# =============================================================================


def normalize_base_url(base_url: str | None) -> str:
    """``/`` or ``/x/y`` (leading slash, no trailing slash)."""
    value = (base_url or "").strip()
    if not value:
        return "/"
    if not value.startswith("/"):
        value = "/" + value
    if len(value) > 1:
        value = value.rstrip("/") or "/"
    return value


def site_path(base_url: str, url: str) -> str:
    """Join a normalized base URL and a route URL."""
    url = url if url.startswith("/") else "/" + url
    base = normalize_base_url(base_url)
    return url if base == "/" else f"{base}{url}"


def absolute_url(site_url: str, base_url: str, url: str) -> str:
    return site_url.strip().rstrip("/") + site_path(base_url, url)


# =============================================================================
# Entries
# =============================================================================


@dataclass(frozen=True)
class Alternate:
    hreflang: str
    href: str


@dataclass
class SitemapEntry:
    loc: str
    last_modified: datetime
    alternates: list[Alternate] = field(default_factory=list)


@dataclass(frozen=True)
class FeedPost:
    title: str
    url: str
    publish_at: datetime
    description: str | None
    categories: tuple[str, ...]
    content_html: str | None

    @property
    def pub_date(self) -> str:
        return format_datetime(self.publish_at.astimezone(timezone.utc))


def merge_categories(item: ContentItem) -> tuple[str, ...]:
    """Tags then categories, case-insensitively de-duplicated."""
    seen: set[str] = set()
    merged = []
    for value in item.meta.get_list("tags") + item.meta.get_list("categories"):
        if value.casefold() not in seen:
            seen.add(value.casefold())
            merged.append(value)
    return tuple(merged)


def feed_post(item: ContentItem, route: Route, site_url: str, base_url: str) -> FeedPost:
    return FeedPost(
        title=item.title,
        url=absolute_url(site_url, base_url, route.url),
        publish_at=item.publish_at,
        description=item.meta.get_text("summary"),
        categories=merge_categories(item),
        content_html=item.content_html or None,
    )


def blog_posts(routed: list[tuple[ContentItem, Route]]) -> list[tuple[ContentItem, Route]]:
    """Routed items under ``/blog/``, newest first."""
    posts = [(item, route) for item, route in routed if route.url.lower().startswith("/blog/")]
    posts.sort(key=lambda pair: pair[0].publish_at, reverse=True)
    return posts


def sitemap_routes(
    routed: list[tuple[ContentItem, Route]],
    derived_routes: list[tuple[Route, datetime]],
) -> list[tuple[Route, datetime]]:
    """List views, natural routes and derived routes with their last-modified times.

    List views take the newest publish time among the natural routes.
    """
    newest = max((item.publish_at for item, _ in routed), default=None) or datetime.now(timezone.utc)
    routes = [(route, newest) for route in LIST_ROUTES]
    routes.extend((route, item.publish_at) for item, route in routed)
    routes.extend(derived_routes)
    return routes


def sitemap_entries(site_url: str, base_url: str, routes: list[tuple[Route, datetime]]) -> list[SitemapEntry]:
    """Entries de-duplicated by absolute URL; the first occurrence wins."""
    entries: dict[str, SitemapEntry] = {}
    for route, last_modified in routes:
        loc = absolute_url(site_url, base_url, route.url)
        if loc not in entries:
            entries[loc] = SitemapEntry(loc, last_modified)
    return list(entries.values())


def feed_posts(routed: list[tuple[ContentItem, Route]], site_url: str, base_url: str) -> list[FeedPost]:
    """Newest blog posts as feed entries, capped at FEED_MAX_ITEMS."""
    return [feed_post(item, route, site_url, base_url) for item, route in blog_posts(routed)[:FEED_MAX_ITEMS]]


def search_document(
    item: ContentItem,
    route: Route,
    base_url: str,
    language: str,
) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": item.id,
        "title": item.title,
        "url": site_path(base_url, route.url),
    }
    summary = item.meta.get_text("summary")
    if summary:
        doc["summary"] = summary
    doc["content"] = html_to_text(item.content_html)[:SEARCH_CONTENT_MAX_CHARS]
    doc["type"] = item.meta.get_text("type") or "page"
    tags = item.meta.get_list("tags")
    if tags:
        doc["tags"] = tags
    categories = item.meta.get_list("categories")
    if categories:
        doc["categories"] = categories
    doc["language"] = item.meta.get_text("language") or language
    doc["sourceKey"] = item.meta.get_text("sourceKey") or ""
    doc["publishAt"] = item.publish_at.isoformat()
    return doc


# =============================================================================
# Writers
# =============================================================================


def write_text(output_dir: Path, relative: str, text: str) -> Path:
    path = Path(output_dir) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_sitemap(output_dir: Path, entries: list[SitemapEntry]) -> Path:
    has_alternates = any(entry.alternates for entry in entries)
    text = _env.get_template("sitemap.xml").render(entries=entries, has_alternates=has_alternates)
    return write_text(output_dir, "sitemap.xml", text)


def write_sitemap_index(output_dir: Path, sitemap_urls: list[str]) -> Path:
    text = _env.get_template("sitemap-index.xml").render(sitemaps=sitemap_urls)
    return write_text(output_dir, "sitemap.xml", text)


def write_feed(
    output_dir: Path,
    *,
    title: str,
    description: str | None,
    home_url: str,
    feed_url: str,
    posts: list[FeedPost],
) -> Path:
    text = _env.get_template("rss.xml").render(
        title=title,
        description=description or title,
        home_url=home_url,
        feed_url=feed_url,
        built_at=format_datetime(datetime.now(timezone.utc)),
        posts=posts,
    )
    return write_text(output_dir, "rss.xml", text)


def write_json(output_dir: Path, relative: str, payload: Any) -> Path:
    return write_text(output_dir, relative, dumps(payload))


__all__ = [
    "Alternate",
    "FeedPost",
    "SitemapEntry",
    "FEED_MAX_ITEMS",
    "absolute_url",
    "blog_posts",
    "feed_post",
    "feed_posts",
    "merge_categories",
    "normalize_base_url",
    "search_document",
    "site_path",
    "sitemap_entries",
    "sitemap_routes",
    "write_feed",
    "write_json",
    "write_sitemap",
    "write_sitemap_index",
    "write_text",
]
