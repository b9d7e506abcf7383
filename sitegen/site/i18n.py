"""Cross-variant reconciliation of sitemap, feed and search index.

Each artifact follows its own mode (``site.sitemapMode``, ``site.rssMode``,
``site.searchMode``):

- ``split``   every variant keeps its own artifact, nothing is written here
- ``merged``  one artifact at the output root aggregating every variant
- ``index``   one root artifact listing each variant's own artifact

Sitemap and feed root artifacts need ``site.url``; without it they are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from sitegen.config import AppConfig
from sitegen.content.models import ContentItem
from sitegen.lib.log import get_logger
from sitegen.plugins.base import BuildContext
from sitegen.routing import Route
from sitegen.site.artifacts import (
    FEED_MAX_ITEMS,
    Alternate,
    FeedPost,
    SitemapEntry,
    absolute_url,
    blog_posts,
    feed_post,
    normalize_base_url,
    search_document,
    site_path,
    sitemap_routes,
    write_feed,
    write_json,
    write_sitemap,
    write_sitemap_index,
)

logger = get_logger(__name__)

X_DEFAULT = "x-default"
INDEX_VERSION = 1


def i18n_key(item: ContentItem | None, route: Route) -> str:
    """Grouping key for alternates: ``i18nKey`` meta, else the unlocalized route URL."""
    if item is not None:
        for name in ("i18nKey", "i18n_key"):
            value = item.meta.get_text(name)
            if value and value.strip():
                return value.strip()
    return route.url


def merged_sitemap_entries(
    site_url: str,
    contexts: Iterable[BuildContext],
    default_language: str | None,
) -> list[SitemapEntry]:
    """Every variant's sitemap routes, de-duplicated by absolute URL, with alternates.

    Alternates are attached only to groups present in two or more languages;
    ``x-default`` (the default language's URL) comes first, the remaining
    languages follow in sorted order.
    """
    entries: dict[str, SitemapEntry] = {}
    groups: dict[str, dict[str, str]] = {}
    entry_groups: dict[str, str] = {}

    for context in contexts:
        items_by_url = {route.url: item for item, route in context.routed}
        for route, last_modified in sitemap_routes(context.routed, context.derived_routes):
            loc = absolute_url(site_url, context.base_url, route.url)
            if loc in entries:
                continue
            key = i18n_key(items_by_url.get(route.url), route)
            entries[loc] = SitemapEntry(loc, last_modified)
            entry_groups[loc] = key
            groups.setdefault(key, {}).setdefault(context.language, loc)

    for loc, entry in entries.items():
        by_language = groups[entry_groups[loc]]
        if len(by_language) < 2:
            continue
        alternates = []
        if default_language and default_language in by_language:
            alternates.append(Alternate(X_DEFAULT, by_language[default_language]))
        for language in sorted(by_language, key=str.casefold):
            alternates.append(Alternate(language, by_language[language]))
        entry.alternates = alternates
    return list(entries.values())


def merged_feed_posts(site_url: str, contexts: Iterable[BuildContext]) -> list[FeedPost]:
    posts: dict[str, FeedPost] = {}
    for context in contexts:
        for item, route in blog_posts(context.routed):
            post = feed_post(item, route, site_url, context.base_url)
            posts.setdefault(post.url, post)
    ordered = sorted(posts.values(), key=lambda post: post.publish_at, reverse=True)
    return ordered[:FEED_MAX_ITEMS]


def merged_search_documents(contexts: Iterable[BuildContext], include_derived: bool) -> list[dict[str, Any]]:
    documents: dict[str, dict[str, Any]] = {}
    for context in contexts:
        pairs = list(context.routed)
        if include_derived:
            pairs.extend(context.derived_routed)
        for item, route in pairs:
            doc = search_document(item, route, context.base_url, context.language)
            documents.setdefault(doc["url"], doc)
    return list(documents.values())


def _variant_url(site_url: str | None, base_url: str, path: str) -> str:
    return absolute_url(site_url, base_url, path) if site_url else site_path(base_url, path)


def reconcile_variants(
    config: AppConfig,
    output_dir: Path,
    contexts: list[BuildContext],
    default_language: str | None,
) -> list[Path]:
    """Write the root-level artifacts for every non-split mode; returns the written paths."""
    site = config.site
    root_base = normalize_base_url(site.base_url)
    written: list[Path] = []

    if site.sitemap_mode != "split":
        if not site.url:
            logger.warning("Skipping %s sitemap: site.url is not set", site.sitemap_mode)
        elif site.sitemap_mode == "merged":
            written.append(write_sitemap(output_dir, merged_sitemap_entries(site.url, contexts, default_language)))
        else:
            locations = [absolute_url(site.url, context.base_url, "/sitemap.xml") for context in contexts]
            written.append(write_sitemap_index(output_dir, locations))

    if site.rss_mode != "split":
        if not site.url:
            logger.warning("Skipping %s feed: site.url is not set", site.rss_mode)
        elif site.rss_mode == "merged":
            written.append(
                write_feed(
                    output_dir,
                    title=site.title,
                    description=site.description,
                    home_url=absolute_url(site.url, root_base, "/"),
                    feed_url=absolute_url(site.url, root_base, "/rss.xml"),
                    posts=merged_feed_posts(site.url, contexts),
                )
            )
        else:
            feeds = [
                {"language": context.language, "url": _variant_url(site.url, context.base_url, "/rss.xml")}
                for context in contexts
            ]
            written.append(write_json(output_dir, "rss.index.json", {"version": INDEX_VERSION, "feeds": feeds}))

    if site.search_mode == "merged":
        documents = merged_search_documents(contexts, site.search_include_derived)
        written.append(write_json(output_dir, "search.json", documents))
    elif site.search_mode == "index":
        indexes = [
            {"language": context.language, "url": site_path(context.base_url, "/search.json")}
            for context in contexts
        ]
        written.append(write_json(output_dir, "search.index.json", {"version": INDEX_VERSION, "indexes": indexes}))

    for path in written:
        logger.info("Wrote %s", path)
    return written


__all__ = [
    "X_DEFAULT",
    "i18n_key",
    "merged_feed_posts",
    "merged_search_documents",
    "merged_sitemap_entries",
    "reconcile_variants",
]
