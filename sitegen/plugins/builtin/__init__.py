"""Plugins shipped with sitegen, in execution order."""

from __future__ import annotations

from sitegen.plugins.base import Plugin
from sitegen.plugins.builtin.archive import ArchivePlugin
from sitegen.plugins.builtin.pagination import PaginationPlugin
from sitegen.plugins.builtin.rss import RssPlugin
from sitegen.plugins.builtin.search_index import SearchIndexPlugin
from sitegen.plugins.builtin.sitemap import SitemapPlugin
from sitegen.plugins.builtin.taxonomy import TaxonomyPlugin


def builtin_plugins() -> list[Plugin]:
    return [
        TaxonomyPlugin(),
        SitemapPlugin(),
        RssPlugin(),
        SearchIndexPlugin(),
        PaginationPlugin(),
        ArchivePlugin(),
    ]


__all__ = [
    "ArchivePlugin",
    "PaginationPlugin",
    "RssPlugin",
    "SearchIndexPlugin",
    "SitemapPlugin",
    "TaxonomyPlugin",
    "builtin_plugins",
]
