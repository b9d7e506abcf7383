"""Client-side search index (``search.json``)."""

from __future__ import annotations

from sitegen.plugins.base import BuildContext, SitePlugin
from sitegen.site.artifacts import search_document, write_json

SEARCH_FILENAME = "search.json"


class SearchIndexPlugin(SitePlugin):
    """One document per routed page; derived pages with ``site.searchIncludeDerived``."""

    name = "search-index"
    version = "2.1.0"

    def after_build(self, context: BuildContext) -> None:
        pairs = list(context.routed)
        if context.config.site.search_include_derived:
            pairs.extend(context.derived_routed)
        documents = [search_document(item, route, context.base_url, context.language) for item, route in pairs]
        write_json(context.output_dir, SEARCH_FILENAME, documents)


__all__ = ["SearchIndexPlugin", "SEARCH_FILENAME"]
