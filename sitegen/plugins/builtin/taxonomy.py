"""Taxonomy pages and data for tags, categories and configured kinds.

``taxonomy.outputMode`` selects what is produced:

- ``both``         term pages plus ``taxonomy.json``
- ``pages``        term pages only
- ``fields_only``  term pages without body HTML (templates render ``fields``)
- ``data``         ``taxonomy.json`` only

In every mode the structure is also placed in ``context.data["taxonomy"]``
so templates can build tag clouds and the like.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sitegen.config import TaxonomyKind, TaxonomySettings
from sitegen.content.models import ContentItem
from sitegen.plugins.base import BuildContext, DerivedPage, SitePlugin
from sitegen.plugins.builtin.common import derived_item, link_list
from sitegen.routing import Route
from sitegen.site.artifacts import site_path, write_json

_JSON_SKIP_KEYS = {"title", "url", "publishat", "publish_date", "summary"}


@dataclass(frozen=True)
class TaxonomyPage:
    title: str
    url: str
    publish_at: datetime
    summary: str | None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "url": self.url, "publish_date": self.publish_at}
        if self.summary:
            data["summary"] = self.summary
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


@dataclass
class TaxonomyTerm:
    title: str
    slug: str
    pages: list[TaxonomyPage] = field(default_factory=list)


@dataclass(frozen=True)
class KindSpec:
    key: str
    kind: str
    title: str
    singular: str
    index_template: str
    term_template: str
    index_enabled: bool


def term_slug(text: str) -> str:
    """Lower-case slug that keeps non-ASCII letters; separators become one dash."""
    out: list[str] = []
    dash = False
    for ch in text.strip().lower():
        if ch.isalnum():
            out.append(ch)
            dash = False
        elif ch in " -_." and out and not dash:
            out.append("-")
            dash = True
    return "".join(out).strip("-")


def _first(*candidates: str | None) -> str | None:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def resolve_kinds(settings: TaxonomySettings) -> list[KindSpec]:
    """Configured kinds, or ``tags`` and ``categories`` when none are set."""
    configured = settings.kinds or [
        TaxonomyKind(key="tags", title="Tags", singular_title_prefix="Tag"),
        TaxonomyKind(key="categories", title="Categories", singular_title_prefix="Category"),
    ]
    specs = []
    for entry in configured:
        key = (entry.key or "").strip()
        if not key:
            continue
        kind = _first(entry.kind) or key
        title = _first(entry.title) or kind
        base = _first(entry.template, settings.template) or "pages/page.html"
        specs.append(
            KindSpec(
                key=key,
                kind=kind,
                title=title,
                singular=_first(entry.singular_title_prefix) or title,
                index_template=_first(entry.index_template, settings.index_template) or base,
                term_template=_first(entry.term_template, settings.term_template) or base,
                index_enabled=settings.index_enabled if entry.index_enabled is None else entry.index_enabled,
            )
        )
    return specs


def _item_fields(settings: TaxonomySettings) -> list[str]:
    seen: set[str] = set()
    keys = []
    for raw in settings.item_fields or []:
        key = (raw or "").strip()
        if key and key.casefold() not in seen:
            seen.add(key.casefold())
            keys.append(key)
    return keys


def _extra_fields(item: ContentItem, keys: list[str]) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    for key in keys:
        if key in item.meta:
            value = item.meta[key].to_python()
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            extra[key] = value
        elif key in item.fields:
            extra[key] = item.fields[key].to_python()
        elif key.casefold() == "date":
            extra["date"] = item.publish_at.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return extra


def build_index(routed: list[tuple[ContentItem, Any]], key: str, item_fields: list[str]) -> dict[str, TaxonomyTerm]:
    """Terms keyed by slug, each with its pages newest first."""
    terms: dict[str, TaxonomyTerm] = {}
    for item, route in routed:
        values = item.meta.get_list(key)
        if not values:
            continue
        page = TaxonomyPage(
            title=item.title,
            url=route.url,
            publish_at=item.publish_at,
            summary=item.meta.get_text("summary"),
            extra=_extra_fields(item, item_fields),
        )
        seen: set[str] = set()
        for display in values:
            slug = term_slug(display)
            if not slug or slug in seen:
                continue
            seen.add(slug)
            term = terms.setdefault(slug, TaxonomyTerm(display.strip(), slug))
            term.pages.append(page)
    for term in terms.values():
        term.pages.sort(key=lambda page: page.publish_at, reverse=True)
    return terms


def _sorted_terms(terms: dict[str, TaxonomyTerm]) -> list[TaxonomyTerm]:
    return sorted(terms.values(), key=lambda term: term.title.casefold())


def _term_summary(kind: str, term: TaxonomyTerm) -> dict[str, Any]:
    return {"title": term.title, "slug": term.slug, "url": f"/{kind}/{term.slug}/", "count": len(term.pages)}


class TaxonomyPlugin(SitePlugin):
    name = "taxonomy"
    version = "2.3.1"

    def derive_pages(self, context: BuildContext) -> list[DerivedPage]:
        settings = context.config.taxonomy
        item_fields = _item_fields(settings)
        indexed = [(spec, build_index(context.routed, spec.key, item_fields)) for spec in resolve_kinds(settings)]
        indexed = [(spec, terms) for spec, terms in indexed if terms]

        if indexed:
            context.data["taxonomy"] = {spec.kind: self._kind_data(spec, terms) for spec, terms in indexed}
        if settings.output_mode == "data":
            return []

        emit_html = settings.output_mode != "fields_only"
        derived: list[DerivedPage] = []
        for spec, terms in indexed:
            derived.extend(self._kind_pages(context, spec, terms, settings.page_size, emit_html))
        return derived

    def after_build(self, context: BuildContext) -> None:
        settings = context.config.taxonomy
        if settings.output_mode not in ("both", "data"):
            return
        item_fields = _item_fields(settings)
        kinds = []
        for spec in resolve_kinds(settings):
            terms = build_index(context.routed, spec.key, item_fields)
            if terms:
                kinds.append(self._kind_json(context.base_url, spec, terms))
        write_json(context.output_dir, "taxonomy.json", {"schema": 1, "kinds": kinds})

    # -- pages -------------------------------------------------------------

    def _kind_pages(
        self,
        context: BuildContext,
        spec: KindSpec,
        terms: dict[str, TaxonomyTerm],
        page_size: int,
        emit_html: bool,
    ) -> list[DerivedPage]:
        ordered = _sorted_terms(terms)
        latest = max(term.pages[0].publish_at for term in ordered)
        derived = []
        if spec.index_enabled:
            body = ""
            if emit_html:
                body = link_list(
                    ((context.site_url(f"/{spec.kind}/{term.slug}/"), term.title) for term in ordered),
                    counts=[len(term.pages) for term in ordered],
                )
            item = derived_item(
                f"{spec.kind}-index",
                spec.title,
                spec.kind,
                latest,
                body,
                fields={"terms": [_term_summary(spec.kind, term) for term in ordered]},
            )
            route = Route(f"/{spec.kind}/", f"{spec.kind}/index.html", spec.index_template)
            derived.append(DerivedPage(item, route, latest))

        for term in ordered:
            total_pages = max(1, math.ceil(len(term.pages) / page_size))
            for page in range(1, total_pages + 1):
                chunk = term.pages[(page - 1) * page_size : page * page_size]
                derived.append(self._term_page(context, spec, term, chunk, page, total_pages, page_size, emit_html))
        return derived

    @staticmethod
    def _term_page(
        context: BuildContext,
        spec: KindSpec,
        term: TaxonomyTerm,
        chunk: list[TaxonomyPage],
        page: int,
        total_pages: int,
        page_size: int,
        emit_html: bool,
    ) -> DerivedPage:
        publish_at = chunk[0].publish_at
        body = link_list((context.site_url(entry.url), entry.title) for entry in chunk) if emit_html else ""
        if page == 1:
            url = f"/{spec.kind}/{term.slug}/"
            output_path = f"{spec.kind}/{term.slug}/index.html"
            item_id = f"{spec.kind}-{term.slug}"
            title = f"{spec.singular}: {term.title}"
        else:
            url = f"/{spec.kind}/{term.slug}/page/{page}/"
            output_path = f"{spec.kind}/{term.slug}/page/{page}/index.html"
            item_id = f"{spec.kind}-{term.slug}-page-{page}"
            title = f"{spec.singular}: {term.title} (Page {page})"
        fields = {
            "items": [entry.to_dict() for entry in chunk],
            "taxonomy": {"kind": spec.kind, "term": term.title, "slug": term.slug, "count": len(term.pages)},
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total": len(term.pages),
                "total_pages": total_pages,
                "has_prev": page > 1,
                "has_next": page < total_pages,
            },
        }
        item = derived_item(item_id, title, term.slug, publish_at, body, fields=fields)
        return DerivedPage(item, Route(url, output_path, spec.term_template), publish_at)

    # -- data --------------------------------------------------------------

    @staticmethod
    def _kind_data(spec: KindSpec, terms: dict[str, TaxonomyTerm]) -> dict[str, Any]:
        ordered = _sorted_terms(terms)
        return {
            "key": spec.key,
            "kind": spec.kind,
            "title": spec.title,
            "terms": [_term_summary(spec.kind, term) for term in ordered],
            "items_by_term": {term.slug: [page.to_dict() for page in term.pages] for term in ordered},
        }

    @staticmethod
    def _kind_json(base_url: str, spec: KindSpec, terms: dict[str, TaxonomyTerm]) -> dict[str, Any]:
        ordered = _sorted_terms(terms)
        items_by_term = {}
        for term in ordered:
            entries = []
            for page in term.pages:
                entry: dict[str, Any] = {
                    "title": page.title,
                    "url": site_path(base_url, page.url),
                    "publishAt": page.publish_at.isoformat(),
                }
                if page.summary:
                    entry["summary"] = page.summary
                for key, value in page.extra.items():
                    if key.casefold() not in _JSON_SKIP_KEYS and value is not None:
                        entry[key] = value
                entries.append(entry)
            items_by_term[term.slug] = entries
        return {
            "key": spec.key,
            "kind": spec.kind,
            "title": spec.title,
            "terms": [
                {**_term_summary(spec.kind, term), "url": site_path(base_url, f"/{spec.kind}/{term.slug}/")}
                for term in ordered
            ],
            "itemsByTerm": items_by_term,
        }


__all__ = ["TaxonomyPlugin", "TaxonomyPage", "TaxonomyTerm", "KindSpec", "build_index", "resolve_kinds", "term_slug"]
