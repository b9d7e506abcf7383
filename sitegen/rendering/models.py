"""View models handed to templates.

Templates see plain dicts and lists: ``site``, ``page`` (page views) or
``pages`` (list views), plus ``content`` inside layouts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sitegen.content.models import ContentItem
from sitegen.routing import Route


@dataclass
class ModuleInfo:
    id: str
    title: str
    type: str
    content: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class SiteModel:
    name: str
    title: str
    url: str | None
    description: str | None
    base_url: str
    language: str
    params: dict[str, Any] = field(default_factory=dict)
    modules: dict[str, list[ModuleInfo]] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class PageInfo:
    title: str
    url: str
    content: str
    summary: str | None
    publish_date: datetime
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_item(cls, item: ContentItem, route: Route) -> PageInfo:
        return cls(
            title=item.title,
            url=route.url,
            content=item.content_html,
            summary=item.meta.get_text("summary"),
            publish_date=item.publish_at,
            fields=item.fields.to_python(),
        )


@dataclass
class PageModel:
    site: SiteModel
    page: PageInfo

    def to_context(self) -> dict[str, Any]:
        return {"site": asdict(self.site), "page": asdict(self.page)}


@dataclass
class ListPageModel:
    site: SiteModel
    pages: list[PageInfo]

    def to_context(self) -> dict[str, Any]:
        return {"site": asdict(self.site), "pages": [asdict(page) for page in self.pages]}


__all__ = ["ModuleInfo", "SiteModel", "PageInfo", "PageModel", "ListPageModel"]
