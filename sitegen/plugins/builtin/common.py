"""Helpers shared by the built-in plugins."""

from __future__ import annotations

import html
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sitegen.content.models import ContentItem
from sitegen.routing import PAGE_TEMPLATE
from sitegen.site.artifacts import blog_posts

DERIVED_TEMPLATE = PAGE_TEMPLATE


def link_list(links: Iterable[tuple[str, str]], counts: Iterable[int] | None = None) -> str:
    """``<ul>`` of ``(href, label)`` links, optionally with a count per entry."""
    lines = ["<ul>"]
    counts = list(counts) if counts is not None else None
    for index, (href, label) in enumerate(links):
        suffix = f" <small>({counts[index]})</small>" if counts is not None else ""
        lines.append(f'  <li><a href="{html.escape(href, quote=True)}">{html.escape(label, quote=False)}</a>{suffix}</li>')
    lines.append("</ul>")
    return "\n".join(lines) + "\n"


def derived_item(
    item_id: str,
    title: str,
    slug: str,
    publish_at: datetime,
    content_html: str,
    fields: dict[str, Any] | None = None,
) -> ContentItem:
    return ContentItem(
        id=item_id,
        title=title,
        slug=slug,
        publish_at=publish_at,
        content_html=content_html,
        meta={"type": "page"},
        fields=fields or {},
    )


__all__ = ["DERIVED_TEMPLATE", "blog_posts", "derived_item", "link_list"]
