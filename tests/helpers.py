"""Test utilities and builders for the sitegen test suite.

Usage:
    from tests.helpers import make_config, write_markdown, make_item
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from sitegen.config import AppConfig, parse_config
from sitegen.content.models import ContentItem
from sitegen.plugins.base import BuildContext
from sitegen.routing import resolve_route

BASE_SITE: dict[str, Any] = {
    "name": "demo",
    "title": "Demo",
    "url": "https://example.com",
    "language": "en",
}

LAYOUTS: dict[str, str] = {
    "pages/page.html": "<html><head><title>{{ page.title }}</title></head><body>{{ page.content }}</body></html>\n",
    "pages/post.html": (
        '{% layout "layouts/base.html" %}\n'
        "<article><h1>{{ page.title }}</h1>{{ page.content }}</article>\n"
    ),
    "layouts/base.html": '<!doctype html><html lang="{{ site.language }}"><body>{{ content }}</body></html>\n',
    "pages/index.html": (
        "<ul>{% for p in pages %}<li><a href=\"{{ p.url }}\">{{ p.title }}</a></li>{% endfor %}</ul>\n"
    ),
    "pages/list.html": (
        "<ol>{% for p in pages %}<li><a href=\"{{ p.url }}\">{{ p.title }}</a></li>{% endfor %}</ol>\n"
    ),
}


# =============================================================================
# CONFIG
# =============================================================================


def config_payload(site: dict[str, Any] | None = None, **sections: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"site": {**BASE_SITE, **(site or {})}, "build": {"output": "dist"}}
    payload.update(sections)
    return payload


def make_config(site: dict[str, Any] | None = None, **sections: Any) -> AppConfig:
    """Validated config for the demo site; ``site`` keys override the defaults."""
    return parse_config(config_payload(site, **sections))


def write_site_config(root: Path, site: dict[str, Any] | None = None, **sections: Any) -> Path:
    path = root / "site.yaml"
    path.write_text(yaml.safe_dump(config_payload(site, **sections), sort_keys=False), encoding="utf-8")
    return path


# =============================================================================
# SITE TREE
# =============================================================================


def write_layouts(layouts_dir: Path, layouts: dict[str, str] | None = None) -> None:
    for name, source in (layouts or LAYOUTS).items():
        path = layouts_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")


def write_markdown(content_dir: Path, name: str, *, title: str | None = None, body: str = "", **front: Any) -> Path:
    """Write ``<name>.md`` with YAML front matter.

    Example:
        write_markdown(content, "hello", title="Hello", type="post", publishAt="2024-01-05T10:00:00Z")
    """
    if title is not None:
        front = {"title": title, **front}
    path = content_dir / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    header = ""
    if front:
        header = "---\n" + yaml.safe_dump(front, sort_keys=False, allow_unicode=True) + "---\n\n"
    path.write_text(header + body + "\n", encoding="utf-8")
    return path


def write_post(content_dir: Path, name: str, title: str, publish: str, body: str = "", **front: Any) -> Path:
    return write_markdown(content_dir, name, title=title, body=body, type="post", publishAt=publish, **front)


# =============================================================================
# IN-MEMORY CONTENT
# =============================================================================


def make_item(
    item_id: str,
    *,
    title: str | None = None,
    type: str = "page",
    publish_at: datetime | None = None,
    content_html: str = "<p>body</p>",
    fields: dict[str, Any] | None = None,
    **meta: Any,
) -> ContentItem:
    return ContentItem(
        id=item_id,
        title=title or item_id.title(),
        slug=item_id,
        publish_at=publish_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
        content_html=content_html,
        meta={"type": type, **meta},
        fields=fields or {},
    )


def make_context(
    tmp_path: Path,
    items: list[ContentItem] | None = None,
    config: AppConfig | None = None,
    *,
    language: str = "en",
    base_url: str = "/",
    default_language: str | None = None,
) -> BuildContext:
    """Build context with ``items`` already routed."""
    config = config or make_config()
    output_dir = tmp_path / "out"
    output_dir.mkdir(parents=True, exist_ok=True)
    context = BuildContext(
        config=config,
        root_dir=tmp_path,
        output_dir=output_dir,
        base_url=base_url,
        layouts_dir=tmp_path / "layouts",
        language=language,
        default_language=default_language,
    )
    for item in items or []:
        context.routed.append((item, resolve_route(item, config.site.output_path_encoding)))
    return context


def utc(year: int, month: int = 1, day: int = 1, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)
