"""Jinja2 render gateway.

Templates are loaded from the layouts directory. A template whose first
non-blank line is a layout directive::

    {% layout "layouts/base.html" %}

is rendered on its own first; the result is then passed to the named layout
as ``content``. Layouts may declare a layout of their own.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from jinja2 import (
    ChainableUndefined,
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)
from markupsafe import Markup

from sitegen.errors import RenderError
from sitegen.rendering.models import ListPageModel, PageModel

_LAYOUT_DIRECTIVE = re.compile(
    r"""^\s*(?:\{%-?\s*layout\s+["']([^"']+)["']\s*-?%\}|\{\{-?\s*layout\s+["']([^"']+)["']\s*-?\}\})\s*$"""
)
MAX_LAYOUT_DEPTH = 8


def split_layout_directive(source: str) -> tuple[str | None, str]:
    """Return (layout name, remaining source) for a template source."""
    lines = source.splitlines(keepends=True)
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        match = _LAYOUT_DIRECTIVE.match(line)
        if match is None:
            return None, source
        layout = (match.group(1) or match.group(2)).strip()
        return layout, "".join(lines[index + 1:])
    return None, source


class LayoutAwareLoader(FileSystemLoader):
    """FileSystemLoader that strips layout directives and remembers them."""

    def __init__(self, searchpath: Path | str) -> None:
        super().__init__(str(searchpath), encoding="utf-8")
        self.layouts: dict[str, str | None] = {}

    def get_source(self, environment: Environment, template: str) -> tuple[str, str | None, Any]:
        source, filename, uptodate = super().get_source(environment, template)
        layout, body = split_layout_directive(source)
        self.layouts[template] = layout
        return body, filename, uptodate


@runtime_checkable
class RenderGateway(Protocol):
    def render_page(self, template: str, model: PageModel) -> str:
        ...

    def render_list(self, template: str, model: ListPageModel) -> str:
        ...


class TemplateRenderer:
    """Render page and list view models with templates under ``layouts_dir``."""

    def __init__(self, layouts_dir: Path) -> None:
        self.layouts_dir = Path(layouts_dir)
        self._loader = LayoutAwareLoader(self.layouts_dir)
        self.env = Environment(
            loader=self._loader,
            autoescape=select_autoescape(["html", "htm", "xml"]),
            undefined=ChainableUndefined,
            keep_trailing_newline=True,
        )

    def render_page(self, template: str, model: PageModel) -> str:
        context = model.to_context()
        context["page"]["content"] = Markup(context["page"]["content"] or "")
        return self.render(template, context)

    def render_list(self, template: str, model: ListPageModel) -> str:
        context = model.to_context()
        for page in context["pages"]:
            page["content"] = Markup(page["content"] or "")
        return self.render(template, context)

    def render(self, template: str, context: dict[str, Any]) -> str:
        name = template.replace("\\", "/").lstrip("/")
        output = None
        for _ in range(MAX_LAYOUT_DEPTH):
            output = self._render_one(name, context if output is None else {**context, "content": Markup(output)})
            layout = self._loader.layouts.get(name)
            if not layout:
                return output
            name = layout.replace("\\", "/").lstrip("/")
        raise RenderError(f"Render failed: {template}: layout chain deeper than {MAX_LAYOUT_DEPTH}", template=template)

    def _render_one(self, name: str, context: dict[str, Any]) -> str:
        try:
            compiled = self.env.get_template(name)
        except TemplateNotFound as exc:
            raise RenderError(f"Template not found: {name}", template=name) from exc
        except TemplateError as exc:
            raise RenderError(f"Render failed: {name}: {exc}", template=name) from exc
        try:
            return compiled.render(context)
        except Exception as exc:
            raise RenderError(f"Render failed: {name}: {exc}", template=name) from exc


__all__ = ["RenderGateway", "TemplateRenderer", "LayoutAwareLoader", "split_layout_directive"]
