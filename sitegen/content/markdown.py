"""Markdown folder gateway.

Reads ``*.md`` files below a content directory. Each file may start with a
YAML front matter block; the rest is converted to HTML with markdown-it.
"""

from __future__ import annotations

import html
import re
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import frontmatter
import yaml
from markdown_it import MarkdownIt

from sitegen.content.models import ContentItem, MetaMap, Value, ensure_aware, parse_datetime
from sitegen.errors import ContentError
from sitegen.lib.concurrency import check_cancelled, gather_ordered
from sitegen.lib.log import get_logger

if TYPE_CHECKING:
    from sitegen.config import AppConfig, MarkdownSettings

logger = get_logger(__name__)

RESERVED_KEYS = frozenset(
    key.casefold()
    for key in (
        "title",
        "slug",
        "type",
        "publishAt",
        "language",
        "tags",
        "categories",
        "summary",
        "route",
        "url",
        "outputPath",
        "template",
        "draft",
        "source",
        "sourcePath",
    )
)

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class MarkdownOptions:
    content_dir: Path
    default_type: str = "page"
    max_items: int | None = None
    include_paths: tuple[str, ...] = ()
    include_globs: tuple[str, ...] = ()
    auto_summary: bool = False
    auto_summary_max_length: int = 200
    include_drafts: bool = False
    max_workers: int = 8

    @classmethod
    def from_settings(cls, settings: MarkdownSettings, config: AppConfig, root_dir: Path) -> MarkdownOptions:
        content_dir = Path(settings.dir)
        if not content_dir.is_absolute():
            content_dir = Path(root_dir) / content_dir
        return cls(
            content_dir=content_dir,
            default_type=settings.default_type,
            max_items=settings.max_items,
            include_paths=tuple(settings.include_paths or ()),
            include_globs=tuple(settings.include_globs or ()),
            auto_summary=config.site.auto_summary,
            auto_summary_max_length=config.site.auto_summary_max_length,
            include_drafts=config.build.draft,
        )


def glob_to_regex(glob: str) -> re.Pattern[str]:
    """Translate ``**``/``*``/``?`` globs over ``/`` separated relative paths."""
    out = ["^"]
    pattern = glob.replace("\\", "/")
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if i + 1 < len(pattern) and pattern[i + 1] == "*":
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
        i += 1
    out.append("$")
    return re.compile("".join(out), re.IGNORECASE)


def extract_title(markdown: str) -> str | None:
    for line in markdown.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip() or None
    return None


def html_to_text(content_html: str) -> str:
    """Strip tags, decode entities and collapse whitespace."""
    text = _TAG_RE.sub(" ", content_html or "")
    return _WS_RE.sub(" ", html.unescape(text)).strip()


def truncate_words(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    cut = text.rfind(" ", 0, max_length + 1)
    if cut < max_length // 2:
        cut = max_length
    trimmed = text[:cut].rstrip()
    return f"{trimmed}…" if trimmed else ""


def _normalize_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(part).strip() for part in value if part is not None and str(part).strip()]
    return None


def _publish_at(meta: dict[str, Any], path: Path) -> datetime:
    raw = next((value for key, value in meta.items() if key.casefold() == "publishat"), None)
    if isinstance(raw, datetime):
        return ensure_aware(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=timezone.utc)
    if isinstance(raw, str):
        parsed = parse_datetime(raw)
        if parsed is not None:
            return parsed
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class MarkdownGateway:
    """Content gateway over a folder of Markdown files."""

    def __init__(self, options: MarkdownOptions) -> None:
        self.options = options
        self._md = MarkdownIt("commonmark", {"html": True}).enable("table")

    def discover(self) -> list[Path]:
        """List the files to load, after include filters and ``maxItems``."""
        root = self.options.content_dir
        files = sorted(
            (path for path in root.rglob("*.md") if path.is_file()),
            key=lambda path: str(path).casefold(),
        )

        if self.options.include_paths:
            allowed = set()
            for raw in self.options.include_paths:
                rel = raw.strip().replace("\\", "/")
                if not rel:
                    continue
                if not rel.lower().endswith(".md"):
                    rel += ".md"
                allowed.add(str((root / rel).resolve()).casefold())
            files = [path for path in files if str(path.resolve()).casefold() in allowed]

        globs = [glob_to_regex(raw.strip()) for raw in self.options.include_globs if raw and raw.strip()]
        if globs:
            files = [
                path for path in files
                if any(regex.match(path.relative_to(root).as_posix()) for regex in globs)
            ]

        if self.options.max_items:
            files = files[: self.options.max_items]
        return files

    def load(self, cancel: threading.Event | None = None) -> list[ContentItem]:
        root = self.options.content_dir
        if not root.is_dir():
            raise ContentError(f"Content directory not found: {root}")

        files = self.discover()
        check_cancelled(cancel)
        parsed = gather_ordered(self._parse_file, files, max_workers=self.options.max_workers, cancel=cancel)
        items = [item for item in parsed if item is not None]
        logger.info("Loaded %d markdown items from %s", len(items), root)
        return items

    def _parse_file(self, path: Path) -> ContentItem | None:
        try:
            post = frontmatter.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ContentError(f"Failed to read {path}: {exc}") from exc

        defaults = MetaMap(type=self.options.default_type, source="markdown", sourcePath=str(path))
        front = {str(key).strip(): value for key, value in post.metadata.items() if key is not None and str(key).strip()}
        meta = defaults.updated(front).to_python()

        for key in list(meta):
            if key.casefold() in ("tags", "categories"):
                normalized = _normalize_list(meta[key])
                if normalized is None:
                    del meta[key]
                else:
                    meta[key] = normalized

        lookup = MetaMap(meta)
        if lookup.get_bool("draft") and not self.options.include_drafts:
            logger.debug("Skipping draft %s", path)
            return None

        body = post.content
        slug = (lookup.get_text("slug") or path.stem).strip()
        title = (lookup.get_text("title") or "").strip() or extract_title(body) or slug
        content_html = self._md.render(body)

        if not (lookup.get_text("summary") or "").strip() and self.options.auto_summary:
            summary = truncate_words(html_to_text(content_html), self.options.auto_summary_max_length)
            if summary:
                meta["summary"] = summary

        publish_at = _publish_at(meta, path)
        return ContentItem(
            id=slug,
            title=title,
            slug=slug,
            publish_at=publish_at,
            content_html=content_html,
            meta=MetaMap(meta),
            fields=build_fields(meta),
        )


def build_fields(meta: dict[str, Any]) -> MetaMap:
    """Typed fields from non-reserved front matter plus tags, categories and summary."""
    fields: dict[str, Value] = {}
    for key, value in meta.items():
        if value is None or key.casefold() in RESERVED_KEYS:
            continue
        fields[key] = Value.of(value)
    lookup = MetaMap(meta)
    for key in ("tags", "categories"):
        values = lookup.get_list(key)
        if values:
            fields[key] = Value.of(values)
    summary = lookup.get_text("summary")
    if summary:
        fields["summary"] = Value.of(summary)
    return MetaMap(fields)


__all__ = [
    "MarkdownGateway",
    "MarkdownOptions",
    "build_fields",
    "extract_title",
    "glob_to_regex",
    "html_to_text",
    "truncate_words",
]
