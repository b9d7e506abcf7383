"""Route resolution: content item -> (url, output path, template).

Resolution is a pure function of the item and the configured output path
encoding. The Windows path checker is the only stateful piece; it remembers
which paths it already warned about so each one is reported once per build.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from urllib.parse import quote

from sitegen.content.models import ContentItem, MetaMap
from sitegen.lib.log import get_logger

logger = get_logger(__name__)

OUTPUT_PATH_ENCODINGS = ("none", "slug", "urlencode", "sanitize")

POST_TEMPLATE = "pages/post.html"
PAGE_TEMPLATE = "pages/page.html"
INDEX_TEMPLATE = "pages/index.html"
LIST_TEMPLATE = "pages/list.html"

_SANITIZE_DROP = set('<>:"|?*')
_WINDOWS_INVALID = set('<>:"|?*')
_WINDOWS_DEVICES = {"con", "prn", "aux", "nul"} | {f"com{i}" for i in range(1, 10)} | {f"lpt{i}" for i in range(1, 10)}
_DASHES = re.compile(r"-{2,}")
_DOT_RUNS = re.compile(r"[-.]*\.[-.]*")


@dataclass(frozen=True)
class Route:
    url: str
    output_path: str
    template: str


HOME_ROUTE = Route("/", "index.html", INDEX_TEMPLATE)
BLOG_INDEX_ROUTE = Route("/blog/", "blog/index.html", LIST_TEMPLATE)
PAGES_INDEX_ROUTE = Route("/pages/", "pages/index.html", LIST_TEMPLATE)
LIST_ROUTES = (HOME_ROUTE, BLOG_INDEX_ROUTE, PAGES_INDEX_ROUTE)


def normalize_url(url: str) -> str:
    """Force a leading and trailing slash; blank input maps to ``/``."""
    url = (url or "").strip()
    if not url:
        return "/"
    if not url.startswith("/"):
        url = "/" + url
    if not url.endswith("/"):
        url += "/"
    return url


def normalize_output_path(path: str) -> str:
    return (path or "").strip().lstrip("/\\").replace("\\", "/")


def _route_override(meta: MetaMap) -> tuple[str, str, str] | None:
    nested = meta.get_mapping("route")
    source = nested if nested is not None else meta
    url = (source.get_text("url") or "").strip()
    output_path = (source.get_text("outputPath") or "").strip()
    template = (source.get_text("template") or "").strip()
    if url and output_path and template:
        return url, output_path, template
    return None


def resolve_route(item: ContentItem, encoding: str = "none") -> Route:
    """Map a content item to its route.

    A ``route`` object (or flat ``url``/``outputPath``/``template`` meta keys)
    overrides the type-based default, but only when all three are set.
    """
    override = _route_override(item.meta)
    if override is not None:
        url, output_path, template = override
        output_path = normalize_output_path(output_path)
        if output_path:
            return Route(normalize_url(url), encode_output_path(output_path, encoding), template)

    if (item.type or "").strip().lower() == "post":
        url, output_path, template = f"/blog/{item.slug}/", f"blog/{item.slug}/index.html", POST_TEMPLATE
    else:
        url, output_path, template = f"/pages/{item.slug}/", f"pages/{item.slug}/index.html", PAGE_TEMPLATE
    return Route(normalize_url(url), encode_output_path(normalize_output_path(output_path), encoding), template)


# =============================================================================
# Output path encodings
# =============================================================================


def encode_output_path(path: str, mode: str = "none") -> str:
    """Re-encode each ``/`` separated segment of an output path.

    Empty segments produced by an encoding are dropped.
    """
    mode = (mode or "none").strip().lower()
    if mode == "none":
        return path
    if mode not in OUTPUT_PATH_ENCODINGS:
        raise ValueError(f"Unknown output path encoding: {mode}")

    encoder = {
        "urlencode": _urlencode_segment,
        "slug": _slug_segment,
        "sanitize": sanitize_segment,
    }[mode]
    segments = [encoder(segment) for segment in path.split("/") if segment]
    return "/".join(segment for segment in segments if segment)


def _urlencode_segment(segment: str) -> str:
    return quote(segment, safe="")


def slugify(text: str, fallback: str = "page") -> str:
    """Lower-case ASCII slug; whitespace, ``-`` and ``_`` collapse to one dash."""
    text = unicodedata.normalize("NFKD", text)
    out: list[str] = []
    pending_dash = False
    for ch in text:
        if ch.isascii() and ch.isalnum():
            if pending_dash and out:
                out.append("-")
            pending_dash = False
            out.append(ch.lower())
        elif ch.isspace() or ch in "-_":
            pending_dash = True
    return "".join(out) or fallback


def _split_extension(segment: str) -> tuple[str, str, str]:
    """Split into (leading dot, stem, extension) keeping ``.hidden`` names whole."""
    lead = ""
    if segment.startswith("."):
        lead, segment = ".", segment[1:]
    dot = segment.rfind(".")
    if 0 < dot < len(segment) - 1:
        return lead, segment[:dot], segment[dot:]
    return lead, segment, ""


def _slug_segment(segment: str) -> str:
    lead, stem, ext = _split_extension(segment)
    return f"{lead}{slugify(stem)}{ext.lower()}"


def sanitize_segment(segment: str) -> str:
    """Make one path segment portable.

    Control characters, filesystem-reserved characters and other punctuation
    are dropped, whitespace becomes a dash, dashes collapse, trailing dots and
    spaces are trimmed and the result is lower-cased. Never returns an empty
    string and is idempotent.
    """
    lead, stem, ext = _split_extension(segment)
    stem = _DASHES.sub("-", _sanitize_chars(stem, keep="."))
    stem = _DOT_RUNS.sub(".", stem).strip("-.")
    ext = "." + _sanitize_chars(ext[1:]).strip("-") if ext else ""
    if not stem:
        stem = "page"
    return f"{lead}{stem}{ext if len(ext) > 1 else ''}"


def _sanitize_chars(text: str, keep: str = "") -> str:
    cleaned: list[str] = []
    for ch in text.lower():
        if ord(ch) < 32 or ch in _SANITIZE_DROP:
            continue
        if ch.isspace():
            cleaned.append("-")
        elif ch.isalnum() or ch in "-_" or ch in keep:
            cleaned.append(ch)
    return "".join(cleaned)


# =============================================================================
# Windows path diagnostics
# =============================================================================


def windows_path_issue(path: str) -> str | None:
    """Describe why ``path`` would be a problem on Windows, or None."""
    if not path or not path.strip():
        return "empty path"
    for segment in path.replace("\\", "/").split("/"):
        if not segment:
            return "empty segment"
        if segment.endswith((" ", ".")):
            return f"segment '{segment}' ends with a space or dot"
        bad = sorted({ch for ch in segment if ch in _WINDOWS_INVALID or ord(ch) < 32})
        if bad:
            return f"segment '{segment}' contains invalid characters {''.join(bad)!r}"
        base = segment.split(".", 1)[0].lower()
        if base in _WINDOWS_DEVICES:
            return f"segment '{segment}' is a reserved device name"
    return None


class WindowsPathChecker:
    """Logs a warning once per distinct problematic output path."""

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def check(self, path: str) -> str | None:
        issue = windows_path_issue(path)
        if issue is None or path in self._seen:
            return issue
        self._seen.add(path)
        logger.warning("Output path %s is not portable to Windows: %s", path, issue)
        return issue


__all__ = [
    "Route",
    "resolve_route",
    "normalize_url",
    "normalize_output_path",
    "encode_output_path",
    "sanitize_segment",
    "slugify",
    "windows_path_issue",
    "WindowsPathChecker",
    "OUTPUT_PATH_ENCODINGS",
    "POST_TEMPLATE",
    "PAGE_TEMPLATE",
    "INDEX_TEMPLATE",
    "LIST_TEMPLATE",
    "HOME_ROUTE",
    "BLOG_INDEX_ROUTE",
    "PAGES_INDEX_ROUTE",
    "LIST_ROUTES",
]
