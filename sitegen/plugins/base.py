"""Plugin contracts and the per-variant build context.

A plugin is any object with ``name`` and ``version`` attributes that
implements one or both hooks:

- ``derive_pages(context) -> list[DerivedPage]`` runs after routing and
  adds synthesized pages to the render queue.
- ``after_build(context) -> None`` runs once every page is written and
  may emit extra artifacts into ``context.output_dir``.

Capabilities are detected once, at registration, and carried in a
``PluginCapabilities`` descriptor.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sitegen.content.models import ContentItem
from sitegen.routing import Route

if TYPE_CHECKING:
    from sitegen.config import AppConfig

DERIVE_PAGES = "derive-pages"
AFTER_BUILD = "after-build"


@dataclass(frozen=True)
class DerivedPage:
    item: ContentItem
    route: Route
    last_modified: datetime


@dataclass(frozen=True)
class PluginExecution:
    name: str
    hook: str
    duration_ms: float
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "hook": self.hook,
            "durationMs": round(self.duration_ms, 3),
            "success": self.success,
            "error": self.error,
        }


class CaseInsensitiveDict(MutableMapping):
    """Plugin data bag: string keys compare case-insensitively."""

    def __init__(self, source: Mapping[str, Any] | None = None) -> None:
        self._store: dict[str, tuple[str, Any]] = {}
        if source:
            self.update(source)

    def __setitem__(self, key: str, value: Any) -> None:
        folded = key.casefold()
        display = self._store[folded][0] if folded in self._store else key
        self._store[folded] = (display, value)

    def __getitem__(self, key: str) -> Any:
        return self._store[key.casefold()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"CaseInsensitiveDict({dict(self.items())!r})"


@dataclass
class BuildContext:
    """Mutable state for one variant, shared by every plugin hook."""

    config: AppConfig
    root_dir: Path
    output_dir: Path
    base_url: str
    layouts_dir: Path
    language: str
    default_language: str | None = None
    routed: list[tuple[ContentItem, Route]] = field(default_factory=list)
    derived_routed: list[tuple[ContentItem, Route]] = field(default_factory=list)
    derived_routes: list[tuple[Route, datetime]] = field(default_factory=list)
    plugin_executions: list[PluginExecution] = field(default_factory=list)
    data: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    logger: Any = None

    @property
    def url_prefix(self) -> str:
        """Base URL without the trailing slash; empty for the root."""
        return "" if self.base_url == "/" else self.base_url.rstrip("/")

    def site_url(self, url: str) -> str:
        """Prefix a route URL with the variant base URL."""
        return f"{self.url_prefix}{url}"

    @property
    def languages_configured(self) -> bool:
        return bool(self.config.site.languages)


@runtime_checkable
class Plugin(Protocol):
    name: str
    version: str


@runtime_checkable
class DerivesPages(Protocol):
    def derive_pages(self, context: BuildContext) -> list[DerivedPage]:
        ...


@runtime_checkable
class RunsAfterBuild(Protocol):
    def after_build(self, context: BuildContext) -> None:
        ...


@dataclass(frozen=True)
class PluginCapabilities:
    derive_pages: bool
    after_build: bool

    @classmethod
    def detect(cls, plugin: object) -> PluginCapabilities:
        return cls(
            derive_pages=isinstance(plugin, DerivesPages),
            after_build=isinstance(plugin, RunsAfterBuild),
        )

    def describe(self) -> str:
        hooks = [hook for hook, enabled in ((DERIVE_PAGES, self.derive_pages), (AFTER_BUILD, self.after_build)) if enabled]
        return ", ".join(hooks) or "none"


class SitePlugin:
    """Convenience base class; subclasses set ``name`` and ``version``."""

    name: str = ""
    version: str = "0.0.0"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}@{self.version})"


__all__ = [
    "AFTER_BUILD",
    "DERIVE_PAGES",
    "BuildContext",
    "CaseInsensitiveDict",
    "DerivedPage",
    "DerivesPages",
    "Plugin",
    "PluginCapabilities",
    "PluginExecution",
    "RunsAfterBuild",
    "SitePlugin",
]
