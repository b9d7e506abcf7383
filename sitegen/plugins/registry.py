"""Plugin discovery.

Sources are consulted in a fixed order and de-duplicated on
``name@version`` (case-insensitive); the first occurrence wins:

1. ``builtin``      plugins shipped with sitegen
2. ``registered``   classes decorated with ``@register_plugin``
3. ``entry-points`` the ``sitegen.plugins`` entry point group
4. ``external``     ``*.py`` modules in ``<site root>/plugins/``
"""

from __future__ import annotations

import importlib.util
import inspect
import sys
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from importlib.metadata import entry_points
from pathlib import Path
from typing import Any

from sitegen.lib.log import get_logger
from sitegen.plugins.base import Plugin, PluginCapabilities

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "sitegen.plugins"
EXTERNAL_DIR = "plugins"

_registered: list[type] = []


def register_plugin(cls: type) -> type:
    """Class decorator adding a plugin to the static registry."""
    if cls not in _registered:
        _registered.append(cls)
    return cls


@dataclass(frozen=True)
class PluginRegistration:
    plugin: Plugin
    source: str
    capabilities: PluginCapabilities

    @property
    def name(self) -> str:
        return self.plugin.name

    @property
    def version(self) -> str:
        return self.plugin.version

    @property
    def identity(self) -> str:
        return f"{self.plugin.name}@{self.plugin.version}"


def _instantiate(candidate: Any) -> Plugin | None:
    if inspect.isclass(candidate):
        candidate = candidate()
    elif callable(candidate) and not isinstance(candidate, Plugin):
        candidate = candidate()
    if not isinstance(candidate, Plugin) or not candidate.name:
        return None
    return candidate


def _is_plugin_class(obj: Any, module_name: str) -> bool:
    if not inspect.isclass(obj) or obj.__module__ != module_name:
        return False
    name = getattr(obj, "name", None)
    if not isinstance(name, str) or not name:
        return False
    return callable(getattr(obj, "derive_pages", None)) or callable(getattr(obj, "after_build", None))


def builtin_source() -> Iterator[Plugin]:
    from sitegen.plugins.builtin import builtin_plugins

    yield from builtin_plugins()


def registered_source() -> Iterator[Plugin]:
    for cls in list(_registered):
        plugin = _instantiate(cls)
        if plugin is not None:
            yield plugin


def entry_point_source(group: str = ENTRY_POINT_GROUP) -> Iterator[Plugin]:
    for entry in entry_points(group=group):
        try:
            plugin = _instantiate(entry.load())
        except Exception as exc:
            logger.warning("Failed to load plugin entry point %s: %s", entry.name, exc)
            continue
        if plugin is None:
            logger.warning("Entry point %s does not provide a plugin", entry.name)
            continue
        yield plugin


def external_source(root_dir: Path) -> Iterator[Plugin]:
    """Load plugin classes from ``<root>/plugins/*.py``; failures are logged and skipped."""
    plugin_dir = Path(root_dir) / EXTERNAL_DIR
    if not plugin_dir.is_dir():
        return
    for path in sorted(plugin_dir.glob("*.py"), key=lambda p: p.name.casefold()):
        if path.name.startswith("_"):
            continue
        module_name = f"sitegen_external_plugins.{path.stem}"
        try:
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise ImportError(f"cannot load {path}")
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            logger.warning("Failed to load external plugin module %s: %s", path, exc)
            continue

        for _, obj in inspect.getmembers(module, lambda o: _is_plugin_class(o, module_name)):
            try:
                plugin = _instantiate(obj)
            except Exception as exc:
                logger.warning("Failed to create plugin %s from %s: %s", obj.__name__, path, exc)
                continue
            if plugin is not None:
                yield plugin


class PluginRegistry:
    """Ordered, de-duplicated plugin list for a site."""

    def __init__(self, sources: Iterable[tuple[str, Callable[[], Iterable[Plugin]]]]) -> None:
        self._sources = list(sources)
        self._registrations: list[PluginRegistration] | None = None

    @classmethod
    def for_site(cls, root_dir: Path, *, entry_point_group: str | None = ENTRY_POINT_GROUP) -> PluginRegistry:
        sources: list[tuple[str, Callable[[], Iterable[Plugin]]]] = [
            ("builtin", builtin_source),
            ("registered", registered_source),
        ]
        if entry_point_group:
            sources.append(("entry-points", lambda: entry_point_source(entry_point_group)))
        sources.append(("external", lambda: external_source(root_dir)))
        return cls(sources)

    @classmethod
    def from_plugins(cls, plugins: Iterable[Plugin], source: str = "custom") -> PluginRegistry:
        plugins = list(plugins)
        return cls([(source, lambda: plugins)])

    def registrations(self) -> list[PluginRegistration]:
        if self._registrations is None:
            self._registrations = self._discover()
        return list(self._registrations)

    def _discover(self) -> list[PluginRegistration]:
        seen: set[str] = set()
        found: list[PluginRegistration] = []
        for source, factory in self._sources:
            for plugin in factory():
                registration = PluginRegistration(plugin, source, PluginCapabilities.detect(plugin))
                key = registration.identity.casefold()
                if key in seen:
                    logger.debug("Ignoring duplicate plugin %s from %s", registration.identity, source)
                    continue
                seen.add(key)
                found.append(registration)
        return found

    def enabled(self, is_enabled: Callable[[str], bool]) -> list[PluginRegistration]:
        return [registration for registration in self.registrations() if is_enabled(registration.name)]


__all__ = [
    "PluginRegistration",
    "PluginRegistry",
    "register_plugin",
    "builtin_source",
    "registered_source",
    "entry_point_source",
    "external_source",
    "ENTRY_POINT_GROUP",
]
