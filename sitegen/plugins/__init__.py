"""Plugin contracts, discovery and execution."""

from __future__ import annotations

from sitegen.plugins.base import (
    AFTER_BUILD,
    DERIVE_PAGES,
    BuildContext,
    DerivedPage,
    Plugin,
    PluginCapabilities,
    PluginExecution,
    SitePlugin,
)
from sitegen.plugins.registry import PluginRegistration, PluginRegistry, register_plugin
from sitegen.plugins.runner import PluginRunner

__all__ = [
    "AFTER_BUILD",
    "DERIVE_PAGES",
    "BuildContext",
    "DerivedPage",
    "Plugin",
    "PluginCapabilities",
    "PluginExecution",
    "PluginRegistration",
    "PluginRegistry",
    "PluginRunner",
    "SitePlugin",
    "register_plugin",
]
