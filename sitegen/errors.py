"""sitegen error hierarchy.

All project exceptions inherit from SiteGenError, enabling:
- ``except SiteGenError`` at top-level boundaries (CLI)
- Fine-grained catches deeper in the stack (``except RenderError``)

Hierarchy:
    SiteGenError                            # this module
    ├── ConfigError                         # config.py
    ├── ContentError                        # content/
    ├── RenderError                         # rendering/renderer.py
    ├── PluginError                         # plugins/runner.py
    ├── BuildCancelled                      # site/builder.py
    └── VariantBuildError                   # site/builder.py
"""

from __future__ import annotations


class SiteGenError(Exception):
    """Base class for all sitegen errors."""


class ConfigError(SiteGenError):
    """Invalid or missing configuration. Raised before any output is written."""


class ContentError(SiteGenError):
    """A content gateway failed to load content."""


class RenderError(SiteGenError):
    """A template could not be found or failed to render."""

    def __init__(self, message: str, *, template: str | None = None) -> None:
        super().__init__(message)
        self.template = template


class PluginError(SiteGenError):
    """A plugin hook raised while the fail mode is strict."""

    def __init__(self, plugin: str, hook: str, message: str) -> None:
        super().__init__(f"Plugin {plugin} failed during {hook}: {message}")
        self.plugin = plugin
        self.hook = hook


class BuildCancelled(SiteGenError):
    """The caller requested cancellation of a running build."""

    def __init__(self, language: str | None = None) -> None:
        where = f" (variant {language})" if language else ""
        super().__init__(f"Build cancelled{where}")
        self.language = language


class VariantBuildError(SiteGenError):
    """A fatal error while building one language variant."""

    def __init__(self, language: str, message: str) -> None:
        super().__init__(f"[{language}] {message}")
        self.language = language


__all__ = [
    "SiteGenError",
    "ConfigError",
    "ContentError",
    "RenderError",
    "PluginError",
    "BuildCancelled",
    "VariantBuildError",
]
