"""Execute plugin hooks with timing, enable toggles and fail-mode handling."""

from __future__ import annotations

import time
from datetime import datetime

from sitegen.content.models import ContentItem
from sitegen.errors import BuildCancelled, PluginError
from sitegen.lib.log import get_logger
from sitegen.plugins.base import AFTER_BUILD, DERIVE_PAGES, BuildContext, DerivedPage, PluginExecution
from sitegen.plugins.registry import PluginRegistration, PluginRegistry
from sitegen.routing import Route

logger = get_logger(__name__)


def _as_derived_page(value: object) -> DerivedPage:
    """Accept a ``DerivedPage`` or an ``(item, route, last_modified)`` triple."""
    page = DerivedPage(*value) if isinstance(value, tuple) and len(value) == 3 else value
    if (
        isinstance(page, DerivedPage)
        and isinstance(page.item, ContentItem)
        and isinstance(page.route, Route)
        and isinstance(page.last_modified, datetime)
    ):
        return page
    raise TypeError(f"derive_pages returned {type(value).__name__}, expected DerivedPage or (item, route, datetime)")


class PluginRunner:
    """Runs the derive-pages and after-build phases for one variant.

    Each invocation appends a ``PluginExecution`` to the context. When a
    plugin raises, the failure is recorded and logged, then either re-raised
    as ``PluginError`` (``site.pluginFailMode: strict``) or dropped so the
    build continues without that plugin's output (``warn``).
    """

    def __init__(self, registry: PluginRegistry) -> None:
        self.registry = registry

    def active(self, context: BuildContext) -> list[PluginRegistration]:
        return self.registry.enabled(context.config.site.plugin_enabled)

    def identities(self, context: BuildContext) -> list[str]:
        return [registration.identity for registration in self.active(context)]

    def run_derive_pages(self, context: BuildContext) -> list[DerivedPage]:
        derived: list[DerivedPage] = []
        for registration in self.active(context):
            if not registration.capabilities.derive_pages:
                continue
            pages = self._invoke(context, registration, DERIVE_PAGES)
            if pages:
                derived.extend(pages)
        return derived

    def run_after_build(self, context: BuildContext) -> None:
        for registration in self.active(context):
            if registration.capabilities.after_build:
                self._invoke(context, registration, AFTER_BUILD)

    def _invoke(self, context: BuildContext, registration: PluginRegistration, hook: str):
        log = context.logger or logger
        plugin = registration.plugin
        started = time.perf_counter()
        try:
            if hook == DERIVE_PAGES:
                result = [_as_derived_page(page) for page in plugin.derive_pages(context) or []]
            else:
                result = plugin.after_build(context)
        except BuildCancelled:
            raise
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            context.plugin_executions.append(
                PluginExecution(registration.name, hook, elapsed, False, f"{type(exc).__name__}: {exc}")
            )
            log.error("Plugin %s failed during %s after %.1fms: %s", registration.identity, hook, elapsed, exc)
            if context.config.site.plugin_fail_mode != "warn":
                raise PluginError(registration.name, hook, str(exc)) from exc
            return None

        elapsed = (time.perf_counter() - started) * 1000
        context.plugin_executions.append(PluginExecution(registration.name, hook, elapsed, True))
        if hook == DERIVE_PAGES:
            log.info("Plugin %s derived %d pages in %.1fms", registration.identity, len(result), elapsed)
        else:
            log.info("Plugin %s finished %s in %.1fms", registration.identity, hook, elapsed)
        return result


__all__ = ["PluginRunner"]
