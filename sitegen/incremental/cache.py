"""Per-variant skip/render decisions backed by the build manifest."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from sitegen.incremental.manifest import BuildManifest, ManifestEntry, load_manifest, save_manifest
from sitegen.lib.log import get_logger
from sitegen.routing import Route

logger = get_logger(__name__)

UNCHANGED = "unchanged"
NEW_PAGE = "new_page"
OUTPUT_MISSING = "output_missing"
TEMPLATE_CHANGED = "template_changed"
CONTENT_CHANGED = "content_changed"
ROUTE_CHANGED = "route_changed"
PLUGINS_CHANGED = "plugins_changed"
FORCED = "forced"
FULL_RENDER = "full_render"


@dataclass(frozen=True)
class RenderDecision:
    skip: bool
    reason: str


class IncrementalCache:
    """Decides per output path whether the previous artifact is still valid.

    A page is skipped only when its content, route and template fingerprints
    all equal the stored entry and the output file still exists. With
    ``enabled`` off every page renders and the manifest is neither read nor
    written.
    """

    def __init__(
        self,
        path: Path,
        *,
        template_hash: str,
        plugins_hash: str = "",
        enabled: bool = True,
    ) -> None:
        self.path = Path(path)
        self.template_hash = template_hash
        self.plugins_hash = plugins_hash
        self.enabled = enabled
        self.previous = BuildManifest()
        self.current = BuildManifest(template_hash=template_hash, plugins_hash=plugins_hash)
        self.reasons: Counter[str] = Counter()

    def load(self) -> BuildManifest:
        if self.enabled:
            self.previous = load_manifest(self.path)
            self.current = BuildManifest(
                template_hash=self.template_hash,
                plugins_hash=self.plugins_hash,
                entries=dict(self.previous.entries),
            )
        return self.previous

    def decide(
        self,
        key: str,
        output_file: Path,
        *,
        content_hash: str,
        route_hash: str,
        derived: bool = False,
        force: bool = False,
    ) -> RenderDecision:
        decision = self._decide(key, output_file, content_hash, route_hash, derived, force)
        self.reasons[decision.reason] += 1
        return decision

    def _decide(
        self, key: str, output_file: Path, content_hash: str, route_hash: str, derived: bool, force: bool
    ) -> RenderDecision:
        if not self.enabled:
            return RenderDecision(False, FULL_RENDER)
        if force:
            return RenderDecision(False, FORCED)
        entry = self.previous.entries.get(key)
        if entry is None:
            return RenderDecision(False, NEW_PAGE)
        if not output_file.is_file():
            return RenderDecision(False, OUTPUT_MISSING)
        if entry.template_hash != self.template_hash:
            return RenderDecision(False, TEMPLATE_CHANGED)
        if entry.content_hash != content_hash:
            return RenderDecision(False, CONTENT_CHANGED)
        if entry.route_hash != route_hash:
            return RenderDecision(False, ROUTE_CHANGED)
        if derived and self.previous.plugins_hash != self.plugins_hash:
            return RenderDecision(False, PLUGINS_CHANGED)
        return RenderDecision(True, UNCHANGED)

    def record(self, key: str, route: Route, *, content_hash: str, route_hash: str) -> None:
        if not self.enabled:
            return
        self.current.entries[key] = ManifestEntry(
            output_path=route.output_path,
            url=route.url,
            template=route.template,
            content_hash=content_hash,
            route_hash=route_hash,
            template_hash=self.template_hash,
        )

    def prune(self, current_keys: set[str]) -> list[str]:
        """Drop entries whose output path left the render queue."""
        stale = sorted(key for key in self.current.entries if key not in current_keys)
        for key in stale:
            del self.current.entries[key]
        if stale:
            logger.info("Pruned %d stale manifest entries", len(stale))
        return stale

    def save(self) -> None:
        if self.enabled:
            save_manifest(self.path, self.current)


__all__ = [
    "IncrementalCache",
    "RenderDecision",
    "UNCHANGED",
    "NEW_PAGE",
    "OUTPUT_MISSING",
    "TEMPLATE_CHANGED",
    "CONTENT_CHANGED",
    "ROUTE_CHANGED",
    "PLUGINS_CHANGED",
    "FORCED",
    "FULL_RENDER",
]
