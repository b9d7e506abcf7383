"""Site build orchestration.

One build loads content once, then runs a variant per configured language
(or a single variant when no languages are set). Each variant routes its
items, runs the plugin pipeline, renders the render queue through the
incremental cache and finally writes its manifest. Artifacts that span
variants (sitemap, feed, search index) are reconciled at the end.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sitegen.config import AppConfig, BuildOverrides, apply_overrides
from sitegen.content.gateway import ContentGateway, create_gateway
from sitegen.content.models import ContentItem
from sitegen.errors import BuildCancelled, ConfigError, SiteGenError, VariantBuildError
from sitegen.incremental.cache import IncrementalCache
from sitegen.incremental.fingerprints import content_hash, plugins_hash, route_hash
from sitegen.incremental.manifest import manifest_path
from sitegen.lib.concurrency import check_cancelled
from sitegen.lib.hashing import hash_directory
from sitegen.lib.log import get_logger, variant_logger
from sitegen.plugins.base import BuildContext, PluginExecution
from sitegen.plugins.registry import PluginRegistry
from sitegen.plugins.runner import PluginRunner
from sitegen.rendering.models import ListPageModel, ModuleInfo, PageInfo, PageModel, SiteModel
from sitegen.rendering.renderer import RenderGateway, TemplateRenderer
from sitegen.routing import (
    BLOG_INDEX_ROUTE,
    HOME_ROUTE,
    PAGES_INDEX_ROUTE,
    Route,
    WindowsPathChecker,
    normalize_output_path,
    resolve_route,
)
from sitegen.site.artifacts import blog_posts, normalize_base_url
from sitegen.site.i18n import reconcile_variants
from sitegen.site.metrics import write_metrics

logger = get_logger(__name__)

CACHE_DIRNAME = ".cache"
DEFAULT_MODULE_TYPE = "module"


@dataclass
class SitePaths:
    root: Path
    output: Path
    layouts: Path
    assets: Path
    static: Path
    cache: Path


@dataclass(frozen=True)
class VariantPlan:
    language: str
    base_url: str
    output_dir: Path
    manifest: Path
    localized: bool


@dataclass
class VariantResult:
    """Counters for one variant; ``lists`` counts the always-rendered list views."""

    language: str
    base_url: str
    output_dir: Path
    routed: int = 0
    derived: int = 0
    rendered: int = 0
    skipped: int = 0
    lists: int = 0
    reasons: dict[str, int] = field(default_factory=dict)
    plugin_executions: list[PluginExecution] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "baseUrl": self.base_url,
            "outputDir": str(self.output_dir),
            "routed": self.routed,
            "derived": self.derived,
            "rendered": self.rendered,
            "skipped": self.skipped,
            "lists": self.lists,
            "reasons": dict(sorted(self.reasons.items())),
            "plugins": [execution.to_dict() for execution in self.plugin_executions],
        }


@dataclass
class BuildReport:
    output_dir: Path
    content_items: int
    variants: list[VariantResult] = field(default_factory=list)

    @property
    def rendered(self) -> int:
        return sum(variant.rendered for variant in self.variants)

    @property
    def skipped(self) -> int:
        return sum(variant.skipped for variant in self.variants)

    def variant(self, language: str) -> VariantResult:
        for result in self.variants:
            if result.language.casefold() == language.casefold():
                return result
        raise KeyError(language)


def copy_directory(source: Path, destination: Path) -> int:
    """Copy every file under ``source`` into ``destination``; returns the file count."""
    if not source.is_dir():
        return 0
    count = 0
    for path in sorted(source.rglob("*")):
        if not path.is_file():
            continue
        target = destination / path.relative_to(source)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target)
        count += 1
    return count


def _field_text(item: ContentItem, key: str) -> str | None:
    return item.fields.get_text(key) or item.meta.get_text(key)


def item_in_variant(item: ContentItem, language: str, default_language: str) -> bool:
    """Data items match on ``locale``; content items on ``language`` meta.

    Content without a language belongs to the default language only.
    """
    if item.is_data:
        locale = _field_text(item, "locale")
        return not locale or locale.strip().casefold() == language.casefold()
    item_language = item.meta.get_text("language")
    if item_language:
        return item_language.strip().casefold() == language.casefold()
    return language.casefold() == default_language.casefold()


def build_modules(data_items: list[ContentItem]) -> dict[str, list[ModuleInfo]]:
    """Group data items by ``type``, ordered by the ``order`` field, then title."""
    grouped: dict[str, list[ContentItem]] = {}
    names: dict[str, str] = {}
    for item in data_items:
        enabled = item.fields.get_bool("enabled")
        if enabled is None:
            enabled = item.meta.get_bool("enabled")
        if enabled is False:
            continue
        module_type = (item.type or "").strip() or DEFAULT_MODULE_TYPE
        folded = module_type.casefold()
        names.setdefault(folded, module_type)
        grouped.setdefault(folded, []).append(item)

    modules: dict[str, list[ModuleInfo]] = {}
    for folded, items in grouped.items():
        items.sort(key=lambda item: (item.fields.get_number("order") or 0.0, item.title.casefold()))
        modules[names[folded]] = [
            ModuleInfo(
                id=item.id,
                title=item.title,
                type=names[folded],
                content=item.content_html,
                fields=item.fields.to_python(),
            )
            for item in items
        ]
    return modules


class SiteBuilder:
    """Build a site from its configuration.

    Args:
        config: Validated site configuration.
        root_dir: Site directory; relative paths in the config resolve here.
        overrides: Command-line overrides applied on top of ``config``.
        gateway: Content gateway; built from the config when omitted.
        renderer_factory: ``layouts_dir -> RenderGateway``; Jinja2 by default.
        registry: Plugin registry; built-ins, entry points and ``plugins/`` by default.
    """

    def __init__(
        self,
        config: AppConfig,
        root_dir: Path,
        overrides: BuildOverrides | None = None,
        gateway: ContentGateway | None = None,
        renderer_factory: Callable[[Path], RenderGateway] | None = None,
        registry: PluginRegistry | None = None,
    ) -> None:
        self.root_dir = Path(root_dir).resolve()
        self.overrides = overrides or BuildOverrides()
        self.config = apply_overrides(config, overrides)
        self.gateway = gateway
        self.renderer_factory = renderer_factory or TemplateRenderer
        self.registry = registry or PluginRegistry.for_site(self.root_dir)
        self.runner = PluginRunner(self.registry)
        self.paths = self._resolve_paths()

    def _resolve_paths(self) -> SitePaths:
        def resolve(value: str) -> Path:
            path = Path(value)
            return path if path.is_absolute() else self.root_dir / path

        theme = self.config.theme
        theme_root = self.root_dir / "themes" / theme.name if theme.name else None
        defaults = type(theme)()

        def theme_dir(value: str, default: str) -> Path:
            if theme_root is not None and value == default:
                return theme_root / default
            return resolve(value)

        output = resolve(self.config.build.output).resolve()
        if output == self.root_dir or output in self.root_dir.parents:
            raise ConfigError(f"build.output must not contain the site directory: {output}")
        cache = resolve(self.overrides.cache_dir) if self.overrides.cache_dir else self.root_dir / CACHE_DIRNAME
        return SitePaths(
            root=self.root_dir,
            output=output,
            layouts=theme_dir(theme.layouts, defaults.layouts),
            assets=theme_dir(theme.assets, defaults.assets),
            static=theme_dir(theme.static, defaults.static),
            cache=cache,
        )

    # -- build -------------------------------------------------------------

    def build(self, cancel: threading.Event | None = None) -> BuildReport:
        site = self.config.site
        paths = self.paths
        logger.info("Building %s into %s", site.name, paths.output)

        if self.config.build.clean and paths.output.exists():
            logger.info("Cleaning %s", paths.output)
            shutil.rmtree(paths.output)
        paths.output.mkdir(parents=True, exist_ok=True)

        template_hash = hash_directory(paths.layouts)
        renderer = self.renderer_factory(paths.layouts)

        gateway = self.gateway or create_gateway(self.config, self.root_dir)
        items = gateway.load(cancel)
        logger.info("Loaded %d content items", len(items))

        report = BuildReport(output_dir=paths.output, content_items=len(items))
        contexts: list[BuildContext] = []
        default_language = self.default_language()
        checker = WindowsPathChecker()
        for plan in self.plan_variants():
            try:
                result, context = self._build_variant(
                    plan, items, renderer, template_hash, default_language, checker, cancel
                )
            except BuildCancelled:
                raise
            except VariantBuildError:
                raise
            except SiteGenError as exc:
                raise VariantBuildError(plan.language, str(exc)) from exc
            except Exception as exc:
                raise VariantBuildError(plan.language, f"{type(exc).__name__}: {exc}") from exc
            report.variants.append(result)
            contexts.append(context)

        if site.languages:
            reconcile_variants(self.config, paths.output, contexts, default_language)

        if self.overrides.metrics_path:
            metrics_file = Path(self.overrides.metrics_path)
            if not metrics_file.is_absolute():
                metrics_file = self.root_dir / metrics_file
            write_metrics(metrics_file, self.config, report, default_language)

        logger.info("Build complete: rendered=%d skipped=%d", report.rendered, report.skipped)
        return report

    def default_language(self) -> str:
        site = self.config.site
        if not site.languages:
            return site.language
        if site.default_language:
            for language in site.languages:
                if language.casefold() == site.default_language.strip().casefold():
                    return language
        return site.languages[0]

    def plan_variants(self) -> list[VariantPlan]:
        site = self.config.site
        cache = self.paths.cache
        root_base = normalize_base_url(site.base_url)
        if not site.languages:
            return [VariantPlan(site.language, root_base, self.paths.output, manifest_path(cache), False)]

        prefix = "" if root_base == "/" else root_base
        return [
            VariantPlan(
                language=language,
                base_url=f"{prefix}/{language}",
                output_dir=self.paths.output / language,
                manifest=manifest_path(cache, language),
                localized=True,
            )
            for language in site.languages
        ]

    def _build_variant(
        self,
        plan: VariantPlan,
        items: list[ContentItem],
        renderer: RenderGateway,
        template_hash: str,
        default_language: str,
        checker: WindowsPathChecker,
        cancel: threading.Event | None,
    ) -> tuple[VariantResult, BuildContext]:
        site = self.config.site
        log = variant_logger(__name__, plan.language)
        log.info("Building variant %s at %s", plan.language, plan.base_url)

        output_dir = plan.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        copied = copy_directory(self.paths.static, output_dir)
        if copied:
            log.debug("Copied %d static files", copied)

        data_items: list[ContentItem] = []
        content_items: list[ContentItem] = []
        for item in items:
            check_cancelled(cancel, plan.language)
            if plan.localized and not item_in_variant(item, plan.language, default_language):
                continue
            (data_items if item.is_data else content_items).append(item)

        context = BuildContext(
            config=self.config,
            root_dir=self.root_dir,
            output_dir=output_dir,
            base_url=plan.base_url,
            layouts_dir=self.paths.layouts,
            language=plan.language,
            default_language=default_language if plan.localized else None,
            logger=log,
        )
        for item in content_items:
            check_cancelled(cancel, plan.language)
            context.routed.append((item, resolve_route(item, site.output_path_encoding)))

        for page in self.runner.run_derive_pages(context):
            check_cancelled(cancel, plan.language)
            context.derived_routed.append((page.item, page.route))
            context.derived_routes.append((page.route, page.last_modified))

        cache = IncrementalCache(
            plan.manifest,
            template_hash=template_hash,
            plugins_hash=plugins_hash(self.runner.identities(context)),
            enabled=self.overrides.incremental,
        )
        cache.load()

        site_model = SiteModel(
            name=site.name,
            title=site.title,
            url=site.url,
            description=site.description,
            base_url=plan.base_url,
            language=plan.language,
            params=dict(self.config.theme.params),
            modules=build_modules(data_items),
            data=dict(context.data),
        )
        result = VariantResult(
            language=plan.language,
            base_url=plan.base_url,
            output_dir=output_dir,
            routed=len(context.routed),
            derived=len(context.derived_routed),
        )

        queue = [(item, route, False) for item, route in context.routed]
        queue += [(item, route, True) for item, route in context.derived_routed]
        seen: dict[str, str] = {}
        for item, route, derived in queue:
            check_cancelled(cancel, plan.language)
            key = normalize_output_path(route.output_path)
            duplicate = key in seen
            if duplicate:
                log.warning("Duplicate output path %s (%s and %s); last one wins", key, seen[key], item.id)
            seen[key] = item.id
            checker.check(key)

            fingerprint = content_hash(item)
            rhash = route_hash(route)
            decision = cache.decide(
                key,
                output_dir / key,
                content_hash=fingerprint,
                route_hash=rhash,
                derived=derived,
                force=duplicate,
            )
            if decision.skip:
                result.skipped += 1
                continue
            html = renderer.render_page(route.template, PageModel(site_model, PageInfo.from_item(item, route)))
            _write(output_dir / key, html)
            cache.record(key, route, content_hash=fingerprint, route_hash=rhash)
            result.rendered += 1

        result.lists = self._render_lists(renderer, site_model, context.routed, output_dir)

        assets = copy_directory(self.paths.assets, output_dir / "assets")
        if assets:
            log.debug("Copied %d asset files", assets)

        self.runner.run_after_build(context)

        if cache.enabled:
            cache.prune(set(seen))
            cache.save()
        result.reasons = dict(cache.reasons)
        result.plugin_executions = list(context.plugin_executions)
        log.info(
            "Variant %s done: rendered=%d skipped=%d derived=%d",
            plan.language,
            result.rendered,
            result.skipped,
            result.derived,
        )
        return result, context

    @staticmethod
    def _render_lists(
        renderer: RenderGateway,
        site_model: SiteModel,
        routed: list[tuple[ContentItem, Route]],
        output_dir: Path,
    ) -> int:
        newest_first = sorted(routed, key=lambda pair: pair[0].publish_at, reverse=True)
        pages = [pair for pair in newest_first if pair[1].url.lower().startswith("/pages/")]
        lists = (
            (HOME_ROUTE, newest_first),
            (BLOG_INDEX_ROUTE, blog_posts(routed)),
            (PAGES_INDEX_ROUTE, pages),
        )
        for route, source in lists:
            model = ListPageModel(site_model, [PageInfo.from_item(item, page_route) for item, page_route in source])
            _write(output_dir / route.output_path, renderer.render_list(route.template, model))
        return len(lists)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


__all__ = [
    "BuildReport",
    "SiteBuilder",
    "SitePaths",
    "VariantPlan",
    "VariantResult",
    "build_modules",
    "copy_directory",
    "item_in_variant",
]
