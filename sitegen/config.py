"""Site configuration: models, loading, validation and CLI overrides.

Configuration files are YAML (or JSON) with camelCase keys::

    site:
      name: demo
      title: Demo Site
      url: https://example.com
      baseUrl: /
      languages: [en, zh-CN]
      defaultLanguage: en
      sitemapMode: merged
    content:
      provider: markdown
      markdown:
        dir: content
    build:
      output: dist

Every validation failure is reported as a ConfigError before anything
touches the output directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from sitegen.errors import ConfigError
from sitegen.lib.json import JSONDecodeError, loads
from sitegen.routing import OUTPUT_PATH_ENCODINGS

CONFIG_FILENAMES = ("site.yaml", "site.yml", "site.json")
AGGREGATION_MODES = ("split", "merged", "index")
PLUGIN_FAIL_MODES = ("strict", "warn")
SOURCE_MODES = ("content", "data")
SOURCE_TYPES = ("markdown",)
TAXONOMY_OUTPUT_MODES = ("both", "pages", "data", "fields_only")


class _Model(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PluginToggle(_Model):
    enabled: bool = True


class SiteSettings(_Model):
    name: str
    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    auto_summary: bool = False
    auto_summary_max_length: int = Field(default=200, ge=1, le=5000)
    base_url: str = "/"
    output_path_encoding: str = "none"
    language: str = "zh-CN"
    languages: Optional[List[str]] = None
    default_language: Optional[str] = None
    sitemap_mode: str = "split"
    rss_mode: str = "split"
    search_mode: str = "split"
    search_include_derived: bool = False
    plugin_fail_mode: str = "strict"
    timezone: str = "UTC"
    plugins: Dict[str, PluginToggle] = Field(default_factory=dict)

    @field_validator("name", "title")
    @classmethod
    def _required_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("site.url must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, value: str) -> str:
        value = (value or "UTC").strip()
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @field_validator("base_url")
    @classmethod
    def _base_url(cls, value: str) -> str:
        value = (value or "/").strip()
        if not value.startswith("/"):
            raise ValueError("site.baseUrl must start with '/'")
        return value

    @field_validator("output_path_encoding", "sitemap_mode", "rss_mode", "search_mode", "plugin_fail_mode")
    @classmethod
    def _lower(cls, value: str) -> str:
        return (value or "").strip().lower()

    @field_validator("plugins", mode="before")
    @classmethod
    def _plugin_toggles(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {name: {"enabled": toggle} if isinstance(toggle, bool) else toggle for name, toggle in value.items()}

    @model_validator(mode="after")
    def _check_modes(self) -> "SiteSettings":
        if self.output_path_encoding not in OUTPUT_PATH_ENCODINGS:
            raise ValueError(f"site.outputPathEncoding must be one of {', '.join(OUTPUT_PATH_ENCODINGS)}")
        for name in ("sitemap_mode", "rss_mode", "search_mode"):
            if getattr(self, name) not in AGGREGATION_MODES:
                raise ValueError(f"site.{to_camel(name)} must be split, merged, or index")
        if self.plugin_fail_mode not in PLUGIN_FAIL_MODES:
            raise ValueError("site.pluginFailMode must be strict or warn")

        if self.languages is not None:
            languages = [lang.strip() for lang in self.languages if lang and lang.strip()]
            if not languages:
                raise ValueError("site.languages must not be empty when set")
            folded = [lang.casefold() for lang in languages]
            if len(set(folded)) != len(folded):
                raise ValueError("site.languages contains duplicates")
            self.languages = languages
            if self.default_language and self.default_language.strip().casefold() not in folded:
                raise ValueError("site.defaultLanguage must be one of site.languages")
        return self

    def plugin_enabled(self, name: str) -> bool:
        """Plugins absent from the toggle map are enabled."""
        for key, toggle in self.plugins.items():
            if key.casefold() == name.casefold():
                return toggle.enabled
        return True


class MarkdownSettings(_Model):
    dir: str = "content"
    default_type: str = "page"
    max_items: Optional[int] = Field(default=None, ge=1)
    include_paths: Optional[List[str]] = None
    include_globs: Optional[List[str]] = None


class ContentSourceSettings(_Model):
    type: str
    name: Optional[str] = None
    mode: str = "content"
    markdown: Optional[MarkdownSettings] = None

    @model_validator(mode="after")
    def _check_source(self) -> "ContentSourceSettings":
        self.type = self.type.strip().lower()
        self.mode = (self.mode or "content").strip().lower()
        if self.type not in SOURCE_TYPES:
            raise ValueError(f"content source type '{self.type}' is not supported")
        if self.mode not in SOURCE_MODES:
            raise ValueError("content source mode must be content or data")
        return self


class ContentSettings(_Model):
    provider: str = "markdown"
    sources: Optional[List[ContentSourceSettings]] = None
    markdown: Optional[MarkdownSettings] = None

    @model_validator(mode="after")
    def _check_provider(self) -> "ContentSettings":
        self.provider = (self.provider or "markdown").strip().lower()
        if self.sources:
            names = [(source.name or "").strip().casefold() for source in self.sources if source.name]
            if len(set(names)) != len(names):
                raise ValueError("content.sources names must be unique")
        elif self.provider not in SOURCE_TYPES:
            raise ValueError(f"content.provider '{self.provider}' is not supported")
        return self


class BuildSettings(_Model):
    output: str = "dist"
    clean: bool = False
    draft: bool = False

    @field_validator("output")
    @classmethod
    def _output(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("build.output must not be empty")
        return value.strip()


class ThemeSettings(_Model):
    name: Optional[str] = None
    layouts: str = "layouts"
    assets: str = "assets"
    static: str = "static"
    params: Dict[str, Any] = Field(default_factory=dict)


class TaxonomyKind(_Model):
    key: str
    kind: Optional[str] = None
    title: Optional[str] = None
    singular_title_prefix: Optional[str] = None
    template: Optional[str] = None
    index_template: Optional[str] = None
    term_template: Optional[str] = None
    index_enabled: Optional[bool] = None


class TaxonomySettings(_Model):
    template: str = "pages/page.html"
    index_template: Optional[str] = None
    term_template: Optional[str] = None
    kinds: Optional[List[TaxonomyKind]] = None
    output_mode: str = "both"
    item_fields: Optional[List[str]] = None
    page_size: int = Field(default=10, ge=1)
    index_enabled: bool = True

    @field_validator("output_mode")
    @classmethod
    def _output_mode(cls, value: str) -> str:
        value = (value or "both").strip().lower().replace("-", "_")
        if value not in TAXONOMY_OUTPUT_MODES:
            raise ValueError("taxonomy.outputMode must be both, pages, data, or fields_only")
        return value


class LoggingSettings(_Model):
    level: str = "info"


class AppConfig(_Model):
    site: SiteSettings
    content: ContentSettings = Field(default_factory=ContentSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    theme: ThemeSettings = Field(default_factory=ThemeSettings)
    taxonomy: TaxonomySettings = Field(default_factory=TaxonomySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems)


def parse_config(payload: Dict[str, Any]) -> AppConfig:
    """Validate a raw mapping into an AppConfig."""
    if not isinstance(payload, dict):
        raise ConfigError("Configuration root must be a mapping")
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {_format_validation_error(exc)}") from exc


def load_config(path: Path) -> AppConfig:
    """Load and validate a YAML or JSON configuration file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            payload = loads(text)
        else:
            payload = yaml.safe_load(text) or {}
    except (OSError, yaml.YAMLError, JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read config {path}: {exc}") from exc
    return parse_config(payload)


def resolve_config_path(config: Optional[Path], site_dir: Optional[Path]) -> Path:
    """Pick the explicit config file, or the first site.* file in the site dir."""
    if config is not None:
        candidate = Path(config)
        if not candidate.is_absolute() and site_dir is not None:
            candidate = Path(site_dir) / candidate
        return candidate
    root = Path(site_dir) if site_dir is not None else Path.cwd()
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return root / CONFIG_FILENAMES[0]


@dataclass(frozen=True)
class BuildOverrides:
    """Command-line overrides applied on top of the loaded configuration."""

    output: Optional[str] = None
    base_url: Optional[str] = None
    site_url: Optional[str] = None
    clean: Optional[bool] = None
    draft: Optional[bool] = None
    is_ci: bool = False
    incremental: bool = True
    cache_dir: Optional[str] = None
    metrics_path: Optional[str] = None


def apply_overrides(config: AppConfig, overrides: Optional[BuildOverrides]) -> AppConfig:
    """Return a re-validated copy of ``config`` with overrides applied."""
    if overrides is None:
        return config
    payload = config.model_dump(by_alias=True, exclude_none=True)
    site = payload.setdefault("site", {})
    build = payload.setdefault("build", {})
    if overrides.output:
        build["output"] = overrides.output
    if overrides.clean is not None:
        build["clean"] = overrides.clean
    if overrides.draft is not None:
        build["draft"] = overrides.draft
    if overrides.base_url:
        site["baseUrl"] = overrides.base_url
    if overrides.site_url:
        site["url"] = overrides.site_url
    if overrides.is_ci:
        payload.setdefault("logging", {})["level"] = "warn"
    return parse_config(payload)


__all__ = [
    "AppConfig",
    "SiteSettings",
    "ContentSettings",
    "ContentSourceSettings",
    "MarkdownSettings",
    "BuildSettings",
    "ThemeSettings",
    "TaxonomySettings",
    "TaxonomyKind",
    "LoggingSettings",
    "PluginToggle",
    "BuildOverrides",
    "apply_overrides",
    "load_config",
    "parse_config",
    "resolve_config_path",
    "CONFIG_FILENAMES",
]
