"""Build metrics report (``--metrics``)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sitegen.config import AppConfig
from sitegen.lib.json import dumps

if TYPE_CHECKING:
    from sitegen.site.builder import BuildReport

METRICS_VERSION = 1


def build_metrics(config: AppConfig, report: BuildReport, default_language: str | None) -> dict[str, Any]:
    site = config.site
    return {
        "version": METRICS_VERSION,
        "ts": datetime.now(timezone.utc).isoformat(),
        "site": {
            "name": site.name,
            "title": site.title,
            "url": site.url,
            "baseUrl": site.base_url,
            "language": site.language,
            "defaultLanguage": default_language if site.languages else None,
            "languages": list(site.languages or []),
        },
        "outputDir": str(report.output_dir),
        "contentItems": report.content_items,
        "variants": [variant.to_dict() for variant in report.variants],
    }


def write_metrics(path: Path, config: AppConfig, report: BuildReport, default_language: str | None = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(build_metrics(config, report, default_language), indent=True), encoding="utf-8")
    return path


__all__ = ["build_metrics", "write_metrics", "METRICS_VERSION"]
