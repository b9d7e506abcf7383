"""Build orchestration and site-wide artifacts."""

from sitegen.site.builder import BuildReport, SiteBuilder, VariantResult

__all__ = ["BuildReport", "SiteBuilder", "VariantResult"]
