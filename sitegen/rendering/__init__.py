"""Render gateway and template view models."""

from sitegen.rendering.models import ListPageModel, ModuleInfo, PageInfo, PageModel, SiteModel
from sitegen.rendering.renderer import RenderGateway, TemplateRenderer

__all__ = ["RenderGateway", "ListPageModel", "ModuleInfo", "PageInfo", "PageModel", "SiteModel", "TemplateRenderer"]
