import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sitegen.plugins import registry as registry_module
from sitegen.plugins.registry import PluginRegistry
from sitegen.site import SiteBuilder
from tests.helpers import make_config, write_layouts


@pytest.fixture(autouse=True)
def _isolated_plugin_registry(monkeypatch):
    """Keep ``@register_plugin`` side effects inside a single test."""
    monkeypatch.setattr(registry_module, "_registered", [])


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """Site root with the standard layouts and an empty content folder."""
    root = tmp_path / "site"
    write_layouts(root / "layouts")
    (root / "content").mkdir(parents=True)
    return root


@pytest.fixture
def content_dir(site_dir: Path) -> Path:
    return site_dir / "content"


@pytest.fixture
def build_site(site_dir: Path):
    """Run a build of ``site_dir`` with built-in plugins only.

    Usage:
        report = build_site(make_config())
        report = build_site(config, overrides=BuildOverrides(incremental=False))
    """

    def _build(config=None, *, registry=None, cancel=None, **kwargs):
        builder = SiteBuilder(
            config or make_config(),
            site_dir,
            registry=registry or PluginRegistry.for_site(site_dir, entry_point_group=None),
            **kwargs,
        )
        return builder.build(cancel)

    return _build
