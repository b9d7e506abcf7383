"""sitegen - multi-language static site generator.

Turns Markdown folders (and other content gateways) into a deployable tree
of HTML, XML and JSON artifacts. Builds are incremental, extensible through
plugins and replayed once per configured language.

Example:
    from pathlib import Path

    from sitegen.config import load_config
    from sitegen.site import SiteBuilder

    root = Path("my-site")
    config = load_config(root / "site.yaml")
    report = SiteBuilder(config, root_dir=root).build()
    for variant in report.variants:
        print(variant.language, variant.rendered, variant.skipped)
"""

from sitegen.version import __version__

__all__ = ["__version__"]
