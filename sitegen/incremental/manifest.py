"""Build manifest persistence.

One JSON file per variant under the cache directory::

    {
      "version": 1,
      "templateHash": "...",
      "pluginsHash": "...",
      "entries": {
        "blog/hello/index.html": {
          "outputPath": "blog/hello/index.html",
          "url": "/blog/hello/",
          "template": "pages/post.html",
          "contentHash": "...",
          "routeHash": "...",
          "templateHash": "..."
        }
      }
    }

A missing or unreadable manifest is never fatal: it loads as empty and the
build falls back to a full render.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sitegen.lib.json import JSONDecodeError, dumps, loads
from sitegen.lib.log import get_logger

logger = get_logger(__name__)

MANIFEST_VERSION = 1
MANIFEST_FILENAME = "build-manifest.json"

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class ManifestEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    output_path: str = ""
    url: str = ""
    template: str = ""
    content_hash: str = ""
    route_hash: str = ""
    template_hash: str = ""


class BuildManifest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    version: int = MANIFEST_VERSION
    template_hash: str = ""
    plugins_hash: str = ""
    entries: Dict[str, ManifestEntry] = Field(default_factory=dict)


def manifest_path(cache_dir: Path, language: str | None = None) -> Path:
    """``build-manifest.json`` or ``build-manifest.<lang>.json`` for a variant."""
    if language is None:
        return Path(cache_dir) / MANIFEST_FILENAME
    tag = _INVALID_FILENAME_CHARS.sub("_", language.strip()) or "default"
    return Path(cache_dir) / f"build-manifest.{tag}.json"


def load_manifest(path: Path) -> BuildManifest:
    if not path.is_file():
        return BuildManifest()
    try:
        payload = loads(path.read_bytes())
    except (OSError, JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable build manifest %s: %s", path, exc)
        return BuildManifest()
    if not isinstance(payload, dict):
        logger.warning("Ignoring build manifest %s: root is not an object", path)
        return BuildManifest()
    try:
        return BuildManifest.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Ignoring malformed build manifest %s: %s", path, exc.error_count())
        return BuildManifest()


def save_manifest(path: Path, manifest: BuildManifest) -> None:
    payload = manifest.model_dump(by_alias=True)
    payload["entries"] = dict(sorted(payload["entries"].items()))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(payload, indent=True), encoding="utf-8")


__all__ = [
    "BuildManifest",
    "ManifestEntry",
    "MANIFEST_VERSION",
    "load_manifest",
    "save_manifest",
    "manifest_path",
]
