"""Incremental build support: fingerprints, manifest and skip decisions."""

from sitegen.incremental.cache import IncrementalCache, RenderDecision
from sitegen.incremental.fingerprints import content_hash, plugins_hash, route_hash
from sitegen.incremental.manifest import BuildManifest, ManifestEntry, load_manifest, manifest_path, save_manifest

__all__ = [
    "BuildManifest",
    "IncrementalCache",
    "ManifestEntry",
    "RenderDecision",
    "content_hash",
    "load_manifest",
    "manifest_path",
    "plugins_hash",
    "route_hash",
    "save_manifest",
]
