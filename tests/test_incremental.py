"""Build manifest persistence and incremental skip decisions."""

from __future__ import annotations

import pytest

from sitegen.incremental.cache import (
    CONTENT_CHANGED,
    FORCED,
    FULL_RENDER,
    NEW_PAGE,
    OUTPUT_MISSING,
    PLUGINS_CHANGED,
    ROUTE_CHANGED,
    TEMPLATE_CHANGED,
    UNCHANGED,
    IncrementalCache,
)
from sitegen.incremental.manifest import BuildManifest, ManifestEntry, load_manifest, manifest_path, save_manifest
from sitegen.lib.json import loads
from sitegen.routing import Route

ROUTE = Route("/pages/a/", "pages/a/index.html", "pages/page.html")
KEY = ROUTE.output_path


# =============================================================================
# MANIFEST
# =============================================================================


class TestManifest:
    @pytest.mark.parametrize(
        "language,name",
        [
            (None, "build-manifest.json"),
            ("en", "build-manifest.en.json"),
            ("zh-CN", "build-manifest.zh-CN.json"),
            ("a/b:c", "build-manifest.a_b_c.json"),
        ],
    )
    def test_manifest_path(self, tmp_path, language, name):
        assert manifest_path(tmp_path, language) == tmp_path / name

    def test_save_writes_camel_case_json(self, tmp_path):
        manifest = BuildManifest(
            template_hash="t",
            plugins_hash="p",
            entries={KEY: ManifestEntry(output_path=KEY, url=ROUTE.url, template=ROUTE.template, content_hash="c")},
        )
        path = tmp_path / "cache" / "build-manifest.json"
        save_manifest(path, manifest)

        payload = loads(path.read_text(encoding="utf-8"))
        assert payload["version"] == 1
        assert payload["templateHash"] == "t"
        assert payload["pluginsHash"] == "p"
        assert payload["entries"][KEY]["contentHash"] == "c"
        assert load_manifest(path) == manifest

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"entries": 5}'])
    def test_unreadable_manifest_loads_empty(self, tmp_path, text):
        path = tmp_path / "build-manifest.json"
        path.write_text(text, encoding="utf-8")
        assert load_manifest(path).entries == {}

    def test_missing_manifest_loads_empty(self, tmp_path):
        assert load_manifest(tmp_path / "nope.json") == BuildManifest()


# =============================================================================
# CACHE DECISIONS
# =============================================================================


def _cache(tmp_path, template_hash="t1", plugins_hash="p1", enabled=True) -> IncrementalCache:
    cache = IncrementalCache(
        tmp_path / "build-manifest.json",
        template_hash=template_hash,
        plugins_hash=plugins_hash,
        enabled=enabled,
    )
    cache.load()
    return cache


@pytest.fixture
def primed(tmp_path):
    """Manifest holding one rendered page plus its output file."""
    output = tmp_path / "out" / KEY
    output.parent.mkdir(parents=True)
    output.write_text("<html></html>", encoding="utf-8")
    cache = _cache(tmp_path)
    cache.record(KEY, ROUTE, content_hash="c1", route_hash="r1")
    cache.save()
    return output


class TestIncrementalCache:
    def test_new_page(self, tmp_path):
        decision = _cache(tmp_path).decide(KEY, tmp_path / KEY, content_hash="c", route_hash="r")
        assert (decision.skip, decision.reason) == (False, NEW_PAGE)

    def test_unchanged_page_is_skipped(self, tmp_path, primed):
        decision = _cache(tmp_path).decide(KEY, primed, content_hash="c1", route_hash="r1")
        assert (decision.skip, decision.reason) == (True, UNCHANGED)

    def test_output_missing(self, tmp_path, primed):
        primed.unlink()
        assert _cache(tmp_path).decide(KEY, primed, content_hash="c1", route_hash="r1").reason == OUTPUT_MISSING

    @pytest.mark.parametrize(
        "template_hash,content,route,reason",
        [
            ("t2", "c1", "r1", TEMPLATE_CHANGED),
            ("t1", "c2", "r1", CONTENT_CHANGED),
            ("t1", "c1", "r2", ROUTE_CHANGED),
        ],
    )
    def test_changed_fingerprints(self, tmp_path, primed, template_hash, content, route, reason):
        cache = _cache(tmp_path, template_hash=template_hash)
        decision = cache.decide(KEY, primed, content_hash=content, route_hash=route)
        assert (decision.skip, decision.reason) == (False, reason)

    def test_plugins_change_only_affects_derived_pages(self, tmp_path, primed):
        cache = _cache(tmp_path, plugins_hash="p2")
        assert cache.decide(KEY, primed, content_hash="c1", route_hash="r1").skip is True
        decision = cache.decide(KEY, primed, content_hash="c1", route_hash="r1", derived=True)
        assert (decision.skip, decision.reason) == (False, PLUGINS_CHANGED)

    def test_forced_render_ignores_matching_entry(self, tmp_path, primed):
        decision = _cache(tmp_path).decide(KEY, primed, content_hash="c1", route_hash="r1", force=True)
        assert (decision.skip, decision.reason) == (False, FORCED)

    def test_disabled_always_renders_and_never_writes(self, tmp_path, primed):
        before = (tmp_path / "build-manifest.json").read_text(encoding="utf-8")
        cache = _cache(tmp_path, template_hash="other", enabled=False)
        assert cache.decide(KEY, primed, content_hash="c1", route_hash="r1").reason == FULL_RENDER
        cache.record("pages/b/index.html", ROUTE, content_hash="x", route_hash="y")
        cache.save()
        assert (tmp_path / "build-manifest.json").read_text(encoding="utf-8") == before

    def test_reasons_are_counted(self, tmp_path, primed):
        cache = _cache(tmp_path)
        cache.decide(KEY, primed, content_hash="c1", route_hash="r1")
        cache.decide("pages/b/index.html", tmp_path / "b.html", content_hash="c", route_hash="r")
        cache.decide("pages/c/index.html", tmp_path / "c.html", content_hash="c", route_hash="r")
        assert cache.reasons == {UNCHANGED: 1, NEW_PAGE: 2}

    def test_prune_drops_entries_outside_the_queue(self, tmp_path, primed):
        cache = _cache(tmp_path)
        cache.record("pages/b/index.html", ROUTE, content_hash="c", route_hash="r")
        assert cache.prune({"pages/b/index.html"}) == [KEY]
        cache.save()
        assert list(load_manifest(tmp_path / "build-manifest.json").entries) == ["pages/b/index.html"]
