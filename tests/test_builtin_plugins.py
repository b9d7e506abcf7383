"""Built-in plugins: taxonomy, pagination, archive, sitemap, RSS and search."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from sitegen.lib.json import loads
from sitegen.plugins.builtin import (
    ArchivePlugin,
    PaginationPlugin,
    RssPlugin,
    SearchIndexPlugin,
    SitemapPlugin,
    TaxonomyPlugin,
    builtin_plugins,
)
from sitegen.plugins.builtin.taxonomy import build_index, resolve_kinds, term_slug
from sitegen.routing import Route
from tests.helpers import make_config, make_context, make_item, utc

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9", "xhtml": "http://www.w3.org/1999/xhtml"}


def _posts(count: int, **meta):
    return [
        make_item(f"post-{n:02d}", title=f"Post {n}", type="post", publish_at=utc(2024, 1, n), **meta)
        for n in range(1, count + 1)
    ]


def test_builtin_order():
    assert [plugin.name for plugin in builtin_plugins()] == [
        "taxonomy",
        "sitemap",
        "rss",
        "search-index",
        "pagination",
        "archive",
    ]


# =============================================================================
# TAXONOMY
# =============================================================================


@pytest.fixture
def tagged_items():
    return [
        make_item("a", title="Alpha", type="post", publish_at=utc(2024, 1, 1), tags=["Python", "Web Dev"]),
        make_item("b", title="Beta", type="post", publish_at=utc(2024, 2, 1), tags=["python"], categories=["Notes"]),
        make_item("c", title="Gamma", publish_at=utc(2024, 3, 1)),
    ]


class TestTaxonomy:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Web Dev", "web-dev"),
            ("  C# / .NET ", "c-net"),
            ("Ünïcode", "ünïcode"),
            ("a__b..c", "a-b-c"),
            ("!!!", ""),
        ],
    )
    def test_term_slug(self, raw, expected):
        assert term_slug(raw) == expected

    def test_default_kinds(self):
        kinds = resolve_kinds(make_config().taxonomy)
        assert [(k.key, k.title, k.singular) for k in kinds] == [
            ("tags", "Tags", "Tag"),
            ("categories", "Categories", "Category"),
        ]

    def test_configured_kind_templates(self):
        settings = make_config(
            taxonomy={
                "termTemplate": "pages/term.html",
                "kinds": [{"key": "series", "kind": "collections", "indexEnabled": False}],
            }
        ).taxonomy
        [kind] = resolve_kinds(settings)
        assert (kind.key, kind.kind, kind.title) == ("series", "collections", "collections")
        assert kind.term_template == "pages/term.html"
        assert kind.index_template == "pages/page.html"
        assert kind.index_enabled is False

    def test_build_index_merges_case_variants(self, tagged_items, tmp_path):
        routed = make_context(tmp_path, tagged_items).routed
        terms = build_index(routed, "tags", [])
        assert sorted(terms) == ["python", "web-dev"]
        assert terms["python"].title == "Python"
        assert [page.title for page in terms["python"].pages] == ["Beta", "Alpha"]

    def test_same_item_counted_once_per_term(self, tmp_path):
        item = make_item("a", type="post", tags=["Web Dev", "web-dev"])
        terms = build_index(make_context(tmp_path, [item]).routed, "tags", [])
        assert len(terms["web-dev"].pages) == 1

    def test_pages_and_data(self, tagged_items, tmp_path):
        context = make_context(tmp_path, tagged_items)
        plugin = TaxonomyPlugin()
        derived = plugin.derive_pages(context)

        urls = [page.route.url for page in derived]
        assert urls == ["/tags/", "/tags/python/", "/tags/web-dev/", "/categories/", "/categories/notes/"]
        python = derived[1]
        assert python.item.title == "Tag: Python"
        assert python.item.fields.get_mapping("taxonomy").get_number("count") == 2
        assert python.last_modified == utc(2024, 2, 1)
        assert 'href="/blog/b/"' in python.item.content_html

        tags = context.data["TAXONOMY"]["tags"]
        assert [term["slug"] for term in tags["terms"]] == ["python", "web-dev"]

        plugin.after_build(context)
        payload = loads((context.output_dir / "taxonomy.json").read_text(encoding="utf-8"))
        assert payload["schema"] == 1
        assert [kind["key"] for kind in payload["kinds"]] == ["tags", "categories"]
        assert payload["kinds"][0]["itemsByTerm"]["python"][0]["url"] == "/blog/b/"

    def test_term_pagination(self, tmp_path):
        context = make_context(tmp_path, _posts(5, tags=["t"]), make_config(taxonomy={"pageSize": 2}))
        derived = TaxonomyPlugin().derive_pages(context)
        assert [page.route.url for page in derived] == [
            "/tags/",
            "/tags/t/",
            "/tags/t/page/2/",
            "/tags/t/page/3/",
        ]
        last = derived[-1].item.fields.get_mapping("pagination")
        assert last.get_number("total_pages") == 3
        assert last.get_bool("has_next") is False

    def test_data_mode_emits_no_pages(self, tagged_items, tmp_path):
        context = make_context(tmp_path, tagged_items, make_config(taxonomy={"outputMode": "data"}))
        plugin = TaxonomyPlugin()
        assert plugin.derive_pages(context) == []
        assert "taxonomy" in context.data
        plugin.after_build(context)
        assert (context.output_dir / "taxonomy.json").is_file()

    def test_pages_mode_writes_no_json(self, tagged_items, tmp_path):
        context = make_context(tmp_path, tagged_items, make_config(taxonomy={"outputMode": "pages"}))
        TaxonomyPlugin().after_build(context)
        assert not (context.output_dir / "taxonomy.json").exists()

    def test_fields_only_mode_has_empty_bodies(self, tagged_items, tmp_path):
        context = make_context(tmp_path, tagged_items, make_config(taxonomy={"outputMode": "fields_only"}))
        derived = TaxonomyPlugin().derive_pages(context)
        assert derived
        assert all(page.item.content_html == "" for page in derived)

    def test_item_fields_are_copied(self, tmp_path):
        item = make_item("a", type="post", publish_at=utc(2024, 5, 6), tags=["t"], cover="/img/a.png")
        config = make_config(taxonomy={"itemFields": ["cover", "date", "Cover"]})
        context = make_context(tmp_path, [item], config)
        TaxonomyPlugin().after_build(context)
        payload = loads((context.output_dir / "taxonomy.json").read_text(encoding="utf-8"))
        [entry] = payload["kinds"][0]["itemsByTerm"]["t"]
        assert entry["cover"] == "/img/a.png"
        assert entry["date"] == "2024-05-06"

    def test_base_url_prefixes_links(self, tagged_items, tmp_path):
        context = make_context(tmp_path, tagged_items, base_url="/docs")
        derived = TaxonomyPlugin().derive_pages(context)
        assert 'href="/docs/tags/python/"' in derived[0].item.content_html


# =============================================================================
# PAGINATION
# =============================================================================


class TestPagination:
    def test_no_pages_when_one_page_fits(self, tmp_path):
        assert PaginationPlugin().derive_pages(make_context(tmp_path, _posts(10))) == []

    def test_pages_beyond_the_first(self, tmp_path):
        derived = PaginationPlugin().derive_pages(make_context(tmp_path, _posts(25)))
        assert [page.route.url for page in derived] == ["/blog/page/2/", "/blog/page/3/"]
        assert [page.item.id for page in derived] == ["blog-page-2", "blog-page-3"]

        second, third = derived
        assert second.item.title == "Blog - Page 2"
        assert second.item.content_html.count("<li>") == 10
        assert third.item.content_html.count("<li>") == 5
        assert 'href="/blog/">Prev' in second.item.content_html
        assert 'href="/blog/page/3/">Next' in second.item.content_html
        assert "Next" not in third.item.content_html

    def test_only_posts_are_paginated(self, tmp_path):
        pages = [make_item(f"page-{n}") for n in range(30)]
        assert PaginationPlugin(page_size=5).derive_pages(make_context(tmp_path, pages)) == []


# =============================================================================
# ARCHIVE
# =============================================================================


class TestArchive:
    def test_index_years_and_months(self, tmp_path):
        items = [
            make_item("old", type="post", publish_at=utc(2023, 12, 24)),
            make_item("new", type="post", publish_at=utc(2024, 1, 10)),
            make_item("newer", type="post", publish_at=utc(2024, 1, 20)),
            make_item("page", publish_at=utc(2025, 1, 1)),
        ]
        derived = ArchivePlugin().derive_pages(make_context(tmp_path, items))
        assert [page.route.url for page in derived] == [
            "/blog/archive/",
            "/blog/archive/2024/",
            "/blog/archive/2024/01/",
            "/blog/archive/2023/",
            "/blog/archive/2023/12/",
        ]
        index = derived[0]
        assert index.last_modified == utc(2024, 1, 20)
        assert "<small>(2)</small>" in derived[1].item.content_html

    def test_months_follow_site_timezone(self, tmp_path):
        item = make_item("late", type="post", publish_at=utc(2024, 1, 1, 2))
        config = make_config({"timezone": "America/New_York"})
        derived = ArchivePlugin().derive_pages(make_context(tmp_path, [item], config))
        assert [page.route.url for page in derived][1:] == ["/blog/archive/2023/", "/blog/archive/2023/12/"]

    def test_no_posts(self, tmp_path):
        assert ArchivePlugin().derive_pages(make_context(tmp_path, [make_item("a")])) == []


# =============================================================================
# SITEMAP, RSS, SEARCH
# =============================================================================


class TestSitemap:
    def test_writes_natural_list_and_derived_routes(self, tmp_path):
        context = make_context(tmp_path, [make_item("about"), make_item("hello", type="post")])
        context.derived_routes.append((Route("/tags/", "tags/index.html", "pages/page.html"), utc(2024)))
        SitemapPlugin().after_build(context)

        root = ET.parse(context.output_dir / "sitemap.xml").getroot()
        locs = [loc.text for loc in root.findall("sm:url/sm:loc", NS)]
        assert locs == [
            "https://example.com/",
            "https://example.com/blog/",
            "https://example.com/pages/",
            "https://example.com/pages/about/",
            "https://example.com/blog/hello/",
            "https://example.com/tags/",
        ]
        assert root.find("sm:url/sm:lastmod", NS).text == "2024-01-01"

    def test_base_url_is_included(self, tmp_path):
        context = make_context(tmp_path, [make_item("about")], base_url="/docs")
        SitemapPlugin().after_build(context)
        assert "https://example.com/docs/pages/about/" in (context.output_dir / "sitemap.xml").read_text()

    def test_skipped_without_site_url(self, tmp_path):
        context = make_context(tmp_path, [make_item("about")], make_config({"url": None}))
        SitemapPlugin().after_build(context)
        assert not (context.output_dir / "sitemap.xml").exists()

    def test_skipped_when_merged_across_languages(self, tmp_path):
        config = make_config({"languages": ["en", "fr"], "sitemapMode": "merged"})
        context = make_context(tmp_path, [make_item("about")], config)
        SitemapPlugin().after_build(context)
        assert not (context.output_dir / "sitemap.xml").exists()


class TestRss:
    def test_feed_lists_newest_posts(self, tmp_path):
        posts = _posts(25, summary="Short", tags=["a"], categories=["A", "b"])
        context = make_context(tmp_path, posts + [make_item("about")])
        RssPlugin().after_build(context)

        channel = ET.parse(context.output_dir / "rss.xml").getroot().find("channel")
        assert channel.findtext("title") == "Demo"
        items = channel.findall("item")
        assert len(items) == 20
        assert items[0].findtext("link") == "https://example.com/blog/post-25/"
        assert items[0].findtext("description") == "Short"
        assert [c.text for c in items[0].findall("category")] == ["a", "b"]
        encoded = items[0].find("{http://purl.org/rss/1.0/modules/content/}encoded")
        assert encoded.text == "<p>body</p>"

    def test_cdata_terminator_is_split(self, tmp_path):
        post = make_item("x", type="post", content_html="<p>a]]>b</p>")
        context = make_context(tmp_path, [post])
        RssPlugin().after_build(context)
        items = ET.parse(context.output_dir / "rss.xml").getroot().find("channel").findall("item")
        assert items[0].find("{http://purl.org/rss/1.0/modules/content/}encoded").text == "<p>a]]>b</p>"


class TestSearchIndex:
    def test_documents(self, tmp_path):
        item = make_item(
            "hello",
            title="Hello",
            type="post",
            content_html="<p>Hi &amp; bye</p>",
            summary="Greeting",
            tags=["x"],
        )
        context = make_context(tmp_path, [item], base_url="/docs")
        SearchIndexPlugin().after_build(context)
        [doc] = loads((context.output_dir / "search.json").read_text(encoding="utf-8"))
        assert doc["id"] == "hello"
        assert doc["url"] == "/docs/blog/hello/"
        assert doc["content"] == "Hi & bye"
        assert doc["summary"] == "Greeting"
        assert doc["tags"] == ["x"]
        assert doc["language"] == "en"
        assert doc["type"] == "post"

    @pytest.mark.parametrize("include,expected", [(False, 1), (True, 2)])
    def test_derived_pages_are_optional(self, tmp_path, include, expected):
        config = make_config({"searchIncludeDerived": include})
        context = make_context(tmp_path, [make_item("a")], config)
        extra = make_item("tags-index", title="Tags")
        context.derived_routed.append((extra, Route("/tags/", "tags/index.html", "pages/page.html")))
        SearchIndexPlugin().after_build(context)
        assert len(loads((context.output_dir / "search.json").read_text(encoding="utf-8"))) == expected
