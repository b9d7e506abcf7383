"""Route resolution, output path encodings and Windows path diagnostics."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from sitegen.routing import (
    PAGE_TEMPLATE,
    POST_TEMPLATE,
    Route,
    WindowsPathChecker,
    encode_output_path,
    normalize_url,
    resolve_route,
    sanitize_segment,
    slugify,
    windows_path_issue,
)
from tests.helpers import make_item


# =============================================================================
# DEFAULT ROUTES
# =============================================================================


class TestResolveRoute:
    def test_post_routes_under_blog(self):
        route = resolve_route(make_item("hello", type="post"))
        assert route == Route("/blog/hello/", "blog/hello/index.html", POST_TEMPLATE)

    @pytest.mark.parametrize("item_type", ["page", "note", ""])
    def test_everything_else_routes_under_pages(self, item_type):
        route = resolve_route(make_item("about", type=item_type))
        assert route == Route("/pages/about/", "pages/about/index.html", PAGE_TEMPLATE)

    def test_type_is_case_insensitive(self):
        assert resolve_route(make_item("x", type="POST")).template == POST_TEMPLATE

    def test_nested_route_override(self):
        item = make_item(
            "cv",
            route={"url": "resume", "outputPath": "/resume/index.html", "template": "pages/cv.html"},
        )
        assert resolve_route(item) == Route("/resume/", "resume/index.html", "pages/cv.html")

    def test_flat_route_override(self):
        item = make_item("cv", url="/cv/", outputPath="cv/index.html", template="pages/cv.html")
        assert resolve_route(item).url == "/cv/"

    def test_partial_override_is_ignored(self):
        item = make_item("cv", route={"url": "/cv/", "template": "pages/cv.html"})
        assert resolve_route(item).url == "/pages/cv/"

    def test_encoding_applies_to_default_route(self):
        item = make_item("Hello World", type="post")
        assert resolve_route(item, "slug").output_path == "blog/hello-world/index.html"


# =============================================================================
# ENCODINGS
# =============================================================================


class TestEncodings:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("", "/"),
            ("  ", "/"),
            ("about", "/about/"),
            ("/about", "/about/"),
            ("/about/", "/about/"),
        ],
    )
    def test_normalize_url(self, raw, expected):
        assert normalize_url(raw) == expected

    def test_none_leaves_path_untouched(self):
        assert encode_output_path("Blog/Héllo World/index.html", "none") == "Blog/Héllo World/index.html"

    def test_urlencode_encodes_each_segment(self):
        assert encode_output_path("blog/héllo world/index.html", "urlencode") == "blog/h%C3%A9llo%20world/index.html"

    def test_slug_keeps_extension(self):
        assert encode_output_path("Blog/Héllo_World/INDEX.HTML", "slug") == "blog/hello-world/index.html"

    def test_sanitize_drops_reserved_characters(self):
        assert encode_output_path('blog/a<b>:"c"?/index.html', "sanitize") == "blog/abc/index.html"

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError, match="Unknown output path encoding"):
            encode_output_path("a/b", "rot13")

    def test_slugify_falls_back_when_nothing_survives(self):
        assert slugify("!!!") == "page"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("My Post!", "my-post"),
            ("trailing. ", "trailing"),
            ("a  --  b", "a-b"),
            ("...", ".page"),
            ("Report.PDF", "report.pdf"),
        ],
    )
    def test_sanitize_segment(self, raw, expected):
        assert sanitize_segment(raw) == expected


_SEGMENTS = st.text(alphabet=st.characters(min_codepoint=32, max_codepoint=126), min_size=0, max_size=24)


@given(_SEGMENTS)
@settings(max_examples=200)
def test_sanitize_is_idempotent_and_never_empty(segment):
    once = sanitize_segment(segment)
    assert once
    assert sanitize_segment(once) == once
    assert not set(once) & set('<>:"|?* ')
    assert not once.endswith(".")


# =============================================================================
# WINDOWS DIAGNOSTICS
# =============================================================================


class TestWindowsPaths:
    @pytest.mark.parametrize(
        "path,fragment",
        [
            ("", "empty path"),
            ("a//b", "empty segment"),
            ("blog/name./index.html", "ends with a space or dot"),
            ("blog/a:b/index.html", "invalid characters"),
            ("pages/con/index.html", "reserved device name"),
            ("pages/LPT1.txt", "reserved device name"),
        ],
    )
    def test_issues(self, path, fragment):
        assert fragment in windows_path_issue(path)

    def test_portable_path(self):
        assert windows_path_issue("blog/hello/index.html") is None

    def test_checker_reports_each_path_once(self):
        checker = WindowsPathChecker()
        with capture_logs() as logs:
            checker.check("a:b/index.html")
            checker.check("a:b/index.html")
            checker.check("ok/index.html")
        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert len(warnings) == 1
        assert "a:b/index.html" in warnings[0]["event"]
