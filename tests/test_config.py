"""Configuration loading, validation and CLI overrides."""

from __future__ import annotations

import pytest

from sitegen.config import BuildOverrides, apply_overrides, load_config, parse_config, resolve_config_path
from sitegen.errors import ConfigError
from tests.helpers import config_payload, make_config, write_site_config


class TestParseConfig:
    def test_defaults(self):
        config = make_config()
        assert config.site.base_url == "/"
        assert config.site.output_path_encoding == "none"
        assert config.site.sitemap_mode == "split"
        assert config.site.plugin_fail_mode == "strict"
        assert config.build.clean is False
        assert config.content.provider == "markdown"
        assert config.taxonomy.output_mode == "both"

    def test_site_url_trailing_slash_is_dropped(self):
        assert make_config({"url": "https://example.com/"}).site.url == "https://example.com"

    def test_plugin_toggle_shorthand(self):
        site = make_config({"plugins": {"rss": False, "Sitemap": {"enabled": True}}}).site
        assert site.plugin_enabled("RSS") is False
        assert site.plugin_enabled("sitemap") is True
        assert site.plugin_enabled("archive") is True

    def test_modes_are_case_insensitive(self):
        site = make_config({"sitemapMode": "Merged", "pluginFailMode": "WARN"}).site
        assert site.sitemap_mode == "merged"
        assert site.plugin_fail_mode == "warn"

    def test_taxonomy_output_mode_accepts_dashes(self):
        assert make_config(taxonomy={"outputMode": "fields-only"}).taxonomy.output_mode == "fields_only"

    @pytest.mark.parametrize(
        "site,fragment",
        [
            ({"name": " "}, "must not be empty"),
            ({"url": "example.com"}, "http"),
            ({"baseUrl": "docs"}, "baseUrl"),
            ({"sitemapMode": "zip"}, "sitemapMode"),
            ({"pluginFailMode": "ignore"}, "pluginFailMode"),
            ({"outputPathEncoding": "base64"}, "outputPathEncoding"),
            ({"languages": []}, "must not be empty"),
            ({"languages": ["en", "EN"]}, "duplicates"),
            ({"languages": ["en", "fr"], "defaultLanguage": "de"}, "defaultLanguage"),
            ({"timezone": "Mars/Olympus"}, "unknown timezone"),
            ({"unexpected": True}, "unexpected"),
        ],
    )
    def test_invalid_site_settings(self, site, fragment):
        with pytest.raises(ConfigError, match="Invalid configuration") as excinfo:
            make_config(site)
        assert fragment in str(excinfo.value)

    def test_unknown_content_provider(self):
        with pytest.raises(ConfigError, match="not supported"):
            make_config(content={"provider": "notion"})

    def test_duplicate_source_names(self):
        sources = [{"type": "markdown", "name": "docs"}, {"type": "markdown", "name": "Docs"}]
        with pytest.raises(ConfigError, match="unique"):
            make_config(content={"sources": sources})

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            parse_config(["site"])


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = write_site_config(tmp_path, {"languages": ["en", "fr"]})
        config = load_config(path)
        assert config.site.languages == ["en", "fr"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "site.json"
        path.write_text('{"site": {"name": "demo", "title": "Demo"}}', encoding="utf-8")
        assert load_config(path).site.title == "Demo"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "site.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "site.yaml"
        path.write_text("site: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(path)

    def test_resolve_config_path_prefers_existing_file(self, tmp_path):
        (tmp_path / "site.yml").write_text("site: {}\n", encoding="utf-8")
        assert resolve_config_path(None, tmp_path) == tmp_path / "site.yml"
        assert resolve_config_path(None, tmp_path / "empty") == tmp_path / "empty" / "site.yaml"
        assert resolve_config_path("conf/prod.yaml", tmp_path) == tmp_path / "conf" / "prod.yaml"


class TestOverrides:
    def test_none_returns_same_config(self):
        config = make_config()
        assert apply_overrides(config, None) is config

    def test_overrides_replace_values(self):
        config = apply_overrides(
            make_config(),
            BuildOverrides(output="public", base_url="/docs", site_url="https://docs.example.com", clean=True, draft=True),
        )
        assert config.build.output == "public"
        assert config.build.clean is True
        assert config.build.draft is True
        assert config.site.base_url == "/docs"
        assert config.site.url == "https://docs.example.com"

    def test_ci_lowers_log_level(self):
        assert apply_overrides(make_config(), BuildOverrides(is_ci=True)).logging.level == "warn"

    def test_invalid_override_is_a_config_error(self):
        with pytest.raises(ConfigError):
            apply_overrides(make_config(), BuildOverrides(base_url="docs"))

    def test_payload_round_trips(self):
        config = make_config({"languages": ["en", "fr"], "plugins": {"rss": False}})
        assert parse_config(config.model_dump(by_alias=True, exclude_none=True)) == config
        assert config_payload()["build"] == {"output": "dist"}
