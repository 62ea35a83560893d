"""Tests for the site configuration registry."""

import json

import pytest

from scraper.site_configs import (
    SiteExtractionConfig,
    get_site_configs,
    load_site_configs,
    resolve_site_config,
)


def _config(name, domain):
    return SiteExtractionConfig.from_dict(
        {
            "name": name,
            "domain": domain,
            "base_url": f"https://{name}.example",
            "selectors": {"card_container": [".card"]},
        }
    )


class TestResolveSiteConfig:

    @pytest.mark.parametrize(
        "url",
        [
            "https://uk.webuy.com",
            "https://uk.webuy.com/search?stext=ps5",
            "https://ie.webuy.com/product-detail?id=1",
        ],
    )
    def test_webuy_urls(self, url):
        config = resolve_site_config(url)

        assert config is not None
        assert config.name == "webuy"

    @pytest.mark.parametrize(
        "url",
        ["https://www.ebay.co.uk", "", "not a url", None, 42, ["webuy.com"]],
    )
    def test_unsupported_inputs_return_none(self, url):
        assert resolve_site_config(url) is None

    def test_first_registered_match_wins(self):
        configs = [_config("first", "shop.com"), _config("second", "myshop.com")]

        assert resolve_site_config("https://myshop.com/x", configs).name == "first"

    def test_any_domain_entry_matches(self):
        configs = [_config("multi", ["a.example", "b.example"])]

        assert resolve_site_config("https://b.example/", configs).name == "multi"


class TestSiteExtractionConfig:

    def test_from_dict_single_domain_and_selector(self):
        config = SiteExtractionConfig.from_dict(
            {
                "domain": "shop.example",
                "base_url": "https://shop.example",
                "selectors": {"card_container": ".card", "title": [".t1", ".t2"]},
            }
        )

        assert config.name == "shop.example"
        assert config.domain == ["shop.example"]
        assert config.selectors_for("card_container") == [".card"]
        assert config.selectors_for("title") == [".t1", ".t2"]
        assert config.selectors_for("price") == []

    def test_requires_card_container(self):
        with pytest.raises(ValueError):
            SiteExtractionConfig.from_dict({"domain": "x.example", "selectors": {"title": [".t"]}})

    def test_requires_domain(self):
        with pytest.raises(ValueError):
            SiteExtractionConfig.from_dict({"selectors": {"card_container": [".c"]}})

    def test_plain_record_round_trip(self):
        config = get_site_configs(extra_path=None)[0]

        assert SiteExtractionConfig.from_dict(config.to_dict()) == config


class TestLoadSiteConfigs:

    def test_load_skips_invalid_records(self, tmp_path):
        path = tmp_path / "sites.json"
        path.write_text(
            json.dumps(
                [
                    {"name": "good", "domain": "good.example", "selectors": {"card_container": [".c"]}},
                    {"name": "bad", "domain": "bad.example", "selectors": {}},
                ]
            )
        )

        configs = load_site_configs(path)

        assert [c.name for c in configs] == ["good"]

    def test_extra_configs_follow_builtins(self, tmp_path):
        path = tmp_path / "sites.json"
        path.write_text(
            json.dumps([{"name": "extra", "domain": "extra.example", "selectors": {"card_container": [".c"]}}])
        )

        names = [c.name for c in get_site_configs(extra_path=path)]

        assert names[0] == "webuy"
        assert names[-1] == "extra"

    def test_missing_file_keeps_builtins(self, tmp_path):
        names = [c.name for c in get_site_configs(extra_path=tmp_path / "missing.json")]

        assert names == ["webuy"]
