from pathlib import Path

import pytest

from lead_discovery.config import DEFAULT_STRATEGIES, DiscoveryConfig, SearchRequestOptions
from lead_discovery.errors import ConfigError
from lead_discovery.validation import (
    extract_domain,
    is_supported_url,
    load_lines_from_file,
    normalize_website,
    parse_contact_line,
)


def test_discovery_config_defaults() -> None:
    config = DiscoveryConfig(company_name="Acme", output="out.csv")
    assert config.strategies == DEFAULT_STRATEGIES
    assert "hunter_domain_search" not in config.strategies
    assert config.queue_path == ":memory:"


def test_discovery_config_requires_a_target() -> None:
    with pytest.raises(ConfigError):
        DiscoveryConfig(company_name="  ", output="out.csv")
    config = DiscoveryConfig(company_name="", output="out.csv", domain="acme.com")
    assert config.domain == "acme.com"


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_depth": -1},
        {"request_timeout": 0},
        {"discovery_timeout": -5},
        {"settle_delay": -0.1},
        {"strategies": ()},
        {"strategies": ("website_crawler", "carrier_pigeon")},
        {"website": "ftp://acme.com"},
    ],
)
def test_discovery_config_rejects_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ConfigError):
        DiscoveryConfig(
            company_name="Acme", output="out.csv", **overrides  # type: ignore[arg-type]
        )


def test_search_request_options_from_mapping() -> None:
    assert SearchRequestOptions.from_mapping(None) == SearchRequestOptions()
    options = SearchRequestOptions.from_mapping({"forceFresh": True, "silent": False})
    assert options == SearchRequestOptions(silent=False, force_fresh=True)
    assert options.as_payload() == {"silent": False, "force_fresh": True}
    with pytest.raises(ConfigError):
        SearchRequestOptions.from_mapping({"force_fresh": "yes"})
    with pytest.raises(ConfigError):
        SearchRequestOptions.from_mapping({"dry_run": True})


def test_url_helpers() -> None:
    assert is_supported_url("https://acme.com/a") is True
    assert is_supported_url("ftp://acme.com/file") is False
    assert normalize_website("acme.com") == "https://acme.com"
    assert normalize_website("") is None
    assert extract_domain("https://www.Acme.com/about") == "acme.com"
    assert extract_domain(None) is None


def test_parse_contact_line() -> None:
    prospect = parse_contact_line(" Alice Walker | CEO ")
    assert (prospect.name, prospect.role) == ("Alice Walker", "CEO")
    assert parse_contact_line("Marcus Chen").role is None
    with pytest.raises(ConfigError):
        parse_contact_line("|CTO")


def test_load_lines_from_file(tmp_path: Path) -> None:
    sample = tmp_path / "sample.txt"
    sample.write_text("one\n\n two \n", encoding="utf-8")
    assert load_lines_from_file(str(sample)) == ["one", "two"]
