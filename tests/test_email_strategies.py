import logging
from collections.abc import Mapping
from typing import Any

import dns.exception
import dns.resolver

from lead_discovery.email_strategies import (
    DomainAnalysisStrategy,
    HunterDomainSearchStrategy,
    PatternPredictionStrategy,
    PublicDirectoryStrategy,
    SocialProfileStrategy,
    WebsiteCrawlerStrategy,
)
from lead_discovery.models import SearchContext, SearchOptions, TopProspect


class DummyFetcher:
    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.calls: list[tuple[str, Mapping[str, str] | None]] = []

    def fetch(self, url: str, params: Mapping[str, str] | None = None) -> str:
        self.calls.append((url, params))
        return self.pages.get(url, "")


class MxRecord:
    def __init__(self, exchange: str, preference: int) -> None:
        self.exchange = exchange
        self.preference = preference


class TxtRecord:
    def __init__(self, value: str) -> None:
        self.strings = (value.encode("utf-8"),)


def _context(**overrides: Any) -> SearchContext:
    values: dict[str, Any] = {
        "company_name": "Acme",
        "company_website": "https://acme.com",
        "company_domain": "acme.com",
    }
    values.update(overrides)
    return SearchContext(**values)


def test_website_crawler_follows_contact_pages() -> None:
    fetcher = DummyFetcher(
        {
            "https://acme.com": '<a href="/contact">Contact</a> hello@acme.com me@gmail.com',
            "https://acme.com/contact": '<a href="mailto:alice.walker@acme.com">Alice</a>',
        }
    )
    strategy = WebsiteCrawlerStrategy(fetcher=fetcher, logger=logging.getLogger("test"))
    result = strategy.execute(_context())
    assert result.source == "website_crawler"
    assert result.emails == ["hello@acme.com", "alice.walker@acme.com"]
    assert result.metadata["pages_crawled"] == 2
    assert "search_date" in result.metadata


def test_website_crawler_respects_depth_zero() -> None:
    fetcher = DummyFetcher({"https://acme.com": '<a href="/contact">Contact</a> hello@acme.com'})
    strategy = WebsiteCrawlerStrategy(fetcher=fetcher, logger=logging.getLogger("test"))
    result = strategy.execute(_context(options=SearchOptions(max_depth=0)))
    assert result.emails == ["hello@acme.com"]
    assert [url for url, _params in fetcher.calls] == ["https://acme.com"]


def test_website_crawler_requires_site() -> None:
    strategy = WebsiteCrawlerStrategy(fetcher=DummyFetcher({}), logger=logging.getLogger("test"))
    result = strategy.execute(_context(company_website=None, company_domain=None))
    assert result.emails == []
    assert result.error == "No company website provided"


def test_domain_analysis_reports_mail_records() -> None:
    def fake_resolve(name: str, record_type: str, **_kwargs: Any) -> list[Any]:
        if record_type == "MX":
            return [MxRecord("mx2.acme.com.", 20), MxRecord("mx1.acme.com.", 10)]
        if name == "acme.com":
            return [TxtRecord("google-site-verification=x"), TxtRecord("v=spf1 include:_spf ~all")]
        raise dns.resolver.NXDOMAIN()

    strategy = DomainAnalysisStrategy(logger=logging.getLogger("test"), resolve_fn=fake_resolve)
    result = strategy.execute(_context())
    assert result.emails == []
    assert result.metadata["has_mx_records"] is True
    assert result.metadata["mx_records"] == ["mx1.acme.com", "mx2.acme.com"]
    assert result.metadata["spf_record"] == "v=spf1 include:_spf ~all"
    assert result.metadata["dmarc_record"] is None
    assert result.error is None


def test_domain_analysis_reports_dns_failures() -> None:
    def failing_resolve(*_args: object, **_kwargs: object) -> object:
        raise dns.exception.Timeout()

    strategy = DomainAnalysisStrategy(logger=logging.getLogger("test"), resolve_fn=failing_resolve)
    result = strategy.execute(_context())
    assert result.error is not None
    assert result.error.startswith("DNS lookup failed")
    assert strategy.execute(_context(company_website=None, company_domain=None)).error == (
        "No company domain provided"
    )


def test_pattern_prediction_uses_validated_names() -> None:
    strategy = PatternPredictionStrategy(logger=logging.getLogger("test"))
    context = _context(
        top_prospects=(
            TopProspect(name="Alice Walker", role="CEO"),
            TopProspect(name="Sales Team"),
        )
    )
    result = strategy.execute(context)
    assert result.emails[0] == "alice.walker@acme.com"
    assert len(result.emails) == 6
    assert result.metadata["name_validation_scores"] == {"Alice Walker": 70, "Sales Team": 0}
    assert list(result.metadata["patterns_attempted"]) == ["Alice Walker"]
    assert result.metadata["total_predictions"] == 6
    assert result.metadata["valid_predictions"] == 6


def test_pattern_prediction_errors() -> None:
    strategy = PatternPredictionStrategy(logger=logging.getLogger("test"))
    no_names = strategy.execute(_context())
    assert no_names.error == "No valid contact names found for pattern prediction"
    no_domain = strategy.execute(
        _context(
            company_website=None,
            company_domain=None,
            top_prospects=(TopProspect("Alice Walker"),),
        )
    )
    assert no_domain.error == "No company domain provided"


def test_public_directory_scrapes_selectors() -> None:
    fetcher = DummyFetcher(
        {
            "https://www.bbb.org/search": (
                '<div class="business-contact">alice.walker@acme.com</div>'
                "<p>ignored@acme.com</p>"
            ),
        }
    )
    strategy = PublicDirectoryStrategy(fetcher=fetcher, logger=logging.getLogger("test"))
    result = strategy.execute(_context())
    assert result.emails == ["alice.walker@acme.com"]
    assert result.metadata["directories"]["BBB"] == {"success": True, "emails_found": 1}
    assert result.metadata["directories"]["Chamber of Commerce"]["success"] is False
    assert fetcher.calls[0] == ("https://www.bbb.org/search", {"q": "Acme"})


def test_social_profile_builds_linkedin_slug() -> None:
    fetcher = DummyFetcher(
        {"https://www.linkedin.com/company/acme-widgets": "Reach marcus.chen@acmewidgets.com"}
    )
    strategy = SocialProfileStrategy(fetcher=fetcher, logger=logging.getLogger("test"))
    result = strategy.execute(_context(company_name="Acme Widgets"))
    assert result.emails == ["marcus.chen@acmewidgets.com"]
    assert result.metadata["profiles"]["LinkedIn"]["success"] is True
    assert fetcher.calls[1] == ("https://twitter.com/search", {"q": "Acme Widgets"})


def test_hunter_domain_search_strategy() -> None:
    class DummyHunter:
        def domain_search(self, domain: str, limit: int = 10) -> list[dict[str, Any]]:
            _ = limit
            assert domain == "acme.com"
            return [{"value": "Alice@acme.com", "confidence": 91}, {"value": None}]

    strategy = HunterDomainSearchStrategy(
        hunter_client=DummyHunter(), logger=logging.getLogger("test")
    )
    result = strategy.execute(_context())
    assert result.emails == ["alice@acme.com"]
    assert result.metadata["confidences"] == {"alice@acme.com": 91}
