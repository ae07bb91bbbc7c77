"""Email-discovery strategies.

Each strategy probes one data source and returns an ``EmailSearchResult``.
Missing inputs and external failures are reported through
``metadata["error"]`` instead of being raised.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import dns.exception
import dns.resolver
from bs4 import BeautifulSoup

from .contacts import validate_name
from .email_analysis import (
    generate_possible_emails,
    is_placeholder_email,
    is_valid_business_email,
    validate_email_pattern,
)
from .extraction import (
    dedupe_preserve_order,
    extract_emails,
    extract_mailto_addresses,
    extract_page_emails,
    find_contact_pages,
)
from .models import DomainSearcher, EmailSearchResult, Fetcher, SearchContext
from .validation import extract_domain, normalize_website

DEFAULT_MAX_DEPTH = 2
MAX_CRAWL_PAGES = 25
PATTERN_NAME_MIN_SCORE = 50
PATTERN_NAME_COMPANY_PENALTY = 20
PATTERN_EMAIL_MIN_SCORE = 70
SCRAPED_EMAIL_MIN_SCORE = 50
DNS_LIFETIME = 8.0

ResolveFn = Callable[..., Any]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_result(source: str, emails: list[str], **metadata: Any) -> EmailSearchResult:
    return EmailSearchResult(
        source=source, emails=emails, metadata={"search_date": utc_now_iso(), **metadata}
    )


def error_result(source: str, message: str, **metadata: Any) -> EmailSearchResult:
    """Zero-email result carrying an error annotation."""
    return build_result(source, [], error=message, **metadata)


def context_domain(context: SearchContext) -> str | None:
    return (context.company_domain or "").strip().lower() or extract_domain(
        context.company_website
    )


def is_acceptable_scraped_email(email: str) -> bool:
    """Filter shared by directory and social scrapers."""
    if not is_valid_business_email(email):
        return False
    return validate_email_pattern(email) >= SCRAPED_EMAIL_MIN_SCORE


class WebsiteCrawlerStrategy:
    """Breadth-first crawl of the company site and its contact pages."""

    name = "Website Crawler"
    source = "website_crawler"
    description = "Crawls the company website and contact pages for email addresses"

    def __init__(self, *, fetcher: Fetcher, logger: logging.Logger) -> None:
        self._fetcher = fetcher
        self._logger = logger

    def execute(self, context: SearchContext) -> EmailSearchResult:
        website = normalize_website(context.company_website)
        if website is None and context.company_domain:
            website = normalize_website(context.company_domain)
        if website is None:
            return error_result(self.source, "No company website provided")

        max_depth = context.options.max_depth
        if max_depth is None:
            max_depth = DEFAULT_MAX_DEPTH

        found: list[str] = []
        visited: set[str] = set()
        queue: deque[tuple[str, int]] = deque([(website, 0)])
        while queue and len(visited) < MAX_CRAWL_PAGES:
            url, depth = queue.popleft()
            if url in visited:
                continue
            visited.add(url)
            html = self._fetcher.fetch(url)
            if not html:
                continue
            for email in extract_page_emails(html):
                if is_valid_business_email(email) and email not in found:
                    found.append(email)
            if depth < max_depth:
                for link in find_contact_pages(html, url):
                    if link not in visited:
                        queue.append((link, depth + 1))

        self._logger.debug("Crawled %d pages on %s", len(visited), website)
        return build_result(
            self.source,
            found,
            website=website,
            pages_crawled=len(visited),
            max_depth=max_depth,
        )


class DomainAnalysisStrategy:
    """Characterizes mail deliverability through MX, SPF and DMARC records."""

    name = "Domain Analysis"
    source = "domain_analysis"
    description = "Analyzes DNS mail records for the company domain"

    def __init__(self, *, logger: logging.Logger, resolve_fn: ResolveFn | None = None) -> None:
        self._logger = logger
        self._resolve = resolve_fn or dns.resolver.resolve

    def _lookup(self, name: str, record_type: str) -> list[Any]:
        try:
            return list(self._resolve(name, record_type, lifetime=DNS_LIFETIME))
        except (dns.resolver.NoAnswer, dns.resolver.NXDOMAIN, dns.resolver.NoNameservers):
            return []

    def _txt_records(self, name: str) -> list[str]:
        records: list[str] = []
        for rdata in self._lookup(name, "TXT"):
            chunks = getattr(rdata, "strings", None)
            if chunks:
                records.append(b"".join(chunks).decode("utf-8", errors="replace"))
            else:
                records.append(str(rdata).strip('"'))
        return records

    def execute(self, context: SearchContext) -> EmailSearchResult:
        domain = context_domain(context)
        if not domain:
            return error_result(self.source, "No company domain provided")
        try:
            mx_answers = sorted(
                self._lookup(domain, "MX"), key=lambda rdata: getattr(rdata, "preference", 0)
            )
            mx_records = [str(rdata.exchange).rstrip(".") for rdata in mx_answers]
            spf = next(
                (txt for txt in self._txt_records(domain) if txt.lower().startswith("v=spf1")),
                None,
            )
            dmarc = next(
                (
                    txt
                    for txt in self._txt_records(f"_dmarc.{domain}")
                    if txt.upper().startswith("V=DMARC1")
                ),
                None,
            )
        except dns.exception.DNSException as exc:
            self._logger.debug("DNS analysis failed for %s: %s", domain, exc)
            return error_result(self.source, f"DNS lookup failed: {exc}", domain=domain)

        return build_result(
            self.source,
            [],
            domain=domain,
            has_mx_records=bool(mx_records),
            mx_records=mx_records,
            spf_record=spf,
            dmarc_record=dmarc,
        )


class PatternPredictionStrategy:
    """Predicts addresses from known contact names and common corporate formats."""

    name = "Pattern Prediction"
    source = "pattern_prediction"
    description = "Generates likely addresses from contact names and the company domain"

    def __init__(self, *, logger: logging.Logger) -> None:
        self._logger = logger

    def execute(self, context: SearchContext) -> EmailSearchResult:
        domain = context_domain(context)
        if not domain:
            return error_result(self.source, "No company domain provided")
        prospects = [prospect for prospect in context.top_prospects if prospect.name.strip()]
        if not prospects:
            return error_result(
                self.source, "No valid contact names found for pattern prediction", domain=domain
            )

        attempted: dict[str, list[str]] = {}
        name_scores: dict[str, int] = {}
        predicted: list[str] = []
        for prospect in prospects:
            score = validate_name(
                prospect.name,
                context.company_name,
                role=prospect.role,
                company_name_penalty=PATTERN_NAME_COMPANY_PENALTY,
            )
            name_scores[prospect.name] = score
            if score < PATTERN_NAME_MIN_SCORE:
                continue
            candidates = generate_possible_emails(prospect.name, domain)
            attempted[prospect.name] = candidates
            for email in candidates:
                if is_placeholder_email(email):
                    continue
                if validate_email_pattern(email) >= PATTERN_EMAIL_MIN_SCORE:
                    predicted.append(email)

        emails = dedupe_preserve_order(predicted)
        return build_result(
            self.source,
            emails,
            domain=domain,
            patterns_attempted=attempted,
            name_validation_scores=name_scores,
            total_predictions=sum(len(items) for items in attempted.values()),
            valid_predictions=len(emails),
        )


@dataclass(frozen=True)
class ScrapeTarget:
    """One directory or social site probed by a scraping strategy."""

    name: str
    url: str
    selector: str | None = None
    query_param: str | None = "q"


class _ScrapingStrategy:
    """Fetches a fixed list of sites and keeps plausible business emails."""

    name = ""
    source = ""
    description = ""
    metadata_key = "targets"
    targets: tuple[ScrapeTarget, ...] = ()

    def __init__(self, *, fetcher: Fetcher, logger: logging.Logger) -> None:
        self._fetcher = fetcher
        self._logger = logger

    def _request(
        self, target: ScrapeTarget, context: SearchContext
    ) -> tuple[str, dict[str, str] | None]:
        if target.query_param:
            return target.url, {target.query_param: context.company_name}
        return target.url, None

    def _emails_from(self, html: str, target: ScrapeTarget) -> list[str]:
        if target.selector is None:
            return extract_page_emails(html)
        emails: list[str] = []
        soup = BeautifulSoup(html, "html.parser")
        for element in soup.select(target.selector):
            emails.extend(sorted(extract_emails(element.get_text(" "))))
            emails.extend(extract_mailto_addresses(str(element)))
        return dedupe_preserve_order(emails)

    def execute(self, context: SearchContext) -> EmailSearchResult:
        if not context.company_name.strip():
            return error_result(self.source, "No company name provided")
        found: list[str] = []
        per_target: dict[str, dict[str, Any]] = {}
        for target in self.targets:
            url, params = self._request(target, context)
            html = self._fetcher.fetch(url, params=params)
            if not html:
                per_target[target.name] = {"success": False, "error": "No content returned"}
                continue
            accepted = [
                email
                for email in self._emails_from(html, target)
                if is_acceptable_scraped_email(email)
            ]
            per_target[target.name] = {"success": True, "emails_found": len(accepted)}
            found.extend(accepted)
        return build_result(
            self.source, dedupe_preserve_order(found), **{self.metadata_key: per_target}
        )


class PublicDirectoryStrategy(_ScrapingStrategy):
    """Searches business directories for published contact emails."""

    name = "Public Directory"
    source = "public_directory"
    description = "Searches BBB and Chamber of Commerce listings"
    metadata_key = "directories"
    targets = (
        ScrapeTarget(name="BBB", url="https://www.bbb.org/search", selector=".business-contact"),
        ScrapeTarget(
            name="Chamber of Commerce",
            url="https://www.chamberofcommerce.com/search",
            selector=".member-contact",
        ),
    )


class SocialProfileStrategy(_ScrapingStrategy):
    """Reads public company social profiles for contact emails."""

    name = "Social Profile"
    source = "social_profile"
    description = "Reads LinkedIn and Twitter company pages"
    metadata_key = "profiles"
    targets = (
        ScrapeTarget(name="LinkedIn", url="https://www.linkedin.com/company", query_param=None),
        ScrapeTarget(name="Twitter", url="https://twitter.com/search"),
    )

    def _request(
        self, target: ScrapeTarget, context: SearchContext
    ) -> tuple[str, dict[str, str] | None]:
        if target.query_param is None:
            slug = "-".join(context.company_name.lower().split())
            return f"{target.url}/{quote(slug)}", None
        return super()._request(target, context)


class HunterDomainSearchStrategy:
    """Lists addresses Hunter already knows for the company domain."""

    name = "Hunter Domain Search"
    source = "hunter_domain_search"
    description = "Queries Hunter domain search for known addresses"

    def __init__(
        self, *, hunter_client: DomainSearcher, logger: logging.Logger, limit: int = 10
    ) -> None:
        self._hunter = hunter_client
        self._logger = logger
        self._limit = limit

    def execute(self, context: SearchContext) -> EmailSearchResult:
        domain = context_domain(context)
        if not domain:
            return error_result(self.source, "No company domain provided")
        emails: list[str] = []
        confidences: dict[str, Any] = {}
        for item in self._hunter.domain_search(domain, limit=self._limit):
            value = item.get("value")
            if not isinstance(value, str) or not value:
                continue
            address = value.lower()
            if address not in emails:
                emails.append(address)
                confidences[address] = item.get("confidence")
        return build_result(self.source, emails, domain=domain, confidences=confidences)
