"""Core orchestration pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from .apollo import ApolloClient
from .config import DiscoveryConfig
from .contacts import DEFAULT_OPTIONS, LEGACY_OPTIONS, deduplicate_contacts, score_contacts
from .deep_searches import (
    build_deep_search_probes,
    combine_search_results,
    email_results_to_search_results,
    run_searches,
)
from .discovery import EmailDiscoveryService
from .email_analysis import is_valid_business_email, validate_email_pattern
from .email_strategies import (
    DomainAnalysisStrategy,
    HunterDomainSearchStrategy,
    PatternPredictionStrategy,
    PublicDirectoryStrategy,
    SocialProfileStrategy,
    WebsiteCrawlerStrategy,
)
from .enrichment_queue import EnrichmentService, SqliteEnrichmentQueue
from .fetchers import RequestsFetcher, RobotsPolicy, make_retry_session
from .hunter import HunterClient
from .io_csv import CONTACT_CSV_FIELDS, write_rows
from .models import (
    Company,
    Contact,
    DomainSearcher,
    EmailBatchValidator,
    EmailFinder,
    EmailSearchResult,
    EmailSearchStrategy,
    Fetcher,
    SearchContext,
    SearchOptions,
    SearchResult,
    SearchStrategy,
    TopProspect,
)
from .perplexity import LocalEmailValidator, PerplexityClient
from .storage import InMemoryContactStore
from .tiering import ComprehensiveEmailSearch, LocalTierApi, SearchOutcome
from .validation import extract_domain, normalize_website

DEFAULT_SOURCE_WEIGHTS = {
    "website_crawler": 1.0,
    "hunter_domain_search": 1.0,
    "public_directory": 0.9,
    "social_profile": 0.9,
    "pattern_prediction": 0.8,
}
PIPELINE_COMPANY_ID = 1

SleepFn = Callable[[float], None]


@dataclass
class DiscoveryReport:
    """Everything one company discovery run produced."""

    company: Company
    contacts: list[Contact]
    results: list[EmailSearchResult]
    combined: EmailSearchResult
    ranked: list[SearchResult] = field(default_factory=list)


def build_email_strategies(
    config: DiscoveryConfig,
    *,
    fetcher: Fetcher,
    hunter_client: DomainSearcher | None,
    logger: logging.Logger,
) -> list[EmailSearchStrategy]:
    """Instantiate the enabled strategies in configured order."""
    factories: dict[str, Callable[[], EmailSearchStrategy]] = {
        "website_crawler": lambda: WebsiteCrawlerStrategy(fetcher=fetcher, logger=logger),
        "domain_analysis": lambda: DomainAnalysisStrategy(logger=logger),
        "pattern_prediction": lambda: PatternPredictionStrategy(logger=logger),
        "public_directory": lambda: PublicDirectoryStrategy(fetcher=fetcher, logger=logger),
        "social_profile": lambda: SocialProfileStrategy(fetcher=fetcher, logger=logger),
    }
    strategies: list[EmailSearchStrategy] = []
    for name in config.strategies:
        if name == "hunter_domain_search":
            if hunter_client is None:
                logger.warning("Hunter domain search requested without key; skipping it.")
                continue
            strategies.append(
                HunterDomainSearchStrategy(hunter_client=hunter_client, logger=logger)
            )
            continue
        strategies.append(factories[name]())
    return strategies


def build_company(config: DiscoveryConfig) -> Company:
    website = normalize_website(config.website)
    domain = (config.domain or "").strip().lower() or extract_domain(website)
    name = config.company_name.strip() or domain or ""
    return Company(id=PIPELINE_COMPANY_ID, name=name, website=website, domain=domain)


def prepare_contacts(
    config: DiscoveryConfig, company: Company, *, logger: logging.Logger
) -> list[Contact]:
    """Score, filter and de-duplicate configured contacts, best first."""
    contacts = [
        Contact(id=index, company_id=company.id, name=prospect.name, role=prospect.role)
        for index, prospect in enumerate(config.contacts, start=1)
    ]
    options = LEGACY_OPTIONS if config.legacy_scoring else DEFAULT_OPTIONS
    scored = score_contacts(contacts, company.name, options)
    # Scored list is sorted best-first, so first-seen duplicates are the best ones.
    kept = deduplicate_contacts(
        [replace(contact, name_confidence_score=score) for contact, score in scored]
    )
    logger.info("Contacts kept after scoring and de-duplication: %d/%d", len(kept), len(contacts))
    return kept


def build_context(
    config: DiscoveryConfig, company: Company, contacts: list[Contact]
) -> SearchContext:
    return SearchContext(
        company_name=company.name,
        company_website=company.website,
        company_domain=company.domain,
        top_prospects=tuple(
            TopProspect(name=contact.name, role=contact.role, score=contact.name_confidence_score)
            for contact in contacts
        ),
        options=SearchOptions(timeout=config.discovery_timeout, max_depth=config.max_depth),
    )


def discover_company(
    config: DiscoveryConfig,
    *,
    strategies: list[EmailSearchStrategy],
    validator: EmailBatchValidator | None,
    logger: logging.Logger,
    deep_search_probes: list[SearchStrategy] | None = None,
) -> DiscoveryReport:
    """Run contact scoring and every email strategy for one company."""
    company = build_company(config)
    contacts = prepare_contacts(config, company, logger=logger)
    context = build_context(config, company, contacts)

    service = EmailDiscoveryService(
        logger=logger,
        strategies=strategies,
        validator=validator,
        show_progress=config.show_progress,
    )
    results = service.discover_emails(context)
    combined = service.combine_results(results)
    logger.info("Unique emails found: %d", len(combined.emails))

    search_results = email_results_to_search_results(results)
    if deep_search_probes:
        search_results.extend(run_searches(deep_search_probes, context, logger=logger))
    ranked = combine_search_results(search_results, DEFAULT_SOURCE_WEIGHTS)
    return DiscoveryReport(
        company=company, contacts=contacts, results=results, combined=combined, ranked=ranked
    )


def _domain_notes(results: list[EmailSearchResult]) -> str:
    for result in results:
        if result.source == "domain_analysis" and result.error is None:
            if not result.metadata.get("has_mx_records"):
                return "domain has no MX records"
            return "domain accepts mail"
    return ""


def report_to_rows(report: DiscoveryReport) -> list[dict[str, str]]:
    best_confidence: dict[str, int] = {}
    for item in report.ranked:
        best_confidence.setdefault(item.content, item.confidence)
    notes = _domain_notes(report.results)
    found_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    rows: list[dict[str, str]] = []
    for email in report.combined.emails:
        sources = [result for result in report.results if email in result.emails]
        validation_scores = [
            int(result.metadata["validation_score"])
            for result in sources
            if result.metadata.get("validation_score") is not None
        ]
        rows.append(
            {
                "email": email,
                "sources": ";".join(result.source for result in sources),
                "confidence": str(best_confidence.get(email, 0)),
                "pattern_score": str(validate_email_pattern(email)),
                "business_email": "yes" if is_valid_business_email(email) else "no",
                "validation_score": str(max(validation_scores)) if validation_scores else "",
                "date_found_utc": found_at,
                "notes": notes,
            }
        )
    rows.sort(key=lambda row: int(row["confidence"]), reverse=True)
    return rows


def enrich_contacts(
    report: DiscoveryReport,
    *,
    providers: dict[str, EmailFinder],
    queue_path: str,
    settle_delay: float,
    logger: logging.Logger,
    sleep_fn: SleepFn | None = None,
) -> tuple[list[Contact], dict[int, SearchOutcome]]:
    """Queue top prospects for AI enrichment, then run tiered search on the rest."""
    store = InMemoryContactStore(report.contacts, [report.company])
    tier_api = LocalTierApi(store=store, providers=providers, logger=logger)
    queue = SqliteEnrichmentQueue(queue_path, logger=logger)
    try:
        service = EnrichmentService(store=store, queue=queue, tier_api=tier_api, logger=logger)
        service.enrich_top_prospects(report.company.id, search_id=report.company.name)
        service.process_pending()
    finally:
        queue.close()

    searcher_kwargs = {"sleep_fn": sleep_fn} if sleep_fn is not None else {}
    searcher = ComprehensiveEmailSearch(
        api=tier_api, logger=logger, settle_delay=settle_delay, **searcher_kwargs
    )
    outcomes: dict[int, SearchOutcome] = {}
    for contact in store.list_contacts_by_company(report.company.id):
        outcomes[contact.id] = searcher.run(
            contact.id, search_context={"company_name": report.company.name}
        )
    return store.list_contacts_by_company(report.company.id), outcomes


def contacts_to_rows(
    contacts: list[Contact], outcomes: dict[int, SearchOutcome]
) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for contact in contacts:
        outcome = outcomes.get(contact.id)
        rows.append(
            {
                "name": contact.name,
                "role": contact.role or "",
                "email": contact.email or "",
                "probability": "" if contact.probability is None else str(contact.probability),
                "verification_source": contact.verification_source or "",
                "name_confidence_score": str(contact.name_confidence_score or 0),
                "completed_searches": ";".join(contact.completed_searches),
                "search_status": outcome.status if outcome else "",
            }
        )
    return rows


def run_pipeline(config: DiscoveryConfig, *, logger: logging.Logger) -> str:
    """Build concrete dependencies, execute pipeline, and write CSV output."""
    session = make_retry_session(config.user_agent)
    fetcher = RequestsFetcher(
        session=session,
        robots_policy=RobotsPolicy(
            session=session, user_agent=config.user_agent, timeout=config.request_timeout
        ),
        timeout=config.request_timeout,
        logger=logger,
    )
    hunter_client = (
        HunterClient(
            session=session,
            api_key=config.hunter_key,
            timeout=config.request_timeout,
            logger=logger,
        )
        if config.hunter_key
        else None
    )
    perplexity_client = (
        PerplexityClient(
            session=session,
            api_key=config.perplexity_key,
            timeout=config.discovery_timeout,
            logger=logger,
            model=config.perplexity_model,
        )
        if config.perplexity_key
        else None
    )
    validator: EmailBatchValidator = perplexity_client or LocalEmailValidator()
    strategies = build_email_strategies(
        config, fetcher=fetcher, hunter_client=hunter_client, logger=logger
    )
    report = discover_company(
        config,
        strategies=strategies,
        validator=validator,
        logger=logger,
        deep_search_probes=build_deep_search_probes() if config.deep_search else None,
    )
    write_rows(config.output, report_to_rows(report))

    if config.enrich_contacts:
        providers: dict[str, EmailFinder] = {}
        if config.apollo_key:
            providers["apollo"] = ApolloClient(
                session=session,
                api_key=config.apollo_key,
                timeout=config.request_timeout,
                logger=logger,
            )
        if perplexity_client is not None:
            providers["enrich"] = perplexity_client
        if hunter_client is not None:
            providers["hunter"] = hunter_client
        contacts, outcomes = enrich_contacts(
            report,
            providers=providers,
            queue_path=config.queue_path,
            settle_delay=config.settle_delay,
            logger=logger,
        )
        if config.contacts_output:
            rows = contacts_to_rows(contacts, outcomes)
            write_rows(config.contacts_output, rows, CONTACT_CSV_FIELDS)
            logger.info("Wrote contacts to %s", config.contacts_output)
    return config.output
