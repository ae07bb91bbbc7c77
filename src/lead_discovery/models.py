"""Protocols and lightweight model types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .scoring import clamp_score


@dataclass(frozen=True)
class SearchOptions:
    """Per-invocation knobs shared by every strategy."""

    timeout: float | None = None
    max_depth: int | None = None
    max_results: int | None = None
    filters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TopProspect:
    """A known person at the target company."""

    name: str
    role: str | None = None
    score: int | None = None


@dataclass(frozen=True)
class SearchContext:
    """Immutable input handed to each strategy call."""

    company_name: str
    company_website: str | None = None
    company_domain: str | None = None
    top_prospects: tuple[TopProspect, ...] = ()
    options: SearchOptions = field(default_factory=SearchOptions)


@dataclass
class SearchResult:
    """One ranked finding produced by a strategy."""

    content: str
    confidence: int
    source: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.confidence = clamp_score(self.confidence)


@dataclass
class EmailSearchResult:
    """Emails found by one email-discovery strategy."""

    source: str
    emails: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def error(self) -> str | None:
        value = self.metadata.get("error")
        return str(value) if value else None


@dataclass
class Contact:
    """A person record owned by the storage layer."""

    id: int
    company_id: int
    name: str
    role: str | None = None
    email: str | None = None
    alternative_emails: list[str] = field(default_factory=list)
    probability: int | None = None
    linkedin_url: str | None = None
    verification_source: str | None = None
    last_enriched: str | None = None
    name_confidence_score: int | None = None
    completed_searches: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.probability is not None:
            self.probability = clamp_score(self.probability)


@dataclass
class Company:
    """A target company record."""

    id: int
    name: str
    website: str | None = None
    domain: str | None = None


@dataclass(frozen=True)
class NameParts:
    """Parsed components of a full name."""

    first_name: str
    last_name: str
    full_name: str
    middle_name: str | None = None
    prefix: str | None = None
    suffix: str | None = None


@dataclass(frozen=True)
class EnrichmentQueueItem:
    """A unit of per-contact enrichment work."""

    contact_id: int
    company_id: int
    search_id: str
    priority: int = 0


@dataclass(frozen=True)
class ProviderResult:
    """Email lookup outcome from a paid provider."""

    email: str | None
    confidence: int = 0
    source: str = ""
    linkedin_url: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class EmailValidationResult:
    """Aggregate validation outcome for a batch of emails."""

    score: int
    validation_details: dict[str, Any] = field(default_factory=dict)


class SearchStrategy(Protocol):
    """Contract for ranked-result strategies."""

    name: str

    def execute(self, context: SearchContext) -> list[SearchResult]:
        """Return zero or more results for a context."""


class EmailSearchStrategy(Protocol):
    """Contract for email-discovery strategies."""

    name: str
    description: str

    def execute(self, context: SearchContext) -> EmailSearchResult:
        """Return discovered emails for a context."""


class Fetcher(Protocol):
    """Contract for HTML fetchers."""

    def fetch(self, url: str, params: Mapping[str, str] | None = None) -> str:
        """Return HTML content for a URL or an empty string."""


class DomainSearcher(Protocol):
    """Contract for providers that list known addresses of a domain."""

    def domain_search(self, domain: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return discovered emails for a domain."""


class EmailBatchValidator(Protocol):
    """Contract for batch email validation services."""

    def validate_emails(self, emails: list[str]) -> EmailValidationResult:
        """Score a batch of emails."""


class EmailFinder(Protocol):
    """Contract for paid single-person email lookups."""

    def find_email(
        self, name: str, company_name: str, domain: str | None = None
    ) -> ProviderResult:
        """Return the best email for a person at a company."""


class ContactStore(Protocol):
    """Contract for the contact/company record store."""

    def get_contact(self, contact_id: int) -> Contact | None:
        """Return a contact or None."""

    def update_contact(self, contact_id: int, patch: Mapping[str, Any]) -> Contact:
        """Apply a partial update and return the stored contact."""

    def get_company(self, company_id: int) -> Company | None:
        """Return a company or None."""

    def list_contacts_by_company(self, company_id: int) -> list[Contact]:
        """Return every contact of a company."""


class TierApi(Protocol):
    """Contract for the per-contact paid enrichment endpoints."""

    def run_tier(
        self, contact_id: int, endpoint: str, payload: Mapping[str, Any]
    ) -> Contact | None:
        """Run one tier; return the updated contact when the endpoint provides it."""

    def get_contact(self, contact_id: int) -> Contact:
        """Re-read a contact."""

    def mark_complete(self, contact_id: int) -> None:
        """Record that comprehensive search is finished for a contact."""
