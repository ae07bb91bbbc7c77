"""Comprehensive per-contact email search across paid provider tiers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from requests import Session
from requests.exceptions import RequestException

from .config import SearchRequestOptions
from .errors import LeadDiscoveryError, ProviderError, StorageError
from .models import Contact, ContactStore, EmailFinder, TierApi

COMPLETION_MARKER = "comprehensive_search"


@dataclass(frozen=True)
class SearchTier:
    """A paid lookup tier: its ``completed_searches`` key and endpoint suffix."""

    name: str
    endpoint: str


DEFAULT_TIERS = (
    SearchTier(name="apollo_search", endpoint="apollo"),
    SearchTier(name="contact_enrichment", endpoint="enrich"),
    SearchTier(name="hunter_search", endpoint="hunter"),
)
ENDPOINT_TIERS = {tier.endpoint: tier.name for tier in DEFAULT_TIERS}

SleepFn = Callable[[float], None]

_CAMEL_TO_FIELD = {
    "companyId": "company_id",
    "alternativeEmails": "alternative_emails",
    "linkedinUrl": "linkedin_url",
    "verificationSource": "verification_source",
    "lastEnriched": "last_enriched",
    "nameConfidenceScore": "name_confidence_score",
    "completedSearches": "completed_searches",
}
_CONTACT_KEYS = (
    "id",
    "company_id",
    "name",
    "role",
    "email",
    "alternative_emails",
    "probability",
    "linkedin_url",
    "verification_source",
    "last_enriched",
    "name_confidence_score",
    "completed_searches",
)


def contact_from_payload(payload: Mapping[str, Any]) -> Contact:
    """Build a Contact from a camelCase or snake_case JSON record."""
    values = {_CAMEL_TO_FIELD.get(key, key): value for key, value in payload.items()}
    try:
        return Contact(
            **{
                key: values[key]
                for key in _CONTACT_KEYS
                if key in values and values[key] is not None
            }
        )
    except TypeError as exc:
        raise ProviderError(f"Malformed contact record: {exc}") from exc


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one comprehensive search run for a contact."""

    contact_id: int
    status: str
    email: str | None = None
    tier: str | None = None
    attempted: tuple[str, ...] = ()
    error: str | None = None


class ComprehensiveEmailSearch:
    """Tries Apollo, AI enrichment and Hunter in order until one yields an email.

    At most one search runs per contact at a time. Tiers already listed in
    ``completed_searches`` are skipped unless the caller forces a fresh run,
    and a contact that exhausts every tier (or hits a hard error) is marked
    ``comprehensive_search`` so it is never retried automatically.
    """

    def __init__(
        self,
        *,
        api: TierApi,
        logger: logging.Logger,
        tiers: tuple[SearchTier, ...] = DEFAULT_TIERS,
        settle_delay: float = 0.5,
        sleep_fn: SleepFn = time.sleep,
    ) -> None:
        self._api = api
        self._logger = logger
        self._tiers = tiers
        self._settle_delay = settle_delay
        self._sleep = sleep_fn
        self._pending: set[int] = set()
        self._lock = Lock()

    def is_pending(self, contact_id: int) -> bool:
        with self._lock:
            return contact_id in self._pending

    def run(
        self,
        contact_id: int,
        *,
        search_context: Mapping[str, Any] | None = None,
        options: SearchRequestOptions | None = None,
    ) -> SearchOutcome:
        with self._lock:
            if contact_id in self._pending:
                self._logger.debug("Search already pending for contact %s", contact_id)
                return SearchOutcome(contact_id=contact_id, status="skipped_pending")
            self._pending.add(contact_id)
        try:
            return self._run(contact_id, search_context or {}, options or SearchRequestOptions())
        finally:
            with self._lock:
                self._pending.discard(contact_id)

    def _run(
        self,
        contact_id: int,
        search_context: Mapping[str, Any],
        options: SearchRequestOptions,
    ) -> SearchOutcome:
        attempted: list[str] = []
        try:
            contact = self._api.get_contact(contact_id)
            if contact.email:
                return SearchOutcome(
                    contact_id=contact_id, status="already_has_email", email=contact.email
                )
            payload = {"search_context": dict(search_context), **options.as_payload()}
            for tier in self._tiers:
                if tier.name in contact.completed_searches and not options.force_fresh:
                    continue
                attempted.append(tier.name)
                self._logger.info("Contact %s: trying %s", contact_id, tier.name)
                updated = self._api.run_tier(contact_id, tier.endpoint, payload)
                if updated is None:
                    self._sleep(self._settle_delay)
                    updated = self._api.get_contact(contact_id)
                contact = updated
                if contact.email:
                    return SearchOutcome(
                        contact_id=contact_id,
                        status="found",
                        email=contact.email,
                        tier=tier.name,
                        attempted=tuple(attempted),
                    )
            self._api.mark_complete(contact_id)
            return SearchOutcome(
                contact_id=contact_id, status="exhausted", attempted=tuple(attempted)
            )
        except LeadDiscoveryError as exc:
            self._logger.warning("Comprehensive search failed for contact %s: %s", contact_id, exc)
            try:
                self._api.mark_complete(contact_id)
            except LeadDiscoveryError as mark_exc:
                self._logger.error("Could not mark contact %s complete: %s", contact_id, mark_exc)
            return SearchOutcome(
                contact_id=contact_id,
                status="error",
                attempted=tuple(attempted),
                error=str(exc),
            )


class HttpTierApi:
    """Tier transport over the contacts REST endpoints."""

    def __init__(
        self,
        *,
        session: Session,
        base_url: str,
        timeout: float,
        logger: logging.Logger,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._logger = logger

    def _url(self, contact_id: int, suffix: str = "") -> str:
        url = f"{self._base_url}/api/contacts/{contact_id}"
        return f"{url}/{suffix}" if suffix else url

    def run_tier(
        self, contact_id: int, endpoint: str, payload: Mapping[str, Any]
    ) -> Contact | None:
        self._logger.debug("POST %s for contact %s", endpoint, contact_id)
        body: dict[str, Any] = {
            "searchContext": payload.get("search_context", {}),
            "silent": payload.get("silent", True),
            "forceFresh": payload.get("force_fresh", False),
        }
        if endpoint == "enrich":
            body["includeEmail"] = True
        try:
            response = self._session.post(
                self._url(contact_id, endpoint), json=body, timeout=self._timeout
            )
            response.raise_for_status()
            data = response.json() if response.content else None
        except (RequestException, ValueError) as exc:
            raise ProviderError(f"Tier {endpoint} failed for contact {contact_id}: {exc}") from exc
        if not isinstance(data, dict):
            return None
        record = data.get("contact") if isinstance(data.get("contact"), dict) else data
        if "id" not in record or "name" not in record:
            return None
        return contact_from_payload(record)

    def get_contact(self, contact_id: int) -> Contact:
        try:
            response = self._session.get(self._url(contact_id), timeout=self._timeout)
        except RequestException as exc:
            raise ProviderError(f"Could not load contact {contact_id}: {exc}") from exc
        if response.status_code == 404:
            raise StorageError(f"Contact {contact_id} not found")
        try:
            response.raise_for_status()
            return contact_from_payload(response.json())
        except (RequestException, ValueError) as exc:
            raise ProviderError(f"Could not load contact {contact_id}: {exc}") from exc

    def mark_complete(self, contact_id: int) -> None:
        try:
            response = self._session.post(
                self._url(contact_id, "comprehensive-search-complete"), timeout=self._timeout
            )
            response.raise_for_status()
        except RequestException as exc:
            raise ProviderError(f"Could not mark contact {contact_id} complete: {exc}") from exc


class LocalTierApi:
    """Runs tiers in-process against a contact store and provider clients.

    Each attempt appends its tier to ``completed_searches`` whether or not
    the provider succeeds, and returns the updated contact.
    """

    def __init__(
        self,
        *,
        store: ContactStore,
        providers: Mapping[str, EmailFinder],
        logger: logging.Logger,
    ) -> None:
        self._store = store
        self._providers = dict(providers)
        self._logger = logger

    def get_contact(self, contact_id: int) -> Contact:
        contact = self._store.get_contact(contact_id)
        if contact is None:
            raise StorageError(f"Contact {contact_id} not found")
        return contact

    def _record(self, contact_id: int, marker: str, patch: dict[str, Any]) -> Contact:
        searches = list(self.get_contact(contact_id).completed_searches)
        if marker not in searches:
            searches.append(marker)
        return self._store.update_contact(contact_id, {**patch, "completed_searches": searches})

    def run_tier(
        self, contact_id: int, endpoint: str, payload: Mapping[str, Any]
    ) -> Contact | None:
        tier_name = ENDPOINT_TIERS.get(endpoint)
        if tier_name is None:
            raise ProviderError(f"Unknown tier endpoint: {endpoint}")
        if not payload.get("silent", True):
            self._logger.info("Running %s for contact %s", tier_name, contact_id)
        contact = self.get_contact(contact_id)
        patch: dict[str, Any] = {}
        try:
            finder = self._providers.get(endpoint)
            if finder is None:
                self._logger.debug("No provider configured for tier %s", endpoint)
            else:
                company = self._store.get_company(contact.company_id)
                result = finder.find_email(
                    contact.name,
                    company.name if company else "",
                    company.domain if company else None,
                )
                if result.email:
                    patch.update(
                        email=result.email,
                        probability=result.confidence,
                        verification_source=result.source or endpoint,
                        last_enriched=datetime.now(timezone.utc).isoformat(),
                    )
                    if result.linkedin_url and not contact.linkedin_url:
                        patch["linkedin_url"] = result.linkedin_url
        finally:
            updated = self._record(contact_id, tier_name, patch)
        return updated

    def mark_complete(self, contact_id: int) -> None:
        self._record(contact_id, COMPLETION_MARKER, {})
