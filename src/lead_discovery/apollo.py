"""Apollo people-match client."""

from __future__ import annotations

import logging
from typing import Any

from requests import Session
from requests.exceptions import RequestException

from .errors import ProviderError
from .models import ProviderResult
from .names import split_first_last
from .scoring import parse_confidence

APOLLO_MATCH_URL = "https://api.apollo.io/api/v1/people/match"


class ApolloClient:
    """Person enrichment through Apollo's people/match endpoint."""

    def __init__(
        self, *, session: Session, api_key: str, timeout: float, logger: logging.Logger
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._timeout = timeout
        self._logger = logger

    def match_person(
        self, name: str, company_name: str, domain: str | None = None
    ) -> dict[str, Any]:
        """Return Apollo's ``person`` record, or an empty dict when unmatched."""
        first_name, last_name = split_first_last(name)
        body: dict[str, str] = {
            "api_key": self._api_key,
            "first_name": first_name,
            "last_name": last_name,
            "organization_name": company_name,
        }
        if domain:
            body["domain"] = domain
        try:
            response = self._session.post(
                APOLLO_MATCH_URL,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as exc:
            raise ProviderError(f"Apollo people/match failed for {name}: {exc}") from exc
        person = payload.get("person") if isinstance(payload, dict) else None
        return person if isinstance(person, dict) else {}

    def find_email(
        self, name: str, company_name: str, domain: str | None = None
    ) -> ProviderResult:
        person = self.match_person(name, company_name, domain)
        if not person:
            self._logger.debug("Apollo found no match for %s at %s", name, company_name)
            return ProviderResult(email=None, source="apollo")
        email = person.get("email")
        confidence = parse_confidence(person)
        return ProviderResult(
            email=email.lower() if isinstance(email, str) and email else None,
            confidence=50 if confidence is None else confidence,
            source="apollo",
            linkedin_url=person.get("linkedin_url") or None,
            title=person.get("title") or None,
        )
