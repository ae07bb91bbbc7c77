"""Hunter API client."""

from __future__ import annotations

import logging
from typing import Any

from requests import Session
from requests.exceptions import RequestException

from .errors import ProviderError
from .models import ProviderResult
from .names import split_first_last
from .scoring import parse_confidence

HUNTER_API = "https://api.hunter.io/v2"


class HunterClient:
    """Lightweight Hunter API wrapper for domain search and email finding."""

    def __init__(
        self, *, session: Session, api_key: str, timeout: float, logger: logging.Logger
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._timeout = timeout
        self._logger = logger

    def domain_search(self, domain: str, limit: int = 10) -> list[dict[str, Any]]:
        if not domain:
            return []
        params: dict[str, str | int] = {
            "domain": domain,
            "api_key": self._api_key,
            "limit": limit,
        }
        try:
            response = self._session.get(
                f"{HUNTER_API}/domain-search",
                params=params,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except RequestException as exc:
            self._logger.debug("Hunter domain-search failed for %s: %s", domain, exc)
            return []
        emails = payload.get("data", {}).get("emails", [])
        if isinstance(emails, list):
            return [item for item in emails if isinstance(item, dict)]
        return []

    def find_email(
        self, name: str, company_name: str, domain: str | None = None
    ) -> ProviderResult:
        """Look up one person's address with the email-finder endpoint."""
        first_name, last_name = split_first_last(name)
        params: dict[str, str] = {
            "api_key": self._api_key,
            "first_name": first_name,
            "last_name": last_name,
        }
        if domain:
            params["domain"] = domain
        else:
            params["company"] = company_name
        try:
            response = self._session.get(
                f"{HUNTER_API}/email-finder", params=params, timeout=self._timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as exc:
            raise ProviderError(f"Hunter email-finder failed for {name}: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("errors"):
            self._logger.debug("Hunter returned errors for %s: %s", name, payload)
            return ProviderResult(email=None, source="hunter")
        data = payload.get("data") or {}
        email = data.get("email")
        if not isinstance(email, str) or not email:
            return ProviderResult(email=None, source="hunter")
        confidence = parse_confidence(data)
        return ProviderResult(
            email=email.lower(),
            confidence=50 if confidence is None else confidence,
            source="hunter",
            linkedin_url=data.get("linkedin_url") or None,
            title=data.get("position") or None,
        )
