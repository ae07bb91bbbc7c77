"""Perplexity chat-completions client and batch email validators."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from requests import Session
from requests.exceptions import RequestException

from .email_analysis import (
    is_placeholder_email,
    is_valid_business_email,
    parse_email_details,
    validate_email_pattern,
)
from .errors import ProviderError
from .models import EmailValidationResult, ProviderResult
from .scoring import clamp_score, parse_confidence

PERPLEXITY_URL = "https://api.perplexity.ai/chat/completions"
BUSINESS_DOMAIN_SCORE = 40
PLACEHOLDER_PENALTY = 50
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

VALIDATION_PROMPT = (
    "You are an email validation service. Analyze the provided email addresses and return "
    "a confidence score (0-100) considering: business email patterns, domain reputation, "
    "role-based vs personal patterns. Return JSON: "
    '{"score": number, "analysis": string}'
)
ENRICHMENT_PROMPT = (
    "You find professional contact details. Reply with JSON only: "
    '{"email": string or null, "confidence": number 0-100, "linkedin_url": string or null}'
)


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first ``{...}`` block in a model reply, or an empty dict."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return {}
    try:
        payload = json.loads(match.group(0))
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def local_email_details(emails: list[str]) -> dict[str, Any]:
    """Pattern, business-domain and placeholder signals for a batch of emails."""
    per_email: dict[str, dict[str, Any]] = {}
    for email in emails:
        placeholder = is_placeholder_email(email)
        pattern = validate_email_pattern(email)
        if placeholder:
            pattern = max(0, pattern - PLACEHOLDER_PENALTY)
        per_email[email] = {
            "pattern_score": pattern,
            "business_email": is_valid_business_email(email),
            "placeholder": placeholder,
        }
    if not per_email:
        return {"pattern_score": 0, "business_domain_score": 0, "placeholder_check": False}
    pattern_score = sum(item["pattern_score"] for item in per_email.values()) / len(per_email)
    business = any(item["business_email"] for item in per_email.values())
    return {
        "pattern_score": clamp_score(pattern_score),
        "business_domain_score": BUSINESS_DOMAIN_SCORE if business else 0,
        "placeholder_check": any(item["placeholder"] for item in per_email.values()),
        "emails": per_email,
    }


class LocalEmailValidator:
    """Batch validator that never leaves the process."""

    def validate_emails(self, emails: list[str]) -> EmailValidationResult:
        details = local_email_details(emails)
        score = clamp_score(details["pattern_score"] + details["business_domain_score"])
        return EmailValidationResult(score=score, validation_details=details)


class PerplexityClient:
    """Perplexity chat client used for AI email validation and enrichment."""

    def __init__(
        self,
        *,
        session: Session,
        api_key: str,
        timeout: float,
        logger: logging.Logger,
        model: str = "sonar",
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._timeout = timeout
        self._logger = logger
        self._model = model

    def query(self, messages: list[dict[str, str]]) -> str:
        """Send a chat completion and return the assistant text."""
        try:
            response = self._session.post(
                PERPLEXITY_URL,
                json={
                    "model": self._model,
                    "messages": messages,
                    "temperature": 0.2,
                    "max_tokens": 1000,
                },
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (RequestException, ValueError) as exc:
            raise ProviderError(f"Perplexity request failed: {exc}") from exc
        try:
            return str(payload["choices"][0]["message"]["content"])
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("Perplexity response had no message content") from exc

    def validate_emails(self, emails: list[str]) -> EmailValidationResult:
        """Blend local signals with one AI confidence call for the whole batch."""
        details = local_email_details(emails)
        if not emails or details["pattern_score"] <= 0:
            score = clamp_score(details["pattern_score"] + details["business_domain_score"])
            return EmailValidationResult(score=score, validation_details=details)

        prompt = f"Validate these email addresses: {json.dumps(emails)}"
        reply = self.query(
            [
                {"role": "system", "content": VALIDATION_PROMPT},
                {"role": "user", "content": prompt},
            ]
        )
        ai_confidence = parse_confidence(extract_json_object(reply)) or 0
        details = {**details, "ai_confidence": ai_confidence}
        score = int(
            details["pattern_score"] * 0.4
            + details["business_domain_score"] * 0.3
            + ai_confidence * 0.3
        )
        return EmailValidationResult(score=clamp_score(score), validation_details=details)

    def find_email(
        self, name: str, company_name: str, domain: str | None = None
    ) -> ProviderResult:
        where = f"{company_name} ({domain})" if domain else company_name
        reply = self.query(
            [
                {"role": "system", "content": ENRICHMENT_PROMPT},
                {"role": "user", "content": f"Find the work email address of {name} at {where}."},
            ]
        )
        payload = extract_json_object(reply)
        email = payload.get("email")
        if not isinstance(email, str) or not email:
            candidates = parse_email_details(reply)
            email = candidates[0] if candidates else None
        if email and (is_placeholder_email(email) or validate_email_pattern(email) < 50):
            self._logger.debug("Discarding implausible AI email for %s: %s", name, email)
            email = None
        confidence = parse_confidence(payload)
        return ProviderResult(
            email=email.lower() if email else None,
            confidence=(confidence if confidence is not None else 50) if email else 0,
            source="perplexity",
            linkedin_url=payload.get("linkedin_url") or None,
        )
