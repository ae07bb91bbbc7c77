import json
import logging
from typing import Any

import pytest
import requests

from lead_discovery.apollo import ApolloClient
from lead_discovery.errors import ProviderError
from lead_discovery.hunter import HunterClient
from lead_discovery.perplexity import (
    LocalEmailValidator,
    PerplexityClient,
    extract_json_object,
    local_email_details,
)


class FakeResponse:
    def __init__(self, *, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.RequestException("request failed")

    def json(self) -> Any:
        return self._payload


class FakeSession:
    def __init__(
        self, responses: list[FakeResponse] | None = None, raise_error: bool = False
    ) -> None:
        self._responses = responses or []
        self._raise_error = raise_error
        self.requests: list[dict[str, Any]] = []

    def _next(self, method: str, url: str, kwargs: dict[str, Any]) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        if self._raise_error:
            raise requests.RequestException("network down")
        if self._responses:
            return self._responses.pop(0)
        return FakeResponse(status_code=500)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, kwargs)


def _hunter(session: FakeSession) -> HunterClient:
    return HunterClient(
        session=session, api_key="key", timeout=5.0, logger=logging.getLogger("test")
    )  # type: ignore[arg-type]


def _chat(content: str) -> FakeResponse:
    return FakeResponse(payload={"choices": [{"message": {"content": content}}]})


def test_hunter_domain_search_success_and_failure() -> None:
    session = FakeSession([FakeResponse(payload={"data": {"emails": [{"value": "a@acme.com"}]}})])
    assert _hunter(session).domain_search("acme.com") == [{"value": "a@acme.com"}]
    assert _hunter(FakeSession(raise_error=True)).domain_search("acme.com") == []
    assert _hunter(FakeSession()).domain_search("") == []


def test_hunter_find_email_parses_confidence() -> None:
    session = FakeSession(
        [
            FakeResponse(
                payload={
                    "data": {
                        "email": "Alice.Walker@acme.com",
                        "score": 0.91,
                        "position": "CEO",
                    }
                }
            )
        ]
    )
    result = _hunter(session).find_email("Alice Walker", "Acme", "acme.com")
    assert result.email == "alice.walker@acme.com"
    assert result.confidence == 91
    assert result.source == "hunter"
    assert result.title == "CEO"
    params = session.requests[0]["params"]
    assert params["first_name"] == "Alice"
    assert params["last_name"] == "Walker"
    assert params["domain"] == "acme.com"


def test_hunter_find_email_handles_misses_and_errors() -> None:
    missing = _hunter(FakeSession([FakeResponse(payload={"data": {"email": None}})]))
    assert missing.find_email("Alice Walker", "Acme").email is None
    with pytest.raises(ProviderError):
        _hunter(FakeSession(raise_error=True)).find_email("Alice Walker", "Acme")


def test_apollo_find_email_posts_match_request() -> None:
    session = FakeSession(
        [
            FakeResponse(
                payload={
                    "person": {
                        "email": "alice@acme.com",
                        "linkedin_url": "https://linkedin.com/in/alicewalker",
                        "title": "CEO",
                    }
                }
            )
        ]
    )
    client = ApolloClient(
        session=session, api_key="key", timeout=5.0, logger=logging.getLogger("test")
    )  # type: ignore[arg-type]
    result = client.find_email("Alice Walker", "Acme", "acme.com")
    assert result.email == "alice@acme.com"
    assert result.confidence == 50
    assert result.linkedin_url == "https://linkedin.com/in/alicewalker"
    body = session.requests[0]["json"]
    assert session.requests[0]["method"] == "POST"
    assert body["organization_name"] == "Acme"
    assert body["domain"] == "acme.com"


def test_apollo_no_match_and_failure() -> None:
    client = ApolloClient(
        session=FakeSession([FakeResponse(payload={"person": None})]),
        api_key="key",
        timeout=5.0,
        logger=logging.getLogger("test"),
    )  # type: ignore[arg-type]
    assert client.find_email("Alice Walker", "Acme").email is None
    failing = ApolloClient(
        session=FakeSession(raise_error=True),
        api_key="key",
        timeout=5.0,
        logger=logging.getLogger("test"),
    )  # type: ignore[arg-type]
    with pytest.raises(ProviderError):
        failing.match_person("Alice Walker", "Acme")


def test_extract_json_object() -> None:
    assert extract_json_object('Sure! {"score": 80, "analysis": "ok"} done') == {
        "score": 80,
        "analysis": "ok",
    }
    assert extract_json_object("no json here") == {}
    assert extract_json_object("{broken") == {}


def test_local_email_details_and_validator() -> None:
    details = local_email_details(["alice.walker@acme.com", "info@acme.com"])
    assert details["emails"]["info@acme.com"]["placeholder"] is True
    assert details["emails"]["info@acme.com"]["pattern_score"] == 35
    assert details["pattern_score"] == 62
    assert details["business_domain_score"] == 40
    assert details["placeholder_check"] is True

    result = LocalEmailValidator().validate_emails(["alice.walker@acme.com"])
    assert result.score == 100
    assert LocalEmailValidator().validate_emails([]).score == 0


def test_perplexity_validate_emails_blends_ai_confidence() -> None:
    session = FakeSession([_chat(json.dumps({"score": 80, "analysis": "looks real"}))])
    client = PerplexityClient(
        session=session, api_key="pk", timeout=5.0, logger=logging.getLogger("test")
    )  # type: ignore[arg-type]
    result = client.validate_emails(["alice.walker@acme.com"])
    assert result.score == 72
    assert result.validation_details["ai_confidence"] == 80
    request = session.requests[0]
    assert request["headers"]["Authorization"] == "Bearer pk"
    assert request["json"]["model"] == "sonar"


def test_perplexity_errors_raise_provider_error() -> None:
    client = PerplexityClient(
        session=FakeSession(raise_error=True),
        api_key="pk",
        timeout=5.0,
        logger=logging.getLogger("test"),
    )  # type: ignore[arg-type]
    with pytest.raises(ProviderError):
        client.validate_emails(["alice.walker@acme.com"])
    empty = PerplexityClient(
        session=FakeSession([FakeResponse(payload={"choices": []})]),
        api_key="pk",
        timeout=5.0,
        logger=logging.getLogger("test"),
    )  # type: ignore[arg-type]
    with pytest.raises(ProviderError):
        empty.query([{"role": "user", "content": "hi"}])


def test_perplexity_find_email_discards_placeholders() -> None:
    session = FakeSession(
        [
            _chat('{"email": "Alice.Walker@acme.com", "confidence": 0.8}'),
            _chat('{"email": "firstname.lastname@acme.com", "confidence": 90}'),
        ]
    )
    client = PerplexityClient(
        session=session, api_key="pk", timeout=5.0, logger=logging.getLogger("test")
    )  # type: ignore[arg-type]
    found = client.find_email("Alice Walker", "Acme", "acme.com")
    assert found.email == "alice.walker@acme.com"
    assert found.confidence == 80
    assert found.source == "perplexity"
    assert client.find_email("Alice Walker", "Acme").email is None
