"""Runtime configuration models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from .errors import ConfigError
from .models import TopProspect
from .validation import validate_runtime_constraints

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; EmailDiscoveryBot/1.0)"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_DISCOVERY_TIMEOUT = 30.0
DEFAULT_MAX_DEPTH = 2
DEFAULT_SETTLE_DELAY = 0.5
DEFAULT_PERPLEXITY_MODEL = "sonar"

EMAIL_STRATEGY_NAMES = (
    "website_crawler",
    "domain_analysis",
    "pattern_prediction",
    "public_directory",
    "social_profile",
    "hunter_domain_search",
)
DEFAULT_STRATEGIES = EMAIL_STRATEGY_NAMES[:5]


@dataclass(frozen=True)
class DiscoveryConfig:
    """Validated configuration used by the discovery pipeline."""

    company_name: str
    output: str
    website: str | None = None
    domain: str | None = None
    contacts: tuple[TopProspect, ...] = ()
    strategies: tuple[str, ...] = DEFAULT_STRATEGIES
    perplexity_key: str | None = None
    perplexity_model: str = DEFAULT_PERPLEXITY_MODEL
    hunter_key: str | None = None
    apollo_key: str | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    settle_delay: float = DEFAULT_SETTLE_DELAY
    legacy_scoring: bool = False
    deep_search: bool = False
    enrich_contacts: bool = False
    contacts_output: str | None = None
    queue_path: str = ":memory:"
    user_agent: str = DEFAULT_USER_AGENT
    show_progress: bool = True

    def __post_init__(self) -> None:
        validate_runtime_constraints(
            company_name=self.company_name,
            website=self.website,
            domain=self.domain,
            strategies=self.strategies,
            known_strategies=EMAIL_STRATEGY_NAMES,
            max_depth=self.max_depth,
            request_timeout=self.request_timeout,
            discovery_timeout=self.discovery_timeout,
            settle_delay=self.settle_delay,
        )


@dataclass(frozen=True)
class SearchRequestOptions:
    """Per-call flags for a contact search request."""

    silent: bool = True
    force_fresh: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> SearchRequestOptions:
        """Build options from a request body, rejecting unknown keys and non-bool values."""
        if payload is None:
            return cls()
        aliases = {"silent": "silent", "force_fresh": "force_fresh", "forceFresh": "force_fresh"}
        values: dict[str, bool] = {}
        for key, value in payload.items():
            target = aliases.get(key)
            if target is None:
                raise ConfigError(f"Unknown search option: {key}")
            if not isinstance(value, bool):
                raise ConfigError(f"Search option {key} must be a boolean, got {value!r}")
            values[target] = value
        return cls(**values)

    def as_payload(self) -> dict[str, bool]:
        return {item.name: getattr(self, item.name) for item in fields(self)}
