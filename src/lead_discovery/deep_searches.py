"""Ranked search-result helpers and the deep-search probe registry."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from .email_analysis import validate_email_pattern
from .models import EmailSearchResult, SearchContext, SearchResult, SearchStrategy
from .scoring import clamp_score, normalize_confidence_score


def validate_search_result(result: SearchResult, min_confidence: float = 0.5) -> bool:
    """Keep results that carry content and reach ``min_confidence`` (a 0..1 ratio)."""
    if not result.content or not result.content.strip():
        return False
    return result.confidence >= normalize_confidence_score(min_confidence)


def enrich_search_context(context: SearchContext, **options: Any) -> SearchContext:
    """Return a new context with ``options`` merged over the existing ones."""
    return replace(context, options=replace(context.options, **options))


def combine_search_results(
    results: Iterable[SearchResult],
    weights: Mapping[str, float] | None = None,
    min_confidence: float = 0.5,
) -> list[SearchResult]:
    """Filter, weight by source and rank results, highest confidence first."""
    weights = weights or {}
    combined: list[SearchResult] = []
    for result in results:
        if not validate_search_result(result, min_confidence):
            continue
        weight = weights.get(result.source, 1.0)
        combined.append(replace(result, confidence=clamp_score(result.confidence * weight)))
    return sorted(combined, key=lambda item: item.confidence, reverse=True)


def run_searches(
    strategies: Iterable[SearchStrategy], context: SearchContext, *, logger: logging.Logger
) -> list[SearchResult]:
    """Run strategies in order; a failing strategy yields one zero-confidence error result."""
    collected: list[SearchResult] = []
    for strategy in strategies:
        try:
            collected.extend(strategy.execute(context))
        except Exception as exc:
            logger.warning("Search strategy %s failed: %s", strategy.name, exc)
            collected.append(
                SearchResult(
                    content="",
                    confidence=0,
                    source=strategy.name,
                    metadata={"error": str(exc)},
                )
            )
    return collected


def email_results_to_search_results(results: Iterable[EmailSearchResult]) -> list[SearchResult]:
    """Flatten email-discovery output into one ranked result per address."""
    flattened: list[SearchResult] = []
    for result in results:
        for email in result.emails:
            flattened.append(
                SearchResult(
                    content=email,
                    confidence=validate_email_pattern(email),
                    source=result.source,
                    metadata={"validation_score": result.metadata.get("validation_score")},
                )
            )
    return flattened


class ExtensionPointProbe:
    """A deep-search source with no integration yet.

    Probes always answer with a single zero-confidence result flagged as an
    extension point, so they never outrank real findings.
    """

    def __init__(self, name: str, platform: str) -> None:
        self.name = name
        self.platform = platform

    def execute(self, context: SearchContext) -> list[SearchResult]:
        return [
            SearchResult(
                content=f"{self.platform} lookup for {context.company_name} is not integrated",
                confidence=0,
                source=self.name,
                metadata={
                    "extension_point": True,
                    "platform": self.platform,
                    "company_name": context.company_name,
                },
            )
        ]


DEEP_SEARCH_PLATFORMS = (
    ("yelp_search", "Yelp"),
    ("google_my_business", "Google My Business"),
    ("linkedin_search", "LinkedIn"),
    ("twitter_search", "Twitter"),
    ("facebook_search", "Facebook"),
    ("crunchbase_search", "Crunchbase"),
    ("angellist_search", "AngelList"),
    ("small_business_directory", "Small business directories"),
    ("tech_startup_directory", "Tech startup listings"),
    ("local_events", "Local events"),
    ("business_associations", "Business associations"),
)


def build_deep_search_probes() -> list[SearchStrategy]:
    return [ExtensionPointProbe(name, platform) for name, platform in DEEP_SEARCH_PLATFORMS]
