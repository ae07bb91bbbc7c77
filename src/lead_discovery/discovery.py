"""Email discovery orchestration across registered strategies."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from tqdm import tqdm

from .email_analysis import is_valid_business_email, validate_email_pattern
from .email_strategies import build_result, error_result
from .errors import ProviderError
from .extraction import dedupe_preserve_order
from .models import EmailBatchValidator, EmailSearchResult, EmailSearchStrategy, SearchContext

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_DEPTH = 2
MIN_PATTERN_SCORE = 50

ClockFn = Callable[[], float]


def strategy_source(strategy: EmailSearchStrategy) -> str:
    source = getattr(strategy, "source", None)
    if isinstance(source, str) and source:
        return source
    return strategy.name.lower().replace(" ", "_")


class EmailDiscoveryService:
    """Runs email strategies one after another and validates what they find.

    Strategies run sequentially so scraped and paid endpoints are never
    burst. A strategy that raises is recorded as an error result and the
    run continues with the next one.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        strategies: Iterable[EmailSearchStrategy] = (),
        validator: EmailBatchValidator | None = None,
        show_progress: bool = False,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._logger = logger
        self._strategies: list[EmailSearchStrategy] = list(strategies)
        self._validator = validator
        self._show_progress = show_progress
        self._clock = clock

    @property
    def strategies(self) -> tuple[EmailSearchStrategy, ...]:
        return tuple(self._strategies)

    def register_strategy(self, strategy: EmailSearchStrategy) -> None:
        self._strategies.append(strategy)

    def discover_emails(self, context: SearchContext) -> list[EmailSearchResult]:
        """Return one result per registered strategy, in registration order."""
        options = context.options
        context = replace(
            context,
            options=replace(
                options,
                timeout=options.timeout if options.timeout is not None else DEFAULT_TIMEOUT,
                max_depth=options.max_depth if options.max_depth is not None else DEFAULT_MAX_DEPTH,
            ),
        )
        deadline = self._clock() + float(context.options.timeout or DEFAULT_TIMEOUT)

        strategies: Iterable[EmailSearchStrategy] = self._strategies
        if self._show_progress:
            strategies = tqdm(self._strategies, desc="email strategies")

        results: list[EmailSearchResult] = []
        for strategy in strategies:
            source = strategy_source(strategy)
            if self._clock() > deadline:
                results.append(error_result(source, "Discovery timeout exceeded"))
                continue
            self._logger.info("Running strategy: %s", strategy.name)
            try:
                result = strategy.execute(context)
            except Exception as exc:
                self._logger.warning("Strategy %s failed: %s", strategy.name, exc)
                result = error_result(source, str(exc))
            if result.emails:
                result = self._validate(result)
            self._logger.info(" --> %s: %d emails", strategy.name, len(result.emails))
            results.append(result)
        return results

    def _validate(self, result: EmailSearchResult) -> EmailSearchResult:
        original = dedupe_preserve_order([email.lower() for email in result.emails])
        pre_validated = [
            email
            for email in original
            if validate_email_pattern(email) >= MIN_PATTERN_SCORE and is_valid_business_email(email)
        ]
        metadata = {
            **result.metadata,
            "original_email_count": len(result.emails),
            "pre_validated_count": len(pre_validated),
        }
        if pre_validated and self._validator is not None:
            try:
                validation = self._validator.validate_emails(pre_validated)
            except ProviderError as exc:
                self._logger.debug("Batch validation failed, using local checks only: %s", exc)
                metadata["validation_error"] = str(exc)
            else:
                metadata["validation_score"] = validation.score
                metadata["validation_details"] = validation.validation_details

        metadata["validated_email_count"] = len(pre_validated)
        return EmailSearchResult(source=result.source, emails=pre_validated, metadata=metadata)

    def combine_results(self, results: Iterable[EmailSearchResult]) -> EmailSearchResult:
        """Union every strategy's emails into the final ``combined_results`` record."""
        emails: list[str] = []
        per_strategy: dict[str, dict[str, object]] = {}
        for result in results:
            emails.extend(result.emails)
            per_strategy[result.source] = {
                "success": result.error is None,
                "emails_found": len(result.emails),
                **result.metadata,
            }
        return build_result(
            "combined_results", dedupe_preserve_order(emails), strategies=per_strategy
        )
