"""CLI entrypoint for lead-discovery."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

from .config import (
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_MAX_DEPTH,
    DEFAULT_PERPLEXITY_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STRATEGIES,
    EMAIL_STRATEGY_NAMES,
    DiscoveryConfig,
)
from .errors import ConfigError
from .logging_utils import configure_logging, get_logger
from .models import TopProspect
from .pipeline import run_pipeline
from .validation import load_lines_from_file, parse_contact_line


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="Lead Discovery - multi-strategy company email discovery and contact scoring."
    )
    parser.add_argument("--company", default="", help="Company name.")
    parser.add_argument("--website", help="Company website URL.")
    parser.add_argument("--domain", help="Company email domain (default: from --website).")
    parser.add_argument(
        "--contact",
        action="append",
        default=[],
        help="Known person as 'Name|Role' (repeatable).",
    )
    parser.add_argument(
        "--contacts-file", help="Path to contacts file (one 'Name|Role' per line)."
    )
    parser.add_argument(
        "--strategies",
        nargs="+",
        choices=EMAIL_STRATEGY_NAMES,
        default=list(DEFAULT_STRATEGIES),
        help="Email strategies to run, in order.",
    )
    parser.add_argument("--output", default="emails_output.csv", help="Output CSV path.")
    parser.add_argument(
        "--perplexity-key", help="Perplexity key (or set PERPLEXITY_API_KEY env var)."
    )
    parser.add_argument(
        "--perplexity-model", default=DEFAULT_PERPLEXITY_MODEL, help="Perplexity model name."
    )
    parser.add_argument("--hunter-key", help="Hunter key (or set HUNTER_API_KEY env var).")
    parser.add_argument("--apollo-key", help="Apollo key (or set APOLLO_API_KEY env var).")
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum link depth for the website crawler.",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help="Per-request HTTP timeout in seconds.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_DISCOVERY_TIMEOUT,
        help="Overall discovery timeout in seconds.",
    )
    parser.add_argument(
        "--legacy-scoring",
        action="store_true",
        help="Use the permissive legacy contact thresholds.",
    )
    parser.add_argument(
        "--deep-search",
        action="store_true",
        help="Include deep-search platform probes in the ranking.",
    )
    parser.add_argument(
        "--enrich-contacts",
        action="store_true",
        help="Run queued enrichment and tiered paid lookups for contacts.",
    )
    parser.add_argument("--contacts-output", help="Contacts CSV path (with --enrich-contacts).")
    parser.add_argument(
        "--queue-path",
        default=":memory:",
        help="SQLite file for the enrichment queue.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable tqdm progress bars.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and pre-validate CLI input."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.company or args.website or args.domain):
        parser.error("Provide --company, --website, or --domain.")
    return args


def _materialize_contacts(args: argparse.Namespace) -> tuple[TopProspect, ...]:
    lines = list(args.contact)
    if args.contacts_file:
        try:
            lines.extend(load_lines_from_file(args.contacts_file))
        except OSError as exc:
            raise ConfigError(f"Cannot read contacts file {args.contacts_file}: {exc}") from exc
    return tuple(parse_contact_line(line) for line in lines)


def namespace_to_config(args: argparse.Namespace) -> DiscoveryConfig:
    """Convert CLI args to validated DiscoveryConfig."""
    logger = get_logger()
    perplexity_key = args.perplexity_key or os.getenv("PERPLEXITY_API_KEY")
    hunter_key = args.hunter_key or os.getenv("HUNTER_API_KEY")
    apollo_key = args.apollo_key or os.getenv("APOLLO_API_KEY")

    if not perplexity_key:
        logger.info("No Perplexity key found; emails are validated with local checks only.")
    if args.enrich_contacts and not (perplexity_key or hunter_key or apollo_key):
        logger.warning(
            "--enrich-contacts was provided but no provider key was found. "
            "Every tier will be recorded without a lookup."
        )
    if args.contacts_output and not args.enrich_contacts:
        logger.warning("--contacts-output is ignored without --enrich-contacts.")

    return DiscoveryConfig(
        company_name=args.company,
        output=args.output,
        website=args.website,
        domain=args.domain,
        contacts=_materialize_contacts(args),
        strategies=tuple(args.strategies),
        perplexity_key=perplexity_key,
        perplexity_model=args.perplexity_model,
        hunter_key=hunter_key,
        apollo_key=apollo_key,
        max_depth=args.max_depth,
        request_timeout=args.request_timeout,
        discovery_timeout=args.timeout,
        legacy_scoring=bool(args.legacy_scoring),
        deep_search=bool(args.deep_search),
        enrich_contacts=bool(args.enrich_contacts),
        contacts_output=args.contacts_output,
        queue_path=args.queue_path,
        show_progress=not args.no_progress,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = get_logger()
    try:
        config = namespace_to_config(args)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    output = run_pipeline(config, logger=logger)
    logger.info("Wrote results to %s", output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
