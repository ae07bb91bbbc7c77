"""Input validation and runtime guardrails."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from .errors import ConfigError
from .models import TopProspect


def is_supported_url(url: str) -> bool:
    """Allow only absolute HTTP(S) URLs with a hostname."""
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def normalize_website(website: str | None) -> str | None:
    """Return an absolute https URL for a bare host or URL, or None."""
    value = (website or "").strip()
    if not value:
        return None
    if "://" not in value:
        value = f"https://{value}"
    return value if is_supported_url(value) else None


def extract_domain(website: str | None) -> str | None:
    """Derive a bare registrable-looking domain from a website URL."""
    url = normalize_website(website)
    if url is None:
        return None
    host = urlparse(url).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host or None


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in content.splitlines() if line.strip()]


def parse_contact_line(line: str) -> TopProspect:
    """Parse ``Name|Role`` (role optional) into a prospect."""
    name, _, role = line.partition("|")
    name = name.strip()
    if not name:
        raise ConfigError(f"Contact entry has no name: {line!r}")
    return TopProspect(name=name, role=role.strip() or None)


def validate_runtime_constraints(
    *,
    company_name: str,
    website: str | None,
    domain: str | None,
    strategies: tuple[str, ...],
    known_strategies: tuple[str, ...],
    max_depth: int,
    request_timeout: float,
    discovery_timeout: float,
    settle_delay: float,
) -> None:
    """Validate CLI/runtime configuration and raise ConfigError on invalid values."""
    if not company_name.strip() and not website and not domain:
        raise ConfigError("Provide --company, --website or --domain.")
    if website and normalize_website(website) is None:
        raise ConfigError(f"--website is not a valid http(s) URL: {website}")
    if max_depth < 0:
        raise ConfigError("--max-depth must be >= 0.")
    if request_timeout <= 0 or discovery_timeout <= 0:
        raise ConfigError("--timeout values must be > 0.")
    if settle_delay < 0:
        raise ConfigError("settle delay must be >= 0.")
    if not strategies:
        raise ConfigError("At least one strategy must be enabled.")
    unknown = sorted(set(strategies) - set(known_strategies))
    if unknown:
        raise ConfigError(
            f"Unknown strategies: {', '.join(unknown)}. Choose from {', '.join(known_strategies)}."
        )
