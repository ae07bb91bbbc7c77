"""Email address plausibility rules."""

from __future__ import annotations

import re
import unicodedata

from .extraction import extract_emails
from .names import parse_full_name
from .scoring import clamp_score

FREE_MAIL_DOMAINS = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "aol.com",
        "icloud.com",
        "protonmail.com",
        "mail.com",
        "zoho.com",
    }
)
GENERIC_LOCAL_PARTS = frozenset(
    {
        "info",
        "contact",
        "hello",
        "admin",
        "support",
        "sales",
        "marketing",
        "team",
        "hr",
        "jobs",
        "careers",
        "enquiries",
        "inquiry",
        "inquiries",
        "office",
        "generic",
    }
)
PLACEHOLDER_EMAIL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"first[._]?name",
        r"last[._]?name",
        r"first[._]?initial",
        r"@company(?:domain)?\.com$",
        r"@example\.com$",
        r"@domain\.com$",
        r"test[._]?user",
        r"demo[._]?user",
        r"no[._-]?reply",
        r"do[._-]?not[._-]?reply",
        r"placeholder",
        r"tempmail",
        r"temp[._]?email",
    )
)

_DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9](\.[a-zA-Z]{2,})+$")
_LOCAL_CHARSET = re.compile(r"^[a-zA-Z0-9._%+-]+$")
_FIRST_DOT_LAST = re.compile(r"^[a-z]+\.[a-z]+$", re.IGNORECASE)
_INITIAL_LAST = re.compile(r"^[a-z][.\-]?[a-z]+$", re.IGNORECASE)
_BARE_WORD = re.compile(r"^[a-z]+$", re.IGNORECASE)

EMAIL_FORMATS = ("first.last", "flast", "firstl", "first", "last", "f.last")


def _split_address(email: str) -> tuple[str, str] | None:
    parts = (email or "").strip().split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def validate_email_pattern(email: str) -> int:
    """Score how much an address looks like a real corporate mailbox (0..100)."""
    split = _split_address(email)
    if split is None:
        return 0
    local, domain = split

    score = 0
    if _DOMAIN_PATTERN.match(domain):
        score += 40
    if _LOCAL_CHARSET.match(local):
        score += 30

    if _FIRST_DOT_LAST.match(local):
        score += 20
    elif _INITIAL_LAST.match(local):
        score += 15
    elif _BARE_WORD.match(local):
        score += 10
    return clamp_score(score)


def is_valid_business_email(email: str) -> bool:
    """Return False for malformed addresses and free-mail domains."""
    split = _split_address(email)
    if split is None:
        return False
    return split[1].lower() not in FREE_MAIL_DOMAINS


def is_placeholder_email(email: str) -> bool:
    """Return True for role inboxes and obvious template addresses."""
    split = _split_address(email)
    if split is None:
        return True
    if split[0].lower() in GENERIC_LOCAL_PARTS:
        return True
    address = email.strip()
    return any(pattern.search(address) for pattern in PLACEHOLDER_EMAIL_PATTERNS)


def _ascii_token(value: str) -> str:
    folded = unicodedata.normalize("NFKD", value)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return re.sub(r"[^a-z]", "", folded.lower())


def generate_possible_emails(name: str, domain: str) -> list[str]:
    """Build the common corporate address formats for a person at a domain."""
    domain = (domain or "").strip().lower()
    parts = parse_full_name(name)
    first = _ascii_token(parts.first_name)
    last = _ascii_token(parts.last_name)
    if not domain or not first or not last:
        return []

    local_parts = {
        "first.last": f"{first}.{last}",
        "flast": f"{first[0]}{last}",
        "firstl": f"{first}{last[0]}",
        "first": first,
        "last": last,
        "f.last": f"{first[0]}.{last}",
    }
    output: list[str] = []
    for fmt in EMAIL_FORMATS:
        candidate = f"{local_parts[fmt]}@{domain}"
        if candidate not in output:
            output.append(candidate)
    return output


def parse_email_details(text: str) -> list[str]:
    """Extract non-placeholder emails from free text, best pattern first."""
    found = [email for email in sorted(extract_emails(text)) if not is_placeholder_email(email)]
    return sorted(found, key=validate_email_pattern, reverse=True)
