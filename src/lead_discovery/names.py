"""Person-name parsing and plausibility heuristics."""

from __future__ import annotations

import re

from .models import NameParts
from .scoring import clamp_score

NAME_PREFIXES = frozenset({"mr", "mrs", "ms", "miss", "dr", "prof", "rev", "hon"})
NAME_SUFFIXES = frozenset({"jr", "sr", "i", "ii", "iii", "iv", "v", "phd", "md", "dds", "esq"})

# Words that mark a "name" as a business, department or role label.
GENERIC_NAME_TERMS = frozenset(
    {
        # titles and positions
        "chief", "executive", "officer", "ceo", "cto", "cfo", "coo", "cmo", "president",
        "director", "manager", "managers", "head", "lead", "senior", "junior", "principal",
        "vice", "assistant", "associate", "coordinator", "specialist", "analyst",
        "administrator", "supervisor", "founder", "co-founder", "owner", "partner",
        "developer", "engineer", "architect", "consultant", "advisor", "strategist",
        # departments
        "sales", "marketing", "finance", "accounting", "hr", "operations", "it", "support",
        "product", "project", "research", "development", "legal", "compliance", "quality",
        "admin", "billing", "accounts", "careers", "jobs", "info", "contact", "enquiries",
        "inquiries", "reception", "helpdesk", "webmaster", "press", "media",
        # business terms
        "leadership", "team", "member", "staff", "employee", "general", "department",
        "division", "management", "person", "representative", "business", "company",
        "enterprise", "organization", "corporation", "office", "personnel", "service",
        "services", "customer", "customers", "commercial", "corporate", "board",
        # company identifiers
        "incorporated", "inc", "llc", "ltd", "group", "holdings", "solutions",
        "international", "global", "industries", "systems", "technologies", "associates",
        "consulting", "ventures", "partners", "limited", "corp", "plc",
        # filler
        "the", "of", "and", "to", "in", "at",
    }
)
# Only longer terms are matched as substrings; short ones ("it", "hr") are token-only.
SUBSTRING_TERM_MIN_LENGTH = 4
_SUBSTRING_TERMS = tuple(
    sorted(term for term in GENERIC_NAME_TERMS if len(term) >= SUBSTRING_TERM_MIN_LENGTH)
)

PLACEHOLDER_NAMES = frozenset(
    {
        "john doe", "jane doe", "john smith", "jane smith",
        "test user", "demo user", "example user",
        "admin user", "guest user", "unknown user",
    }
)
_PLACEHOLDER_FRAGMENTS = ("test", "demo", "example", "admin", "guest", "user")

_TITLE_CASE = re.compile(r"^[A-Z][a-z']+(?:[ -][A-Z][a-z']*)+$")
_HEAVY_PUNCTUATION = re.compile(r"[/:_@]")
_LIGHT_PUNCTUATION = re.compile(r"[-.]")

COMPANY_SUFFIX_PATTERN = re.compile(
    r"\b(?:inc|llc|ltd|llp|plc|corp|corporation|company|co|gmbh|group|holdings|partners"
    r"|associates|enterprises|solutions|services|technologies|industries|international"
    r"|consulting|agency|studios?|labs)\b\.?",
    re.IGNORECASE,
)
_LEADING_THE = re.compile(r"^the\s+", re.IGNORECASE)
_X_OF_Y = re.compile(r"\b[\w'-]+\s+of\s+[\w'-]+", re.IGNORECASE)

DEPARTMENT_OR_ROLE_PATTERN = re.compile(
    r"\b(?:department|dept|team|sales|marketing|support|customer\s+service|human\s+resources"
    r"|hr|accounting|finance|operations|engineering|legal|admin|administration|office"
    r"|reception|billing|careers|recruiting|manager|director|president|ceo|cfo|cto|coo|cmo"
    r"|vp|vice\s+president|head\s+of|chief|officer|founder|co-founder|owner|partner"
    r"|coordinator|specialist|representative|assistant)\b",
    re.IGNORECASE,
)

FOUNDER_CONTEXT_PATTERNS = (
    re.compile(r"\b(?:founder|co-founder|founding)\b", re.IGNORECASE),
    re.compile(r"\b(?:owner|proprietor)\b", re.IGNORECASE),
    re.compile(r"\bceo\b", re.IGNORECASE),
    re.compile(r"\b(?:president|chief\s+executive)\b", re.IGNORECASE),
    re.compile(r"\b(?:managing\s+director|managing\s+partner)\b", re.IGNORECASE),
)
_COMPANY_TAIL = re.compile(r"(?:inc|llc|ltd|corp|co|company|group|holdings)$")


def parse_full_name(full_name: str) -> NameParts:
    """Split a full name into prefix, first, middle, last and suffix parts."""
    cleaned = re.sub(r"[.,]", " ", full_name or "")
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    tokens = cleaned.split(" ") if cleaned else []

    prefix: str | None = None
    suffix: str | None = None
    if len(tokens) > 1 and tokens[0].lower() in NAME_PREFIXES:
        prefix = tokens.pop(0)
    if len(tokens) > 1 and tokens[-1].lower() in NAME_SUFFIXES:
        suffix = tokens.pop()

    if not tokens:
        return NameParts(first_name="", last_name="", full_name=cleaned)
    if len(tokens) == 1:
        return NameParts(
            first_name=tokens[0], last_name="", full_name=cleaned, prefix=prefix, suffix=suffix
        )
    middle = " ".join(tokens[1:-1]) or None
    return NameParts(
        first_name=tokens[0],
        last_name=tokens[-1],
        full_name=cleaned,
        middle_name=middle,
        prefix=prefix,
        suffix=suffix,
    )


def validate_person_name(name: str) -> int:
    """Score how plausibly ``name`` is a real person's full name (0..100)."""
    if not name or not name.strip():
        return 0
    raw = name.strip()
    parts = parse_full_name(raw)
    first, last = parts.first_name, parts.last_name
    if not first or not last:
        return 0
    if not any(ch.isalpha() for ch in first) or not any(ch.isalpha() for ch in last):
        return 0
    if len(first) < 2 or len(last) < 2:
        return 5
    if first.lower() in GENERIC_NAME_TERMS or last.lower() in GENERIC_NAME_TERMS:
        return 0

    score = 0
    if len(raw) > 2:
        score += 10
    if len(raw) > 5:
        score += 10
    score += 30
    if _TITLE_CASE.match(parts.full_name):
        score += 15
    if parts.prefix:
        score += 5
    if parts.suffix:
        score += 5
    if raw.isupper():
        score -= 10

    lowered = raw.lower()
    if any(term in lowered for term in _SUBSTRING_TERMS):
        score -= 50

    if _HEAVY_PUNCTUATION.search(raw):
        score -= 20
    if _LIGHT_PUNCTUATION.search(raw):
        score -= 10

    token_count = len(raw.split())
    if token_count > 4:
        score -= 20
    elif 2 <= token_count <= 3:
        score += 5
    return clamp_score(score)


def is_likely_company_name(name: str) -> bool:
    """Return True when a name reads like an organization rather than a person."""
    value = (name or "").strip()
    if not value:
        return False
    if COMPANY_SUFFIX_PATTERN.search(value):
        return True
    if "&" in value:
        return True
    letters = [ch for ch in value if ch.isalpha()]
    if len(letters) > 1 and value.isupper():
        return True
    if _LEADING_THE.match(value):
        return True
    return bool(_X_OF_Y.search(value))


def is_likely_department_or_role(name: str) -> bool:
    """Return True when a name contains department or job-title keywords."""
    return bool(DEPARTMENT_OR_ROLE_PATTERN.search(name or ""))


def is_placeholder_name(name: str) -> bool:
    normalized = (name or "").strip().lower()
    if normalized in PLACEHOLDER_NAMES:
        return True
    return any(fragment in normalized for fragment in _PLACEHOLDER_FRAGMENTS)


def is_name_similar_to_company(name: str, company_name: str) -> bool:
    """Return True when a person name and a company name are effectively the same."""
    normalized_name = re.sub(r"[^a-z0-9]", "", (name or "").lower())
    normalized_company = re.sub(r"[^a-z0-9]", "", (company_name or "").lower())
    clean_company = _COMPANY_TAIL.sub("", normalized_company)
    if not normalized_name or not clean_company:
        return False
    if normalized_name == clean_company:
        return True
    if len(normalized_name) > 4 and (
        normalized_name in clean_company or clean_company in normalized_name
    ):
        return True
    return False


def has_founder_context(context: str | None) -> bool:
    """Return True when role or surrounding text marks the person as a founder/owner."""
    if not context:
        return False
    return any(pattern.search(context) for pattern in FOUNDER_CONTEXT_PATTERNS)


def split_first_last(full_name: str) -> tuple[str, str]:
    """Split into the first token and everything after it, as lookup APIs expect."""
    tokens = (full_name or "").split()
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:])
