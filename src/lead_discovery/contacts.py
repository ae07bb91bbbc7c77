"""Contact scoring, filtering and fuzzy de-duplication."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from .models import Contact
from .names import (
    GENERIC_NAME_TERMS,
    has_founder_context,
    is_likely_company_name,
    is_likely_department_or_role,
    is_name_similar_to_company,
    is_placeholder_name,
    parse_full_name,
    validate_person_name,
)
from .scoring import clamp_score

_C_LEVEL = re.compile(r"\b(?:ceo|cto|cfo|coo|cmo|cio|chief\s+\w+\s+officer|chief)\b", re.I)
_FOUNDER = re.compile(r"\b(?:founder|co-founder|owner|proprietor)\b", re.I)
_DIRECTOR = re.compile(r"\b(?:director|vp|vice\s+president|head\s+of|president)\b", re.I)
_MANAGER = re.compile(r"\b(?:manager|lead|supervisor)\b", re.I)

RoleLadder = tuple[tuple[re.Pattern[str], int], ...]

DEFAULT_ROLE_LADDER: RoleLadder = (
    (_C_LEVEL, 15),
    (_FOUNDER, 12),
    (_DIRECTOR, 10),
    (_MANAGER, 5),
)
LEGACY_ROLE_LADDER: RoleLadder = (
    (_FOUNDER, 25),
    (_C_LEVEL, 20),
    (_DIRECTOR, 15),
    (_MANAGER, 8),
)

DUPLICATE_SIMILARITY_THRESHOLD = 0.8
GENERIC_TOKEN_PENALTY = 15
PLACEHOLDER_NAME_PENALTY = 40
COMPANY_NAME_HARD_PENALTY = 40
DEPARTMENT_NAME_HARD_PENALTY = 25


@dataclass(frozen=True)
class DiscoveryOptions:
    """Thresholds used when scoring and filtering contacts."""

    minimum_name_score: int = 65
    company_name_penalty: int = 30
    role_title_boost: int = 15
    role_ladder: RoleLadder = DEFAULT_ROLE_LADDER
    prefer_full_names: bool = True


DEFAULT_OPTIONS = DiscoveryOptions()
LEGACY_OPTIONS = DiscoveryOptions(
    minimum_name_score=30,
    company_name_penalty=20,
    role_ladder=LEGACY_ROLE_LADDER,
)


def role_bonus(role: str | None, ladder: RoleLadder = DEFAULT_ROLE_LADDER) -> int:
    """Return the first matching seniority bonus for a role title."""
    if not role:
        return 0
    for pattern, bonus in ladder:
        if pattern.search(role):
            return bonus
    return 0


def validate_name(
    name: str,
    company_name: str | None = None,
    *,
    role: str | None = None,
    company_name_penalty: int = DEFAULT_OPTIONS.company_name_penalty,
) -> int:
    """Advanced name validation: person heuristics plus company-context penalties.

    A name resembling the company name is penalized unless the role marks
    the person as a founder or owner, since founders often share the name.
    """
    score = validate_person_name(name)
    if score == 0:
        return 0

    parts = parse_full_name(name)
    for token in (parts.middle_name or "").lower().split():
        if token in GENERIC_NAME_TERMS:
            score -= GENERIC_TOKEN_PENALTY
    if is_placeholder_name(name):
        score -= PLACEHOLDER_NAME_PENALTY
    if (
        company_name
        and is_name_similar_to_company(name, company_name)
        and not has_founder_context(role)
    ):
        score -= company_name_penalty
    return clamp_score(score)


def validate_contact(
    contact: Contact, company_name: str | None, options: DiscoveryOptions = DEFAULT_OPTIONS
) -> int:
    """Score a whole contact record (name, role, email) in [0, 100]."""
    name = contact.name or ""
    basic = validate_person_name(name)
    advanced = validate_name(
        name,
        company_name,
        role=contact.role,
        company_name_penalty=options.company_name_penalty,
    )
    score = basic * 0.4 + advanced * 0.3

    if is_likely_company_name(name):
        score -= COMPANY_NAME_HARD_PENALTY
    if is_likely_department_or_role(name):
        score -= DEPARTMENT_NAME_HARD_PENALTY
    if name and contact.role and contact.email:
        score += 10
    if contact.role and len(contact.role) > 3:
        score += options.role_title_boost
    score += role_bonus(contact.role, options.role_ladder)

    if options.prefer_full_names:
        parts = parse_full_name(name)
        if len(parts.first_name) >= 2 and len(parts.last_name) >= 2:
            score += 10
    return clamp_score(score)


def score_contacts(
    contacts: list[Contact],
    company_name: str | None,
    options: DiscoveryOptions = DEFAULT_OPTIONS,
) -> list[tuple[Contact, int]]:
    """Score contacts, drop those under the threshold, best first."""
    scored = [(contact, validate_contact(contact, company_name, options)) for contact in contacts]
    kept = [item for item in scored if item[1] >= options.minimum_name_score]
    return sorted(kept, key=lambda item: item[1], reverse=True)


def filter_contacts(
    contacts: list[Contact],
    company_name: str | None,
    options: DiscoveryOptions = DEFAULT_OPTIONS,
) -> list[Contact]:
    return [contact for contact, _score in score_contacts(contacts, company_name, options)]


def normalize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def calculate_similarity(left: str, right: str) -> float:
    """Levenshtein similarity in [0, 1]; two empty strings are identical."""
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(left, right)) / longest


def deduplicate_contacts(contacts: list[Contact]) -> list[Contact]:
    """Drop near-duplicate names; the first-seen record of each group wins."""
    kept: list[Contact] = []
    seen_names: list[str] = []
    for contact in contacts:
        if not contact.name:
            continue
        normalized = normalize_name(contact.name)
        if any(
            calculate_similarity(normalized, previous) > DUPLICATE_SIMILARITY_THRESHOLD
            for previous in seen_names
        ):
            continue
        seen_names.append(normalized)
        kept.append(contact)
    return kept
