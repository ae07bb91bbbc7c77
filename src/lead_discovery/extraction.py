"""Pure HTML extraction and URL normalization utilities."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

CONTACT_KEYWORDS = ("contact", "about", "team", "people", "staff")
CONTACT_HINTS = [
    "/contact",
    "/contact-us",
    "/about",
    "/team",
    "/people",
    "/staff",
    "/leadership",
]
EMAIL_REGEX = re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}", re.IGNORECASE)


def canonicalize_url(href: str, base: str) -> str:
    """Resolve relative URLs and strip hash fragments."""
    return urljoin(base, href).split("#", maxsplit=1)[0]


def domain_from_url(url: str) -> str:
    """Extract lowercase hostname from URL."""
    return urlparse(url).netloc.lower()


def extract_emails(text: str) -> set[str]:
    """Return normalized emails discovered in plain text."""
    return {match.group(0).lower() for match in EMAIL_REGEX.finditer(text or "")}


def dedupe_preserve_order(items: list[str]) -> list[str]:
    """Dedupe values while preserving first-seen order."""
    output: list[str] = []
    seen: set[str] = set()
    for item in items:
        normalized = item.split("#", maxsplit=1)[0]
        if normalized in seen:
            continue
        seen.add(normalized)
        output.append(item)
    return output


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def extract_mailto_addresses(html: str) -> list[str]:
    """Return addresses from ``mailto:`` links, without query strings."""
    addresses: list[str] = []
    for anchor in _soup(html).find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if not href.lower().startswith("mailto:"):
            continue
        address = href.split(":", maxsplit=1)[1].split("?", maxsplit=1)[0].strip().lower()
        if address:
            addresses.append(address)
    return dedupe_preserve_order(addresses)


def extract_page_emails(html: str) -> list[str]:
    """Return emails from visible page text plus mailto links."""
    text_emails = sorted(extract_emails(_soup(html).get_text(" ")))
    return dedupe_preserve_order(text_emails + extract_mailto_addresses(html))


def find_contact_pages(html: str, base_url: str) -> list[str]:
    """Find same-host contact, about and team pages linked from a page."""
    host = domain_from_url(base_url)
    links: list[str] = []
    for anchor in _soup(html).find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if href.lower().startswith(("mailto:", "tel:", "javascript:")):
            continue
        text = anchor.get_text(" ").strip().lower()
        lower_href = href.lower()
        if not (
            any(keyword in text for keyword in CONTACT_KEYWORDS)
            or any(hint in lower_href for hint in CONTACT_HINTS)
        ):
            continue
        url = canonicalize_url(href, base_url)
        if domain_from_url(url) != host:
            continue
        links.append(url)
    return dedupe_preserve_order(links)
