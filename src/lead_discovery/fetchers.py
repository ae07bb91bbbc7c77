"""HTTP fetchers for scraping strategies."""

from __future__ import annotations

import logging
import urllib.robotparser
from collections.abc import Mapping
from threading import Lock
from urllib.parse import urlparse

from requests import Session
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from .validation import is_supported_url

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class RobotsPolicy:
    """Per-host robots.txt rules, fetched once through the scraping session."""

    def __init__(self, *, session: Session, user_agent: str, timeout: float) -> None:
        self._session = session
        self._user_agent = user_agent
        self._timeout = timeout
        self._rules: dict[str, urllib.robotparser.RobotFileParser | None] = {}
        self._lock = Lock()

    def _load(self, host_root: str) -> urllib.robotparser.RobotFileParser | None:
        try:
            response = self._session.get(f"{host_root}/robots.txt", timeout=self._timeout)
        except RequestException:
            return None
        rules = urllib.robotparser.RobotFileParser()
        if response.status_code in (401, 403):
            rules.disallow_all = True
            return rules
        if response.status_code >= 400:
            return None
        rules.parse(str(response.text).splitlines())
        return rules

    def allowed(self, url: str) -> bool:
        """Return True if the host's robots.txt lets our user agent fetch this URL."""
        if not is_supported_url(url):
            return False
        parsed = urlparse(url)
        host_root = f"{parsed.scheme}://{parsed.netloc}"
        with self._lock:
            if host_root not in self._rules:
                self._rules[host_root] = self._load(host_root)
            rules = self._rules[host_root]
        return rules is None or rules.can_fetch(self._user_agent, url)


def make_retry_session(user_agent: str) -> Session:
    """Create requests session with retry/backoff defaults."""
    session = Session()
    session.headers.update({"User-Agent": user_agent})
    retry = Retry(
        total=3,
        backoff_factor=0.6,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset({"GET", "POST"}),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class RequestsFetcher:
    """Requests-based HTML fetcher with robots and content-type checks."""

    def __init__(
        self,
        *,
        session: Session,
        robots_policy: RobotsPolicy | None,
        timeout: float,
        logger: logging.Logger,
    ) -> None:
        self._session = session
        self._robots_policy = robots_policy
        self._timeout = timeout
        self._logger = logger

    def fetch(self, url: str, params: Mapping[str, str] | None = None) -> str:
        if not is_supported_url(url):
            self._logger.debug("Skipping unsupported URL: %s", url)
            return ""
        if self._robots_policy is not None and not self._robots_policy.allowed(url):
            self._logger.info("Skipping due to robots.txt: %s", url)
            return ""
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
        except RequestException as exc:
            self._logger.debug("Fetch failed for %s: %s", url, exc)
            return ""
        content_type = str(response.headers.get("Content-Type", "text/html")).lower()
        if not content_type.startswith(HTML_CONTENT_TYPES):
            self._logger.debug("Skipping non-HTML response (%s): %s", content_type, url)
            return ""
        return str(response.text)
