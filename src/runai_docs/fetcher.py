"""HTTP fetching with ordered candidate fallback and a host allow-list.

Every candidate URL of a page is tried in order; the first 2xx response wins.
Redirects are followed manually, one hop at a time, so a redirect pointing at
a host outside the allow-list is never requested.
"""

from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

import httpx
from loguru import logger

from runai_docs.models import PageEntry
from runai_docs.urls import fetch_candidates

MAX_REDIRECTS = 5


class OffSiteRedirect(Exception):
    """A redirect pointed outside the allowed hosts."""

    def __init__(self, target: str):
        super().__init__(f"redirected off-site to {target}")
        self.target = target


class FetchError(Exception):
    """Every fetch candidate of one page failed."""

    def __init__(self, url: str, attempts: list[tuple[str, str]]):
        self.url = url
        self.attempts = attempts
        detail = "; ".join(f"{candidate}: {reason}" for candidate, reason in attempts)
        super().__init__(f"All fetch candidates failed for {url} ({detail})")


@dataclass(frozen=True)
class FetchedPage:
    entry: PageEntry
    # Candidate that actually served the page; storage still uses entry.url
    source_url: str
    # Last hop after redirects, used to resolve relative links
    final_url: str
    html: str


def is_allowed_url(url: str, allowed_hosts: frozenset[str] | set[str]) -> bool:
    """Only http(s) URLs whose host is on the allow-list may be fetched."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    return (parsed.hostname or "").lower() in allowed_hosts


def build_client(user_agent: str, timeout: float) -> httpx.AsyncClient:
    """Create the shared client with the fixed identifying header."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers={
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml",
        },
    )


class PageFetcher:
    """Fetch pages through an injected ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        allowed_hosts: frozenset[str] | set[str],
        timeout: float | None = None,
    ):
        self._client = client
        self._allowed_hosts = frozenset(h.lower() for h in allowed_hosts)
        self._timeout = timeout

    async def _request(self, url: str) -> httpx.Response:
        if self._timeout is None:
            return await self._client.get(url, follow_redirects=False)
        return await self._client.get(
            url, follow_redirects=False, timeout=self._timeout
        )

    async def _get(self, url: str) -> httpx.Response:
        """GET *url*, following redirects only while they stay on allowed hosts."""
        current = url
        for _ in range(MAX_REDIRECTS + 1):
            resp = await self._request(current)
            if not resp.is_redirect:
                return resp

            if resp.next_request is not None:
                target = str(resp.next_request.url)
            else:
                target = urljoin(current, resp.headers.get("location", ""))
            if not is_allowed_url(target, self._allowed_hosts):
                raise OffSiteRedirect(target)
            logger.debug(f"Redirect {current} -> {target}")
            current = target

        raise httpx.TooManyRedirects(f"More than {MAX_REDIRECTS} redirects from {url}")

    async def fetch(self, entry: PageEntry) -> FetchedPage:
        """Return the first successful candidate for *entry*.

        Raises:
            FetchError: when no candidate produced a 2xx response.
        """
        attempts: list[tuple[str, str]] = []

        for candidate in fetch_candidates(entry):
            if not is_allowed_url(candidate, self._allowed_hosts):
                attempts.append((candidate, "host not allowed"))
                continue

            try:
                resp = await self._get(candidate)
            except OffSiteRedirect as e:
                logger.debug(f"Blocked redirect for {candidate}: {e.target}")
                attempts.append((candidate, str(e)))
                continue
            except httpx.TimeoutException:
                logger.debug(f"Fetch timeout: {candidate}")
                attempts.append((candidate, "timeout"))
                continue
            except httpx.HTTPError as e:
                logger.debug(f"Fetch error for {candidate}: {e}")
                attempts.append((candidate, f"{type(e).__name__}: {e}"))
                continue

            if not resp.is_success:
                logger.debug(f"HTTP {resp.status_code} for {candidate}")
                attempts.append((candidate, f"HTTP {resp.status_code}"))
                continue

            if candidate != entry.url:
                logger.debug(f"Fallback candidate served {entry.url}: {candidate}")
            return FetchedPage(
                entry=entry,
                source_url=candidate,
                final_url=str(resp.url),
                html=resp.text,
            )

        raise FetchError(entry.url, attempts)
