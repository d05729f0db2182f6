"""Seed URL reachability check.

HEAD-requests every seed of a catalog in batches and reports which ones do
not answer with a success status. Used before a crawl to catch seed paths
that moved on the docs site. Redirects are followed one hop at a time and
only while they stay on the allowed hosts, as in ``PageFetcher``.
"""

import asyncio
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx
from loguru import logger

from runai_docs.catalog import Catalog
from runai_docs.fetcher import MAX_REDIRECTS, is_allowed_url
from runai_docs.models import PageEntry


@dataclass(frozen=True)
class SeedCheck:
    entry: PageEntry
    # 0 when the request never got a response
    status: int
    error: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def _check(
    client: httpx.AsyncClient,
    entry: PageEntry,
    allowed_hosts: frozenset[str],
) -> SeedCheck:
    current = entry.url
    if not is_allowed_url(current, allowed_hosts):
        return SeedCheck(entry=entry, status=0, error="host not allowed")

    try:
        for _ in range(MAX_REDIRECTS + 1):
            resp = await client.head(current, follow_redirects=False)
            if not resp.is_redirect:
                return SeedCheck(entry=entry, status=resp.status_code)

            target = urljoin(current, resp.headers.get("location", ""))
            if not is_allowed_url(target, allowed_hosts):
                return SeedCheck(
                    entry=entry,
                    status=0,
                    error=f"redirected off-site to {target}",
                )
            current = target
    except httpx.HTTPError as e:
        return SeedCheck(entry=entry, status=0, error=f"{type(e).__name__}: {e}")

    return SeedCheck(
        entry=entry, status=0, error=f"More than {MAX_REDIRECTS} redirects"
    )


async def verify_seeds(
    catalog: Catalog,
    client: httpx.AsyncClient,
    allowed_hosts: frozenset[str] | set[str],
    concurrency: int = 10,
) -> list[SeedCheck]:
    """Check every seed URL, *concurrency* requests at a time, in seed order."""
    hosts = frozenset(h.lower() for h in allowed_hosts)
    seeds = catalog.seeds
    results: list[SeedCheck] = []
    logger.info(f"Verifying {len(seeds)} seed URLs")

    for start in range(0, len(seeds), concurrency):
        batch = seeds[start : start + concurrency]
        results.extend(await asyncio.gather(*(_check(client, e, hosts) for e in batch)))
        logger.debug(f"{min(start + concurrency, len(seeds))}/{len(seeds)} checked")

    failures = sum(1 for r in results if not r.ok)
    logger.info(f"Seed verification: {len(results) - failures} ok, {failures} failed")
    return results
