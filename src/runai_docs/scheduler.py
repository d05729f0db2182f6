"""Breadth-first crawl scheduler.

One ``Crawler`` owns one ``CrawlState`` for the duration of a run. Pages are
fetched in batches of ``concurrency`` through ``asyncio.gather`` with
``return_exceptions=True``, so one failing page never cancels its siblings.
All frontier mutation and every store write happen in the sequential loop
between batches, never inside the concurrent fetch tasks.
"""

import asyncio
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
from loguru import logger

from runai_docs.catalog import Catalog, build_catalog_from_settings
from runai_docs.db import DocsDB
from runai_docs.export import MarkdownExporter
from runai_docs.extractor import ExtractionError, extract
from runai_docs.fetcher import FetchError, PageFetcher, build_client
from runai_docs.links import classify, extract_links, in_scope
from runai_docs.models import CrawlReport, ExtractedPage, PageEntry, StoredPage
from runai_docs.urls import dedup_key

PHASE_SEEDED = "seeded"
PHASE_DRAINING = "draining"
PHASE_DONE = "done"


@dataclass
class CrawlOptions:
    concurrency: int = 5
    batch_delay: float = 0.5
    max_pages: int = 500
    max_links_per_page: int = 50
    fetch_timeout: float = 12.0
    user_agent: str = "RunAI-Docs-Indexer/1.0"
    allowed_hosts: frozenset[str] = frozenset({"run-ai-docs.nvidia.com", "docs.run.ai"})

    @classmethod
    def from_settings(cls, settings) -> "CrawlOptions":
        return cls(
            concurrency=settings.concurrency,
            batch_delay=settings.batch_delay,
            max_pages=settings.max_pages,
            max_links_per_page=settings.max_links_per_page,
            fetch_timeout=settings.fetch_timeout,
            user_agent=settings.user_agent,
            allowed_hosts=settings.resolve_allowed_hosts(),
        )


@dataclass
class CrawlState:
    """Frontier, dedup set and counters of a single run.

    ``queue`` only grows; ``cursor`` marks the first unconsumed entry.
    ``scheduled`` holds the dedup key of every entry ever queued, so its size
    is the scheduled count compared against the page cap.
    """

    max_pages: int
    queue: list[PageEntry] = field(default_factory=list)
    cursor: int = 0
    scheduled: set[str] = field(default_factory=set)
    phase: str = PHASE_SEEDED
    report: CrawlReport = field(default_factory=CrawlReport)

    @property
    def pending(self) -> int:
        return len(self.queue) - self.cursor

    @property
    def at_capacity(self) -> bool:
        return len(self.scheduled) >= self.max_pages

    def schedule(self, entry: PageEntry) -> bool:
        """Queue *entry* unless already scheduled or over the page cap."""
        key = dedup_key(entry)
        if key in self.scheduled:
            return False
        if self.at_capacity:
            self.report.dropped += 1
            self.report.capacity_reached = True
            return False
        self.scheduled.add(key)
        self.queue.append(entry)
        return True

    def next_batch(self, size: int) -> list[PageEntry]:
        batch = self.queue[self.cursor : self.cursor + size]
        self.cursor += len(batch)
        return batch


@dataclass(frozen=True)
class PageResult:
    entry: PageEntry
    extracted: ExtractedPage
    links: list[str]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Crawler:
    """Crawl the catalog's seeds and in-scope links into a ``DocsDB``.

    Pass *client* to inject a preconfigured ``httpx.AsyncClient`` (tests use
    a ``MockTransport``); otherwise one is created and closed per run.
    """

    def __init__(
        self,
        db: DocsDB,
        catalog: Catalog,
        options: CrawlOptions | None = None,
        client: httpx.AsyncClient | None = None,
        exporter: MarkdownExporter | None = None,
    ):
        self._db = db
        self._catalog = catalog
        self._options = options or CrawlOptions()
        self._client = client
        self._exporter = exporter
        self.state = CrawlState(max_pages=self._options.max_pages)

    async def run(self) -> CrawlReport:
        """Run a full crawl. The store is reset first; each run is a fresh snapshot."""
        if self._client is not None:
            return await self._run(self._client)
        async with build_client(
            self._options.user_agent, self._options.fetch_timeout
        ) as client:
            return await self._run(client)

    async def _run(self, client: httpx.AsyncClient) -> CrawlReport:
        options = self._options
        # One CrawlState per run
        self.state = CrawlState(max_pages=options.max_pages)
        state = self.state
        report = state.report
        fetcher = PageFetcher(client, options.allowed_hosts, options.fetch_timeout)

        self._db.reset_schema()
        self._db.write_catalog(self._catalog.docsets, self._catalog.version_records())

        for seed in self._catalog.seeds:
            state.schedule(seed)
        state.phase = PHASE_SEEDED
        logger.info(
            f"Seeded {len(state.queue)} of {len(self._catalog.seeds)} pages "
            f"(cap={options.max_pages}, concurrency={options.concurrency})"
        )

        state.phase = PHASE_DRAINING
        batch_no = 0
        while state.pending:
            batch = state.next_batch(options.concurrency)
            batch_no += 1

            results = await asyncio.gather(
                *(self._process(fetcher, entry) for entry in batch),
                return_exceptions=True,
            )

            stored_before = report.stored
            for entry, result in zip(batch, results):
                report.attempted += 1
                if isinstance(result, BaseException):
                    self._record_failure(entry, result)
                    continue
                self._store(result)
                self._enqueue_links(result)

            logger.info(
                f"Batch {batch_no}: {report.stored - stored_before}/{len(batch)} stored, "
                f"{state.pending} queued, {len(state.scheduled)}/{options.max_pages} scheduled"
            )

            if state.pending and options.batch_delay > 0:
                await asyncio.sleep(options.batch_delay)

        state.phase = PHASE_DONE

        if report.capacity_reached:
            message = (
                f"Page cap of {options.max_pages} reached; "
                f"{report.dropped} discovered pages were not crawled"
            )
            report.warnings.append(message)
            logger.warning(message)

        logger.info(
            f"Crawl finished: {report.stored}/{report.attempted} pages stored, "
            f"{report.failed} failed, {report.rejected} links out of scope"
        )
        return report

    async def _process(self, fetcher: PageFetcher, entry: PageEntry) -> PageResult:
        fetched = await fetcher.fetch(entry)
        # Parsing runs in a worker thread, off the event loop
        extracted = await asyncio.to_thread(extract, fetched.html, entry.url)
        links = await asyncio.to_thread(
            extract_links,
            fetched.html,
            fetched.final_url,
            self._options.allowed_hosts,
            self._options.max_links_per_page,
        )
        return PageResult(entry=entry, extracted=extracted, links=links)

    def _record_failure(self, entry: PageEntry, error: BaseException) -> None:
        if not isinstance(error, Exception):
            raise error
        report = self.state.report
        report.failed += 1
        report.failures[entry.url] = str(error)
        if isinstance(error, (FetchError, ExtractionError)):
            logger.warning(str(error))
        else:
            logger.warning(f"Unexpected error crawling {entry.url}: {error}")

    def _store(self, result: PageResult) -> None:
        page = StoredPage.from_entry(result.entry, result.extracted, _now_iso())
        self._db.upsert_page(page)
        self.state.report.stored += 1
        if self._exporter is None:
            return
        try:
            self._exporter.write(page)
        except (OSError, ValueError) as e:
            logger.warning(f"Markdown export failed for {page.url}: {e}")

    def _enqueue_links(self, result: PageResult) -> None:
        parent = result.entry
        report = self.state.report
        for url in result.links:
            candidate = classify(url, parent)
            if candidate is None or not in_scope(candidate, parent, self._catalog):
                report.rejected += 1
                logger.debug(f"Out of scope from {parent.url}: {url}")
                continue
            self.state.schedule(candidate)


async def crawl(settings=None, client: httpx.AsyncClient | None = None) -> CrawlReport:
    """Crawl everything *settings* selects into its configured store."""
    if settings is None:
        from runai_docs.config import settings

    catalog = build_catalog_from_settings(settings)
    export_dir = settings.get_export_dir()
    exporter = MarkdownExporter(export_dir) if export_dir else None

    db_path = settings.get_db_path()
    try:
        db = DocsDB(db_path)
    except sqlite3.Error as e:
        logger.error(f"Cannot open store {db_path}: {e}")
        raise

    try:
        crawler = Crawler(
            db,
            catalog,
            CrawlOptions.from_settings(settings),
            client=client,
            exporter=exporter,
        )
        return await crawler.run()
    finally:
        db.close()
