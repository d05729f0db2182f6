"""Run:ai docs indexer entry point."""

import asyncio
import sys

from loguru import logger


def _setup_logging() -> None:
    from runai_docs.config import settings

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)


def _crawl() -> int:
    """Recreate the store and crawl every configured docset/version."""
    from runai_docs.config import settings
    from runai_docs.scheduler import crawl

    db_path = settings.get_db_path()
    print(f"Crawling Run:ai docs into {db_path}")
    report = asyncio.run(crawl(settings))

    print(f"Stored {report.stored}/{report.attempted} pages ({report.failed} failed)")
    for warning in report.warnings:
        print(f"WARNING: {warning}")
    return 0


def _verify() -> int:
    """HEAD-check every seed URL; non-zero exit if any is unreachable."""
    from runai_docs.catalog import build_catalog_from_settings
    from runai_docs.config import settings
    from runai_docs.fetcher import build_client
    from runai_docs.verify import verify_seeds

    catalog = build_catalog_from_settings(settings)

    async def _run():
        async with build_client(settings.user_agent, settings.fetch_timeout) as client:
            return await verify_seeds(
                catalog,
                client,
                settings.resolve_allowed_hosts(),
                settings.concurrency,
            )

    results = asyncio.run(_run())
    failures = [r for r in results if not r.ok]

    if failures:
        print(f"FAILURES ({len(failures)}):")
        for r in failures:
            e = r.entry
            print(f"  {r.status} {e.url} [{e.category}/{e.subcategory}] \"{e.title}\"")
        print()

    print(f"OK: {len(results) - len(failures)}/{len(results)}")
    print(f"FAIL: {len(failures)}/{len(results)}")
    return 1 if failures else 0


def _stats() -> int:
    """Print page counts per docset/version for the configured store."""
    from runai_docs.config import settings
    from runai_docs.db import DocsDB

    db_path = settings.get_db_path()
    if not db_path.exists():
        print(f"No store at {db_path}; run 'runai-docs-index crawl' first.")
        return 1

    db = DocsDB(db_path)
    try:
        stats = db.stats()
    finally:
        db.close()

    print(f"Store: {db_path}")
    print(f"Pages: {stats['pages']} (last fetched {stats['last_fetched_at'] or 'never'})")
    for row in stats["by_docset"]:
        print(f"  {row['docset']:<14} {row['version']:<8} {row['pages']}")
    return 0


def _cli() -> None:
    """CLI dispatcher: crawl (default), verify, or stats subcommand."""
    command = sys.argv[1] if len(sys.argv) >= 2 else "crawl"
    if command not in ("crawl", "verify", "stats"):
        print(f"Unknown command: {command}. Use one of: crawl, verify, stats")
        sys.exit(2)

    _setup_logging()
    if command == "verify":
        sys.exit(_verify())
    elif command == "stats":
        sys.exit(_stats())
    else:
        sys.exit(_crawl())


if __name__ == "__main__":
    _cli()
