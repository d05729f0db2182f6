"""Run:ai docs indexer - versioned crawl and full-text index of the Run:ai docs."""

from importlib.metadata import version

from runai_docs.__main__ import _cli as main
from runai_docs.db import DocsDB
from runai_docs.scheduler import Crawler, crawl

__version__ = version("runai-docs-index")
__all__ = ["Crawler", "DocsDB", "crawl", "main", "__version__"]
