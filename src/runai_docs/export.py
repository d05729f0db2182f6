"""Markdown file mirror of stored pages.

Layout: ``<root>/<docset>/<version>/<category>/<subcategory>/<slug>.md``.
"""

import re
from pathlib import Path

from loguru import logger

from runai_docs.models import StoredPage

_NON_SLUG_RE = re.compile(r"[^a-z0-9.]+")
# Keeps every path component well under common filesystem name limits
_MAX_SLUG_LENGTH = 100


def slugify(text: str) -> str:
    """``"GPU Fractions (Dynamic)"`` -> ``"gpu-fractions-dynamic"``."""
    slug = _NON_SLUG_RE.sub("-", text.lower()).strip("-.")
    slug = slug[:_MAX_SLUG_LENGTH].rstrip("-.")
    return slug or "page"


class MarkdownExporter:
    """Write each stored page as a Markdown file under *root*."""

    def __init__(self, root: Path):
        self._root = Path(root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, page: StoredPage) -> Path:
        parts = [
            slugify(page.docset),
            slugify(page.version),
            slugify(page.category),
            slugify(page.subcategory),
        ]
        filepath = self._root.joinpath(*parts, f"{slugify(page.title)}.md").resolve()
        if not filepath.is_relative_to(self._root):
            raise ValueError(f"Export path escapes {self._root}: {filepath}")
        return filepath

    def write(self, page: StoredPage) -> Path:
        """Write *page* and return the file path. Existing files are replaced."""
        filepath = self.path_for(page)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(
            f"# {page.title}\n\nSource: {page.url}\n\n{page.content_md}\n",
            encoding="utf-8",
        )
        logger.debug(f"Exported {page.url} -> {filepath}")
        return filepath
