"""HTML -> Markdown / plain text extraction for documentation pages."""

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from markdownify import markdownify

from runai_docs.models import ExtractedPage

# First match wins; body is the final fallback.
CONTENT_SELECTORS = ("main", '[role="main"]', ".gitbook-root", "article")

# Navigation chrome removed from the content container before conversion.
CHROME_SELECTORS = (
    "nav",
    "header",
    "footer",
    '[role="navigation"]',
    ".sidebar",
    "script",
    "style",
    "noscript",
)


class ExtractionError(Exception):
    """Page markup could not be parsed or converted."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Extraction failed for {url}: {reason}")
        self.url = url
        self.reason = reason


# ---------------------------------------------------------------------------
# Markdown -> plain text
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"(```.*?```|~~~.*?~~~)", re.DOTALL)
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HEADING_MARK_RE = re.compile(r"^[ \t]*#{1,6}[ \t]*", re.MULTILINE)
_EMPHASIS_RE = re.compile(r"[*~`]")
# Underscores used as emphasis markers, not inside identifiers like runai_login
_UNDERSCORE_EMPHASIS_RE = re.compile(r"(?<![A-Za-z0-9])_+|_+(?![A-Za-z0-9])")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _strip_prose(text: str) -> str:
    text = _IMAGE_RE.sub(r"\1", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _HEADING_MARK_RE.sub("", text)
    text = _EMPHASIS_RE.sub("", text)
    return _UNDERSCORE_EMPHASIS_RE.sub("", text)


def strip_markdown(md: str) -> str:
    """Derive plain text from Markdown.

    Fenced code blocks are kept verbatim; everything else loses link markup
    (visible text kept), heading markers and emphasis characters. Runs of
    three or more newlines collapse to two.
    """
    parts = _FENCE_RE.split(md)
    # split() with one capture group alternates prose / fence
    out = [part if i % 2 else _strip_prose(part) for i, part in enumerate(parts)]
    return _BLANK_RUN_RE.sub("\n\n", "".join(out))


def title_from_url(url: str) -> str:
    """Humanize the last non-empty path segment: ``node-pools`` -> ``Node Pools``."""
    try:
        segments = [s for s in urlparse(url).path.split("/") if s]
    except ValueError:
        return url
    slug = segments[-1] if segments else "page"
    words = re.sub(r"[-_]+", " ", slug).split()
    return " ".join(w[:1].upper() + w[1:] for w in words) or "Page"


# ---------------------------------------------------------------------------
# HTML extraction
# ---------------------------------------------------------------------------


def _select_container(soup: BeautifulSoup):
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            return node
    return soup.body or soup


def _resolve_title(soup: BeautifulSoup, container, source_url: str) -> str:
    h1 = container.find("h1")
    if h1 is not None:
        text = h1.get_text(" ", strip=True)
        if text:
            return text
    if soup.title is not None and soup.title.string:
        text = soup.title.string.strip()
        if text:
            return text
    return title_from_url(source_url)


def extract(html: str, source_url: str) -> ExtractedPage:
    """Isolate the main content of *html* and convert it.

    Returns an ``ExtractedPage`` with title, Markdown and plain text. Any
    parse/convert failure is raised as ``ExtractionError`` for this page only.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
        container = _select_container(soup)

        for selector in CHROME_SELECTORS:
            for element in container.select(selector):
                element.decompose()

        title = _resolve_title(soup, container, source_url)
        markdown = markdownify(
            str(container),
            heading_style="ATX",
            escape_underscores=False,
            escape_asterisks=False,
        ).strip()
    except Exception as e:
        raise ExtractionError(source_url, str(e)) from e

    markdown = _BLANK_RUN_RE.sub("\n\n", markdown)
    return ExtractedPage(
        title=title,
        markdown=markdown,
        plain_text=strip_markdown(markdown).strip(),
    )
