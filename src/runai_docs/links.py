"""Same-site link discovery and URL-structure classification.

Discovered URLs are classified into (docset, version, category, subcategory)
purely from host and path. Category inference is an ordered rule table per
docset; the first rule whose path prefix matches wins.
"""

from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from runai_docs.catalog import Catalog
from runai_docs.docsets import (
    DOCSETS,
    UNVERSIONED,
    DocsetDescriptor,
    parse_version_segment,
)
from runai_docs.models import PageEntry
from runai_docs.urls import canonicalize

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")

# Static assets linked from docs pages; never documentation pages themselves
_SKIP_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".webp",
    ".ico",
    ".pdf",
    ".zip",
    ".tar.gz",
    ".css",
    ".js",
    ".json",
    ".xml",
    ".yaml",
)


# ---------------------------------------------------------------------------
# Category rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryRule:
    """Path prefix -> (category, subcategory).

    With ``subcategory=None`` the segment right after the prefix is used, or
    ``general`` when the path ends at the prefix.
    """

    prefix: tuple[str, ...]
    category: str
    subcategory: str | None = None

    def matches(self, segments: list[str]) -> bool:
        if len(segments) < len(self.prefix):
            return False
        return all(s.lower() == p for s, p in zip(segments, self.prefix))

    def apply(self, segments: list[str]) -> tuple[str, str]:
        if self.subcategory is not None:
            return self.category, self.subcategory
        idx = len(self.prefix)
        sub = segments[idx].lower() if idx < len(segments) else "general"
        return self.category, sub


_PORTAL_RULES = (
    CategoryRule(("getting-started",), "getting-started"),
    CategoryRule(("support-policy",), "support-policy"),
)

CATEGORY_RULES: dict[str, tuple[CategoryRule, ...]] = {
    "self-hosted": (
        CategoryRule(("platform-management", "runai-scheduler"), "scheduler"),
        CategoryRule(("platform-management", "policies"), "policies"),
        CategoryRule(("platform-management",), "platform"),
        CategoryRule(("getting-started",), "installation"),
        CategoryRule(("infrastructure-setup",), "infrastructure"),
        CategoryRule(("settings",), "platform", "settings"),
        CategoryRule(("workloads-in-nvidia-run-ai",), "workloads"),
        CategoryRule(("ai-applications",), "workloads", "applications"),
        CategoryRule(("reference", "cli"), "cli", "overview"),
    ),
    "api": (
        CategoryRule(("authentication-and-authorization",), "api", "auth"),
        CategoryRule(("workload-assets",), "api", "workload-assets"),
        CategoryRule(("datavolumes",), "api", "workload-assets"),
        CategoryRule(("getting-started",), "api", "getting-started"),
        CategoryRule((), "api"),
    ),
    "saas": _PORTAL_RULES,
    "multi-tenant": _PORTAL_RULES,
    "legacy": (
        CategoryRule(("home",), "home"),
        CategoryRule(("developer",), "developer"),
        CategoryRule(("researcher",), "researcher"),
        CategoryRule(("admin",), "admin"),
    ),
}


def infer_category(docset: str, segments: list[str]) -> tuple[str, str]:
    """Classify the path *after* the docset/version prefix."""
    for rule in CATEGORY_RULES.get(docset, ()):
        if rule.matches(segments):
            return rule.apply(segments)
    return docset, "general"


# ---------------------------------------------------------------------------
# Link extraction
# ---------------------------------------------------------------------------


def extract_links(
    html: str,
    base_url: str,
    allowed_hosts: frozenset[str] | set[str],
    max_links: int = 50,
) -> list[str]:
    """Return absolute same-site links from *html*, first-seen order.

    Fragments are dropped, duplicates collapsed, and only http(s) URLs on an
    allowed host kept. Once *max_links* are collected the rest is ignored.
    """
    if max_links <= 0:
        return []

    soup = BeautifulSoup(html, "html.parser")
    links: list[str] = []
    seen: set[str] = set()

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_SKIP_SCHEMES):
            continue

        try:
            parts = urlsplit(urljoin(base_url, href))
        except ValueError:
            continue
        if parts.scheme not in ("http", "https"):
            continue
        if (parts.hostname or "").lower() not in allowed_hosts:
            continue
        if parts.path.lower().endswith(_SKIP_EXTENSIONS):
            continue

        url = urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
        if url in seen:
            continue
        seen.add(url)
        links.append(url)
        if len(links) >= max_links:
            break

    return links


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _detect_docset(
    host: str, segments: list[str], docsets: tuple[DocsetDescriptor, ...]
) -> tuple[DocsetDescriptor, list[str]] | None:
    # A docset that owns its whole host wins over path-based detection
    for desc in docsets:
        if desc.owns_host and desc.host == host:
            return desc, segments

    if not segments:
        return None
    for desc in docsets:
        if desc.owns_host or desc.host != host:
            continue
        n = len(desc.path_prefix)
        if tuple(s.lower() for s in segments[:n]) == desc.path_prefix:
            return desc, segments[n:]
    return None


def classify(
    url: str,
    parent: PageEntry,
    docsets: tuple[DocsetDescriptor, ...] = DOCSETS,
) -> PageEntry | None:
    """Classify a discovered *url* relative to the page that linked to it.

    Returns None when the URL belongs to no known docset. A version segment
    right after the docset prefix sets the version; otherwise the parent's
    version is inherited. Unversioned docsets always get ``latest``.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    host = (parts.hostname or "").lower()
    segments = [s for s in parts.path.split("/") if s]
    detected = _detect_docset(host, segments, docsets)
    if detected is None:
        return None
    desc, rest = detected

    version = parent.version
    if rest:
        explicit = parse_version_segment(rest[0])
        if explicit:
            version = explicit
            rest = rest[1:]
    if not desc.versioned:
        version = UNVERSIONED

    category, subcategory = infer_category(desc.id, rest)
    return PageEntry(
        docset=desc.id,
        version=version,
        url=canonicalize(url, desc.id, version),
        category=category,
        subcategory=subcategory,
    )


def in_scope(entry: PageEntry, parent: PageEntry, catalog: Catalog) -> bool:
    """Same docset as the parent and a version configured for that docset."""
    if entry.docset != parent.docset:
        return False
    return catalog.is_allowed(entry.docset, entry.version)
