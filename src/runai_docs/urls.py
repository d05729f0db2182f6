"""URL canonicalization and fetch-candidate generation.

Every page is stored under exactly one canonical URL per (docset, version).
Versioned docsets always carry the explicit version segment; the docs site
does not reliably serve both forms, so fetching walks an ordered list of
candidates starting with the canonical one.
"""

from urllib.parse import urlsplit, urlunsplit

from runai_docs.docsets import UNVERSIONED, get_docset, parse_version_segment
from runai_docs.models import PageEntry


def unique_strings(values: list[str]) -> list[str]:
    """Deduplicate while preserving order."""
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def _rewrite_segments(
    segments: list[str], host: str, docset: str, version: str | None
) -> list[str]:
    desc = get_docset(docset)
    if desc is None or host != desc.host:
        return segments

    prefix = desc.path_prefix
    n = len(prefix)
    if tuple(s.lower() for s in segments[:n]) != prefix:
        return segments

    rest = segments[n:]
    if rest and parse_version_segment(rest[0]):
        rest = rest[1:]
    if desc.versioned and version and version != UNVERSIONED:
        rest = [desc.version_segment(version), *rest]
    return [*prefix, *rest]


def canonicalize(raw_url: str, docset: str, version: str | None) -> str:
    """Map a raw URL onto its canonical form for (docset, version).

    Lower-cases scheme and host, drops query and fragment, collapses empty
    path segments and the trailing slash. For versioned docsets the version
    segment is inserted or replaced; for unversioned docsets (or when
    *version* is None) it is removed. Idempotent.
    """
    parsed = urlsplit(raw_url.strip())
    scheme = (parsed.scheme or "https").lower()
    netloc = parsed.netloc.lower()
    host = (parsed.hostname or "").lower()

    segments = [s for s in parsed.path.split("/") if s]
    segments = _rewrite_segments(segments, host, docset, version)

    path = "/" + "/".join(segments) if segments else ""
    return urlunsplit((scheme, netloc, path, "", ""))


def strip_version(url: str, docset: str) -> str:
    """Canonical form without any version segment."""
    return canonicalize(url, docset, None)


def fetch_candidates(entry: PageEntry) -> list[str]:
    """Ordered URLs to try when fetching *entry*: canonical first."""
    canonical = canonicalize(entry.url, entry.docset, entry.version)
    return unique_strings([canonical, strip_version(canonical, entry.docset)])


def dedup_key(entry: PageEntry) -> str:
    """Frontier dedup key, built from the canonicalized identity tuple."""
    canonical = canonicalize(entry.url, entry.docset, entry.version)
    return f"{entry.docset}|{entry.version}|{canonical}"


def build_url(docset: str, version: str, path: str = "") -> str:
    """Build the canonical URL of *path* (relative to the docset root)."""
    desc = get_docset(docset)
    if desc is None:
        raise ValueError(f"Unknown docset: {docset}")
    raw = desc.base_url.rstrip("/") + "/" + path.lstrip("/")
    return canonicalize(raw, docset, version)
