"""Static registry of known Run:ai documentation sets.

Each docset has its own base location and versioning scheme. Versioned docsets
carry the version as the first path segment after the docset prefix
(``/self-hosted/2.24/...``); the legacy site owns a whole host and spells the
version with a ``v`` (``docs.run.ai/v2.24/...``).
"""

import re
from dataclasses import dataclass
from functools import cached_property
from urllib.parse import urlparse

# Version string used for docsets that are not version-partitioned.
UNVERSIONED = "latest"

# A path segment that names a version: 2.24, v2.24, V2.19
VERSION_SEGMENT_RE = re.compile(r"^v?(\d+\.\d+)$", re.IGNORECASE)


@dataclass(frozen=True)
class DocsetDescriptor:
    """Immutable description of one documentation set."""

    id: str
    label: str
    base_url: str
    versioned: bool
    # Text placed in front of the version number in URLs ("v" -> /v2.24/)
    version_prefix: str = ""

    @cached_property
    def host(self) -> str:
        return (urlparse(self.base_url).hostname or "").lower()

    @cached_property
    def path_prefix(self) -> tuple[str, ...]:
        """Leading path segments identifying this docset (empty if host-owned)."""
        return tuple(s for s in urlparse(self.base_url).path.split("/") if s)

    @property
    def owns_host(self) -> bool:
        return not self.path_prefix

    def version_segment(self, version: str) -> str:
        return f"{self.version_prefix}{version}"


DOCSETS: tuple[DocsetDescriptor, ...] = (
    DocsetDescriptor(
        id="self-hosted",
        label="Self-hosted",
        base_url="https://run-ai-docs.nvidia.com/self-hosted",
        versioned=True,
    ),
    DocsetDescriptor(
        id="api",
        label="Run:ai Management API",
        base_url="https://run-ai-docs.nvidia.com/api",
        versioned=True,
    ),
    DocsetDescriptor(
        id="saas",
        label="SaaS",
        base_url="https://run-ai-docs.nvidia.com/saas",
        versioned=False,
    ),
    DocsetDescriptor(
        id="multi-tenant",
        label="Multi-tenant",
        base_url="https://run-ai-docs.nvidia.com/multi-tenant",
        versioned=True,
    ),
    DocsetDescriptor(
        id="legacy",
        label="Legacy (docs.run.ai)",
        base_url="https://docs.run.ai",
        versioned=True,
        version_prefix="v",
    ),
)

_BY_ID = {d.id: d for d in DOCSETS}

_DOCSET_ALIASES: dict[str, str] = {
    "selfhosted": "self-hosted",
    "self_hosted": "self-hosted",
    "multitenant": "multi-tenant",
    "multi_tenant": "multi-tenant",
    "mt": "multi-tenant",
    "cloud": "saas",
    "api-docs": "api",
    "apidocs": "api",
    "docs.run.ai": "legacy",
    "docs-run-ai": "legacy",
}


def get_docset(docset_id: str) -> DocsetDescriptor | None:
    return _BY_ID.get(docset_id)


def list_docsets() -> list[DocsetDescriptor]:
    """Return all known docsets in registry order."""
    return list(DOCSETS)


def normalize_docset(value: str | None) -> str | None:
    """Map user-facing docset spellings onto registry ids."""
    if not value:
        return None
    normalized = value.strip().lower()
    return _DOCSET_ALIASES.get(normalized, normalized) or None


def normalize_version(value: str | None) -> str | None:
    """Trim and drop a leading ``v`` (``v2.24`` -> ``2.24``)."""
    if not value:
        return None
    normalized = value.strip().lower()
    if normalized in ("latest", "current"):
        return UNVERSIONED
    if normalized.startswith("v"):
        normalized = normalized[1:]
    return normalized or None


def parse_version_segment(segment: str) -> str | None:
    """Return the bare version number if *segment* is a version token."""
    match = VERSION_SEGMENT_RE.match(segment)
    return match.group(1) if match else None


def version_sort_key(version: str) -> tuple:
    """Numeric sort key; non-numeric versions sort first."""
    parts = version.split(".")
    if all(p.isdigit() for p in parts):
        return (1, tuple(int(p) for p in parts))
    return (0, (version,))
