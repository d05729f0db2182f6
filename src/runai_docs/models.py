"""Data model shared by the crawl pipeline and the store."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PageEntry:
    """A page identity plus its inferred classification.

    Identity is ``(docset, version, url)`` where ``url`` is canonical. A
    ``PageEntry`` that has not been fetched yet is a frontier entry.
    """

    docset: str
    version: str
    url: str
    category: str
    subcategory: str
    title: str = ""

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.docset, self.version, self.url)


@dataclass
class StoredPage:
    """One row of the ``pages`` table."""

    docset: str
    version: str
    url: str
    category: str
    subcategory: str
    title: str
    content_md: str
    content_plain: str
    fetched_at: str

    @classmethod
    def from_entry(
        cls, entry: PageEntry, extracted: "ExtractedPage", fetched_at: str
    ) -> "StoredPage":
        return cls(
            docset=entry.docset,
            version=entry.version,
            url=entry.url,
            category=entry.category,
            subcategory=entry.subcategory,
            title=extracted.title or entry.title,
            content_md=extracted.markdown,
            content_plain=extracted.plain_text,
            fetched_at=fetched_at,
        )


@dataclass(frozen=True)
class ExtractedPage:
    title: str
    markdown: str
    plain_text: str


@dataclass(frozen=True)
class VersionRecord:
    """A known version of a docset, as written to ``docset_versions``."""

    docset: str
    version: str
    is_latest: bool = False
    release_date: str | None = None
    source: str = "config"


@dataclass
class CrawlReport:
    """Outcome of one crawl run."""

    attempted: int = 0
    stored: int = 0
    failed: int = 0
    rejected: int = 0
    dropped: int = 0
    capacity_reached: bool = False
    warnings: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
