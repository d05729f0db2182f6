"""Configuration settings for the Run:ai docs indexer."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

_DEFAULT_DOCSETS = ("self-hosted", "api", "saas", "multi-tenant")
_DEFAULT_VERSIONS = ("2.24",)
_DEFAULT_ALLOWED_HOSTS = ("run-ai-docs.nvidia.com", "docs.run.ai")


def _default_data_dir() -> Path:
    """Get default data directory (~/.runai-docs/)."""
    return Path.home() / ".runai-docs"


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    """Indexer configuration.

    Environment variables (all prefixed with ``RUNAI_DOCS_``):
    - DOCSETS: Comma list of docsets to crawl
        (default: self-hosted,api,saas,multi-tenant; "legacy" is opt-in)
    - VERSIONS: Comma list of versions for versioned docsets (default: 2.24)
    - DB_PATH: SQLite store path (default: ~/.runai-docs/runai-docs.db)
    - DATA_DIR: Base data directory (default: ~/.runai-docs)
    - CONCURRENCY: Pages fetched per batch (default: 5)
    - BATCH_DELAY: Seconds to wait between batches (default: 0.5)
    - MAX_PAGES: Hard page cap per run (default: 500)
    - MAX_LINKS_PER_PAGE: Links kept from one page (default: 50)
    - FETCH_TIMEOUT: Per-request timeout in seconds (default: 12)
    - ALLOWED_HOSTS: Comma list of hosts that may be fetched
    - EXPORT_DIR: Also write each page as a Markdown file here (default: off)
    - LOG_LEVEL: Loguru level (default: INFO)
    """

    # Crawl scope
    docsets: str = ",".join(_DEFAULT_DOCSETS)
    versions: str = ",".join(_DEFAULT_VERSIONS)

    # Storage
    db_path: str = ""  # Default: ~/.runai-docs/runai-docs.db
    data_dir: str = ""  # Default: ~/.runai-docs
    export_dir: str = ""  # Empty = no Markdown mirror

    # Scheduler
    concurrency: int = Field(default=5, ge=1)
    batch_delay: float = Field(default=0.5, ge=0)
    max_pages: int = Field(default=500, ge=1)
    max_links_per_page: int = Field(default=50, ge=0)

    # Network
    fetch_timeout: float = Field(default=12.0, gt=0)
    user_agent: str = "RunAI-Docs-Indexer/1.0"
    allowed_hosts: str = ",".join(_DEFAULT_ALLOWED_HOSTS)

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "RUNAI_DOCS_", "case_sensitive": False}

    # --- Scope resolution ---

    def resolve_docsets(self) -> list[str]:
        """Return the selected docset ids, normalized and de-duplicated.

        Falls back to the default selection when the value is empty.
        """
        from runai_docs.docsets import normalize_docset

        parsed: list[str] = []
        for raw in _split_csv(self.docsets):
            docset = normalize_docset(raw)
            if docset and docset not in parsed:
                parsed.append(docset)
        return parsed or list(_DEFAULT_DOCSETS)

    def resolve_versions(self) -> list[str]:
        """Return configured versions with any leading ``v`` removed."""
        from runai_docs.docsets import normalize_version

        parsed: list[str] = []
        for raw in _split_csv(self.versions):
            version = normalize_version(raw)
            if version and version not in parsed:
                parsed.append(version)
        return parsed or list(_DEFAULT_VERSIONS)

    def resolve_allowed_hosts(self) -> frozenset[str]:
        hosts = {h.lower() for h in _split_csv(self.allowed_hosts)}
        return frozenset(hosts or _DEFAULT_ALLOWED_HOSTS)

    # --- Path helpers ---

    def get_data_dir(self) -> Path:
        """Get data directory.

        Uses DATA_DIR if set, otherwise ~/.runai-docs/.
        """
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return _default_data_dir()

    def get_db_path(self) -> Path:
        """Get resolved docs database path."""
        if self.db_path:
            return Path(self.db_path).expanduser()
        return self.get_data_dir() / "runai-docs.db"

    def get_export_dir(self) -> Path | None:
        """Get Markdown mirror directory, or None when disabled."""
        if self.export_dir:
            return Path(self.export_dir).expanduser()
        return None


settings = Settings()
