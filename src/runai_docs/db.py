"""Persistent page store with a trigger-synchronized FTS5 index.

Each crawl run recreates the schema and then writes pages one at a time. The
``pages_fts`` table is an external-content FTS5 index over ``pages``; it is
never written directly, only through the insert/update/delete triggers.

The read-only query methods at the bottom are what the serving layer uses.
"""

import re
import sqlite3
from pathlib import Path

from loguru import logger

from runai_docs.docsets import DocsetDescriptor, version_sort_key
from runai_docs.models import StoredPage, VersionRecord

# A token FTS5 accepts unquoted: word characters with an optional prefix star
_BAREWORD_RE = re.compile(r"^\w+\*?$")
_FTS_OPERATORS = frozenset({"AND", "OR", "NOT", "NEAR"})

_META_COLUMNS = "url, title, category, subcategory, docset, version, fetched_at"


def sanitize_fts_query(query: str) -> str:
    """Make a user query safe for ``MATCH``.

    A query already wrapped in double quotes passes through. Otherwise every
    token that is not a plain bareword (or an upper-case FTS operator) is
    quoted, so ``node-pools`` or ``v2.24`` match literally instead of being
    parsed as FTS syntax.
    """
    trimmed = query.strip()
    if not trimmed:
        return ""
    if len(trimmed) > 1 and trimmed.startswith('"') and trimmed.endswith('"'):
        return trimmed

    safe: list[str] = []
    for token in trimmed.split():
        if token in _FTS_OPERATORS or _BAREWORD_RE.match(token):
            safe.append(token)
        else:
            safe.append('"' + token.replace('"', '""') + '"')
    return " ".join(safe)


def _scope_filter(
    docset: str | None, version: str | None, alias: str = ""
) -> tuple[str, list]:
    """Build an ``AND ...`` clause restricting rows to a docset/version."""
    prefix = f"{alias}." if alias else ""
    clauses: list[str] = []
    params: list = []
    if docset:
        clauses.append(f"{prefix}docset = ?")
        params.append(docset)
    if version:
        clauses.append(f"{prefix}version = ?")
        params.append(version)
    sql = "".join(f" AND {c}" for c in clauses)
    return sql, params


class DocsDB:
    """SQLite-backed page store with FTS5 search."""

    def __init__(self, db_path: Path):
        self._db_path = db_path

        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        self._conn.execute("PRAGMA busy_timeout = 5000")

        self._create_tables()
        logger.debug(f"DocsDB initialized at {db_path}")

    @property
    def path(self) -> Path:
        return self._db_path

    def _create_tables(self) -> None:
        # Pages
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS pages (
                id INTEGER PRIMARY KEY,
                docset TEXT NOT NULL,
                version TEXT NOT NULL,
                url TEXT NOT NULL,
                category TEXT NOT NULL,
                subcategory TEXT NOT NULL,
                title TEXT NOT NULL,
                content_md TEXT NOT NULL,
                content_plain TEXT NOT NULL,
                fetched_at TEXT NOT NULL,
                UNIQUE(docset, version, url)
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_pages_category
            ON pages(category, subcategory)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_pages_url
            ON pages(url)
        """)

        # FTS5 (external content)
        self._conn.execute("""
            CREATE VIRTUAL TABLE IF NOT EXISTS pages_fts
            USING fts5(
                title,
                content_plain,
                content='pages',
                content_rowid='id',
                tokenize='porter unicode61'
            )
        """)

        # FTS5 sync triggers
        self._conn.execute("""
            CREATE TRIGGER IF NOT EXISTS pages_ai AFTER INSERT ON pages BEGIN
                INSERT INTO pages_fts(rowid, title, content_plain)
                VALUES (new.id, new.title, new.content_plain);
            END
        """)
        self._conn.execute("""
            CREATE TRIGGER IF NOT EXISTS pages_ad AFTER DELETE ON pages BEGIN
                INSERT INTO pages_fts(pages_fts, rowid, title, content_plain)
                VALUES ('delete', old.id, old.title, old.content_plain);
            END
        """)
        self._conn.execute("""
            CREATE TRIGGER IF NOT EXISTS pages_au AFTER UPDATE ON pages BEGIN
                INSERT INTO pages_fts(pages_fts, rowid, title, content_plain)
                VALUES ('delete', old.id, old.title, old.content_plain);
                INSERT INTO pages_fts(rowid, title, content_plain)
                VALUES (new.id, new.title, new.content_plain);
            END
        """)

        # Catalog metadata
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS docsets (
                id TEXT PRIMARY KEY,
                label TEXT NOT NULL,
                base_url TEXT NOT NULL,
                versioned INTEGER NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS docset_versions (
                docset TEXT NOT NULL,
                version TEXT NOT NULL,
                is_latest INTEGER NOT NULL DEFAULT 0,
                release_date TEXT,
                source TEXT NOT NULL DEFAULT 'config',
                PRIMARY KEY (docset, version)
            )
        """)

        self._conn.commit()

    # -----------------------------------------------------------------------
    # Run lifecycle
    # -----------------------------------------------------------------------

    def reset_schema(self) -> None:
        """Drop every table, trigger and index, then recreate them empty."""
        with self._conn:
            for trigger in ("pages_ai", "pages_ad", "pages_au"):
                self._conn.execute(f"DROP TRIGGER IF EXISTS {trigger}")
            self._conn.execute("DROP TABLE IF EXISTS pages_fts")
            self._conn.execute("DROP TABLE IF EXISTS pages")
            self._conn.execute("DROP TABLE IF EXISTS docset_versions")
            self._conn.execute("DROP TABLE IF EXISTS docsets")
        self._create_tables()
        logger.info(f"Store schema reset at {self._db_path}")

    def write_catalog(
        self,
        docsets: list[DocsetDescriptor],
        versions: list[VersionRecord],
    ) -> None:
        """Rewrite the docset and version metadata in one transaction."""
        with self._conn:
            self._conn.execute("DELETE FROM docset_versions")
            self._conn.execute("DELETE FROM docsets")
            self._conn.executemany(
                "INSERT INTO docsets (id, label, base_url, versioned) VALUES (?, ?, ?, ?)",
                [(d.id, d.label, d.base_url, int(d.versioned)) for d in docsets],
            )
            self._conn.executemany(
                """INSERT INTO docset_versions
                   (docset, version, is_latest, release_date, source)
                   VALUES (?, ?, ?, ?, ?)""",
                [
                    (v.docset, v.version, int(v.is_latest), v.release_date, v.source)
                    for v in versions
                ],
            )
        logger.debug(
            f"Catalog metadata written: {len(docsets)} docsets, {len(versions)} versions"
        )

    def upsert_page(self, page: StoredPage) -> int:
        """Insert or replace a page by (docset, version, url). Returns the row id.

        ``ON CONFLICT DO UPDATE`` keeps the row id and fires ``pages_au``, so
        the index entry is swapped in the same statement.
        """
        with self._conn:
            self._conn.execute(
                """INSERT INTO pages
                   (docset, version, url, category, subcategory, title,
                    content_md, content_plain, fetched_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(docset, version, url) DO UPDATE SET
                       category = excluded.category,
                       subcategory = excluded.subcategory,
                       title = excluded.title,
                       content_md = excluded.content_md,
                       content_plain = excluded.content_plain,
                       fetched_at = excluded.fetched_at""",
                (
                    page.docset,
                    page.version,
                    page.url,
                    page.category,
                    page.subcategory,
                    page.title,
                    page.content_md,
                    page.content_plain,
                    page.fetched_at,
                ),
            )
            row = self._conn.execute(
                "SELECT id FROM pages WHERE docset = ? AND version = ? AND url = ?",
                (page.docset, page.version, page.url),
            ).fetchone()
        return row["id"]

    # -----------------------------------------------------------------------
    # Page lookup
    # -----------------------------------------------------------------------

    def get_page(
        self,
        url: str,
        docset: str | None = None,
        version: str | None = None,
    ) -> dict | None:
        """Get one page by URL, optionally pinned to a docset/version.

        A trailing slash on *url* is ignored. When several versions hold the
        same URL the most recently fetched row is returned.
        """
        scope_sql, scope_params = _scope_filter(docset, version)
        candidates = list(dict.fromkeys([url, url.rstrip("/")]))
        placeholders = ", ".join("?" for _ in candidates)
        row = self._conn.execute(
            f"""SELECT * FROM pages
                WHERE url IN ({placeholders}){scope_sql}
                ORDER BY fetched_at DESC LIMIT 1""",
            [*candidates, *scope_params],
        ).fetchone()
        return dict(row) if row else None

    def find_pages_by_title(
        self,
        title: str,
        limit: int = 5,
        docset: str | None = None,
        version: str | None = None,
    ) -> list[dict]:
        """Substring title match; the exact title first, then shorter titles."""
        scope_sql, scope_params = _scope_filter(docset, version)
        rows = self._conn.execute(
            f"""SELECT {_META_COLUMNS} FROM pages
                WHERE title LIKE ?{scope_sql}
                ORDER BY CASE WHEN title = ? THEN 0 ELSE 1 END, length(title)
                LIMIT ?""",
            [f"%{title}%", *scope_params, title, limit],
        ).fetchall()
        return [dict(r) for r in rows]

    # -----------------------------------------------------------------------
    # Search
    # -----------------------------------------------------------------------

    def search(
        self,
        query: str,
        docset: str | None = None,
        version: str | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[dict]:
        """Full-text search ordered by bm25 rank (best first).

        Returns dicts with url, title, category, subcategory, docset, version,
        snippet and rank. Queries FTS5 rejects return an empty list.
        """
        sanitized = sanitize_fts_query(query)
        if not sanitized:
            return []

        scope_sql, scope_params = _scope_filter(docset, version, alias="p")
        sql = f"""
            SELECT p.url, p.title, p.category, p.subcategory, p.docset, p.version,
                   snippet(pages_fts, 1, '>>>>', '<<<<', '...', 64) AS snippet,
                   bm25(pages_fts) AS rank
            FROM pages_fts
            JOIN pages p ON p.id = pages_fts.rowid
            WHERE pages_fts MATCH ?{scope_sql}
            ORDER BY rank
            LIMIT ? OFFSET ?
        """
        try:
            rows = self._conn.execute(
                sql, [sanitized, *scope_params, limit, offset]
            ).fetchall()
        except sqlite3.OperationalError as e:
            logger.debug(f"FTS search error for {sanitized!r}: {e}")
            return []
        return [dict(r) for r in rows]

    # -----------------------------------------------------------------------
    # Listing
    # -----------------------------------------------------------------------

    def list_categories(
        self, docset: str | None = None, version: str | None = None
    ) -> list[dict]:
        """Category/subcategory pairs with page counts."""
        scope_sql, scope_params = _scope_filter(docset, version)
        rows = self._conn.execute(
            f"""SELECT category, subcategory, COUNT(*) AS count
                FROM pages WHERE 1 = 1{scope_sql}
                GROUP BY category, subcategory
                ORDER BY category, subcategory""",
            scope_params,
        ).fetchall()
        return [dict(r) for r in rows]

    def list_by_category(
        self,
        category: str,
        subcategory: str | None = None,
        limit: int | None = None,
        offset: int = 0,
        docset: str | None = None,
        version: str | None = None,
    ) -> list[dict]:
        scope_sql, scope_params = _scope_filter(docset, version)
        sql = f"SELECT {_META_COLUMNS} FROM pages WHERE category = ?"
        params: list = [category]
        if subcategory:
            sql += " AND subcategory = ?"
            params.append(subcategory)
        sql += scope_sql + " ORDER BY subcategory, title"
        params.extend(scope_params)
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        return [dict(r) for r in self._conn.execute(sql, params).fetchall()]

    def count_by_category(
        self,
        category: str,
        subcategory: str | None = None,
        docset: str | None = None,
        version: str | None = None,
    ) -> int:
        scope_sql, scope_params = _scope_filter(docset, version)
        sql = "SELECT COUNT(*) FROM pages WHERE category = ?"
        params: list = [category]
        if subcategory:
            sql += " AND subcategory = ?"
            params.append(subcategory)
        sql += scope_sql
        params.extend(scope_params)
        return self._conn.execute(sql, params).fetchone()[0]

    def list_all_pages(
        self,
        limit: int | None = None,
        offset: int = 0,
        docset: str | None = None,
        version: str | None = None,
    ) -> list[dict]:
        scope_sql, scope_params = _scope_filter(docset, version)
        sql = (
            f"SELECT {_META_COLUMNS} FROM pages WHERE 1 = 1{scope_sql}"
            " ORDER BY docset, version, category, subcategory, title"
        )
        params: list = list(scope_params)
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        return [dict(r) for r in self._conn.execute(sql, params).fetchall()]

    def count_pages(self, docset: str | None = None, version: str | None = None) -> int:
        scope_sql, scope_params = _scope_filter(docset, version)
        return self._conn.execute(
            f"SELECT COUNT(*) FROM pages WHERE 1 = 1{scope_sql}", scope_params
        ).fetchone()[0]

    # -----------------------------------------------------------------------
    # Catalog metadata
    # -----------------------------------------------------------------------

    def list_docsets(self) -> list[dict]:
        rows = self._conn.execute(
            "SELECT id, label, base_url, versioned FROM docsets ORDER BY id"
        ).fetchall()
        return [{**dict(r), "versioned": bool(r["versioned"])} for r in rows]

    def list_versions(self, docset: str | None = None) -> list[dict]:
        """Known versions, newest first within each docset."""
        sql = "SELECT * FROM docset_versions"
        params: list = []
        if docset:
            sql += " WHERE docset = ?"
            params.append(docset)
        rows = [
            {**dict(r), "is_latest": bool(r["is_latest"])}
            for r in self._conn.execute(sql, params).fetchall()
        ]
        rows.sort(key=lambda r: version_sort_key(r["version"]), reverse=True)
        rows.sort(key=lambda r: r["docset"])
        return rows

    def get_latest_version(self, docset: str) -> str | None:
        """Version flagged latest, else the highest known version."""
        versions = self.list_versions(docset)
        for record in versions:
            if record["is_latest"]:
                return record["version"]
        return versions[0]["version"] if versions else None

    # -----------------------------------------------------------------------
    # Stats
    # -----------------------------------------------------------------------

    def stats(self) -> dict:
        """Return page totals per docset/version and the last fetch time."""
        totals = self._conn.execute(
            "SELECT COUNT(*) AS pages, MAX(fetched_at) AS last_fetched FROM pages"
        ).fetchone()
        rows = self._conn.execute("""
            SELECT docset, version, COUNT(*) AS pages
            FROM pages
            GROUP BY docset, version
            ORDER BY docset, version
        """).fetchall()
        docset_count = self._conn.execute("SELECT COUNT(*) FROM docsets").fetchone()[0]
        return {
            "pages": totals["pages"],
            "docsets": docset_count,
            "last_fetched_at": totals["last_fetched"],
            "by_docset": [dict(r) for r in rows],
        }

    def close(self) -> None:
        """Close database connection."""
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Error closing DocsDB: {e}")
