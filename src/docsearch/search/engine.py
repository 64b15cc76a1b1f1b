from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..errors import SearchIOError
from . import db as dbmod
from .models import ScoredDoc, StoredDocument, TopDocs
from .query import Query

logger = logging.getLogger(__name__)


def _row_to_document(row: sqlite3.Row) -> StoredDocument:
    binary_fields = {}
    if row["summary"] is not None:
        binary_fields[dbmod.FIELD_SUMMARY] = bytes(row["summary"])
    return StoredDocument(
        doc_id=int(row["id"]),
        url=str(row["url"]),
        title=str(row["title"] or ""),
        last_modified=row["last_modified"],
        size=row["size"],
        binary_fields=binary_fields,
    )


class IndexSearcher:
    """Executes queries against one index database.

    Obtained from an IndexSearcherManager and used by one request at a time.
    """

    def __init__(self, conn: sqlite3.Connection, db_path: Path):
        self._conn = conn
        self.db_path = db_path

    def count(self, query: Query) -> int:
        where_sql, params = dbmod.compile_query(query)
        try:
            row = self._conn.execute(f"SELECT COUNT(*) AS n FROM documents d WHERE {where_sql}", params).fetchone()
        except sqlite3.Error as exc:
            raise SearchIOError(f"Searching query failed: {self.db_path}") from exc
        return int(row["n"])

    def search(self, query: Query, *, limit: int, offset: int = 0) -> TopDocs:
        where_sql, params = dbmod.compile_query(query)
        matches = dbmod.rank_matches(query)

        rank_join = ""
        rank_params: list[object] = []
        rank_expr = "0.0"
        if matches:
            rank_join = (
                "LEFT JOIN (SELECT rowid AS doc_id, bm25(doc_fts) AS bm25 FROM doc_fts WHERE doc_fts MATCH ?) r "
                "ON r.doc_id = d.id"
            )
            rank_params.append(" OR ".join(f"({m})" for m in matches))
            rank_expr = "COALESCE(r.bm25, 0.0)"

        try:
            total = self.count(query)
            if limit <= 0:
                return TopDocs(total_hits=total, score_docs=[])
            rows = self._conn.execute(
                f"""
                SELECT d.id, d.url, d.title, d.last_modified, d.size, d.summary, {rank_expr} AS bm25
                FROM documents d
                {rank_join}
                WHERE {where_sql}
                ORDER BY bm25 ASC, d.url ASC
                LIMIT ? OFFSET ?
                """,
                (*rank_params, *params, limit, max(offset, 0)),
            ).fetchall()
        except sqlite3.Error as exc:
            raise SearchIOError(f"Searching query failed: {self.db_path}") from exc

        # Invert bm25 so larger is better.
        score_docs = [ScoredDoc(score=-float(r["bm25"]), document=_row_to_document(r)) for r in rows]
        return TopDocs(total_hits=total, score_docs=score_docs)

    def close(self) -> None:
        self._conn.close()


class IndexSearcherManager:
    """Pool of searchers for one index directory.

    There is one manager per directory for the whole process. Callers acquire
    a searcher for the duration of one search and must release it again,
    normally through the searcher() context manager.
    """

    _instances: dict[Path, "IndexSearcherManager"] = {}
    _instances_lock = threading.Lock()

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.db_path = dbmod.index_db_path(self.directory)
        self._idle: list[IndexSearcher] = []
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls, directory: Path) -> "IndexSearcherManager":
        key = Path(directory).resolve()
        with cls._instances_lock:
            manager = cls._instances.get(key)
            if manager is None:
                manager = cls(key)
                cls._instances[key] = manager
            return manager

    @classmethod
    def close_all(cls) -> None:
        with cls._instances_lock:
            managers = list(cls._instances.values())
            cls._instances.clear()
        for manager in managers:
            manager.close()

    def acquire(self) -> IndexSearcher:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        if not self.db_path.exists():
            raise SearchIOError(f"Index not found: {self.db_path}")
        try:
            # Pooled connections may be released on another worker thread.
            conn = dbmod.connect(self.db_path, check_same_thread=False)
            dbmod.ensure_index_schema(conn)
        except sqlite3.Error as exc:
            raise SearchIOError(f"Opening index failed: {self.db_path}") from exc
        logger.debug(f"Opened searcher for {self.db_path}")
        return IndexSearcher(conn, self.db_path)

    def release(self, searcher: Optional[IndexSearcher]) -> None:
        if searcher is None:
            return
        with self._lock:
            self._idle.append(searcher)

    @contextmanager
    def searcher(self) -> Iterator[IndexSearcher]:
        searcher = self.acquire()
        try:
            yield searcher
        finally:
            self.release(searcher)

    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def close(self) -> None:
        with self._lock:
            idle, self._idle = self._idle, []
        for searcher in idle:
            searcher.close()
