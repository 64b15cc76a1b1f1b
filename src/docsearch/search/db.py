from __future__ import annotations

import sqlite3
import zlib
from pathlib import Path
from typing import Iterable, Optional

from ..errors import QuerySyntaxError
from .query import BooleanQuery, Occur, PhraseQuery, PrefixQuery, Query, RangeQuery, TermQuery

INDEX_DB_NAME = "index.sqlite"

# Tokenized through FTS5; every other field is an exact-match keyword field.
TEXT_FIELDS = ("content", "title")

FIELD_URL = "url"
FIELD_GROUPS = "groups"
FIELD_SUMMARY = "summary"


def index_db_path(directory: Path) -> Path:
    return Path(directory) / INDEX_DB_NAME


def connect(db_path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def ensure_index_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS documents(
          id INTEGER PRIMARY KEY,
          url TEXT NOT NULL UNIQUE,
          title TEXT NOT NULL DEFAULT '',
          last_modified INTEGER,
          size INTEGER,
          summary BLOB
        );

        CREATE TABLE IF NOT EXISTS doc_terms(
          doc_id INTEGER NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
          field TEXT NOT NULL,
          term TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_doc_terms_field_term ON doc_terms(field, term);

        CREATE VIRTUAL TABLE IF NOT EXISTS doc_fts USING fts5(title, content);
        """
    )


def add_document(
    conn: sqlite3.Connection,
    *,
    url: str,
    title: str = "",
    content: str = "",
    groups: Iterable[str] = (),
    fields: Optional[dict[str, str]] = None,
    last_modified: Optional[int] = None,
    size: Optional[int] = None,
    summary: Optional[str] = None,
) -> int:
    """Write one document, replacing any document with the same URL."""
    ensure_index_schema(conn)
    compressed = zlib.compress(summary.encode("utf-8")) if summary is not None else None

    with conn:
        # Deterministic upsert: delete then insert.
        old = conn.execute("SELECT id FROM documents WHERE url = ?", (url,)).fetchone()
        if old is not None:
            conn.execute("DELETE FROM doc_fts WHERE rowid = ?", (old["id"],))
            conn.execute("DELETE FROM documents WHERE id = ?", (old["id"],))

        cur = conn.execute(
            "INSERT INTO documents(url, title, last_modified, size, summary) VALUES(?, ?, ?, ?, ?)",
            (url, title, last_modified, size, compressed),
        )
        doc_id = int(cur.lastrowid)
        conn.execute("INSERT INTO doc_fts(rowid, title, content) VALUES(?, ?, ?)", (doc_id, title, content))

        terms = [(doc_id, FIELD_URL, url)]
        terms.extend((doc_id, FIELD_GROUPS, g) for g in groups)
        for name, value in (fields or {}).items():
            if name in TEXT_FIELDS or name in (FIELD_URL, FIELD_GROUPS):
                raise ValueError(f"Field name is reserved: {name}")
            terms.append((doc_id, name, str(value)))
        conn.executemany("INSERT INTO doc_terms(doc_id, field, term) VALUES(?, ?, ?)", terms)

    return doc_id


def _fts_phrase(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _fts_match(query: Query) -> str:
    if isinstance(query, PrefixQuery):
        return f"{query.field} : {_fts_phrase(query.prefix)} *"
    return f"{query.field} : {_fts_phrase(query.text)}"


def compile_query(query: Query) -> tuple[str, list[object]]:
    """Translate a query into an SQL predicate over documents aliased as d."""
    if isinstance(query, BooleanQuery):
        return _compile_boolean(query)

    if isinstance(query, (TermQuery, PhraseQuery, PrefixQuery)) and query.field in TEXT_FIELDS:
        return "d.id IN (SELECT rowid FROM doc_fts WHERE doc_fts MATCH ?)", [_fts_match(query)]

    if isinstance(query, (TermQuery, PhraseQuery)):
        return (
            "d.id IN (SELECT doc_id FROM doc_terms WHERE field = ? AND term = ?)",
            [query.field, query.text],
        )

    if isinstance(query, PrefixQuery):
        return (
            "d.id IN (SELECT doc_id FROM doc_terms WHERE field = ? AND substr(term, 1, ?) = ?)",
            [query.field, len(query.prefix), query.prefix],
        )

    if isinstance(query, RangeQuery):
        if query.field in TEXT_FIELDS:
            raise QuerySyntaxError(f"Range queries are not supported on full-text field '{query.field}'")
        where = ["field = ?"]
        params: list[object] = [query.field]
        lower_op, upper_op = (">=", "<=") if query.inclusive else (">", "<")
        if query.lower is not None:
            where.append(f"term {lower_op} ?")
            params.append(query.lower)
        if query.upper is not None:
            where.append(f"term {upper_op} ?")
            params.append(query.upper)
        return f"d.id IN (SELECT doc_id FROM doc_terms WHERE {' AND '.join(where)})", params

    raise QuerySyntaxError(f"Unsupported query type: {type(query).__name__}")


def _compile_boolean(query: BooleanQuery) -> tuple[str, list[object]]:
    must: list[str] = []
    should: list[str] = []
    must_not: list[str] = []
    params_must: list[object] = []
    params_should: list[object] = []
    params_not: list[object] = []

    for clause in query.clauses:
        sql, params = compile_query(clause.query)
        if clause.occur == Occur.MUST:
            must.append(f"({sql})")
            params_must.extend(params)
        elif clause.occur == Occur.SHOULD:
            should.append(f"({sql})")
            params_should.extend(params)
        else:
            must_not.append(f"NOT ({sql})")
            params_not.extend(params)

    # Optional clauses only restrict when nothing is required.
    if must:
        parts, params = must, params_must
    elif should:
        parts, params = ["(" + " OR ".join(should) + ")"], params_should
    else:
        return "0", []

    return " AND ".join(parts + must_not), params + params_not


def rank_matches(query: Query, *, negated: bool = False) -> list[str]:
    """FTS expressions of all positive full-text clauses, used for ranking."""
    if isinstance(query, BooleanQuery):
        out: list[str] = []
        for clause in query.clauses:
            out.extend(rank_matches(clause.query, negated=negated or clause.occur == Occur.MUST_NOT))
        return out
    if negated:
        return []
    if isinstance(query, (TermQuery, PhraseQuery, PrefixQuery)) and query.field in TEXT_FIELDS:
        return [_fts_match(query)]
    return []
