from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class Occur(str, Enum):
    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "must_not"


class Query:
    """Base of the immutable query values understood by the index engine."""


@dataclass(frozen=True)
class TermQuery(Query):
    field: str
    text: str


@dataclass(frozen=True)
class PhraseQuery(Query):
    field: str
    text: str


@dataclass(frozen=True)
class PrefixQuery(Query):
    field: str
    prefix: str


@dataclass(frozen=True)
class RangeQuery(Query):
    field: str
    lower: Optional[str]  # None: open
    upper: Optional[str]
    inclusive: bool = True


@dataclass(frozen=True)
class BooleanClause:
    query: Query
    occur: Occur


@dataclass(frozen=True)
class BooleanQuery(Query):
    clauses: tuple[BooleanClause, ...] = ()

    def add(self, query: Query, occur: Occur) -> BooleanQuery:
        return BooleanQuery(self.clauses + (BooleanClause(query, occur),))


class QueryFactory:
    """The only operations the search core needs to compose queries.

    Access control and file lookups go through this interface and never look
    inside the queries they wrap, so tests can plug in a stub engine.
    """

    def term(self, field: str, text: str) -> Query:
        return TermQuery(field, text)

    def conjunction(self, queries: Iterable[Query]) -> Query:
        return BooleanQuery(tuple(BooleanClause(q, Occur.MUST) for q in queries))

    def disjunction(self, queries: Iterable[Query]) -> Query:
        return BooleanQuery(tuple(BooleanClause(q, Occur.SHOULD) for q in queries))

    def is_boolean(self, query: Query) -> bool:
        return isinstance(query, BooleanQuery)

    def wrap_must(self, query: Query) -> Query:
        return BooleanQuery((BooleanClause(query, Occur.MUST),))


default_query_factory = QueryFactory()
