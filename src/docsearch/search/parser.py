"""Parser for the Lucene-style query grammar accepted by the search engine.

Supported: bare terms, "phrases", field:term, field:"phrase", field:(group),
term* prefixes, [a TO b] and {a TO b} ranges (* for an open bound), +/-/NOT
modifiers, AND/OR connectives, parentheses and backslash escapes.
The default operator is AND.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import QuerySyntaxError
from .query import BooleanClause, BooleanQuery, Occur, PhraseQuery, PrefixQuery, Query, RangeQuery, TermQuery

DEFAULT_FIELD = "content"

_WORD_STOP = set(' \t\r\n()"[]{}')
_OPERATORS = {"AND", "OR", "NOT"}


@dataclass(frozen=True)
class _Token:
    kind: str  # word, field, phrase, range, op, mod, lparen, rparen
    value: str = ""
    extra: Optional[tuple] = None


def _read_quoted(text: str, pos: int) -> tuple[str, int]:
    """Read a "..." string starting at the opening quote; return (value, next_pos)."""
    out = []
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            out.append(text[i + 1])
            i += 2
            continue
        if ch == '"':
            return "".join(out), i + 1
        out.append(ch)
        i += 1
    raise QuerySyntaxError(f"Cannot parse '{text}': unterminated phrase")


def _parse_range(text: str, body: str, inclusive: bool) -> tuple:
    parts = body.split()
    if len(parts) != 3 or parts[1] != "TO":
        raise QuerySyntaxError(f"Cannot parse '{text}': range must look like [lower TO upper]")
    bounds = []
    for part in (parts[0], parts[2]):
        if part == "*":
            bounds.append(None)
        elif len(part) >= 2 and part.startswith('"') and part.endswith('"'):
            bounds.append(part[1:-1])
        else:
            bounds.append(part)
    return bounds[0], bounds[1], inclusive


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch.isspace():
            i += 1
        elif ch == "(":
            tokens.append(_Token("lparen"))
            i += 1
        elif ch == ")":
            tokens.append(_Token("rparen"))
            i += 1
        elif ch == '"':
            value, i = _read_quoted(text, i)
            tokens.append(_Token("phrase", value))
        elif ch in "[{":
            close = "]" if ch == "[" else "}"
            end = text.find(close, i + 1)
            if end == -1:
                raise QuerySyntaxError(f"Cannot parse '{text}': unterminated range")
            tokens.append(_Token("range", extra=_parse_range(text, text[i + 1 : end], ch == "[")))
            i = end + 1
        elif ch in "]}":
            raise QuerySyntaxError(f"Cannot parse '{text}': unexpected '{ch}'")
        elif ch in "+-" and i + 1 < len(text) and not text[i + 1].isspace():
            tokens.append(_Token("mod", ch))
            i += 1
        else:
            out = []
            escaped = False
            is_field = False
            while i < len(text) and text[i] not in _WORD_STOP:
                c = text[i]
                if c == "\\" and i + 1 < len(text):
                    out.append(text[i + 1])
                    escaped = True
                    i += 2
                    continue
                if c == ":":
                    is_field = True
                    i += 1
                    break
                out.append(c)
                i += 1
            word = "".join(out)
            if is_field:
                if not word:
                    raise QuerySyntaxError(f"Cannot parse '{text}': missing field name")
                tokens.append(_Token("field", word))
            elif word in _OPERATORS and not escaped:
                tokens.append(_Token("op", word))
            else:
                tokens.append(_Token("word", word, extra=(escaped,)))
    return tokens


class QueryParser:
    def __init__(self, default_field: str = DEFAULT_FIELD):
        self.default_field = default_field

    def parse(self, text: str) -> Query:
        tokens = _tokenize(text or "")
        query, pos = self._parse_clauses(text, tokens, 0, self.default_field, nested=False)
        if pos != len(tokens):
            raise QuerySyntaxError(f"Cannot parse '{text}': unbalanced ')'")
        return query

    def _parse_clauses(
        self,
        text: str,
        tokens: list[_Token],
        pos: int,
        field: str,
        *,
        nested: bool,
    ) -> tuple[Query, int]:
        # Each entry: [occur, query, explicit_modifier]
        clauses: list[list] = []
        while pos < len(tokens) and tokens[pos].kind != "rparen":
            conj = None
            if tokens[pos].kind == "op" and tokens[pos].value in ("AND", "OR"):
                conj = tokens[pos].value
                pos += 1
                if not clauses:
                    raise QuerySyntaxError(f"Cannot parse '{text}': '{conj}' without left operand")

            occur = Occur.MUST
            explicit = False
            if pos < len(tokens) and tokens[pos].kind == "mod":
                occur = Occur.MUST if tokens[pos].value == "+" else Occur.MUST_NOT
                explicit = True
                pos += 1
            elif pos < len(tokens) and tokens[pos].kind == "op" and tokens[pos].value == "NOT":
                occur = Occur.MUST_NOT
                explicit = True
                pos += 1

            query, pos = self._parse_primary(text, tokens, pos, field)

            if conj == "OR":
                prev = clauses[-1]
                if not prev[2]:
                    prev[0] = Occur.SHOULD
                if not explicit:
                    occur = Occur.SHOULD
            elif conj == "AND":
                prev = clauses[-1]
                if not prev[2]:
                    prev[0] = Occur.MUST
            clauses.append([occur, query, explicit])

        if not clauses:
            where = "group" if nested else "query"
            raise QuerySyntaxError(f"Cannot parse '{text}': empty {where}")

        if len(clauses) == 1 and clauses[0][0] != Occur.MUST_NOT:
            return clauses[0][1], pos
        return BooleanQuery(tuple(BooleanClause(q, occ) for occ, q, _ in clauses)), pos

    def _parse_primary(self, text: str, tokens: list[_Token], pos: int, field: str) -> tuple[Query, int]:
        if pos < len(tokens) and tokens[pos].kind == "field":
            field = tokens[pos].value
            pos += 1
        if pos >= len(tokens):
            raise QuerySyntaxError(f"Cannot parse '{text}': unexpected end of query")

        tok = tokens[pos]
        if tok.kind == "phrase":
            return PhraseQuery(field, tok.value), pos + 1
        if tok.kind == "range":
            lower, upper, inclusive = tok.extra
            return RangeQuery(field, lower, upper, inclusive), pos + 1
        if tok.kind == "word":
            word = tok.value
            if word.endswith("*") and len(word) > 1 and not tok.extra[0]:
                return PrefixQuery(field, word[:-1]), pos + 1
            return TermQuery(field, word), pos + 1
        if tok.kind == "lparen":
            query, pos = self._parse_clauses(text, tokens, pos + 1, field, nested=True)
            if pos >= len(tokens) or tokens[pos].kind != "rparen":
                raise QuerySyntaxError(f"Cannot parse '{text}': missing ')'")
            return query, pos + 1
        raise QuerySyntaxError(f"Cannot parse '{text}': unexpected '{tok.value or tok.kind}'")


def parse_query(text: str, default_field: str = DEFAULT_FIELD) -> Query:
    return QueryParser(default_field).parse(text)
