from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class StoredDocument:
    doc_id: int
    url: str
    title: str
    last_modified: Optional[int]
    size: Optional[int]
    # Binary stored fields, e.g. the zlib-compressed summary.
    binary_fields: dict[str, bytes] = field(default_factory=dict)

    def get_binary_value(self, name: str) -> Optional[bytes]:
        return self.binary_fields.get(name)


@dataclass(frozen=True)
class ScoredDoc:
    score: float
    document: StoredDocument


@dataclass(frozen=True)
class TopDocs:
    total_hits: int
    score_docs: list[ScoredDoc]


@dataclass(frozen=True)
class SearchHit:
    score: float
    index_name: str
    url: str  # after rewrite rules
    title: str
    document: StoredDocument
    use_file_to_http_bridge: bool
    open_in_new_window: bool
