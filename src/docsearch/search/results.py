from __future__ import annotations

import logging
import time
import zlib
from dataclasses import dataclass
from typing import Optional

from ..config import IndexConfig, SearchConfigHolder
from ..errors import FieldDecodeError
from ..request import PageRequest, RequestSearchContext
from .access import add_access_control_to_query, get_user_groups, rewrite_to_external
from .engine import IndexSearcherManager
from .models import SearchHit, StoredDocument
from .parser import QueryParser
from .query_builder import get_search_query
from .resolver import get_index_configs_with_parent

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 25
# Upper bound for fromresult and maxresults.
MAX_PAGE_VALUE = 10_000


def _int_param(request: PageRequest, name: str, default: int) -> int:
    value = request.get_parameter(name)
    if value is None:
        return default
    try:
        number = int(value.strip())
    except ValueError:
        return default
    if number < 0:
        return default
    return min(number, MAX_PAGE_VALUE)


@dataclass(frozen=True)
class SearchResults:
    query: str
    total_hits: int
    hits: list[SearchHit]
    from_result: int
    max_results: int
    search_time_ms: int

    @property
    def hit_count(self) -> int:
        return len(self.hits)


def run_search(
    index_configs: list[IndexConfig],
    request: PageRequest,
    query_text: str,
    *,
    from_result: int = 0,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> SearchResults:
    """Search every index, restricting each by its access controller, and merge by score."""
    start = time.monotonic()
    if not query_text:
        return SearchResults(query_text, 0, [], from_result, max_results, 0)

    base_query = QueryParser().parse(query_text)
    # Enough hits from every index to fill the requested page after merging.
    per_index_limit = from_result + max_results

    total = 0
    merged: list[tuple[float, int, SearchHit]] = []
    for position, index in enumerate(index_configs):
        query = base_query
        if index.access_controller is not None:
            query = add_access_control_to_query(query, get_user_groups(index, request))

        manager = IndexSearcherManager.get_instance(index.directory)
        with manager.searcher() as searcher:
            top = searcher.search(query, limit=per_index_limit)

        total += top.total_hits
        for sd in top.score_docs:
            hit = SearchHit(
                score=sd.score,
                index_name=index.name,
                url=rewrite_to_external(index, sd.document.url),
                title=sd.document.title,
                document=sd.document,
                use_file_to_http_bridge=index.use_file_to_http_bridge,
                open_in_new_window=index.open_in_new_window,
            )
            merged.append((sd.score, position, hit))

    # score DESC, then index order, then url
    merged.sort(key=lambda t: (-t[0], t[1], t[2].url))
    page = [hit for _, _, hit in merged[from_result : from_result + max_results]]

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug(f"Search '{query_text}' on {[c.name for c in index_configs]}: {total} hit(s) in {elapsed_ms} ms")
    return SearchResults(query_text, total, page, from_result, max_results, elapsed_ms)


def get_search_results(
    ctx: RequestSearchContext,
    request: PageRequest,
    *,
    holder: Optional[SearchConfigHolder] = None,
) -> SearchResults:
    """Search once per request; later calls return the same results."""
    if ctx.results is None:
        index_configs = get_index_configs_with_parent(ctx, request, holder=holder)
        ctx.results = run_search(
            index_configs,
            request,
            get_search_query(ctx, request),
            from_result=_int_param(request, "fromresult", 0),
            max_results=_int_param(request, "maxresults", DEFAULT_MAX_RESULTS),
        )
    return ctx.results


def get_compressed_field_value(document: StoredDocument, field_name: str) -> str:
    """Return the text of a zlib-compressed stored field ("" if absent)."""
    compressed = document.get_binary_value(field_name)
    if compressed is None:
        return ""
    try:
        return zlib.decompress(compressed).decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as exc:
        raise FieldDecodeError("Couldn't uncompress field value.") from exc
