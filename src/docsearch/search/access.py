from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..access_control import SearchAccessController
from ..config import IndexConfig, SearchConfigHolder
from ..errors import ConfigurationError, QuerySyntaxError
from ..request import PageRequest, RequestSearchContext
from . import db as dbmod
from .engine import IndexSearcherManager
from .parser import QueryParser
from .query import Query, QueryFactory, default_query_factory
from .resolver import get_index_configs

logger = logging.getLogger(__name__)


def add_access_control_to_query(
    query: Query,
    groups: Optional[Sequence[str]],
    *,
    factory: QueryFactory = default_query_factory,
) -> Query:
    """Restrict a query to documents of at least one of the given groups.

    Without groups the query is not restricted at all: every document is
    visible. Controllers that want to deny everything to a caller must return
    a group that no document carries.
    """
    if not groups:
        if factory.is_boolean(query):
            return query
        return factory.wrap_must(query)

    group_query = factory.disjunction(factory.term(dbmod.FIELD_GROUPS, group) for group in groups)
    return factory.conjunction([query, group_query])


def check_group_names(controller: SearchAccessController, groups: Optional[Sequence[str]]) -> None:
    """Group names are matched as single tokens, so they must not contain whitespace."""
    if groups is None:
        return
    for group in groups:
        if not isinstance(group, str) or not group or any(ch.isspace() for ch in group):
            raise ConfigurationError(
                f"Access controller {type(controller).__name__} returned an illegal group name: {group!r}"
            )


def get_user_groups(index: IndexConfig, request: PageRequest) -> Optional[list[str]]:
    controller = index.access_controller
    if controller is None:
        return None
    groups = controller.get_user_groups(request)
    check_group_names(controller, groups)
    return list(groups) if groups is not None else None


def rewrite_to_external(index: IndexConfig, url: str) -> str:
    """Apply the first rewrite rule whose internal prefix matches."""
    for internal, external in index.rewrite_rules:
        if url.startswith(internal):
            return external + url[len(internal):]
    return url


def rewrite_to_internal(index: IndexConfig, url: str) -> str:
    """Undo rewrite_to_external(): map an external URL back to the indexed one."""
    for internal, external in index.rewrite_rules:
        if url.startswith(external):
            return internal + url[len(external):]
    return url


def _url_lookup_query(url: str) -> Query:
    escaped = url.replace("\\", "\\\\").replace('"', '\\"')
    try:
        return QueryParser(dbmod.FIELD_URL).parse(f'"{escaped}"')
    except QuerySyntaxError as exc:
        raise QuerySyntaxError("Parsing of url lookup-query failed.") from exc


def allow_file_access(
    ctx: RequestSearchContext,
    request: PageRequest,
    file_url: str,
    *,
    holder: Optional[SearchConfigHolder] = None,
) -> bool:
    """Decide whether a file may be delivered through the file bridge.

    Access is granted when one of the request's indexes contains the file and
    the caller passes that index's access control.
    """
    for index in get_index_configs(ctx, request, holder=holder):
        indexed_url = rewrite_to_internal(index, file_url)
        query = _url_lookup_query(indexed_url)

        if index.access_controller is not None:
            query = add_access_control_to_query(query, get_user_groups(index, request))

        manager = IndexSearcherManager.get_instance(index.directory)
        with manager.searcher() as searcher:
            hits = searcher.count(query)

        if hits > 0:
            logger.debug(f"File access granted by index '{index.name}': {file_url}")
            return True

    logger.warning(f"File access denied: {file_url}")
    return False
