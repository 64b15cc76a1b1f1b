from __future__ import annotations

import logging
from typing import Optional

from ..config import IndexConfig, SearchConfig, SearchConfigHolder, search_config_holder
from ..errors import ConfigurationError
from ..request import PageRequest, RequestSearchContext

logger = logging.getLogger(__name__)


def load_configuration(request: PageRequest, *, holder: Optional[SearchConfigHolder] = None) -> SearchConfig:
    return (holder or search_config_holder).get(request)


def _requested_index_names(request: PageRequest, config: SearchConfig) -> list[str]:
    names = request.get_parameters("index")
    if names is None:
        # No index given: fall back to the configured defaults.
        names = config.get_default_index_names()
        if names is None:
            raise ConfigurationError("Request parameter 'index' not specified and no default index configured")
    return names


def _lookup(config: SearchConfig, name: str) -> IndexConfig:
    index = config.get_index_config(name)
    if index is None:
        raise ConfigurationError(f"The configuration does not contain the index '{name}'")
    return index


def get_index_configs(
    ctx: RequestSearchContext,
    request: PageRequest,
    *,
    holder: Optional[SearchConfigHolder] = None,
) -> list[IndexConfig]:
    """Return the configurations of exactly the indexes named by the request."""
    if ctx.index_configs is None:
        config = load_configuration(request, holder=holder)
        names = _requested_index_names(request, config)
        ctx.index_configs = [_lookup(config, name) for name in names]
        logger.debug(f"Resolved indexes: {[c.name for c in ctx.index_configs]}")
    return ctx.index_configs


def get_index_configs_with_parent(
    ctx: RequestSearchContext,
    request: PageRequest,
    *,
    holder: Optional[SearchConfigHolder] = None,
) -> list[IndexConfig]:
    """Like get_index_configs(), but a parent index expands to its children.

    Children are returned in configuration order. The result shares the
    context slot with get_index_configs(): the first resolution in a request
    is the one every later call sees.
    """
    if ctx.index_configs is None:
        config = load_configuration(request, holder=holder)
        names = _requested_index_names(request, config)

        resolved: list[IndexConfig] = []
        for name in names:
            index = _lookup(config, name)
            if index.is_parent:
                for candidate_name in config.get_all_index_names():
                    candidate = config.get_index_config(candidate_name)
                    if candidate is not None and candidate.has_parent() and candidate.parent_name == name:
                        resolved.append(candidate)
            else:
                resolved.append(index)

        ctx.index_configs = resolved
        logger.debug(f"Resolved indexes (parents expanded): {[c.name for c in resolved]}")
    return ctx.index_configs


def get_all_index_configs(
    request: PageRequest,
    *,
    holder: Optional[SearchConfigHolder] = None,
) -> list[IndexConfig]:
    """Return every configured index in configuration order."""
    config = load_configuration(request, holder=holder)
    names = config.get_all_index_names()
    if not names:
        raise ConfigurationError("There are no indexes defined in the search configuration")
    return [_lookup(config, name) for name in names]
