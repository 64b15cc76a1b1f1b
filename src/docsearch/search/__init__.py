"""Index resolution, query composition and access-controlled searching."""

from .access import add_access_control_to_query, allow_file_access
from .query_builder import get_search_query
from .resolver import get_all_index_configs, get_index_configs, get_index_configs_with_parent
from .results import SearchResults, get_compressed_field_value, get_search_results

__all__ = [
    "add_access_control_to_query",
    "allow_file_access",
    "get_all_index_configs",
    "get_compressed_field_value",
    "get_index_configs",
    "get_index_configs_with_parent",
    "get_search_query",
    "get_search_results",
    "SearchResults",
]
