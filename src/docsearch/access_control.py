"""Access controllers: who may see which documents.

An index may name a controller in its configuration. For every request the
controller reports the caller's groups; searches on that index are then
restricted to documents indexed with at least one of those groups.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from .request import PageRequest

DEFAULT_GROUPS_HEADER = "X-Docsearch-Groups"


class SearchAccessController(ABC):
    """Interface implemented by access controllers named in the config."""

    def init(self, params: dict[str, Any]) -> None:
        """Receive the controller's `access_controller_params` table."""
        pass

    @abstractmethod
    def get_user_groups(self, request: PageRequest) -> Optional[list[str]]:
        """Return the groups of the requesting user.

        None or an empty list means that no restriction is declared for the
        caller (every document of the index is visible).
        """
        pass


class HeaderGroupsAccessController(SearchAccessController):
    """Reads comma-separated groups from a header set by a trusted proxy."""

    def __init__(self):
        self.header = DEFAULT_GROUPS_HEADER

    def init(self, params: dict[str, Any]) -> None:
        header = params.get("header")
        if isinstance(header, str) and header.strip():
            self.header = header.strip()

    def get_user_groups(self, request: PageRequest) -> Optional[list[str]]:
        value = request.get_header(self.header)
        if value is None:
            return None
        return [g.strip() for g in value.split(",") if g.strip()]
