"""Page request/response abstractions and the per-request search context.

The HTTP transport lives outside the search core. Everything the core needs
from a request or a response goes through the two small interfaces below, so
the same code serves the threaded HTTP front end, the CLI and the tests.
"""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.utils import formatdate, parsedate_to_datetime
from typing import Any, BinaryIO, Optional
from urllib.parse import parse_qsl, urlsplit


@dataclass
class RequestSearchContext:
    """Values resolved once per request and shared by everything rendering it.

    A context is created empty when a request starts and dropped when it ends.
    It must never be shared between requests.
    """

    index_configs: Optional[list[Any]] = None
    query: Optional[str] = None
    results: Optional[Any] = None


class PageRequest(ABC):
    """Read-only view of an inbound request."""

    @abstractmethod
    def get_parameter_names(self) -> list[str]:
        """Return the distinct parameter names in the order they were supplied."""
        pass

    @abstractmethod
    def get_parameters(self, name: str) -> Optional[list[str]]:
        """Return all values of a parameter, or None if it was not supplied."""
        pass

    @abstractmethod
    def get_header(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_init_parameter(self, name: str) -> Optional[str]:
        """Return a deployment-level setting (config file, factory class, ...)."""
        pass

    def get_parameter(self, name: str) -> Optional[str]:
        values = self.get_parameters(name)
        if not values:
            return None
        return values[0]

    def get_parameters_not_null(self, name: str) -> list[str]:
        return self.get_parameters(name) or []

    def get_header_as_date(self, name: str) -> Optional[float]:
        """Parse an HTTP-date header into a POSIX timestamp.

        Returns None when the header is missing or malformed.
        """
        value = self.get_header(name)
        if not value:
            return None
        try:
            return parsedate_to_datetime(value).timestamp()
        except (TypeError, ValueError, IndexError):
            return None


class PageResponse(ABC):
    """Write side of a request."""

    encoding: str = "utf-8"

    @abstractmethod
    def set_header(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    def send_error(self, status: int) -> None:
        """Finish the response with the given status and no body."""
        pass

    @abstractmethod
    def get_output_stream(self) -> BinaryIO:
        """Return the body stream. Closing it finishes the response."""
        pass

    def set_header_as_date(self, name: str, timestamp: float) -> None:
        self.set_header(name, formatdate(timestamp, usegmt=True))


class SimplePageRequest(PageRequest):
    """In-memory request built from explicit parameters and headers."""

    def __init__(
        self,
        params: Optional[list[tuple[str, str]]] = None,
        *,
        headers: Optional[dict[str, str]] = None,
        init_params: Optional[dict[str, str]] = None,
        path: str = "/",
    ):
        self.params = list(params or [])
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.init_params = dict(init_params or {})
        self.path = path

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        init_params: Optional[dict[str, str]] = None,
        encoding: str = "utf-8",
    ) -> "SimplePageRequest":
        parts = urlsplit(url)
        params = parse_qsl(parts.query, keep_blank_values=True, encoding=encoding)
        return cls(params, headers=headers, init_params=init_params, path=parts.path)

    def get_parameter_names(self) -> list[str]:
        names: list[str] = []
        for name, _ in self.params:
            if name not in names:
                names.append(name)
        return names

    def get_parameters(self, name: str) -> Optional[list[str]]:
        values = [v for n, v in self.params if n == name]
        return values or None

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def get_init_parameter(self, name: str) -> Optional[str]:
        return self.init_params.get(name)


class _BodyBuffer(io.BytesIO):
    """BytesIO that keeps its contents readable after close()."""

    was_closed = False

    def close(self) -> None:
        self.was_closed = True


class BufferedPageResponse(PageResponse):
    """Response collected in memory (CLI and tests)."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self.status = 200
        self.headers: dict[str, str] = {}
        self._body = _BodyBuffer()

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def send_error(self, status: int) -> None:
        self.status = status

    def get_output_stream(self) -> BinaryIO:
        return self._body

    @property
    def body(self) -> bytes:
        return self._body.getvalue()

    @property
    def body_closed(self) -> bool:
        return self._body.was_closed
