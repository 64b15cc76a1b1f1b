"""Exceptions raised by docsearch.

Every failure is local to the request that triggered it: callers either let
the exception propagate to the front end or report it to the user.
"""


class DocSearchError(Exception):
    """Base class for all request-level failures."""


class ConfigurationError(DocSearchError):
    """Unknown index, missing defaults or an invalid search configuration."""


class QuerySyntaxError(DocSearchError):
    """A query string could not be parsed or executed by the index engine."""


class SearchIOError(DocSearchError):
    """Searching an index or sending a file failed."""


class FieldDecodeError(DocSearchError):
    """A stored field value could not be decoded."""


class FileBridgeError(DocSearchError):
    """A file-bridge request path does not name a bridged file."""
