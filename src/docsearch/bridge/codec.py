"""Encoding of file:// URLs into paths served by the file-to-HTTP bridge.

Some HTTP servers and proxies merge two adjacent slashes into one, even when
one of them is percent-encoded. File URLs are full of doubled slashes
("file:///srv", "//server/share"), so before percent-encoding every "//" is
written as "/$/$" and every "$" as "$$":

    "a//b"  -> "a/$/$b"
    "a///b" -> "a/$/$/b"
    "a$b"   -> "a$$b"
    "a$/$b" -> "a$$/$$b"

The escaped path never contains "//", so nothing can be merged on the way.
"""

from __future__ import annotations

import re
from urllib.parse import quote_plus, unquote_plus

from ..errors import FileBridgeError

FILE_MARKER = "file/"
FILE_URL_PREFIX = "file://"

_ESCAPE_RE = re.compile(r"//|\$")
_ESCAPES = {"//": "/$/$", "$": "$$"}
# "$/$" must win over "$$" at the same position.
_UNESCAPE_RE = re.compile(r"\$/\$|\$\$")
_UNESCAPES = {"$/$": "/", "$$": "$"}


def url_to_file_name(url: str) -> str:
    if not url.startswith(FILE_URL_PREFIX):
        raise FileBridgeError(f"Not a file URL: {url}")
    return url[len(FILE_URL_PREFIX):].replace("%20", " ")


def file_name_to_url(file_name: str) -> str:
    return FILE_URL_PREFIX + file_name.replace(" ", "%20")


def encode_file_url(url: str, encoding: str = "utf-8") -> str:
    """Return the bridge path ("file/...") for a file:// URL."""
    file_name = url_to_file_name(url)
    escaped = _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], FILE_MARKER + file_name)
    href = quote_plus(escaped, safe="", encoding=encoding)
    # Readability only; the escaping above is what keeps slashes apart.
    return href.replace("%2F", "/")


def extract_file_url(request_path: str, encoding: str = "utf-8") -> str:
    """Recover the file:// URL from a request path produced by encode_file_url()."""
    decoded = unquote_plus(request_path, encoding=encoding)
    pos = decoded.find(FILE_MARKER)
    if pos == -1:
        raise FileBridgeError(f"Request path does not contain '{FILE_MARKER}': {request_path}")

    file_name = decoded[pos + len(FILE_MARKER):]
    file_name = _UNESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(0)], file_name)
    return file_name_to_url(file_name)
