from __future__ import annotations

from typing import Optional
from urllib.parse import unquote

from .codec import FILE_URL_PREFIX, encode_file_url


def hit_href(url: str, use_file_to_http_bridge: bool, encoding: str = "utf-8") -> str:
    """Return the link target for a search hit.

    File URLs of indexes using the bridge point at the bridge path. Any other
    URL is decoded and its "%" signs re-escaped, so that browsers do not turn
    a literal "%20" in a file name into a space.
    """
    if url.startswith(FILE_URL_PREFIX) and use_file_to_http_bridge:
        return encode_file_url(url, encoding)
    return unquote(url).replace("%", "%25")


def link_title(title: Optional[str], url: str) -> str:
    """Return the hit title, or the last URL segment when the title is blank."""
    title = (title or "").strip()
    if title:
        return title
    last_slash = url.rfind("/")
    if last_slash == -1:
        return url
    return unquote(url[last_slash + 1:])
