"""Serving indexed local files over HTTP."""

from .codec import encode_file_url, extract_file_url
from .delivery import send_file
from .links import hit_href, link_title
from .mime import MIME_TYPES, mime_type_for

__all__ = [
    "encode_file_url",
    "extract_file_url",
    "hit_href",
    "link_title",
    "MIME_TYPES",
    "mime_type_for",
    "send_file",
]
