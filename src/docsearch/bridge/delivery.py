from __future__ import annotations

import logging
import time
from pathlib import Path

from ..errors import SearchIOError
from ..request import PageRequest, PageResponse
from .mime import mime_type_for

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _close_quietly(stream, what: str) -> None:
    try:
        stream.close()
    except OSError as exc:
        logger.debug(f"Closing {what} failed: {exc}")


def send_file(request: PageRequest, response: PageResponse, path: Path) -> None:
    """Send a file, answering 304 when the client's copy is still current.

    Raises:
        SearchIOError: If the file cannot be read or the response written
    """
    try:
        # HTTP dates have a resolution of one second.
        last_modified = int(path.stat().st_mtime)
    except OSError as exc:
        raise SearchIOError(f"Sending file failed: {path.absolute()}") from exc

    if_modified_since = request.get_header_as_date("If-Modified-Since")
    if if_modified_since is not None and last_modified <= if_modified_since:
        logger.debug(f"Not modified: {path}")
        response.send_error(304)
        return

    response.set_header_as_date("Date", time.time())
    response.set_header_as_date("Last-Modified", last_modified)

    mime_type = mime_type_for(path.name)
    if mime_type is not None:
        response.set_header("Content-Type", mime_type)

    out = None
    src = None
    try:
        # Open first: getting the output stream may already commit the status.
        src = open(path, "rb")
        out = response.get_output_stream()
        while True:
            chunk = src.read(CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
    except OSError as exc:
        raise SearchIOError(f"Sending file failed: {path.absolute()}") from exc
    finally:
        if src is not None:
            _close_quietly(src, f"file {path}")
        if out is not None:
            _close_quietly(out, "response stream")
    logger.debug(f"Sent file {path} ({mime_type or 'no content type'})")
