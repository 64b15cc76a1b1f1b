"""Threaded HTTP front end: JSON search endpoint and the file-to-HTTP bridge.

    GET /search?query=...&index=...&field.<name>=...   -> JSON hits
    GET .../file/<encoded file URL>?index=...          -> the file itself
"""

from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import BinaryIO, Optional
from urllib.parse import parse_qsl, urlsplit

from ..bridge.codec import FILE_MARKER, extract_file_url, url_to_file_name
from ..bridge.delivery import send_file
from ..bridge.links import hit_href, link_title
from ..config import SearchConfigHolder, ServerSettings, search_config_holder
from ..errors import ConfigurationError, DocSearchError, FileBridgeError, QuerySyntaxError
from ..request import PageRequest, PageResponse, RequestSearchContext
from ..search.access import allow_file_access
from ..search.db import FIELD_SUMMARY
from ..search.results import get_compressed_field_value, get_search_results

logger = logging.getLogger(__name__)


def render_error(error: BaseException) -> str:
    """Describe an error and the chain of errors that caused it."""
    lines = [f"Error: {error}"]
    cause = error.__cause__
    while cause is not None:
        lines.append(f"Caused by: {type(cause).__name__}: {cause}")
        cause = cause.__cause__
    return "\n".join(lines)


def _status_for(error: DocSearchError) -> int:
    if isinstance(error, (ConfigurationError, QuerySyntaxError)):
        return 400
    if isinstance(error, FileBridgeError):
        return 404
    return 500


class HttpPageRequest(PageRequest):
    def __init__(self, handler: BaseHTTPRequestHandler, init_params: dict[str, str], encoding: str):
        parts = urlsplit(handler.path)
        self.path = parts.path
        self._params = parse_qsl(parts.query, keep_blank_values=True, encoding=encoding)
        self._headers = handler.headers
        self._init_params = init_params

    def get_parameter_names(self) -> list[str]:
        names: list[str] = []
        for name, _ in self._params:
            if name not in names:
                names.append(name)
        return names

    def get_parameters(self, name: str) -> Optional[list[str]]:
        values = [v for n, v in self._params if n == name]
        return values or None

    def get_header(self, name: str) -> Optional[str]:
        return self._headers.get(name)

    def get_init_parameter(self, name: str) -> Optional[str]:
        return self._init_params.get(name)


class _ResponseStream:
    """Body stream whose close() flushes without closing the connection."""

    def __init__(self, wfile: BinaryIO):
        self._wfile = wfile

    def write(self, data: bytes) -> int:
        return self._wfile.write(data)

    def close(self) -> None:
        self._wfile.flush()


class HttpPageResponse(PageResponse):
    def __init__(self, handler: BaseHTTPRequestHandler, encoding: str):
        self.encoding = encoding
        self._handler = handler
        self._headers: dict[str, str] = {}
        self.started = False

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def send_error(self, status: int) -> None:
        self.started = True
        self._handler.send_response(status)
        self._handler.send_header("Content-Length", "0")
        self._handler.end_headers()

    def get_output_stream(self) -> BinaryIO:
        if not self.started:
            self.started = True
            self._handler.send_response(200)
            for name, value in self._headers.items():
                self._handler.send_header(name, value)
            self._handler.end_headers()
        return _ResponseStream(self._handler.wfile)

    def send_body(self, status: int, body: bytes, content_type: str) -> None:
        self.started = True
        self._handler.send_response(status)
        self._handler.send_header("Content-Type", content_type)
        self._handler.send_header("Content-Length", str(len(body)))
        self._handler.end_headers()
        self._handler.wfile.write(body)


class DocSearchHandler(BaseHTTPRequestHandler):
    settings: ServerSettings = ServerSettings()
    holder: SearchConfigHolder = search_config_holder

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        encoding = self.settings.encoding
        request = HttpPageRequest(self, self.settings.init_params(), encoding)
        response = HttpPageResponse(self, encoding)
        ctx = RequestSearchContext()

        try:
            if request.path.rstrip("/") == "/search":
                self._handle_search(ctx, request, response)
            elif FILE_MARKER in request.path:
                self._handle_file(ctx, request, response)
            else:
                self._send_text(response, 404, "Not found")
        except DocSearchError as exc:
            logger.warning(f"Request {self.path} failed: {exc}")
            if response.started:
                return
            self._send_text(response, _status_for(exc), render_error(exc))

    def _send_text(self, response: HttpPageResponse, status: int, text: str) -> None:
        response.send_body(status, text.encode(response.encoding), f"text/plain; charset={response.encoding}")

    def _handle_search(self, ctx: RequestSearchContext, request: PageRequest, response: HttpPageResponse) -> None:
        results = get_search_results(ctx, request, holder=self.holder)
        payload = {
            "query": results.query,
            "total_hits": results.total_hits,
            "from_result": results.from_result,
            "search_time_ms": results.search_time_ms,
            "hits": [
                {
                    "index": hit.index_name,
                    "score": hit.score,
                    "url": hit.url,
                    "href": hit_href(hit.url, hit.use_file_to_http_bridge, response.encoding),
                    "title": link_title(hit.title, hit.url),
                    "summary": get_compressed_field_value(hit.document, FIELD_SUMMARY),
                    "open_in_new_window": hit.open_in_new_window,
                }
                for hit in results.hits
            ],
        }
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        response.send_body(200, body, "application/json; charset=utf-8")

    def _handle_file(self, ctx: RequestSearchContext, request: HttpPageRequest, response: HttpPageResponse) -> None:
        file_url = extract_file_url(request.path, response.encoding)
        if not allow_file_access(ctx, request, file_url, holder=self.holder):
            self._send_text(response, 403, f"Access to {file_url} is not allowed")
            return

        path = Path(url_to_file_name(file_url))
        if not path.is_file():
            self._send_text(response, 404, f"File not found: {path}")
            return
        send_file(request, response, path)


def make_server(settings: ServerSettings, *, holder: Optional[SearchConfigHolder] = None) -> ThreadingHTTPServer:
    """Create (but do not start) a server; one worker thread per request."""
    handler = type(
        "ConfiguredDocSearchHandler",
        (DocSearchHandler,),
        {"settings": settings, "holder": holder or search_config_holder},
    )
    return ThreadingHTTPServer((settings.host, settings.port), handler)


def serve(settings: ServerSettings) -> None:
    server = make_server(settings)
    host, port = server.server_address[:2]
    logger.info(f"docsearch listening on http://{host}:{port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
