"""A resource listing endpoint that fills in default query parameters."""

from __future__ import annotations

import argparse
import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Union
from urllib.parse import parse_qs, urlsplit

RESOURCE_PATH = "/api/resource"
DEFAULT_LIMIT = 10
DEFAULT_FILTER = "all"

_INTEGER = re.compile(r"[+-]?[0-9]+\Z")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1

_log = logging.getLogger(__name__)

QueryValue = Union[str, Sequence[str]]


@dataclass
class ResourceQuery:
    """Paging and filtering parameters of a resource listing."""

    limit: int = 0
    offset: int = 0
    filter: str = ""

    def validate(self) -> None:
        """Replace missing or out-of-range values with their defaults."""
        if self.limit <= 0:
            self.limit = DEFAULT_LIMIT
        if self.offset < 0:
            self.offset = 0
        if self.filter == "":
            self.filter = DEFAULT_FILTER


def _first(value: QueryValue) -> str:
    if isinstance(value, str):
        return value
    return next(iter(value), "")


def _parse_int(text: str) -> int:
    if text == "":
        return 0
    if not _INTEGER.match(text):
        raise ValueError(f'strconv.ParseInt: parsing "{text}": invalid syntax')
    number = int(text)
    if not _INT_MIN <= number <= _INT_MAX:
        raise ValueError(f'strconv.ParseInt: parsing "{text}": value out of range')
    return number


def parse_query(params: Mapping[str, QueryValue]) -> ResourceQuery:
    """Bind query parameters to a ResourceQuery; raises ValueError on bad integers."""
    query = ResourceQuery()
    if "limit" in params:
        query.limit = _parse_int(_first(params["limit"]))
    if "offset" in params:
        query.offset = _parse_int(_first(params["offset"]))
    if "filter" in params:
        query.filter = _first(params["filter"])
    return query


def handle_resource(params: Mapping[str, QueryValue]) -> tuple[int, dict[str, Any]]:
    """Answer a resource listing request with ``(status, json_body)``."""
    try:
        query = parse_query(params)
    except ValueError as exc:
        return HTTPStatus.BAD_REQUEST, {"error": str(exc)}
    query.validate()
    return HTTPStatus.OK, asdict(query)


def make_server(host: str = "", port: int = 8080) -> ThreadingHTTPServer:
    """Build an HTTP server that serves the resource endpoint."""

    class _Handler(BaseHTTPRequestHandler):
        def _reply(self, status: int, content_type: str, payload: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def _not_found(self) -> None:
            self._reply(404, "text/plain", b"404 page not found")

        def do_GET(self) -> None:
            parts = urlsplit(self.path)
            if parts.path != RESOURCE_PATH:
                self._not_found()
                return
            status, body = handle_resource(parse_qs(parts.query, keep_blank_values=True))
            payload = json.dumps(body, sort_keys=True, separators=(",", ":")).encode()
            self._reply(int(status), "application/json; charset=utf-8", payload)

        do_POST = do_PUT = do_DELETE = do_PATCH = _not_found

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

    return ThreadingHTTPServer((host, port), _Handler)


def main(argv: list[str] | None = None) -> int:
    """Serve the resource endpoint on port 8080."""
    parser = argparse.ArgumentParser(
        prog="k8sdemo-pagination",
        description="Serve GET /api/resource with defaulted paging parameters.",
    )
    parser.parse_args(argv)
    server = make_server("", 8080)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())