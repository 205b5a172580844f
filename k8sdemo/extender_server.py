"""HTTP routing and server for the scheduler extender."""

from __future__ import annotations

import argparse
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import urlsplit

from k8sdemo.extender import Bind, Predicate, Preemption, Prioritize

VERSION_PATH = "/version"
API_PREFIX = "/scheduler"
BIND_PATH = API_PREFIX + "/bind"
PREEMPTION_PATH = API_PREFIX + "/preemption"
PREDICATES_PREFIX = API_PREFIX + "/predicates"
PRIORITIES_PREFIX = API_PREFIX + "/priorities"

# Set at packaging time; empty for development builds.
VERSION = ""

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "ALERT": logging.CRITICAL,
}

NO_BIND_MESSAGE = (
    "This extender doesn't support Bind.  "
    "Please make 'BindVerb' be empty in your ExtenderConfig."
)

_log = logging.getLogger(__name__)

_JSON = {"Content-Type": "application/json"}
_TEXT = {"Content-Type": "text/plain; charset=utf-8"}

Response = tuple[int, dict[str, str], bytes]


def _zero_score(pod: Any, nodes: list[Any]) -> list[dict[str, Any]]:
    return [
        {"Host": (node.get("metadata") or {}).get("name", ""), "Score": 0}
        for node in nodes
    ]


def _no_bind(pod_name: str, pod_namespace: str, pod_uid: str, node: str) -> None:
    raise RuntimeError(NO_BIND_MESSAGE)


TRUE_PREDICATE = Predicate(name="always_true", func=lambda pod, node: True)
ZERO_PRIORITY = Prioritize(name="zero_score", func=_zero_score)
NO_BIND = Bind(func=_no_bind)
ECHO_PREEMPTION = Preemption(func=lambda pod, victims, meta_victims: meta_victims)


def string_to_level(level_str: str) -> int:
    """Map a level name to a logging level, falling back to INFO."""
    level = (level_str or "").upper()
    if level in _LEVELS:
        return _LEVELS[level]
    _log.warning('LOG_LEVEL="%s" is empty or invalid, falling back to "INFO".', level)
    return logging.INFO


def _decode(body: bytes) -> dict[str, Any]:
    """Decode the first JSON value of ``body`` into an object."""
    text = body.decode("utf-8").lstrip()
    if not text:
        raise ValueError("EOF")
    value, _ = json.JSONDecoder().raw_decode(text)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"json: cannot unmarshal {type(value).__name__} into an object")
    return value


def _encode(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


class ExtenderRouter:
    """Routes extender requests to predicates, priorities, bind and preemption."""

    def __init__(self, version: str = VERSION) -> None:
        self.version = version
        self._routes: dict[tuple[str, str], Callable[[bytes], Response]] = {}

    def add_version(self) -> None:
        """Serve the build version at GET /version."""
        self._routes[("GET", VERSION_PATH)] = lambda body: (
            200,
            dict(_TEXT),
            str(self.version).encode("utf-8"),
        )

    def add_predicate(self, predicate: Predicate) -> None:
        """Serve ``predicate`` under the predicates prefix."""
        path = f"{PREDICATES_PREFIX}/{predicate.name}"

        def handle(body: bytes) -> Response:
            _log.info("%s ExtenderArgs = %s", predicate.name, body.decode("utf-8", "replace"))
            try:
                args = _decode(body)
            except ValueError as exc:
                result: dict[str, Any] = {
                    "Nodes": None,
                    "NodeNames": None,
                    "FailedNodes": None,
                    "Error": str(exc),
                }
            else:
                result = predicate.handler(args)
            payload = _encode(result)
            _log.info("%s extenderFilterResult = %s", predicate.name, payload.decode())
            return 200, dict(_JSON), payload

        self._routes[("POST", path)] = handle

    def add_prioritize(self, prioritize: Prioritize) -> None:
        """Serve ``prioritize`` under the priorities prefix."""
        path = f"{PRIORITIES_PREFIX}/{prioritize.name}"

        def handle(body: bytes) -> Response:
            _log.info("%s ExtenderArgs = %s", prioritize.name, body.decode("utf-8", "replace"))
            priorities = prioritize.handler(_decode(body))
            payload = _encode(priorities)
            _log.info("%s hostPriorityList = %s", prioritize.name, payload.decode())
            return 200, dict(_JSON), payload

        self._routes[("POST", path)] = handle

    def add_bind(self, bind: Bind) -> None:
        """Serve ``bind`` at the bind path; a second registration is ignored."""
        if ("POST", BIND_PATH) in self._routes:
            _log.warning("AddBind was called more then once!")
            return

        def handle(body: bytes) -> Response:
            _log.info("extenderBindingArgs = %s", body.decode("utf-8", "replace"))
            try:
                args = _decode(body)
            except ValueError as exc:
                result = {"Error": str(exc)}
            else:
                result = bind.handler(args)
            payload = _encode(result)
            _log.info("extenderBindingResult = %s", payload.decode())
            return 200, dict(_JSON), payload

        self._routes[("POST", BIND_PATH)] = handle

    def add_preemption(self, preemption: Preemption) -> None:
        """Serve ``preemption`` at the preemption path; a second registration is ignored."""
        if ("POST", PREEMPTION_PATH) in self._routes:
            _log.warning("AddPreemption was called more then once!")
            return

        def handle(body: bytes) -> Response:
            _log.info("extenderPreemptionArgs = %s", body.decode("utf-8", "replace"))
            try:
                args = _decode(body)
            except ValueError:
                return 400, dict(_JSON), b"null"
            payload = _encode(preemption.handler(args))
            _log.info("extenderPreemptionResult = %s", payload.decode())
            return 200, dict(_JSON), payload

        self._routes[("POST", PREEMPTION_PATH)] = handle

    def dispatch(self, method: str, path: str, body: bytes | None) -> Response:
        """Handle one request and return ``(status, headers, body)``."""
        handler = self._routes.get((method, path))
        if handler is None:
            allowed = sorted(m for (m, p) in self._routes if p == path)
            if allowed:
                headers = dict(_TEXT, Allow=", ".join(allowed))
                return 405, headers, b"Method Not Allowed\n"
            return 404, dict(_TEXT), b"404 page not found\n"
        if method == "POST" and body is None:
            return 400, dict(_TEXT), b"Please send a request body\n"
        _log.debug("%s request body = %r", path, body)
        response = handler(body or b"")
        _log.debug("%s response status = %s", path, response[0])
        return response


def make_server(router: ExtenderRouter, host: str = "", port: int = 80) -> ThreadingHTTPServer:
    """Build an HTTP server that answers with ``router``."""

    class _Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            path = urlsplit(self.path).path
            try:
                status, headers, payload = router.dispatch(self.command, path, body)
            except Exception:
                _log.exception("request to %s failed", path)
                status, headers, payload = 500, dict(_TEXT), b"Internal Server Error\n"
            self.send_response(status)
            for name, value in headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _handle

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

    return ThreadingHTTPServer((host, port), _Handler)


def main(argv: list[str] | None = None) -> int:
    """Run the example scheduler extender on port 80."""
    parser = argparse.ArgumentParser(
        prog="k8sdemo-extender",
        description="Example scheduler extender. Log level is taken from LOG_LEVEL.",
    )
    parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(filename)s:%(lineno)d %(levelname)s %(message)s",
        level=logging.INFO,
    )
    level = string_to_level(os.environ.get("LOG_LEVEL", ""))
    _log.info("Log level was set to %s", logging.getLevelName(level).upper())
    logging.getLogger().setLevel(level)

    router = ExtenderRouter(version=VERSION)
    router.add_version()
    for predicate in (TRUE_PREDICATE,):
        router.add_predicate(predicate)
    for priority in (ZERO_PRIORITY,):
        router.add_prioritize(priority)
    router.add_bind(NO_BIND)

    _log.info("server starting on the port :80")
    try:
        server = make_server(router, "", 80)
    except OSError as exc:
        _log.critical("%s", exc)
        return 1
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())