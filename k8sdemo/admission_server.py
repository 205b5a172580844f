"""HTTPS server for the validating and mutating admission webhook."""

from __future__ import annotations

import argparse
import logging
import signal
import ssl
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from k8sdemo.admission import MUTATE_PATH, VALIDATE_PATH, WebhookServer

DEFAULT_PORT = 443
DEFAULT_CERT_FILE = "/etc/webhook/certs/cert.pem"
DEFAULT_KEY_FILE = "/etc/webhook/certs/key.pem"

_ROUTES = frozenset({MUTATE_PATH, VALIDATE_PATH})

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerParameters:
    """Port and TLS files of the webhook server."""

    port: int = DEFAULT_PORT
    cert_file: str = DEFAULT_CERT_FILE
    key_file: str = DEFAULT_KEY_FILE


def parse_args(argv: list[str] | None = None) -> ServerParameters:
    """Read the server parameters from the command line."""
    parser = argparse.ArgumentParser(prog="k8sdemo-admission")
    parser.add_argument("-port", "--port", type=int, default=DEFAULT_PORT, help="Webhook server port.")
    parser.add_argument(
        "-tlsCertFile",
        "--tlsCertFile",
        dest="cert_file",
        default=DEFAULT_CERT_FILE,
        help="File containing the x509 Certificate for HTTPS.",
    )
    parser.add_argument(
        "-tlsKeyFile",
        "--tlsKeyFile",
        dest="key_file",
        default=DEFAULT_KEY_FILE,
        help="File containing the x509 private key to --tlsCertFile.",
    )
    args = parser.parse_args(argv)
    return ServerParameters(port=args.port, cert_file=args.cert_file, key_file=args.key_file)


def build_server(
    parameters: ServerParameters, webhook: WebhookServer | None = None
) -> ThreadingHTTPServer:
    """Build the server; it serves TLS whenever a certificate file is named."""
    webhook = webhook or WebhookServer()
    context = None
    if parameters.cert_file:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(parameters.cert_file, parameters.key_file or None)

    class _Handler(BaseHTTPRequestHandler):
        def _reply(self, status: int, content_type: str, payload: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def _handle(self) -> None:
            path = urlsplit(self.path).path
            if path not in _ROUTES:
                self._reply(404, "text/plain; charset=utf-8", b"404 page not found\n")
                return
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            content_type = self.headers.get("Content-Type") or ""
            self._reply(*webhook.serve(path, content_type, body))

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _handle

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

    server = ThreadingHTTPServer(("", parameters.port), _Handler)
    if context is not None:
        server.socket = context.wrap_socket(server.socket, server_side=True)
    return server


def main(argv: list[str] | None = None) -> int:
    """Serve the webhook until SIGINT or SIGTERM arrives."""
    logging.basicConfig(level=logging.INFO)
    parameters = parse_args(argv)
    try:
        server = build_server(parameters)
    except (OSError, ssl.SSLError) as exc:
        _log.error("Failed to load key pair: %s", exc)
        return 1

    def _serve() -> None:
        try:
            server.serve_forever()
        except Exception as exc:  # reported, as the server runs in the background
            _log.error("Failed to listen and serve webhook server: %s", exc)

    worker = threading.Thread(target=_serve, daemon=True)
    worker.start()
    _log.info("Server started")

    stop = threading.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: stop.set())
    while not stop.wait(0.5):
        pass

    _log.info("Got OS shutdown signal, shutting down webhook server gracefully...")
    server.shutdown()
    server.server_close()
    worker.join()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())