"""Mutating admission webhook that tags every pod with a miner type."""

from __future__ import annotations

import argparse
import base64
import json
import logging
import ssl
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

MUTATE_PATH = "/mutate"
MINER_TYPE_ANNOTATION = "apps.onex.io/miner-type"
MINER_TYPE = "S1.SMALL1"

_log = logging.getLogger(__name__)


class AdmissionDecodeError(ValueError):
    """Raised when a request body is not a usable admission review."""


def _encode(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8")


def mutate_pod_review(body: bytes) -> bytes:
    """Answer an admission review of a pod with a patch adding the miner type."""
    try:
        review = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise AdmissionDecodeError(str(exc)) from exc
    if not isinstance(review, dict):
        raise AdmissionDecodeError("admission review must be a JSON object")
    request = review.get("request")
    if not isinstance(request, dict):
        raise AdmissionDecodeError("admission review carries no request")
    pod = request.get("object")
    if not isinstance(pod, dict):
        raise AdmissionDecodeError("unexpected end of JSON input")
    metadata = pod.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise AdmissionDecodeError("pod metadata must be a JSON object")

    annotations = dict(metadata.get("annotations") or {})
    annotations[MINER_TYPE_ANNOTATION] = MINER_TYPE
    patch = [{"op": "add", "path": "/metadata/annotations", "value": annotations}]

    response = {
        "kind": "AdmissionReview",
        "apiVersion": "admission.k8s.io/v1",
        "response": {
            "uid": request.get("uid") or "",
            "allowed": True,
            "patch": base64.b64encode(_encode(patch)).decode("ascii"),
            "patchType": "JSONPatch",
        },
    }
    _log.info(
        "[%s/%s] Resource change succeeded",
        metadata.get("namespace", ""),
        metadata.get("name", ""),
    )
    return json.dumps(response, separators=(",", ":")).encode("utf-8")


def make_server(
    host: str = "",
    port: int = 9999,
    cert_file: str | None = None,
    key_file: str | None = None,
) -> ThreadingHTTPServer:
    """Build the webhook server; TLS is used when a certificate is given."""
    context = None
    if cert_file:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(cert_file, key_file)

    class _Handler(BaseHTTPRequestHandler):
        def _reply(self, status: int, content_type: str, payload: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def _handle(self) -> None:
            if urlsplit(self.path).path != MUTATE_PATH:
                self._reply(404, "text/plain; charset=utf-8", b"404 page not found\n")
                return
            _log.info("Received a request sent by the kube-apiserver")
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            try:
                payload = mutate_pod_review(body)
            except AdmissionDecodeError as exc:
                self._reply(500, "text/plain; charset=utf-8", f"{exc}\n".encode("utf-8"))
                return
            self._reply(200, "application/json", payload)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _handle

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

    server = ThreadingHTTPServer((host, port), _Handler)
    if context is not None:
        server.socket = context.wrap_socket(server.socket, server_side=True)
    return server


def main(argv: list[str] | None = None) -> int:
    """Serve the mutating webhook over TLS on port 9999."""
    parser = argparse.ArgumentParser(
        prog="k8sdemo-annotator",
        description="Mutating admission webhook serving /mutate on :9999.",
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    print("Started mutating admission webhook server")
    try:
        server = make_server("", 9999, "cert/server.crt", "cert/server.key")
    except OSError as exc:
        print(exc, file=sys.stderr)
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