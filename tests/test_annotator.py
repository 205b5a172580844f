import base64
import http.client
import json
import threading

import pytest

from k8sdemo.annotator import (
    MINER_TYPE,
    MINER_TYPE_ANNOTATION,
    AdmissionDecodeError,
    make_server,
    mutate_pod_review,
)


def _review(pod, uid="uid-1"):
    return json.dumps({"request": {"uid": uid, "object": pod}}).encode()


def _patch(response):
    return json.loads(base64.b64decode(response["response"]["patch"]))


def test_adds_annotation_to_pod_without_annotations():
    out = json.loads(mutate_pod_review(_review({"metadata": {"name": "p"}})))
    assert out["kind"] == "AdmissionReview"
    assert out["apiVersion"] == "admission.k8s.io/v1"
    assert out["response"]["uid"] == "uid-1"
    assert out["response"]["allowed"] is True
    assert out["response"]["patchType"] == "JSONPatch"
    assert _patch(out) == [
        {"op": "add", "path": "/metadata/annotations", "value": {MINER_TYPE_ANNOTATION: MINER_TYPE}}
    ]


def test_keeps_existing_annotations():
    pod = {"metadata": {"annotations": {"a": "b"}}}
    out = json.loads(mutate_pod_review(_review(pod)))
    value = _patch(out)[0]["value"]
    assert value == {"a": "b", "apps.onex.io/miner-type": "S1.SMALL1"}


@pytest.mark.parametrize(
    "body",
    [b"not json", b"[1, 2]", b"{}", json.dumps({"request": {"uid": "x"}}).encode()],
)
def test_bad_reviews_raise(body):
    with pytest.raises(AdmissionDecodeError):
        mutate_pod_review(body)


def test_tls_server_needs_certificate_files(tmp_path):
    with pytest.raises(OSError):
        make_server("127.0.0.1", 0, str(tmp_path / "none.crt"), str(tmp_path / "none.key"))


@pytest.fixture
def server():
    srv = make_server("127.0.0.1", 0)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()


def _post(srv, path, body):
    conn = http.client.HTTPConnection("127.0.0.1", srv.server_address[1], timeout=5)
    conn.request("POST", path, body=body, headers={"Content-Type": "application/json"})
    resp = conn.getresponse()
    data = resp.read()
    conn.close()
    return resp.status, data


def test_server_mutates(server):
    status, data = _post(server, "/mutate", _review({"metadata": {}}, uid="abc"))
    assert status == 200
    out = json.loads(data)
    assert out["response"]["uid"] == "abc"
    assert _patch(out)[0]["value"] == {MINER_TYPE_ANNOTATION: MINER_TYPE}


def test_server_reports_decode_error(server):
    status, _ = _post(server, "/mutate", b"garbage")
    assert status == 500


def test_server_unknown_path(server):
    status, _ = _post(server, "/other", b"{}")
    assert status == 404