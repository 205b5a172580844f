import base64
import json

import pytest

from k8sdemo.admission import (
    ADD_LABELS,
    ANNOTATION_MUTATE_KEY,
    ANNOTATION_STATUS_KEY,
    ANNOTATION_VALIDATE_KEY,
    IGNORED_NAMESPACES,
    NA,
    NAME_LABEL,
    REQUIRED_LABELS,
    PatchOperation,
    WebhookServer,
    admission_required,
    create_patch,
    mutation_required,
    update_annotation,
    update_labels,
    validation_required,
)


def _review(kind="Deployment", metadata=None, uid="uid-1", obj=...):
    request = {"uid": uid, "kind": {"group": "apps", "version": "v1", "kind": kind}}
    if obj is ...:
        obj = {"metadata": metadata if metadata is not None else {"name": "web", "namespace": "default"}}
    if obj is not None:
        request["object"] = obj
    return {"kind": "AdmissionReview", "apiVersion": "admission.k8s.io/v1", "request": request}


def _all_labels():
    return {label: "x" for label in REQUIRED_LABELS}


def test_patch_operation_to_dict_omits_none_value():
    assert PatchOperation("remove", "/a").to_dict() == {"op": "remove", "path": "/a"}
    assert PatchOperation("add", "/a", {"k": "v"}).to_dict() == {
        "op": "add",
        "path": "/a",
        "value": {"k": "v"},
    }


def test_admission_required_skips_ignored_namespaces():
    for namespace in IGNORED_NAMESPACES:
        meta = {"name": "x", "namespace": namespace}
        assert admission_required(IGNORED_NAMESPACES, ANNOTATION_VALIDATE_KEY, meta) is False


@pytest.mark.parametrize("value", ["n", "no", "false", "off", "NO", "Off"])
def test_admission_required_opt_out(value):
    meta = {"namespace": "default", "annotations": {ANNOTATION_VALIDATE_KEY: value}}
    assert admission_required(IGNORED_NAMESPACES, ANNOTATION_VALIDATE_KEY, meta) is False


@pytest.mark.parametrize("annotations", [None, {}, {ANNOTATION_VALIDATE_KEY: "yes"}])
def test_admission_required_default_true(annotations):
    meta = {"namespace": "default", "annotations": annotations}
    assert admission_required(IGNORED_NAMESPACES, ANNOTATION_VALIDATE_KEY, meta) is True


def test_mutation_required_respects_status():
    meta = {"namespace": "default", "annotations": {ANNOTATION_STATUS_KEY: "Mutated"}}
    assert mutation_required(IGNORED_NAMESPACES, meta) is False
    assert mutation_required(IGNORED_NAMESPACES, {"namespace": "default"}) is True
    opted_out = {"namespace": "default", "annotations": {ANNOTATION_MUTATE_KEY: "false"}}
    assert mutation_required(IGNORED_NAMESPACES, opted_out) is False


def test_validation_required_uses_validate_key():
    meta = {"namespace": "default", "annotations": {ANNOTATION_MUTATE_KEY: "no"}}
    assert validation_required(IGNORED_NAMESPACES, meta) is True
    meta = {"namespace": "default", "annotations": {ANNOTATION_VALIDATE_KEY: "no"}}
    assert validation_required(IGNORED_NAMESPACES, meta) is False


def test_update_annotation_adds_when_missing():
    ops = update_annotation(None, {"a": "1", "b": "2"})
    assert [op.op for op in ops] == ["add", "add"]
    assert ops[0].value == {"a": "1"}
    assert all(op.path == "/metadata/annotations" for op in ops)


def test_update_annotation_replaces_existing():
    ops = update_annotation({"a": "old"}, {"a": "new"})
    assert ops == [PatchOperation("replace", "/metadata/annotations/a", "new")]


def test_update_labels_only_missing():
    ops = update_labels({"a": "set", "b": ""}, {"a": "1", "b": "2", "c": "3"})
    assert ops == [PatchOperation("add", "/metadata/labels", {"b": "2", "c": "3"})]
    assert update_labels(None, {"a": "1"})[0].value == {"a": "1"}


def test_create_patch_is_json_list():
    doc = json.loads(create_patch(None, {"s": "mutated"}, {}, {"l": "v"}))
    assert doc == [
        {"op": "add", "path": "/metadata/annotations", "value": {"s": "mutated"}},
        {"op": "add", "path": "/metadata/labels", "value": {"l": "v"}},
    ]


def test_validate_allows_full_labels():
    review = _review(metadata={"name": "w", "namespace": "default", "labels": _all_labels()})
    assert WebhookServer().validate(review) == {"uid": "", "allowed": True}


def test_validate_denies_missing_labels():
    review = _review(kind="Service", metadata={"name": "s", "namespace": "default"})
    response = WebhookServer().validate(review)
    assert response["allowed"] is False
    assert response["status"]["reason"] == "required labels are not set"


def test_validate_skips_system_namespace():
    review = _review(metadata={"name": "s", "namespace": "kube-system"})
    assert WebhookServer().validate(review)["allowed"] is True


def test_validate_reports_undecodable_object():
    response = WebhookServer().validate(_review(obj=None))
    assert response["allowed"] is False
    assert response["status"]["message"] == "unexpected end of JSON input"


def test_validate_rejects_unsupported_kind():
    with pytest.raises(ValueError):
        WebhookServer().validate(_review(kind="Pod"))


def test_mutate_builds_patch():
    labels = {NAME_LABEL: "web"}
    review = _review(metadata={"name": "w", "namespace": "default", "labels": labels})
    response = WebhookServer().mutate(review)
    assert response["allowed"] is True
    assert response["patchType"] == "JSONPatch"
    patch = json.loads(base64.b64decode(response["patch"]))
    assert patch[0] == {
        "op": "add",
        "path": "/metadata/annotations",
        "value": {ANNOTATION_STATUS_KEY: "mutated"},
    }
    expected = {k: v for k, v in ADD_LABELS.items() if k != NAME_LABEL}
    assert patch[1]["value"] == expected
    assert set(patch[1]["value"].values()) == {NA}


def test_mutate_skips_already_mutated():
    meta = {"name": "w", "namespace": "default", "annotations": {ANNOTATION_STATUS_KEY: "mutated"}}
    assert WebhookServer().mutate(_review(metadata=meta)) == {"uid": "", "allowed": True}


def test_serve_empty_body():
    status, _, payload = WebhookServer().serve("/mutate", "application/json", b"")
    assert (status, payload) == (400, b"empty body\n")


def test_serve_wrong_content_type():
    status, _, payload = WebhookServer().serve("/mutate", "text/plain", b"{}")
    assert status == 415
    assert payload == b"invalid Content-Type, expect `application/json`\n"


def test_serve_invalid_json():
    status, content_type, payload = WebhookServer().serve("/validate", "application/json", b"{oops")
    assert status == 200
    result = json.loads(payload)
    assert result["kind"] == "AdmissionReview"
    assert result["response"]["allowed"] is False
    assert result["response"]["status"]["message"]


def test_serve_copies_uid():
    review = _review(uid="abc", metadata={"name": "w", "namespace": "default", "labels": _all_labels()})
    status, _, payload = WebhookServer().serve("/validate", "application/json", json.dumps(review).encode())
    result = json.loads(payload)
    assert status == 200
    assert result["apiVersion"] == "admission.k8s.io/v1"
    assert result["response"] == {"uid": "abc", "allowed": True}


def test_serve_unknown_path_has_no_response():
    body = json.dumps(_review()).encode()
    status, _, payload = WebhookServer().serve("/other", "application/json", body)
    assert status == 200
    assert "response" not in json.loads(payload)


def test_serve_missing_request_is_server_error():
    body = json.dumps({"kind": "AdmissionReview"}).encode()
    status, _, _ = WebhookServer().serve("/mutate", "application/json", body)
    assert status == 500