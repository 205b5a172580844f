"""Validating and mutating admission webhook for Deployments and Services.

Validation requires the recommended ``app.kubernetes.io`` labels. Mutation
marks the object as mutated and fills every missing recommended label with
``not_available``. Objects in the system namespaces, or whose annotations
switch the webhook off, are let through unchanged.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

ANNOTATION_VALIDATE_KEY = "admission-webhook-example.qikqiak.com/validate"
ANNOTATION_MUTATE_KEY = "admission-webhook-example.qikqiak.com/mutate"
ANNOTATION_STATUS_KEY = "admission-webhook-example.qikqiak.com/status"

NAME_LABEL = "app.kubernetes.io/name"
INSTANCE_LABEL = "app.kubernetes.io/instance"
VERSION_LABEL = "app.kubernetes.io/version"
COMPONENT_LABEL = "app.kubernetes.io/component"
PART_OF_LABEL = "app.kubernetes.io/part-of"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"

NA = "not_available"

IGNORED_NAMESPACES = ("kube-system", "kube-public")

REQUIRED_LABELS = (
    NAME_LABEL,
    INSTANCE_LABEL,
    VERSION_LABEL,
    COMPONENT_LABEL,
    PART_OF_LABEL,
    MANAGED_BY_LABEL,
)

ADD_LABELS = {label: NA for label in REQUIRED_LABELS}

MUTATE_PATH = "/mutate"
VALIDATE_PATH = "/validate"

_OPT_OUT_VALUES = frozenset({"n", "no", "false", "off"})
_SUPPORTED_KINDS = frozenset({"Deployment", "Service"})

_JSON = "application/json"
_TEXT = "text/plain; charset=utf-8"

_log = logging.getLogger(__name__)


class _ObjectDecodeError(ValueError):
    """The object carried by an admission request cannot be decoded."""


@dataclass(frozen=True)
class PatchOperation:
    """One JSON Patch operation."""

    op: str
    path: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; ``value`` is left out when it is None."""
        data: dict[str, Any] = {"op": self.op, "path": self.path}
        if self.value is not None:
            value = self.value
            if isinstance(value, Mapping):
                value = dict(sorted(value.items()))
            data["value"] = value
        return data


def _annotations(metadata: Mapping[str, Any]) -> Mapping[str, str]:
    return metadata.get("annotations") or {}


def admission_required(
    ignored_list: Sequence[str], annotation_key: str, metadata: Mapping[str, Any]
) -> bool:
    """Tell whether the webhook applies to an object with ``metadata``."""
    namespace = metadata.get("namespace") or ""
    name = metadata.get("name") or ""
    if namespace in ignored_list:
        _log.info("Skip validation for %s for it's in special namespace:%s", name, namespace)
        return False
    value = str(_annotations(metadata).get(annotation_key) or "")
    return value.lower() not in _OPT_OUT_VALUES


def mutation_required(ignored_list: Sequence[str], metadata: Mapping[str, Any]) -> bool:
    """Tell whether an object still needs mutating."""
    required = admission_required(ignored_list, ANNOTATION_MUTATE_KEY, metadata)
    status = str(_annotations(metadata).get(ANNOTATION_STATUS_KEY) or "")
    if status.lower() == "mutated":
        required = False
    _log.info(
        "Mutation policy for %s/%s: required:%s",
        metadata.get("namespace") or "",
        metadata.get("name") or "",
        required,
    )
    return required


def validation_required(ignored_list: Sequence[str], metadata: Mapping[str, Any]) -> bool:
    """Tell whether an object needs validating."""
    required = admission_required(ignored_list, ANNOTATION_VALIDATE_KEY, metadata)
    _log.info(
        "Validation policy for %s/%s: required:%s",
        metadata.get("namespace") or "",
        metadata.get("name") or "",
        required,
    )
    return required


def update_annotation(
    target: Mapping[str, str] | None, added: Mapping[str, str]
) -> list[PatchOperation]:
    """Build operations that set each annotation in ``added``.

    An annotation missing from ``target`` is written by adding a fresh
    annotations map; once that has happened every later one is added too.
    """
    patch: list[PatchOperation] = []
    for key, value in added.items():
        if target is None or not target.get(key):
            target = {}
            patch.append(PatchOperation("add", "/metadata/annotations", {key: value}))
        else:
            patch.append(PatchOperation("replace", f"/metadata/annotations/{key}", value))
    return patch


def update_labels(
    target: Mapping[str, str] | None, added: Mapping[str, str]
) -> list[PatchOperation]:
    """Build the operation that adds every label of ``added`` not yet set in ``target``."""
    values = {
        key: value
        for key, value in added.items()
        if target is None or not target.get(key)
    }
    return [PatchOperation("add", "/metadata/labels", values)]


def create_patch(
    available_annotations: Mapping[str, str] | None,
    annotations: Mapping[str, str],
    available_labels: Mapping[str, str] | None,
    labels: Mapping[str, str],
) -> bytes:
    """Return the JSON Patch document for the annotation and label updates."""
    patch = update_annotation(available_annotations, annotations)
    patch.extend(update_labels(available_labels, labels))
    return json.dumps([op.to_dict() for op in patch], separators=(",", ":")).encode("utf-8")


def _status(**fields: str) -> dict[str, Any]:
    status: dict[str, Any] = {"metadata": {}}
    status.update({key: value for key, value in fields.items() if value})
    return status


def _response(
    allowed: bool,
    status: dict[str, Any] | None = None,
    patch: bytes | None = None,
) -> dict[str, Any]:
    response: dict[str, Any] = {"uid": "", "allowed": allowed}
    if status is not None:
        response["status"] = status
    if patch is not None:
        response["patch"] = base64.b64encode(patch).decode("ascii")
        response["patchType"] = "JSONPatch"
    return response


def _failure(message: str) -> dict[str, Any]:
    return _response(False, _status(message=message))


def _decode_object(request: Mapping[str, Any]) -> tuple[Mapping[str, Any], Any]:
    """Return the metadata and labels of the object under admission."""
    obj = request.get("object")
    if obj is None:
        raise _ObjectDecodeError("unexpected end of JSON input")
    if not isinstance(obj, Mapping):
        raise _ObjectDecodeError(f"cannot unmarshal {type(obj).__name__} into an object")
    metadata = obj.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise _ObjectDecodeError("object metadata must be a JSON object")
    labels = metadata.get("labels")
    if labels is not None and not isinstance(labels, Mapping):
        raise _ObjectDecodeError("object labels must be a JSON object")
    return metadata, labels


class WebhookServer:
    """Answers admission reviews sent to /mutate and /validate."""

    def __init__(
        self,
        ignored_namespaces: Sequence[str] = IGNORED_NAMESPACES,
        required_labels: Sequence[str] = REQUIRED_LABELS,
        add_labels: Mapping[str, str] | None = None,
    ) -> None:
        self.ignored_namespaces = tuple(ignored_namespaces)
        self.required_labels = tuple(required_labels)
        self.add_labels = dict(ADD_LABELS if add_labels is None else add_labels)

    def _request(self, review: Mapping[str, Any]) -> Mapping[str, Any]:
        request = review.get("request")
        if not isinstance(request, Mapping):
            raise ValueError("admission review carries no request")
        kind_info = request.get("kind") or {}
        kind = kind_info.get("kind", "") if isinstance(kind_info, Mapping) else ""
        _log.info(
            "AdmissionReview for Kind=%s, Namespace=%s Name=%s UID=%s "
            "patchOperation=%s UserInfo=%s",
            kind_info,
            request.get("namespace", ""),
            request.get("name", ""),
            request.get("uid", ""),
            request.get("operation", ""),
            request.get("userInfo"),
        )
        if kind not in _SUPPORTED_KINDS:
            raise ValueError(f"unsupported kind {kind!r}")
        return request

    def validate(self, review: Mapping[str, Any]) -> dict[str, Any]:
        """Check that a Deployment or Service carries every required label."""
        request = self._request(review)
        try:
            metadata, labels = _decode_object(request)
        except _ObjectDecodeError as exc:
            _log.error("Could not unmarshal raw object: %s", exc)
            return _failure(str(exc))

        if not validation_required(self.ignored_namespaces, metadata):
            _log.info(
                "Skipping validation for %s/%s due to policy check",
                metadata.get("namespace") or "",
                metadata.get("name") or "",
            )
            return _response(True)

        available = labels or {}
        _log.info("available labels: %s", available)
        _log.info("required labels %s", list(self.required_labels))
        if all(label in available for label in self.required_labels):
            return _response(True)
        return _response(False, _status(reason="required labels are not set"))

    def mutate(self, review: Mapping[str, Any]) -> dict[str, Any]:
        """Mark a Deployment or Service as mutated and fill in missing labels."""
        request = self._request(review)
        try:
            metadata, labels = _decode_object(request)
        except _ObjectDecodeError as exc:
            _log.error("Could not unmarshal raw object: %s", exc)
            return _failure(str(exc))

        if not mutation_required(self.ignored_namespaces, metadata):
            _log.info(
                "Skipping mutation for %s/%s due to policy check",
                metadata.get("namespace") or "",
                metadata.get("name") or "",
            )
            return _response(True)

        # The existing annotations are deliberately not consulted: the status
        # annotation is always written with an "add" operation.
        patch = create_patch(
            None, {ANNOTATION_STATUS_KEY: "mutated"}, labels, self.add_labels
        )
        _log.info("AdmissionResponse: patch=%s", patch.decode("utf-8"))
        return _response(True, patch=patch)

    def serve(self, path: str, content_type: str, body: bytes | None) -> tuple[int, str, bytes]:
        """Handle one HTTP request and return ``(status, content_type, payload)``."""
        if not body:
            _log.error("empty body")
            return 400, _TEXT, b"empty body\n"
        if content_type != _JSON:
            _log.error("Content-Type=%s, expect application/json", content_type)
            return 415, _TEXT, b"invalid Content-Type, expect `application/json`\n"

        review: Mapping[str, Any] = {}
        response: dict[str, Any] | None
        try:
            decoded = json.loads(body)
            if not isinstance(decoded, dict):
                raise ValueError("admission review must be a JSON object")
            request = decoded.get("request")
            if request is not None and not isinstance(request, dict):
                raise ValueError("admission review request must be a JSON object")
        except (ValueError, UnicodeDecodeError) as exc:
            _log.error("Can't decode body: %s", exc)
            response = _failure(str(exc))
        else:
            review = decoded
            _log.info("%s", path)
            try:
                if path == MUTATE_PATH:
                    response = self.mutate(review)
                elif path == VALIDATE_PATH:
                    response = self.validate(review)
                else:
                    response = None
            except ValueError as exc:
                _log.error("Can't handle admission review: %s", exc)
                return 500, _TEXT, b"Internal Server Error\n"

        result: dict[str, Any] = {"kind": "AdmissionReview", "apiVersion": "admission.k8s.io/v1"}
        if response is not None:
            request = review.get("request")
            if isinstance(request, Mapping):
                response["uid"] = request.get("uid") or ""
            result["response"] = response

        _log.info("Ready to write response ...")
        return 200, _JSON, json.dumps(result, separators=(",", ":")).encode("utf-8")