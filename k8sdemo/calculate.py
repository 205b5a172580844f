"""The Calculate resource of the ``math.superproj.com`` API group.

A Calculate asks for one arithmetic action on two integers; its status holds
the result. The module also carries the admission checks for the kind.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from k8sdemo.apps import GroupVersion, ObjectMeta, Scheme

GROUP_VERSION = GroupVersion(group="math.superproj.com", version="v1")

DIVISOR_ZERO_MESSAGE = "the divisor cannot be zero whtn action is division"

_log = logging.getLogger("calculate-resource")


class ActionType(str, Enum):
    """Arithmetic action of a Calculate."""

    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"


Action = Union[ActionType, str]


def _action(value: Any) -> Action:
    """Return the known action for ``value``, or the plain string otherwise."""
    text = "" if value is None else str(value)
    try:
        return ActionType(text)
    except ValueError:
        return text


def _action_text(value: Action) -> str:
    return value.value if isinstance(value, ActionType) else value


def _int(value: Any, what: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an integer, not {value!r}")
    return value


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, not {type(data).__name__}")
    return data


@dataclass
class CalculateSpec:
    """The action to perform and its two operands."""

    action: Action = ""
    first: int = 0
    second: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        data: dict[str, Any] = {}
        action = _action_text(self.action)
        if action:
            data["action"] = action
        if self.first:
            data["first"] = self.first
        if self.second:
            data["second"] = self.second
        return data

    @classmethod
    def from_dict(cls, data: Any) -> CalculateSpec:
        """Build a spec from its JSON form."""
        data = _mapping(data, "spec")
        return cls(
            action=_action(data.get("action")),
            first=_int(data.get("first"), "spec.first"),
            second=_int(data.get("second"), "spec.second"),
        )


@dataclass
class CalculateStatus:
    """The observed result of the calculation."""

    result: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out a zero result."""
        return {"result": self.result} if self.result else {}

    @classmethod
    def from_dict(cls, data: Any) -> CalculateStatus:
        """Build a status from its JSON form."""
        data = _mapping(data, "status")
        return cls(result=_int(data.get("result"), "status.result"))


@dataclass(frozen=True)
class FieldError:
    """An invalid value found at a field path."""

    path: str
    value: Any
    detail: str

    def __str__(self) -> str:
        return f"{self.path}: Invalid value: {self.value}: {self.detail}"


class CalculateValidationError(ValueError):
    """Raised when a Calculate fails admission; holds every field error found."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__(self._message())

    def _message(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return "[" + ", ".join(str(error) for error in self.errors) + "]"


@dataclass
class Calculate:
    """A request for one calculation."""

    api_version: str = ""
    kind: str = ""
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CalculateSpec = field(default_factory=CalculateSpec)
    status: CalculateStatus = field(default_factory=CalculateStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the object."""
        data: dict[str, Any] = {}
        if self.kind:
            data["kind"] = self.kind
        if self.api_version:
            data["apiVersion"] = self.api_version
        data["metadata"] = self.metadata.to_dict()
        data["spec"] = self.spec.to_dict()
        data["status"] = self.status.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Calculate:
        """Build an object from its JSON form."""
        data = _mapping(data, "Calculate")
        return cls(
            api_version=data.get("apiVersion") or "",
            kind=data.get("kind") or "",
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=CalculateSpec.from_dict(data.get("spec")),
            status=CalculateStatus.from_dict(data.get("status")),
        )

    def default(self) -> None:
        """Apply defaults; a known action given as plain text becomes its ActionType."""
        _log.info("default name=%s", self.name)
        self.spec.action = _action(_action_text(self.spec.action))

    def validate_create(self) -> list[str]:
        """Check a new object; returns warnings, raises CalculateValidationError."""
        _log.info("validate create name=%s", self.name)
        return self._validate()

    def validate_update(self, old: Any) -> list[str]:
        """Check an updated object; the old version is not consulted."""
        _log.info("validate update name=%s", self.name)
        return self._validate()

    def validate_delete(self) -> list[str]:
        """Deleting a Calculate is always allowed."""
        _log.info("validate delete name=%s", self.name)
        return []

    def _validate(self) -> list[str]:
        errors: list[FieldError] = []
        if self.spec.action == ActionType.DIV and self.spec.second == 0:
            errors.append(FieldError("spec.second", self.spec.second, DIVISOR_ZERO_MESSAGE))
        if errors:
            raise CalculateValidationError(errors)
        return []


@dataclass
class CalculateList:
    """A list of Calculate objects."""

    api_version: str = ""
    kind: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    items: list[Calculate] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; ``items`` is always present."""
        data: dict[str, Any] = {}
        if self.kind:
            data["kind"] = self.kind
        if self.api_version:
            data["apiVersion"] = self.api_version
        data["metadata"] = dict(self.metadata)
        data["items"] = [item.to_dict() for item in self.items]
        return data


def add_to_scheme(scheme: Scheme) -> None:
    """Register the Calculate kinds in ``scheme``."""
    scheme.add_known_types(GROUP_VERSION, Calculate, CalculateList)