"""The XXX example resource of the ``apps.k8sdemo.io`` API group.

The module holds the resource types, their JSON form, the defaulting
functions and a small scheme that records known kinds and their defaulters.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Union

GROUP_NAME = "apps.k8sdemo.io"
DEFAULT_GENERATE_NAME = "hello-"
DEFAULT_DISPLAY_NAME = "xxxdefaulter"


class XXXPhase(str, Enum):
    """Lifecycle phase of an XXX."""

    RUNNING = "Running"
    PENDING = "Pending"


Phase = Union[XXXPhase, str]


def _phase(value: Any) -> Phase:
    """Return the known phase for ``value``, or the plain string otherwise."""
    text = "" if value is None else str(value)
    try:
        return XXXPhase(text)
    except ValueError:
        return text


def _phase_text(value: Phase) -> str:
    return value.value if isinstance(value, XXXPhase) else value


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a JSON object, not {type(data).__name__}")
    return data


@dataclass
class Condition:
    """One observation of an object's state."""

    type: str = ""
    status: str = ""
    observed_generation: int = 0
    last_transition_time: str = ""
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the condition."""
        data: dict[str, Any] = {"type": self.type, "status": self.status}
        if self.observed_generation:
            data["observedGeneration"] = self.observed_generation
        data["lastTransitionTime"] = self.last_transition_time or None
        data["reason"] = self.reason
        data["message"] = self.message
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Condition:
        """Build a condition from its JSON form."""
        data = _mapping(data, "condition")
        return cls(
            type=data.get("type") or "",
            status=data.get("status") or "",
            observed_generation=int(data.get("observedGeneration") or 0),
            last_transition_time=data.get("lastTransitionTime") or "",
            reason=data.get("reason") or "",
            message=data.get("message") or "",
        )


@dataclass
class ObjectMeta:
    """Standard object metadata."""

    name: str = ""
    generate_name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    _FIELDS = (
        ("name", "name"),
        ("generate_name", "generateName"),
        ("namespace", "namespace"),
        ("uid", "uid"),
        ("resource_version", "resourceVersion"),
        ("generation", "generation"),
        ("labels", "labels"),
        ("annotations", "annotations"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        data: dict[str, Any] = {}
        for attr, key in self._FIELDS:
            value = getattr(self, attr)
            if value:
                data[key] = dict(value) if isinstance(value, dict) else value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ObjectMeta:
        """Build metadata from its JSON form."""
        data = _mapping(data, "metadata")
        return cls(
            name=data.get("name") or "",
            generate_name=data.get("generateName") or "",
            namespace=data.get("namespace") or "",
            uid=data.get("uid") or "",
            resource_version=data.get("resourceVersion") or "",
            generation=int(data.get("generation") or 0),
            labels=dict(_mapping(data.get("labels"), "labels")),
            annotations=dict(_mapping(data.get("annotations"), "annotations")),
        )


@dataclass
class XXXSpec:
    """Desired attributes of an XXX."""

    display_name: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; the display name is always present."""
        data: dict[str, Any] = {"displayName": self.display_name}
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Any) -> XXXSpec:
        """Build a spec from its JSON form."""
        data = _mapping(data, "spec")
        return cls(
            display_name=data.get("displayName") or "",
            description=data.get("description") or "",
        )


@dataclass
class XXXStatus:
    """Observed state of an XXX."""

    phase: Phase = ""
    observed_generation: int = 0
    conditions: list[Condition] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        data: dict[str, Any] = {}
        phase = _phase_text(self.phase)
        if phase:
            data["phase"] = phase
        if self.observed_generation:
            data["observedGeneration"] = self.observed_generation
        if self.conditions:
            data["conditions"] = [c.to_dict() for c in self.conditions]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> XXXStatus:
        """Build a status from its JSON form."""
        data = _mapping(data, "status")
        return cls(
            phase=_phase(data.get("phase")),
            observed_generation=int(data.get("observedGeneration") or 0),
            conditions=[Condition.from_dict(c) for c in data.get("conditions") or []],
        )


@dataclass
class XXX:
    """Example resource object."""

    api_version: str = ""
    kind: str = ""
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: XXXSpec = field(default_factory=XXXSpec)
    status: XXXStatus = field(default_factory=XXXStatus)

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
    def from_dict(cls, data: Any) -> XXX:
        """Build an object from its JSON form."""
        data = _mapping(data, "XXX")
        return cls(
            api_version=data.get("apiVersion") or "",
            kind=data.get("kind") or "",
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=XXXSpec.from_dict(data.get("spec")),
            status=XXXStatus.from_dict(data.get("status")),
        )


@dataclass
class XXXList:
    """A list of XXX objects."""

    api_version: str = ""
    kind: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    items: list[XXX] = field(default_factory=list)

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


@dataclass(frozen=True)
class GroupResource:
    """A resource qualified by its API group."""

    group: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.group}" if self.group else self.resource


@dataclass(frozen=True)
class GroupVersion:
    """An API group and version."""

    group: str
    version: str

    def with_resource(self, resource: str) -> GroupResource:
        """Qualify ``resource`` with this group."""
        return GroupResource(group=self.group, resource=resource)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


SCHEME_GROUP_VERSION = GroupVersion(group=GROUP_NAME, version="v1beta1")


class Scheme:
    """Registry of known kinds and the functions that default them."""

    def __init__(self) -> None:
        self._types: dict[tuple[str, str, str], type] = {}
        self._defaulters: dict[type, Callable[[Any], None]] = {}

    @property
    def known_types(self) -> Mapping[tuple[str, str, str], type]:
        """Known classes keyed by ``(group, version, kind)``."""
        return MappingProxyType(dict(self._types))

    def add_known_types(self, group_version: GroupVersion, *args: Any) -> None:
        """Register classes (or instances of them) under ``group_version``."""
        for item in args:
            cls = item if isinstance(item, type) else type(item)
            key = (group_version.group, group_version.version, cls.__name__)
            existing = self._types.get(key)
            if existing is not None and existing is not cls:
                raise ValueError(
                    f"double registration of different types for {group_version}, "
                    f"Kind={cls.__name__}"
                )
            self._types[key] = cls

    def add_defaulting_func(self, kind: type, func: Callable[[Any], None]) -> None:
        """Use ``func`` to default objects of class ``kind``."""
        self._defaulters[kind] = func

    def default(self, obj: Any) -> None:
        """Apply the registered defaulter for ``obj``'s class, if any."""
        func = self._defaulters.get(type(obj))
        if func is not None:
            func(obj)


def set_defaults_xxx_spec(spec: XXXSpec) -> None:
    """Fill in the display name when it is empty."""
    if spec.display_name == "":
        spec.display_name = DEFAULT_DISPLAY_NAME


def set_defaults_xxx(obj: XXX) -> None:
    """Fix the name prefix to ``hello-`` when unset and default the spec."""
    if obj.metadata.generate_name == "":
        obj.metadata.generate_name = DEFAULT_GENERATE_NAME
    set_defaults_xxx_spec(obj.spec)


def _set_defaults_xxx_list(obj: XXXList) -> None:
    for item in obj.items:
        set_defaults_xxx(item)


def resource(name: str) -> GroupResource:
    """Qualify an unqualified resource name with this API group."""
    return SCHEME_GROUP_VERSION.with_resource(name)


def add_to_scheme(scheme: Scheme) -> None:
    """Register the XXX kinds and their defaulters in ``scheme``."""
    scheme.add_known_types(SCHEME_GROUP_VERSION, XXX, XXXList)
    scheme.add_defaulting_func(XXX, set_defaults_xxx)
    scheme.add_defaulting_func(XXXList, _set_defaults_xxx_list)