"""Scheduler extender verbs: filter, prioritize, bind and preempt.

Arguments and results are the JSON-shaped dictionaries exchanged with the
scheduler. Field names in incoming arguments are matched case-insensitively,
as the scheduler's own decoder does.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable


def _lookup(obj: Any, name: str) -> Any:
    """Return the value of field ``name`` in ``obj``, ignoring case."""
    if not isinstance(obj, Mapping):
        return None
    if name in obj:
        return obj[name]
    folded = name.casefold()
    for key, value in obj.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return None


def _node_name(node: Any) -> str:
    metadata = node.get("metadata") if isinstance(node, Mapping) else None
    if isinstance(metadata, Mapping):
        return metadata.get("name", "") or ""
    return ""


def _candidate_nodes(args: Mapping[str, Any]) -> list[Any]:
    nodes = _lookup(args, "Nodes")
    if nodes is None:
        raise ValueError("extender arguments carry no node list")
    return list(_lookup(nodes, "items") or [])


@dataclass(frozen=True)
class Predicate:
    """A named filter; ``func(pod, node)`` returns whether the pod fits, or raises."""

    name: str
    func: Callable[[Any, Any], bool]

    def handler(self, args: Mapping[str, Any]) -> dict[str, Any]:
        """Filter the candidate nodes and build the filter result."""
        pod = _lookup(args, "Pod")
        schedulable: list[Any] = []
        failed: dict[str, str] = {}
        for node in _candidate_nodes(args):
            try:
                fits = self.func(pod, node)
            except Exception as exc:  # the predicate reports a failure by raising
                failed[_node_name(node)] = str(exc)
            else:
                if fits:
                    schedulable.append(node)
        return {
            "Nodes": {"metadata": {}, "items": schedulable},
            "NodeNames": None,
            "FailedNodes": failed,
            "Error": "",
        }


@dataclass(frozen=True)
class Prioritize:
    """A named scorer; ``func(pod, nodes)`` returns a list of host priorities."""

    name: str
    func: Callable[[Any, list[Any]], list[dict[str, Any]]]

    def handler(self, args: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Score the candidate nodes; errors from the scorer propagate."""
        return list(self.func(_lookup(args, "Pod"), _candidate_nodes(args)))


@dataclass(frozen=True)
class Bind:
    """Binding verb; ``func(pod_name, pod_namespace, pod_uid, node)`` raises on failure."""

    func: Callable[[str, str, str, str], None]

    def handler(self, args: Mapping[str, Any]) -> dict[str, str]:
        """Bind the pod and report the outcome as a binding result."""
        try:
            self.func(
                _lookup(args, "PodName") or "",
                _lookup(args, "PodNamespace") or "",
                _lookup(args, "PodUID") or "",
                _lookup(args, "Node") or "",
            )
        except Exception as exc:  # binding failures travel in the result
            return {"Error": str(exc)}
        return {"Error": ""}


@dataclass(frozen=True)
class Preemption:
    """Preemption verb; ``func(pod, victims, meta_victims)`` returns meta victims."""

    func: Callable[[Any, Any, Any], Any]

    def handler(self, args: Mapping[str, Any]) -> dict[str, Any]:
        """Choose the victims per node and build the preemption result."""
        meta_victims = self.func(
            _lookup(args, "Pod"),
            _lookup(args, "NodeNameToVictims"),
            _lookup(args, "NodeNameToMetaVictims"),
        )
        return {"NodeNameToMetaVictims": meta_victims}