"""Reconciler that computes the result of Calculate objects."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass

from k8sdemo.calculate import ActionType, Calculate, CalculateSpec

DIVISOR_ZERO_MESSAGE = "the divisor cannot be zero whtn action is division"
UNKNOWN_ACTION_MESSAGE = "unknown action type"

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamespacedName:
    """Namespace and name that identify an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Result:
    """Outcome of one reconciliation."""

    requeue: bool = False
    requeue_after: float = 0.0


class NotFoundError(KeyError):
    """Raised when the store holds no object under a key."""


class CalculationError(ValueError):
    """Raised when a Calculate cannot be computed."""


def _wrap64(value: int) -> int:
    return (value + 2**63) % 2**64 - 2**63


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def compute(spec: CalculateSpec) -> int:
    """Return the result of ``spec`` in signed 64-bit arithmetic.

    Division truncates toward zero. Raises CalculationError for a zero
    divisor or an unknown action.
    """
    first, second = spec.first, spec.second
    if spec.action == ActionType.ADD:
        result = first + second
    elif spec.action == ActionType.SUB:
        result = first - second
    elif spec.action == ActionType.MUL:
        result = first * second
    elif spec.action == ActionType.DIV:
        if second == 0:
            raise CalculationError(DIVISOR_ZERO_MESSAGE)
        result = _trunc_div(first, second)
    else:
        raise CalculationError(UNKNOWN_ACTION_MESSAGE)
    return _wrap64(result)


def _key(obj: Calculate) -> NamespacedName:
    return NamespacedName(obj.metadata.namespace, obj.metadata.name)


class InMemoryStore:
    """Holds Calculate objects by namespaced name; hands out copies."""

    def __init__(self) -> None:
        self._objects: dict[NamespacedName, Calculate] = {}

    def get(self, key: NamespacedName) -> Calculate:
        """Return a copy of the object under ``key``."""
        try:
            return copy.deepcopy(self._objects[key])
        except KeyError:
            raise NotFoundError(f'calculates "{key.name}" not found') from None

    def put(self, obj: Calculate) -> None:
        """Create or replace an object."""
        self._objects[_key(obj)] = copy.deepcopy(obj)

    def update_status(self, obj: Calculate) -> None:
        """Store the status of ``obj``; the stored spec is left as it is."""
        key = _key(obj)
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(f'calculates "{key.name}" not found')
        stored.status = copy.deepcopy(obj.status)

    def delete(self, key: NamespacedName) -> None:
        """Remove the object under ``key``."""
        try:
            del self._objects[key]
        except KeyError:
            raise NotFoundError(f'calculates "{key.name}" not found') from None


class CalculateReconciler:
    """Writes the computed result of each Calculate into its status."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def reconcile(self, request: NamespacedName) -> Result:
        """Compute and store the result for the object named by ``request``.

        A missing object is not an error. Calculation failures raise
        CalculationError and leave the status untouched.
        """
        try:
            calc = self.store.get(request)
        except NotFoundError as exc:
            _log.error("unable to fetch calculate: %s", exc)
            return Result()
        _log.info("Found the calculate object %s", calc)
        _log.info(
            "Calculating the calculate of %d and %d with action %s",
            calc.spec.first,
            calc.spec.second,
            calc.spec.action,
        )
        calc.status.result = compute(calc.spec)
        _log.info("Updating the result of calculation")
        self.store.update_status(calc)
        return Result()