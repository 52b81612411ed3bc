"""
State bundles and their field descriptors.

A build function returns a mapping of field name to one of three kinds:

- **cell**: a mutable ``Observable``; merged, persisted, restored
- **derived**: a ``ComputedObservable``; recomputes from its own sources
- **behavior**: any callable (including coroutine functions); never touched

The kinds are captured once per model as a tuple of ``FieldDescriptor`` so
merge and persistence iterate a static list instead of inspecting values.

Example:
    count = observable(0)
    bundle = StateBundle({
        "count": count,
        "next_number": count >> (lambda c: c + 1),
        "increment": lambda by=1: count.set(count.value + by),
    })

    bundle.count.value        # 0
    bundle.increment(2)
    bundle.next_number.value  # 3
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

from .exceptions import ViewModelError
from .observable import ComputedObservable, Observable
from .util import to_plain


class FieldKind(Enum):
    """Classification of a bundle field."""

    CELL = "cell"
    DERIVED = "derived"
    BEHAVIOR = "behavior"


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    kind: FieldKind


def classify(value: Any) -> FieldKind:
    """Kind of a single field value; raises TypeError for plain data."""
    if isinstance(value, ComputedObservable):
        return FieldKind.DERIVED
    if isinstance(value, Observable):
        return FieldKind.CELL
    if callable(value):
        return FieldKind.BEHAVIOR
    raise TypeError(
        f"State fields must be observables or callables, got {type(value).__name__}; "
        "wrap plain values in observable()"
    )


def describe_fields(fields: Mapping) -> Tuple[FieldDescriptor, ...]:
    """Build the static descriptor tuple for a freshly built field mapping."""
    descriptors = []
    for name, value in fields.items():
        if not isinstance(name, str):
            raise TypeError(f"State field names must be strings, got {name!r}")
        descriptors.append(FieldDescriptor(name, classify(value)))
    return tuple(descriptors)


class StateBundle(Mapping):
    """
    The object handed to callers of a view model.

    Read-only mapping of field name to cell, derived cell or behavior, with
    attribute access for convenience. The bundle's fields are fixed at
    construction; only the values inside its cells change.
    """

    __slots__ = ("_fields", "_descriptors")

    def __init__(
        self,
        fields: Mapping,
        descriptors: Optional[Sequence[FieldDescriptor]] = None,
    ):
        fields = dict(fields)
        if descriptors is None:
            descriptors = describe_fields(fields)
        else:
            descriptors = tuple(descriptors)
            _check_shape(fields, descriptors)
        object.__setattr__(self, "_fields", fields)
        object.__setattr__(self, "_descriptors", descriptors)

    @property
    def descriptors(self) -> Tuple[FieldDescriptor, ...]:
        return self._descriptors

    def names(self, kind: Optional[FieldKind] = None) -> Tuple[str, ...]:
        """Field names in declaration order, optionally of one kind only."""
        return tuple(
            descriptor.name
            for descriptor in self._descriptors
            if kind is None or descriptor.kind is kind
        )

    def cells(self) -> Iterator[Tuple[str, Observable]]:
        for name in self.names(FieldKind.CELL):
            yield name, self._fields[name]

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe copy of every cell value."""
        return {name: to_plain(cell.value) for name, cell in self.cells()}

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__} has no field {name!r}"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(
            f"Cannot replace field {name!r}; assign to its .value instead"
        )

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self._fields))

    def __repr__(self) -> str:
        parts = []
        for descriptor in self._descriptors:
            field = self._fields[descriptor.name]
            if descriptor.kind is FieldKind.BEHAVIOR:
                parts.append(f"{descriptor.name}=<behavior>")
            else:
                parts.append(f"{descriptor.name}={field.value!r}")
        return f"StateBundle({', '.join(parts)})"


def _check_shape(fields: Dict[str, Any], descriptors: Tuple[FieldDescriptor, ...]):
    expected = [descriptor.name for descriptor in descriptors]
    if sorted(expected) != sorted(fields):
        raise ViewModelError(
            f"Build produced fields {sorted(fields)}, expected {sorted(expected)}"
        )
    for descriptor in descriptors:
        kind = classify(fields[descriptor.name])
        if kind is not descriptor.kind:
            raise ViewModelError(
                f"Field {descriptor.name!r} changed kind from "
                f"{descriptor.kind.value} to {kind.value}"
            )
