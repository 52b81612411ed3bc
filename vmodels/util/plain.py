"""
Plain-value conversion
======================

Deep, JSON-safe copy of cell values. Observables are unwrapped, containers
are copied, and anything JSON cannot represent is dropped: omitted from
mappings, replaced by ``None`` inside sequences.

Conversion table:
    Observable          -> its current value, converted
    dataclass instance  -> dict of its fields
    Mapping             -> dict with string keys
    list/tuple/set      -> list
    datetime/date       -> ISO 8601 string
    Enum                -> its value
    numpy.ndarray       -> nested lists
    numpy scalar        -> Python scalar
    float nan/inf       -> None
    functions, objects  -> dropped
"""

import dataclasses
import math
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

import numpy as np

from ..observable import Observable


class _Drop:
    """Sentinel for values that have no JSON representation."""

    def __repr__(self):
        return "DROP"

    def __bool__(self):
        return False


DROP = _Drop()


def to_plain(value: Any) -> Any:
    """Return a JSON-safe deep copy of ``value`` (``None`` if it has none)."""
    converted = _convert(value)
    return None if converted is DROP else converted


def _convert(value: Any) -> Any:
    if isinstance(value, Observable):
        return _convert(value.value)
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Enum):
        return _convert(value.value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, np.ndarray):
        return _convert(value.tolist())
    if isinstance(value, np.generic):
        return _convert(value.item())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        names = [field.name for field in dataclasses.fields(value)]
        return _convert_mapping({name: getattr(value, name) for name in names})
    if isinstance(value, Mapping):
        return _convert_mapping(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_convert(item) for item in value]
        return [None if item is DROP else item for item in items]
    return DROP


def _convert_mapping(mapping: Mapping) -> dict:
    result = {}
    for key, item in mapping.items():
        if isinstance(key, Enum):
            key = key.value
        if not isinstance(key, (str, int, float, bool)):
            continue
        converted = _convert(item)
        if converted is DROP:
            continue
        result[str(key)] = converted
    return result
