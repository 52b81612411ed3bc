"""
In-place merge of one state bundle into another.

When a view model's argument path switches, the bundle the caller holds
keeps its identity and every cell object in it; only the cell values are
copied from the bundle resolved for the new path. Behaviors are left alone,
and derived cells recompute from the target's own cells.
"""

from typing import Optional, Sequence

from .fields import FieldDescriptor, FieldKind, StateBundle
from .observable import transaction


def merge_into(
    target: StateBundle,
    source: StateBundle,
    descriptors: Optional[Sequence[FieldDescriptor]] = None,
) -> None:
    """
    Copy every cell value of ``source`` into the same-named cell of ``target``.

    ``descriptors`` is the model's static field list; the source bundle's own
    descriptors are used when it is omitted.
    """
    if target is source:
        return

    if descriptors is None:
        descriptors = source.descriptors

    with transaction():
        for descriptor in descriptors:
            if descriptor.kind is not FieldKind.CELL:
                continue
            target[descriptor.name].set(source[descriptor.name].value)
