"""
Argument paths - the memoization key of a view model.

A path is the model name followed by ``str()`` of every argument value,
joined with ``"."``::

    derive_path("Todo", [1])     # "Todo.1"
    derive_path("TodoList", [])  # "TodoList"

Distinct argument tuples must not stringify to the same path; that is left
to the caller.
"""

from typing import Any, Iterable

from .observable import Observable

PATH_SEPARATOR = "."


def unwrap(arg: Any) -> Any:
    """Current value of an observable argument, or the argument itself."""
    return arg.value if isinstance(arg, Observable) else arg


def derive_path(name: str, args: Iterable[Any] = ()) -> str:
    return PATH_SEPARATOR.join([name] + [str(unwrap(arg)) for arg in args])
