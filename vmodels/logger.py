"""
Diagnostics for the view-model layer.

A thin layer over the ``"vmodels"`` standard-library logger that adds what
the factory's trace output needs:

- a global on/off switch (``logger.set_enabled(False)``)
- ``group(label)`` blocks that indent everything logged inside them
- rendering of arbitrary arguments that never raises

The library installs no handlers; configure ``logging`` (or attach a
``rich.logging.RichHandler``) in the application to see the output.
``VMODELS_DIAGNOSTICS=0`` in the environment starts the default logger
disabled.
"""

import logging
import os
import reprlib
from contextlib import contextmanager
from typing import Any, Iterator

LOGGER_NAME = "vmodels"
GROUP_INDENT = "  "

_repr = reprlib.Repr()
_repr.maxstring = 120
_repr.maxother = 120
_repr.maxdict = 8
_repr.maxlist = 8
_repr.maxlevel = 4


def render(param: Any) -> str:
    """Render one log argument; strings pass through unchanged."""
    if isinstance(param, str):
        return param
    try:
        return _repr.repr(param)
    except Exception:
        # A broken __repr__ must not take the caller down with it.
        return f"<unrepresentable {type(param).__name__}>"


class DiagnosticLogger:
    """
    Leveled, switchable, group-aware diagnostics sink.

    ``log`` maps to DEBUG, ``info`` to INFO, ``warn`` to WARNING and
    ``error`` to ERROR. Each call takes any number of arguments, joined with
    spaces like ``print``.
    """

    def __init__(self, name: str = LOGGER_NAME, enabled: bool = True):
        self._logger = logging.getLogger(name)
        self._enabled = enabled
        self._depth = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, *params: Any) -> None:
        self._emit(logging.DEBUG, params)

    def info(self, *params: Any) -> None:
        self._emit(logging.INFO, params)

    def warn(self, *params: Any) -> None:
        self._emit(logging.WARNING, params)

    warning = warn

    def error(self, *params: Any) -> None:
        self._emit(logging.ERROR, params)

    @contextmanager
    def group(self, label: str, *params: Any) -> Iterator["DiagnosticLogger"]:
        """Log ``label`` and indent every message emitted inside the block."""
        self.info(label, *params)
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1

    def _emit(self, level: int, params: tuple) -> None:
        if not self._enabled or not self._logger.isEnabledFor(level):
            return
        message = " ".join(render(param) for param in params)
        self._logger.log(level, "%s%s", GROUP_INDENT * self._depth, message)

    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return f"DiagnosticLogger({self.name!r}, {state})"


logger = DiagnosticLogger(enabled=os.environ.get("VMODELS_DIAGNOSTICS", "1") != "0")
