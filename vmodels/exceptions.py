"""
Exceptions raised by the view-model factory and its persistence layer.

Runtime errors of the reactive layer (``CircularDependencyError``,
``ReactiveFunctionError``) live in ``vmodels.observable``.
"""


class ViewModelError(Exception):
    """Base class for view-model definition and state errors."""

    pass


class DuplicateViewModelError(ViewModelError):
    """Raised by a strict registry when a model name is defined twice."""

    pass


class PersistedStateError(ViewModelError, ValueError):
    """Raised in strict mode when a persisted record cannot be decoded."""

    pass
