"""
vmodels - Memoized, Persisted Reactive View Models

Turns a function that builds reactive state into a factory that caches one
state bundle per argument path, keeps the bundle a caller holds live when its
arguments change, and optionally persists selected cells to a storage
backend.
"""

# Reactive runtime
from .observable import (
    CircularDependencyError,
    ComputedObservable,
    MergedObservable,
    Observable,
    ReactiveContext,
    ReactiveFunctionError,
    Watcher,
    _reset_context,
    computed,
    effect,
    get_context,
    observable,
    reactive,
    transaction,
    watch,
)

# Diagnostics
from .logger import DiagnosticLogger, logger

# State bundles, paths and merge
from .exceptions import DuplicateViewModelError, PersistedStateError, ViewModelError
from .fields import FieldDescriptor, FieldKind, StateBundle, describe_fields
from .merge import merge_into
from .paths import PATH_SEPARATOR, derive_path

# Persistence
from .persistence import (
    STORAGE_KEY_PREFIX,
    Persistence,
    PersistenceOptions,
    create_persistence,
    storage_key,
)
from .storage import JsonFileStorage, MemoryStorage, Storage
from .util import to_plain

# Factory
from .view_model import (
    TransientModel,
    ViewModel,
    ViewModelRegistry,
    _reset_registry,
    define_model,
    define_view_model,
    get_registry,
)

__version__ = "0.3.0"

__all__ = [
    # Reactive runtime
    "Observable",
    "ComputedObservable",
    "MergedObservable",
    "Watcher",
    "ReactiveContext",
    "observable",
    "computed",
    "watch",
    "effect",
    "reactive",
    "transaction",
    "get_context",
    # Factory
    "define_view_model",
    "define_model",
    "ViewModel",
    "TransientModel",
    "ViewModelRegistry",
    "get_registry",
    # State bundles
    "StateBundle",
    "FieldKind",
    "FieldDescriptor",
    "describe_fields",
    "merge_into",
    "derive_path",
    "PATH_SEPARATOR",
    # Persistence
    "PersistenceOptions",
    "Persistence",
    "create_persistence",
    "storage_key",
    "STORAGE_KEY_PREFIX",
    "Storage",
    "MemoryStorage",
    "JsonFileStorage",
    "to_plain",
    # Diagnostics
    "DiagnosticLogger",
    "logger",
    # Exceptions
    "ViewModelError",
    "DuplicateViewModelError",
    "PersistedStateError",
    "CircularDependencyError",
    "ReactiveFunctionError",
    # Testing utilities (internal use)
    "_reset_context",
    "_reset_registry",
]
