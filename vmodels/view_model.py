"""
vmodels View Models - Memoized, Persisted Reactive State
========================================================

A view model turns a build function into a memoized state factory keyed by
its arguments. Calling it with argument observables returns a ``StateBundle``
that stays valid, by identity, for as long as the caller keeps it:

```python
from vmodels import define_view_model, observable, PersistenceOptions, MemoryStorage

def build_count(username):
    count = observable(0)
    return {
        "count": count,
        "next_number": count >> (lambda c: c + 1),
        "increment": lambda by=1: count.set(count.value + by),
    }

storage = MemoryStorage()
use_count = define_view_model(
    "Count", build_count, persistence=PersistenceOptions(storage)
)

username = observable("alice")
state = use_count(username)   # built for "Count.alice"
state.increment()             # persisted under "VIEW_MODEL.Count.alice"

username.set("bob")           # same `state` object now shows Count.bob
storage.get("VIEW_MODEL.Count.alice")  # '{"count": 1}'
```

Lifecycle of one call:
    1. The argument path is derived from the current argument values.
    2. The cached bundle for the path is reused, or ``build`` runs once.
    3. Persisted cells are restored into that bundle.
    4. The bundle gets one mutation watcher, which keeps every bundle showing
       the same path in step and persists after each batch that changed it.
       Observable arguments also get a path watcher that merges the bundle
       for the new path into the held bundle when they change.

Model names live in a ``ViewModelRegistry``. Defining the same name twice
logs a warning (or raises with ``strict_names=True``); each definition still
keeps its own cache.
"""

import inspect
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .exceptions import DuplicateViewModelError
from .fields import FieldDescriptor, StateBundle
from .logger import DiagnosticLogger
from .logger import logger as default_logger
from .merge import merge_into
from .observable import ComputedObservable, Observable, Watcher, transaction, watch
from .paths import derive_path, unwrap
from .persistence import PersistenceOptions, create_persistence
from .util import to_plain

_log = logging.getLogger(__name__)


def _positional_arity(func: Callable) -> Optional[int]:
    """Number of positional parameters of ``func``; None when unbounded."""
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return None
    count = 0
    for parameter in parameters:
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


def _as_cell(arg: Any) -> Observable:
    return arg if isinstance(arg, Observable) else Observable(None, arg)


def _assign(bundle: StateBundle, values: Mapping[str, Any]) -> None:
    with transaction():
        for name, value in values.items():
            bundle[name].set(value)


class _Tracker:
    """
    Bookkeeping for one bundle of a view model: the path whose state it
    currently shows, its mutation watcher, and one path watcher per set of
    argument cells it was handed out for.
    """

    def __init__(self, model: "ViewModel", bundle: StateBundle, path: str):
        self.model = model
        self.bundle = bundle
        self.path = path
        self._cells = tuple(cell for _, cell in bundle.cells())
        self._seen = self._versions()
        self._watcher = Watcher(self._cells, self._on_mutation)
        self._arguments: Dict[Tuple[Any, ...], Callable[[], None]] = {}

    def _versions(self) -> Tuple[int, ...]:
        return tuple(cell.version for cell in self._cells)

    def mark_seen(self) -> None:
        """Treat the current cell values as already propagated."""
        self._seen = self._versions()

    def follow(self, arguments: Sequence[Any]) -> None:
        """Switch the bundle whenever the path derived from ``arguments`` changes."""
        key = tuple(
            arg if isinstance(arg, Observable) else str(arg) for arg in arguments
        )
        if key in self._arguments:
            return
        cells = tuple(_as_cell(arg) for arg in arguments)
        name = self.model.name
        path = ComputedObservable(
            cells, lambda *values: derive_path(name, values), key=f"{name}$path"
        )
        self._arguments[key] = watch(
            path, lambda new, old: self.model._switch(self, new, cells)
        )

    def _on_mutation(self) -> None:
        current = self._versions()
        if current == self._seen:
            return
        self._seen = current
        self.model._propagate(self)

    def dispose(self) -> None:
        self._watcher.dispose()
        for unsubscribe in self._arguments.values():
            unsubscribe()
        self._arguments.clear()


class ViewModel:
    """
    Memoized state factory for one model name.

    Calling the view model returns the bundle for the current arguments;
    ``get_state`` reads cached or persisted values without building anything.

    Every bundle handed out or cached is tracked with the path it currently
    shows. ``cache[path]`` always shows ``path``: when a held bundle switches
    away from the path it is cached under, the entry passes to another bundle
    still showing that path, or the path's values are parked until the path
    is used again. Bundles showing the same path are kept in step, and each
    batch that mutates one of them writes storage once.
    """

    def __init__(
        self,
        name: str,
        build: Callable[..., Mapping[str, Any]],
        persistence: Optional[PersistenceOptions] = None,
        logger: Optional[DiagnosticLogger] = None,
    ):
        self.name = name
        self.logger = logger or default_logger
        self.persistence = (
            create_persistence(persistence, self.logger)
            if persistence is not None
            else None
        )
        self._build = build
        self._arity = _positional_arity(build)
        self._cache: Dict[str, StateBundle] = {}
        self._descriptors: Optional[Tuple[FieldDescriptor, ...]] = None
        self._trackers: Dict[int, _Tracker] = {}
        self._parked: Dict[str, Dict[str, Any]] = {}

    @property
    def build(self) -> Callable[..., Mapping[str, Any]]:
        return self._build

    @property
    def cache(self) -> Mapping[str, StateBundle]:
        """Read-only view of the path -> bundle cache."""
        return MappingProxyType(self._cache)

    @property
    def descriptors(self) -> Optional[Tuple[FieldDescriptor, ...]]:
        """Field descriptors, known once the first bundle was built."""
        return self._descriptors

    def path_for(self, *args: Any) -> str:
        return derive_path(self.name, args[: self._arity])

    def _instantiate(self, args: Sequence[Any]) -> StateBundle:
        fields = self._build(*args)
        if not isinstance(fields, Mapping):
            raise TypeError(
                f'Build function of "{self.name}" must return a mapping of fields, '
                f"got {type(fields).__name__}"
            )
        bundle = StateBundle(fields, self._descriptors)
        if self._descriptors is None:
            self._descriptors = bundle.descriptors
        return bundle

    def _track(self, bundle: StateBundle, path: str) -> _Tracker:
        tracker = self._trackers.get(id(bundle))
        if tracker is None:
            tracker = _Tracker(self, bundle, path)
            self._trackers[id(bundle)] = tracker
        return tracker

    def _followers(self, path: str, exclude: _Tracker) -> List[_Tracker]:
        return [
            tracker
            for tracker in self._trackers.values()
            if tracker.path == path and tracker is not exclude
        ]

    def _resolve(self, path: str, args: Sequence[Any]) -> StateBundle:
        bundle = self._cache.get(path)
        if bundle is None:
            self.logger.log(f'Cache miss for "{path}", building state')
            bundle = self._instantiate(args)
            parked = self._parked.pop(path, None)
            if parked is not None:
                _assign(bundle, parked)
            self._cache[path] = bundle
        else:
            self.logger.log(f'Cache hit for "{path}"')
        if self.persistence is not None:
            self.persistence.restore(path, bundle)
        self._track(bundle, path)
        return bundle

    def _release(self, tracker: _Tracker) -> None:
        """Hand the cache entry of ``tracker.path`` on before the bundle leaves it."""
        path = tracker.path
        if self._cache.get(path) is not tracker.bundle:
            return
        others = self._followers(path, exclude=tracker)
        if others:
            self._cache[path] = others[0].bundle
            return
        del self._cache[path]
        self._parked[path] = {
            name: cell.value for name, cell in tracker.bundle.cells()
        }

    def _switch(
        self, tracker: _Tracker, new_path: str, cells: Tuple[Observable, ...]
    ) -> None:
        old_path = tracker.path
        if new_path == old_path:
            return
        self.logger.info(f'Switching "{old_path}" -> "{new_path}"')
        bundle = tracker.bundle
        if self.persistence is not None:
            self.persistence.persist(old_path, bundle)
        self._release(tracker)
        tracker.path = new_path

        parked = None if new_path in self._cache else self._parked.pop(new_path, None)
        if parked is not None:
            # Nobody shows the new path; the held bundle takes its entry over.
            self._cache[new_path] = bundle
            _assign(bundle, parked)
            if self.persistence is not None:
                self.persistence.restore(new_path, bundle)
            return

        source = self._resolve(new_path, [cell.value for cell in cells])
        merge_into(bundle, source, self._descriptors)

    def _propagate(self, tracker: _Tracker) -> None:
        for other in self._followers(tracker.path, exclude=tracker):
            merge_into(other.bundle, tracker.bundle, self._descriptors)
            other.mark_seen()
        if self.persistence is not None:
            self.persistence.persist(tracker.path, tracker.bundle)

    def __call__(self, *args: Any) -> StateBundle:
        arguments = args[: self._arity]
        values = [unwrap(arg) for arg in arguments]
        bundle = self._resolve(derive_path(self.name, values), values)
        if any(isinstance(arg, Observable) for arg in arguments):
            self._trackers[id(bundle)].follow(arguments)
        return bundle

    def get_state(self, *args: Any) -> Optional[Dict[str, Any]]:
        """
        Plain values for the given argument values, without subscribing.

        Returns the cell values of the cached bundle when there is one, else
        the parked values of a path no bundle shows any more, else the
        persisted record when storage is configured, else None. Never builds
        state or adds cache entries.
        """
        path = self.path_for(*args)
        bundle = self._cache.get(path)
        if bundle is not None:
            self.logger.log(f'Reading cached state for "{path}"')
            return bundle.snapshot()
        parked = self._parked.get(path)
        if parked is not None:
            return {name: to_plain(value) for name, value in parked.items()}
        if self.persistence is not None:
            return self.persistence.read(path)
        return None

    def dispose(self) -> None:
        """Stop every watcher installed by earlier calls; the cache stays."""
        for tracker in self._trackers.values():
            tracker.dispose()
        self._trackers.clear()

    def __repr__(self) -> str:
        return f"ViewModel({self.name!r}, cached={len(self._cache)})"


class TransientModel:
    """
    Unmemoized variant: unwraps its arguments and builds fresh state on
    every call, with no cache and no persistence.
    """

    def __init__(self, name: str, build: Callable[..., Mapping[str, Any]]):
        self.name = name
        self._build = build

    def __call__(self, *args: Any) -> StateBundle:
        return StateBundle(self._build(*(unwrap(arg) for arg in args)))

    def dispose(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"TransientModel({self.name!r})"


class ViewModelRegistry:
    """
    Set of defined model names plus the models defined through it.

    ``reset()`` disposes every model and forgets every name, which is what
    tests use to start from a clean slate.
    """

    def __init__(
        self, strict_names: bool = False, logger: Optional[DiagnosticLogger] = None
    ):
        self.strict_names = strict_names
        self.logger = logger or default_logger
        self._names: Set[str] = set()
        self._models: List[Any] = []

    @property
    def names(self) -> frozenset:
        return frozenset(self._names)

    @property
    def models(self) -> Tuple[Any, ...]:
        return tuple(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def register(self, name: str) -> None:
        if name in self._names:
            if self.strict_names:
                raise DuplicateViewModelError(
                    f'Multiple view models defined as "{name}"'
                )
            _log.warning('Multiple view models defined as "%s"', name)
            return
        self._names.add(name)

    def define(
        self,
        name: str,
        build: Callable[..., Mapping[str, Any]],
        persistence: Optional[PersistenceOptions] = None,
    ) -> ViewModel:
        self.register(name)
        model = ViewModel(name, build, persistence, logger=self.logger)
        self._models.append(model)
        return model

    def define_model(
        self, name: str, build: Callable[..., Mapping[str, Any]]
    ) -> TransientModel:
        self.register(name)
        model = TransientModel(name, build)
        self._models.append(model)
        return model

    def reset(self) -> None:
        for model in self._models:
            model.dispose()
        self._models.clear()
        self._names.clear()

    def __repr__(self) -> str:
        return f"ViewModelRegistry(names={sorted(self._names)})"


_registry: Optional[ViewModelRegistry] = None


def get_registry() -> ViewModelRegistry:
    """Get or create the process-wide default registry."""
    global _registry
    if _registry is None:
        _registry = ViewModelRegistry()
    return _registry


def _reset_registry() -> None:
    """Reset the default registry (for testing)."""
    global _registry
    if _registry is not None:
        _registry.reset()
    _registry = None


def define_view_model(
    name: str,
    build: Optional[Callable[..., Mapping[str, Any]]] = None,
    persistence: Optional[PersistenceOptions] = None,
    registry: Optional[ViewModelRegistry] = None,
):
    """
    Define a memoized, optionally persisted view model.

    Usable directly or as a decorator on the build function:

        @define_view_model("Todo", persistence=options)
        def use_todo(todo_id):
            ...
    """

    def decorator(func: Callable[..., Mapping[str, Any]]) -> ViewModel:
        return (registry or get_registry()).define(name, func, persistence)

    if build is None:
        return decorator
    return decorator(build)


def define_model(
    name: str,
    build: Optional[Callable[..., Mapping[str, Any]]] = None,
    registry: Optional[ViewModelRegistry] = None,
):
    """Define an unmemoized model; usable directly or as a decorator."""

    def decorator(func: Callable[..., Mapping[str, Any]]) -> TransientModel:
        return (registry or get_registry()).define_model(name, func)

    if build is None:
        return decorator
    return decorator(build)
