"""
Observable - Explicit Observer Runtime for View-Model State

Core Principles:
1. Mutable cells carry a version counter that moves only on a real change
2. Derived cells record their sources once and recompute lazily, memoized
   until one of the source versions moves
3. Watchers are explicit registrations; a change queues them and the queue
   is flushed when the outermost transaction closes (a lone set() is its own
   transaction), never in the middle of a mutation
4. A watcher queued several times inside one batch runs once

Example:
    count = observable(0)
    doubled = count >> (lambda c: c * 2)

    unsubscribe = doubled.subscribe(print)

    with transaction():
        count.set(1)
        count.set(2)
    # prints 4 once
"""

import itertools
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

# Upper bound on watcher runs within one flush before the runtime assumes
# watchers keep re-triggering each other.
MAX_FLUSH_ITERATIONS = 10_000

_key_counter = itertools.count(1)


# ============================================================================
# EXCEPTIONS
# ============================================================================


class CircularDependencyError(Exception):
    """Raised when watchers keep re-triggering each other within one flush."""

    pass


class ReactiveFunctionError(Exception):
    """Reactive function called manually."""

    pass


# ============================================================================
# REACTIVE CONTEXT - batching and flush
# ============================================================================


class ReactiveContext:
    """
    Owns the pending-watcher queue and the transaction depth.

    Watchers are queued in first-scheduled order and deduplicated by
    identity. The queue drains when the outermost batch closes; watchers that
    mutate cells while draining enqueue more watchers, which run in the same
    drain.
    """

    def __init__(self):
        self._depth = 0
        self._queue = {}
        self._flushing = False

    @property
    def in_batch(self) -> bool:
        return self._depth > 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    @contextmanager
    def batch(self) -> Iterator["ReactiveContext"]:
        """Defer watcher runs until the outermost batch exits."""
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
        if self._depth == 0:
            self.flush()

    def schedule(self, watcher: "Watcher") -> None:
        self._queue[watcher] = None

    def unschedule(self, watcher: "Watcher") -> None:
        self._queue.pop(watcher, None)

    def flush(self) -> None:
        """Run queued watchers until the queue is empty."""
        if self._flushing:
            return

        self._flushing = True
        runs = 0
        try:
            while self._queue:
                watcher = next(iter(self._queue))
                del self._queue[watcher]
                runs += 1
                if runs > MAX_FLUSH_ITERATIONS:
                    raise CircularDependencyError(
                        f"Watchers re-triggered more than {MAX_FLUSH_ITERATIONS} "
                        "times in one flush"
                    )
                watcher.run()
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._flushing = False


_context: Optional[ReactiveContext] = None
_context_lock = threading.Lock()


def get_context() -> ReactiveContext:
    """Get or create the process-wide reactive context."""
    global _context
    if _context is None:
        with _context_lock:
            if _context is None:
                _context = ReactiveContext()
    return _context


def _reset_context() -> None:
    """Reset the reactive context (for testing)."""
    global _context
    _context = None


def transaction():
    """
    Create a transaction context for batched updates.

    Watchers affected by any of the updates run once, after the outermost
    transaction exits.

    Example:
        with transaction():
            first.set("Jane")
            last.set("Roe")
        # full_name subscribers are notified once
    """
    return get_context().batch()


def _values_equal(old: Any, new: Any) -> bool:
    """Change detection used by cells and derived cells."""
    if old is new:
        return True
    if isinstance(old, np.ndarray) or isinstance(new, np.ndarray):
        return (
            isinstance(old, np.ndarray)
            and isinstance(new, np.ndarray)
            and np.array_equal(old, new)
        )
    if type(old) is not type(new):
        return False
    try:
        return bool(old == new)
    except (TypeError, ValueError):
        # Containers holding arrays have no single truth value; treat as changed.
        return False


# ============================================================================
# WATCHER
# ============================================================================


class Watcher:
    """
    Explicit registration on a fixed set of sources.

    The watcher is attached to every root cell its sources depend on; a
    change to any of them queues it on the current context.
    """

    __slots__ = ("_sources", "_callback", "_active", "__weakref__")

    def __init__(
        self, sources: Sequence["Observable"], callback: Callable[[], None]
    ):
        self._sources = tuple(sources)
        self._callback = callback
        self._active = True
        for source in self._sources:
            source._add_dependent(self)

    @property
    def active(self) -> bool:
        return self._active

    def notify(self) -> None:
        if self._active:
            get_context().schedule(self)

    def run(self) -> None:
        if self._active:
            self._callback()

    def dispose(self) -> None:
        if not self._active:
            return
        self._active = False
        for source in self._sources:
            source._remove_dependent(self)
        get_context().unschedule(self)


# ============================================================================
# OBSERVABLE - mutable cell
# ============================================================================


class Observable:
    """
    Mutable observable cell.

    Reading goes through ``value``/``get()``; writing through ``value =``,
    ``set()``. A write that does not change the value is ignored and does
    not move ``version``.
    """

    __slots__ = ("_key", "_value", "_version", "_dependents")

    def __init__(self, key: Optional[str] = None, initial_value: Any = None):
        self._key = key if key is not None else f"obs${next(_key_counter)}"
        self._value = initial_value
        self._version = 0
        self._dependents: List[Watcher] = []

    @property
    def key(self) -> str:
        return self._key

    @property
    def version(self) -> int:
        """Monotonic counter, bumped on every effective change."""
        return self._version

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        self.set(new_value)

    def get(self) -> Any:
        """Explicit getter (alias for value property)."""
        return self.value

    def set(self, new_value: Any) -> None:
        """Store a new value and queue every dependent watcher."""
        if _values_equal(self._value, new_value):
            # Equal values are adopted silently; version and watchers stay put.
            self._value = new_value
            return

        self._value = new_value
        self._version += 1

        with get_context().batch():
            for dependent in list(self._dependents):
                dependent.notify()

    def _add_dependent(self, watcher: Watcher) -> None:
        self._dependents.append(watcher)

    def _remove_dependent(self, watcher: Watcher) -> None:
        if watcher in self._dependents:
            self._dependents.remove(watcher)

    def subscribe(
        self, callback: Callable[[Any], None], call_immediately: bool = False
    ) -> Callable[[], None]:
        """
        Call ``callback(value)`` after each batch that changed this observable.

        Returns:
            Unsubscribe function
        """
        seen = self.version

        def on_change():
            nonlocal seen
            version = self.version
            if version == seen:
                return
            seen = version
            callback(self.value)

        watcher = Watcher((self,), on_change)
        if call_immediately:
            callback(self.value)
        return watcher.dispose

    # ========================================================================
    # OPERATORS
    # ========================================================================

    def __rshift__(self, transform: Callable) -> "ComputedObservable":
        """Map operator: obs >> f -> derived observable of f(obs.value)."""
        return ComputedObservable((self,), transform)

    def then(self, transform: Callable) -> "ComputedObservable":
        """Alias for >> operator."""
        return self >> transform

    def __add__(self, other: "Observable") -> "MergedObservable":
        """Product operator: obs1 + obs2 -> derived observable of (v1, v2)."""
        if not isinstance(other, Observable):
            raise TypeError(f"Cannot merge Observable with {type(other)}")
        return MergedObservable(self._merge_sources() + other._merge_sources())

    def alongside(self, *others: "Observable") -> "MergedObservable":
        """Alias for + with multiple observables."""
        merged = self
        for other in others:
            merged = merged + other
        return merged

    def _merge_sources(self) -> Tuple["Observable", ...]:
        return (self,)

    def __repr__(self) -> str:
        return f"Observable({self._key}={self._value!r})"


# ============================================================================
# COMPUTED OBSERVABLE - derived cell
# ============================================================================


class ComputedObservable(Observable):
    """
    Read-only observable derived from a fixed list of sources.

    The value is recomputed on read when any source version moved since the
    last computation; ``version`` moves only when the recomputed value
    differs from the memoized one.
    """

    __slots__ = ("_sources", "_transform", "_source_versions")

    def __init__(
        self,
        sources: Sequence[Observable],
        transform: Callable,
        key: Optional[str] = None,
    ):
        super().__init__(key if key is not None else f"computed${next(_key_counter)}")
        self._sources = tuple(sources)
        self._transform = transform
        self._source_versions: Optional[Tuple[int, ...]] = None

    @property
    def sources(self) -> Tuple[Observable, ...]:
        return self._sources

    @property
    def version(self) -> int:
        self._refresh()
        return self._version

    @property
    def value(self) -> Any:
        self._refresh()
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        self.set(new_value)

    def set(self, new_value: Any) -> None:
        """Cannot set derived values."""
        raise TypeError(f"{type(self).__name__} is derived and cannot be set directly")

    def _refresh(self) -> None:
        versions = tuple(source.version for source in self._sources)
        if versions == self._source_versions:
            return

        computed = self._compute()
        changed = self._source_versions is None or not _values_equal(
            self._value, computed
        )
        self._source_versions = versions
        self._value = computed
        if changed:
            self._version += 1

    def _compute(self) -> Any:
        return self._transform(*(source.value for source in self._sources))

    # Watchers attach to the root cells; derived cells hold no dependents.
    def _add_dependent(self, watcher: Watcher) -> None:
        for source in self._sources:
            source._add_dependent(watcher)

    def _remove_dependent(self, watcher: Watcher) -> None:
        for source in self._sources:
            source._remove_dependent(watcher)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._key}={self.value!r})"


class MergedObservable(ComputedObservable):
    """
    Tuple stream over several sources, produced by the + operator.

    ``(a + b) >> f`` calls ``f(a_value, b_value)``.
    """

    __slots__ = ()

    def __init__(self, sources: Sequence[Observable]):
        super().__init__(
            sources, lambda *values: tuple(values), key=f"merged${next(_key_counter)}"
        )

    def __rshift__(self, transform: Callable) -> ComputedObservable:
        return ComputedObservable(self._sources, transform)

    def _merge_sources(self) -> Tuple[Observable, ...]:
        return self._sources


# ============================================================================
# FACTORIES AND REACTIONS
# ============================================================================


def observable(initial_value: Any = None) -> Observable:
    """Create a standalone mutable observable."""
    return Observable(None, initial_value)


def computed(func: Callable, *sources: Observable) -> ComputedObservable:
    """Create a derived observable of ``func(*source_values)``."""
    return ComputedObservable(sources, func)


def watch(
    source: Observable,
    callback: Callable[[Any, Any], None],
    call_immediately: bool = False,
) -> Callable[[], None]:
    """
    Call ``callback(new, old)`` after each batch that changed ``source``.

    Returns:
        Unsubscribe function
    """
    seen = source.version
    last = source.value

    def on_change():
        nonlocal seen, last
        version = source.version
        if version == seen:
            return
        seen = version
        new = source.value
        old, last = last, new
        callback(new, old)

    watcher = Watcher((source,), on_change)
    if call_immediately:
        callback(last, None)
    return watcher.dispose


def effect(
    sources: Iterable[Observable], callback: Callable[[], None]
) -> Callable[[], None]:
    """
    Call ``callback()`` once after each batch that changed any of ``sources``.

    Returns:
        Unsubscribe function
    """
    sources = tuple(sources)

    def versions():
        return tuple(source.version for source in sources)

    seen = versions()

    def on_change():
        nonlocal seen
        current = versions()
        if current == seen:
            return
        seen = current
        callback()

    return Watcher(sources, on_change).dispose


def reactive(*dependencies, call_immediately=False):
    """
    Decorator for reactive functions.

    Creates functions that automatically run when dependencies change.
    Functions receive the new value of the dependency that changed.

    Example:
        @reactive(obs1, obs2)
        def my_effect(value):
            print(f"Changed to: {value}")
    """

    def decorator(func: Callable) -> Callable:
        unsubscribers = [
            dep.subscribe(func, call_immediately=call_immediately)
            for dep in dependencies
        ]
        unsubscribed = False

        def wrapper(*args, **kwargs):
            if not unsubscribed:
                raise ReactiveFunctionError(
                    "Reactive functions cannot be called manually. "
                    "They run automatically when dependencies change. "
                    "Call .unsubscribe() first to restore normal function behavior."
                )
            return func(*args, **kwargs)

        def unsubscribe():
            nonlocal unsubscribed
            for unsub in unsubscribers:
                unsub()
            unsubscribed = True

        wrapper.unsubscribe = unsubscribe
        wrapper._func = func
        return wrapper

    return decorator


__all__ = [
    # Core types
    "Observable",
    "ComputedObservable",
    "MergedObservable",
    "Watcher",
    "ReactiveContext",
    # Functions
    "observable",
    "computed",
    "watch",
    "effect",
    "reactive",
    "transaction",
    "get_context",
    # Exceptions
    "CircularDependencyError",
    "ReactiveFunctionError",
    # Configuration
    "MAX_FLUSH_ITERATIONS",
]
