"""Tests for the reactive runtime: cells, derived cells, watchers and batching."""

import numpy as np
import pytest

from vmodels import (
    CircularDependencyError,
    ComputedObservable,
    Observable,
    ReactiveFunctionError,
    computed,
    effect,
    get_context,
    observable,
    reactive,
    transaction,
    watch,
)


def test_observable_creation_with_key_and_value():
    """Test that an Observable keeps its key and initial value."""
    obs = Observable("test", "initial")
    assert obs.key == "test"
    assert obs.value == "initial"
    assert obs.get() == "initial"


def test_observable_generates_unique_keys():
    """Test that anonymous observables get distinct keys."""
    assert observable(1).key != observable(1).key


def test_set_and_value_assignment_update_the_cell():
    """Test that set() and value assignment both store the new value."""
    obs = observable(0)
    obs.set(1)
    assert obs.value == 1
    obs.value = 2
    assert obs.value == 2


def test_version_moves_only_on_real_changes():
    """Test that writing an equal value leaves the version untouched."""
    obs = observable(5)
    obs.set(5)
    assert obs.version == 0
    obs.set(6)
    assert obs.version == 1


def test_type_change_is_a_change():
    """Test that an equal value of another type is stored and notified."""
    obs = observable(1)
    received = []
    obs.subscribe(received.append)

    obs.set(True)

    assert obs.value is True
    assert obs.version == 1
    assert received == [True]


def test_equal_value_is_adopted_without_notification():
    """Test that an equal but distinct object replaces the stored one silently."""
    first = {"id": 1}
    second = {"id": 1}
    obs = observable(first)
    received = []
    obs.subscribe(received.append)

    obs.set(second)

    assert obs.value is second
    assert obs.version == 0
    assert received == []


def test_numpy_arrays_compare_by_content():
    """Test that an equal array is not treated as a change."""
    obs = observable(np.array([1, 2, 3]))
    obs.set(np.array([1, 2, 3]))
    assert obs.version == 0
    obs.set(np.array([1, 2, 4]))
    assert obs.version == 1


def test_subscription_callback_receives_new_value():
    """Test that subscription callback is executed when observable changes."""
    obs = Observable("test", "initial")
    received = []

    obs.subscribe(received.append)
    assert received == []

    obs.set("changed")
    assert received == ["changed"]


def test_subscription_call_immediately():
    """Test that call_immediately delivers the current value right away."""
    obs = observable("now")
    received = []
    obs.subscribe(received.append, call_immediately=True)
    assert received == ["now"]


def test_unsubscribe_removes_callback():
    """Test that the returned function stops further notifications."""
    obs = observable(0)
    received = []

    unsubscribe = obs.subscribe(received.append)
    obs.set(1)
    unsubscribe()
    obs.set(2)

    assert received == [1]


class TestComputedObservable:
    """Tests for derived cells."""

    def test_rshift_derives_value(self):
        """obs >> f produces f(obs.value)."""
        count = observable(2)
        doubled = count >> (lambda c: c * 2)
        assert isinstance(doubled, ComputedObservable)
        assert doubled.value == 4

        count.set(5)
        assert doubled.value == 10

    def test_derived_is_read_only(self):
        """Derived cells refuse writes."""
        doubled = observable(1) >> (lambda c: c * 2)
        with pytest.raises(TypeError):
            doubled.set(3)
        with pytest.raises(TypeError):
            doubled.value = 3

    def test_recomputes_lazily_and_memoizes(self):
        """The transform runs on read, once per change of its sources."""
        calls = []
        source = observable(1)

        def transform(value):
            calls.append(value)
            return value + 1

        derived = source >> transform
        assert calls == []

        assert derived.value == 2
        assert derived.value == 2
        assert calls == [1]

        source.set(2)
        source.set(3)
        assert calls == [1]
        assert derived.value == 4
        assert calls == [1, 3]

    def test_chained_derivations(self):
        """Derived cells can depend on other derived cells."""
        base = observable(1)
        plus_one = base >> (lambda v: v + 1)
        times_ten = plus_one >> (lambda v: v * 10)

        assert times_ten.value == 20
        base.set(4)
        assert times_ten.value == 50

    def test_merged_sources_unpack_into_transform(self):
        """(a + b) >> f calls f with both values."""
        first = observable("John")
        last = observable("Doe")
        full_name = (first + last) >> (lambda f, l: f"{f} {l}")

        assert (first + last).value == ("John", "Doe")
        assert full_name.value == "John Doe"
        first.set("Jane")
        assert full_name.value == "Jane Doe"

    def test_computed_factory(self):
        """computed(func, *sources) matches the operator form."""
        a = observable(2)
        b = observable(3)
        product = computed(lambda x, y: x * y, a, b)
        assert product.value == 6

    def test_subscriber_notified_only_when_result_changes(self):
        """A source change that leaves the derived value equal is silent."""
        number = observable(2)
        is_even = number >> (lambda n: n % 2 == 0)
        received = []
        is_even.subscribe(received.append)

        number.set(4)
        assert received == []
        number.set(5)
        assert received == [False]


class TestBatching:
    """Tests for transaction() and watcher scheduling."""

    def test_transaction_delivers_one_notification(self):
        """Several writes inside a transaction notify once."""
        obs = observable(0)
        received = []
        obs.subscribe(received.append)

        with transaction():
            obs.set(1)
            obs.set(2)
            obs.set(3)
            assert received == []

        assert received == [3]

    def test_nested_transactions_flush_at_outermost_exit(self):
        """Inner transactions do not flush."""
        obs = observable(0)
        received = []
        obs.subscribe(received.append)

        with transaction():
            with transaction():
                obs.set(1)
            assert received == []
        assert received == [1]

    def test_effect_runs_once_for_several_sources(self):
        """An effect over two cells changed in one batch runs once."""
        a = observable(0)
        b = observable(0)
        runs = []
        effect([a, b], lambda: runs.append((a.value, b.value)))

        with transaction():
            a.set(1)
            b.set(2)

        assert runs == [(1, 2)]

    def test_effect_unsubscribe(self):
        """The effect stops running once disposed."""
        a = observable(0)
        runs = []
        stop = effect([a], lambda: runs.append(a.value))
        a.set(1)
        stop()
        a.set(2)
        assert runs == [1]

    def test_watch_delivers_new_and_old(self):
        """watch() passes (new, old) pairs."""
        obs = observable("a")
        changes = []
        watch(obs, lambda new, old: changes.append((new, old)))

        obs.set("b")
        obs.set("c")
        assert changes == [("b", "a"), ("c", "b")]

    def test_watch_on_derived_cell(self):
        """watch() follows derived values, not source writes."""
        number = observable(1)
        parity = number >> (lambda n: "odd" if n % 2 else "even")
        changes = []
        watch(parity, lambda new, old: changes.append((new, old)))

        number.set(3)
        number.set(4)
        assert changes == [("even", "odd")]

    def test_watcher_writes_are_flushed_in_same_pass(self):
        """A watcher that writes another cell triggers that cell's watchers."""
        source = observable(0)
        mirror = observable(0)
        seen = []
        source.subscribe(mirror.set)
        mirror.subscribe(seen.append)

        source.set(7)
        assert mirror.value == 7
        assert seen == [7]
        assert get_context().pending == 0

    def test_runaway_watchers_raise(self):
        """Watchers that keep re-triggering each other are stopped."""
        a = observable(0)
        b = observable(0)
        a.subscribe(lambda value: b.set(value + 1))
        b.subscribe(lambda value: a.set(value + 1))

        with pytest.raises(CircularDependencyError):
            a.set(1)
        assert get_context().pending == 0


class TestReactiveDecorator:
    """Tests for the @reactive decorator."""

    def test_reactive_runs_on_change(self):
        """@reactive functions run when a dependency changes."""
        count = observable(0)
        notifications = []

        @reactive(count)
        def log_count(value):
            notifications.append(value)

        assert notifications == []
        count.set(5)
        assert notifications == [5]

    def test_reactive_function_cannot_be_called_manually(self):
        """Manual calls raise until the function is unsubscribed."""
        count = observable(0)

        @reactive(count)
        def log_count(value):
            return value

        with pytest.raises(ReactiveFunctionError):
            log_count(1)

        log_count.unsubscribe()
        assert log_count(1) == 1
        count.set(3)
