"""Tests for in-place bundle merging."""

from vmodels import StateBundle, merge_into, observable


def build(count_value, label_value):
    count = observable(count_value)
    label = observable(label_value)
    return StateBundle(
        {
            "count": count,
            "label": label,
            "summary": (count + label) >> (lambda c, l: f"{l}:{c}"),
            "increment": lambda: count.set(count.value + 1),
        }
    )


def test_merge_copies_cell_values_and_keeps_cell_identity():
    """Test that target cells keep identity and receive source values."""
    target = build(1, "one")
    source = build(2, "two")
    count_cell = target.count

    merge_into(target, source)

    assert target.count is count_cell
    assert target.count.value == 2
    assert target.label.value == "two"


def test_merge_leaves_behaviors_and_derived_cells_in_place():
    """Test that behaviors and derived cells are not replaced."""
    target = build(1, "one")
    source = build(2, "two")
    increment = target.increment
    summary = target.summary

    merge_into(target, source)

    assert target.increment is increment
    assert target.summary is summary
    assert target.summary.value == "two:2"

    target.increment()
    assert target.count.value == 3
    assert source.count.value == 2


def test_merge_notifies_subscribers_once():
    """Test that subscribers of the target see one consolidated batch."""
    target = build(1, "one")
    source = build(2, "two")
    summaries = []
    target.summary.subscribe(summaries.append)

    merge_into(target, source)

    assert summaries == ["two:2"]


def test_merge_into_itself_is_a_noop():
    """Test that merging a bundle into itself changes nothing."""
    bundle = build(1, "one")
    merge_into(bundle, bundle)
    assert bundle.count.value == 1


def test_merge_follows_given_descriptors():
    """Test that only the cells named by the descriptors are copied."""
    target = build(1, "one")
    source = build(2, "two")
    count_only = [d for d in source.descriptors if d.name == "count"]

    merge_into(target, source, count_only)

    assert target.count.value == 2
    assert target.label.value == "one"
