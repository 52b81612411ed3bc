from vmodels import (
    MemoryStorage,
    PersistenceOptions,
    define_view_model,
    observable,
    transaction,
    watch,
)

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a view model")
print("-" * 100)
print()

storage = MemoryStorage()


# The build function receives plain argument values and returns the state bundle fields:
# observables (cells), derived observables and plain functions (behaviors).
@define_view_model("Count", persistence=PersistenceOptions(storage))
def use_count(username):
    count = observable(0)
    return {
        "count": count,
        "next_number": count >> (lambda c: c + 1),
        "increment": lambda by=1: count.set(count.value + by),
    }


username = observable("alice")
state = use_count(username)

state.increment()
state.increment(5)
print(f"alice: count={state.count.value}, next={state.next_number.value}")
print(f"stored: {storage.get('VIEW_MODEL.Count.alice')}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Switching arguments under a held bundle")
print("-" * 100)
print()

# Watchers on the held cells keep working across the switch.
watch(state.count, lambda new, old: print(f"count: {old} -> {new}"))

username.set("bob")  # count: 6 -> 0
state.increment(2)  # count: 0 -> 2

print(f"bob via get_state: {use_count.get_state('bob')}")

# alice's record was written before the switch.
print(f"stored for alice: {storage.get('VIEW_MODEL.Count.alice')}")

# A new caller for alice gets alice's state, not the held bundle.
print(f"alice again: count={use_count('alice').count.value}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Batching")
print("-" * 100)
print()

# Watchers run once after the outermost transaction.
with transaction():
    state.increment()
    state.increment()
    state.increment()
