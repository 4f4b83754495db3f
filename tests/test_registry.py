import pytest

from batchloader.error import LoaderError
from batchloader.registry import Registry


def make_registry(keys):
    registry = Registry()
    for key in keys:
        registry.get_or_create(key, lambda k: "thunk-{}".format(k))
    return registry


def test_get_or_create():
    calls = []

    def factory(key):
        calls.append(key)
        return object()

    registry = Registry()
    first = registry.get_or_create("a", factory)
    assert registry.get_or_create("a", factory) is first
    assert calls == ["a"]
    assert "a" in registry
    assert len(registry) == 1
    assert registry.pending_keys() == ("a",)


def test_take_forcing_first():
    registry = make_registry([1, 2, 3, 4, 5])
    batch = registry.take(4, 3)
    assert batch[0] == "thunk-4"
    assert len(batch) == 3
    assert len(registry.pending) == 2
    assert len(registry) == 5
    taken = {int(thunk.split("-")[1]) for thunk in batch}
    assert not taken & set(registry.pending_keys())


def test_take_all():
    registry = make_registry([1, 2])
    assert sorted(registry.take(2, 100)) == ["thunk-1", "thunk-2"]
    assert registry.pending_keys() == ()


def test_take_single():
    registry = make_registry([1, 2])
    assert registry.take(1, 1) == ["thunk-1"]
    assert registry.pending_keys() == (2,)


def test_take_in_flight():
    registry = make_registry([1, 2])
    registry.take(1, 10)
    with pytest.raises(LoaderError) as err:
        registry.take(2, 10)
    err.match("Key 2 is already being loaded")


def test_take_unknown():
    registry = make_registry([1])
    with pytest.raises(KeyError):
        registry.take(7, 10)
