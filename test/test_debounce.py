import threading

from debounce import Debouncer, DebouncerGroup


def test_only_latest_call_is_delivered():
    calls = []
    debounced = Debouncer(calls.append, wait=5)
    for value in ("a", "ab", "abc"):
        debounced(value)
    assert calls == []
    assert debounced.pending
    debounced.flush()
    assert calls == ["abc"]
    assert not debounced.pending


def test_fires_after_quiet_period():
    done = threading.Event()
    calls = []

    def record(value):
        calls.append(value)
        done.set()

    debounced = Debouncer(record, wait=0.01)
    debounced(1)
    debounced(2)
    assert done.wait(2)
    assert calls == [2]


def test_cancel_drops_pending_call():
    calls = []
    debounced = Debouncer(calls.append, wait=5)
    debounced("x")
    debounced.cancel()
    debounced.flush()
    assert calls == []


def test_flush_without_pending_call_is_a_no_op():
    calls = []
    Debouncer(calls.append, wait=5).flush()
    assert calls == []


def test_group_keeps_keys_independent():
    calls = []
    group = DebouncerGroup(wait=5)
    group.call(("item-1", "quantity"), lambda v: calls.append(("quantity", v)), 2)
    group.call(("item-1", "model"), lambda v: calls.append(("model", v)), "H510")
    group.call(("item-1", "quantity"), lambda v: calls.append(("quantity", v)), 3)
    group.flush()
    assert sorted(calls) == [("model", "H510"), ("quantity", 3)]


def test_group_cancel():
    calls = []
    group = DebouncerGroup(wait=5)
    group.call("k", calls.append, 1)
    group.cancel()
    group.flush()
    assert calls == []


def test_group_cancel_where_only_matching_keys():
    calls = []
    group = DebouncerGroup(wait=5)
    group.call(("item-1", "quantity"), calls.append, "item-1 quantity")
    group.call(("item-1", "model"), calls.append, "item-1 model")
    group.call(("item-2", "quantity"), calls.append, "item-2 quantity")
    group.cancel_where(lambda key: key[0] == "item-1")
    group.flush()
    assert calls == ["item-2 quantity"]
