import time

import pytest

from vppchain.metadata import (
    IFINDEX,
    LINK,
    PEER,
    WAIT_TILL_UP,
    Context,
    ContextCancelledError,
    DeadlineExceededError,
    MetadataKey,
)


def test_store_and_load():
    ctx = Context()
    IFINDEX.store(ctx, True, 7)
    assert IFINDEX.load(ctx, True) == 7


def test_client_and_server_are_separate():
    ctx = Context()
    IFINDEX.store(ctx, True, 3)
    assert IFINDEX.load(ctx, False) is None
    IFINDEX.store(ctx, False, 4)
    assert IFINDEX.load(ctx, True) == 3
    assert IFINDEX.load(ctx, False) == 4


def test_keys_do_not_collide():
    ctx = Context()
    LINK.store(ctx, True, "link-object")
    PEER.store(ctx, True, "peer-object")
    assert LINK.load(ctx, True) == "link-object"
    assert PEER.load(ctx, True) == "peer-object"


def test_zero_and_false_are_values():
    ctx = Context()
    IFINDEX.store(ctx, True, 0)
    WAIT_TILL_UP.store(ctx, True, False)
    assert IFINDEX.load(ctx, True) == 0
    assert WAIT_TILL_UP.load(ctx, True) is False


def test_delete():
    ctx = Context()
    WAIT_TILL_UP.store(ctx, False, True)
    WAIT_TILL_UP.delete(ctx, False)
    assert WAIT_TILL_UP.load(ctx, False) is None
    WAIT_TILL_UP.delete(ctx, False)
    assert ctx.metadata(False) == {}


def test_load_or_store_stores_when_absent():
    ctx = Context()
    assert IFINDEX.load_or_store(ctx, True, 5) == (None, False)
    assert IFINDEX.load(ctx, True) == 5


def test_load_or_store_loads_when_present():
    ctx = Context()
    IFINDEX.store(ctx, True, 5)
    assert IFINDEX.load_or_store(ctx, True, 9) == (5, True)
    assert IFINDEX.load(ctx, True) == 5


def test_load_and_delete():
    ctx = Context()
    IFINDEX.store(ctx, True, 11)
    assert IFINDEX.load_and_delete(ctx, True) == 11
    assert IFINDEX.load_and_delete(ctx, True) is None


def test_wrong_type_stored_directly_is_not_loaded():
    ctx = Context()
    ctx.metadata(True)[IFINDEX] = "not an index"
    assert IFINDEX.load(ctx, True) is None
    assert IFINDEX.load_or_store(ctx, True, 1) == (None, False)
    assert ctx.metadata(True)[IFINDEX] == "not an index"


def test_store_rejects_wrong_type():
    ctx = Context()
    with pytest.raises(TypeError):
        IFINDEX.store(ctx, True, True)
    with pytest.raises(TypeError):
        WAIT_TILL_UP.store(ctx, True, 1)


def test_distinct_keys_with_same_name():
    ctx = Context()
    first = MetadataKey("k", str)
    second = MetadataKey("k", str)
    first.store(ctx, True, "a")
    assert second.load(ctx, True) is None


def test_cancel():
    ctx = Context()
    assert ctx.err is None
    ctx.cancel()
    assert ctx.done.is_set()
    assert isinstance(ctx.err, ContextCancelledError)


def test_context_manager_cancels():
    with Context() as ctx:
        assert not ctx.done.is_set()
    assert ctx.done.is_set()


def test_timeout_expires():
    ctx = Context(timeout=0.05)
    assert ctx.done.wait(2.0)
    assert isinstance(ctx.err, DeadlineExceededError)


def test_with_values_shares_metadata_and_is_live():
    ctx = Context(values={"name": "conn"})
    IFINDEX.store(ctx, True, 2)
    ctx.cancel()
    fresh = ctx.with_values()
    assert not fresh.done.is_set()
    assert fresh.err is None
    assert IFINDEX.load(fresh, True) == 2
    assert fresh.values["name"] == "conn"
    IFINDEX.store(fresh, False, 8)
    assert IFINDEX.load(ctx, False) == 8


def test_with_values_keeps_timeout():
    ctx = Context(timeout=0.05)
    time.sleep(0.1)
    fresh = ctx.with_values()
    assert fresh.done.wait(2.0)
    assert isinstance(fresh.err, DeadlineExceededError)