"""Test module for the reference counted lifecycle of remote hashes"""

import gc
import logging
import threading
import time
import pytest
from redismap import NamedHash, RedisMap
from redismap.lifecycle import ATTACHED, RELEASED, HashLease, ReleaseRegistry
from redismap.redismap_config import REFCOUNT_FIELD
from redismap.redismap_exceptions import StoreUnavailable


def wait_for_release(registry, pending, timeout=2.0):
    """Collect garbage until no more than `pending` leases remain in `registry`.
    Finalizers run whenever the collector gets to them, so allow a bounded wait."""
    deadline = time.monotonic() + timeout
    while len(registry) > pending and time.monotonic() < deadline:
        gc.collect()
        time.sleep(0.01)
    return len(registry) <= pending


def test_reference_count_tracks_handles(open_map):
    """Check that attaching increments and closing decrements the count."""
    map1 = open_map("inUse", 2)
    assert map1.get(REFCOUNT_FIELD) == "1"

    map2 = open_map("inUse", 2)
    assert map2.get(REFCOUNT_FIELD) == "2"

    map2.close()
    assert map1.get(REFCOUNT_FIELD) == "1"


def test_last_release_deletes_hash(open_map, raw):
    """Check that N handles keep the hash until the last one is released."""
    handles = [open_map("shared") for _ in range(4)]
    handles[0].put("a", "1")

    for redis_map in handles[:-1]:
        redis_map.close()
    survivor = handles[-1]
    assert survivor.get("a") == "1"
    assert survivor.get(REFCOUNT_FIELD) == "1"

    survivor.close()
    assert not raw().exists("shared")
    assert open_map("shared").is_empty()


def test_concurrent_releases_delete_hash(connect, registry, raw):
    """Check that two handles released at the same time still delete the hash."""
    barrier = threading.Barrier(2, timeout=5)
    handles = []
    for _ in range(2):
        store = connect()
        handles.append(RedisMap(name="race", store=store, registry=registry))
        increment = store.increment_hash_field

        def decrement_together(name, field, delta, increment=increment):
            # Both handles reach the store before either one decrements
            if delta < 0:
                barrier.wait()
            return increment(name, field, delta)

        store.increment_hash_field = decrement_together
    handles[0].put("a", "1")
    assert handles[0].get(REFCOUNT_FIELD) == "2"

    errors = []

    def close(redis_map):
        try:
            redis_map.close()
        # pylint: disable=W0718
        except Exception as err:
            errors.append(err)

    threads = [threading.Thread(target=close, args=(redis_map,)) for redis_map in handles]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors
    assert all(redis_map.closed for redis_map in handles)
    assert not raw().exists("race")


def test_ephemeral_hash_deleted_on_close(open_map, raw):
    """Check that closing the only handle of an auto-named hash deletes it."""
    redis_map = open_map()
    redis_map.put("a", "1")
    name = redis_map.name
    assert raw().exists(name)
    redis_map.close()
    assert not raw().exists(name)


def test_close_twice(open_map):
    """Check that only the first close releases the handle."""
    redis_map = open_map("twice")
    other = open_map("twice")
    assert redis_map.close()
    assert not redis_map.close()
    assert other.get(REFCOUNT_FIELD) == "1"


def test_context_manager_releases(open_map, raw):
    """Check that leaving a with block releases the handle, also on errors."""
    with open_map() as redis_map:
        redis_map.put("a", "1")
        name = redis_map.name
    assert redis_map.closed
    assert not raw().exists(name)

    with pytest.raises(RuntimeError):
        with open_map("failing") as redis_map:
            redis_map.put("a", "1")
            raise RuntimeError("boom")
    assert not raw().exists("failing")


def test_uncounted_handle_never_deletes(open_map, raw):
    """Check that a handle opened without reference counting leaves the hash alone."""
    counted = open_map("persistent")
    counted.put("a", "1")
    viewer = open_map("persistent", reference_counted=False)
    assert counted.get(REFCOUNT_FIELD) == "1"
    viewer.close()
    assert raw().hget("persistent", "a") == "1"
    counted.close()
    assert not raw().exists("persistent")


def test_corrupted_count_is_reset_on_attach(open_map, caplog):
    """Check that attaching to a hash with a non-numeric count resets it."""
    map1 = open_map("badInUse")
    map1.put(REFCOUNT_FIELD, "NaN")
    with caplog.at_level(logging.WARNING):
        map2 = open_map("badInUse")
    assert "corrupted" in caplog.text
    assert map2.get(REFCOUNT_FIELD) == "1"

    # Handles attached before the reset are not counted anymore
    map2.put("a", "1")
    map1.close()
    assert map2.is_empty()


def test_corrupted_count_deletes_on_release(open_map):
    """Check that releasing with a corrupted count deletes the hash."""
    map1 = open_map("badInUse")
    map1.put(REFCOUNT_FIELD, "NaN")
    map1.put("9", "aN")
    map2 = open_map("badInUse")

    map1.close()
    map1 = open_map("badInUse")
    assert map1.is_empty()
    assert map2.is_empty()


def test_missing_count_deletes_on_release(open_map, raw):
    """Check that a count lost to clear() is treated as corrupted on release."""
    map1 = open_map("cleared")
    map2 = open_map("cleared")
    map1.clear()
    map2.put("b", "2")
    assert map1.close()
    assert not raw().exists("cleared")


def test_unreachable_map_deletes_hash(open_map, registry):
    """Check that a garbage collected handle releases its hash."""
    redis_map = open_map("GC", 1)
    redis_map.put("test1", "value1")
    redis_map.keys()

    del redis_map
    assert wait_for_release(registry, 0)

    redis_map = open_map("GC", 1)
    assert redis_map.is_empty()


def test_unreachable_map_keeps_hash_in_use(open_map, registry):
    """Check that collecting some handles keeps the hash for the others."""
    map1 = open_map("noGC", 2)
    map2 = open_map("noGC", 2)
    map3 = open_map("noGC", 2)
    map1.put("test1", "value1")
    map2.put("test2", "value2")
    map3.put("test3", "value3")

    del map1
    del map2
    assert wait_for_release(registry, 1)

    map1 = open_map("noGC", 2)
    assert not map1.is_empty()
    assert not map3.is_empty()
    assert map3.get(REFCOUNT_FIELD) == "2"


def test_release_all_tears_down_pending_handles(open_map, registry, raw):
    """Check that the exit registry releases every open handle once."""
    ephemeral = open_map()
    ephemeral.put("a", "1")
    shared1 = open_map("exit")
    shared2 = open_map("exit")
    shared1.put("b", "2")
    assert len(registry) == 3

    registry.release_all()
    assert len(registry) == 0
    assert not raw().exists(ephemeral.name)
    assert not raw().exists("exit")
    assert ephemeral.closed and shared1.closed and shared2.closed
    assert not shared1.close()


def test_lease_states(connect, registry):
    """Check the attached and released states of a lease."""
    store = connect()
    lease = HashLease(store, NamedHash("leased"), registry=registry)
    assert lease.state == ATTACHED
    assert len(registry) == 1
    assert lease.release()
    assert lease.state == RELEASED
    assert lease.released
    assert len(registry) == 0
    assert not lease.release()


def test_release_failure_is_raised_then_released(open_map, server, registry):
    """Check that an explicit close reports store failures but still releases."""
    redis_map = open_map("outage")
    server.connected = False
    with pytest.raises(StoreUnavailable):
        redis_map.close()
    assert redis_map.closed
    assert len(registry) == 0
    server.connected = True
    assert not redis_map.close()


def test_release_failure_is_logged_at_exit(open_map, server, registry, caplog):
    """Check that teardown at exit logs store failures instead of raising."""
    redis_map = open_map("outage")
    server.connected = False
    with caplog.at_level(logging.ERROR):
        registry.release_all()
    assert "Failed to detach" in caplog.text
    assert redis_map.closed


def test_registry_releases_in_reverse_order():
    """Check that the most recently registered lease is released first."""
    released = []

    class Lease:
        def __init__(self, name):
            self.name = name

        def release(self, raise_errors=True):
            released.append((self.name, raise_errors))

    registry = ReleaseRegistry()
    first, second = Lease("first"), Lease("second")
    registry.register(first)
    registry.register(second)
    registry.unregister(Lease("unknown"))
    registry.release_all()
    assert released == [("second", False), ("first", False)]
