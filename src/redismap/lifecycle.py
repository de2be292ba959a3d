"""Reference counted lifecycle of remote hashes.

Every `RedisMap` holds one `HashLease`. On attach the lease increments the reference
count stored in the reserved field of the remote hash. On release it decrements the
count, or deletes the whole hash when no other handle remains attached.

A lease is released by whichever trigger fires first:
- an explicit `RedisMap.close()`,
- the finalizer of a `RedisMap` that became unreachable (best effort, timing depends
  on the garbage collector),
- `ReleaseRegistry.release_all`, run once at interpreter exit.
Later triggers are no-ops.
"""

import atexit
import logging
import threading
from redismap import redismap_config
from redismap.redismap_exceptions import RefCountCorrupted

ATTACHED = "attached"
RELEASED = "released"


class ReleaseRegistry:
    """Registry of leases that still have to be released. The process-wide instance
    `PROCESS_REGISTRY` tears down every pending lease at interpreter exit, most recently
    attached first."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pending = {}

    def __len__(self):
        with self._lock:
            return len(self._pending)

    def register(self, lease):
        """Add a lease to be released at teardown."""
        with self._lock:
            self._pending[id(lease)] = lease

    def unregister(self, lease):
        """Forget a lease. Unknown leases are ignored."""
        with self._lock:
            self._pending.pop(id(lease), None)

    def release_all(self):
        """Release every pending lease in reverse order of registration. Failures are
        logged, never raised."""
        with self._lock:
            leases = list(self._pending.values())
            self._pending.clear()
        if leases:
            logging.debug(
                "ReleaseRegistry - release_all: Releasing %s pending lease(s).",
                len(leases),
            )
        for lease in reversed(leases):
            lease.release(raise_errors=False)


PROCESS_REGISTRY = ReleaseRegistry()
atexit.register(PROCESS_REGISTRY.release_all)


class HashLease:
    """Attachment of one handle to a remote hash.

    Creating a lease attaches it: the reference count is incremented (if
    `reference_counted`) and the lease is registered for teardown. The lease owns
    `store` and closes it on release.

    Neither attach nor release is transactional with respect to other handles: a
    handle attaching while the last other handle is deleting the hash may find its
    data gone.

    A lease attaching to a hash whose count is corrupted resets the count to 1, so the
    handles attached before it are no longer counted: the next release deletes the hash
    even if those handles still use it.

    :param RemoteStore store: Store connection, already bound to the hash's database.
    :param NamedHash named_hash: Hash to attach to.
    :param bool reference_counted: Whether this lease counts as a referent.
    :param ReleaseRegistry registry: Teardown registry, `PROCESS_REGISTRY` if `None`.
    """

    def __init__(self, store, named_hash, reference_counted=True, registry=None):
        self.store = store
        self.named_hash = named_hash
        self.reference_counted = reference_counted
        self.registry = registry if registry is not None else PROCESS_REGISTRY
        self._lock = threading.Lock()
        if reference_counted:
            self._attach()
        self.state = ATTACHED
        self.registry.register(self)

    @property
    def released(self):
        return self.state == RELEASED

    def _attach(self):
        name = self.named_hash.name
        try:
            count = self.store.increment_hash_field(
                name, redismap_config.REFCOUNT_FIELD, 1
            )
        except ValueError:
            # Referents cannot be counted anymore; restart from this handle
            logging.warning(
                "HashLease - _attach: Reference count of hash %s (db %s) is corrupted."
                + " Resetting it to 1.",
                name,
                self.named_hash.database_index,
            )
            self.store.hash_set(name, redismap_config.REFCOUNT_FIELD, "1")
            count = 1
        logging.info(
            "HashLease - _attach: Attached to hash %s (db %s), %s referent(s).",
            name,
            self.named_hash.database_index,
            count,
        )

    def release(self, raise_errors=True):
        """Detach from the hash and close the store connection, at most once.

        :param bool raise_errors: Re-raise store failures after logging them. Triggers
            that must not fail (finalizer, interpreter exit) pass `False`.

        :return: bool - `True` if this call released the lease, `False` if it was
            already released.
        """
        with self._lock:
            if self.state == RELEASED:
                logging.debug(
                    "HashLease - release: Hash %s already released, skipping.",
                    self.named_hash.name,
                )
                return False
            self.state = RELEASED
        self.registry.unregister(self)

        try:
            if self.reference_counted:
                self._detach()
        # pylint: disable=W0718
        except Exception as err:
            exception_string = (
                f"HashLease - release: Failed to detach from hash {self.named_hash.name}"
                + f" (db {self.named_hash.database_index}). Unexpected {err=},"
                + f" {type(err)=}"
            )
            logging.error(exception_string)
            if raise_errors:
                raise
        finally:
            self.store.close()
        return True

    def _detach(self):
        """Decrement the reference count and delete the hash if this lease was its last
        referent. The decision is taken from the result of the atomic decrement, so
        concurrent releases cannot both leave the hash behind. A missing or corrupted
        count deletes the hash."""
        name = self.named_hash.name
        try:
            remaining = self._decrement(name)
        except RefCountCorrupted as err:
            logging.warning("HashLease - _detach: %s Deleting the hash.", err)
            self.store.delete(name)
            return

        if remaining == 0:
            self.store.delete(name)
            logging.info(
                "HashLease - _detach: Last referent released, deleted hash %s (db %s).",
                name,
                self.named_hash.database_index,
            )
        else:
            logging.info(
                "HashLease - _detach: Released hash %s (db %s), %s referent(s) remain.",
                name,
                self.named_hash.database_index,
                remaining,
            )

    def _decrement(self, name):
        """Atomically decrement the reference count of hash `name`.

        :return: int - Number of referents left.

        :raises RefCountCorrupted: If the count was missing or not an integer.
        """
        try:
            remaining = self.store.increment_hash_field(
                name, redismap_config.REFCOUNT_FIELD, -1
            )
        except ValueError as err:
            raise RefCountCorrupted(
                f"Reference count of hash {name} is corrupted.", errors=err
            ) from err
        if remaining < 0:
            raise RefCountCorrupted(f"Reference count of hash {name} is missing.")
        return remaining
