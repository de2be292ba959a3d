"""Core module for RedisMap"""

import inspect
import logging
import weakref
from collections.abc import Mapping, MutableMapping
from redismap import redismap_config
from redismap.lifecycle import HashLease
from redismap.naming import generate_hash_name
from redismap.remotestore import NamedHash, RemoteStoreFactory
from redismap.scanner import CursorScanner
from redismap.views import RemoteItems, RemoteKeys, RemoteValues


class RedisMap(MutableMapping):
    """RedisMap is a mutable mapping from `str` keys to `str` values backed by a hash
    in a remote Redis store. Nothing is cached locally: every operation is a blocking
    round trip, so several handles, in this process or others, attached to the same
    hash see each other's writes.

    A RedisMap either attaches to the hash called `name` or, if no name is given,
    creates a fresh ephemeral hash with a generated name. Attaching increments a
    reference count kept in the reserved field `redismap_config.REFCOUNT_FIELD` of the
    hash; releasing the handle decrements it, and the last handle to release deletes
    the hash. A handle is released by `close()` (or leaving a `with` block), when it is
    garbage collected, or at interpreter exit, whichever comes first.

    The reserved field is hidden from `len()`, iteration and `in`, but it shares the
    namespace of user keys: writing or removing a key with the same name corrupts the
    count. A corrupted count deletes the hash on the next release.

    :param str host: Host of the Redis server.
    :param int port: Port of the Redis server.
    :param str name: Name of the hash to attach to; `None` generates a fresh name.
        This and the following parameters are keyword-only.
    :param int database_index: Logical database holding the hash.
    :param RemoteStore store: Store connection to use instead of connecting to
        `host`:`port`. The map takes ownership and closes it on release.
    :param bool reference_counted: Whether this handle counts as a referent of the
        hash. Uncounted handles never delete the hash.
    :param int page_size: Number of fields fetched per scan page when iterating.
    :param ReleaseRegistry registry: Teardown registry for the handle's lease;
        the process-wide registry if `None`.
    """

    def __init__(
        self,
        host=redismap_config.STORE_HOST,
        port=redismap_config.STORE_PORT,
        *,
        name=None,
        database_index=redismap_config.STORE_DATABASE_INDEX,
        store=None,
        reference_counted=True,
        page_size=redismap_config.SCAN_PAGE_SIZE,
        registry=None,
    ):
        if name is not None:
            self._check_string(name, "name")
            if name.strip() == "":
                exception_string = "RedisMap - __init__: name cannot be empty."
                logging.error(exception_string)
                raise ValueError(exception_string)
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            exception_string = (
                f"RedisMap - __init__: page_size must be an integer > 0, found: {page_size}."
            )
            logging.error(exception_string)
            raise ValueError(exception_string)

        if store is None:
            properties = {
                "store_host": host,
                "store_port": port,
                "store_database_index": database_index,
            }
            store = RemoteStoreFactory.get_remotestore(
                "redismap.redisstore", "RedisRemoteStore", properties
            )
        try:
            store.select(database_index)
            if name is None:
                name = generate_hash_name(store)
            named_hash = NamedHash(name, database_index)
            lease = HashLease(store, named_hash, reference_counted, registry)
        except Exception as err:
            exception_string = (
                f"RedisMap - __init__: Unable to attach to hash {name}"
                + f" (db {database_index}). Unexpected {err=}, {type(err)=}"
            )
            logging.error(exception_string)
            store.close()
            raise err

        self._store = store
        self._hash = named_hash
        self._page_size = page_size
        self._lease = lease
        # Releases the lease once this map is unreachable; exit is handled by the registry
        self._finalizer = weakref.finalize(self, lease.release, False)
        self._finalizer.atexit = False
        self._keys = None
        self._values = None
        self._items = None
        logging.debug(
            "RedisMap - __init__: Attached to hash %s (db %s).", name, database_index
        )

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(name={self._hash.name!r},"
            + f" database_index={self._hash.database_index})"
        )

    @property
    def name(self):
        """Name of the remote hash, for attaching from other handles or processes."""
        return self._hash.name

    @property
    def database_index(self):
        """Logical database holding the remote hash."""
        return self._hash.database_index

    @property
    def named_hash(self):
        return self._hash

    @property
    def closed(self):
        return self._lease.released

    @property
    def _remote(self):
        """Store connection of this map; fails once the map is closed."""
        if self._lease.released:
            method = inspect.stack()[1].function
            exception_string = f"RedisMap - {method}: map {self._hash.name} is closed."
            logging.error(exception_string)
            raise ValueError(exception_string)
        return self._store

    # Lifecycle

    def close(self):
        """Release this handle: decrement the reference count, or delete the hash if
        this is the last handle, then close the store connection. Closing twice is a
        no-op.

        :return: bool - `True` if this call released the handle.
        """
        self._finalizer.detach()
        return self._lease.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # Size and Containment

    def size(self):
        """Count the user fields of the remote hash, the reference count excluded."""
        store = self._remote
        field_count = store.hash_length(self._hash.name)
        if field_count and store.hash_exists(
            self._hash.name, redismap_config.REFCOUNT_FIELD
        ):
            field_count -= 1
        return max(field_count, 0)

    def __len__(self):
        return self.size()

    def is_empty(self):
        return self.size() == 0

    def contains_key(self, key):
        self._check_string(key, "key")
        if key == redismap_config.REFCOUNT_FIELD:
            return False
        return self._remote.hash_exists(self._hash.name, key)

    def __contains__(self, key):
        return self.contains_key(key)

    def contains_value(self, value):
        """Scan the hash for `value`. Costs a full scan when the value is absent."""
        if not isinstance(value, str):
            return False
        return any(found == value for _, found in self.scan())

    # Reads and Writes

    def get(self, key, default=None):
        """Get the value stored for `key`, or `default` if the key is not set."""
        self._check_string(key, "key")
        value = self._remote.hash_get(self._hash.name, key)
        return default if value is None else value

    def __getitem__(self, key):
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def put(self, key, value):
        """Store `value` for `key` and return the previous value (`None` if unset).

        The previous value is read before the write in a separate round trip, so a
        concurrent writer to the same key in between is silently overwritten.
        """
        self._check_string(key, "key")
        self._check_string(value, "value")
        store = self._remote
        previous = store.hash_get(self._hash.name, key)
        store.hash_set(self._hash.name, key, value)
        logging.debug("RedisMap - put: Set key %s in hash %s.", key, self._hash.name)
        return previous

    def __setitem__(self, key, value):
        self.put(key, value)

    def remove(self, key):
        """Delete `key` and return its previous value, or `None` if it was not set.
        Like `put`, the read and the delete are separate round trips."""
        self._check_string(key, "key")
        store = self._remote
        previous = store.hash_get(self._hash.name, key)
        if previous is not None:
            store.hash_delete(self._hash.name, key)
            logging.debug(
                "RedisMap - remove: Deleted key %s from hash %s.", key, self._hash.name
            )
        return previous

    def __delitem__(self, key):
        if self.remove(key) is None:
            raise KeyError(key)

    def put_all(self, entries):
        """Store every key and value of `entries` (a mapping or an iterable of pairs)
        with a single command. Arguments are validated before anything is written, but
        a store failure during the write may leave some fields written.
        """
        mapping = dict(entries.items() if isinstance(entries, Mapping) else entries)
        for key, value in mapping.items():
            self._check_string(key, "key")
            self._check_string(value, "value")
        if not mapping:
            return
        store = self._remote
        try:
            store.hash_set_many(self._hash.name, mapping)
        except NotImplementedError:
            logging.debug(
                "RedisMap - put_all: Bulk writes unsupported, writing %s keys one by one.",
                len(mapping),
            )
            for key, value in mapping.items():
                self.put(key, value)
        logging.debug(
            "RedisMap - put_all: Set %s key(s) in hash %s.", len(mapping), self._hash.name
        )

    def update(self, other=(), /, **kwds):
        entries = dict(other.items() if isinstance(other, Mapping) else other)
        entries.update(kwds)
        self.put_all(entries)

    def clear(self):
        """Delete the whole remote hash, reference count included. This affects every
        handle sharing the hash, not only this one."""
        self._remote.delete(self._hash.name)
        logging.info(
            "RedisMap - clear: Deleted hash %s (db %s).",
            self._hash.name,
            self._hash.database_index,
        )

    # Iteration and Views

    def scan(self):
        """Start a new lazy scan of the hash.

        :return: CursorScanner - Iterator of (key, value) tuples.
        """
        return CursorScanner(self._remote, self._hash.name, self._page_size)

    def __iter__(self):
        for key, _ in self.scan():
            yield key

    def keys(self):
        if self._keys is None:
            self._keys = RemoteKeys(self)
        return self._keys

    def values(self):
        if self._values is None:
            self._values = RemoteValues(self)
        return self._values

    def items(self):
        if self._items is None:
            self._items = RemoteItems(self)
        return self._items

    @staticmethod
    def _check_string(string, arg):
        """Check whether a key, value or name is a string; throw an exception if not.

        :param str string: Value to check.
        :param str arg: Name of the argument to check.
        """
        if not isinstance(string, str):
            method = inspect.stack()[1].function
            exception_string = (
                f"RedisMap - {method}: {arg} must be a string,"
                + f" {arg}: {string!r}. Arg Type: {type(string)}."
            )
            logging.error(exception_string)
            raise TypeError(exception_string)
