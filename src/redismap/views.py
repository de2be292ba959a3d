"""Live key, value and item views of a RedisMap.

The views hold no contents of their own: every length, membership test and iteration
goes to the remote hash, so a view obtained once keeps reflecting later writes from
any handle. Iteration uses a fresh `CursorScanner` each time and shares its weak
consistency: entries written or removed during an iteration may be seen zero, one or
more times.
"""

from collections import namedtuple
from collections.abc import ItemsView, KeysView, ValuesView


class RemoteEntry(namedtuple("RemoteEntry", ["key", "value"])):
    """A (key, value) pair yielded by `RemoteItems`. Compares equal to the plain tuple
    `(key, value)`.

    :param str key: Field of the remote hash.
    :param str value: Value of the field when it was scanned.
    :param RedisMap owner: Map the entry was scanned from.
    """

    def __new__(cls, key, value, owner=None):
        entry = super(RemoteEntry, cls).__new__(cls, key, value)
        entry._owner = owner
        return entry

    def set_value(self, value):
        """Write `value` to this entry's key in the owning map. The entry itself is
        immutable and keeps the scanned value.

        :param str value: New value.

        :return: str - Value stored before the write, `None` if the key was removed
            meanwhile.
        """
        if self._owner is None:
            raise ValueError("RemoteEntry - set_value: entry is not bound to a map.")
        return self._owner.put(self.key, value)


class RemoteKeys(KeysView):
    """Live set of the keys of a `RedisMap`."""

    __slots__ = ()

    def __iter__(self):
        for key, _ in self._mapping.scan():
            yield key

    def remove(self, key):
        """Remove `key` from the map, raising `KeyError` if it is absent."""
        if self._mapping.remove(key) is None:
            raise KeyError(key)

    def discard(self, key):
        """Remove `key` from the map if present."""
        self._mapping.remove(key)

    def clear(self):
        """Delete the whole remote hash, for every handle sharing it."""
        self._mapping.clear()


class RemoteValues(ValuesView):
    """Live collection of the values of a `RedisMap`."""

    __slots__ = ()

    def __iter__(self):
        for _, value in self._mapping.scan():
            yield value

    def __contains__(self, value):
        return self._mapping.contains_value(value)

    def clear(self):
        """Delete the whole remote hash, for every handle sharing it."""
        self._mapping.clear()


class RemoteItems(ItemsView):
    """Live set of the entries of a `RedisMap`, iterated as `RemoteEntry` objects."""

    __slots__ = ()

    def __iter__(self):
        for key, value in self._mapping.scan():
            yield RemoteEntry(key, value, self._mapping)

    def __contains__(self, item):
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        key, value = item
        if not isinstance(key, str):
            return False
        current = self._mapping.get(key)
        return current is not None and current == value

    def remove(self, item):
        """Remove the entry `(key, value)`, raising `KeyError` unless the map holds
        exactly that value for the key."""
        if item not in self:
            raise KeyError(item)
        self._mapping.remove(item[0])

    def discard(self, item):
        """Remove the entry `(key, value)` if the map holds exactly that value."""
        if item in self:
            self._mapping.remove(item[0])

    def clear(self):
        """Delete the whole remote hash, for every handle sharing it."""
        self._mapping.clear()
