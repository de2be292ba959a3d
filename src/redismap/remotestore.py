"""RemoteStore Interface"""
from abc import ABC, abstractmethod
from collections import namedtuple
import importlib.util

# Cursor value that both starts a hash scan and signals that a scan is complete
SCAN_SENTINEL = 0


class RemoteStore(ABC):
    """RemoteStore is the connection to an external key-value store holding hashes
    (named collections of field/value string pairs). A `RemoteStore` is owned by
    exactly one `RedisMap`, which closes it on release.

    Every method is a blocking round trip. Implementations translate connectivity
    failures into `StoreUnavailable` and perform no retries.
    """

    @abstractmethod
    def select(self, database_index):
        """Switch the connection to the logical database `database_index`. All following
        calls address hashes in that database.

        :param int database_index: Index of the logical database.
        """
        raise NotImplementedError()

    @abstractmethod
    def exists(self, name):
        """Check whether any key called `name` exists in the selected database.

        :param str name: Name of the key.

        :return: bool - `True` if the key exists.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_get(self, name, field):
        """Get the value of `field` in hash `name`.

        :param str name: Name of the hash.
        :param str field: Field to read.

        :return: str - Value of the field, or `None` if it is not set.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_set(self, name, field, value):
        """Set `field` in hash `name` to `value`, creating the hash if needed.

        :param str name: Name of the hash.
        :param str field: Field to write.
        :param str value: Value to store.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_delete(self, name, field):
        """Delete `field` from hash `name`. Deleting an absent field is not an error.

        :param str name: Name of the hash.
        :param str field: Field to delete.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_exists(self, name, field):
        """Check whether `field` is set in hash `name`.

        :param str name: Name of the hash.
        :param str field: Field to check.

        :return: bool - `True` if the field is set.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_length(self, name):
        """Count the fields of hash `name`. A missing hash has no fields.

        :param str name: Name of the hash.

        :return: int - Number of fields, reserved fields included.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_set_many(self, name, mapping):
        """Set every field of `mapping` in hash `name` with a single command.

        :param str name: Name of the hash.
        :param dict mapping: Non-empty dictionary of fields and values.
        """
        raise NotImplementedError()

    @abstractmethod
    def hash_scan(self, name, cursor, page_size):
        """Fetch one page of a cursor-based scan over the fields of hash `name`.
        Starting with `SCAN_SENTINEL` and passing back each returned cursor visits
        every field that exists for the whole scan at least once; the scan is complete
        when `SCAN_SENTINEL` is returned again. Fields added, changed or removed during
        the scan may be returned zero, one or more times. A missing hash returns an
        empty page and `SCAN_SENTINEL`.

        :param str name: Name of the hash.
        :param int cursor: Cursor returned by the previous page, or `SCAN_SENTINEL`.
        :param int page_size: Hint for the number of fields per page.

        :return: tuple - (list of (field, value) tuples, next cursor)
        """
        raise NotImplementedError()

    @abstractmethod
    def delete(self, name):
        """Delete the whole key `name`, whatever it holds.

        :param str name: Name of the key.
        """
        raise NotImplementedError()

    @abstractmethod
    def increment_hash_field(self, name, field, delta):
        """Atomically add `delta` to the integer held in `field` of hash `name`. An
        unset field counts as 0.

        :param str name: Name of the hash.
        :param str field: Counter field.
        :param int delta: Amount to add, may be negative.

        :return: int - Value of the field after the increment.

        :raises ValueError: If the field holds a value that is not an integer.
        """
        raise NotImplementedError()

    @abstractmethod
    def close(self):
        """Release the underlying connection."""
        raise NotImplementedError()


class RemoteStoreFactory:
    """A factory class for creating `RemoteStore`-like objects.

    This factory class provides a method to retrieve a `RemoteStore` object based on a
    given module (e.g., "redismap.redisstore") and class name (e.g., "RedisRemoteStore").
    """

    @staticmethod
    def get_remotestore(module_name, class_name, properties=None):
        """Get a `RemoteStore`-like object based on the specified `module_name` and
        `class_name`, with optional custom properties.

        :param str module_name: Name of the module (e.g., "redismap.redisstore").
        :param str class_name: Name of the class in the given module (e.g.,
            "RedisRemoteStore").
        :param dict properties: Desired store properties (optional). If `None`, default
            values will be used. Example Properties Dictionary:
            {
                "store_host": "localhost",
                "store_port": 6379,
                "store_database_index": 0,
            }

        :return: RemoteStore - A store object based on the given `module_name` and
            `class_name`.

        :raises ModuleNotFoundError: If the module is not found.
        :raises AttributeError: If the class does not exist within the module.
        """
        # Validate module
        if importlib.util.find_spec(module_name) is None:
            raise ModuleNotFoundError(f"No module found for '{module_name}'")

        imported_module = importlib.import_module(module_name)

        # If class is not part of module, raise error
        if hasattr(imported_module, class_name):
            remotestore_class = getattr(imported_module, class_name)
            return remotestore_class(properties=properties)
        raise AttributeError(
            f"Class name '{class_name}' is not an attribute of module '{module_name}'"
        )


class NamedHash(namedtuple("NamedHash", ["name", "database_index"])):
    """Identity of a remote hash.

    Two `NamedHash` values with equal `name` and `database_index` address the same
    remote hash, from any process connected to the same store.

    :param str name: Name of the hash inside its database.
    :param int database_index: Logical database holding the hash.
    """

    # Default value to prevent dangerous default value
    def __new__(cls, name, database_index=0):
        return super(NamedHash, cls).__new__(cls, name, database_index)
