"""Core module for RedisRemoteStore"""

import inspect
import logging
import os
import redis
import yaml
from redismap import redismap_config
from redismap.remotestore import RemoteStore
from redismap.redismap_exceptions import StoreUnavailable


class RedisRemoteStore(RemoteStore):
    """RedisRemoteStore implements the `RemoteStore` contract on a Redis server through
    the `redis` client library. Responses are decoded, so fields and values are
    handled as `str`.

    RedisRemoteStore initializes using a properties dictionary (see Args). Missing
    properties fall back to the defaults in `redismap_config`.

    :param dict properties: A Python dictionary with the following keys (and values):
        - store_host (str): Host of the Redis server.
        - store_port (int): Port of the Redis server.
        - store_database_index (int): Logical database selected on connect.
        - store_socket_timeout (float, optional): Seconds before a round trip fails.
    :param type redis_class: Client class to connect with, `redis.Redis` if `None`.
    :param connection_kwargs: Additional keyword arguments for `redis_class`.
    """

    # Property (store configuration) requirements
    property_required_keys = [
        "store_host",
        "store_port",
        "store_database_index",
    ]

    def __init__(self, properties=None, redis_class=None, **connection_kwargs):
        if properties is None:
            properties = {
                "store_host": redismap_config.STORE_HOST,
                "store_port": redismap_config.STORE_PORT,
                "store_database_index": redismap_config.STORE_DATABASE_INDEX,
            }
        checked_properties = self._validate_properties(properties)
        (
            self.host,
            self.port,
            self.database_index,
        ) = [
            checked_properties[property_name]
            for property_name in self.property_required_keys
        ]
        self.socket_timeout = checked_properties.get("store_socket_timeout")
        self._redis_class = redis_class or redis.Redis
        self._connection_kwargs = connection_kwargs
        self._redis = self._connect(self.database_index)
        logging.debug(
            "RedisRemoteStore - Initialization success. Endpoint: %s:%s, db: %s",
            self.host,
            self.port,
            self.database_index,
        )

    # Configuration and Related Methods

    @staticmethod
    def load_properties(redismap_yaml_path):
        """Get and return the store properties found in a 'redismap.yaml' file.

        :param str redismap_yaml_path: Path to the configuration file.

        :return: Store properties with the keys of `property_required_keys` and, if
            present, ``store_socket_timeout``.
        :rtype: dict
        """
        if not os.path.exists(redismap_yaml_path):
            exception_string = (
                "RedisRemoteStore - load_properties: redismap.yaml not found"
                + f" at: {redismap_yaml_path}."
            )
            logging.critical(exception_string)
            raise FileNotFoundError(exception_string)

        with open(redismap_yaml_path, "r", encoding="utf-8") as redismap_yaml_file:
            yaml_data = yaml.safe_load(redismap_yaml_file) or {}

        redismap_yaml_dict = {}
        for key in RedisRemoteStore.property_required_keys:
            if key not in yaml_data:
                exception_string = (
                    f"RedisRemoteStore - load_properties: Missing required key: {key}."
                )
                logging.critical(exception_string)
                raise KeyError(exception_string)
            redismap_yaml_dict[key] = yaml_data[key]
        if yaml_data.get("store_socket_timeout") is not None:
            redismap_yaml_dict["store_socket_timeout"] = float(
                yaml_data["store_socket_timeout"]
            )
        logging.debug(
            "RedisRemoteStore - load_properties: Successfully retrieved 'redismap.yaml'"
            + " properties."
        )
        return redismap_yaml_dict

    def _validate_properties(self, properties):
        """Validate a properties dictionary by checking if it contains all the
        required keys and values of the expected types.

        :param dict properties: Dictionary containing store properties.

        :raises KeyError: If key is missing from the required keys.
        :raises ValueError: If value is missing or invalid for a required key.

        :return: The given properties object (that has been validated).
        :rtype: dict
        """
        if not isinstance(properties, dict):
            exception_string = (
                "RedisRemoteStore - _validate_properties: Invalid argument -"
                + " expected a dictionary."
            )
            logging.debug(exception_string)
            raise ValueError(exception_string)

        for key in self.property_required_keys:
            if key not in properties:
                exception_string = (
                    "RedisRemoteStore - _validate_properties: Missing required"
                    + f" key: {key}."
                )
                logging.debug(exception_string)
                raise KeyError(exception_string)
            if properties.get(key) is None:
                exception_string = (
                    "RedisRemoteStore - _validate_properties: Value for key:"
                    + f" {key} is none."
                )
                logging.debug(exception_string)
                raise ValueError(exception_string)

        for key in ("store_port", "store_database_index"):
            value = properties[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                exception_string = (
                    f"RedisRemoteStore - _validate_properties: {key} must be a"
                    + f" non-negative integer, found: {value}."
                )
                logging.debug(exception_string)
                raise ValueError(exception_string)
        return properties

    def _connect(self, database_index):
        """Create a client bound to `database_index` with decoded responses."""
        return self._redis_class(
            host=self.host,
            port=self.port,
            db=database_index,
            socket_timeout=self.socket_timeout,
            decode_responses=True,
            **self._connection_kwargs,
        )

    def _execute(self, command, *args, **kwargs):
        """Run one command against the server, translating connectivity failures.

        :param str command: Name of the `redis.Redis` method to call.

        :return: Whatever the client returns for the command.
        """
        try:
            return getattr(self._redis, command)(*args, **kwargs)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as err:
            method = inspect.stack()[1].function
            exception_string = (
                f"RedisRemoteStore - {method}: store unavailable at"
                + f" {self.host}:{self.port} (db {self.database_index})."
                + f" Unexpected {err=}, {type(err)=}"
            )
            logging.error(exception_string)
            raise StoreUnavailable(exception_string, errors=err) from err

    # RemoteStore Interface Methods

    def select(self, database_index):
        if database_index == self.database_index:
            return
        logging.debug(
            "RedisRemoteStore - select: Switching from db %s to db %s.",
            self.database_index,
            database_index,
        )
        self._redis.close()
        self.database_index = database_index
        self._redis = self._connect(database_index)

    def exists(self, name):
        return self._execute("exists", name) > 0

    def hash_get(self, name, field):
        return self._execute("hget", name, field)

    def hash_set(self, name, field, value):
        self._execute("hset", name, field, value)

    def hash_delete(self, name, field):
        self._execute("hdel", name, field)

    def hash_exists(self, name, field):
        return bool(self._execute("hexists", name, field))

    def hash_length(self, name):
        return self._execute("hlen", name)

    def hash_set_many(self, name, mapping):
        self._execute("hset", name, mapping=mapping)

    def hash_scan(self, name, cursor, page_size):
        next_cursor, page = self._execute("hscan", name, cursor, count=page_size)
        return list(page.items()), int(next_cursor)

    def delete(self, name):
        self._execute("delete", name)

    def increment_hash_field(self, name, field, delta):
        try:
            return self._execute("hincrby", name, field, delta)
        except redis.exceptions.ResponseError as err:
            exception_string = (
                f"RedisRemoteStore - increment_hash_field: field {field} of hash {name}"
                + f" does not hold an integer. Unexpected {err=}"
            )
            logging.error(exception_string)
            raise ValueError(exception_string) from err

    def close(self):
        logging.debug(
            "RedisRemoteStore - close: Closing connection to %s:%s.", self.host, self.port
        )
        self._redis.close()
