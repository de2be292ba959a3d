"""Pytest overall configuration file for fixtures"""

import fakeredis
import pytest
from redismap import RedisMap
from redismap.lifecycle import ReleaseRegistry
from redismap.redisstore import RedisRemoteStore


@pytest.fixture(name="server")
def init_server():
    """In-process Redis server shared by every connection opened in a test."""
    return fakeredis.FakeServer()


@pytest.fixture(name="props")
def init_props():
    """Properties to initialize RedisRemoteStore."""
    properties = {
        "store_host": "localhost",
        "store_port": 6379,
        "store_database_index": 0,
    }
    return properties


@pytest.fixture(name="connect")
def init_connect(server, props):
    """Open new RedisRemoteStore connections to the shared server."""

    def connect(database_index=0):
        properties = dict(props, store_database_index=database_index)
        return RedisRemoteStore(
            properties, redis_class=fakeredis.FakeRedis, server=server
        )

    return connect


@pytest.fixture(name="raw")
def init_raw(server):
    """Open plain clients to the shared server, to look at hashes behind RedisMap."""

    def raw(database_index=0):
        return fakeredis.FakeRedis(
            server=server, db=database_index, decode_responses=True
        )

    return raw


@pytest.fixture(name="registry")
def init_registry(server):
    """Teardown registry of the maps opened in a test, released after the test."""
    registry = ReleaseRegistry()
    yield registry
    server.connected = True
    registry.release_all()


@pytest.fixture(name="open_map")
def init_open_map(connect, registry):
    """Open RedisMap handles, each with its own connection to the shared server."""

    def open_map(name=None, database_index=0, **kwargs):
        return RedisMap(
            name=name,
            database_index=database_index,
            store=connect(database_index),
            registry=registry,
            **kwargs,
        )

    return open_map


@pytest.fixture(name="entries")
def init_entries():
    """Shared test harness data."""
    test_entries = {
        "test1": "value1",
        "test2": "value2",
        "test3": "value3",
    }
    return test_entries
