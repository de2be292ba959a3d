"""RedisMap Command Line App"""
import logging
from argparse import ArgumentParser
from redismap import RedisMap, redismap_config
from redismap.redisstore import RedisRemoteStore


class RedisMapParser:
    """Class to set up parsing arguments via argparse."""

    def __init__(self):
        """Initialize the argparse 'parser'."""

        program_name = "RedisMap Command Line Client"
        description = (
            "Command line tool to inspect and edit a hash in a Redis store through"
            + " RedisMap. The client attaches without reference counting, so it never"
            + " deletes the hash it works with."
        )

        self.parser = ArgumentParser(
            prog=program_name,
            description=description,
        )

        # Store connection arguments
        self.parser.add_argument(
            "-config",
            dest="config_path",
            help="Path of a redismap.yaml file with store properties",
        )
        self.parser.add_argument(
            "-host", dest="host", help="Host of the Redis server (default: localhost)"
        )
        self.parser.add_argument(
            "-port", dest="port", type=int, help="Port of the Redis server"
        )
        self.parser.add_argument(
            "-db", dest="database_index", type=int, help="Logical database index"
        )
        self.parser.add_argument(
            "-loglevel",
            dest="logging_level",
            help="Set logging level for the client",
        )

        # Hash arguments
        self.parser.add_argument(
            "-name", dest="hash_name", required=True, help="Name of the hash"
        )
        self.parser.add_argument(
            "-get", dest="client_get", metavar="KEY", help="Print the value of a key"
        )
        self.parser.add_argument(
            "-put",
            dest="client_put",
            nargs=2,
            metavar=("KEY", "VALUE"),
            help="Store a value for a key",
        )
        self.parser.add_argument(
            "-remove", dest="client_remove", metavar="KEY", help="Remove a key"
        )
        self.parser.add_argument(
            "-size",
            dest="client_size",
            action="store_true",
            help="Print the number of keys in the hash",
        )
        self.parser.add_argument(
            "-dump",
            dest="client_dump",
            action="store_true",
            help="Print every key and value of the hash",
        )
        self.parser.add_argument(
            "-clear",
            dest="client_clear",
            action="store_true",
            help="Delete the whole hash",
        )

    def load_store_properties(self, args):
        """Collect store properties from a 'redismap.yaml' file and/or command line
        options. Options override the file; missing values use the defaults.

        :return: Store properties for `RedisRemoteStore`.
        :rtype: dict
        """
        properties = {
            "store_host": redismap_config.STORE_HOST,
            "store_port": redismap_config.STORE_PORT,
            "store_database_index": redismap_config.STORE_DATABASE_INDEX,
        }
        config_path = getattr(args, "config_path")
        if config_path is not None:
            properties.update(RedisRemoteStore.load_properties(config_path))
        if getattr(args, "host") is not None:
            properties["store_host"] = getattr(args, "host")
        if getattr(args, "port") is not None:
            properties["store_port"] = getattr(args, "port")
        if getattr(args, "database_index") is not None:
            properties["store_database_index"] = getattr(args, "database_index")
        return properties

    def get_parser_args(self, argv=None):
        """Get command line arguments."""
        return self.parser.parse_args(argv)


def main(argv=None):
    """Entry point of the RedisMap client."""

    parser = RedisMapParser()
    args = parser.get_parser_args(argv)

    logging_level_arg = getattr(args, "logging_level")
    logging.basicConfig(
        level=logging_level_arg or "WARNING",
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    props = parser.load_store_properties(args)
    store = RedisRemoteStore(props)
    with RedisMap(
        name=getattr(args, "hash_name"),
        database_index=props["store_database_index"],
        store=store,
        reference_counted=False,
    ) as redis_map:
        if getattr(args, "client_put") is not None:
            key, value = getattr(args, "client_put")
            previous = redis_map.put(key, value)
            print(f"Previous value: {previous}")
        elif getattr(args, "client_get") is not None:
            print(redis_map.get(getattr(args, "client_get")))
        elif getattr(args, "client_remove") is not None:
            previous = redis_map.remove(getattr(args, "client_remove"))
            print(f"Removed value: {previous}")
        elif getattr(args, "client_size"):
            print(redis_map.size())
        elif getattr(args, "client_dump"):
            for key, value in redis_map.items():
                print(f"{key}\t{value}")
        elif getattr(args, "client_clear"):
            redis_map.clear()
            print(f"Hash deleted: {redis_map.name}")
        else:
            raise ValueError(
                "One of '-get', '-put', '-remove', '-size', '-dump' or '-clear' is required"
            )


if __name__ == "__main__":
    main()
