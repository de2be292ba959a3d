"""RedisMap exposes a hash held in a remote Redis store as an in-process mutable
mapping from string keys to string values.

RedisMap is mainly focused on sharing small key/value state between processes (or
between handles of one process) without loading the hash into memory. Some properties:

- Every operation is a round trip to the store; nothing is cached locally
- Keys, values and items are live views, iterated lazily with HSCAN cursors
- Iteration is weakly consistent: concurrent writes may be seen zero, one or more times
- Hashes without a name get a fresh generated name and are ephemeral
- Attached handles are reference counted inside the hash; the last handle to be
    released (explicitly, by garbage collection or at interpreter exit) deletes it
"""

from redismap.remotestore import NamedHash, RemoteStore, RemoteStoreFactory
from redismap.redismap import RedisMap

__all__ = ("NamedHash", "RedisMap", "RemoteStore", "RemoteStoreFactory")
__version__ = "1.0.0"
