"""Default configuration variables for RedisMap"""

import string

############### Store Endpoint ###############
# Default endpoint used when no host/port is provided
STORE_HOST = "localhost"
STORE_PORT = 6379
# Logical database selected when no database index is provided
STORE_DATABASE_INDEX = 0

############### Scanning ###############
# Number of fields requested per HSCAN page
SCAN_PAGE_SIZE = 100

############### Ephemeral Hash Names ###############
# Auto-generated names are drawn from this alphabet with a fixed length
NAME_ALPHABET = string.ascii_letters + string.digits
NAME_LENGTH = 16
# Give up after this many colliding candidates
NAME_ATTEMPTS = 100

############### Reference Counting ###############
# Reserved field inside every reference counted hash, holding the number of
# attached handles. Hidden from size, iteration and containment checks.
REFCOUNT_FIELD = "__redismap_refs__"  # WARNING: DO NOT CHANGE FOR SHARED HASHES
