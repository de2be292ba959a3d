"""RedisMap custom exception module."""


class StoreUnavailable(Exception):
    """Custom exception thrown when the remote store cannot be reached during a round
    trip. No retry is attempted; retry policy belongs to the caller or the client
    library."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors


class HashNameUnavailable(Exception):
    """Custom exception thrown when a fresh, unused hash name could not be generated
    within the configured number of attempts."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors


class RefCountCorrupted(Exception):
    """Custom exception thrown when the reference count field of a remote hash is
    missing or does not hold an integer, so the number of attached handles cannot be
    determined."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors
