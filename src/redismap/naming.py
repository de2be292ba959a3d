"""Generation of fresh names for ephemeral hashes"""

import logging
import secrets
from redismap import redismap_config
from redismap.redismap_exceptions import HashNameUnavailable


def generate_hash_name(
    store,
    length=redismap_config.NAME_LENGTH,
    alphabet=redismap_config.NAME_ALPHABET,
    attempts=redismap_config.NAME_ATTEMPTS,
):
    """Draw random names until one is not used by any key in the selected database.

    Uniqueness is best effort: two processes drawing the same candidate at the same
    time may both find it free before either writes to it.

    :param RemoteStore store: Store whose selected database is checked.
    :param int length: Number of characters in the name.
    :param str alphabet: Characters names are drawn from.
    :param int attempts: Candidates to try before giving up.

    :return: str - A name with no existing key.

    :raises HashNameUnavailable: If every candidate was already taken.
    """
    if length < 1 or not alphabet:
        exception_string = (
            "generate_hash_name: length must be > 0 and alphabet cannot be empty."
            + f" length: {length}, alphabet: {alphabet!r}."
        )
        logging.error(exception_string)
        raise ValueError(exception_string)

    for attempt in range(1, attempts + 1):
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if not store.exists(candidate):
            logging.debug(
                "generate_hash_name: Found free name %s after %s attempt(s).",
                candidate,
                attempt,
            )
            return candidate
        logging.debug("generate_hash_name: Name %s is taken, retrying.", candidate)

    exception_string = (
        f"generate_hash_name: No free name found after {attempts} attempts"
        + f" (length: {length}, alphabet size: {len(alphabet)})."
    )
    logging.error(exception_string)
    raise HashNameUnavailable(exception_string)
