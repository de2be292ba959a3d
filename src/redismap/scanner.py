"""Lazy, cursor-based iteration over the fields of a remote hash"""

import logging
from redismap import redismap_config
from redismap.remotestore import SCAN_SENTINEL


class CursorScanner:
    """Iterator over the (field, value) pairs of one remote hash, fetched page by page
    with `RemoteStore.hash_scan` while it is consumed.

    No snapshot is taken. Pages are independent round trips, so a hash modified during
    the scan may yield an entry zero, one or more times. Entries present for the whole
    scan are yielded at least once. A hash deleted mid-scan simply ends the sequence.

    A scanner is not restartable: once exhausted, create a new one to scan again.

    :param RemoteStore store: Store holding the hash.
    :param str name: Name of the hash.
    :param int page_size: Number of fields requested per page.
    :param tuple hidden_fields: Fields never yielded (reserved bookkeeping fields).
    """

    def __init__(
        self,
        store,
        name,
        page_size=redismap_config.SCAN_PAGE_SIZE,
        hidden_fields=(redismap_config.REFCOUNT_FIELD,),
    ):
        self.store = store
        self.name = name
        self.page_size = page_size
        self.hidden_fields = frozenset(hidden_fields)
        self.cursor = SCAN_SENTINEL
        self._started = False
        self._batch = []
        self._position = 0

    def __iter__(self):
        return self

    def __next__(self):
        if not self.has_next():
            raise StopIteration
        pair = self._batch[self._position]
        self._position += 1
        return pair

    def has_next(self):
        """Check whether another pair can be returned, fetching pages as needed.

        :return: bool - `True` if `next()` will return a pair.
        """
        while self._position >= len(self._batch):
            if self._started and self.cursor == SCAN_SENTINEL:
                return False
            self._fetch()
        return True

    def _fetch(self):
        """Replace the buffered batch with the next page and advance the cursor."""
        page, next_cursor = self.store.hash_scan(self.name, self.cursor, self.page_size)
        logging.debug(
            "CursorScanner - _fetch: Hash %s, cursor %s -> %s, %s field(s).",
            self.name,
            self.cursor,
            next_cursor,
            len(page),
        )
        self._started = True
        self.cursor = next_cursor
        self._batch = [pair for pair in page if pair[0] not in self.hidden_fields]
        self._position = 0
