"""Per-ledger locks."""

import threading
from contextlib import contextmanager
from typing import Iterator


class LedgerLocks:
    """Hands out one lock per ledger ID.

    Every code path that loads, changes and saves a ledger holds that
    ledger's lock, so there is a single writer per ledger in-process.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def get(self, ledger_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(ledger_id)
            if lock is None:
                lock = self._locks[ledger_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, ledger_id: int) -> Iterator[None]:
        with self.get(ledger_id):
            yield
