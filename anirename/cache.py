"""Run-scoped memo for catalog lookups.

Nothing is written to disk: entries live as long as the memo object,
which the resolver keeps for a single run.
"""
import logging
import threading
from concurrent.futures import Future
from typing import Callable

from .models import LookupFailure, SeriesMetadata

log = logging.getLogger(__name__)

LookupResult = SeriesMetadata | LookupFailure


class LookupMemo:
    """Single-flight lookup map keyed by title cluster.

    The first caller for a key performs the lookup; concurrent callers for
    the same key block on the same future instead of issuing a second
    request.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: dict[str, Future] = {}

    def get(self, key: str, fetch: Callable[[], LookupResult]) -> LookupResult:
        """
        Return the lookup result for *key*, fetching it at most once.

        Args:
            key: Normalized cluster key
            fetch: Performs the actual catalog call

        Returns:
            SeriesMetadata or LookupFailure (failures are memoized too)
        """
        with self._lock:
            slot = self._slots.get(key)
            owner = slot is None
            if owner:
                slot = Future()
                self._slots[key] = slot

        if not owner:
            log.debug("Waiting on in-flight lookup for %r", key)
            return slot.result()

        log.debug("Looking up %r", key)
        try:
            result = fetch()
        except BaseException as e:
            slot.set_exception(e)
            raise
        slot.set_result(result)
        return result

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._slots

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
