"""Per-client-address login throttle.

State lives in process memory and is not shared between workers or hosts:
each process enforces its own window. A deployment running several
instances would need a shared store with atomic increment-with-expiry
(e.g. Redis INCR + EXPIRE) behind the same interface.
"""
import time
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict

from .errors import LoginFailure, RateLimited

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    count: int
    window_start: float


class LoginThrottle:
    def __init__(self, max_attempts: int = 5, window_seconds: int = 600,
                 clock: Callable[[], float] = time.time):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self._entries: Dict[str, _Entry] = {}
        # per-address lock held across one attempt, with the number of holders/waiters
        self._address_locks: Dict[str, list] = {}
        self._lock = threading.Lock()

    def _live_entry(self, address: str, now: float):
        # caller holds the lock
        entry = self._entries.get(address)
        if entry and now - entry.window_start > self.window_seconds:
            del self._entries[address]
            return None
        return entry

    def failures(self, address: str) -> int:
        with self._lock:
            entry = self._live_entry(address, self.clock())
            return entry.count if entry else 0

    def is_allowed(self, address: str) -> bool:
        with self._lock:
            entry = self._live_entry(address, self.clock())
            return entry is None or entry.count < self.max_attempts

    def record_failure(self, address: str) -> int:
        """Count a failed verification step and restart the window"""
        with self._lock:
            now = self.clock()
            entry = self._live_entry(address, now)
            if entry is None:
                entry = _Entry(count=0, window_start=now)
                self._entries[address] = entry
            entry.count += 1
            entry.window_start = now
            return entry.count

    def _address_lock(self, address: str) -> threading.Lock:
        with self._lock:
            slot = self._address_locks.setdefault(address, [threading.Lock(), 0])
            slot[1] += 1
            return slot[0]

    def _release_address(self, address: str) -> None:
        with self._lock:
            slot = self._address_locks[address]
            slot[1] -= 1
            if slot[1] == 0:
                del self._address_locks[address]

    @contextmanager
    def attempt(self, address: str):
        """Guard one login attempt.

        Attempts from the same address run one at a time, so each check sees
        the outcome of the attempt before it. Raises RateLimited before the
        body runs when the address has 5 live failures. A LoginFailure
        escaping the body is recorded; success leaves the counter as it is.
        Clients without a resolvable address share the "unknown" bucket and
        therefore also wait on each other.
        """
        lock = self._address_lock(address)
        try:
            with lock:
                if not self.is_allowed(address):
                    logger.warning("login rate limit exceeded for %s", address)
                    raise RateLimited()
                try:
                    yield
                except LoginFailure:
                    self.record_failure(address)
                    raise
        finally:
            self._release_address(address)
