"""
NFT Storefront - Concurrency Utilities

This module provides the read-write lock that serialises mutations of a
collection while letting queries run side by side.
"""

import threading
import time
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from threading import Condition, Lock
from typing import Any, Dict


class LockType(str, Enum):
    """Lock type enumeration."""
    READ = "read"
    WRITE = "write"


class ConcurrencyError(Exception):
    """Lock acquisition or release failure."""
    pass


class LockMetrics:
    """Lock performance metrics."""

    def __init__(self):
        self.acquisition_count = 0
        self.contention_count = 0
        self.total_wait_time = 0.0
        self.max_wait_time = 0.0
        self.last_acquisition = None
        self.lock_history = deque(maxlen=100)

    def record_acquisition(self, lock_type: LockType, wait_time: float, contended: bool) -> None:
        self.acquisition_count += 1
        self.total_wait_time += wait_time
        self.max_wait_time = max(self.max_wait_time, wait_time)
        self.last_acquisition = datetime.now(timezone.utc)

        if contended:
            self.contention_count += 1

        self.lock_history.append({
            'timestamp': self.last_acquisition,
            'lock_type': lock_type.value,
            'wait_time': wait_time,
            'contended': contended,
            'thread_id': threading.get_ident()
        })

    def get_contention_ratio(self) -> float:
        if self.acquisition_count == 0:
            return 0.0
        return self.contention_count / self.acquisition_count

    def get_average_wait_time(self) -> float:
        if self.acquisition_count == 0:
            return 0.0
        return self.total_wait_time / self.acquisition_count


class ReadWriteLock:
    """
    Writer-exclusive read-write lock with acquisition metrics.

    The lock is not re-entrant: a thread holding the write lock must not
    request the read lock (or the write lock again).
    """

    def __init__(self, name: str = "unnamed", timeout: float = 30.0):
        self.name = name
        self.timeout = timeout
        self._lock = Lock()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._ready = Condition(self._lock)
        self._metrics = LockMetrics()

    @contextmanager
    def read_lock(self):
        """Hold the read lock for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_lock(self):
        """Hold the write lock for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    def _wait(self, predicate, lock_type: LockType) -> bool:
        """Wait on the condition until ``predicate`` holds. Returns contention."""
        deadline = time.monotonic() + self.timeout
        contended = False

        while not predicate():
            contended = True
            remaining = deadline - time.monotonic()
            if remaining <= 0 or not self._ready.wait(timeout=remaining):
                if not predicate():
                    raise ConcurrencyError(
                        f"Timed out acquiring {lock_type.value} lock '{self.name}' "
                        f"after {self.timeout} seconds"
                    )
        return contended

    def acquire_read(self) -> None:
        start_time = time.monotonic()

        with self._lock:
            # Waiting writers take precedence so a stream of readers cannot starve them
            contended = self._wait(
                lambda: not self._writer and self._writers_waiting == 0,
                LockType.READ
            )
            self._readers += 1
            self._metrics.record_acquisition(LockType.READ, time.monotonic() - start_time, contended)

    def release_read(self) -> None:
        with self._lock:
            if self._readers == 0:
                raise ConcurrencyError("Read lock released without being held")

            self._readers -= 1
            if self._readers == 0:
                self._ready.notify_all()

    def acquire_write(self) -> None:
        start_time = time.monotonic()

        with self._lock:
            self._writers_waiting += 1
            try:
                contended = self._wait(
                    lambda: not self._writer and self._readers == 0,
                    LockType.WRITE
                )
            except ConcurrencyError:
                self._writers_waiting -= 1
                # Readers blocked behind this writer may proceed now
                self._ready.notify_all()
                raise

            self._writers_waiting -= 1
            self._writer = True
            self._metrics.record_acquisition(LockType.WRITE, time.monotonic() - start_time, contended)

    def release_write(self) -> None:
        with self._lock:
            if not self._writer:
                raise ConcurrencyError("Write lock released without being held")

            self._writer = False
            self._ready.notify_all()

    def get_metrics(self) -> Dict[str, Any]:
        """Get lock performance metrics."""
        with self._lock:
            return {
                'name': self.name,
                'readers': self._readers,
                'writer_active': self._writer,
                'writers_waiting': self._writers_waiting,
                'acquisition_count': self._metrics.acquisition_count,
                'contention_count': self._metrics.contention_count,
                'contention_ratio': self._metrics.get_contention_ratio(),
                'average_wait_time': self._metrics.get_average_wait_time(),
                'max_wait_time': self._metrics.max_wait_time,
                'last_acquisition': self._metrics.last_acquisition
            }
