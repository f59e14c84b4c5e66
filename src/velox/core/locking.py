"""Reader/writer lock for shared in-memory state.

Readers may hold the lock concurrently; a writer holds it exclusively.
Waiting writers block new readers so a steady stream of lookups cannot
starve registration or removal.
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on a Condition.

    Not reentrant: a thread holding the write lock must not acquire the
    read lock (or the write lock) again.

    Example:
        lock = ReadWriteLock()
        with lock.read_locked():
            value = shared.get(key)
        with lock.write_locked():
            shared[key] = value
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        """Acquire a shared (read) hold."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Release a shared (read) hold."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read called without a read hold")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Acquire the exclusive (write) hold."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release the exclusive (write) hold."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write called without the write hold")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        """Context manager holding the lock for reading."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        """Context manager holding the lock for writing."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of read holds currently outstanding (for diagnostics)."""
        with self._cond:
            return self._readers

    @property
    def write_held(self) -> bool:
        """True while a writer holds the lock (for diagnostics)."""
        with self._cond:
            return self._writer
