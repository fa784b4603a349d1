"""
Readers-writer locking for reference books.

A book built in concurrent mode owns a ``ReadWriteLock``; otherwise it owns a
``NullLock`` whose context managers do nothing. Both expose the same
``read()`` / ``write()`` interface so book code never branches on the mode:

    lock = make_lock(thread_safe)
    with lock.read():       # lookups, search, snapshot reads
        ...
    with lock.write():      # set, parse, optimize
        ...
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Writer-preferring readers-writer lock.

    Readers wait while a writer holds the lock or is queued for it, except a
    thread that already holds a read lock, which may nest further reads.
    Write locks are not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._active_readers = 0
        self._waiting_writers = 0
        self._writer_active = False
        self._local = threading.local()

    def _held_reads(self) -> int:
        return getattr(self._local, "reads", 0)

    def acquire_read(self) -> None:
        nested = self._held_reads() > 0
        with self._cond:
            if not nested:
                while self._writer_active or self._waiting_writers:
                    self._cond.wait()
            self._active_readers += 1
        self._local.reads = self._held_reads() + 1

    def release_read(self) -> None:
        self._local.reads = self._held_reads() - 1
        with self._cond:
            self._active_readers -= 1
            if self._active_readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer_active or self._active_readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer_active = True

    def release_write(self) -> None:
        with self._cond:
            self._writer_active = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Acquire shared access."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Acquire exclusive access."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    def stats(self) -> dict:
        with self._cond:
            return {
                "active_readers": self._active_readers,
                "waiting_writers": self._waiting_writers,
                "writer_active": self._writer_active,
            }


class NullLock:
    """Lock for books used from a single thread (or externally synchronized)."""

    @contextmanager
    def read(self) -> Iterator[None]:
        yield

    @contextmanager
    def write(self) -> Iterator[None]:
        yield


def make_lock(thread_safe: bool):
    """Return the lock matching the requested operating mode."""
    return ReadWriteLock() if thread_safe else NullLock()
