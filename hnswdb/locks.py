"""
Readers-writer lock: any number of concurrent readers, or one writer.
"""

import contextlib
import threading
from typing import Iterator


class RWLock:
    """
    Readers-writer lock built on a single condition variable.

    read() may be held by many threads at once; write() waits until no
    reader is active and then holds the underlying lock, which also keeps
    new readers out until the writer is done. Writers take precedence: once
    a writer is waiting, new readers queue behind it, so a steady stream of
    readers cannot starve writes.

    Not reentrant: a thread holding read() must not call read() again while
    a writer may be waiting.
    """

    def __init__(self) -> None:
        self._read_ready = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0

    @contextlib.contextmanager
    def read(self) -> Iterator[None]:
        with self._read_ready:
            while self._writers_waiting > 0:
                self._read_ready.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._read_ready:
                self._readers -= 1
                if self._readers == 0:
                    self._read_ready.notify_all()

    @contextlib.contextmanager
    def write(self) -> Iterator[None]:
        with self._read_ready:
            self._writers_waiting += 1
            try:
                while self._readers > 0:
                    self._read_ready.wait()
            finally:
                self._writers_waiting -= 1
            try:
                yield
            finally:
                # Wake readers that queued behind this writer
                self._read_ready.notify_all()

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def writers_waiting(self) -> int:
        """Number of writers blocked until the current readers leave."""
        return self._writers_waiting
