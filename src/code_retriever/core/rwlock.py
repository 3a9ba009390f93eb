"""
Reader/writer lock on top of threading.Condition.
Why: the cache is read-heavy; lookups should not serialize behind each other.

Writers queue up in arrival order before touching the condition's mutex, so a
stream of readers cannot keep a writer from announcing itself. Once a writer
is queued, new readers wait and the writer is admitted when current readers
drain.
"""

import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator


class ReadWriteLock:
    """Many readers or one writer. Queued writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        # deque.append/remove are atomic, no mutex needed to enqueue
        self._queue: Deque[object] = deque()

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._queue:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        ticket = object()
        self._queue.append(ticket)
        try:
            with self._cond:
                while self._writer or self._readers or self._queue[0] is not ticket:
                    self._cond.wait()
                self._queue.popleft()
                self._writer = True
        except BaseException:
            if ticket in self._queue:
                self._queue.remove(ticket)
            with self._cond:
                self._cond.notify_all()
            raise

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writers_waiting(self) -> int:
        return len(self._queue)
