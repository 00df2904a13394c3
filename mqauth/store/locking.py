"""Reader/writer lock guarding the in-memory user collection."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class RWLock:
    """
    Many concurrent readers or one writer. Not reentrant.

    Writer-preferring: once a writer is waiting, new readers block until it
    has finished, so steady read traffic cannot starve mutations.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0
        self._writer_active = False

    def r_acquire(self) -> None:
        with self._cond:
            while self._writer_active or self._writers_waiting > 0:
                self._cond.wait()
            self._readers += 1

    def r_release(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def w_acquire(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._readers > 0 or self._writer_active:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True

    def w_release(self) -> None:
        with self._cond:
            self._writer_active = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.r_acquire()
        try:
            yield
        finally:
            self.r_release()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.w_acquire()
        try:
            yield
        finally:
            self.w_release()
