from contextlib import contextmanager
from threading import Condition, Lock, get_ident


class LockPoisoned(RuntimeError):
    """
    Raised when acquiring a lock whose previous writer failed while holding it.
    The guarded state may be half-updated and must not be read again.
    """


class ReadWriteLock:
    """
    A writer-preferring reader-writer lock.

    Any number of readers may hold the lock at once; a writer holds it alone.
    Once a writer is waiting, new readers queue behind it so that a steady
    stream of readers can not starve writers.

    If an exception escapes a ``write()`` block the lock is poisoned: the
    exception propagates to that caller and every later ``read()`` or
    ``write()`` raises ``LockPoisoned``.
    """

    def __init__(self):
        self._condition = Condition(Lock())
        self._readers = 0
        self._writer = None
        self._waiting_writers = 0
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def _check_poison(self) -> None:
        if self._poisoned:
            raise LockPoisoned("Lock poisoned by a failed writer")

    def acquire_read(self) -> None:
        with self._condition:
            self._check_poison()
            while self._writer is not None or self._waiting_writers:
                self._condition.wait()
                self._check_poison()
            self._readers += 1

    def release_read(self) -> None:
        with self._condition:
            self._readers -= 1
            if not self._readers:
                self._condition.notify_all()

    def acquire_write(self) -> None:
        with self._condition:
            self._check_poison()
            if self._writer == get_ident():
                raise RuntimeError("ReadWriteLock is not reentrant")
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers:
                    self._condition.wait()
                    self._check_poison()
            finally:
                self._waiting_writers -= 1
            self._writer = get_ident()

    def release_write(self, poison: bool = False) -> None:
        with self._condition:
            self._writer = None
            if poison:
                self._poisoned = True
            self._condition.notify_all()

    @contextmanager
    def read(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        self.acquire_write()
        try:
            yield
        except BaseException:
            self.release_write(poison=True)
            raise
        else:
            self.release_write()
