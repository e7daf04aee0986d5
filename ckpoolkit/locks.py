"""Mutexes, reader-writer locks and a write-biased combined lock.

Acquiring a lock that stays contended logs a warning after each wait and
gives up with LockTimeout after a fixed number of attempts.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

_log = logging.getLogger(__name__)

CONTENTION_TIMEOUT = 10.0
CONTENTION_RETRIES = 6


class LockTimeout(RuntimeError):
    """Raised when a lock could not be acquired after repeated timed waits."""


def _acquire_with_retries(
    attempt: Callable[[float], bool],
    kind: str,
    holder: Callable[[], str | None],
    timeout: float,
    retries: int,
) -> None:
    for _ in range(retries):
        if attempt(timeout):
            return
        _log.error(
            "WARNING: Prolonged %s contention from %s, held by %s",
            kind,
            threading.current_thread().name,
            holder(),
        )
    raise LockTimeout(f"failed to grab {kind}")


class CkMutex:
    """A non-reentrant mutex that remembers which thread last acquired it."""

    def __init__(
        self,
        contention_timeout: float = CONTENTION_TIMEOUT,
        retries: int = CONTENTION_RETRIES,
    ) -> None:
        self._lock = threading.Lock()
        self._contention_timeout = contention_timeout
        self._retries = retries
        self.holder: str | None = None

    def _mark(self) -> None:
        self.holder = threading.current_thread().name

    def timedlock(self, timeout: float) -> bool:
        """Try to acquire within timeout seconds; return whether it was acquired."""
        if self._lock.acquire(timeout=max(timeout, 0)):
            self._mark()
            return True
        return False

    def lock(self) -> None:
        """Acquire, warning on prolonged contention and raising LockTimeout at last."""
        _acquire_with_retries(
            self.timedlock,
            "mutex lock",
            lambda: self.holder,
            self._contention_timeout,
            self._retries,
        )

    def unlock(self) -> None:
        """Release the mutex; RuntimeError if it is not held."""
        self._lock.release()

    def trylock(self) -> bool:
        """Acquire without waiting; return whether it was acquired."""
        if self._lock.acquire(blocking=False):
            self._mark()
            return True
        return False

    def __enter__(self) -> "CkMutex":
        self.lock()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unlock()


class RWLock:
    """A reader-writer lock: many readers or one writer at a time."""

    def __init__(
        self,
        contention_timeout: float = CONTENTION_TIMEOUT,
        retries: int = CONTENTION_RETRIES,
    ) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._contention_timeout = contention_timeout
        self._retries = retries
        self.holder: str | None = None

    def _rd_timed(self, timeout: float) -> bool:
        with self._cond:
            if not self._cond.wait_for(lambda: not self._writer, timeout):
                return False
            self._readers += 1
            self.holder = threading.current_thread().name
            return True

    def _wr_timed(self, timeout: float) -> bool:
        with self._cond:
            ready = self._cond.wait_for(
                lambda: not self._writer and self._readers == 0, timeout
            )
            if not ready:
                return False
            self._writer = True
            self.holder = threading.current_thread().name
            return True

    def rd_lock(self) -> None:
        """Acquire a shared read lock."""
        _acquire_with_retries(
            self._rd_timed,
            "read lock",
            lambda: self.holder,
            self._contention_timeout,
            self._retries,
        )

    def wr_lock(self) -> None:
        """Acquire the exclusive write lock."""
        _acquire_with_retries(
            self._wr_timed,
            "write lock",
            lambda: self.holder,
            self._contention_timeout,
            self._retries,
        )

    def wr_trylock(self) -> bool:
        """Take the write lock without waiting; return whether it was taken."""
        return self._wr_timed(0)

    def rd_unlock(self) -> None:
        """Release one read lock."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("read lock is not held")
            self._readers -= 1
            if not self._readers:
                self._cond.notify_all()

    def wr_unlock(self) -> None:
        """Release the write lock."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("write lock is not held")
            self._writer = False
            self._cond.notify_all()


class CkLock:
    """A write-biased lock built from a mutex guarding a reader-writer lock.

    Readers pass through the mutex only briefly, so a waiting writer holding
    the mutex keeps new readers out.
    """

    def __init__(
        self,
        contention_timeout: float = CONTENTION_TIMEOUT,
        retries: int = CONTENTION_RETRIES,
    ) -> None:
        self.mutex = CkMutex(contention_timeout, retries)
        self.rwlock = RWLock(contention_timeout, retries)

    def rlock(self) -> None:
        """Take a read lock; it cannot be promoted."""
        self.mutex.lock()
        try:
            self.rwlock.rd_lock()
        finally:
            self.mutex.unlock()

    def runlock(self) -> None:
        """Release a read lock."""
        self.rwlock.rd_unlock()

    def wlock(self) -> None:
        """Take the write lock, holding the mutex as well."""
        self.mutex.lock()
        try:
            self.rwlock.wr_lock()
        except BaseException:
            self.mutex.unlock()
            raise

    def wunlock(self) -> None:
        """Release the write lock and the mutex."""
        self.rwlock.wr_unlock()
        self.mutex.unlock()

    def dwlock(self) -> None:
        """Downgrade a held write lock to a read lock."""
        self.rwlock.wr_unlock()
        try:
            self.rwlock.rd_lock()
        finally:
            self.mutex.unlock()

    def dwilock(self) -> None:
        """Demote a held write lock to the intermediate state: mutex kept, rwlock released."""
        self.rwlock.wr_unlock()


def cksem_mswait(sem: threading.Semaphore, ms: int) -> bool:
    """Wait up to ms milliseconds for sem; return whether it was acquired."""
    return sem.acquire(timeout=max(ms, 0) / 1000)


def ck_completion_timeout(fn: Callable[[Any], Any], arg: Any, timeout: int) -> bool:
    """Run fn(arg) in a thread; return whether it finished within timeout milliseconds.

    An exception raised by fn in time is raised again in the caller.
    """
    done = threading.Event()
    failure: list[BaseException] = []

    def run() -> None:
        try:
            fn(arg)
        except BaseException as exc:  # handed back to the caller
            failure.append(exc)
        finally:
            done.set()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    if not done.wait(max(timeout, 0) / 1000):
        return False
    thread.join()
    if failure:
        raise failure[0]
    return True