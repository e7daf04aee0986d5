import threading
import time

import pytest

from ckpoolkit.locks import (
    CkLock,
    CkMutex,
    LockTimeout,
    RWLock,
    ck_completion_timeout,
    cksem_mswait,
)


def _in_thread(fn):
    result = []

    def run():
        try:
            result.append(fn())
        except Exception as exc:
            result.append(exc)

    t = threading.Thread(target=run)
    t.start()
    t.join(5)
    return result[0]


def test_mutex_trylock_fails_while_held():
    m = CkMutex()
    m.lock()
    assert m.trylock() is False
    m.unlock()
    assert m.trylock() is True
    m.unlock()


def test_mutex_records_holder():
    m = CkMutex()
    m.lock()
    assert m.holder == threading.current_thread().name
    m.unlock()


def test_mutex_timedlock_times_out():
    m = CkMutex()
    m.lock()
    start = time.monotonic()
    assert m.timedlock(0.05) is False
    assert time.monotonic() - start >= 0.04
    m.unlock()


def test_mutex_lock_gives_up_after_retries():
    m = CkMutex(contention_timeout=0.01, retries=2)
    m.lock()
    with pytest.raises(LockTimeout):
        m.lock()
    m.unlock()


def test_mutex_unlock_unheld_raises():
    with pytest.raises(RuntimeError):
        CkMutex().unlock()


def test_mutex_context_manager_releases():
    m = CkMutex()
    with m:
        assert m.trylock() is False
    assert m.trylock() is True
    m.unlock()


def test_rwlock_many_readers_block_writer():
    rw = RWLock()
    rw.rd_lock()
    rw.rd_lock()
    assert rw.wr_trylock() is False
    rw.rd_unlock()
    assert rw.wr_trylock() is False
    rw.rd_unlock()
    assert rw.wr_trylock() is True
    rw.wr_unlock()


def test_rwlock_writer_blocks_reader():
    rw = RWLock(contention_timeout=0.02, retries=1)
    rw.wr_lock()
    outcome = _in_thread(rw.rd_lock)
    assert isinstance(outcome, LockTimeout)
    rw.wr_unlock()
    assert _in_thread(lambda: rw.rd_lock() or "ok") == "ok"


def test_rwlock_wr_lock_times_out_with_reader():
    rw = RWLock(contention_timeout=0.01, retries=3)
    rw.rd_lock()
    with pytest.raises(LockTimeout):
        rw.wr_lock()
    rw.rd_unlock()


def test_rwlock_unlock_errors():
    rw = RWLock()
    with pytest.raises(RuntimeError):
        rw.rd_unlock()
    with pytest.raises(RuntimeError):
        rw.wr_unlock()


def test_cklock_wlock_excludes_readers():
    lk = CkLock(contention_timeout=0.02, retries=1)
    lk.wlock()
    assert isinstance(_in_thread(lk.rlock), LockTimeout)
    lk.wunlock()
    assert _in_thread(lambda: lk.rlock() or "read") == "read"


def test_cklock_rlock_allows_other_readers():
    lk = CkLock(contention_timeout=0.5, retries=1)
    lk.rlock()
    assert _in_thread(lambda: (lk.rlock(), lk.runlock()) and "done") == "done"
    lk.runlock()
    assert lk.rwlock.wr_trylock() is True
    lk.rwlock.wr_unlock()


def test_cklock_dwlock_downgrades_to_read():
    lk = CkLock(contention_timeout=0.5, retries=1)
    lk.wlock()
    lk.dwlock()
    assert lk.mutex.trylock() is True
    lk.mutex.unlock()
    assert lk.rwlock.wr_trylock() is False
    lk.runlock()
    assert lk.rwlock.wr_trylock() is True
    lk.rwlock.wr_unlock()


def test_cklock_dwilock_keeps_mutex():
    lk = CkLock()
    lk.wlock()
    lk.dwilock()
    assert lk.mutex.trylock() is False
    assert lk.rwlock.wr_trylock() is True
    lk.rwlock.wr_unlock()
    lk.mutex.unlock()


def test_cksem_mswait():
    sem = threading.Semaphore(0)
    assert cksem_mswait(sem, 10) is False
    sem.release()
    assert cksem_mswait(sem, 10) is True


def test_completion_in_time_calls_fn():
    seen = []
    assert ck_completion_timeout(seen.append, "arg", 1000) is True
    assert seen == ["arg"]


def test_completion_times_out():
    assert ck_completion_timeout(time.sleep, 0.5, 20) is False


def test_completion_reraises_error():
    def boom(arg):
        raise ValueError(arg)

    with pytest.raises(ValueError):
        ck_completion_timeout(boom, "bad", 1000)