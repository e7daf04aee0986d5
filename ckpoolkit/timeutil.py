"""Time differences, absolute-deadline sleeps and hourly rotating log files."""

from __future__ import annotations

import fcntl
import math
import os
import time


def _split(t: float) -> tuple[int, int]:
    """Split seconds into whole seconds and microseconds."""
    sec = math.floor(t)
    usec = round((t - sec) * 1_000_000)
    if usec >= 1_000_000:
        sec += 1
        usec -= 1_000_000
    return sec, usec


def tv_time() -> float:
    """Return the current wall clock time in seconds."""
    return time.time()


def us_tvdiff(end: float, start: float) -> float:
    """Return end - start in microseconds, capped at 60 seconds."""
    esec, eusec = _split(end)
    ssec, susec = _split(start)
    if esec - ssec > 60:
        return 60_000_000.0
    return float((esec - ssec) * 1_000_000 + (eusec - susec))


def ms_tvdiff(end: float, start: float) -> int:
    """Return end - start in whole milliseconds, capped at one hour."""
    esec, eusec = _split(end)
    ssec, susec = _split(start)
    if esec - ssec > 3600:
        return 3_600_000
    return (esec - ssec) * 1000 + int((eusec - susec) / 1000)


def tvdiff(end: float, start: float) -> float:
    """Return end - start in seconds."""
    esec, eusec = _split(end)
    ssec, susec = _split(start)
    return esec - ssec + (eusec - susec) / 1_000_000.0


def sane_tdiff(end: float, start: float) -> float:
    """Return end - start in seconds, never less than one millisecond."""
    return max(tvdiff(end, start), 0.001)


def cksleep_prepare_r() -> float:
    """Return a monotonic start time for the cksleep_*_r functions."""
    return time.monotonic()


def _sleep_until(deadline: float) -> None:
    remaining = deadline - time.monotonic()
    while remaining > 0:
        time.sleep(remaining)
        remaining = deadline - time.monotonic()


def cksleep_ms_r(start: float, ms: int) -> None:
    """Sleep until ms milliseconds after the monotonic time start."""
    _sleep_until(start + ms / 1000)


def cksleep_us_r(start: float, us: int) -> None:
    """Sleep until us microseconds after the monotonic time start."""
    _sleep_until(start + us / 1_000_000)


def cksleep_ms(ms: int) -> None:
    """Sleep for ms milliseconds."""
    cksleep_ms_r(cksleep_prepare_r(), ms)


def cksleep_us(us: int) -> None:
    """Sleep for us microseconds."""
    cksleep_us_r(cksleep_prepare_r(), us)


def rotating_filename(path: str, when: float) -> str:
    """Return the hourly log file name for the UTC time when."""
    tm = time.gmtime(when)
    return f"{path}{tm.tm_year:04d}{tm.tm_mon:02d}{tm.tm_mday:02d}{tm.tm_hour:02d}.log"


def rotating_log(path: str, msg: str) -> str:
    """Append msg to this hour's log file under an exclusive lock; return its name."""
    filename = rotating_filename(path, time.time())
    flags = os.O_CREAT | os.O_WRONLY | os.O_APPEND | os.O_CLOEXEC
    fd = os.open(filename, flags, 0o644)
    with os.fdopen(fd, "a") as fp:
        fcntl.flock(fp.fileno(), fcntl.LOCK_EX)
        fp.write(f"{msg}\n")
    return filename