"""Difficulty and target arithmetic, share results and rate statistics."""

from __future__ import annotations

import enum
import math

from ckpoolkit.sha2 import sha256

_U64_MASK = 0xFFFFFFFFFFFFFFFF

# 0x00000000FFFF0000000000000000000000000000000000000000000000000000
TRUEDIFFONE = 26959535291011309493156476344723991336010898738574164086137773096960.0
_BITS192 = 6277101735386680763835789423207666416102355444464034512896.0
_BITS128 = 340282366920938463463374607431768211456.0
_BITS64 = 18446744073709551616.0


class ShareError(enum.IntEnum):
    """Result codes for a submitted share; NONE means the share is valid."""

    INVALID_NONCE2 = -9
    WORKER_MISMATCH = -8
    NO_NONCE = -7
    NO_NTIME = -6
    NO_NONCE2 = -5
    NO_JOBID = -4
    NO_USERNAME = -3
    INVALID_SIZE = -2
    NOT_ARRAY = -1
    NONE = 0
    INVALID_JOBID = 1
    STALE = 2
    NTIME_INVALID = 3
    DUPE = 4
    HIGH_DIFF = 5
    INVALID_VERSION_MASK = 6

    def description(self) -> str:
        """Return the human readable text for this result."""
        return _SHARE_ERROR_TEXT[self]


_SHARE_ERROR_TEXT = {
    ShareError.INVALID_NONCE2: "Invalid nonce2 length",
    ShareError.WORKER_MISMATCH: "Worker mismatch",
    ShareError.NO_NONCE: "No nonce",
    ShareError.NO_NTIME: "No ntime",
    ShareError.NO_NONCE2: "No nonce2",
    ShareError.NO_JOBID: "No job_id",
    ShareError.NO_USERNAME: "No username",
    ShareError.INVALID_SIZE: "Invalid array size",
    ShareError.NOT_ARRAY: "Params not array",
    ShareError.NONE: "Valid",
    ShareError.INVALID_JOBID: "Invalid JobID",
    ShareError.STALE: "Stale",
    ShareError.NTIME_INVALID: "Ntime out of range",
    ShareError.DUPE: "Duplicate",
    ShareError.HIGH_DIFF: "Above target",
    ShareError.INVALID_VERSION_MASK: "Invalid version mask",
}


def _bytes32(data) -> bytes:
    raw = memoryview(data).tobytes()
    if len(raw) != 32:
        raise ValueError(f"expected 32 bytes, got {len(raw)}")
    return raw


def _words_to_double(words: list[int]) -> float:
    """Combine four 64-bit words, most significant first, into a double."""
    high, upper, lower, low = (float(w) for w in words)
    return high * _BITS192 + upper * _BITS128 + lower * _BITS64 + low


def le256todouble(target) -> float:
    """Convert a little endian 256-bit value to a float."""
    raw = _bytes32(target)
    words = [int.from_bytes(raw[i:i + 8], "little") for i in (24, 16, 8, 0)]
    return _words_to_double(words)


def be256todouble(target) -> float:
    """Convert a big endian 256-bit value to a float."""
    raw = _bytes32(target)
    words = [int.from_bytes(raw[i:i + 8], "big") for i in (0, 8, 16, 24)]
    return _words_to_double(words)


def diff_from_target(target) -> float:
    """Return the difficulty of a little endian binary target."""
    dcut = le256todouble(target)
    if dcut <= 0:
        dcut = 1.0
    return TRUEDIFFONE / dcut


def diff_from_betarget(target) -> float:
    """Return the difficulty of a big endian binary target."""
    dcut = be256todouble(target)
    if dcut <= 0:
        dcut = 1.0
    return TRUEDIFFONE / dcut


def diff_from_nbits(nbits) -> float:
    """Return the network difficulty from the 4 byte packed nbits of a block header."""
    raw = memoryview(nbits).tobytes()
    if len(raw) < 4:
        raise ValueError("nbits must be at least 4 bytes")
    shift = min(max(raw[0], 3), 32)
    target = bytearray(32)
    start = 32 - shift
    target[start:start + 3] = raw[1:4]
    return diff_from_betarget(target)


def target_from_diff(diff: float) -> bytes:
    """Return the 32 byte little endian target for a difficulty."""
    if diff == 0.0:
        return b"\xff" * 32
    remaining = TRUEDIFFONE / diff
    words = []
    for scale in (_BITS192, _BITS128, _BITS64):
        h64 = int(remaining / scale) & _U64_MASK
        words.append(h64)
        remaining -= float(h64) * scale
    words.append(int(remaining) & _U64_MASK)
    high, upper, lower, low = words
    return b"".join(w.to_bytes(8, "little") for w in (low, lower, upper, high))


def fulltest(hash, target) -> bool:
    """Return whether a little endian 256-bit hash meets a little endian target."""
    return int.from_bytes(_bytes32(hash), "little") <= int.from_bytes(
        _bytes32(target), "little"
    )


def gen_hash(data) -> bytes:
    """Return the double SHA-256 of data."""
    return sha256(sha256(data))


_SUFFIXES = (
    (1e18, 1e15, "E"),
    (1e15, 1e12, "P"),
    (1e12, 1e9, "T"),
    (1e9, 1e6, "G"),
    (1e6, 1e3, "M"),
)


def suffix_string(val: float, sigdigits: int = 0) -> str:
    """Format val with a K/M/G/T/P/E suffix, optionally to sigdigits digits."""
    suffix = ""
    decimal = True
    for limit, divisor, letter in _SUFFIXES:
        if val >= limit:
            dval = (val / divisor) / 1000
            suffix = letter
            break
    else:
        if val >= 1000:
            dval = val / 1000
            suffix = "K"
        else:
            dval = val
            decimal = False

    if not sigdigits:
        if decimal:
            return f"{dval:.3g}{suffix}"
        return f"{int(dval)}{suffix}"
    ndigits = sigdigits - 1 - (math.floor(math.log10(dval)) if dval > 0.0 else 0)
    if ndigits < 0:
        ndigits = 6
    return f"{dval:{sigdigits + 1}.{ndigits}f}{suffix}"


def decay_time(f: float, fadd: float, fsecs: float, interval: float) -> float:
    """Fold fadd over fsecs into an exponentially decaying average over interval."""
    if fsecs <= 0:
        return f
    dexp = min(fsecs / interval, 36)
    fprop = 1.0 - 1 / math.exp(dexp)
    ftotal = 1.0 + fprop
    f += fadd / fsecs * fprop
    f /= ftotal
    if f < 2e-16:
        f = 0.0
    return f