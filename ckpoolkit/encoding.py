"""Hex, base58, base64 and bitcoin script encoding helpers."""

from __future__ import annotations

import base64
import struct

_HEXDIGITS = frozenset("0123456789abcdefABCDEF")
_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_VALUES = {ch: i for i, ch in enumerate(_B58_ALPHABET)}
_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_VALUES = {ch: i for i, ch in enumerate(_BECH32_CHARSET)}
_BECH32_VALUES.update({ch.upper(): i for ch, i in list(_BECH32_VALUES.items())})


def bin2hex(data) -> str:
    """Return data as a lower case hex string."""
    return memoryview(data).tobytes().hex()


def validhex(buf: str) -> bool:
    """Return whether buf is a non-empty, even length hex string."""
    if not buf or len(buf) % 2:
        return False
    return all(ch in _HEXDIGITS for ch in buf)


def hex2bin(hexstr: str, length: int) -> bytes:
    """Decode hexstr, which must encode exactly length bytes."""
    if len(hexstr) % 2:
        raise ValueError("early end of string in hex")
    if any(ch not in _HEXDIGITS for ch in hexstr):
        raise ValueError("invalid binary encoding in hex")
    if len(hexstr) != length * 2:
        raise ValueError(f"hex string does not encode exactly {length} bytes")
    return bytes.fromhex(hexstr)


def http_base64(src) -> str:
    """Return src encoded as MIME base64."""
    data = src.encode() if isinstance(src, str) else bytes(src)
    return base64.b64encode(data).decode("ascii")


def b58tobin(b58: str) -> bytes:
    """Decode a base58 string into its 25 byte binary form."""
    value = 0
    for ch in b58:
        try:
            value = value * 58 + _B58_VALUES[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
    return (value % (1 << 200)).to_bytes(25, "big")


def safecmp(a: str | None, b: str | None) -> int:
    """Compare strings tolerating None and empty strings; 0 means equal."""
    if a is None or b is None:
        return 0 if a is b else -1
    if not a or not b:
        return 0 if len(a) == len(b) else -1
    return (a > b) - (a < b)


def cmdmatch(buf: str | None, cmd: str) -> bool:
    """Return whether buf begins with cmd, ignoring case."""
    if not buf or len(buf) < len(cmd):
        return False
    return buf[:len(cmd)].lower() == cmd.lower()


def _bech32_data(addr: str) -> list[int]:
    sep = addr.rfind("1")
    if sep < 0:
        raise ValueError("missing bech32 separator")
    payload = addr[sep + 1:]
    if len(payload) < 7:
        raise ValueError("bech32 data part too short")
    try:
        return [_BECH32_VALUES[ch] for ch in payload[:-6]]
    except KeyError as exc:
        raise ValueError(f"invalid bech32 character {exc.args[0]!r}") from None


def _convert_bits(values: list[int]) -> bytes:
    out = bytearray()
    acc = 0
    bits = 0
    for v in values:
        acc = ((acc << 5) | v) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((acc >> bits) & 0xFF)
    return bytes(out)


def address_to_txn(addr: str, script: bool, segwit: bool) -> bytes:
    """Return the output script that pays to addr."""
    if segwit:
        data = _bech32_data(addr)
        version = data[0]
        program = _convert_bits(data[1:])
        opcode = version + 0x50 if version else 0
        return bytes([opcode, len(program)]) + program
    hash160 = b58tobin(addr)[1:21]
    if script:
        return b"\xa9\x14" + hash160 + b"\x87"
    return b"\x76\xa9\x14" + hash160 + b"\x88\xac"


def ser_number(val: int) -> bytes:
    """Serialise a block height for the coinbase: a length byte then the value."""
    if val < 0x80:
        length = 1
    elif val < 0x8000:
        length = 2
    elif val < 0x800000:
        length = 3
    else:
        length = 4
    return bytes([length]) + val.to_bytes(4, "little", signed=True)[:length]


def get_sernumber(data) -> int:
    """Decode a number written by ser_number; 0 for an invalid length byte."""
    raw = memoryview(data).tobytes()
    if not raw:
        raise ValueError("empty serialised number")
    length = raw[0]
    if length < 1 or length > 4:
        return 0
    body = raw[1:1 + length]
    if len(body) < length:
        raise ValueError("serialised number is truncated")
    return int.from_bytes(body.ljust(4, b"\x00"), "little", signed=True)


def _words(data, count: int) -> tuple[int, ...]:
    raw = memoryview(data).tobytes()
    if len(raw) != count * 4:
        raise ValueError(f"expected {count * 4} bytes, got {len(raw)}")
    return struct.unpack(f"<{count}I", raw)


def swap_256(data) -> bytes:
    """Reverse the order of the eight 32-bit words of a 256-bit value."""
    return struct.pack("<8I", *reversed(_words(data, 8)))


def bswap_256(data) -> bytes:
    """Reverse the word order and the bytes within each word of a 256-bit value."""
    return struct.pack(">8I", *reversed(_words(data, 8)))


def flip_32(data) -> bytes:
    """Byte-swap each of the eight 32-bit words of a 32 byte value."""
    return struct.pack(">8I", *_words(data, 8))


def flip_80(data) -> bytes:
    """Byte-swap each of the twenty 32-bit words of an 80 byte header."""
    return struct.pack(">20I", *_words(data, 20))