"""TCP helpers: URL parsing, name resolution, connecting, binding and socket I/O."""

from __future__ import annotations

import contextlib
import errno
import logging
import select
import socket
import struct

from ckpoolkit.timeutil import ms_tvdiff, tv_time
from ckpoolkit.util import PAGESIZE

_log = logging.getLogger(__name__)

_POLLRDHUP = getattr(select, "POLLRDHUP", 0x2000)
_CONNECT_TIMEOUT = 5
_WRITE_TIMEOUT = 5
_ROUND_TRIP_PORT = "1042"
_ROUND_TRIP_ATTEMPTS = 5


def extract_sockaddr(url: str | None) -> tuple[str, str]:
    """Split a server url such as ``scheme://host:port/path`` into (host, port).

    IPv6 literals are given in square brackets. The port defaults to "80",
    is cut to at most five characters and ends at the first slash.
    """
    if url is None:
        raise ValueError("no url string passed to extract_sockaddr")
    sep = url.find("//")
    begin = url if sep < 0 else url[sep + 2:]

    left = begin.find("[")
    right = begin.find("]")
    ipv6 = left >= 0 and right >= 0 and right > left
    colon = begin.find(":", right) if ipv6 else begin.find(":")

    port = "80"
    if colon >= 0:
        host_len = colon
        port_part = begin[colon + 1:]
        if not port_part:
            raise ValueError(f"missing port in url {url!r}")
        port = port_part[:5].split("/", 1)[0]
    else:
        host_len = len(begin)

    start = 0
    if ipv6:
        host_len -= 2
        start = 1
    if host_len < 1:
        raise ValueError(f"null length host in url {url!r}")
    return begin[start:start + host_len], port


def url_from_sockaddr(family: int, address) -> tuple[str, str]:
    """Return (host, port) as strings for an AF_INET or AF_INET6 socket address."""
    if family not in (socket.AF_INET, socket.AF_INET6):
        raise ValueError(f"unsupported address family {family}")
    host = str(address[0]).split("%", 1)[0]
    host = socket.inet_ntop(family, socket.inet_pton(family, host))
    return host, str(int(address[1]))


def _getaddrinfo(url: str | None, port: str | None) -> list:
    """Resolve url and port for a stream socket, retrying on temporary failure."""
    while True:
        try:
            return socket.getaddrinfo(
                url, port, socket.AF_UNSPEC, socket.SOCK_STREAM
            )
        except socket.gaierror as exc:
            if exc.errno != socket.EAI_AGAIN:
                raise


def addrinfo_from_url(url: str, port: str) -> tuple[int, tuple]:
    """Resolve url and port; return (family, sockaddr) of the first result."""
    infos = _getaddrinfo(url, port)
    if not infos:
        raise OSError(f"no address found for {url}:{port}")
    family, _socktype, _proto, _canon, sockaddr = infos[0]
    return family, sockaddr


def url_from_serverurl(serverurl: str) -> tuple[str, str]:
    """Return the resolved numeric (host, port) for a server url string."""
    url, port = extract_sockaddr(serverurl)
    family, sockaddr = addrinfo_from_url(url, port)
    return url_from_sockaddr(family, sockaddr)


def url_from_socket(sock: socket.socket) -> tuple[str, str]:
    """Return the local (host, port) a socket is bound to."""
    if sock.fileno() < 1:
        raise ValueError("invalid socket")
    return url_from_sockaddr(sock.family, sock.getsockname())


def keep_sockalive(sock: socket.socket) -> None:
    """Enable TCP keepalive probing and disable Nagle on sock."""
    options = [
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
        (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1),
    ]
    for name, value in (("TCP_KEEPCNT", 1), ("TCP_KEEPIDLE", 45), ("TCP_KEEPINTVL", 30)):
        if hasattr(socket, name):
            options.append((socket.IPPROTO_TCP, getattr(socket, name), value))
    for level, option, value in options:
        with contextlib.suppress(OSError):
            sock.setsockopt(level, option, value)


def nolinger_socket(sock: socket.socket) -> None:
    """Make close() reset the connection at once instead of lingering."""
    with contextlib.suppress(OSError):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))


def noblock_socket(sock: socket.socket) -> None:
    """Put sock in non-blocking mode."""
    sock.setblocking(False)


def block_socket(sock: socket.socket) -> None:
    """Put sock in blocking mode."""
    sock.setblocking(True)


def bind_socket(url: str | None, port: str) -> socket.socket:
    """Create a stream socket bound to url:port with SO_REUSEADDR set."""
    infos = _getaddrinfo(url, port)
    for family, socktype, proto, _canon, sockaddr in infos:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            continue
        break
    else:
        raise OSError(f"Failed to open socket for {url}:{port}")
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        _log.warning("Failed to bind socket for %s:%s", url, port)
        raise
    return sock


def connect_socket(url: str, port: str) -> socket.socket:
    """Connect to the first address of url:port that answers within 5 seconds.

    Returns a blocking socket; raises ConnectionError if no address connects.
    """
    infos = _getaddrinfo(url, port)
    for family, socktype, proto, _canon, sockaddr in infos:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError:
            _log.debug("Failed socket")
            continue
        sock.setblocking(False)
        err = sock.connect_ex(sockaddr)
        if err == 0:
            _log.debug("Succeeded immediate connect")
            sock.setblocking(True)
            return sock
        if err != errno.EINPROGRESS:
            sock.close()
            _log.debug("Failed sock connect")
            continue
        if wait_write_select(sock, _CONNECT_TIMEOUT) > 0:
            if sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR) == 0:
                _log.debug("Succeeded delayed connect")
                sock.setblocking(True)
                return sock
        sock.close()
        _log.debug("Select timeout/failed connect")
    _log.info("Failed to connect to %s:%s", url, port)
    raise ConnectionError(f"Failed to connect to {url}:{port}")


def round_trip(url: str) -> int:
    """Return the minimum time in ms for a connect to a closed port to be refused.

    Returns 0 on failure.
    """
    port = _ROUND_TRIP_PORT
    try:
        infos = _getaddrinfo(url, port)
    except OSError:
        _log.warning("Failed to resolve (?wrong URL) %s:%s", url, port)
        return 0
    if not infos:
        return 0
    family, socktype, proto, _canon, sockaddr = infos[0]
    try:
        sock = socket.socket(family, socktype, proto)
    except OSError:
        _log.error("Failed socket")
        return 0

    ret = 0
    with sock:
        for _ in range(_ROUND_TRIP_ATTEMPTS):
            start = tv_time()
            if sock.connect_ex(sockaddr) != errno.ECONNREFUSED:
                _log.info(
                    "Unable to get round trip due to %s:%s connect not being refused",
                    url,
                    port,
                )
                return ret
            diff = ms_tvdiff(tv_time(), start)
            if not ret or diff < ret:
                ret = diff
    if ret > 500:
        _log.info("Round trip to %s:%s greater than 500ms at %d", url, port, ret)
    _log.info("Minimum round trip to %s:%s calculated as %dms", url, port, ret)
    return ret


def _poll(sock: socket.socket, events: int, timeout: float) -> list:
    poller = select.poll()
    poller.register(sock.fileno(), events)
    return poller.poll(int(timeout * 1000))


def wait_close(sock: socket.socket, timeout: float) -> int:
    """Wait up to timeout seconds for the peer to close.

    Returns the hang-up/error poll bits seen, 0 on timeout, -1 for a closed socket.
    """
    if sock.fileno() < 0:
        return -1
    events = _poll(sock, _POLLRDHUP, timeout)
    if not events:
        return 0
    return events[0][1] & (select.POLLHUP | _POLLRDHUP | select.POLLERR)


def wait_read_select(sock: socket.socket, timeout: float) -> int:
    """Wait up to timeout seconds for sock to be readable; return the events seen."""
    if sock.fileno() < 0:
        return -1
    return len(_poll(sock, select.POLLIN | _POLLRDHUP, timeout))


def wait_write_select(sock: socket.socket, timeout: float) -> int:
    """Wait up to timeout seconds for sock to be writable; return the events seen."""
    if sock.fileno() < 0:
        return -1
    return len(_poll(sock, select.POLLOUT | _POLLRDHUP, timeout))


def read_length(sock: socket.socket, length: int) -> bytes:
    """Read exactly length bytes from sock."""
    if length < 1:
        raise ValueError(f"Invalid read length of {length} requested")
    if sock.fileno() < 0:
        raise ValueError("invalid socket")
    chunks = []
    remaining = length
    while remaining:
        chunk = sock.recv(remaining, socket.MSG_WAITALL)
        if not chunk:
            raise ConnectionError(f"connection closed with {remaining} bytes unread")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def write_length(sock: socket.socket, data) -> int:
    """Write all of data to sock; return the number of bytes written."""
    view = memoryview(data).cast("B")
    if len(view) < 1:
        raise ValueError("Invalid write length of 0 requested")
    if sock.fileno() < 0:
        raise ValueError("Attempt to write to invalidated sock")
    written = 0
    while written < len(view):
        written += sock.send(view[written:])
    return written


def write_socket(sock: socket.socket, data) -> int:
    """Wait up to 5 seconds for sock to be writable, then write all of data."""
    ret = wait_write_select(sock, _WRITE_TIMEOUT)
    if ret == 0:
        _log.info("Select timed out in write_socket")
        raise TimeoutError("select timed out in write_socket")
    if ret < 0:
        _log.info("Select failed in write_socket")
        raise OSError("select failed in write_socket")
    return write_length(sock, data)


def empty_socket(sock: socket.socket) -> int:
    """Discard whatever is waiting to be read on sock; return the bytes discarded."""
    if sock.fileno() < 1:
        return 0
    total = 0
    while True:
        try:
            chunk = sock.recv(PAGESIZE - 1, socket.MSG_DONTWAIT)
        except OSError:
            break
        if not chunk:
            break
        _log.debug("Discarding: %s", chunk.decode(errors="replace"))
        total += len(chunk)
    return total