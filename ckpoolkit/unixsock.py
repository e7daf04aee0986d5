"""Length-prefixed messages and descriptor passing over unix domain sockets.

A message is a 4 byte little endian length followed by that many bytes of
text. Each side shuts down its direction of the socket once it is done.
"""

from __future__ import annotations

import contextlib
import logging
import os
import socket
import stat
import struct

from ckpoolkit.net import read_length, wait_read_select, wait_write_select, write_length

_log = logging.getLogger(__name__)

UNIX_PATH_MAX = 108
UNIX_READ_TIMEOUT = 5
UNIX_WRITE_TIMEOUT = 10
MAX_MSG_LEN = 0x80000000
_MAXLINE = 4096
_SERVER_MODE = stat.S_IRWXU | stat.S_IRWXG


def _check_path(server_path: str | None) -> None:
    if server_path is None:
        raise ValueError("no server path given")
    length = len(os.fsencode(server_path))
    if length < 1 or length >= UNIX_PATH_MAX:
        raise ValueError(f"Invalid server path length {length}")


def open_unix_server(server_path: str) -> socket.socket:
    """Create a listening unix socket at server_path.

    A stale socket file at the path is replaced; any other existing file is
    left alone and FileExistsError is raised.
    """
    _check_path(server_path)
    try:
        mode = os.stat(server_path).st_mode
    except FileNotFoundError:
        pass
    else:
        if not stat.S_ISSOCK(mode):
            _log.warning("%s already exists and is not a socket, not removing", server_path)
            raise FileExistsError(f"{server_path} exists and is not a socket")
        os.unlink(server_path)
        _log.debug("Unlinked %s to recreate socket", server_path)

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.bind(server_path)
        try:
            os.chmod(server_path, _SERVER_MODE)
        except OSError:
            _log.error("Failed to set mode in open_unix_server - continuing")
        sock.listen(socket.SOMAXCONN)
    except OSError:
        _log.error("Failure in open_unix_server for %s", server_path)
        sock.close()
        raise
    _log.debug("Opened server path %s successfully on socket %d", server_path, sock.fileno())
    return sock


def open_unix_client(server_path: str) -> socket.socket:
    """Connect a unix stream socket to server_path."""
    _check_path(server_path)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(server_path)
    except OSError:
        _log.error("Failure in open_unix_client for %s", server_path)
        sock.close()
        raise
    _log.debug("Opened client path %s successfully on socket %d", server_path, sock.fileno())
    return sock


def close_unix_socket(sock: socket.socket, server_path: str) -> None:
    """Close a unix socket; the path is only used for logging."""
    _log.debug("Closing unix socket %d %s", sock.fileno(), server_path)
    sock.close()


def _shutdown(sock: socket.socket, how: int) -> None:
    with contextlib.suppress(OSError):
        sock.shutdown(how)


def send_unix_msg(sock: socket.socket, msg, timeout: float = UNIX_WRITE_TIMEOUT) -> None:
    """Send msg prefixed with its length, then shut down the write side."""
    try:
        if msg is None:
            raise ValueError("Null message sent to send_unix_msg")
        data = msg.encode() if isinstance(msg, str) else bytes(msg)
        if not data:
            raise ValueError("Zero length message sent to send_unix_msg")
        if sock.fileno() < 0:
            raise ValueError("Attempting to send unix message to invalidated socket")
        if wait_write_select(sock, timeout) < 1:
            raise TimeoutError("Select1 failed in send_unix_msg")
        write_length(sock, struct.pack("<I", len(data)))
        if wait_write_select(sock, timeout) < 1:
            raise TimeoutError("Select2 failed in send_unix_msg")
        write_length(sock, data)
    except (OSError, ValueError):
        _log.error("Failure in send_unix_msg")
        raise
    finally:
        if sock.fileno() >= 0:
            _shutdown(sock, socket.SHUT_WR)


def recv_unix_msg(
    sock: socket.socket,
    timeout1: float = UNIX_READ_TIMEOUT,
    timeout2: float = UNIX_READ_TIMEOUT,
) -> str:
    """Receive one length-prefixed message, then shut down the read side.

    timeout1 bounds the wait for the length, timeout2 the wait for the body.
    """
    try:
        if wait_read_select(sock, timeout1) < 1:
            raise TimeoutError("Select1 failed in recv_unix_msg")
        (msglen,) = struct.unpack("<I", read_length(sock, 4))
        if msglen < 1 or msglen > MAX_MSG_LEN:
            _log.warning("Invalid message length %u sent to recv_unix_msg", msglen)
            raise ValueError(f"Invalid message length {msglen}")
        if wait_read_select(sock, timeout2) < 1:
            raise TimeoutError("Select2 failed in recv_unix_msg")
        body = read_length(sock, msglen)
    except (OSError, ValueError):
        _log.error("Failure in recv_unix_msg")
        raise
    finally:
        if sock.fileno() >= 0:
            _shutdown(sock, socket.SHUT_RD)
    return body.decode(errors="replace")


def send_fd(fd: int, sock: socket.socket) -> None:
    """Pass the file descriptor fd over the unix socket sock."""
    try:
        if wait_write_select(sock, UNIX_WRITE_TIMEOUT) < 1:
            raise TimeoutError("Select1 failed in send_unix_data")
        if socket.send_fds(sock, [b"\x00\x00"], [fd]) < 1:
            raise OSError("Failed to send in send_unix_data")
    except OSError:
        _log.error("Failed to send_unix_data in send_fd")
        raise
    finally:
        if sock.fileno() >= 0:
            _shutdown(sock, socket.SHUT_WR)


def get_fd(sock: socket.socket) -> int:
    """Receive a file descriptor sent with send_fd and return it."""
    try:
        if wait_read_select(sock, UNIX_READ_TIMEOUT) < 1:
            raise TimeoutError("Select1 failed in recv_unix_data")
        _msg, fds, _flags, _addr = socket.recv_fds(sock, _MAXLINE, 1)
    except OSError:
        _log.error("Failed to recv_unix_data in get_fd")
        raise
    finally:
        if sock.fileno() >= 0:
            _shutdown(sock, socket.SHUT_RD)
    if not fds:
        raise OSError("no file descriptor received")
    return fds[0]