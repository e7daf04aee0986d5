import socket
import struct

import pytest

from ckpoolkit.net import (
    addrinfo_from_url,
    bind_socket,
    block_socket,
    connect_socket,
    empty_socket,
    extract_sockaddr,
    keep_sockalive,
    noblock_socket,
    nolinger_socket,
    read_length,
    round_trip,
    url_from_serverurl,
    url_from_sockaddr,
    url_from_socket,
    wait_close,
    wait_read_select,
    wait_write_select,
    write_length,
    write_socket,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(4)
    yield srv
    srv.close()


@pytest.mark.parametrize(
    "url, expected",
    [
        ("stratum+tcp://pool.example.com:3333", ("pool.example.com", "3333")),
        ("pool.example.com", ("pool.example.com", "80")),
        ("[::1]:8333", ("::1", "8333")),
        ("[::1]", ("::1", "80")),
        ("http://host.example.com:3333/path", ("host.example.com", "3333")),
        ("host.example.com:1234567", ("host.example.com", "12345")),
    ],
)
def test_extract_sockaddr(url, expected):
    assert extract_sockaddr(url) == expected


@pytest.mark.parametrize("url", ["host.example.com:", "tcp://", None, ":3333"])
def test_extract_sockaddr_rejects(url):
    with pytest.raises(ValueError):
        extract_sockaddr(url)


def test_url_from_sockaddr_ipv4():
    assert url_from_sockaddr(socket.AF_INET, ("127.0.0.1", 3333)) == ("127.0.0.1", "3333")


def test_url_from_sockaddr_ipv6():
    assert url_from_sockaddr(socket.AF_INET6, ("::1", 8333, 0, 0)) == ("::1", "8333")


def test_url_from_sockaddr_other_family():
    with pytest.raises(ValueError):
        url_from_sockaddr(socket.AF_UNIX, "/tmp/sock")


def test_addrinfo_from_url_numeric():
    family, sockaddr = addrinfo_from_url("127.0.0.1", "3333")
    assert family == socket.AF_INET
    assert sockaddr[:2] == ("127.0.0.1", 3333)


def test_url_from_serverurl():
    assert url_from_serverurl("stratum+tcp://127.0.0.1:3333") == ("127.0.0.1", "3333")


def test_bind_socket_and_url_from_socket():
    sock = bind_socket("127.0.0.1", "0")
    with sock:
        host, port = url_from_socket(sock)
        assert host == "127.0.0.1"
        assert int(port) > 0
        assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) == 1


def test_url_from_socket_closed():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.close()
    with pytest.raises(ValueError):
        url_from_socket(sock)


def test_connect_socket(listener):
    port = str(listener.getsockname()[1])
    sock = connect_socket("127.0.0.1", port)
    with sock:
        peer, _ = listener.accept()
        with peer:
            assert sock.getblocking() is True
            assert sock.getpeername() == listener.getsockname()
            sock.sendall(b"hello")
            assert read_length(peer, 5) == b"hello"


def test_connect_socket_refused():
    tmp = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    tmp.bind(("127.0.0.1", 0))
    port = str(tmp.getsockname()[1])
    tmp.close()
    with pytest.raises(ConnectionError):
        connect_socket("127.0.0.1", port)


def test_round_trip_local_is_small():
    ms = round_trip("127.0.0.1")
    assert 0 <= ms < 1000


def test_block_and_noblock(pair):
    a, _ = pair
    noblock_socket(a)
    assert a.getblocking() is False
    block_socket(a)
    assert a.getblocking() is True


def test_nolinger_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with sock:
        nolinger_socket(sock)
        raw = sock.getsockopt(socket.SOL_SOCKET, socket.SO_LINGER, 8)
        assert struct.unpack("ii", raw) == (1, 0)


def test_keep_sockalive():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with sock:
        keep_sockalive(sock)
        assert sock.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) == 1
        assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 1
        assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE) == 45
        assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL) == 30
        assert sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPCNT) == 1


def test_write_and_read_length_round_trip(pair):
    a, b = pair
    payload = bytes(range(256)) * 10
    assert write_length(a, payload) == len(payload)
    assert read_length(b, len(payload)) == payload


def test_read_length_invalid_length(pair):
    a, _ = pair
    with pytest.raises(ValueError):
        read_length(a, 0)


def test_read_length_peer_closed(pair):
    a, b = pair
    a.sendall(b"ab")
    a.close()
    with pytest.raises(ConnectionError):
        read_length(b, 4)


def test_write_length_empty(pair):
    a, _ = pair
    with pytest.raises(ValueError):
        write_length(a, b"")


def test_write_socket(pair):
    a, b = pair
    assert write_socket(a, b"update") == 6
    assert read_length(b, 6) == b"update"


def test_wait_read_select(pair):
    a, b = pair
    assert wait_read_select(b, 0.05) == 0
    a.sendall(b"x")
    assert wait_read_select(b, 1) == 1


def test_wait_write_select(pair):
    a, _ = pair
    assert wait_write_select(a, 1) == 1


def test_empty_socket(pair):
    a, b = pair
    a.sendall(b"abc")
    assert wait_read_select(b, 1) == 1
    assert empty_socket(b) == 3
    assert wait_read_select(b, 0) == 0


def test_wait_close(pair):
    a, b = pair
    assert wait_close(a, 0) == 0
    b.close()
    assert wait_close(a, 1) > 0


def test_wait_close_closed_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.close()
    assert wait_close(sock, 0) == -1