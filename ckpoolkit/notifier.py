"""Tell a running pool's stratifier that a new block has arrived."""

from __future__ import annotations

import argparse
import sys

from ckpoolkit.unixsock import close_unix_socket, open_unix_client, send_unix_msg
from ckpoolkit.util import trail_slash

DEFAULT_SOCKET_DIR = "/tmp"


def stratifier_path(
    socket_dir: str | None = None, name: str | None = None, proxy: bool = False
) -> str:
    """Return the path of the stratifier socket for a pool instance."""
    path = trail_slash(socket_dir if socket_dir is not None else DEFAULT_SOCKET_DIR)
    if name is None:
        name = "ckproxy" if proxy else "ckpool"
    return trail_slash(path + name) + "stratifier"


def notify(
    socket_dir: str | None = None, name: str | None = None, proxy: bool = False
) -> str:
    """Send the update message to the stratifier; return the socket path used."""
    path = stratifier_path(socket_dir, name, proxy)
    sock = open_unix_client(path)
    try:
        send_unix_msg(sock, "update")
    finally:
        close_unix_socket(sock, path)
    return path


def main(argv=None) -> int:
    """Command line entry point; returns the exit status."""
    parser = argparse.ArgumentParser(description="Notify the stratifier of a block update.")
    parser.add_argument("-n", dest="name", help="name of the pool instance")
    parser.add_argument("-s", dest="socket_dir", help="directory holding the sockets")
    parser.add_argument("-p", dest="proxy", action="store_true", help="instance is a proxy")
    args = parser.parse_args(argv)

    path = stratifier_path(args.socket_dir, args.name, args.proxy)
    try:
        sock = open_unix_client(path)
    except (OSError, ValueError):
        print(f"Failed to open socket: {path}", file=sys.stderr)
        return 1
    try:
        send_unix_msg(sock, "update")
    except (OSError, ValueError):
        print("Failed to send stratifier update msg", file=sys.stderr)
        return 1
    finally:
        close_unix_socket(sock, path)
    print("Notified stratifier of block update")
    return 0


if __name__ == "__main__":
    sys.exit(main())