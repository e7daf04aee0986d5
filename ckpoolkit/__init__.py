"""Mining pool helpers: hashing, difficulty maths, encodings, locks, sockets and a notifier."""

__version__ = "0.1.0"
__all__ = ["encoding", "locks", "net", "notifier", "sha2", "target", "timeutil", "unixsock", "util"]