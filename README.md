# ckpoolkit

Building blocks for a mining pool server, in plain Python with no third-party
dependencies. Some parts use POSIX-only facilities (`fcntl`, `select.poll`,
descriptor passing over Unix sockets) and are meant for Linux.

## Modules

- `ckpoolkit.sha2`: a streaming `Sha256` hasher (`update`, `digest`, `hexdigest`,
  `copy`) and a one-shot `sha256()`.
- `ckpoolkit.encoding`: `bin2hex`, `validhex`, `hex2bin`, `http_base64`,
  base58 decoding (`b58tobin`), output scripts for an address (`address_to_txn`),
  coinbase height serialisation (`ser_number`, `get_sernumber`), string helpers
  (`safecmp`, `cmdmatch`) and 256-bit word swapping (`swap_256`, `bswap_256`,
  `flip_32`, `flip_80`). Malformed input raises `ValueError`.
- `ckpoolkit.target`: difficulty and target maths (`le256todouble`,
  `be256todouble`, `diff_from_target`, `diff_from_betarget`, `diff_from_nbits`,
  `target_from_diff`, `fulltest`), double SHA-256 (`gen_hash`), human-readable
  values with K/M/G/T/P/E suffixes (`suffix_string`) and decaying averages
  (`decay_time`). `ShareError` lists the results of a submitted share, each with
  a `description()`.
- `ckpoolkit.timeutil`: time differences (`us_tvdiff`, `ms_tvdiff`, `tvdiff`,
  `sane_tdiff`), sleeps that count from a fixed monotonic start time
  (`cksleep_prepare_r`, `cksleep_ms_r`, `cksleep_us_r`, `cksleep_ms`,
  `cksleep_us`), and an hourly rotating log file (`rotating_filename`,
  `rotating_log`, which appends under an exclusive lock and returns the file name).
- `ckpoolkit.locks`: `CkMutex` and `RWLock`, which log a warning each time a
  10 second wait for the lock runs out and raise `LockTimeout` after six such
  waits; the write-biased `CkLock`; `cksem_mswait` for a semaphore wait in
  milliseconds; and `ck_completion_timeout`, which runs a function in a thread
  and reports whether it finished in time.
- `ckpoolkit.util`: `align_len`, `round_up_page`, `trail_slash`,
  `json_array_string` and `json_object_dup`.
- `ckpoolkit.net`: URL parsing (`extract_sockaddr`), resolution
  (`addrinfo_from_url`, `url_from_serverurl`, `url_from_sockaddr`,
  `url_from_socket`), socket options, `bind_socket`, `connect_socket`,
  `round_trip`, waiting for I/O (`wait_close`, `wait_read_select`,
  `wait_write_select`) and exact reads and writes (`read_length`,
  `write_length`, `write_socket`, `empty_socket`). Failures raise `OSError`
  subclasses or `ValueError`.
- `ckpoolkit.unixsock`: Unix socket servers and clients (`open_unix_server`,
  `open_unix_client`, `close_unix_socket`) exchanging messages prefixed with a
  4 byte little endian length (`send_unix_msg`, `recv_unix_msg`), and passing
  file descriptors between processes (`send_fd`, `get_fd`).
- `ckpoolkit.notifier`: tells a running stratifier that a new block has arrived
  (`stratifier_path`, `notify`, `main`).

## Install

    pip install .

## Examples

    from ckpoolkit.encoding import bin2hex
    from ckpoolkit.target import diff_from_nbits, fulltest, gen_hash, target_from_diff

    target = target_from_diff(1.0)
    print(bin2hex(target))
    print(diff_from_nbits(bytes.fromhex("1d00ffff")))
    print(fulltest(gen_hash(b"header"), target))

Sending and receiving a message over a Unix socket:

    from ckpoolkit.unixsock import open_unix_client, send_unix_msg

    sock = open_unix_client("/tmp/ckpool/stratifier")
    send_unix_msg(sock, "update")
    sock.close()

## Notifying a stratifier

After a new block, tell the pool's stratifier to refresh its work:

    ckpool-notifier                    # /tmp/ckpool/stratifier
    ckpool-notifier -p                 # /tmp/ckproxy/stratifier
    ckpool-notifier -n mypool -s /run  # /run/mypool/stratifier

The command exits with status 0 once the message has been sent, and 1 if the
socket could not be opened or the message could not be written.

## What this package does not do

It holds the helpers and the notifier only. There is no pool server, no
stratifier, no stratum protocol handling and no connection to a bitcoin node:
something else has to listen on the stratifier socket for the notifier to reach.
The SHA-256 code is plain Python and is not fast.

## Tests

    pip install .[test]
    pytest