"""Network side of the telnet client: output queue, urgent data and I/O."""

from __future__ import annotations

import errno
import select
import socket
from typing import Callable, Optional

from tlstelnet.ring import Ring
from tlstelnet.tls import TlsClient, TlsError

BUFSIZ = 8192

Trace = Callable[[str, bytes], None]


class PeerDiedError(ConnectionError):
    """Writing to the network failed for good; the connection is closed."""


class Network:
    """The telnet connection socket with its input and output rings."""

    def __init__(
        self,
        sock: socket.socket,
        tls: Optional[TlsClient] = None,
        trace: Optional[Trace] = None,
    ) -> None:
        self.sock = sock
        self.tls = tls
        self.trace = trace
        self.output_ring = Ring(2 * BUFSIZ)
        self.input_ring = Ring(BUFSIZ)
        self.encrypt_output: Optional[Callable[[bytes], bytes]] = None

    def _tls_active(self) -> bool:
        return self.tls is not None and self.tls.active

    def send(self, data: bytes, flags: int = 0) -> int:
        """Send ``data`` over TLS when active, otherwise over the plain socket."""
        if self._tls_active():
            assert self.tls is not None
            return self.tls.write(data)
        return self.sock.send(bytes(data), flags)

    def recv(self, size: int, flags: int = 0) -> bytes:
        """Receive up to ``size`` bytes over TLS when active, otherwise plainly."""
        if self._tls_active():
            assert self.tls is not None
            return self.tls.read(size)
        return self.sock.recv(size, flags)

    def still_oob(self) -> bool:
        """Return True if out-of-band data is waiting on the socket."""
        _, _, exceptional = select.select([], [], [self.sock], 0)
        return bool(exceptional)

    def set_urgent(self) -> None:
        """Mark the last queued byte as urgent data."""
        self.output_ring.mark()

    def write(self, data: bytes) -> int:
        """Queue ``data`` for sending; return its length, or 0 if it does not fit."""
        data = bytes(data)
        if len(data) > self.output_ring.empty_count():
            return 0
        self.output_ring.supply_data(data)
        return len(data)

    def flush(self) -> bool:
        """Send as much queued data as possible; return True if anything went out."""
        ring = self.output_ring
        if self.encrypt_output is not None:
            ring.encrypt(self.encrypt_output)
        n = n1 = ring.full_consecutive()
        chunk = b""
        if n > 0:
            chunk = ring.peek_consecutive(n)
            try:
                if not ring.at_mark():
                    n = self.send(chunk, 0)
                else:
                    # Only one byte goes out of band: the one at the mark.
                    n = self.send(chunk[:1], socket.MSG_OOB)
            except BlockingIOError:
                n = 0
            except (OSError, TlsError) as exc:
                if isinstance(exc, OSError) and exc.errno == errno.ENOBUFS:
                    n = 0
                else:
                    ring.clear_mark()
                    self.sock.close()
                    raise PeerDiedError(str(exc)) from exc
        if not n:
            return False
        if self.trace is not None:
            self.trace(">", chunk[:n])
        ring.consumed(n)
        # Everything went and more waits past the wrap: pick up the other half.
        if n1 == n and ring.full_consecutive():
            self.flush()
        return True