"""TLS layer for the telnet connection (the STARTTLS side of the client)."""

from __future__ import annotations

import enum
import os
import re
import socket
import ssl
import tempfile
from typing import Optional, Union

_PEM_CERT = b"-----BEGIN CERTIFICATE-----"
_PEM_KEY = re.compile(
    rb"-----BEGIN (?:[A-Z]+ )?PRIVATE KEY-----.*?-----END (?:[A-Z]+ )?PRIVATE KEY-----",
    re.DOTALL,
)


class CertFileType(enum.Enum):
    """Encoding of the client certificate file."""

    DER = "der"
    PEM = "pem"


class TlsError(Exception):
    """A TLS operation failed."""


def _der_length(data: bytes) -> int:
    """Return the length of the DER SEQUENCE at the start of ``data``."""
    if len(data) < 2 or data[0] != 0x30:
        raise TlsError("not a DER encoded certificate")
    first = data[1]
    if first < 0x80:
        header, length = 2, first
    else:
        count = first & 0x7F
        if count == 0 or count > 4 or len(data) < 2 + count:
            raise TlsError("bad DER length")
        header = 2 + count
        length = int.from_bytes(data[2:header], "big")
    total = header + length
    if total > len(data):
        raise TlsError("truncated DER certificate")
    return total


class TlsClient:
    """Client side of a TLS session running over the telnet socket."""

    def __init__(
        self,
        certfile: Optional[str] = None,
        certfile_type: Union[CertFileType, object] = CertFileType.PEM,
    ) -> None:
        self.certfile = certfile
        self.certfile_type = certfile_type
        self.active = False
        self._context: Optional[ssl.SSLContext] = None
        self._conn: Optional[ssl.SSLSocket] = None
        self.bytes_read = 0
        self.bytes_written = 0

    # Context set-up.

    def init_context(self) -> bool:
        """Create the TLS context once; return True if it was created now."""
        if self._context is not None:
            return False
        try:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        except ssl.SSLError as exc:
            raise TlsError(str(exc)) from exc
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        if self.certfile:
            if self.certfile_type is CertFileType.PEM:
                self._load_pem(context, self.certfile)
            elif self.certfile_type is CertFileType.DER:
                self._load_der(context, self.certfile)
            else:
                raise TlsError(f"Unknown certificate file type: {self.certfile_type}")
        self._context = context
        return True

    @staticmethod
    def _read_file(path: str) -> bytes:
        try:
            with open(path, "rb") as handle:
                return handle.read()
        except OSError as exc:
            raise TlsError(f"Unable to open file {path} ({exc.strerror}).") from exc

    def _load_pem(self, context: ssl.SSLContext, path: str) -> None:
        data = self._read_file(path)
        if _PEM_CERT not in data:
            raise TlsError(f"Unable to load certificate from {path}.")
        if _PEM_KEY.search(data) is None:
            print(f"Unable to find PrivateKey in {path}. Not giving up.")
            return
        try:
            context.load_cert_chain(path)
        except (ssl.SSLError, OSError) as exc:
            raise TlsError(f"Unable to set certificate on SSL context: {exc}") from exc

    def _load_der(self, context: ssl.SSLContext, path: str) -> None:
        data = self._read_file(path)
        try:
            cert = data[:_der_length(data)]
        except TlsError as exc:
            raise TlsError(f"Unable to load certificate from {path}.") from exc
        key = _PEM_KEY.search(data)
        if key is None:
            print(f"Unable to find PrivateKey in {path}. Not giving up.")
            return
        pem = ssl.DER_cert_to_PEM_cert(cert).encode("ascii") + key.group(0) + b"\n"
        handle = tempfile.NamedTemporaryFile(suffix=".pem", delete=False)
        try:
            with handle:
                handle.write(pem)
            context.load_cert_chain(handle.name)
        except (ssl.SSLError, OSError) as exc:
            raise TlsError(f"Unable to set certificate on SSL context: {exc}") from exc
        finally:
            os.unlink(handle.name)

    # Connection.

    def _require(self) -> ssl.SSLSocket:
        if self._conn is None:
            raise TlsError("You need to establish SSL connection first.")
        return self._conn

    def wrap(self, sock: socket.socket, server_hostname: Optional[str] = None) -> ssl.SSLSocket:
        """Run the TLS handshake over ``sock`` and make the session active.

        The handshake runs in blocking mode; the socket is left non-blocking.
        """
        self.init_context()
        assert self._context is not None
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self.active = False
        try:
            conn = self._context.wrap_socket(
                sock, server_hostname=server_hostname, do_handshake_on_connect=False
            )
        except (ssl.SSLError, OSError) as exc:
            raise TlsError(str(exc)) from exc
        conn.setblocking(True)
        try:
            conn.do_handshake()
        except (ssl.SSLError, OSError) as exc:
            conn.close()
            raise TlsError(f"handshake failed: {exc}") from exc
        conn.setblocking(False)
        self._conn = conn
        self.bytes_read = 0
        self.bytes_written = 0
        self.active = True
        return conn

    def read(self, num: int) -> bytes:
        """Read up to ``num`` bytes; an empty result means the peer closed."""
        conn = self._require()
        conn.setblocking(True)
        try:
            data = conn.recv(num)
            if not data:
                conn.unwrap()
        except (ssl.SSLError, OSError) as exc:
            raise TlsError(str(exc)) from exc
        finally:
            conn.setblocking(False)
        self.bytes_read += len(data)
        return data

    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes taken."""
        conn = self._require()
        conn.setblocking(True)
        try:
            count = conn.send(bytes(data))
        except (ssl.SSLError, OSError) as exc:
            raise TlsError(str(exc)) from exc
        finally:
            conn.setblocking(False)
        self.bytes_written += count
        return count

    def done(self) -> socket.socket:
        """Shut the session down and return the plain socket underneath."""
        conn = self._require()
        conn.setblocking(True)
        try:
            plain = conn.unwrap()
        except (ssl.SSLError, OSError) as exc:
            conn.setblocking(False)
            raise TlsError(str(exc)) from exc
        plain.setblocking(False)
        self._conn = None
        self.active = False
        return plain

    def dump_peer_cert(self, path: str) -> bool:
        """Write the peer certificate (DER) to ``path``; False if there is none."""
        conn = self._require()
        try:
            handle = open(path, "wb")
        except OSError as exc:
            raise TlsError(f"Can't open file {path} for writing ({exc.strerror}).") from exc
        with handle:
            peer = conn.getpeercert(binary_form=True)
            if not peer:
                return False
            handle.write(peer)
        print(f"Peer certificate dumped to {path}.")
        return True

    def connection_info(self) -> str:
        """Describe the active session: peer certificate, ciphers and counters."""
        conn = self._require()
        lines = ["---"]
        peer = conn.getpeercert(binary_form=True)
        if peer:
            lines.append("Server certificate")
            lines.append(ssl.DER_cert_to_PEM_cert(peer).rstrip("\n"))
        else:
            lines.append("no peer certificate available")
        shared = conn.shared_ciphers() or []
        if shared:
            lines.append("---")
            lines.append("Ciphers common between both SSL endpoints:")
            names = [entry[0] for entry in shared]
            for start in range(0, len(names), 3):
                lines.append(" ".join(name.ljust(25) for name in names[start:start + 3]).rstrip())
        lines.append("---")
        lines.append(
            f"SSL has read {self.bytes_read} bytes and written {self.bytes_written} bytes"
        )
        cipher = conn.cipher()
        name, version = (cipher[0], cipher[1]) if cipher else ("(NONE)", "(NONE)")
        reuse = "Reused" if conn.session_reused else "New"
        lines.append("---")
        lines.append(f"{reuse}, {version}, Cipher is {name}")
        lines.append(f"Compression: {conn.compression() or 'NONE'}")
        lines.append("---")
        return "\n".join(lines)