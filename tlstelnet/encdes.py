"""DES 64-bit cipher feedback and output feedback for telnet encryption.

Each cipher object negotiates an initial vector with its peer over the
ENCRYPT telnet option. Once the keys and vectors agree it transforms the
outgoing stream a buffer at a time and the incoming stream a byte at a
time.
"""

from __future__ import annotations

import enum
import logging
import secrets
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from Crypto.Cipher import DES

logger = logging.getLogger(__name__)

# Telnet protocol bytes.
IAC = 255
SB = 250
SE = 240
TELOPT_ENCRYPT = 38

# ENCRYPT suboption commands.
ENCRYPT_IS = 0
ENCRYPT_SUPPORT = 1
ENCRYPT_REPLY = 2
ENCRYPT_START = 3
ENCRYPT_END = 4
ENCRYPT_REQSTART = 5
ENCRYPT_REQEND = 6
ENCRYPT_ENC_KEYID = 7
ENCRYPT_DEC_KEYID = 8

# Encryption types.
ENCTYPE_ANY = 0
ENCTYPE_DES_CFB64 = 1
ENCTYPE_DES_OFB64 = 2
ENCTYPE_CNT = 3

# Feedback suboption types.
FB64_IV = 1
FB64_IV_OK = 2
FB64_IV_BAD = 3

# Negotiation states.
NO_SEND_IV = 1
NO_RECV_IV = 2
NO_KEYID = 4
IN_PROGRESS = NO_SEND_IV | NO_RECV_IV | NO_KEYID
SUCCESS = 0
FAILED = -1

SK_DES = 1
BLOCK_SIZE = 8

_WEAK_KEYS = frozenset(
    bytes.fromhex(k)
    for k in (
        "0101010101010101", "fefefefefefefefe",
        "e0e0e0e0f1f1f1f1", "1f1f1f1f0e0e0e0e",
        "011f011f010e010e", "1f011f010e010e01",
        "01e001e001f101f1", "e001e001f101f101",
        "01fe01fe01fe01fe", "fe01fe01fe01fe01",
        "1fe01fe00ef10ef1", "e01fe01ff10ef10e",
        "1ffe1ffe0efe0efe", "fe1ffe1ffe0efe0e",
        "e0fee0fef1fef1fe", "fee0fee0fef1fef1",
    )
)

NetWrite = Callable[[bytes], object]
SendKeyid = Callable[[int, bytes, bool], None]


class Direction(enum.IntEnum):
    """Which half of the connection a negotiation concerns."""

    DECRYPT = 1
    ENCRYPT = 2


@dataclass
class SessionKey:
    """A session key handed over by the authentication layer."""

    type: int
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


def valid_key(key: bytes) -> bool:
    """Return True unless every byte of the 8-byte key is zero."""
    return any(bytes(key)[:BLOCK_SIZE])


def _des_encrypt(key: bytes, block: bytes) -> bytes:
    return DES.new(bytes(key), DES.MODE_ECB).encrypt(bytes(block))


def _odd_parity(key: bytes) -> bytes:
    out = bytearray()
    for byte in key:
        high = byte & 0xFE
        out.append(high | (bin(high).count("1") % 2 == 0))
    return bytes(out)


def _random_key() -> bytes:
    while True:
        key = _odd_parity(secrets.token_bytes(BLOCK_SIZE))
        if key not in _WEAK_KEYS:
            return key


def _stuff_iac(data: bytes) -> bytes:
    return bytes(data).replace(bytes([IAC]), bytes([IAC, IAC]))


@dataclass
class _Stream:
    output: bytearray = field(default_factory=lambda: bytearray(BLOCK_SIZE))
    feed: bytearray = field(default_factory=lambda: bytearray(BLOCK_SIZE))
    iv: bytes = bytes(BLOCK_SIZE)
    ikey: bytes = bytes(BLOCK_SIZE)
    index: int = 0

    def set_iv(self, seed: bytes) -> None:
        self.iv = bytes(seed)
        self.output[:] = self.iv
        self.index = BLOCK_SIZE

    def set_key(self, key: bytes) -> None:
        self.ikey = bytes(key)
        self.output[:] = self.iv
        self.index = BLOCK_SIZE

    def block(self, source: bytes) -> None:
        self.feed[:] = _des_encrypt(self.ikey, source)


def fb64_printsub(data: bytes, type_name: str) -> str:
    """Describe a feedback suboption for the option trace."""
    data = bytes(data)
    option = data[2]
    names = {FB64_IV: "_IV", FB64_IV_OK: "_IV_OK", FB64_IV_BAD: "_IV_BAD"}
    if option in names:
        head = f"{type_name}{names[option]}"
    else:
        head = f" {option} (unknown)"
    return head + "".join(f" {byte}" for byte in data[3:])


class Fb64Cipher:
    """One DES feedback cipher (CFB64 or OFB64) with its negotiation state."""

    def __init__(self, enctype: int, net_write: NetWrite, send_keyid: SendKeyid) -> None:
        if enctype == ENCTYPE_DES_CFB64:
            self.name = "CFB64"
        elif enctype == ENCTYPE_DES_OFB64:
            self.name = "OFB64"
        else:
            raise ValueError(f"unsupported encryption type {enctype}")
        self.enctype = enctype
        self._net_write = net_write
        self._send_keyid = send_keyid
        self.krbdes_key = bytes(BLOCK_SIZE)
        self.temp_feed = bytes(BLOCK_SIZE)
        self.need_start = False
        self.state = {Direction.DECRYPT: FAILED, Direction.ENCRYPT: FAILED}
        self.streams = {Direction.DECRYPT: _Stream(), Direction.ENCRYPT: _Stream()}

    def _send(self, command: int, payload: bytes) -> None:
        message = (
            bytes([IAC, SB, TELOPT_ENCRYPT, command, self.enctype])
            + payload
            + bytes([IAC, SE])
        )
        self._net_write(message)

    def start(self, direction: int, server: bool) -> int:
        """Begin negotiation in one direction and return the new state."""
        try:
            direction = Direction(direction)
        except ValueError:
            return FAILED
        state = self.state[direction]
        if direction is Direction.DECRYPT:
            # The peer negotiates the vector for our input.
            if state == FAILED:
                state = IN_PROGRESS
        else:
            if state == FAILED:
                state = IN_PROGRESS
            elif state & NO_SEND_IV == 0:
                self.state[direction] = state
                return state
            if not valid_key(self.krbdes_key):
                self.need_start = True
            else:
                state &= ~NO_SEND_IV
                state |= NO_RECV_IV
                logger.debug("Creating new feed")
                self.temp_feed = _des_encrypt(self.krbdes_key, _random_key())
                self._send(ENCRYPT_IS, bytes([FB64_IV]) + _stuff_iac(self.temp_feed))
        self.state[direction] = state
        return state

    def is_option(self, data: bytes) -> int:
        """Handle an ENCRYPT IS suboption from the peer; return the input state."""
        data = bytes(data)
        state = self.state[Direction.DECRYPT]
        if data and data[0] == FB64_IV and len(data) - 1 == BLOCK_SIZE:
            logger.debug("%s: initial vector received", self.name)
            self.streams[Direction.DECRYPT].set_iv(data[1:])
            self._send(ENCRYPT_REPLY, bytes([FB64_IV_OK]))
            state = IN_PROGRESS
        else:
            if data and data[0] == FB64_IV:
                logger.debug("%s: initial vector failed on size", self.name)
                state = FAILED
            elif data:
                logger.debug("Unknown option type: %d", data[0])
            self._send(ENCRYPT_REPLY, bytes([FB64_IV_BAD]))
        self.state[Direction.DECRYPT] = state
        return state

    def reply(self, data: bytes) -> int:
        """Handle an ENCRYPT REPLY suboption; return the output state."""
        data = bytes(data)
        state = self.state[Direction.ENCRYPT]
        option = data[0] if data else None
        if option == FB64_IV_OK:
            self.streams[Direction.ENCRYPT].set_iv(self.temp_feed)
            if state == FAILED:
                state = IN_PROGRESS
            state &= ~NO_RECV_IV
            self._send_keyid(Direction.ENCRYPT, b"\0", True)
        elif option == FB64_IV_BAD:
            self.temp_feed = bytes(BLOCK_SIZE)
            self.streams[Direction.ENCRYPT].set_iv(self.temp_feed)
            state = FAILED
        else:
            if option is not None:
                logger.debug("Unknown option type: %d", option)
            state = FAILED
        self.state[Direction.ENCRYPT] = state
        return state

    def session(self, key: Optional[SessionKey], server: bool) -> None:
        """Install a DES session key, resuming a start that waited for it."""
        if key is None or key.type != SK_DES:
            logger.debug(
                "Can't set krbdes's session key (%d != %d)",
                key.type if key is not None else -1,
                SK_DES,
            )
            return
        self.krbdes_key = bytes(key.data[:BLOCK_SIZE])
        self.streams[Direction.ENCRYPT].set_key(self.krbdes_key)
        self.streams[Direction.DECRYPT].set_key(self.krbdes_key)
        if self.need_start:
            self.need_start = False
            self.start(Direction.ENCRYPT, server)

    def keyid(self, direction: int, keyid: bytes) -> Tuple[int, bytes]:
        """Accept only key id 0; return the state and the accepted key id."""
        direction = Direction(direction)
        state = self.state[direction]
        keyid = bytes(keyid)
        if keyid != b"\0":
            return state, b""
        if state == FAILED:
            state = IN_PROGRESS
        state &= ~NO_KEYID
        self.state[direction] = state
        return state, keyid

    def output(self, data: bytes) -> bytes:
        """Encrypt outgoing bytes with the encrypt stream."""
        stream = self.streams[Direction.ENCRYPT]
        index = stream.index
        out = bytearray()
        for byte in bytes(data):
            if index == BLOCK_SIZE:
                source = stream.output if self.enctype == ENCTYPE_DES_CFB64 else stream.feed
                stream.block(bytes(source))
                index = 0
            value = stream.feed[index] ^ byte
            if self.enctype == ENCTYPE_DES_CFB64:
                stream.output[index] = value
            out.append(value)
            index += 1
        stream.index = index
        return bytes(out)

    def input(self, data: int) -> int:
        """Decrypt one incoming byte; -1 backs the stream up by one byte."""
        stream = self.streams[Direction.DECRYPT]
        if data == -1:
            if stream.index:
                stream.index -= 1
            return 0
        index = stream.index
        stream.index += 1
        if index == BLOCK_SIZE:
            source = stream.output if self.enctype == ENCTYPE_DES_CFB64 else stream.feed
            stream.block(bytes(source))
            stream.index = 1
            index = 0
        if self.enctype == ENCTYPE_DES_CFB64:
            stream.output[index] = data
        return data ^ stream.feed[index]

    def printsub(self, data: bytes) -> str:
        """Describe a suboption of this cipher for the option trace."""
        return fb64_printsub(data, self.name)