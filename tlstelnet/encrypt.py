"""Negotiation of the telnet ENCRYPT option.

An EncryptionManager tracks what each side supports and which cipher is
in use for input and output. It reacts to ENCRYPT suboptions from the
peer and sends its own. Once a direction is running, ``encrypt_output``
transforms outgoing data and ``decrypt_input`` transforms incoming bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from tlstelnet.encdes import (
    ENCRYPT_DEC_KEYID,
    ENCRYPT_ENC_KEYID,
    ENCRYPT_END,
    ENCRYPT_REQEND,
    ENCRYPT_REQSTART,
    ENCRYPT_START,
    ENCRYPT_SUPPORT,
    ENCTYPE_CNT,
    ENCTYPE_DES_CFB64,
    ENCTYPE_DES_OFB64,
    IAC,
    SB,
    SE,
    TELOPT_ENCRYPT,
    Direction,
    Fb64Cipher,
    SessionKey,
)

logger = logging.getLogger(__name__)

_ENCTYPE_NAMES = ("ANY", "DES_CFB64", "DES_OFB64")

NetWrite = Callable[[bytes], object]
Output = Callable[[str], None]


def enctype_name(enctype: int) -> str:
    """Return the protocol name of an encryption type."""
    if 0 <= enctype < ENCTYPE_CNT:
        return _ENCTYPE_NAMES[enctype]
    return "(unknown)"


def _typemask(enctype: int) -> int:
    return 1 << (enctype - 1) if enctype > 0 else 0


def _stuff_iac(data: bytes) -> bytes:
    return bytes(data).replace(bytes([IAC]), bytes([IAC, IAC]))


def _suboption(command: int, payload: bytes = b"") -> bytes:
    return bytes([IAC, SB, TELOPT_ENCRYPT, command]) + _stuff_iac(payload) + bytes([IAC, SE])


def gen_printsub(data: bytes) -> str:
    """Describe a suboption of an unknown type as a list of byte values."""
    return "".join(f" {byte}" for byte in bytes(data)[2:])


@dataclass
class _KeyInfo:
    direction: Direction
    keyid: bytes = b""


class EncryptionManager:
    """State of encryption negotiation for one connection."""

    def __init__(
        self,
        name: str,
        server: bool,
        net_write: NetWrite,
        out: Optional[Output] = None,
        on_net_encrypt: Optional[Callable[[], None]] = None,
    ) -> None:
        self.name = name
        self.server = bool(server)
        self._net_write = net_write
        self._out: Output = out if out is not None else print
        self._on_net_encrypt = on_net_encrypt

        self.encrypt_output: Optional[Callable[[bytes], bytes]] = None
        self.decrypt_input: Optional[Callable[[int], int]] = None
        self.encrypt_mode = 0
        self.decrypt_mode = 0
        self.debug_mode = False
        self.verbose = False
        self.autoencrypt = False
        self.autodecrypt = False
        self.have_session_key = False

        self.i_support_encrypt = 0
        self.i_support_decrypt = 0
        self.i_wont_support_encrypt = 0
        self.i_wont_support_decrypt = 0
        self.remote_supports_encrypt = 0
        self.remote_supports_decrypt = 0

        self.encryptions: List[Fb64Cipher] = [
            Fb64Cipher(ENCTYPE_DES_CFB64, net_write, self.send_keyid),
            Fb64Cipher(ENCTYPE_DES_OFB64, net_write, self.send_keyid),
        ]
        self._key_info = {
            Direction.ENCRYPT: _KeyInfo(Direction.ENCRYPT),
            Direction.DECRYPT: _KeyInfo(Direction.DECRYPT),
        }

        types = bytearray()
        for ep in self.encryptions:
            self.i_support_encrypt |= _typemask(ep.enctype)
            self.i_support_decrypt |= _typemask(ep.enctype)
            if self.i_wont_support_decrypt & _typemask(ep.enctype) == 0:
                types.append(ep.enctype)
        self._support_message: Optional[bytes] = _suboption(ENCRYPT_SUPPORT, bytes(types))

    # Helpers.

    @property
    def supported_encrypt(self) -> int:
        return self.i_support_encrypt & ~self.i_wont_support_encrypt

    @property
    def supported_decrypt(self) -> int:
        return self.i_support_decrypt & ~self.i_wont_support_decrypt

    def _debug(self, message: str) -> None:
        logger.debug("%s", message)
        if self.debug_mode:
            self._out(message)

    def _lookup(self, enctype: int) -> Optional[Fb64Cipher]:
        return next((ep for ep in self.encryptions if ep.enctype == enctype), None)

    def _send(self, message: bytes) -> None:
        self._net_write(message)

    def find_encryption(self, enctype: int) -> Optional[Fb64Cipher]:
        """Return the cipher for output of ``enctype`` if both sides allow it."""
        if not (self.supported_encrypt & self.remote_supports_decrypt & _typemask(enctype)):
            return None
        return self._lookup(enctype)

    def find_decryption(self, enctype: int) -> Optional[Fb64Cipher]:
        """Return the cipher for input of ``enctype`` if both sides allow it."""
        if not (self.supported_decrypt & self.remote_supports_encrypt & _typemask(enctype)):
            return None
        return self._lookup(enctype)

    # Messages from the peer.

    def send_support(self) -> None:
        """Send our ENCRYPT SUPPORT list once."""
        if not self._support_message:
            return
        if not self.server and self.autodecrypt:
            self.send_request_start()
        self._send(self._support_message)
        self._support_message = None

    def support(self, typelist: bytes) -> None:
        """Handle ENCRYPT SUPPORT: pick the first usable type and start output."""
        self.remote_supports_decrypt = 0
        use_type = 0
        for enctype in bytes(typelist):
            self._debug(f">>>{self.name}: He is supporting {enctype_name(enctype)} ({enctype})")
            if enctype < ENCTYPE_CNT and self.supported_encrypt & _typemask(enctype):
                self.remote_supports_decrypt |= _typemask(enctype)
                if use_type == 0:
                    use_type = enctype
        if not use_type:
            return
        ep = self.find_encryption(use_type)
        if ep is None:
            return
        result = ep.start(Direction.ENCRYPT, self.server)
        self._debug(f">>>{self.name}: (*ep->start)() returned {result}")
        if result < 0:
            return
        self.encrypt_mode = use_type
        if result == 0:
            self.start_output(use_type)

    def is_option(self, data: bytes) -> None:
        """Handle ENCRYPT IS from the peer."""
        data = bytes(data)
        if not data:
            return
        enctype = data[0]
        if enctype < ENCTYPE_CNT:
            self.remote_supports_encrypt |= _typemask(enctype)
        ep = self.find_decryption(enctype)
        if ep is None:
            self._debug(
                f">>>{self.name}: Can't find type {enctype_name(enctype)} ({enctype}) "
                "for initial negotiation"
            )
            return
        result = ep.is_option(data[1:])
        self._debug(f"(*ep->is) returned {result}")
        if result < 0:
            self.autodecrypt = False
        else:
            self.decrypt_mode = enctype
            if result == 0 and self.autodecrypt:
                self.send_request_start()

    def reply(self, data: bytes) -> None:
        """Handle ENCRYPT REPLY from the peer."""
        data = bytes(data)
        if not data:
            return
        enctype = data[0]
        ep = self.find_encryption(enctype)
        if ep is None:
            self._debug(
                f">>>{self.name}: Can't find type {enctype_name(enctype)} ({enctype}) "
                "for initial negotiation"
            )
            return
        result = ep.reply(data[1:])
        self._debug(f">>>{self.name}: encrypt_reply returned {result}")
        if result < 0:
            self.autoencrypt = False
        else:
            self.encrypt_mode = enctype
            if result == 0 and self.autoencrypt:
                self.start_output(enctype)

    def start_received(self, data: bytes) -> None:
        """Handle ENCRYPT START: begin decrypting input."""
        if not self.decrypt_mode:
            self._out(f"{self.name}: Warning, Cannot decrypt input stream!!!")
            self.send_request_end()
            return
        ep = self.find_decryption(self.decrypt_mode)
        if ep is None:
            self._out(
                f"{self.name}: Warning, Cannot decrypt type "
                f"{enctype_name(self.decrypt_mode)} ({self.decrypt_mode})!!!"
            )
            self.send_request_end()
            return
        self.decrypt_input = ep.input
        if self.verbose:
            self._out(f"[ Input is now decrypted with type {enctype_name(self.decrypt_mode)} ]")
        self._debug(
            f">>>{self.name}: Start to decrypt input with type {enctype_name(self.decrypt_mode)}"
        )

    def session_key(self, key: Optional[SessionKey], server: bool) -> None:
        """Hand a session key to every cipher."""
        self.have_session_key = True
        for ep in self.encryptions:
            ep.session(key, server)

    def end(self) -> None:
        """Handle ENCRYPT END: input is clear text again."""
        self.decrypt_input = None
        self._debug(f">>>{self.name}: Input is back to clear text")
        if self.verbose:
            self._out("[ Input is now clear text ]")

    def request_end(self) -> None:
        """Handle ENCRYPT REQUEST-END."""
        self.send_end()

    def request_start(self, data: bytes) -> None:
        """Handle ENCRYPT REQUEST-START."""
        if self.encrypt_mode == 0:
            if self.server:
                self.autoencrypt = True
            return
        self.start_output(self.encrypt_mode)

    # Key ids.

    def _keyid(self, info: _KeyInfo, keyid: bytes) -> None:
        keyid = bytes(keyid)
        direction = info.direction
        if direction is Direction.ENCRYPT:
            mode = self.encrypt_mode
            ep = self.find_encryption(mode)
        else:
            mode = self.decrypt_mode
            ep = self.find_decryption(mode)

        if ep is None:
            if not keyid:
                return
            info.keyid = b""
        elif not keyid:
            if not info.keyid:
                return
            info.keyid = b""
            _, info.keyid = ep.keyid(direction, info.keyid)
        elif keyid != info.keyid:
            info.keyid = keyid
            _, info.keyid = ep.keyid(direction, keyid)
        else:
            result, info.keyid = ep.keyid(direction, info.keyid)
            if result == 0 and direction is Direction.ENCRYPT and self.autoencrypt:
                self.start_output(mode)
            return
        self.send_keyid(direction, info.keyid, False)

    def enc_keyid(self, keyid: bytes) -> None:
        """Handle ENCRYPT ENC_KEYID (the peer's output, our input)."""
        self._keyid(self._key_info[Direction.DECRYPT], keyid)

    def dec_keyid(self, keyid: bytes) -> None:
        """Handle ENCRYPT DEC_KEYID (the peer's input, our output)."""
        self._keyid(self._key_info[Direction.ENCRYPT], keyid)

    def send_keyid(self, direction: int, keyid: bytes, saveit: bool) -> None:
        """Send a key id for one direction, optionally remembering it."""
        direction = Direction(direction)
        keyid = bytes(keyid)
        command = ENCRYPT_ENC_KEYID if direction is Direction.ENCRYPT else ENCRYPT_DEC_KEYID
        if saveit:
            self._key_info[direction].keyid = keyid
        self._send(_suboption(command, keyid))

    # Messages we send.

    def start_output(self, enctype: int) -> None:
        """Start encrypting output with ``enctype`` if negotiation allows it."""
        ep = self.find_encryption(enctype)
        if ep is None:
            self._debug(
                f">>>{self.name}: Can't encrypt with type {enctype_name(enctype)} ({enctype})"
            )
            return
        result = ep.start(Direction.ENCRYPT, self.server)
        if result:
            state = "failed" if result < 0 else "initial negotiation in progress"
            self._debug(
                f">>>{self.name}: Encrypt start: {state} ({result}) {enctype_name(enctype)}"
            )
            return
        self._send(_suboption(ENCRYPT_START, self._key_info[Direction.ENCRYPT].keyid))
        if self._on_net_encrypt is not None:
            self._on_net_encrypt()
        self.encrypt_output = ep.output
        self.encrypt_mode = enctype
        self._debug(f">>>{self.name}: Started to encrypt output with type {enctype_name(enctype)}")
        if self.verbose:
            self._out(f"[ Output is now encrypted with type {enctype_name(enctype)} ]")

    def send_end(self) -> None:
        """Stop encrypting output and tell the peer."""
        if self.encrypt_output is None:
            return
        self._send(_suboption(ENCRYPT_END))
        if self._on_net_encrypt is not None:
            self._on_net_encrypt()
        self.encrypt_output = None
        self._debug(f">>>{self.name}: Output is back to clear text")
        if self.verbose:
            self._out("[ Output is now clear text ]")

    def send_request_start(self) -> None:
        """Ask the peer to start encrypting its output."""
        self._send(_suboption(ENCRYPT_REQSTART, self._key_info[Direction.DECRYPT].keyid))
        self._debug(f">>>{self.name}: Request input to be encrypted")

    def send_request_end(self) -> None:
        """Ask the peer to send clear text."""
        self._send(_suboption(ENCRYPT_REQEND))
        self._debug(f">>>{self.name}: Request input to be clear text")

    def delay(self) -> bool:
        """Return True while encryption is possible but not yet running both ways."""
        if (
            not self.have_session_key
            or not (self.supported_encrypt & self.remote_supports_decrypt)
            or not (self.supported_decrypt & self.remote_supports_encrypt)
        ):
            return False
        return not (self.encrypt_output is not None and self.decrypt_input is not None)

    # Switches.

    def set_auto_encrypt(self, on: int) -> None:
        """Set automatic output encryption; a negative value toggles it."""
        self.autoencrypt = (not self.autoencrypt) if on < 0 else bool(on)

    def set_auto_decrypt(self, on: int) -> None:
        """Set automatic input decryption; a negative value toggles it."""
        self.autodecrypt = (not self.autodecrypt) if on < 0 else bool(on)

    def set_debug(self, on: int) -> None:
        """Set debug output; a negative value toggles it."""
        self.debug_mode = (not self.debug_mode) if on < 0 else bool(on)

    def set_verbose(self, on: int) -> None:
        """Set verbose messages; a negative value toggles them."""
        self.verbose = (not self.verbose) if on < 0 else bool(on)

    def printsub(self, data: bytes) -> str:
        """Describe an ENCRYPT suboption for the option trace."""
        data = bytes(data)
        ep = self._lookup(data[1]) if len(data) > 1 else None
        if ep is not None:
            return ep.printsub(data)
        return gen_printsub(data)