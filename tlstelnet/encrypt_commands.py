"""User commands that inspect and steer telnet encryption."""

from __future__ import annotations

from typing import Callable, Optional

from tlstelnet.encdes import Fb64Cipher
from tlstelnet.encrypt import EncryptionManager, enctype_name
from tlstelnet.genget import AmbiguousMatch, genget, isprefix

Output = Callable[[str], None]


def _typemask(enctype: int) -> int:
    return 1 << (enctype - 1) if enctype > 0 else 0


def _on_off(flag: bool) -> str:
    return "on" if flag else "off"


class EncryptCommands:
    """The ``encrypt`` command family of the interactive prompt.

    Each command prints its messages through ``out`` and returns the
    number of actions it carried out; zero means nothing was done.
    """

    def __init__(self, manager: EncryptionManager, out: Optional[Output] = None) -> None:
        self.manager = manager
        self._out: Output = out if out is not None else print

    # Helpers.

    @staticmethod
    def _is_help(word: str) -> bool:
        return bool(isprefix(word, "help") or isprefix(word, "?"))

    def _find(self, enctype: str) -> Optional[Fb64Cipher]:
        """Look up a cipher by (abbreviated) name, reporting problems."""
        try:
            ep = genget(enctype, self.manager.encryptions, key=lambda e: enctype_name(e.enctype))
        except AmbiguousMatch:
            self._out(f"Ambiguous type '{enctype}'")
            return None
        if ep is None:
            self._out(f"{enctype}: invalid encryption type")
        return ep

    # Commands.

    def list_types(self) -> None:
        """Print every encryption type this side knows."""
        self._out("Valid encryption types:")
        for ep in self.manager.encryptions:
            self._out(f"\t{enctype_name(ep.enctype)} ({ep.enctype})")

    def enable(self, enctype: str, mode: Optional[str] = None) -> int:
        """Select a type for the given direction(s) and start it."""
        if self._is_help(enctype):
            self._out("Usage: encrypt enable <type> [input|output]")
            self.list_types()
            return 0
        if self.set_type(enctype, mode):
            return self.start(mode)
        return 0

    def disable(self, enctype: str, mode: Optional[str] = None) -> int:
        """Refuse a type for the given direction(s), stopping it if in use."""
        if self._is_help(enctype):
            self._out("Usage: encrypt disable <type> [input|output]")
            self.list_types()
            return 0
        ep = self._find(enctype)
        if ep is None:
            return 0
        manager = self.manager
        ret = 0
        if mode is None or isprefix(mode, "input"):
            if manager.decrypt_mode == ep.enctype:
                self.stop_input()
            manager.i_wont_support_decrypt |= _typemask(ep.enctype)
            ret = 1
        if mode is None or isprefix(mode, "output"):
            if manager.encrypt_mode == ep.enctype:
                self.stop_output()
            manager.i_wont_support_encrypt |= _typemask(ep.enctype)
            ret = 1
        if ret == 0:
            self._out(f"{mode}: invalid encryption mode")
        return ret

    def set_type(self, enctype: str, mode: Optional[str] = None) -> int:
        """Choose the type used for the given direction(s)."""
        if self._is_help(enctype):
            self._out("Usage: encrypt type <type> [input|output]")
            self.list_types()
            return 0
        ep = self._find(enctype)
        if ep is None:
            return 0
        manager = self.manager
        ret = 0
        if mode is None or isprefix(mode, "input"):
            manager.decrypt_mode = ep.enctype
            manager.i_wont_support_decrypt &= ~_typemask(ep.enctype)
            ret = 1
        if mode is None or isprefix(mode, "output"):
            manager.encrypt_mode = ep.enctype
            manager.i_wont_support_encrypt &= ~_typemask(ep.enctype)
            ret = 1
        if ret == 0:
            self._out(f"{mode}: invalid encryption mode")
        return ret

    def start(self, mode: Optional[str] = None) -> int:
        """Start encryption of input, output or both."""
        if mode is not None:
            if isprefix(mode, "input"):
                return self.start_input()
            if isprefix(mode, "output"):
                return self.start_output()
            if self._is_help(mode):
                self._out("Usage: encrypt start [input|output]")
                return 0
            self._out(f"{mode}: invalid encryption mode 'encrypt start ?' for help")
            return 0
        return self.start_input() + self.start_output()

    def start_input(self) -> int:
        """Ask the peer to encrypt what it sends us."""
        if self.manager.decrypt_mode:
            self.manager.send_request_start()
            return 1
        self._out("No previous decryption mode, decryption not enabled")
        return 0

    def start_output(self) -> int:
        """Start encrypting what we send."""
        if self.manager.encrypt_mode:
            self.manager.start_output(self.manager.encrypt_mode)
            return 1
        self._out("No previous encryption mode, encryption not enabled")
        return 0

    def stop(self, mode: Optional[str] = None) -> int:
        """Stop encryption of input, output or both."""
        if mode is not None:
            if isprefix(mode, "input"):
                return self.stop_input()
            if isprefix(mode, "output"):
                return self.stop_output()
            if self._is_help(mode):
                self._out("Usage: encrypt stop [input|output]")
                return 0
            self._out(f"{mode}: invalid encryption mode 'encrypt stop ?' for help")
            return 0
        return self.stop_input() + self.stop_output()

    def stop_input(self) -> int:
        """Ask the peer to send clear text."""
        self.manager.send_request_end()
        return 1

    def stop_output(self) -> int:
        """Stop encrypting what we send."""
        self.manager.send_end()
        return 1

    def _auto_line(self) -> None:
        manager = self.manager
        self._out(
            f"Autoencrypt for output is {_on_off(manager.autoencrypt)}. "
            f"Autodecrypt for input is {_on_off(manager.autodecrypt)}."
        )

    def display(self) -> None:
        """Print a short summary of the encryption state."""
        manager = self.manager
        self._auto_line()
        if manager.encrypt_output is not None:
            self._out(f"Currently encrypting output with {enctype_name(manager.encrypt_mode)}")
        else:
            self._out("Currently not encrypting output")
        if manager.decrypt_input is not None:
            self._out(f"Currently decrypting input with {enctype_name(manager.decrypt_mode)}")
        else:
            self._out("Currently not decrypting input")

    def status(self) -> int:
        """Print the encryption state, including modes last used."""
        manager = self.manager
        self._auto_line()
        if manager.encrypt_output is not None:
            self._out(f"Currently encrypting output with {enctype_name(manager.encrypt_mode)}")
        elif manager.encrypt_mode:
            self._out("Currently output is clear text.")
            self._out(f"Last encryption mode was {enctype_name(manager.encrypt_mode)}")
        else:
            self._out("Currently not encrypting output")
        if manager.decrypt_input is not None:
            self._out(f"Currently decrypting input with {enctype_name(manager.decrypt_mode)}")
        elif manager.decrypt_mode:
            self._out("Currently input is clear text.")
            self._out(f"Last decryption mode was {enctype_name(manager.decrypt_mode)}")
        else:
            self._out("Currently not decrypting input")
        return 1

    def debug(self, on: int) -> int:
        """Set debugging; a negative value toggles it."""
        self.manager.set_debug(on)
        state = "enabled" if self.manager.debug_mode else "disabled"
        self._out(f"Encryption debugging {state}")
        return 1

    def verbose(self, on: int) -> int:
        """Set verbose messages; a negative value toggles them."""
        self.manager.set_verbose(on)
        state = "is" if self.manager.verbose else "is not"
        self._out(f"Encryption {state} verbose")
        return 1

    def auto_encrypt(self, on: int) -> int:
        """Set automatic output encryption; a negative value toggles it."""
        self.manager.set_auto_encrypt(on)
        state = "enabled" if self.manager.autoencrypt else "disabled"
        self._out(f"Automatic encryption of output is {state}")
        return 1

    def auto_decrypt(self, on: int) -> int:
        """Set automatic input decryption; a negative value toggles it."""
        self.manager.set_auto_decrypt(on)
        state = "enabled" if self.manager.autodecrypt else "disabled"
        self._out(f"Automatic decryption of input is {state}")
        return 1