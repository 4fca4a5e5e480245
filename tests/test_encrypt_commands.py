import pytest

from tlstelnet.encrypt import EncryptionManager
from tlstelnet.encrypt_commands import EncryptCommands


@pytest.fixture
def setup():
    sent = []
    lines = []
    manager = EncryptionManager("Telnet", False, sent.append, out=lines.append)
    commands = EncryptCommands(manager, out=lines.append)
    return commands, manager, sent, lines


def test_list_types(setup):
    commands, _, _, lines = setup
    commands.list_types()
    assert lines == ["Valid encryption types:", "\tDES_CFB64 (1)", "\tDES_OFB64 (2)"]


def test_set_type_both_directions(setup):
    commands, manager, _, _ = setup
    assert commands.set_type("DES_CFB64", None) == 1
    assert manager.encrypt_mode == 1
    assert manager.decrypt_mode == 1


def test_set_type_abbreviated_input_only(setup):
    commands, manager, _, _ = setup
    assert commands.set_type("des_o", "in") == 1
    assert manager.decrypt_mode == 2
    assert manager.encrypt_mode == 0


def test_set_type_ambiguous(setup):
    commands, manager, _, lines = setup
    assert commands.set_type("DES", None) == 0
    assert lines == ["Ambiguous type 'DES'"]
    assert manager.encrypt_mode == 0


def test_set_type_unknown(setup):
    commands, _, _, lines = setup
    assert commands.set_type("bogus", None) == 0
    assert lines == ["bogus: invalid encryption type"]


def test_set_type_bad_mode(setup):
    commands, manager, _, lines = setup
    assert commands.set_type("DES_CFB64", "sideways") == 0
    assert lines == ["sideways: invalid encryption mode"]
    assert manager.decrypt_mode == 0


def test_disable_removes_support(setup):
    commands, manager, _, _ = setup
    assert commands.disable("DES_CFB64", None) == 1
    assert manager.supported_encrypt & 1 == 0
    assert manager.supported_decrypt & 1 == 0
    assert manager.supported_encrypt & 2 == 2


def test_type_restores_disabled_support(setup):
    commands, manager, _, _ = setup
    commands.disable("DES_OFB64", "output")
    assert manager.supported_encrypt & 2 == 0
    commands.set_type("DES_OFB64", "output")
    assert manager.supported_encrypt & 2 == 2


def test_start_input_without_mode(setup):
    commands, _, sent, lines = setup
    assert commands.start_input() == 0
    assert sent == []
    assert lines == ["No previous decryption mode, decryption not enabled"]


def test_start_input_sends_request_start(setup):
    commands, _, sent, _ = setup
    commands.set_type("DES_CFB64", "input")
    assert commands.start_input() == 1
    assert sent == [bytes([255, 250, 38, 5, 255, 240])]


def test_enable_input(setup):
    commands, manager, sent, _ = setup
    assert commands.enable("DES_OFB64", "input") == 1
    assert manager.decrypt_mode == 2
    assert sent == [bytes([255, 250, 38, 5, 255, 240])]


def test_enable_help(setup):
    commands, _, _, lines = setup
    assert commands.enable("help", None) == 0
    assert lines[0] == "Usage: encrypt enable <type> [input|output]"
    assert lines[1] == "Valid encryption types:"


def test_stop_input_sends_request_end(setup):
    commands, _, sent, _ = setup
    assert commands.stop_input() == 1
    assert sent == [bytes([255, 250, 38, 6, 255, 240])]


def test_stop_output_when_not_encrypting(setup):
    commands, _, sent, _ = setup
    assert commands.stop_output() == 1
    assert sent == []


def test_start_help_and_bad_mode(setup):
    commands, _, _, lines = setup
    assert commands.start("help") == 0
    assert commands.start("bogus") == 0
    assert lines == [
        "Usage: encrypt start [input|output]",
        "bogus: invalid encryption mode 'encrypt start ?' for help",
    ]


def test_start_both_without_modes(setup):
    commands, _, _, lines = setup
    assert commands.start(None) == 0
    assert lines == [
        "No previous decryption mode, decryption not enabled",
        "No previous encryption mode, encryption not enabled",
    ]


def test_stop_both(setup):
    commands, _, sent, _ = setup
    assert commands.stop(None) == 2
    assert len(sent) == 1


def test_debug_toggle(setup):
    commands, manager, _, lines = setup
    commands.debug(-1)
    assert manager.debug_mode is True
    commands.debug(-1)
    assert manager.debug_mode is False
    assert lines == ["Encryption debugging enabled", "Encryption debugging disabled"]


def test_verbose_and_auto(setup):
    commands, manager, _, lines = setup
    commands.verbose(1)
    commands.auto_encrypt(1)
    commands.auto_decrypt(0)
    assert manager.verbose and manager.autoencrypt and not manager.autodecrypt
    assert lines == [
        "Encryption is verbose",
        "Automatic encryption of output is enabled",
        "Automatic decryption of input is disabled",
    ]


def test_display_defaults(setup):
    commands, _, _, lines = setup
    commands.display()
    assert lines == [
        "Autoencrypt for output is off. Autodecrypt for input is off.",
        "Currently not encrypting output",
        "Currently not decrypting input",
    ]


def test_status_with_last_modes(setup):
    commands, _, _, lines = setup
    commands.set_type("DES_CFB64", None)
    lines.clear()
    assert commands.status() == 1
    assert lines[1:] == [
        "Currently output is clear text.",
        "Last encryption mode was DES_CFB64",
        "Currently input is clear text.",
        "Last decryption mode was DES_CFB64",
    ]