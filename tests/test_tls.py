import socket

import pytest

from tlstelnet.tls import CertFileType, TlsClient, TlsError


def test_context_is_created_once():
    client = TlsClient()
    assert client.init_context() is True
    assert client.init_context() is False


def test_missing_file_raises(tmp_path):
    client = TlsClient(str(tmp_path / "missing.der"), CertFileType.DER)
    with pytest.raises(TlsError, match="Unable to open file"):
        client.init_context()


def test_pem_without_certificate_raises(tmp_path):
    path = tmp_path / "cert.pem"
    path.write_bytes(b"nothing useful here\n")
    with pytest.raises(TlsError, match="Unable to load certificate"):
        TlsClient(str(path), CertFileType.PEM).init_context()


def test_pem_without_key_continues(tmp_path, capsys):
    path = tmp_path / "cert.pem"
    path.write_bytes(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")
    client = TlsClient(str(path), CertFileType.PEM)
    assert client.init_context() is True
    assert "Unable to find PrivateKey" in capsys.readouterr().out


@pytest.mark.parametrize("content", [b"\x01\x02\x03", b"\x30\x82\x05\x00\x01", b""])
def test_bad_der_raises(tmp_path, content):
    path = tmp_path / "cert.der"
    path.write_bytes(content)
    with pytest.raises(TlsError, match="Unable to load certificate"):
        TlsClient(str(path), CertFileType.DER).init_context()


def test_der_without_key_continues(tmp_path, capsys):
    path = tmp_path / "cert.der"
    path.write_bytes(b"\x30\x03\x02\x01\x00")
    client = TlsClient(str(path), CertFileType.DER)
    assert client.init_context() is True
    assert "Unable to find PrivateKey" in capsys.readouterr().out


def test_unknown_type_raises(tmp_path):
    path = tmp_path / "cert"
    path.write_bytes(b"x")
    with pytest.raises(TlsError, match="Unknown certificate file type"):
        TlsClient(str(path), "bogus").init_context()


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.read(10),
        lambda c: c.write(b"abc"),
        lambda c: c.done(),
        lambda c: c.connection_info(),
        lambda c: c.dump_peer_cert("unused.der"),
    ],
)
def test_operations_need_connection(call):
    client = TlsClient()
    with pytest.raises(TlsError, match="establish SSL connection first"):
        call(client)
    assert client.active is False


def test_failed_handshake_raises():
    ours, theirs = socket.socketpair()
    try:
        theirs.sendall(b"this is not a tls server\r\n")
        theirs.close()
        client = TlsClient()
        with pytest.raises(TlsError):
            client.wrap(ours)
        assert client.active is False
    finally:
        ours.close()