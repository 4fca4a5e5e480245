# tlstelnet

Building blocks for a telnet client: buffering of network data, switching
the connection to TLS, and negotiation of the telnet ENCRYPT option with
DES 64-bit cipher feedback (CFB64) and output feedback (OFB64).

## Modules

- `tlstelnet.ring` – `Ring`, a fixed-size circular byte buffer. It tracks
  how many bytes may be supplied (`empty_count`, `empty_consecutive`) and
  consumed (`full_count`, `full_consecutive`), holds an optional urgent-data
  mark (`mark`, `at_mark`, `clear_mark`), copies data in with `supply_data`
  (raising `ValueError` if it does not fit) and hands out contiguous data
  with `peek_consecutive`. `encrypt` passes the queued bytes not yet
  processed through a function of your choice; `clearto` declares all queued
  bytes already processed.
- `tlstelnet.genget` – `isprefix` and `genget`, case-insensitive
  abbreviation matching of names in a table. An exact match wins; an
  abbreviation matching more than one entry raises `AmbiguousMatch`.
- `tlstelnet.misc` – `AuthEncryptContext`, which records the local and
  remote host names, the requested user name and the connection count, and
  runs any registered initialisation hooks; and `printd`, which formats up
  to 16 bytes as hex for debug output.
- `tlstelnet.encdes` – `Fb64Cipher`, one DES CFB64 or OFB64 stream cipher
  with its ENCRYPT sub-option exchange (IV, IV_OK, IV_BAD and key id 0),
  plus `Direction`, `SessionKey`, `valid_key` and `fb64_printsub`.
- `tlstelnet.encrypt` – `EncryptionManager`, the ENCRYPT option state
  machine: it answers SUPPORT, IS, REPLY, START, END, REQUEST-START,
  REQUEST-END and key id sub-options, sends its own, and once a direction is
  running exposes `encrypt_output` and `decrypt_input`. `enctype_name` and
  `gen_printsub` help with tracing.
- `tlstelnet.encrypt_commands` – `EncryptCommands`, the user-level
  `enable`, `disable`, `set_type`, `start`, `stop`, `display`, `status`,
  `debug`, `verbose`, `auto_encrypt` and `auto_decrypt` operations. They
  write their messages through an output function (`print` by default) and
  return how many actions they carried out.
- `tlstelnet.tls` – `TlsClient`, which builds a TLS client context (with an
  optional PEM or DER client certificate file, see `CertFileType`), runs the
  handshake over a connected socket with `wrap`, reads and writes through
  the session, shuts it down with `done`, writes the peer certificate in DER
  form with `dump_peer_cert` and describes the session with
  `connection_info`. Peer certificates are not verified. Failures raise
  `TlsError`.
- `tlstelnet.network` – `Network`, which queues outgoing data in a ring
  (`write`), sends it with `flush` (the marked byte goes out of band, and
  `encrypt_output`, when set, is applied to queued data first), reports
  waiting out-of-band data with `still_oob`, and reads and writes either the
  plain socket or the active TLS session. A fatal send error closes the
  socket and raises `PeerDiedError`.

## Example

```python
from tlstelnet.ring import Ring

ring = Ring(16)
ring.supply_data(b"hello")
assert ring.full_count() == 5
assert ring.peek_consecutive(5) == b"hello"
ring.consumed(5)
assert ring.empty_count() == 16
```

```python
from tlstelnet.genget import isprefix

assert isprefix("st", "status") == 2
assert isprefix("status", "status") == -6
assert isprefix("x", "status") == 0
```

## What this package does not do

It has no `telnet` command, no interactive command prompt and no terminal
handling: nothing here parses the telnet data stream, negotiates options
other than ENCRYPT, or drives a session from the keyboard. There is no
Kerberos or other authentication; a session key for the DES ciphers has to
be handed to `EncryptionManager.session_key` by the caller.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```