from tlstelnet.misc import AuthEncryptContext, printd


def test_printd_format():
    assert printd(b"\x01\xab") == " 01 ab"


def test_printd_empty():
    assert printd(b"") == ""


def test_printd_truncates_to_sixteen_bytes():
    data = bytes(range(40))
    result = printd(data)
    assert result == printd(data[:16])
    assert result.split() == [f"{b:02x}" for b in data[:16]]


def test_init_sets_hosts_and_clears_user():
    ctx = AuthEncryptContext()
    ctx.set_user("alice")
    ctx.init("localbox", "remotebox", "TELNET", False)
    assert ctx.local_host_name == "localbox"
    assert ctx.remote_host_name == "remotebox"
    assert ctx.user_name_requested is None


def test_init_runs_hooks_in_order():
    calls = []
    ctx = AuthEncryptContext(
        init_hooks=[
            lambda name, server: calls.append(("auth", name, server)),
            lambda name, server: calls.append(("enc", name, server)),
        ]
    )
    ctx.init("l", "r", "TELNET", True)
    assert calls == [("auth", "TELNET", True), ("enc", "TELNET", True)]


def test_set_user_replaces_and_clears():
    ctx = AuthEncryptContext()
    ctx.set_user("alice")
    assert ctx.user_name_requested == "alice"
    ctx.set_user("bob")
    assert ctx.user_name_requested == "bob"
    ctx.set_user(None)
    assert ctx.user_name_requested is None


def test_connect_records_count():
    ctx = AuthEncryptContext()
    ctx.connect(3)
    assert ctx.connected_count == 3