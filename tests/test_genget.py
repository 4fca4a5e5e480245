import pytest

from tlstelnet.genget import AmbiguousMatch, genget, isprefix


def test_isprefix_proper_prefix():
    assert isprefix("he", "help") == len("he")


def test_isprefix_exact_match_ignores_case():
    assert isprefix("HeLp", "help") == -len("help")


def test_isprefix_not_a_prefix():
    assert isprefix("hex", "help") == 0
    assert isprefix("helpme", "help") == 0


def test_isprefix_empty():
    assert isprefix("", "anything") == -1


def test_genget_unique_prefix():
    table = ["open", "close", "quit"]
    assert genget("cl", table) == "close"


def test_genget_exact_match_wins():
    table = ["help", "hel"]
    assert genget("hel", table) == "hel"


def test_genget_ambiguous():
    table = ["status", "stop", "start"]
    with pytest.raises(AmbiguousMatch) as info:
        genget("st", table)
    assert info.value.name == "st"


def test_genget_ambiguous_before_later_exact():
    table = ["help", "helx", "hel"]
    with pytest.raises(AmbiguousMatch):
        genget("hel", table)


def test_genget_not_found():
    assert genget("zz", ["open", "close"]) is None


def test_genget_none_name():
    assert genget(None, ["open"]) is None


def test_genget_with_key():
    table = [("DES_CFB64", 1), ("DES_OFB64", 2)]
    assert genget("des_o", table, key=lambda e: e[0]) == ("DES_OFB64", 2)
    with pytest.raises(AmbiguousMatch):
        genget("des", table, key=lambda e: e[0])


def test_genget_stops_at_none_name():
    table = [("open", 1), (None, 0), ("other", 2)]
    assert genget("oth", table, key=lambda e: e[0]) is None