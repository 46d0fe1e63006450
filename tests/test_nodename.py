import re

import pytest

from talemu.nodename import from_hostname

_VALID = re.compile(r"^[a-z0-9]([-.a-z0-9]*[a-z0-9])?$")


def test_mixed_case_and_underscores():
    assert from_hostname("Foo_Bar.Example.COM") == "foo-bar.example.com"


def test_strips_leading_and_trailing_separators():
    assert from_hostname("-._abc_.-") == "abc"


def test_drops_disallowed_characters():
    assert from_hostname("no de!@#1") == "node1"


@pytest.mark.parametrize(
    "hostname",
    ["talos-abc-def", "worker-1", "cp.cluster.local", "a", "0node9"],
)
def test_valid_names_are_unchanged(hostname):
    assert from_hostname(hostname) == hostname


@pytest.mark.parametrize(
    "hostname",
    ["UPPER", "x_y_z", "..dots..", "héllo-wörld", "tab\tname", "-_-a-_-"],
)
def test_result_is_valid_and_stable(hostname):
    result = from_hostname(hostname)

    assert _VALID.match(result)
    assert from_hostname(result) == result


@pytest.mark.parametrize("hostname", ["", "---", "._-.", "!!!", "ü"])
def test_unconvertible_hostname_raises(hostname):
    with pytest.raises(ValueError, match="could not convert hostname"):
        from_hostname(hostname)


def test_error_mentions_hostname():
    with pytest.raises(ValueError) as info:
        from_hostname("%%%")

    assert '"%%%"' in str(info.value)