"""Test the validity of our IRCMessage parser."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
import yaml

from irclink import IRCMessage, IRCParseError
from irclink.message import format_params
from irclink.numerics import CommandType

TEST_DATA_DIR = Path(__file__).parent / Path("data")


def pytest_generate_tests(metafunc: pytest.Metafunc) -> None:
    """Generate test data fixtures from YAML files.

    Create one fixture for each of the tests in there, to avoid lumping all of
    them together in one big test.
    """
    fixtures = {
        "data_message": "messages.yaml",
    }

    for fixture, filename in fixtures.items():
        filepath = TEST_DATA_DIR / Path(filename)
        if fixture in metafunc.fixturenames:
            with filepath.open(encoding="utf-8") as yamlfile:
                yamldata = yaml.safe_load(yamlfile.read())
            metafunc.parametrize(fixture, yamldata["tests"], ids=[test["desc"] for test in yamldata["tests"]])


def test_message(data_message: Mapping[str, Any]) -> None:
    """Test a messages.yaml test fixture.

    Parse a raw, wire protocol message, and check whether all of the
    deconstructed atoms are how they should be.
    """
    parsed = IRCMessage.from_message(data_message["input"])
    atoms = data_message["atoms"]

    assert parsed.command == atoms["command"]
    assert parsed.raw_command == atoms["raw_command"]
    assert parsed.command_type == CommandType(atoms.get("command_type", "normal"))
    assert list(parsed.args) == atoms["args"]
    for atom in ("prefix", "nick", "user", "host", "server"):
        assert getattr(parsed, atom) == atoms.get(atom)


def test_no_command() -> None:
    """Test that lines without a command are rejected."""
    with pytest.raises(IRCParseError, match="no command"):
        IRCMessage.from_message(":irc.example.org ")

    with pytest.raises(ValueError):
        IRCMessage.from_message("")


def test_strip_colors() -> None:
    """Test that formatting is removed only when asked to."""
    line = ":alice!a@h PRIVMSG #test :\x0304,01red\x03 and \x02bold\x02"
    assert IRCMessage.from_message(line).args[1] == "\x0304,01red\x03 and \x02bold\x02"
    assert IRCMessage.from_message(line, strip_colors=True).args[1] == "red and bold"


def test_arg() -> None:
    """Test the positional argument accessor."""
    msg = IRCMessage.from_message(":alice!a@h KICK #test bob")
    assert msg.arg(0) == "#test"
    assert msg.arg(1) == "bob"
    assert msg.arg(2) is None
    assert msg.arg(2, "") == ""


@pytest.mark.parametrize(
    "params,expected",
    [
        (("#test", "hello"), "#test hello"),
        (("#test", "hello world"), "#test :hello world"),
        (("#test", ":)"), "#test ::)"),
        (("#test", ""), "#test :"),
        (("bob",), "bob"),
        ((), ""),
    ],
)
def test_format_params(params: tuple[str, ...], expected: str) -> None:
    """Test the trailing parameter marking rules."""
    assert format_params(params) == expected


def test_str() -> None:
    """Test that messages can be turned back into the wire protocol."""
    line = ":alice!a@h PRIVMSG #test :hello world"
    assert str(IRCMessage.from_message(line)) == line
    assert str(IRCMessage.from_message("QUIT")) == "QUIT"
