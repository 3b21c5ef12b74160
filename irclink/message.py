"""IRC message parsing.

Turns a single, already framed, line received from the server into an
IRCMessage, normalizing numeric commands into their symbolic names.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import dataclasses
import re
from collections.abc import Sequence

from .ircfmt import strip_colors_and_style
from .numerics import CommandType, lookup

PREFIX_RE = re.compile(r"^:([^ ]+) +")
NICKMASK_RE = re.compile(r"^([_a-zA-Z0-9~\[\]\\`^{}|-]*)(!([^@]+)@(.*))?$")
COMMAND_RE = re.compile(r"^([^ ]+) *")
TRAILING_RE = re.compile(r"(.*?)(?:^:|\s+:)(.*)")
WHITESPACE_RE = re.compile(r"\s")


class IRCParseError(ValueError):
    """Raised by IRCMessage.from_message() when a line cannot be parsed."""


def format_params(params: Sequence[str]) -> str:
    """Join parameters for the wire, marking the last one as trailing if needed.

    The last parameter is prefixed with a colon if it contains whitespace,
    starts with a colon or is empty; all parameters are joined with a single
    space.
    """
    if not params:
        return ""
    *middle, last = (str(param) for param in params)
    if WHITESPACE_RE.search(last) or last.startswith(":") or last == "":
        last = ":" + last
    return " ".join([*middle, last])


@dataclasses.dataclass(frozen=True)
class IRCMessage:
    """Represents a parsed RFC 1459 message, as received from a server.

    ``command`` is the symbolic name for numerics found in the numeric table
    (e.g. rpl_welcome for 001), otherwise the same as ``raw_command``.

    The origin of the message is kept in ``prefix``; if it looks like a
    nick!user@host mask it is additionally split into ``nick``, ``user`` and
    ``host``, otherwise it is stored in ``server``.
    """

    command: str
    raw_command: str
    args: tuple[str, ...] = ()
    command_type: CommandType = CommandType.NORMAL
    prefix: str | None = None
    nick: str | None = None
    user: str | None = None
    host: str | None = None
    server: str | None = None

    @classmethod
    def from_message(cls, line: str, strip_colors: bool = False) -> IRCMessage:
        """Parse a raw line. Returns an instance of IRCMessage."""
        if strip_colors:
            line = strip_colors_and_style(line)

        prefix = nick = user = host = server = None
        match = PREFIX_RE.match(line)
        if match:
            prefix = match.group(1)
            line = line[match.end() :]
            mask = NICKMASK_RE.match(prefix)
            if mask:
                nick, user, host = mask.group(1), mask.group(3), mask.group(4)
            else:
                server = prefix

        match = COMMAND_RE.match(line)
        if not match:
            raise IRCParseError("Invalid IRC message (no command specified)")
        raw_command = match.group(1)
        command, command_type = lookup(raw_command)
        remainder = line[match.end() :]

        trailing = None
        match = TRAILING_RE.match(remainder)
        if match:
            middle, trailing = match.group(1), match.group(2)
        else:
            middle = remainder
        middle = middle.rstrip()

        args = re.split(r" +", middle) if middle else []
        if trailing is not None:
            args.append(trailing)

        return cls(
            command=command,
            raw_command=raw_command,
            args=tuple(args),
            command_type=command_type,
            prefix=prefix,
            nick=nick,
            user=user,
            host=host,
            server=server,
        )

    def arg(self, index: int, default: str | None = None) -> str | None:
        """Return the argument at a given position, or a default if missing."""
        try:
            return self.args[index]
        except IndexError:
            return default

    def __str__(self) -> str:
        """Generate a wire-format string for the instance."""
        components = []
        if self.prefix:
            components.append(":" + self.prefix)
        components.append(self.raw_command)
        if self.args:
            components.append(format_params(self.args))
        return " ".join(components)
