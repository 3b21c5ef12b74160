"""Client-side state: channels, server capabilities and pending WHOIS data."""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import dataclasses
import itertools
import re
from collections.abc import Iterable, Iterator
from typing import Any

import structlog

logger = structlog.get_logger()


def channel_key(name: str) -> str:
    """Return the case-insensitive identity of a channel name."""
    return name.lower()


@dataclasses.dataclass
class ChannelState:
    """A channel the client is currently in."""

    key: str
    server_name: str
    topic: str | None = None
    topic_by: str | None = None
    created: str | None = None
    mode: str = ""
    mode_params: dict[str, list[str]] = dataclasses.field(default_factory=dict)
    users: dict[str, str] = dataclasses.field(default_factory=dict)


class ChannelRegistry:
    """Channels, stored by a generated id with a case-insensitive name index.

    All lookups and inserts go through channel_key(), so there is exactly one
    entry per case-insensitive channel name.
    """

    def __init__(self) -> None:
        self._ids = itertools.count()
        self._channels: dict[int, ChannelState] = {}
        self._index: dict[str, int] = {}

    def get(self, name: str, create: bool = False) -> ChannelState | None:
        """Return the state of a channel, optionally creating it."""
        key = channel_key(name)
        try:
            return self._channels[self._index[key]]
        except KeyError:
            if not create:
                return None

        channel_id = next(self._ids)
        channel = ChannelState(key=key, server_name=name)
        self._channels[channel_id] = channel
        self._index[key] = channel_id
        return channel

    def remove(self, name: str) -> ChannelState | None:
        """Forget a channel. Returns its last state, if it was known."""
        try:
            channel_id = self._index.pop(channel_key(name))
        except KeyError:
            return None
        return self._channels.pop(channel_id)

    def clear(self) -> None:
        """Forget all channels."""
        self._channels.clear()
        self._index.clear()

    def with_user(self, nick: str) -> list[ChannelState]:
        """Return all channels a nick is known to be in."""
        return [channel for channel in self if nick in channel.users]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and channel_key(name) in self._index

    def __iter__(self) -> Iterator[ChannelState]:
        return iter(list(self._channels.values()))

    def __len__(self) -> int:
        return len(self._channels)


def _split_pairs(value: str) -> Iterator[tuple[str, str]]:
    """Split an ISUPPORT value of the form "a:1,b:2" into pairs."""
    for item in value.split(","):
        key, _, val = item.partition(":")
        yield key, val


@dataclasses.dataclass
class ServerCapabilities:
    """Features supported by the server, as advertised in 004/005 replies.

    Initial values are RFC 1459 defaults; zeros signify no default or an
    unlimited value.
    """

    channel_idlength: dict[str, int] = dataclasses.field(default_factory=dict)
    channel_length: int = 200
    channel_limit: dict[str, int] = dataclasses.field(default_factory=dict)
    channel_modes: dict[str, str] = dataclasses.field(default_factory=lambda: {"a": "", "b": "", "c": "", "d": ""})
    channel_types: str = "&#"
    kick_length: int = 0
    max_list: dict[str, int] = dataclasses.field(default_factory=dict)
    max_targets: dict[str, int] = dataclasses.field(default_factory=dict)
    modes: int = 3
    nick_length: int = 9
    topic_length: int = 0
    user_modes: str = ""
    prefix_for_mode: dict[str, str] = dataclasses.field(default_factory=dict)
    mode_for_prefix: dict[str, str] = dataclasses.field(default_factory=dict)

    def apply_isupport(self, tokens: Iterable[str]) -> None:
        """Merge KEY=VALUE tokens from an RPL_ISUPPORT reply."""
        for token in tokens:
            match = re.match(r"([A-Z]+)=(.*)", token)
            if not match:
                continue
            key, value = match.groups()
            handler = getattr(self, f"_isupport_{key.lower()}", None)
            if not handler:
                continue
            try:
                handler(value)
            except ValueError:
                logger.debug("Invalid ISUPPORT value, ignoring", key=key, value=value)

    def _isupport_chanlimit(self, value: str) -> None:
        for types, limit in _split_pairs(value):
            self.channel_limit[types] = int(limit)

    def _isupport_chanmodes(self, value: str) -> None:
        for category, modes in zip("abcd", value.split(",")):
            self.channel_modes[category] += modes

    def _isupport_chantypes(self, value: str) -> None:
        self.channel_types = value

    def _isupport_channellen(self, value: str) -> None:
        self.channel_length = int(value)

    def _isupport_idchan(self, value: str) -> None:
        for prefix, length in _split_pairs(value):
            self.channel_idlength[prefix] = int(length)

    def _isupport_kicklen(self, value: str) -> None:
        self.kick_length = int(value)

    def _isupport_maxlist(self, value: str) -> None:
        for modes, limit in _split_pairs(value):
            self.max_list[modes] = int(limit)

    def _isupport_nicklen(self, value: str) -> None:
        self.nick_length = int(value)

    def _isupport_prefix(self, value: str) -> None:
        match = re.match(r"\((.*?)\)(.*)", value)
        if not match:
            return
        for mode, prefix in zip(*match.groups()):
            self.mode_for_prefix[prefix] = mode
            self.prefix_for_mode[mode] = prefix
            self.channel_modes["b"] += mode

    def _isupport_targmax(self, value: str) -> None:
        for command, limit in _split_pairs(value):
            self.max_targets[command] = int(limit) if limit else 0

    def _isupport_topiclen(self, value: str) -> None:
        self.topic_length = int(value)

    def mode_category(self, mode: str) -> str | None:
        """Return the CHANMODES category (a, b, c or d) of a mode letter."""
        for category in "abcd":
            if mode in self.channel_modes[category]:
                return category
        return None


@dataclasses.dataclass
class WhoisRecord:
    """Information about a user, accumulated from WHOIS or WHO replies."""

    nick: str
    user: str | None = None
    host: str | None = None
    realname: str | None = None
    server: str | None = None
    serverinfo: str | None = None
    idle: str | None = None
    channels: list[str] | None = None
    operator: str | None = None
    account: str | None = None
    accountinfo: str | None = None
    away: str | None = None


class WhoisStore:
    """Pending WhoisRecords, keyed by nick."""

    def __init__(self) -> None:
        self._records: dict[str, WhoisRecord] = {}

    def add(self, nick: str, field: str, value: Any, only_if_exists: bool = False) -> None:
        """Set a field of the record for a nick, creating the record if needed."""
        if only_if_exists and nick not in self._records:
            return
        record = self._records.setdefault(nick, WhoisRecord(nick=nick))
        setattr(record, field, value)

    def pop(self, nick: str) -> WhoisRecord:
        """Remove and return the record of a nick; always returns a record."""
        return self._records.pop(nick, None) or WhoisRecord(nick=nick)

    def __contains__(self, nick: object) -> bool:
        return nick in self._records


@dataclasses.dataclass(frozen=True)
class ListedChannel:
    """A channel, as returned in a LIST reply."""

    name: str
    users: str
    topic: str
