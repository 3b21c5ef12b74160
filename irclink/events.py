"""Caller-facing event surface.

The client publishes everything through an EventBus, a dispatch table mapping
an event to its subscribers. Events relating to a channel may additionally be
published under an (event, channel) key, so that callers can subscribe either
to all channels or to a specific one, e.g.::

    client.events.on(Event.JOIN, on_any_join)
    client.events.on(Event.JOIN, on_join_here, channel="#irclink")
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import collections
import enum
from typing import Any, Callable

Listener = Callable[..., Any]


class Event(enum.Enum):
    """Events published by the client."""

    CONNECT = "connect"
    REGISTERED = "registered"
    RAW = "raw"
    PING = "ping"
    PONG = "pong"
    MOTD = "motd"
    WHOIS = "whois"
    NICK = "nick"
    ERROR = "error"
    NET_ERROR = "netError"
    ABORT = "abort"
    OPERED = "opered"
    SELF_MESSAGE = "selfMessage"
    CTCP = "ctcp"
    CTCP_PRIVMSG = "ctcp-privmsg"
    CTCP_NOTICE = "ctcp-notice"
    CTCP_VERSION = "ctcp-version"
    ACTION = "action"
    INVITE = "invite"
    KILL = "kill"
    QUIT = "quit"
    NAMES = "names"
    TOPIC = "topic"
    CHANNELLIST = "channellist"
    CHANNELLIST_START = "channellist_start"
    CHANNELLIST_ITEM = "channellist_item"
    JOIN = "join"
    PART = "part"
    KICK = "kick"
    MESSAGE = "message"
    CHANNEL_MESSAGE = "message#"
    NOTICE = "notice"
    PM = "pm"
    MODE_ADD = "+mode"
    MODE_REMOVE = "-mode"

    def __str__(self) -> str:
        return self.value


class EventBus:
    """A publish/subscribe dispatch table.

    Listeners are called synchronously, in subscription order; exceptions
    raised by listeners propagate to the publisher.
    """

    def __init__(self) -> None:
        self._listeners: dict[tuple[Event, str | None], list[Listener]] = collections.defaultdict(list)

    def on(self, event: Event, listener: Listener, channel: str | None = None) -> Listener:
        """Subscribe a listener. Returns the listener, to be used with off()."""
        self._listeners[(event, channel)].append(listener)
        return listener

    def once(self, event: Event, listener: Listener, channel: str | None = None) -> Listener:
        """Subscribe a listener that is unsubscribed after its first call."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper, channel)
            return listener(*args)

        return self.on(event, wrapper, channel)

    def off(self, event: Event, listener: Listener, channel: str | None = None) -> None:
        """Unsubscribe a listener; unknown listeners are ignored."""
        key = (event, channel)
        try:
            self._listeners[key].remove(listener)
        except ValueError:
            return
        if not self._listeners[key]:
            del self._listeners[key]

    def listeners(self, event: Event, channel: str | None = None) -> list[Listener]:
        """Return the listeners subscribed under a key."""
        return list(self._listeners.get((event, channel), []))

    def emit(self, event: Event, *args: Any, channel: str | None = None) -> bool:
        """Call every listener for a key. Returns True if there were any."""
        listeners = self.listeners(event, channel)
        for listener in listeners:
            listener(*args)
        return bool(listeners)
