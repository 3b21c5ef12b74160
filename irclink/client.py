"""IRC client component.

The IRCClient ties everything together: it runs the connection lifecycle
(connect, register, read, reconnect), dispatches every message received from
the server to a handler, keeps track of the client-side state (own nick,
channels, server capabilities) and offers the commands callers use to talk to
the server. Everything the client learns is published through its EventBus.

A minimal bot looks like::

    client = IRCClient(ClientOptions(server="irc.example.org", nick="bot", channels=["#test"]))
    client.events.on(Event.MESSAGE, lambda nick, target, text, msg: print(nick, text), channel="#test")
    asyncio.run(client.run())
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import base64
import re
from typing import Any, Callable

import prometheus_client
import structlog
from prometheus_client import Counter, Gauge

from .config import ClientOptions
from .connection import Connection, ConnectionStatus, TLSTrustError
from .events import Event, EventBus, Listener
from .message import IRCMessage
from .numerics import CommandType
from .outbound import ImmediateSender, QueuedSender, encode_command, split_long_line
from .state import (
    ChannelRegistry,
    ChannelState,
    ListedChannel,
    ServerCapabilities,
    WhoisRecord,
    WhoisStore,
    channel_key,
)

logger = structlog.get_logger()

# informational replies during registration; nothing to do with them
IGNORED_REPLIES = frozenset(
    {
        "rpl_yourhost",
        "rpl_created",
        "rpl_yourid",
        "rpl_statsconn",
        "rpl_luserclient",
        "rpl_luserop",
        "rpl_luserunknown",
        "rpl_luserchannels",
        "rpl_luserme",
        "rpl_localusers",
        "rpl_globalusers",
        "rpl_hosthidden",
    }
)

CTCP_DELIMITER = "\x01"
DEFAULT_QUIT_MESSAGE = "irclink says goodbye"
# 512 bytes, minus CRLF and the ":nick!user@host PRIVMSG " overhead of the relayed line
LINE_LENGTH_BASE = 497
INITIAL_MAX_LINE_LENGTH = 200
WHOREPLY_REALNAME_RE = re.compile(r"[0-9]+\s*(.+)")


class IRCClient:
    """An IRC client.

    Subscribe to ``events`` to observe the client; use the command methods
    (join(), say() etc.) to act. Dispatch of server messages happens in
    ``handle_<command>`` methods, where command is the lower-cased command,
    or the symbolic name of a numeric (e.g. handle_rpl_welcome).
    """

    def __init__(self, options: ClientOptions) -> None:
        self.options = options
        self.log = logger.bind(server=options.server)
        self.events = EventBus()

        self.nick = options.nick
        self.host_mask = ""
        self.max_line_length = INITIAL_MAX_LINE_LENGTH
        self.motd = ""
        self.supported = ServerCapabilities(channel_types=options.channel_prefixes)
        self.channels = ChannelRegistry()
        self.channellist: list[ListedChannel] = []
        self.whois_data = WhoisStore()

        self.connection: Connection | None = None
        self._ping_counter = 1
        self._run_task: asyncio.Task[None] | None = None

        self.sender: ImmediateSender | QueuedSender
        if options.flood_protection:
            self.sender = QueuedSender(self._write_line, options.flood_protection_delay)
        else:
            self.sender = ImmediateSender(self._write_line)

        # set up a few Prometheus metrics
        registry = prometheus_client.CollectorRegistry()
        self.metrics: dict[str, Any] = {
            "received": Counter("irclink_messages_received", "Count of IRC messages received", registry=registry),
            "sent": Counter("irclink_messages_sent", "Count of IRC messages sent", registry=registry),
            "reconnects": Counter("irclink_reconnects", "Count of reconnection attempts", registry=registry),
            "errors": Counter("irclink_errors", "Count of errors", ["type"], registry=registry),
            "channels": Gauge("irclink_channels", "Number of joined IRC channels", registry=registry),
            "queued": Gauge("irclink_queued_lines", "Number of lines in the flood queue", registry=registry),
        }
        self.metrics["channels"].set_function(lambda: len(self.channels))
        self.metrics["queued"].set_function(lambda: len(self.sender))
        self.metrics_registry = registry

        self.events.on(Event.KICK, self._rejoin_after_kick)
        self.events.on(Event.MOTD, self._join_configured_channels)

        if options.auto_connect:
            self.connect()

    def __repr__(self) -> str:
        """Return a user-readable description of the client."""
        return f"<{self.__class__.__name__} {self.nick}@{self.options.server}:{self.options.port}>"

    # connection lifecycle

    async def run(self) -> None:
        """Connect to the server and keep reconnecting, until told otherwise.

        Returns when the connection has been closed on request, the retry
        count has been exhausted, or the server certificate was rejected.
        """
        self.sender.start()
        try:
            attempt = 0
            while True:
                conn = await self._connect_once(attempt)
                if conn is None or conn.requested_disconnect:
                    return

                retry_count = self.options.retry_count
                if retry_count is not None and attempt >= retry_count:
                    self.log.warning("Maximum retry count reached, aborting", retry_count=retry_count)
                    self.events.emit(Event.ABORT, retry_count)
                    return

                self.log.info("Disconnected, reconnecting", delay=self.options.retry_delay)
                await asyncio.sleep(self.options.retry_delay)
                if conn.requested_disconnect:
                    return
                attempt += 1
                self.metrics["reconnects"].inc()
        finally:
            self.sender.stop()

    async def _connect_once(self, attempt: int) -> Connection | None:
        """Run a single connection attempt to completion.

        Returns the (closed) connection, or None if no reconnection should be
        attempted.
        """
        conn = Connection(
            self.options,
            attempt=attempt,
            on_want_ping=lambda: self._connection_wants_ping(conn),
            on_timeout=lambda: self._connection_timed_out(conn),
        )
        self.connection = conn
        self.channels.clear()

        try:
            await conn.open()
        except TLSTrustError as exc:
            await conn.close()
            conn.log.error("Server certificate rejected", reason=str(exc))
            self.metrics["errors"].labels("tls").inc()
            self.events.emit(Event.NET_ERROR, exc)
            return None
        except OSError as exc:
            await conn.close()
            self._network_error(conn, exc)
            return conn

        if conn.requested_disconnect:
            # disconnect() was called while connecting
            await conn.close()
            conn.log.info("Connection closed before registration")
            return conn

        try:
            self._connection_established(conn)
            await conn.read_forever(self.process_line)
            if conn.error:
                self._network_error(conn, conn.error)
        finally:
            await conn.close()
        conn.log.info("Connection closed")
        return conn

    def _network_error(self, conn: Connection, exc: OSError) -> None:
        conn.log.warning("Network error", error=str(exc))
        self.metrics["errors"].labels("network").inc()
        self.events.emit(Event.NET_ERROR, exc)

    def _connection_established(self, conn: Connection) -> None:
        """Register with the server."""
        webirc = self.options.webirc
        if webirc.enabled:
            self.send("WEBIRC", webirc.password, self.options.username, webirc.host, webirc.ip)

        if self.options.sasl:
            self.send("CAP", "REQ", "sasl")
        elif self.options.password:
            self.send("PASS", self.options.password)

        self.nick = self.options.nick
        self._update_max_line_length()
        self.send("NICK", self.options.nick)
        self.send("USER", self.options.username, "8", "*", self.options.realname)

        conn.ping_timer.start()
        self.events.emit(Event.CONNECT)

    def _connection_wants_ping(self, conn: Connection) -> None:
        if conn is not self.connection:
            return
        self.send("PING", str(self._ping_counter))
        self._ping_counter += 1

    def _connection_timed_out(self, conn: Connection) -> None:
        if conn is not self.connection:
            return
        conn.log.warning("Ping timeout, dropping connection")
        self.metrics["errors"].labels("ping-timeout").inc()
        self.end()

    def connect(self, callback: Listener | None = None) -> asyncio.Task[None]:
        """Start run() in the background. Requires a running event loop.

        The callback, if given, is called once the client is registered. If
        run() is already running in the background, its task is returned
        rather than starting another one. The returned task should be awaited
        eventually, to collect any exceptions.
        """
        if callback:
            self.events.once(Event.REGISTERED, callback)
        if self._run_task is None or self._run_task.done():
            self._run_task = asyncio.create_task(self.run())
        return self._run_task

    async def disconnect(self, message: str | None = None, callback: Callable[[], Any] | None = None) -> None:
        """Send a QUIT and close the connection, without reconnecting.

        Returns (and calls the callback) once the socket has been closed.
        """
        conn = self.connection
        if conn is None:
            return
        if conn.status in (ConnectionStatus.CONNECTING, ConnectionStatus.TLS_VALIDATING):
            # closed by _connect_once(), as soon as open() returns
            conn.requested_disconnect = True
        else:
            if conn.status is ConnectionStatus.CONNECTED and not conn.requested_disconnect:
                self.sender.clear()
                self.sender.send_immediate(encode_command("QUIT", message or DEFAULT_QUIT_MESSAGE))
            conn.requested_disconnect = True
            await conn.terminate()
        await conn.wait_closed()
        if callback:
            callback()

    def end(self) -> None:
        """Drop the current connection, without a QUIT; a reconnect may follow."""
        if self.connection:
            self.connection.abort()

    # outbound

    def _write_line(self, line: str) -> None:
        conn = self.connection
        if conn is None or conn.requested_disconnect:
            self.log.debug("Data not sent (conn closed)", message=line)
            return
        if conn.write(line):
            self.metrics["sent"].inc()

    def send(self, command: str, *params: str) -> None:
        """Send a command, via the flood queue if enabled."""
        self.sender.send(encode_command(command, *params))

    def join(self, channel: str, callback: Listener | None = None) -> None:
        """Join a channel; channel may include a key, separated by a space.

        Once joined, the channel is remembered and joined again on reconnect.
        The callback, if given, is called as callback(nick, msg).
        """
        name = channel_key(channel.split(" ")[0])

        def on_join(nick: str, msg: IRCMessage) -> None:
            if nick != self.nick:
                return
            self.events.off(Event.JOIN, on_join, channel=name)
            if channel not in self.options.channels:
                self.options.channels.append(channel)
            if callback:
                callback(nick, msg)

        self.events.on(Event.JOIN, on_join, channel=name)
        self.send("JOIN", *channel.split(" "))

    def part(self, channel: str, message: str | None = None, callback: Listener | None = None) -> None:
        """Leave a channel, and stop joining it on reconnect."""
        if callback:
            self.events.once(Event.PART, callback, channel=channel_key(channel))
        if channel in self.options.channels:
            self.options.channels.remove(channel)
        if message:
            self.send("PART", channel, message)
        else:
            self.send("PART", channel)

    def say(self, target: str, text: str) -> None:
        """Send a PRIVMSG, split on newlines and long lines."""
        self._speak("PRIVMSG", target, text)

    def notice(self, target: str, text: str) -> None:
        """Send a NOTICE, split on newlines and long lines."""
        self._speak("NOTICE", target, text)

    def action(self, target: str, text: str) -> None:
        """Send a CTCP ACTION (/me) for every line of the text."""
        for line in re.split(r"\r?\n", str(text)):
            if line:
                self.say(target, f"{CTCP_DELIMITER}ACTION {line}{CTCP_DELIMITER}")

    def ctcp(self, target: str, kind: str, text: str) -> None:
        """Send a CTCP request (kind "privmsg") or reply (kind "notice")."""
        command = "PRIVMSG" if kind == "privmsg" else "NOTICE"
        self._speak(command, target, f"{CTCP_DELIMITER}{text}{CTCP_DELIMITER}")

    def whois(self, nick: str, callback: Callable[[WhoisRecord], Any] | None = None) -> None:
        """Query a nick; the callback receives the WhoisRecord."""
        if callback:

            def on_whois(record: WhoisRecord) -> None:
                if record.nick.lower() != nick.lower():
                    return
                self.events.off(Event.WHOIS, on_whois)
                callback(record)

            self.events.on(Event.WHOIS, on_whois)
        self.send("WHOIS", nick)

    def list(self, *args: str) -> None:
        """Request the channel list; results arrive as channellist events."""
        self.send("LIST", *args)

    def _speak(self, command: str, target: str, text: str) -> None:
        max_length = min(self.max_line_length - len(target), self.options.message_split)
        for line in re.split(r"\r?\n", str(text)):
            if not line:
                continue
            for chunk in split_long_line(line, max_length):
                self.send(command, target, chunk)
                if command == "PRIVMSG":
                    self.events.emit(Event.SELF_MESSAGE, target, chunk)

    def _update_max_line_length(self) -> None:
        self.max_line_length = LINE_LENGTH_BASE - len(self.nick) - len(self.host_mask)

    # built-in subscribers

    def _rejoin_after_kick(self, channel: str, nick: str, by: str, reason: str, msg: IRCMessage) -> None:
        if self.options.auto_rejoin and nick == self.nick:
            self.send("JOIN", *channel.split(" "))

    def _join_configured_channels(self, motd: str) -> None:
        for channel in self.options.channels:
            self.send("JOIN", *channel.split(" "))

    # inbound

    def process_line(self, line: str) -> None:
        """Parse and dispatch a single line received from the server."""
        msg = IRCMessage.from_message(line, strip_colors=self.options.strip_colors)
        self.metrics["received"].inc()
        self.process_message(msg)

    def process_message(self, msg: IRCMessage) -> None:
        """Dispatch a message to its handler."""
        self.events.emit(Event.RAW, msg)
        if msg.command in IGNORED_REPLIES:
            return

        handler = getattr(self, f"handle_{msg.command.lower()}", None)
        if handler:
            handler(msg)
        elif msg.command_type is CommandType.ERROR:
            self._error_reply(msg)
        else:
            self.log.debug("Unhandled message", command=msg.command, args=msg.args)

    def _error_reply(self, msg: IRCMessage) -> None:
        self.metrics["errors"].labels("reply").inc()
        log = self.log.warning if self.options.show_errors else self.log.debug
        log("Error reply from server", command=msg.command, args=msg.args)
        self.events.emit(Event.ERROR, msg)

    def _emit_for_channel(self, event: Event, channel: str, *args: Any) -> None:
        """Notify the subscribers of a channel, under its name and its lower-cased key."""
        self.events.emit(event, *args, channel=channel)
        key = channel_key(channel)
        if key != channel:
            self.events.emit(event, *args, channel=key)

    def _is_channel(self, target: str) -> bool:
        return bool(target) and target[0] in self.supported.channel_types

    def handle_rpl_welcome(self, msg: IRCMessage) -> None:
        """Handle RPL_WELCOME, finishing registration."""
        # the server may have changed or truncated our nick
        self.nick = msg.arg(0, self.nick)
        words = msg.arg(1, "").split()
        self.host_mask = words[-1] if words else ""
        self.supported = ServerCapabilities(channel_types=self.options.channel_prefixes)
        self._update_max_line_length()
        self.log.info("Registered with server", nick=self.nick)
        self.events.emit(Event.REGISTERED, msg)

        # a previous registration may have never gotten its reply
        if self._refresh_host_mask not in self.events.listeners(Event.WHOIS):
            self.events.on(Event.WHOIS, self._refresh_host_mask)
        self.send("WHOIS", self.nick)

    def _refresh_host_mask(self, record: WhoisRecord) -> None:
        if record.nick.lower() != self.nick.lower():
            return
        self.events.off(Event.WHOIS, self._refresh_host_mask)
        self.nick = record.nick
        if record.user and record.host:
            self.host_mask = f"{record.user}@{record.host}"
        self._update_max_line_length()

    def handle_rpl_myinfo(self, msg: IRCMessage) -> None:
        """Handle RPL_MYINFO."""
        self.supported.user_modes = msg.arg(3, "")

    def handle_rpl_isupport(self, msg: IRCMessage) -> None:
        """Handle RPL_ISUPPORT."""
        # the first argument is our nick; the trailing text is not a KEY=VALUE token
        self.supported.apply_isupport(msg.args[1:])

    def handle_err_nicknameinuse(self, msg: IRCMessage) -> None:
        """Handle ERR_NICKNAMEINUSE, by retrying with a numeric suffix."""
        self.options.nick_mod += 1
        nick = f"{self.options.nick}{self.options.nick_mod}"
        self.log.info("Nickname in use, retrying", nick=nick)
        self.send("NICK", nick)
        self.nick = nick
        self._update_max_line_length()

    def handle_ping(self, msg: IRCMessage) -> None:
        """Handle PING."""
        token = msg.arg(0, "")
        self.send("PONG", token)
        self.events.emit(Event.PING, token)

    def handle_pong(self, msg: IRCMessage) -> None:
        """Handle PONG."""
        self.events.emit(Event.PONG, msg.arg(0))

    def handle_notice(self, msg: IRCMessage) -> None:
        """Handle NOTICE."""
        target, text = msg.arg(0, ""), msg.arg(1, "")
        if self._is_ctcp(text):
            self._handle_ctcp(msg.nick, target, text, "notice", msg)
            return
        self.events.emit(Event.NOTICE, msg.nick, target, text, msg)

    def handle_privmsg(self, msg: IRCMessage) -> None:
        """Handle PRIVMSG."""
        target, text = msg.arg(0, ""), msg.arg(1, "")
        if self._is_ctcp(text):
            self._handle_ctcp(msg.nick, target, text, "privmsg", msg)
            return

        self.events.emit(Event.MESSAGE, msg.nick, target, text, msg)
        if self._is_channel(target):
            self.events.emit(Event.CHANNEL_MESSAGE, msg.nick, target, text, msg)
            self._emit_for_channel(Event.MESSAGE, target, msg.nick, text, msg)
        if target.lower() == self.nick.lower():
            self.events.emit(Event.PM, msg.nick, text, msg)

    @staticmethod
    def _is_ctcp(text: str) -> bool:
        return text.startswith(CTCP_DELIMITER) and text.rfind(CTCP_DELIMITER) > 0

    def _handle_ctcp(self, source: str | None, target: str, text: str, kind: str, msg: IRCMessage) -> None:
        text = text[1:]
        text = text[: text.index(CTCP_DELIMITER)]
        parts = text.split(" ")

        self.events.emit(Event.CTCP, source, target, text, kind, msg)
        if kind == "privmsg":
            self.events.emit(Event.CTCP_PRIVMSG, source, target, text, msg)
        else:
            self.events.emit(Event.CTCP_NOTICE, source, target, text, msg)

        if kind == "privmsg" and text == "VERSION":
            self.events.emit(Event.CTCP_VERSION, source, target, msg)
        if parts[0] == "ACTION" and len(parts) > 1:
            self.events.emit(Event.ACTION, source, target, " ".join(parts[1:]), msg)
        if parts[0] == "PING" and kind == "privmsg" and len(parts) > 1 and source:
            self.ctcp(source, "notice", text)

    def handle_mode(self, msg: IRCMessage) -> None:
        """Handle MODE; user modes and unknown channels are ignored."""
        target = msg.arg(0, "")
        channel = self.channels.get(target)
        if not channel:
            return

        self.log.debug("Mode change", channel=target, by=msg.nick, modes=msg.args[1:])
        mode_args = list(msg.args[2:])

        def next_arg() -> str | None:
            return mode_args.pop(0) if mode_args else None

        adding = True
        for mode in msg.arg(1, ""):
            if mode in "+-":
                adding = mode == "+"
                continue

            category = self.supported.mode_category(mode)
            if mode in self.supported.prefix_for_mode:
                param = next_arg()
                self._update_user_prefix(channel, param, self.supported.prefix_for_mode[mode], adding)
            elif category == "a":
                param = next_arg()
                self._update_channel_mode(channel, mode, adding, param, listed=True)
            elif category == "b":
                param = next_arg()
                self._update_channel_mode(channel, mode, adding, param)
            elif category == "c":
                # parameter only when set
                param = next_arg() if adding else None
                self._update_channel_mode(channel, mode, adding, param)
            elif category == "d":
                param = None
                self._update_channel_mode(channel, mode, adding)
            else:
                self.log.debug("Unknown channel mode", channel=target, mode=mode)
                continue

            event = Event.MODE_ADD if adding else Event.MODE_REMOVE
            self.events.emit(event, target, msg.nick, mode, param, msg)

    @staticmethod
    def _update_user_prefix(channel: ChannelState, nick: str | None, prefix: str, adding: bool) -> None:
        if nick is None or nick not in channel.users:
            return
        current = channel.users[nick]
        if adding:
            if prefix not in current:
                channel.users[nick] = current + prefix
        else:
            channel.users[nick] = current.replace(prefix, "")

    @staticmethod
    def _update_channel_mode(
        channel: ChannelState,
        mode: str,
        adding: bool,
        param: str | None = None,
        listed: bool = False,
    ) -> None:
        """Update channel modes; listed (category a) modes keep a set of parameters."""
        if adding:
            if mode not in channel.mode:
                channel.mode += mode
            if listed:
                params = channel.mode_params.setdefault(mode, [])
                if param is not None and param not in params:
                    params.append(param)
            else:
                channel.mode_params[mode] = [param] if param is not None else []
            return

        if listed and mode in channel.mode_params:
            channel.mode_params[mode] = [p for p in channel.mode_params[mode] if p != param]
            if channel.mode_params[mode]:
                return
        channel.mode = channel.mode.replace(mode, "")
        channel.mode_params.pop(mode, None)

    def handle_nick(self, msg: IRCMessage) -> None:
        """Handle NICK."""
        old, new = msg.nick, msg.arg(0, "")
        if old == self.nick:
            self.nick = new
            self._update_max_line_length()

        channels = []
        for channel in self.channels.with_user(old):
            channel.users[new] = channel.users.pop(old)
            channels.append(channel.server_name)
        self.events.emit(Event.NICK, old, new, channels, msg)

    def handle_rpl_motdstart(self, msg: IRCMessage) -> None:
        """Handle RPL_MOTDSTART."""
        self.motd = msg.arg(1, "") + "\n"

    def handle_rpl_motd(self, msg: IRCMessage) -> None:
        """Handle RPL_MOTD."""
        self.motd += msg.arg(1, "") + "\n"

    def handle_rpl_endofmotd(self, msg: IRCMessage) -> None:
        """Handle RPL_ENDOFMOTD/ERR_NOMOTD."""
        self.motd += msg.arg(1, "") + "\n"
        self.events.emit(Event.MOTD, self.motd)

    handle_err_nomotd = handle_rpl_endofmotd

    def handle_rpl_namreply(self, msg: IRCMessage) -> None:
        """Handle RPL_NAMREPLY."""
        channel = self.channels.get(msg.arg(2, ""))
        if not channel:
            return
        prefixes = self.supported.mode_for_prefix
        for entry in msg.arg(3, "").split():
            pos = 0
            while pos < len(entry) - 1 and entry[pos] in prefixes:
                pos += 1
            channel.users[entry[pos:]] = entry[:pos]

    def handle_rpl_endofnames(self, msg: IRCMessage) -> None:
        """Handle RPL_ENDOFNAMES."""
        name = msg.arg(1, "")
        channel = self.channels.get(name)
        if not channel:
            return
        self.events.emit(Event.NAMES, name, channel.users)
        self.events.emit(Event.NAMES, channel.users, channel=name)
        self.send("MODE", name)

    def handle_rpl_topic(self, msg: IRCMessage) -> None:
        """Handle RPL_TOPIC."""
        channel = self.channels.get(msg.arg(1, ""))
        if channel:
            channel.topic = msg.arg(2, "")

    def handle_rpl_topicwhotime(self, msg: IRCMessage) -> None:
        """Handle RPL_TOPICWHOTIME, completing the topic reply."""
        name = msg.arg(1, "")
        channel = self.channels.get(name)
        if not channel:
            return
        channel.topic_by = msg.arg(2)
        self.events.emit(Event.TOPIC, name, channel.topic, channel.topic_by, msg)

    def handle_topic(self, msg: IRCMessage) -> None:
        """Handle TOPIC."""
        name, topic = msg.arg(0, ""), msg.arg(1, "")
        self.events.emit(Event.TOPIC, name, topic, msg.nick, msg)
        channel = self.channels.get(name)
        if channel:
            channel.topic = topic
            channel.topic_by = msg.nick

    def handle_rpl_channelmodeis(self, msg: IRCMessage) -> None:
        """Handle RPL_CHANNELMODEIS."""
        channel = self.channels.get(msg.arg(1, ""))
        if channel:
            channel.mode = msg.arg(2, "").lstrip("+")

    def handle_rpl_creationtime(self, msg: IRCMessage) -> None:
        """Handle RPL_CREATIONTIME."""
        channel = self.channels.get(msg.arg(1, ""))
        if channel:
            channel.created = msg.arg(2)

    def handle_rpl_away(self, msg: IRCMessage) -> None:
        """Handle RPL_AWAY; only recorded as part of a WHOIS reply."""
        self.whois_data.add(msg.arg(1, ""), "away", msg.arg(2), only_if_exists=True)

    def handle_rpl_whoisuser(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISUSER."""
        nick = msg.arg(1, "")
        self.whois_data.add(nick, "user", msg.arg(2))
        self.whois_data.add(nick, "host", msg.arg(3))
        self.whois_data.add(nick, "realname", msg.arg(5))

    def handle_rpl_whoisidle(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISIDLE."""
        self.whois_data.add(msg.arg(1, ""), "idle", msg.arg(2))

    def handle_rpl_whoischannels(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISCHANNELS."""
        self.whois_data.add(msg.arg(1, ""), "channels", msg.arg(2, "").split())

    def handle_rpl_whoisserver(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISSERVER."""
        nick = msg.arg(1, "")
        self.whois_data.add(nick, "server", msg.arg(2))
        self.whois_data.add(nick, "serverinfo", msg.arg(3))

    def handle_rpl_whoisoperator(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISOPERATOR."""
        self.whois_data.add(msg.arg(1, ""), "operator", msg.arg(2))

    def handle_rpl_whoisaccount(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOISACCOUNT."""
        nick = msg.arg(1, "")
        self.whois_data.add(nick, "account", msg.arg(2))
        self.whois_data.add(nick, "accountinfo", msg.arg(3))

    def handle_rpl_endofwhois(self, msg: IRCMessage) -> None:
        """Handle RPL_ENDOFWHOIS, publishing the accumulated record."""
        self.events.emit(Event.WHOIS, self.whois_data.pop(msg.arg(1, "")))

    def handle_rpl_whoreply(self, msg: IRCMessage) -> None:
        """Handle RPL_WHOREPLY, publishing a record right away."""
        nick = msg.arg(5, "")
        self.whois_data.add(nick, "user", msg.arg(2))
        self.whois_data.add(nick, "host", msg.arg(3))
        self.whois_data.add(nick, "server", msg.arg(4))
        # "<hopcount> <realname>"
        realname = msg.arg(7, "")
        match = WHOREPLY_REALNAME_RE.match(realname)
        self.whois_data.add(nick, "realname", match.group(1) if match else realname)
        self.events.emit(Event.WHOIS, self.whois_data.pop(nick))

    def handle_rpl_liststart(self, msg: IRCMessage) -> None:
        """Handle RPL_LISTSTART."""
        self.channellist = []
        self.events.emit(Event.CHANNELLIST_START)

    def handle_rpl_list(self, msg: IRCMessage) -> None:
        """Handle RPL_LIST."""
        item = ListedChannel(name=msg.arg(1, ""), users=msg.arg(2, ""), topic=msg.arg(3, ""))
        self.events.emit(Event.CHANNELLIST_ITEM, item)
        self.channellist.append(item)

    def handle_rpl_listend(self, msg: IRCMessage) -> None:
        """Handle RPL_LISTEND."""
        self.events.emit(Event.CHANNELLIST, self.channellist)

    def handle_join(self, msg: IRCMessage) -> None:
        """Handle JOIN."""
        name = msg.arg(0, "")
        if msg.nick == self.nick:
            self.channels.get(name, create=True)
        else:
            channel = self.channels.get(name)
            if channel and msg.nick:
                channel.users[msg.nick] = ""

        self.events.emit(Event.JOIN, name, msg.nick, msg)
        self._emit_for_channel(Event.JOIN, name, msg.nick, msg)

    def handle_part(self, msg: IRCMessage) -> None:
        """Handle PART."""
        name, reason = msg.arg(0, ""), msg.arg(1)
        self.events.emit(Event.PART, name, msg.nick, reason, msg)
        self._emit_for_channel(Event.PART, name, msg.nick, reason, msg)

        if msg.nick == self.nick:
            self.channels.remove(name)
        else:
            channel = self.channels.get(name)
            if channel:
                channel.users.pop(msg.nick, None)

    def handle_kick(self, msg: IRCMessage) -> None:
        """Handle KICK."""
        name, nick, reason = msg.arg(0, ""), msg.arg(1, ""), msg.arg(2)
        self.events.emit(Event.KICK, name, nick, msg.nick, reason, msg)
        self._emit_for_channel(Event.KICK, name, nick, msg.nick, reason, msg)

        if nick == self.nick:
            self.channels.remove(name)
        else:
            channel = self.channels.get(name)
            if channel:
                channel.users.pop(nick, None)

    def handle_kill(self, msg: IRCMessage) -> None:
        """Handle KILL."""
        nick = msg.arg(0, "")
        channels = []
        for channel in self.channels.with_user(nick):
            del channel.users[nick]
            channels.append(channel.server_name)
        self.events.emit(Event.KILL, nick, msg.arg(1), channels, msg)

    def handle_quit(self, msg: IRCMessage) -> None:
        """Handle QUIT of other users."""
        if msg.nick == self.nick:
            return
        channels = []
        for channel in self.channels.with_user(msg.nick):
            del channel.users[msg.nick]
            channels.append(channel.server_name)
        self.events.emit(Event.QUIT, msg.nick, msg.arg(0), channels, msg)

    def handle_invite(self, msg: IRCMessage) -> None:
        """Handle INVITE."""
        self.events.emit(Event.INVITE, msg.arg(1, ""), msg.nick, msg)

    def handle_rpl_youreoper(self, msg: IRCMessage) -> None:
        """Handle RPL_YOUREOPER."""
        self.events.emit(Event.OPERED)

    def handle_err_umodeunknownflag(self, msg: IRCMessage) -> None:
        """Handle ERR_UMODEUNKNOWNFLAG; only logged."""
        log = self.log.warning if self.options.show_errors else self.log.debug
        log("Unknown user mode flag", args=msg.args)

    def handle_cap(self, msg: IRCMessage) -> None:
        """Handle CAP, requesting SASL PLAIN authentication once acknowledged."""
        if msg.arg(1) == "ACK" and "sasl" in msg.arg(2, "").split():
            self.send("AUTHENTICATE", "PLAIN")

    def handle_authenticate(self, msg: IRCMessage) -> None:
        """Handle AUTHENTICATE, sending the credentials."""
        if msg.arg(0) != "+":
            return
        credentials = "\0".join((self.options.nick, self.options.username, self.options.password or ""))
        self.send("AUTHENTICATE", base64.b64encode(credentials.encode("utf-8")).decode("ascii"))

    def handle_rpl_saslsuccess(self, msg: IRCMessage) -> None:
        """Handle RPL_SASLSUCCESS, ending capability negotiation."""
        self.log.info("SASL authentication successful")
        self.send("CAP", "END")

    def handle_err_saslfail(self, msg: IRCMessage) -> None:
        """Handle SASL failures; registration continues unauthenticated."""
        self._error_reply(msg)
        self.log.error("SASL authentication failed", command=msg.command)
        self.send("CAP", "END")

    handle_err_sasltoolong = handle_err_saslfail
    handle_err_saslaborted = handle_err_saslfail
