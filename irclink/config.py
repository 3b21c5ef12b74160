"""Client configuration."""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import configparser
import dataclasses


@dataclasses.dataclass
class WebIRCOptions:
    """WEBIRC credentials; sent only if all three are set."""

    password: str = ""
    ip: str = ""
    host: str = ""

    @property
    def enabled(self) -> bool:
        """Return True if WEBIRC should be sent."""
        return bool(self.password and self.ip and self.host)


@dataclasses.dataclass
class ClientOptions:
    """Options of an IRCClient.

    Mostly read-only; ``nick_mod`` (the nick collision counter) and
    ``channels`` (the channels to join after the MOTD) are updated as the
    client runs.
    """

    server: str
    nick: str
    port: int = 6667
    password: str | None = None
    username: str = "irclink"
    realname: str = "irclink IRC client"
    local_address: str | None = None
    show_errors: bool = False
    auto_connect: bool = False
    auto_rejoin: bool = False
    channels: list[str] = dataclasses.field(default_factory=list)
    retry_count: int | None = None
    retry_delay: float = 2.0
    secure: bool = False
    self_signed: bool = False
    cert_expired: bool = False
    flood_protection: bool = False
    flood_protection_delay: float = 1.0
    sasl: bool = False
    strip_colors: bool = False
    channel_prefixes: str = "&#"
    message_split: int = 512
    encoding: str = "utf-8"
    webirc: WebIRCOptions = dataclasses.field(default_factory=WebIRCOptions)
    ping_interval: float = 15.0
    ping_timeout: float = 8.0
    nick_mod: int = 0

    def __post_init__(self) -> None:
        if not self.server:
            raise ValueError("No server specified")
        if not self.nick:
            raise ValueError("No nick specified")
        if any(char.isspace() for char in self.username):
            raise ValueError(f"Invalid username: {self.username!r}")

    @classmethod
    def from_config(cls, config: configparser.SectionProxy) -> ClientOptions:
        """Build options from a configuration file section, e.g. [irc]."""
        try:
            server, nick = config["server"], config["nick"]
        except KeyError as exc:
            raise ValueError(f"Missing required option {exc}") from None

        retry_count = config.get("retry_count", fallback="")
        channels = config.get("channels", fallback="")

        return cls(
            server=server,
            nick=nick,
            port=config.getint("port", fallback=6667),
            password=config.get("password", fallback=None),
            username=config.get("username", fallback="irclink"),
            realname=config.get("realname", fallback="irclink IRC client"),
            local_address=config.get("local_address", fallback=None),
            show_errors=config.getboolean("show_errors", fallback=False),
            auto_connect=config.getboolean("auto_connect", fallback=False),
            auto_rejoin=config.getboolean("auto_rejoin", fallback=False),
            channels=[channel.strip() for channel in channels.split(",") if channel.strip()],
            retry_count=int(retry_count) if retry_count else None,
            retry_delay=config.getfloat("retry_delay", fallback=2.0),
            secure=config.getboolean("secure", fallback=False),
            self_signed=config.getboolean("self_signed", fallback=False),
            cert_expired=config.getboolean("cert_expired", fallback=False),
            flood_protection=config.getboolean("flood_protection", fallback=False),
            flood_protection_delay=config.getfloat("flood_protection_delay", fallback=1.0),
            sasl=config.getboolean("sasl", fallback=False),
            strip_colors=config.getboolean("strip_colors", fallback=False),
            channel_prefixes=config.get("channel_prefixes", fallback="&#"),
            message_split=config.getint("message_split", fallback=512),
            encoding=config.get("encoding", fallback="utf-8"),
            webirc=WebIRCOptions(
                password=config.get("webirc_pass", fallback=""),
                ip=config.get("webirc_ip", fallback=""),
                host=config.get("webirc_host", fallback=""),
            ),
            ping_interval=config.getfloat("ping_interval", fallback=15.0),
            ping_timeout=config.getfloat("ping_timeout", fallback=8.0),
        )
