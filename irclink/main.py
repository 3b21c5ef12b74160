"""Command-line executable component.

Responsible for parsing the command-line arguments, the configuration file, and
running an IRC client, that logs everything it sees. Spawns the main event
loop.

Provides a run() function, used by __main__ or directly.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import asyncio
import configparser
import errno
import logging
import pathlib
import sys
from collections.abc import Sequence
from typing import Any

import structlog

from ._version import __version__
from .client import IRCClient
from .config import ClientOptions
from .events import Event

logger = structlog.get_logger()

# events worth logging, along with the names of their arguments
LOGGED_EVENTS: dict[Event, tuple[str, ...]] = {
    Event.REGISTERED: ("msg",),
    Event.JOIN: ("channel", "nick", "msg"),
    Event.PART: ("channel", "nick", "reason", "msg"),
    Event.KICK: ("channel", "nick", "by", "reason", "msg"),
    Event.MESSAGE: ("nick", "target", "text", "msg"),
    Event.NOTICE: ("nick", "target", "text", "msg"),
    Event.ACTION: ("nick", "target", "text", "msg"),
    Event.NET_ERROR: ("error",),
    Event.ABORT: ("retry_count",),
}


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    """Parse and return the parsed command line arguments."""
    parser = argparse.ArgumentParser(
        prog="irclink",
        description="IRC client",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    cfg_dflt = pathlib.Path("irclink.conf")
    if not cfg_dflt.exists():
        cfg_dflt = pathlib.Path("/etc/irclink.conf")
    parser.add_argument("--config-file", "-c", type=pathlib.Path, default=cfg_dflt, help="Path to configuration file")

    log_levels = ("DEBUG", "INFO", "WARNING", "ERROR")
    parser.add_argument("--log-level", choices=log_levels, type=str.upper, help="Log level (overrides config)")
    log_formats = ("plain", "console", "json")
    log_dflt = "console" if sys.stdout.isatty() else "plain"
    parser.add_argument("--log-format", default=log_dflt, choices=log_formats, help="Log format")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def configure_logging(log_format: str) -> None:
    """Configure logging parameters."""
    renderer: structlog.typing.Processor
    if log_format == "plain":
        timestamper = None
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    elif log_format == "console":
        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    elif log_format == "json":
        timestamper = structlog.processors.TimeStamper(fmt="iso")
        renderer = structlog.processors.JSONRenderer(sort_keys=True, default=str)
    else:
        raise ValueError(f"Invalid logging format specified: {log_format}")

    # render with structlog-based formatters within logging, so that foreign log entries are rendered the same way
    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if timestamper:
        processors.append(timestamper)

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            *processors,
            structlog.stdlib.ExtraAdder(),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    # default level, only for events emitted before the config is parsed
    root_logger.setLevel(logging.WARN)


def configure_log_levels(override_level: str | int | None, config: configparser.SectionProxy | None = None) -> None:
    """Configure logging levels, using the config file and an override, typically given by a CLI argument."""
    if config:
        for key, level in config.items():
            this_logger_name = key if key != "root" else None
            this_logger = logging.getLogger(this_logger_name)
            this_logger.setLevel(level.upper())

    if override_level:
        # set the level for the entire package
        logging.getLogger("irclink").setLevel(override_level)


def log_events(client: IRCClient) -> None:
    """Subscribe to a few events of a client, and log them."""
    log = structlog.get_logger("irclink.events")

    def subscribe(event: Event, names: tuple[str, ...]) -> None:
        def listener(*args: Any) -> None:
            fields = {name: str(value) for name, value in zip(names, args) if value is not None}
            log.info(f"Event {event}", **fields)

        client.events.on(event, listener)

    for event, names in LOGGED_EVENTS.items():
        subscribe(event, names)


async def start_client(config: configparser.ConfigParser) -> None:
    """Run the client (and optionally the metrics server) until it gives up."""
    if "irc" not in config:
        logger.critical('Invalid configuration, missing section "irc"')
        raise SystemExit(-1)

    try:
        options = ClientOptions.from_config(config["irc"])
    except ValueError as exc:
        logger.critical(f"Invalid configuration, {exc}")
        raise SystemExit(-1) from exc

    client = IRCClient(options)
    log_events(client)

    try:
        if "prometheus" in config:
            from .prometheus import serve_metrics

            serve_metrics(config["prometheus"], client.metrics_registry)

        # with auto_connect, the client is already running in the background
        await client.connect()
    except OSError as exc:
        logger.critical(f"System error: {exc.strerror}", errno=errno.errorcode.get(exc.errno or 0))
        raise SystemExit(-2) from exc
    finally:
        await client.disconnect()


def run(argv: Sequence[str] | None = None) -> None:
    """Entry point."""
    options = parse_args(argv)

    configure_logging(options.log_format)
    configure_log_levels(options.log_level or logging.INFO)
    logger.info("Starting irclink", config_file=str(options.config_file), version=__version__)

    config = configparser.ConfigParser(strict=True)
    try:
        with options.config_file.open(encoding="utf-8") as config_fh:
            config.read_file(config_fh)
    except OSError as exc:
        logger.critical(f"Cannot open configuration file: {exc.strerror}", errno=errno.errorcode[exc.errno])
        raise SystemExit(-1) from exc
    except configparser.Error as exc:
        msg = repr(exc).replace("\n", " ")  # configparser exceptions sometimes include newlines
        logger.critical(f"Invalid configuration, {msg}")
        raise SystemExit(-1) from exc

    # now that we've read the config, configure with the levels defined there (but CLI option takes precedence)
    if "loggers" in config:
        configure_log_levels(options.log_level, config["loggers"])

    try:
        asyncio.run(start_client(config))
    except KeyboardInterrupt:
        pass
