"""Testing initialization."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from typing import Any, Callable

import pytest
import structlog

from irclink import ClientOptions, IRCClient
from irclink.outbound import ImmediateSender

ClientFactory = Callable[..., tuple[IRCClient, list[str]]]


@pytest.fixture(autouse=True)
def fixture_configure_structlog() -> None:
    """Fixture to configure structlog. Currently just silences it entirely."""

    def dummy_processor(
        logger: logging.Logger, name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        raise structlog.exceptions.DropEvent

    structlog.configure(processors=[dummy_processor])


@pytest.fixture(name="make_client")
def fixture_make_client() -> ClientFactory:
    """Return a factory of IRCClients that are not connected anywhere.

    Lines sent by the client are collected into a list, returned along with
    the client; options may be overriden by keyword arguments.
    """

    def make_client(**kwargs: Any) -> tuple[IRCClient, list[str]]:
        options = {"server": "irc.example.org", "nick": "bot", "channels": ["#test"], **kwargs}
        client = IRCClient(ClientOptions(**options))
        sent: list[str] = []
        client.sender = ImmediateSender(sent.append)
        return client, sent

    return make_client


@pytest.fixture(name="client_sent")
def fixture_client_sent(make_client: ClientFactory) -> tuple[IRCClient, list[str]]:
    """Fixture for a default, unconnected, IRCClient and the lines it sent."""
    return make_client()


class FakeConnection:
    """The server side of a client connection."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    async def readline(self, timeout: float = 5) -> str:
        """Read a line sent by the client, without its terminator."""
        line = await asyncio.wait_for(self.reader.readline(), timeout)
        if not line:
            raise EOFError("Connection closed by the client")
        return line.decode("utf-8").rstrip("\r\n")

    async def read_until(self, prefix: str, timeout: float = 5) -> list[str]:
        """Read lines until one starting with prefix is found; return all of them."""
        lines = []
        while True:
            line = await self.readline(timeout)
            lines.append(line)
            if line.startswith(prefix):
                return lines

    def send(self, line: str) -> None:
        """Send a line to the client."""
        self.writer.write(line.encode("utf-8") + b"\r\n")

    def close(self) -> None:
        """Close the connection."""
        self.writer.close()


class FakeServer:
    """A bare-bones TCP server, handing accepted connections over to the test."""

    def __init__(self) -> None:
        self.server: asyncio.base_events.Server | None = None
        self.port = 0
        self.connections: asyncio.Queue[FakeConnection] = asyncio.Queue()
        self.writers: list[asyncio.StreamWriter] = []

    async def start(self) -> None:
        """Listen to a random port on localhost."""
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.writers.append(writer)
        await self.connections.put(FakeConnection(reader, writer))
        with contextlib.suppress(OSError):
            await writer.wait_closed()

    async def accept(self, timeout: float = 5) -> FakeConnection:
        """Wait for the next client connection."""
        return await asyncio.wait_for(self.connections.get(), timeout)

    async def close(self) -> None:
        """Stop listening and close all connections."""
        if self.server:
            self.server.close()
        for writer in self.writers:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()


@pytest.fixture(name="fake_server")
async def fixture_fake_server() -> AsyncGenerator[FakeServer, None]:
    """Fixture for a listening FakeServer."""
    server = FakeServer()
    await server.start()
    yield server
    await server.close()
