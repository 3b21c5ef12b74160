"""Connection component.

A Connection represents a single attempt at talking to a server: it opens the
(plain or TLS) socket, frames the incoming byte stream into lines and owns the
ping timer of that attempt. Connections are never reused; the client creates
a new one for every reconnect.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import enum
import errno
import re
import ssl
from typing import TYPE_CHECKING, Callable

import structlog

from .pingtimer import CyclingPingTimer

if TYPE_CHECKING:
    from .config import ClientOptions

logger = structlog.get_logger()

LINE_DELIMITER_RE = re.compile(rb"\r\n|\r|\n")
READ_SIZE = 4096

# OpenSSL X509_V_ERR_* verification result codes
CERT_HAS_EXPIRED = 10
DEPTH_ZERO_SELF_SIGNED_CERT = 18
SELF_SIGNED_CERT_IN_CHAIN = 19
UNABLE_TO_VERIFY_LEAF_SIGNATURE = 21
SELF_SIGNED_ERRORS = frozenset({DEPTH_ZERO_SELF_SIGNED_CERT, SELF_SIGNED_CERT_IN_CHAIN, UNABLE_TO_VERIFY_LEAF_SIGNATURE})


class TLSTrustError(ConnectionError):
    """Raised when the server's certificate is not trusted."""


class ConnectionStatus(enum.Enum):
    """Lifecycle of a Connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    TLS_VALIDATING = "tls-validating"
    CONNECTED = "connected"


def tls_failure_tolerated(verify_code: int, self_signed: bool = False, cert_expired: bool = False) -> bool:
    """Return True if a certificate verification failure should be accepted."""
    if self_signed and verify_code in SELF_SIGNED_ERRORS:
        return True
    if cert_expired and verify_code == CERT_HAS_EXPIRED:
        return True
    return False


def make_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Return a client TLS context, optionally without any verification."""
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def decode_line(bline: bytes, encoding: str = "utf-8") -> str:
    """Decode a line, falling back to CP1252 for lines not in the expected encoding."""
    try:
        return bline.decode(encoding)
    except UnicodeDecodeError:
        return bline.decode("cp1252", "replace")


class LineBuffer:
    """Frame a byte stream into lines, split on CRLF, CR or LF.

    Incomplete trailing data is kept until the rest of the line arrives.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.buffer = b""

    def feed(self, data: bytes) -> list[str]:
        """Add data to the buffer, returning all complete, non-empty lines."""
        self.buffer += data
        *lines, self.buffer = LINE_DELIMITER_RE.split(self.buffer)
        return [decode_line(line, self.encoding) for line in lines if line]


class Connection:
    """A single connection attempt to an IRC server."""

    def __init__(
        self,
        options: ClientOptions,
        attempt: int = 0,
        on_want_ping: Callable[[], None] = lambda: None,
        on_timeout: Callable[[], None] = lambda: None,
    ) -> None:
        self.options = options
        self.attempt = attempt
        self.status = ConnectionStatus.DISCONNECTED
        self.requested_disconnect = False
        self.error: OSError | None = None
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.buffer = LineBuffer(options.encoding)
        self.ping_timer = CyclingPingTimer(options.ping_interval, options.ping_timeout, on_want_ping, on_timeout)
        self.log = logger.bind(server=options.server, port=options.port, attempt=attempt)
        self._closed = asyncio.Event()

    async def open(self) -> None:
        """Open the socket, performing the TLS handshake if configured."""
        self.status = ConnectionStatus.CONNECTING
        self.log.info("Connecting to server", secure=self.options.secure)
        try:
            if self.options.secure:
                await self._open_tls()
            else:
                await self._open(None)
        except BaseException:
            self.status = ConnectionStatus.DISCONNECTED
            raise
        self.status = ConnectionStatus.CONNECTED
        self.log.info("Connected to server")

    async def _open(self, context: ssl.SSLContext | None) -> None:
        local_addr = (self.options.local_address, 0) if self.options.local_address else None
        self.reader, self.writer = await asyncio.open_connection(
            self.options.server,
            self.options.port,
            ssl=context,
            local_addr=local_addr,
        )

    async def _open_tls(self) -> None:
        self.status = ConnectionStatus.TLS_VALIDATING
        try:
            await self._open(make_ssl_context(verify=True))
            return
        except ssl.SSLCertVerificationError as exc:
            if not tls_failure_tolerated(exc.verify_code, self.options.self_signed, self.options.cert_expired):
                raise TLSTrustError(exc.verify_message or str(exc)) from exc
            failure = exc

        if failure.verify_code == CERT_HAS_EXPIRED:
            self.log.warning("Connecting to server with expired certificate")
        else:
            self.log.warning("Connecting to server with untrusted certificate", reason=failure.verify_message)
        await self._open(make_ssl_context(verify=False))

    async def read_forever(self, handle_line: Callable[[str], None]) -> None:
        """Read lines and pass them to a handler, until the connection closes.

        Exceptions raised by the handler propagate, unless a disconnect has
        been requested. Socket errors end the loop and are kept in ``error``.
        """
        if self.reader is None:
            raise RuntimeError("Connection is not open")

        while True:
            try:
                data = await self.reader.read(READ_SIZE)
            except OSError as exc:
                self.error = exc
                break
            if not data:
                break

            self.ping_timer.notify_of_activity()
            for line in self.buffer.feed(data):
                self.log.debug("Data received", message=line)
                try:
                    handle_line(line)
                except Exception:
                    if not self.requested_disconnect:
                        raise
                    self.log.debug("Ignoring error while disconnecting", exc_info=True)

    def write(self, line: str) -> bool:
        """Send a single line, terminated with CRLF. Returns True if written."""
        if self.writer is None or self.writer.is_closing():
            self.log.debug("Data not sent (conn closed)", message=line)
            return False
        try:
            data = line.encode(self.options.encoding)
        except UnicodeEncodeError as exc:
            self.log.debug("Internal encoding error", error=exc)
            return False
        self.log.debug("Data sent", message=line)
        self.writer.write(data + b"\r\n")
        return True

    def abort(self) -> None:
        """Stop the ping timer and close the socket, without waiting."""
        self.ping_timer.stop()
        if self.writer is not None:
            self.writer.close()

    async def close(self) -> None:
        """Stop the ping timer and close the socket."""
        self.abort()
        if self.writer is not None:
            try:
                await self.writer.wait_closed()
            except OSError:
                pass
        self.status = ConnectionStatus.DISCONNECTED
        self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until close() has completed."""
        await self._closed.wait()

    async def terminate(self) -> None:
        """Gracefully close the connection, flushing pending data first."""
        if self.writer is not None and not self.writer.is_closing():
            try:
                if self.writer.can_write_eof():
                    self.writer.write_eof()
                await self.writer.drain()
            except OSError as exc:
                if exc.errno != errno.ENOTCONN:
                    self.log.debug("Unknown error in terminate", errno=exc.errno)
        await self.close()

    def __repr__(self) -> str:
        """Return a user-readable description of the connection."""
        return f"<{self.__class__.__name__} {self.options.server}:{self.options.port} #{self.attempt} {self.status.value}>"
