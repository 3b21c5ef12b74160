"""Outbound path: command encoding, long-line splitting and flood protection.

All lines are eventually handed to a ``write`` callable, which is responsible
for transmitting a single line (without its CRLF terminator). Two sender
strategies sit in front of it; which one is used is decided once, when a
client is constructed:

* ImmediateSender writes every line as soon as it is sent;
* QueuedSender appends lines to a FIFO and writes one per interval, to avoid
  getting disconnected by the server for flooding.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import collections
from typing import Any, Callable

import structlog

from .message import format_params

logger = structlog.get_logger()

# splitting limit used when no sane limit could be computed (e.g. before registration)
FALLBACK_SPLIT_LENGTH = 450

Writer = Callable[[str], None]


def encode_command(command: str, *params: str) -> str:
    """Encode a command and its parameters into a line (without CRLF)."""
    if not params:
        return command
    return command + " " + format_params(params)


def split_long_line(text: str, max_length: int) -> list[str]:
    """Split text into chunks of at most max_length characters.

    Cuts happen at the last whitespace at or before the limit; that whitespace
    character is dropped. A chunk without any usable whitespace is cut hard at
    the limit.
    """
    if max_length <= 0:
        max_length = FALLBACK_SPLIT_LENGTH

    chunks = []
    while text:
        if len(text) <= max_length:
            chunks.append(text)
            break

        cut, skip = max_length, 0
        if text[max_length].isspace():
            skip = 1
        else:
            for pos in range(max_length - 1, 0, -1):
                if text[pos].isspace():
                    cut, skip = pos, 1
                    break

        chunks.append(text[:cut])
        text = text[cut + skip :]
    return chunks


class ImmediateSender:
    """Send lines as soon as they are given."""

    def __init__(self, write: Writer) -> None:
        self.write = write

    def __len__(self) -> int:
        return 0

    def send(self, line: str) -> None:
        """Write a line."""
        self.write(line)

    def send_immediate(self, line: str) -> None:
        """Write a line; identical to send()."""
        self.write(line)

    def clear(self) -> None:
        """Nothing is ever queued; no-op."""

    def start(self) -> None:
        """No-op."""

    def stop(self) -> None:
        """No-op."""


class QueuedSender:
    """Send lines through a FIFO queue, one line per interval."""

    def __init__(self, write: Writer, interval: float) -> None:
        self.write = write
        self.interval = interval
        self.queue: collections.deque[str] = collections.deque()
        self._dequeue_task: asyncio.Task[Any] | None = None

    def __len__(self) -> int:
        return len(self.queue)

    def send(self, line: str) -> None:
        """Queue a line for sending."""
        self.queue.append(line)

    def send_immediate(self, line: str) -> None:
        """Write a line right away, bypassing the queue."""
        self.write(line)

    def clear(self) -> None:
        """Drop all queued lines."""
        if self.queue:
            logger.debug("Discarding queued lines", count=len(self.queue))
        self.queue.clear()

    def dequeue(self) -> None:
        """Write the oldest queued line, if any."""
        try:
            line = self.queue.popleft()
        except IndexError:
            return
        self.write(line)

    def start(self) -> None:
        """Start unpacking the queue. Requires a running event loop."""
        if self._dequeue_task and not self._dequeue_task.done():
            return
        self.dequeue()
        self._dequeue_task = asyncio.create_task(self._dequeue_forever())

    def stop(self) -> None:
        """Stop unpacking the queue; queued lines are kept."""
        if self._dequeue_task:
            self._dequeue_task.cancel()
            self._dequeue_task = None

    async def _dequeue_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.dequeue()
