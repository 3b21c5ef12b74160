"""Ping timeout watchdog.

When enough silence (lack of server-sent activity) passes, a CyclingPingTimer
signals that a PING should be sent to the server, to get some signs of life
from it. If the server then stays silent for long enough, the timer signals a
ping timeout and stops.

Call start() to get the gears turning, and notify_of_activity() whenever
anything is received from the server.
"""

# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import enum
from typing import Callable

import structlog

logger = structlog.get_logger()


class PingTimerState(enum.Enum):
    """The state of a CyclingPingTimer."""

    STOPPED = "stopped"
    IDLE = "running-idle"
    WAITING = "running-wait-for-pong"


class CyclingPingTimer:
    """A two-phase idle/ping-wait timer.

    Only one of the two underlying timers is ever armed: the idle timer while
    in IDLE, the ping-wait timer while in WAITING.
    """

    def __init__(
        self,
        idle_interval: float,
        wait_interval: float,
        on_want_ping: Callable[[], None],
        on_timeout: Callable[[], None],
    ) -> None:
        self.idle_interval = idle_interval
        self.wait_interval = wait_interval
        self.on_want_ping = on_want_ping
        self.on_timeout = on_timeout
        self.state = PingTimerState.STOPPED
        self.log = logger.bind(timer=hex(id(self)))
        self._idle_handle: asyncio.TimerHandle | None = None
        self._wait_handle: asyncio.TimerHandle | None = None

    @property
    def running(self) -> bool:
        """Return True if the timer is started, in either phase."""
        return self.state is not PingTimerState.STOPPED

    def start(self) -> None:
        """Arm the idle timer. Requires a running event loop."""
        if self.running:
            self.log.debug("Cannot start ping timer, not stopped")
            return
        self._arm_idle()

    def stop(self) -> None:
        """Cancel both timers."""
        for handle in (self._idle_handle, self._wait_handle):
            if handle:
                handle.cancel()
        self._idle_handle = self._wait_handle = None
        self.state = PingTimerState.STOPPED

    def notify_of_activity(self) -> None:
        """Restart the idle phase, as the server is evidently alive."""
        if not self.running:
            return
        self.stop()
        self._arm_idle()

    def _arm_idle(self) -> None:
        loop = asyncio.get_running_loop()
        self._idle_handle = loop.call_later(self.idle_interval, self._idle_expired)
        self.state = PingTimerState.IDLE

    def _idle_expired(self) -> None:
        self.log.debug("Server silent for too long, requesting a PING")
        self._idle_handle = None
        loop = asyncio.get_running_loop()
        self._wait_handle = loop.call_later(self.wait_interval, self._wait_expired)
        self.state = PingTimerState.WAITING
        self.on_want_ping()

    def _wait_expired(self) -> None:
        self._wait_handle = None
        self.stop()
        self.log.debug("Ping timeout")
        self.on_timeout()
