"""irclink, an asyncio IRC client library.

irclink implements the client side of the IRC protocol: it connects (over
plain TCP or TLS) and registers with a server, keeps track of the channels it
is in and of the server's capabilities, and publishes everything it sees as
events. It reconnects on network failures, guards against ping timeouts and
optionally paces its output to avoid getting disconnected for flooding.
"""

# Copyright © Faidon Liambotis
# Copyright © Wikimedia Foundation, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY CODE, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-FileCopyrightText: Faidon Liambotis
# SPDX-FileCopyrightText: Wikimedia Foundation
# SPDX-License-Identifier: Apache-2.0

from ._version import __version__
from .client import IRCClient
from .config import ClientOptions, WebIRCOptions
from .connection import TLSTrustError
from .events import Event, EventBus
from .main import run
from .message import IRCMessage, IRCParseError

__all__ = [
    "__version__",
    "ClientOptions",
    "Event",
    "EventBus",
    "IRCClient",
    "IRCMessage",
    "IRCParseError",
    "TLSTrustError",
    "WebIRCOptions",
    "run",
]
