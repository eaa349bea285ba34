"""Shared type aliases for telnetmux public API."""

from __future__ import annotations

# std imports
from typing import Callable

# Connect callback: def on_connect(line) -> bool, False refuses the client.
ConnectCallback = Callable[[int], bool]

# Disconnect callback: def on_disconnect(line) -> None.
DisconnectCallback = Callable[[int], None]

# Receive callback: def on_receive(line, byte) -> None, byte is 0-255.
ReceiveCallback = Callable[[int, int], None]
