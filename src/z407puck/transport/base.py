"""Transport interface consumed by the session layer."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

NotificationCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[], None]


class PuckTransport(Protocol):
    """Minimal link to the puck's two characteristics.

    Implementations:
    - BLEConnection: bleak client with retry logic
    - test fakes that record writes and replay notifications
    """

    async def write_command(self, data: bytes) -> None:
        """Write to the command characteristic.

        Raises:
            TransportWriteError: If the link is down or the write fails
        """
        ...

    def subscribe(self, callback: NotificationCallback) -> None:
        """Deliver every response-characteristic notification to callback."""
        ...

    def unsubscribe(self) -> None:
        """Stop delivering notifications."""
        ...

    def set_disconnect_callback(self, callback: DisconnectCallback | None) -> None:
        """Register the callback invoked when the link drops."""
        ...
