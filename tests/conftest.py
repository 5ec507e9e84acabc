"""Shared fixtures for z407puck tests."""

from __future__ import annotations

import pytest

from z407puck.exceptions import TransportWriteError

# Frames captured from a Z407 puck
INITIATE_RESPONSE = bytes.fromhex("d40501")
ACKNOWLEDGE_RESPONSE = bytes.fromhex("d40001")
CONNECTED = bytes.fromhex("d40003")


class FakeTransport:
    """In-memory transport recording writes and replaying notifications.

    ``replies`` maps a written opcode to the notifications the fake device
    sends back right after the write.
    """

    def __init__(self, replies: dict[bytes, list[bytes]] | None = None):
        self.replies = replies or {}
        self.written: list[bytes] = []
        self.fail_writes = False
        self._callback = None
        self._disconnect_callback = None

    async def write_command(self, data: bytes) -> None:
        if self.fail_writes:
            raise TransportWriteError("Write failed: link down")
        self.written.append(data)
        for frame in self.replies.get(data, []):
            self.notify(frame)

    def subscribe(self, callback) -> None:
        self._callback = callback

    def unsubscribe(self) -> None:
        self._callback = None

    def set_disconnect_callback(self, callback) -> None:
        self._disconnect_callback = callback

    def notify(self, data: bytes) -> None:
        if self._callback is not None:
            self._callback(data)

    def drop(self) -> None:
        if self._disconnect_callback is not None:
            self._disconnect_callback()

    @property
    def subscribed(self) -> bool:
        return self._callback is not None


@pytest.fixture
def transport() -> FakeTransport:
    """Transport that never answers."""
    return FakeTransport()


@pytest.fixture
def responsive_transport() -> FakeTransport:
    """Transport that answers the handshake like a real puck."""
    return FakeTransport(
        replies={
            b"\x84\x05": [INITIATE_RESPONSE],
            b"\x84\x00": [ACKNOWLEDGE_RESPONSE, CONNECTED],
        }
    )
