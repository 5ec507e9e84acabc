"""Notification decoding for the Z407 response characteristic.

The puck answers on the response characteristic with fixed byte
signatures. The first byte selects a group, the rest select the event:

- ``d4`` (3 bytes): handshake responses
- ``c0``: media key confirmations
- ``c1``: input switch confirmations
- ``c2`` / ``c3``: pairing / factory reset confirmations
- ``c5``: sound preset confirmations (suffix order is inverted relative
  to the ``85`` opcodes; that is how the device reports them)
- ``cf``: switch-completion events, only sent when the input actually changed

Anything else decodes to ``LogicalEvent.UNRECOGNIZED`` so undocumented
codes reach subscribers instead of being dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from .commands import LogicalCommand

HANDSHAKE_PREFIX: Final = 0xD4
SWITCH_COMPLETION_PREFIX: Final = 0xCF
CONFIRMATION_PREFIXES: Final[frozenset[int]] = frozenset({0xC0, 0xC1, 0xC2, 0xC3, 0xC5})


class LogicalEvent(Enum):
    """Events reported by the puck. Each value is its byte signature."""

    # Handshake responses
    INITIATE_RESPONSE = b"\xd4\x05\x01"
    ACKNOWLEDGE_RESPONSE = b"\xd4\x00\x01"
    CONNECTED = b"\xd4\x00\x03"

    # Media key confirmations
    BASS_UP = b"\xc0\x00"
    BASS_DOWN = b"\xc0\x01"
    VOLUME_UP = b"\xc0\x02"
    VOLUME_DOWN = b"\xc0\x03"
    PLAY_PAUSE = b"\xc0\x04"
    NEXT_TRACK = b"\xc0\x05"
    PREV_TRACK = b"\xc0\x06"

    # Input switch confirmations
    SWITCH_BLUETOOTH = b"\xc1\x01"
    SWITCH_AUX = b"\xc1\x02"
    SWITCH_USB = b"\xc1\x03"

    PAIRING = b"\xc2\x00"
    FACTORY_RESET = b"\xc3\x00"

    # Sound presets, inverted versus the command opcodes
    UNKNOWN_1 = b"\xc5\x00"
    SOUND_3 = b"\xc5\x01"
    SOUND_2 = b"\xc5\x02"
    SOUND_1 = b"\xc5\x03"

    # Switch completion ("only if changed")
    SWITCHED_BLE = b"\xcf\x04"
    SWITCHED_AUX = b"\xcf\x05"
    SWITCHED_USB = b"\xcf\x06"

    UNRECOGNIZED = b""


_EVENTS_BY_SIGNATURE: Final[dict[bytes, LogicalEvent]] = {
    event.value: event for event in LogicalEvent if event is not LogicalEvent.UNRECOGNIZED
}

# Commands whose echo the device publishes. Switch-completion events are
# deliberately absent: they are not acknowledgements.
CONFIRMATIONS: Final[dict[LogicalCommand, LogicalEvent]] = {
    LogicalCommand.INITIATE: LogicalEvent.INITIATE_RESPONSE,
    LogicalCommand.ACKNOWLEDGE: LogicalEvent.ACKNOWLEDGE_RESPONSE,
    LogicalCommand.BASS_UP: LogicalEvent.BASS_UP,
    LogicalCommand.BASS_DOWN: LogicalEvent.BASS_DOWN,
    LogicalCommand.VOLUME_UP: LogicalEvent.VOLUME_UP,
    LogicalCommand.VOLUME_DOWN: LogicalEvent.VOLUME_DOWN,
    LogicalCommand.PLAY_PAUSE: LogicalEvent.PLAY_PAUSE,
    LogicalCommand.NEXT_TRACK: LogicalEvent.NEXT_TRACK,
    LogicalCommand.PREV_TRACK: LogicalEvent.PREV_TRACK,
    LogicalCommand.SWITCH_BLUETOOTH: LogicalEvent.SWITCH_BLUETOOTH,
    LogicalCommand.SWITCH_AUX: LogicalEvent.SWITCH_AUX,
    LogicalCommand.SWITCH_USB: LogicalEvent.SWITCH_USB,
    LogicalCommand.PAIRING: LogicalEvent.PAIRING,
    LogicalCommand.FACTORY_RESET: LogicalEvent.FACTORY_RESET,
    LogicalCommand.UNKNOWN_1: LogicalEvent.UNKNOWN_1,
    LogicalCommand.SOUND_1: LogicalEvent.SOUND_1,
    LogicalCommand.SOUND_2: LogicalEvent.SOUND_2,
    LogicalCommand.SOUND_3: LogicalEvent.SOUND_3,
}


@dataclass(frozen=True)
class Notification:
    """One decoded notification.

    Attributes:
        event: Decoded event (UNRECOGNIZED for unknown payloads)
        data: Raw bytes as received from the device
    """

    event: LogicalEvent
    data: bytes

    @property
    def hex(self) -> str:
        """Raw payload as a lowercase hex string (e.g. ``"c502"``)."""
        return self.data.hex()

    @property
    def is_handshake(self) -> bool:
        return self.event in (
            LogicalEvent.INITIATE_RESPONSE,
            LogicalEvent.ACKNOWLEDGE_RESPONSE,
            LogicalEvent.CONNECTED,
        )

    @property
    def is_confirmation(self) -> bool:
        return self.event is not LogicalEvent.UNRECOGNIZED and self.data[0] in CONFIRMATION_PREFIXES

    @property
    def is_switch_completion(self) -> bool:
        return self.event in (
            LogicalEvent.SWITCHED_BLE,
            LogicalEvent.SWITCHED_AUX,
            LogicalEvent.SWITCHED_USB,
        )

    @property
    def is_recognized(self) -> bool:
        return self.event is not LogicalEvent.UNRECOGNIZED


def decode(data: bytes | bytearray) -> Notification:
    """Decode raw notification bytes.

    Never raises: payloads that match no known signature, including frames
    of unexpected length, become UNRECOGNIZED notifications.

    Args:
        data: Raw notification payload

    Returns:
        Notification carrying the decoded event and the raw bytes
    """
    payload = bytes(data)
    event = _EVENTS_BY_SIGNATURE.get(payload, LogicalEvent.UNRECOGNIZED)
    return Notification(event=event, data=payload)


def expected_confirmation(cmd: LogicalCommand) -> LogicalEvent | None:
    """Return the event the device echoes for a command, if it publishes one."""
    return CONFIRMATIONS.get(cmd)
