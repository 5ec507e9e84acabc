"""BLE protocol commands for the Logitech Z407 control puck."""

from __future__ import annotations

from enum import Enum
from typing import Final


class LogicalCommand(Enum):
    """Commands accepted on the command characteristic.

    Each value is the exact 2-byte opcode written to the device.
    """

    # Handshake-only commands
    INITIATE = b"\x84\x05"
    ACKNOWLEDGE = b"\x84\x00"

    # Media keys
    BASS_UP = b"\x80\x00"
    BASS_DOWN = b"\x80\x01"
    VOLUME_UP = b"\x80\x02"
    VOLUME_DOWN = b"\x80\x03"
    PLAY_PAUSE = b"\x80\x04"
    NEXT_TRACK = b"\x80\x05"
    PREV_TRACK = b"\x80\x06"

    # Input source selection
    SWITCH_BLUETOOTH = b"\x81\x01"
    SWITCH_AUX = b"\x81\x02"
    SWITCH_USB = b"\x81\x03"

    # Device management
    PAIRING = b"\x82\x00"
    FACTORY_RESET = b"\x83\x00"

    # Sound presets (0x85 group)
    UNKNOWN_1 = b"\x85\x00"
    SOUND_1 = b"\x85\x01"
    SOUND_2 = b"\x85\x02"
    SOUND_3 = b"\x85\x03"


# GATT layout
SERVICE_UUID: Final = "0000fdc2-0000-1000-8000-00805f9b34fb"
COMMAND_CHARACTERISTIC_UUID: Final = "c2e758b9-0e78-41e0-b0cb-98a593193fc5"
RESPONSE_CHARACTERISTIC_UUID: Final = "b84ac9c6-29c5-46d4-bba1-9d534784330f"
DEVICE_NAME: Final = "Logitech Z407"

# Frame sizes
COMMAND_LENGTH: Final = 2
HANDSHAKE_RESPONSE_LENGTH: Final = 3
EVENT_LENGTH: Final = 2

HANDSHAKE_COMMANDS: Final[frozenset[LogicalCommand]] = frozenset(
    {LogicalCommand.INITIATE, LogicalCommand.ACKNOWLEDGE}
)

USER_COMMANDS: Final[tuple[LogicalCommand, ...]] = tuple(
    cmd for cmd in LogicalCommand if cmd not in HANDSHAKE_COMMANDS
)


def encode(cmd: LogicalCommand) -> bytes:
    """Build the wire opcode for a command.

    Args:
        cmd: Command to encode

    Returns:
        Command bytes (always COMMAND_LENGTH long)
    """
    return cmd.value


def is_handshake_command(cmd: LogicalCommand) -> bool:
    """Return True for commands that may be sent before the handshake completes."""
    return cmd in HANDSHAKE_COMMANDS


def command_from_name(name: str) -> LogicalCommand:
    """Look up a command by name, ignoring case and dashes.

    Raises:
        ValueError: If no command has that name
    """
    key = name.strip().upper().replace("-", "_")
    try:
        return LogicalCommand[key]
    except KeyError:
        raise ValueError(f"Unknown command: {name!r}") from None
