"""BLE protocol implementation."""

from .commands import (
    COMMAND_CHARACTERISTIC_UUID,
    COMMAND_LENGTH,
    DEVICE_NAME,
    EVENT_LENGTH,
    HANDSHAKE_COMMANDS,
    HANDSHAKE_RESPONSE_LENGTH,
    RESPONSE_CHARACTERISTIC_UUID,
    SERVICE_UUID,
    USER_COMMANDS,
    LogicalCommand,
    command_from_name,
    encode,
    is_handshake_command,
)
from .events import (
    CONFIRMATIONS,
    LogicalEvent,
    Notification,
    decode,
    expected_confirmation,
)
from .handshake import HandshakeCoordinator, HandshakeFailure, HandshakeState

__all__ = [
    "LogicalCommand",
    "LogicalEvent",
    "Notification",
    "HandshakeCoordinator",
    "HandshakeFailure",
    "HandshakeState",
    "SERVICE_UUID",
    "COMMAND_CHARACTERISTIC_UUID",
    "RESPONSE_CHARACTERISTIC_UUID",
    "DEVICE_NAME",
    "COMMAND_LENGTH",
    "EVENT_LENGTH",
    "HANDSHAKE_RESPONSE_LENGTH",
    "HANDSHAKE_COMMANDS",
    "USER_COMMANDS",
    "CONFIRMATIONS",
    "encode",
    "decode",
    "is_handshake_command",
    "command_from_name",
    "expected_confirmation",
]
