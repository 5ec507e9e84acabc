"""Z407 Puck BLE Protocol Package.

  Pure Python package for controlling the Logitech Z407 speaker puck over BLE.
  """

from .device import Z407Puck
from .discovery import discover_devices
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    DisconnectedError,
    HandshakeError,
    HandshakeTimeoutError,
    NotReadyError,
    SessionError,
    TransportWriteError,
    Z407Error,
)
from .models.state import InputSource, PuckState, PuckStateTracker
from .protocol import (
    DEVICE_NAME,
    SERVICE_UUID,
    HandshakeCoordinator,
    HandshakeFailure,
    HandshakeState,
    LogicalCommand,
    LogicalEvent,
    Notification,
    decode,
    encode,
)
from .session import Session, establish_session
from .transport import BLEConnection, PuckTransport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "Z407Puck",
    "discover_devices",
    "establish_session",
    "Session",
    # Transport
    "BLEConnection",
    "PuckTransport",
    # Exceptions
    "Z407Error",
    "BLEConnectionError",
    "BLETimeoutError",
    "SessionError",
    "NotReadyError",
    "HandshakeError",
    "HandshakeTimeoutError",
    "DisconnectedError",
    "TransportWriteError",
    # Protocol
    "LogicalCommand",
    "LogicalEvent",
    "Notification",
    "HandshakeCoordinator",
    "HandshakeFailure",
    "HandshakeState",
    "encode",
    "decode",
    # Models
    "InputSource",
    "PuckState",
    "PuckStateTracker",
    # Constants
    "SERVICE_UUID",
    "DEVICE_NAME",
]
