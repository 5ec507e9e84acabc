"""BLE transport layer."""

from .base import DisconnectCallback, NotificationCallback, PuckTransport
from .connection import BLEConnection

__all__ = [
    "BLEConnection",
    "PuckTransport",
    "NotificationCallback",
    "DisconnectCallback",
]
