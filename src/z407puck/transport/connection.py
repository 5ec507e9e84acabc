"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError, TransportWriteError
from ..protocol import COMMAND_CHARACTERISTIC_UUID, RESPONSE_CHARACTERISTIC_UUID, SERVICE_UUID
from .base import DisconnectCallback, NotificationCallback

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class BLEConnection:
    """Manages the BLE link to a Z407 puck.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - Notification and disconnect callbacks for the session layer
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from a previous scan
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._command_characteristic: BleakGATTCharacteristic | None = None
        self._response_characteristic: BleakGATTCharacteristic | None = None
        self._notification_callback: NotificationCallback | None = None
        self._disconnect_callback: DisconnectCallback | None = None
        self._disconnecting = False

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to the puck.

        Raises:
            BLEConnectionError: If connection fails or the GATT layout is wrong
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )

            self._disconnecting = False
            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                disconnected_callback=self._on_disconnected,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.info("Connected to %s", self.mac_address)

            try:
                await self._setup_characteristics()
            except Exception:
                await self.disconnect()
                raise

        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Disconnect from device."""
        if self._client and self._client.is_connected:
            self._disconnecting = True
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None

    async def _setup_characteristics(self) -> None:
        """Locate both characteristics and start notifications.

        Raises:
            BLEConnectionError: If service/characteristic not found
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        service = self._client.services.get_service(SERVICE_UUID)
        if not service:
            raise BLEConnectionError(
                f"Service {SERVICE_UUID} not found"
            )

        self._command_characteristic = service.get_characteristic(COMMAND_CHARACTERISTIC_UUID)
        if not self._command_characteristic:
            raise BLEConnectionError(
                f"Command characteristic {COMMAND_CHARACTERISTIC_UUID} not found"
            )

        self._response_characteristic = service.get_characteristic(RESPONSE_CHARACTERISTIC_UUID)
        if not self._response_characteristic:
            raise BLEConnectionError(
                f"Response characteristic {RESPONSE_CHARACTERISTIC_UUID} not found"
            )

        await self._client.start_notify(
            self._response_characteristic,
            self._handle_notification,
        )

        _LOGGER.debug("Notifications started")

    def _handle_notification(self, sender, data: bytearray) -> None:
        """Forward a raw notification to the subscriber.

        Args:
            sender: Characteristic that sent notification
            data: Notification data
        """
        _LOGGER.debug("Notification from %s: %s", self.mac_address, data.hex())
        if self._notification_callback is not None:
            self._notification_callback(bytes(data))

    def _on_disconnected(self, client: BleakClient) -> None:
        """Handle link loss reported by bleak."""
        if self._disconnecting:
            _LOGGER.debug("Disconnected from %s", self.mac_address)
        else:
            _LOGGER.warning("Connection to %s lost", self.mac_address)
        self._client = None
        if self._disconnect_callback is not None:
            self._disconnect_callback()

    def subscribe(self, callback: NotificationCallback) -> None:
        """Register the notification subscriber (replaces any previous one)."""
        self._notification_callback = callback

    def unsubscribe(self) -> None:
        self._notification_callback = None

    def set_disconnect_callback(self, callback: DisconnectCallback | None) -> None:
        self._disconnect_callback = callback

    async def write_command(self, data: bytes) -> None:
        """Write command to device.

        Args:
            data: Command bytes to write

        Raises:
            TransportWriteError: If not connected or write fails
        """
        if not self._client or not self._client.is_connected:
            raise TransportWriteError("Not connected")

        if not self._command_characteristic:
            raise TransportWriteError("Command characteristic not set up")

        _LOGGER.debug("Write to %s: %s", self.mac_address, data.hex())
        try:
            await self._client.write_gatt_char(
                self._command_characteristic,
                data,
                response=True,  # Wait for write confirmation
            )
        except Exception as e:
            raise TransportWriteError(f"Write failed: {e}") from e

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
