"""Main Z407 puck device class."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .models.state import PuckState, PuckStateTracker
from .protocol import LogicalCommand, Notification
from .session import DEFAULT_HANDSHAKE_TIMEOUT, EventCallback, Session, establish_session
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)

_SOUND_COMMANDS = {
    1: LogicalCommand.SOUND_1,
    2: LogicalCommand.SOUND_2,
    3: LogicalCommand.SOUND_3,
}


class Z407Puck:
    """Logitech Z407 control puck.

    Main API for controlling the speaker over BLE.

    Usage:
        async with Z407Puck("AA:BB:CC:DD:EE:FF") as puck:
            await puck.volume_up()
            await puck.switch_aux()

        # Watch confirmations
        async with Z407Puck(mac) as puck:
            puck.on_event(lambda n: print(n.event.name))

    Commands are fire-and-forget. Confirmation events are best effort and
    the tracked ``state`` is an approximation. Media keys
    (play/pause, next, previous) are only confirmed to work on the
    Bluetooth input; behaviour on AUX and USB is unverified.
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
    ):
        """Initialize puck.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from discover_devices()
            timeout: BLE connection timeout in seconds (default: 10)
            handshake_timeout: Seconds allowed per handshake step (default: 5)
        """
        self.mac_address = mac_address
        self.handshake_timeout = handshake_timeout
        self._connection = BLEConnection(mac_address, ble_device, timeout)
        self._session: Session | None = None
        self._tracker = PuckStateTracker()
        self._callbacks: list[EventCallback] = []

    async def __aenter__(self) -> Z407Puck:
        """Connect and run the handshake."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device."""
        await self.disconnect()

    async def connect(self) -> None:
        """Connect, run the handshake and start tracking events.

        Raises:
            BLEConnectionError: If the BLE link cannot be established
            HandshakeTimeoutError: If the puck does not complete the handshake
        """
        await self._connection.connect()
        self._tracker.reset()

        try:
            self._session = await establish_session(
                self._connection,
                handshake_timeout=self.handshake_timeout,
                on_event=self._handle_event,
            )
        except Exception:
            await self._connection.disconnect()
            raise

        _LOGGER.info("Puck %s ready", self.mac_address)

    async def disconnect(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
        self._tracker.reset()
        await self._connection.disconnect()

    @property
    def is_ready(self) -> bool:
        return self._session is not None and self._session.is_ready

    @property
    def state(self) -> PuckState:
        """Best-effort state inferred from events; reset on (re)connect."""
        if self._session is not None and not self._session.is_connected:
            return PuckState()
        return self._tracker.state

    def on_event(self, callback: EventCallback) -> Callable[[], None]:
        """Register an event subscriber; returns a function removing it."""
        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _remove

    async def send(self, cmd: LogicalCommand) -> None:
        """Send one command.

        Raises:
            RuntimeError: If never connected
            NotReadyError: If the handshake has not completed
            DisconnectedError: If the connection was lost
        """
        if self._session is None:
            raise RuntimeError("Puck not connected - use 'async with' or call connect()")
        await self._session.send_command(cmd)

    async def volume_up(self) -> None:
        await self.send(LogicalCommand.VOLUME_UP)

    async def volume_down(self) -> None:
        await self.send(LogicalCommand.VOLUME_DOWN)

    async def bass_up(self) -> None:
        await self.send(LogicalCommand.BASS_UP)

    async def bass_down(self) -> None:
        await self.send(LogicalCommand.BASS_DOWN)

    async def play_pause(self) -> None:
        await self.send(LogicalCommand.PLAY_PAUSE)

    async def next_track(self) -> None:
        await self.send(LogicalCommand.NEXT_TRACK)

    async def prev_track(self) -> None:
        await self.send(LogicalCommand.PREV_TRACK)

    async def switch_bluetooth(self) -> None:
        await self.send(LogicalCommand.SWITCH_BLUETOOTH)

    async def switch_aux(self) -> None:
        await self.send(LogicalCommand.SWITCH_AUX)

    async def switch_usb(self) -> None:
        await self.send(LogicalCommand.SWITCH_USB)

    async def sound(self, preset: int) -> None:
        """Select sound preset 1, 2 or 3."""
        try:
            cmd = _SOUND_COMMANDS[preset]
        except KeyError:
            raise ValueError(f"Sound preset out of range: {preset} (must be 1-3)") from None
        await self.send(cmd)

    async def pairing(self) -> None:
        """Put the speaker into Bluetooth pairing mode."""
        await self.send(LogicalCommand.PAIRING)

    async def factory_reset(self) -> None:
        """Factory-reset the speaker. Irreversible."""
        _LOGGER.warning("Sending factory reset to %s", self.mac_address)
        await self.send(LogicalCommand.FACTORY_RESET)

    def _handle_event(self, notification: Notification) -> None:
        self._tracker.update(notification)
        for callback in list(self._callbacks):
            try:
                callback(notification)
            except Exception:
                _LOGGER.exception("Event callback failed for %s", notification.event.name)
