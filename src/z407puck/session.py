"""Session controller: handshake gating and event routing for one connection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .exceptions import (
    DisconnectedError,
    HandshakeTimeoutError,
    NotReadyError,
    SessionError,
    TransportWriteError,
)
from .protocol import (
    HandshakeCoordinator,
    HandshakeFailure,
    HandshakeState,
    LogicalCommand,
    Notification,
    decode,
    encode,
    is_handshake_command,
)
from .transport.base import PuckTransport

_LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[Notification], None]

DEFAULT_HANDSHAKE_TIMEOUT = 5.0


class Session:
    """One handshake-gated conversation with a puck over a borrowed transport.

    Until the handshake reaches READY only INITIATE/ACKNOWLEDGE may be
    written; other commands are rejected with NotReadyError rather than
    queued. Once READY every decoded notification is delivered to the
    registered event callbacks.

    Usage:
        session = await establish_session(transport, on_event=print)
        await session.send_command(LogicalCommand.VOLUME_UP)

    The device never reports its state, so confirmations are best effort:
    a command may produce no event at all (e.g. volume changes while no
    audio is playing), and switch-completion events only arrive when the
    input actually changed.
    """

    def __init__(
            self,
            transport: PuckTransport,
            handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
    ):
        """Initialize session.

        Args:
            transport: Connected transport (not owned by the session)
            handshake_timeout: Seconds allowed for each handshake step (default: 5)
        """
        self._transport = transport
        self.handshake_timeout = handshake_timeout

        self._coordinator = HandshakeCoordinator()
        self._callbacks: list[EventCallback] = []
        self._timer: asyncio.TimerHandle | None = None
        self._ready: asyncio.Future[None] | None = None
        self._write_tasks: set[asyncio.Task[None]] = set()
        self._connected = True
        self._attached = False

    @property
    def state(self) -> HandshakeState:
        return self._coordinator.state

    @property
    def failure_reason(self) -> HandshakeFailure | None:
        return self._coordinator.failure_reason

    @property
    def is_ready(self) -> bool:
        return self._connected and self._coordinator.is_ready

    @property
    def is_connected(self) -> bool:
        """False once the transport dropped or the session was closed."""
        return self._connected

    def attach(self) -> None:
        """Subscribe to the transport's notifications and disconnect signal."""
        if self._attached:
            return
        self._transport.subscribe(self.on_notification)
        self._transport.set_disconnect_callback(self.on_connection_lost)
        self._attached = True

    def on_event(self, callback: EventCallback) -> Callable[[], None]:
        """Register an event subscriber.

        Returns:
            Function that removes the subscriber again
        """
        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _remove

    async def handshake(self) -> None:
        """Run the connect handshake and wait until the session is READY.

        Raises:
            DisconnectedError: If the link drops before completion
            HandshakeTimeoutError: If a step exceeds handshake_timeout
            HandshakeError: If the handshake was already started
        """
        if not self._connected:
            raise DisconnectedError("Session is disconnected")

        command = self._coordinator.start()
        self._ready = asyncio.get_running_loop().create_future()
        self._arm_timer()

        try:
            await self._write(command)
        except TransportWriteError:
            pass  # the waiter already carries the write error

        await self._ready
        _LOGGER.info("Handshake complete, session ready")

    async def send_command(self, cmd: LogicalCommand) -> None:
        """Encode and write a command.

        Writes are fire-and-forget: the matching confirmation event, if the
        device sends one, is delivered to the event callbacks.

        Raises:
            DisconnectedError: If the session was invalidated
            NotReadyError: If the handshake has not completed
            TransportWriteError: If the write fails (invalidates the session)
        """
        if not self._connected:
            raise DisconnectedError(f"Cannot send {cmd.name}: session is disconnected")

        if not is_handshake_command(cmd) and not self._coordinator.is_ready:
            if self._coordinator.state is HandshakeState.FAILED:
                reason = self._coordinator.failure_reason
                raise NotReadyError(
                    f"Cannot send {cmd.name}: handshake failed "
                    f"({reason.value if reason else 'unknown'}), establish a new session"
                )
            raise NotReadyError(
                f"Cannot send {cmd.name}: handshake not complete "
                f"(state={self._coordinator.state.value})"
            )

        await self._write(cmd)

    def on_notification(self, data: bytes) -> None:
        """Decode one notification and route it.

        Before READY the notification drives the handshake; afterwards it
        goes to the event callbacks.
        """
        if not self._connected:
            _LOGGER.debug("Dropping notification %s on closed session", data.hex())
            return

        notification = decode(data)

        if self._coordinator.is_ready:
            if not notification.is_recognized:
                _LOGGER.warning("Unrecognized notification: %s", notification.hex)
            self._dispatch(notification)
            return

        if not self._coordinator.is_awaiting:
            _LOGGER.debug(
                "Dropping %s while %s", notification.hex, self._coordinator.state.value
            )
            return

        previous = self._coordinator.state
        command = self._coordinator.handle(notification)
        if self._coordinator.state is previous:
            return

        self._cancel_timer()
        if self._coordinator.is_ready:
            if self._ready is not None and not self._ready.done():
                self._ready.set_result(None)
            return

        self._arm_timer()
        if command is not None:
            self._spawn_handshake_write(command)

    def on_connection_lost(self) -> None:
        """Reset to IDLE and invalidate the session.

        Applies in every state, including after a failed write already
        invalidated the session.
        """
        _LOGGER.info("Connection lost in state %s", self._coordinator.state.value)
        if self._connected:
            self._invalidate(DisconnectedError("Connection lost"))
        self._cancel_timer()
        self._coordinator.reset()

    async def close(self) -> None:
        """Tear the session down and detach from the transport."""
        if self._attached:
            self._transport.unsubscribe()
            self._transport.set_disconnect_callback(None)
            self._attached = False

        if self._connected:
            self._coordinator.fail(HandshakeFailure.DISCONNECTED)
            self._invalidate(DisconnectedError("Session closed"))

        for task in list(self._write_tasks):
            task.cancel()

    async def _write(self, cmd: LogicalCommand) -> None:
        data = encode(cmd)
        _LOGGER.debug("Sending %s (%s)", cmd.name, data.hex())
        try:
            await self._transport.write_command(data)
        except TransportWriteError as e:
            _LOGGER.warning("Write of %s failed: %s", cmd.name, e)
            if self._coordinator.is_awaiting:
                self._coordinator.fail(HandshakeFailure.TRANSPORT_ERROR)
            elif self._coordinator.state is not HandshakeState.FAILED:
                self._coordinator.reset()
            self._invalidate(e)
            raise

    def _spawn_handshake_write(self, cmd: LogicalCommand) -> None:
        task = asyncio.get_running_loop().create_task(self._write_handshake_command(cmd))
        self._write_tasks.add(task)
        task.add_done_callback(self._write_tasks.discard)

    async def _write_handshake_command(self, cmd: LogicalCommand) -> None:
        try:
            await self._write(cmd)
        except TransportWriteError:
            pass  # _write already reported the failure to the handshake waiter

    def _dispatch(self, notification: Notification) -> None:
        for callback in list(self._callbacks):
            try:
                callback(notification)
            except Exception:
                _LOGGER.exception("Event callback failed for %s", notification.event.name)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().call_later(
            self.handshake_timeout, self._on_handshake_timeout
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_handshake_timeout(self) -> None:
        self._timer = None
        expected = self._coordinator.expected_event
        if expected is None:
            return

        self._coordinator.expire()
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(
                HandshakeTimeoutError(
                    f"No {expected.name} within {self.handshake_timeout}s"
                )
            )

    def _invalidate(self, error: SessionError) -> None:
        self._connected = False
        self._cancel_timer()
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(error)


async def establish_session(
        transport: PuckTransport,
        handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
        on_event: EventCallback | None = None,
) -> Session:
    """Attach a session to a connected transport and run the handshake.

    Args:
        transport: Connected transport
        handshake_timeout: Seconds allowed for each handshake step
        on_event: Optional subscriber registered before the handshake starts

    Returns:
        READY session

    Raises:
        HandshakeTimeoutError: If the device stopped answering mid-handshake
        DisconnectedError: If the link dropped or a write failed
    """
    session = Session(transport, handshake_timeout=handshake_timeout)
    if on_event is not None:
        session.on_event(on_event)
    session.attach()

    try:
        await session.handshake()
    except SessionError:
        await session.close()
        raise

    return session
