"""Connection handshake state machine.

The puck ignores every command until this exchange has completed:

1. host writes INITIATE (``84 05``), device answers ``d4 05 01``
2. host writes ACKNOWLEDGE (``84 00``), device answers ``d4 00 01``
3. device reports CONNECTED (``d4 00 03``)

The coordinator only decides transitions. Writing commands and running
the per-step timer is left to the session that owns it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Final

from ..exceptions import HandshakeError
from .commands import LogicalCommand
from .events import LogicalEvent, Notification

_LOGGER = logging.getLogger(__name__)


class HandshakeState(Enum):
    """Handshake progress for one connection."""

    IDLE = "idle"
    AWAITING_INITIATE_ACK = "awaiting_initiate_ack"
    AWAITING_ACKNOWLEDGE_ACK = "awaiting_acknowledge_ack"
    AWAITING_CONNECTED = "awaiting_connected"
    READY = "ready"
    FAILED = "failed"


class HandshakeFailure(Enum):
    """Reason attached to the FAILED state."""

    TIMEOUT = "timeout"
    DISCONNECTED = "disconnected"
    TRANSPORT_ERROR = "transport_error"


# state -> (expected event, next state, command to write on transition)
_TRANSITIONS: Final[dict[HandshakeState, tuple[LogicalEvent, HandshakeState, LogicalCommand | None]]] = {
    HandshakeState.AWAITING_INITIATE_ACK: (
        LogicalEvent.INITIATE_RESPONSE,
        HandshakeState.AWAITING_ACKNOWLEDGE_ACK,
        LogicalCommand.ACKNOWLEDGE,
    ),
    HandshakeState.AWAITING_ACKNOWLEDGE_ACK: (
        LogicalEvent.ACKNOWLEDGE_RESPONSE,
        HandshakeState.AWAITING_CONNECTED,
        None,
    ),
    HandshakeState.AWAITING_CONNECTED: (
        LogicalEvent.CONNECTED,
        HandshakeState.READY,
        None,
    ),
}


class HandshakeCoordinator:
    """Drive the three-step connect handshake.

    Stray notifications (e.g. confirmations left over from a previous
    session) are ignored while a step is pending; only the expected
    response advances the state, and the responses must arrive in order.
    """

    def __init__(self) -> None:
        self._state = HandshakeState.IDLE
        self._failure_reason: HandshakeFailure | None = None

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def failure_reason(self) -> HandshakeFailure | None:
        """Why the handshake failed, or None unless state is FAILED."""
        return self._failure_reason

    @property
    def is_ready(self) -> bool:
        return self._state is HandshakeState.READY

    @property
    def is_awaiting(self) -> bool:
        """True while a handshake response is pending."""
        return self._state in _TRANSITIONS

    @property
    def is_terminal(self) -> bool:
        return self._state in (HandshakeState.READY, HandshakeState.FAILED)

    @property
    def expected_event(self) -> LogicalEvent | None:
        """Event that would advance the handshake from the current state."""
        transition = _TRANSITIONS.get(self._state)
        return transition[0] if transition else None

    def start(self) -> LogicalCommand:
        """Begin the handshake.

        Returns:
            The INITIATE command, which the caller must write

        Raises:
            HandshakeError: If the handshake was already started
        """
        if self._state is not HandshakeState.IDLE:
            raise HandshakeError(f"Handshake already started (state={self._state.value})")

        self._state = HandshakeState.AWAITING_INITIATE_ACK
        _LOGGER.debug("Handshake started")
        return LogicalCommand.INITIATE

    def handle(self, notification: Notification) -> LogicalCommand | None:
        """Feed one decoded notification into the state machine.

        Args:
            notification: Decoded notification from the device

        Returns:
            Command the caller must write next, if any
        """
        transition = _TRANSITIONS.get(self._state)
        if transition is None:
            return None

        expected, next_state, command = transition
        if notification.event is not expected:
            _LOGGER.debug(
                "Ignoring %s (%s) while %s",
                notification.event.name,
                notification.hex,
                self._state.value,
            )
            return None

        _LOGGER.debug("Handshake %s -> %s", self._state.value, next_state.value)
        self._state = next_state
        return command

    def expire(self) -> None:
        """Handle an elapsed step timer."""
        if self.is_awaiting:
            _LOGGER.warning("Handshake timed out while %s", self._state.value)
            self.fail(HandshakeFailure.TIMEOUT)

    def fail(self, reason: HandshakeFailure) -> None:
        """Move to FAILED unless a terminal state was already reached."""
        if self.is_terminal:
            return
        self._state = HandshakeState.FAILED
        self._failure_reason = reason

    def reset(self) -> None:
        """Return to IDLE so a new handshake can be run."""
        self._state = HandshakeState.IDLE
        self._failure_reason = None
