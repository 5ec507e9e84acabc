"""Exception hierarchy for the Z407 puck protocol."""

from __future__ import annotations


class Z407Error(Exception):
    """Base exception for all z407puck errors."""


class BLEConnectionError(Z407Error):
    """BLE connection could not be established or was rejected."""


class BLETimeoutError(Z407Error):
    """BLE connection attempt timed out."""


class SessionError(Z407Error):
    """Base exception for session-level failures."""


class NotReadyError(SessionError):
    """Command sent before the connection handshake completed.

    Recoverable: wait for the handshake or establish a new session.
    """


class HandshakeError(SessionError):
    """Handshake could not be run or did not complete."""


class HandshakeTimeoutError(HandshakeError):
    """An expected handshake response did not arrive in time.

    Terminal for the session; reconnect and run the handshake again.
    """


class DisconnectedError(SessionError):
    """Transport reported connection loss. Terminal for the session."""


class TransportWriteError(DisconnectedError):
    """Writing to the command characteristic failed."""
