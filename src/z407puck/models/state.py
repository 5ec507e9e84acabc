"""Best-effort puck state rebuilt from observed events."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Final

from ..protocol import LogicalEvent, Notification


class InputSource(Enum):
    """Speaker input sources selectable from the puck."""
    BLUETOOTH = "bluetooth"
    AUX = "aux"
    USB = "usb"


_SOURCE_EVENTS: Final[dict[LogicalEvent, InputSource]] = {
    LogicalEvent.SWITCH_BLUETOOTH: InputSource.BLUETOOTH,
    LogicalEvent.SWITCH_AUX: InputSource.AUX,
    LogicalEvent.SWITCH_USB: InputSource.USB,
    LogicalEvent.SWITCHED_BLE: InputSource.BLUETOOTH,
    LogicalEvent.SWITCHED_AUX: InputSource.AUX,
    LogicalEvent.SWITCHED_USB: InputSource.USB,
}

_SOUND_EVENTS: Final[dict[LogicalEvent, int]] = {
    LogicalEvent.SOUND_1: 1,
    LogicalEvent.SOUND_2: 2,
    LogicalEvent.SOUND_3: 3,
}

_VOLUME_STEPS: Final[dict[LogicalEvent, int]] = {
    LogicalEvent.VOLUME_UP: 1,
    LogicalEvent.VOLUME_DOWN: -1,
}

_BASS_STEPS: Final[dict[LogicalEvent, int]] = {
    LogicalEvent.BASS_UP: 1,
    LogicalEvent.BASS_DOWN: -1,
}


@dataclass(frozen=True)
class PuckState:
    """Snapshot of what the host believes about the puck.

    The device cannot be queried, so every field is an inference from
    notifications seen since the last reset. A missed notification or a
    reconnect makes it stale.

    Attributes:
        input_source: Last confirmed input, None when unknown
        volume_steps: Net volume steps confirmed since reset (relative, not absolute)
        bass_steps: Net bass steps confirmed since reset (relative, not absolute)
        last_sound: Last confirmed sound preset (1-3), None when unknown
        pairing_requested: True once a PAIRING confirmation was seen
        events_seen: Number of notifications folded in
        updated_at: Timestamp of the last update, None before any event
    """
    input_source: InputSource | None = None
    volume_steps: int = 0
    bass_steps: int = 0
    last_sound: int | None = None
    pairing_requested: bool = False
    events_seen: int = 0
    updated_at: float | None = None


class PuckStateTracker:
    """Fold notifications into a PuckState.

    This is best-effort only: notifications can be missed and the device
    may omit switch-completion events when the input did not change.
    Bass mode entered from the puck exits on its own after ~15 s; that is
    not visible over BLE and is not modelled.
    """

    def __init__(self) -> None:
        self._state = PuckState()

    @property
    def state(self) -> PuckState:
        return self._state

    def reset(self) -> None:
        """Forget everything, e.g. after connection loss."""
        self._state = PuckState()

    def update(self, notification: Notification, timestamp: float | None = None) -> PuckState:
        """Process one notification and return the new snapshot."""
        event = notification.event
        current = self._state
        changes: dict[str, object] = {
            "events_seen": current.events_seen + 1,
            "updated_at": timestamp if timestamp is not None else time.time(),
        }

        if event in _SOURCE_EVENTS:
            changes["input_source"] = _SOURCE_EVENTS[event]
        elif event in _VOLUME_STEPS:
            changes["volume_steps"] = current.volume_steps + _VOLUME_STEPS[event]
        elif event in _BASS_STEPS:
            changes["bass_steps"] = current.bass_steps + _BASS_STEPS[event]
        elif event in _SOUND_EVENTS:
            changes["last_sound"] = _SOUND_EVENTS[event]
        elif event is LogicalEvent.PAIRING:
            changes["pairing_requested"] = True
        elif event is LogicalEvent.FACTORY_RESET:
            return self._replace_all(changes)

        self._state = replace(current, **changes)
        return self._state

    def __call__(self, notification: Notification) -> None:
        """Allow the tracker to be registered directly as an event callback."""
        self.update(notification)

    def _replace_all(self, changes: dict[str, object]) -> PuckState:
        self._state = replace(PuckState(), **changes)
        return self._state
