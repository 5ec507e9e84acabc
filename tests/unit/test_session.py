"""Test the session controller against a fake transport."""

from __future__ import annotations

import asyncio

import pytest

from z407puck.exceptions import (
    DisconnectedError,
    HandshakeError,
    HandshakeTimeoutError,
    NotReadyError,
    TransportWriteError,
)
from z407puck.protocol import HandshakeFailure, HandshakeState, LogicalCommand, LogicalEvent
from z407puck.session import Session, establish_session

INITIATE_RESPONSE = bytes.fromhex("d40501")
ACKNOWLEDGE_RESPONSE = bytes.fromhex("d40001")
CONNECTED = bytes.fromhex("d40003")


async def _start_handshake(session: Session) -> asyncio.Task[None]:
    """Start the handshake in the background and let INITIATE go out."""
    task = asyncio.create_task(session.handshake())
    await asyncio.sleep(0)
    return task


@pytest.mark.asyncio
async def test_establish_session_runs_handshake(responsive_transport) -> None:
    """establish_session should write INITIATE then ACKNOWLEDGE and end READY."""
    session = await establish_session(responsive_transport, handshake_timeout=1.0)

    assert session.state is HandshakeState.READY
    assert session.is_ready
    assert responsive_transport.written == [b"\x84\x05", b"\x84\x00"]


@pytest.mark.asyncio
async def test_send_command_rejected_until_connected(transport) -> None:
    """VOLUME_UP fails with NotReadyError before CONNECTED and succeeds after."""
    session = Session(transport, handshake_timeout=1.0)
    session.attach()

    with pytest.raises(NotReadyError, match="handshake not complete"):
        await session.send_command(LogicalCommand.VOLUME_UP)

    task = await _start_handshake(session)
    assert transport.written == [b"\x84\x05"]

    transport.notify(INITIATE_RESPONSE)
    await asyncio.sleep(0)
    assert transport.written == [b"\x84\x05", b"\x84\x00"]

    transport.notify(ACKNOWLEDGE_RESPONSE)
    assert session.state is HandshakeState.AWAITING_CONNECTED
    with pytest.raises(NotReadyError):
        await session.send_command(LogicalCommand.VOLUME_UP)

    transport.notify(CONNECTED)
    await task

    await session.send_command(LogicalCommand.VOLUME_UP)
    assert transport.written[-1] == b"\x80\x02"
    assert len(transport.written) == 3


@pytest.mark.asyncio
async def test_handshake_commands_allowed_before_ready(transport) -> None:
    """INITIATE/ACKNOWLEDGE are never gated."""
    session = Session(transport)

    await session.send_command(LogicalCommand.ACKNOWLEDGE)

    assert transport.written == [b"\x84\x00"]


@pytest.mark.asyncio
async def test_handshake_timeout_fails_session(transport) -> None:
    """Missing INITIATE_RESPONSE ends in FAILED(timeout) and blocks commands."""
    session = Session(transport, handshake_timeout=0.05)
    session.attach()

    with pytest.raises(HandshakeTimeoutError, match="INITIATE_RESPONSE"):
        await session.handshake()

    assert session.state is HandshakeState.FAILED
    assert session.failure_reason is HandshakeFailure.TIMEOUT

    # A late response does not revive the session
    transport.notify(INITIATE_RESPONSE)
    assert session.state is HandshakeState.FAILED

    with pytest.raises(NotReadyError, match="handshake failed"):
        await session.send_command(LogicalCommand.VOLUME_UP)
    assert transport.written == [b"\x84\x05"]


@pytest.mark.asyncio
async def test_timeout_applies_per_step(transport) -> None:
    """A stalled CONNECTED step times out even after earlier steps succeeded."""
    session = Session(transport, handshake_timeout=0.05)
    session.attach()
    task = await _start_handshake(session)

    transport.notify(INITIATE_RESPONSE)
    transport.notify(ACKNOWLEDGE_RESPONSE)

    with pytest.raises(HandshakeTimeoutError, match="CONNECTED"):
        await task
    assert session.failure_reason is HandshakeFailure.TIMEOUT


@pytest.mark.asyncio
async def test_timer_cancelled_once_ready(responsive_transport) -> None:
    """The handshake timer must not fire after READY."""
    session = await establish_session(responsive_transport, handshake_timeout=0.02)

    await asyncio.sleep(0.06)

    assert session.state is HandshakeState.READY


@pytest.mark.asyncio
async def test_establish_session_closes_on_timeout(transport) -> None:
    """A failed handshake detaches the session from the transport."""
    with pytest.raises(HandshakeTimeoutError):
        await establish_session(transport, handshake_timeout=0.02)

    assert not transport.subscribed


@pytest.mark.asyncio
async def test_stray_events_during_handshake_are_not_forwarded(transport) -> None:
    """Confirmations from a previous session tail are ignored while handshaking."""
    received = []
    session = Session(transport, handshake_timeout=1.0)
    session.on_event(received.append)
    session.attach()
    task = await _start_handshake(session)

    transport.notify(b"\xc0\x02")
    transport.notify(INITIATE_RESPONSE)
    await asyncio.sleep(0)
    transport.notify(b"\xcf\x05")
    transport.notify(ACKNOWLEDGE_RESPONSE)
    transport.notify(CONNECTED)
    await task

    assert received == []
    assert session.is_ready


@pytest.mark.asyncio
async def test_events_forwarded_once_ready(responsive_transport) -> None:
    """Decoded events, including unrecognized ones, reach every subscriber."""
    first, second = [], []
    session = await establish_session(responsive_transport, on_event=first.append)
    session.on_event(second.append)

    responsive_transport.notify(b"\xc5\x02")
    responsive_transport.notify(b"\xff\xff")

    assert [n.event for n in first] == [LogicalEvent.SOUND_2, LogicalEvent.UNRECOGNIZED]
    assert first[1].data == b"\xff\xff"
    assert first == second


@pytest.mark.asyncio
async def test_unsubscribe(responsive_transport) -> None:
    received = []
    session = await establish_session(responsive_transport)
    remove = session.on_event(received.append)

    remove()
    responsive_transport.notify(b"\xc0\x02")

    assert received == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others(responsive_transport) -> None:
    received = []

    def _broken(notification):
        raise RuntimeError("boom")

    session = await establish_session(responsive_transport, on_event=_broken)
    session.on_event(received.append)

    responsive_transport.notify(b"\xc1\x02")

    assert [n.event for n in received] == [LogicalEvent.SWITCH_AUX]


@pytest.mark.asyncio
async def test_connection_lost_after_ready(responsive_transport) -> None:
    """Connection loss resets to IDLE and every later send fails."""
    session = await establish_session(responsive_transport)

    responsive_transport.drop()

    assert session.state is HandshakeState.IDLE
    assert not session.is_connected
    assert not session.is_ready
    with pytest.raises(DisconnectedError, match="disconnected"):
        await session.send_command(LogicalCommand.VOLUME_UP)
    with pytest.raises(DisconnectedError):
        await session.handshake()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frames",
    [[], [INITIATE_RESPONSE], [INITIATE_RESPONSE, ACKNOWLEDGE_RESPONSE]],
)
async def test_connection_lost_during_handshake(transport, frames) -> None:
    """Connection loss at any handshake step fails the waiter and resets to IDLE."""
    session = Session(transport, handshake_timeout=1.0)
    session.attach()
    task = await _start_handshake(session)
    for frame in frames:
        transport.notify(frame)
        await asyncio.sleep(0)

    transport.drop()

    with pytest.raises(DisconnectedError, match="Connection lost"):
        await task
    assert session.state is HandshakeState.IDLE

    # Frames after the loss are dropped
    transport.notify(CONNECTED)
    assert session.state is HandshakeState.IDLE
    with pytest.raises(DisconnectedError):
        await session.send_command(LogicalCommand.PLAY_PAUSE)


@pytest.mark.asyncio
async def test_write_failure_invalidates_session(responsive_transport) -> None:
    """A failed write propagates and the session then reports disconnected."""
    session = await establish_session(responsive_transport)
    responsive_transport.fail_writes = True

    with pytest.raises(TransportWriteError):
        await session.send_command(LogicalCommand.NEXT_TRACK)

    assert not session.is_connected
    with pytest.raises(DisconnectedError, match="disconnected"):
        await session.send_command(LogicalCommand.NEXT_TRACK)


@pytest.mark.asyncio
async def test_write_failure_then_link_loss_ends_idle(responsive_transport) -> None:
    """A failed write leaves READY, and the later link loss still resets to IDLE."""
    session = await establish_session(responsive_transport)
    responsive_transport.fail_writes = True

    with pytest.raises(TransportWriteError):
        await session.send_command(LogicalCommand.NEXT_TRACK)

    assert session.state is HandshakeState.IDLE
    assert not session.is_ready

    responsive_transport.drop()

    assert session.state is HandshakeState.IDLE
    assert session.failure_reason is None


@pytest.mark.asyncio
async def test_link_loss_after_handshake_timeout_resets_to_idle(transport) -> None:
    session = Session(transport, handshake_timeout=0.02)
    session.attach()

    with pytest.raises(HandshakeTimeoutError):
        await session.handshake()
    assert session.state is HandshakeState.FAILED

    transport.drop()

    assert session.state is HandshakeState.IDLE
    assert not session.is_connected
    with pytest.raises(DisconnectedError):
        await session.send_command(LogicalCommand.VOLUME_UP)


@pytest.mark.asyncio
async def test_link_loss_before_handshake_started(transport) -> None:
    session = Session(transport)
    session.attach()

    transport.drop()

    assert session.state is HandshakeState.IDLE
    with pytest.raises(DisconnectedError, match="disconnected"):
        await session.send_command(LogicalCommand.VOLUME_UP)
    assert transport.written == []


@pytest.mark.asyncio
async def test_write_failure_during_handshake(transport) -> None:
    transport.fail_writes = True
    session = Session(transport, handshake_timeout=1.0)
    session.attach()

    with pytest.raises(TransportWriteError):
        await session.handshake()

    assert session.state is HandshakeState.FAILED
    assert session.failure_reason is HandshakeFailure.TRANSPORT_ERROR


@pytest.mark.asyncio
async def test_acknowledge_write_failure_fails_handshake(transport) -> None:
    """A failed ACKNOWLEDGE write is reported to the handshake waiter."""
    session = Session(transport, handshake_timeout=1.0)
    session.attach()
    task = await _start_handshake(session)

    transport.fail_writes = True
    transport.notify(INITIATE_RESPONSE)

    with pytest.raises(TransportWriteError):
        await task
    assert session.failure_reason is HandshakeFailure.TRANSPORT_ERROR


@pytest.mark.asyncio
async def test_handshake_cannot_restart(responsive_transport) -> None:
    session = await establish_session(responsive_transport)

    with pytest.raises(HandshakeError, match="already started"):
        await session.handshake()


@pytest.mark.asyncio
async def test_close_mid_handshake(transport) -> None:
    """Closing before READY fails the waiter and detaches from the transport."""
    session = Session(transport, handshake_timeout=1.0)
    session.attach()
    task = await _start_handshake(session)

    await session.close()

    with pytest.raises(DisconnectedError, match="closed"):
        await task
    assert session.state is HandshakeState.FAILED
    assert session.failure_reason is HandshakeFailure.DISCONNECTED
    assert not transport.subscribed
