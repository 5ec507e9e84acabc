"""Send commands to a Z407 puck and print the events it reports.

Usage:
    uv run python examples/puck_control.py --scan
    uv run python examples/puck_control.py AA:BB:CC:DD:EE:FF volume_up volume_up
    uv run python examples/puck_control.py AA:BB:CC:DD:EE:FF --listen 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from z407puck import LogicalCommand, Notification, Z407Puck, discover_devices
from z407puck.protocol import USER_COMMANDS, command_from_name


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_event(notification: Notification) -> None:
    """Print one decoded notification."""
    print(f"[{_timestamp()}] {notification.event.name} ({notification.hex})")


def _parse_commands(names: list[str]) -> list[LogicalCommand]:
    commands = [command_from_name(name) for name in names]
    for cmd in commands:
        if cmd not in USER_COMMANDS:
            raise SystemExit(f"{cmd.name} is sent automatically during the handshake")
    return commands


async def _scan(duration: float) -> None:
    devices = await discover_devices(timeout=duration)
    if not devices:
        print("No Z407 pucks found")
        return
    for address, device in devices.items():
        print(f"{address}  {device.name}")


async def _run(address: str, commands: list[LogicalCommand], listen: float, delay: float) -> None:
    async with Z407Puck(address) as puck:
        puck.on_event(_print_event)
        print(f"[{_timestamp()}] Connected to {address}")

        for cmd in commands:
            print(f"[{_timestamp()}] -> {cmd.name}")
            await puck.send(cmd)
            await asyncio.sleep(delay)

        if listen > 0:
            await asyncio.sleep(listen)

        state = puck.state
        source = state.input_source.value if state.input_source else "unknown"
        print(
            f"Observed: input={source} volume_steps={state.volume_steps:+d} "
            f"bass_steps={state.bass_steps:+d} events={state.events_seen}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("address", nargs="?", help="Puck MAC address")
    parser.add_argument(
        "commands",
        nargs="*",
        help="Commands to send: " + ", ".join(cmd.name.lower() for cmd in USER_COMMANDS),
    )
    parser.add_argument("--scan", action="store_true", help="Scan for pucks and exit")
    parser.add_argument("--duration", type=float, default=10.0, help="Scan duration in seconds")
    parser.add_argument("--listen", type=float, default=2.0, help="Seconds to keep printing events")
    parser.add_argument("--delay", type=float, default=0.2, help="Pause between commands in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log wire traffic")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.scan:
        asyncio.run(_scan(args.duration))
        return

    if not args.address:
        parser.error("address is required unless --scan is given")

    try:
        commands = _parse_commands(args.commands)
    except ValueError as e:
        parser.error(str(e))

    asyncio.run(_run(args.address, commands, args.listen, args.delay))


if __name__ == "__main__":
    main()
