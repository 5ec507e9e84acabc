"""Scanning for Z407 pucks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bleak import BleakScanner

from .protocol import DEVICE_NAME

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


async def discover_devices(
        timeout: float = 10.0,
        name: str = DEVICE_NAME,
) -> dict[str, BLEDevice]:
    """Scan for pucks advertising the given name.

    Args:
        timeout: Scan duration in seconds (default: 10)
        name: Advertised name to match (default: "Logitech Z407")

    Returns:
        Mapping of address to BLEDevice for every match
    """
    _LOGGER.debug("Scanning %.1fs for %r", timeout, name)
    devices = await BleakScanner.discover(timeout=timeout)

    found = {device.address: device for device in devices if device.name == name}
    _LOGGER.info("Found %d device(s) named %r", len(found), name)
    return found
