# iqos_control/device/__init__.py
"""Model registry and helpers for IQOS devices.

- Keeps imports light at module import time (no bleak import here).
- Maps advertised BLE names to a `DeviceModel`; the longest matching pattern
  wins so specific variants ("ILUMA i PRIME") are never shadowed by the
  generic family name ("ILUMA").
- Provides a helper to connect to and initialize a device from its MAC address.
"""
from __future__ import annotations

import logging
import re
from typing import Tuple

from ..const import DEFAULT_RESPONSE_TIMEOUT, DEFAULT_SCAN_TIMEOUT
from ..exception import DeviceNotFound
from ..models import DeviceModel
from .builder import DeviceBuilder, InitState
from .iqos_device import IqosDevice

_LOGGER = logging.getLogger(__name__)

# Matched case-insensitively as whole words of the advertised name, so "ONE"
# does not match inside "Phone".
NAME_PATTERNS: Tuple[Tuple[str, DeviceModel], ...] = (
    ("ILUMA i PRIME", DeviceModel.ILUMA_I_PRIME),
    ("ILUMA PRIME", DeviceModel.ILUMA_PRIME),
    ("ILUMA i ONE", DeviceModel.ILUMA_I_ONE),
    ("i ONE", DeviceModel.ILUMA_I_ONE),
    ("ILUMA ONE", DeviceModel.ILUMA_ONE),
    ("ONE", DeviceModel.ILUMA_ONE),
    ("ILUMA i", DeviceModel.ILUMA_I),
    ("ILUMA", DeviceModel.ILUMA),
)

_PATTERN_RES = {
    pattern: re.compile(rf"(?<!\w){re.escape(pattern)}(?!\w)", re.IGNORECASE)
    for pattern, _ in NAME_PATTERNS
}

DEFAULT_MODEL = DeviceModel.ILUMA


def match_model_from_name(device_name: str | None) -> DeviceModel | None:
    """Return the model whose longest pattern occurs in *device_name*, if any."""
    if not device_name:
        return None

    best: DeviceModel | None = None
    best_len = -1
    for pattern, model in NAME_PATTERNS:
        if _PATTERN_RES[pattern].search(device_name) and len(pattern) > best_len:
            best = model
            best_len = len(pattern)
    return best


def get_model_from_name(device_name: str | None) -> DeviceModel:
    """Return the model family for a BLE advertised name.

    Names that match no pattern (or no name at all) resolve to ILUMA.
    """
    best = match_model_from_name(device_name)
    if best is None:
        _LOGGER.debug("No model pattern matches %r; assuming %s", device_name, DEFAULT_MODEL)
        return DEFAULT_MODEL
    return best


async def get_device_from_address(
    device_address: str,
    timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT,
) -> IqosDevice:
    """Scan for *device_address*, connect and run the full initialization.

    Intended for CLI/testing contexts (lazy bleak import).
    """
    from ..transport import BleakTransport, find_ble_device

    ble_dev = await find_ble_device(device_address, scan_timeout)
    if ble_dev is None:
        raise DeviceNotFound(f"No device found at {device_address}")

    transport = BleakTransport(ble_dev)
    builder = DeviceBuilder(transport, timeout=timeout)
    try:
        await builder.initialize()
        return builder.build()
    except Exception:
        await transport.disconnect()
        raise


__all__ = [
    "DEFAULT_MODEL",
    "NAME_PATTERNS",
    "DeviceBuilder",
    "InitState",
    "IqosDevice",
    "get_device_from_address",
    "get_model_from_name",
    "match_model_from_name",
]
