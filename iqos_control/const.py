# iqos_control/const.py
"""Constants for the IQOS control client."""

from __future__ import annotations

# ────────────────────────────────────────────────────────────────────────────────
# Core identifiers
# ────────────────────────────────────────────────────────────────────────────────
UNKNOWN: str = "Unknown"

# ────────────────────────────────────────────────────────────────────────────────
# Device information service (standard GATT)
# ────────────────────────────────────────────────────────────────────────────────
DEVICE_INFO_SERVICE_UUID = "0000180a-0000-1000-8000-00805f9b34fb"

# Characteristics are matched on the first UUID group only.
MODEL_NUMBER_CHAR_UUID = "00002a24"
SERIAL_NUMBER_CHAR_UUID = "00002a25"
SOFTWARE_REVISION_CHAR_UUID = "00002a28"
MANUFACTURER_NAME_CHAR_UUID = "00002a29"

# ────────────────────────────────────────────────────────────────────────────────
# Core service (vendor specific)
# ────────────────────────────────────────────────────────────────────────────────
CORE_SERVICE_UUID = "daebb240-b041-11e4-9e45-0002a5d5c51b"
BATTERY_CHARACTERISTIC_UUID = "f8a54120-b041-11e4-9be7-0002a5d5c51b"  # read
SCP_CONTROL_CHARACTERISTIC_UUID = "e16c6e20-b041-11e4-a4c3-0002a5d5c51b"  # read/write/notify

# ────────────────────────────────────────────────────────────────────────────────
# Timing
# ────────────────────────────────────────────────────────────────────────────────
# Seconds to wait for the single notification that answers a request.
DEFAULT_RESPONSE_TIMEOUT: float = 5.0
DEFAULT_SCAN_TIMEOUT: float = 5.0

__all__ = [
    "UNKNOWN",
    "DEVICE_INFO_SERVICE_UUID",
    "MODEL_NUMBER_CHAR_UUID",
    "SERIAL_NUMBER_CHAR_UUID",
    "SOFTWARE_REVISION_CHAR_UUID",
    "MANUFACTURER_NAME_CHAR_UUID",
    "CORE_SERVICE_UUID",
    "BATTERY_CHARACTERISTIC_UUID",
    "SCP_CONTROL_CHARACTERISTIC_UUID",
    "DEFAULT_RESPONSE_TIMEOUT",
    "DEFAULT_SCAN_TIMEOUT",
]
