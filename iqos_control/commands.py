# iqos_control/commands.py
"""
IQOS command catalog.

Every request the client can issue is a fixed byte sequence ("signal") written
to the SCP control characteristic. Frames always start with 0x00 followed by
the target address byte:

    0xC0  stick / vape side
    0xC9  holder side (requests)
    0x08  holder side (responses)

Read requests use the shape ``00 <addr> 00 <reg> ...`` and are answered with
``00 <addr> 88 <reg> ...``; writes use ``00 <addr> 4x <reg> ...``.

Some operations are ordered sequences: the frames of a sequence must be
written one after the other, never reordered or batched.
"""

from __future__ import annotations

from typing import Dict, Tuple

__all__ = [
    "Signal",
    "SignalSequence",
    "CONFIRMATION_SIGNAL",
    "START_VIBRATE_SIGNAL",
    "STOP_VIBRATE_SIGNAL",
    "LOCK_SIGNALS",
    "UNLOCK_SIGNALS",
    "PRODUCT_NUM_SIGNAL",
    "HOLDER_PRODUCT_NUM_SIGNAL",
    "LOAD_STICK_FIRMWARE_VERSION_SIGNAL",
    "LOAD_HOLDER_FIRMWARE_VERSION_SIGNAL",
    "LOAD_TOTAL_SMOKING_SIGNAL",
    "LOAD_TIMESTAMP_SIGNAL",
    "LOAD_USAGE_COUNT_HEATING_TIME_SIGNAL",
    "LOAD_BATTERY_VOLTAGE_SIGNAL",
    "ALL_DIAGNOSIS_SIGNALS",
    "LOAD_TELEMETRY_SIGNAL",
    "LOAD_BRIGHTNESS_SIGNAL",
    "BRIGHTNESS_HIGH_SIGNAL",
    "BRIGHTNESS_LOW_SIGNAL",
    "LOAD_VIBRATION_SETTINGS_SIGNAL",
    "VIBRATION_SETTING_SIGNALS",
]

Signal = bytes
SignalSequence = Tuple[bytes, ...]


def _sig(hexstr: str) -> Signal:
    return bytes.fromhex(hexstr)


# ────────────────────────────────────────────────────────────────
# Confirmation / vibrate / lock
# ────────────────────────────────────────────────────────────────
CONFIRMATION_SIGNAL: Signal = _sig("00 C0 01 00 F6")

START_VIBRATE_SIGNAL: Signal = _sig("00 C0 45 22 01 1E 00 00 C3")
STOP_VIBRATE_SIGNAL: Signal = _sig("00 C0 45 22 00 1E 00 00 D5")

# Followed by CONFIRMATION_SIGNAL, with no response wait in between.
LOCK_SIGNALS: SignalSequence = (
    _sig("00 C9 44 04 02 FF 00 00 5A"),
    _sig("00 C9 00 04 1C"),
)
UNLOCK_SIGNALS: SignalSequence = (
    _sig("00 C9 44 04 00 00 00 00 5D"),
    _sig("00 C9 00 04 1C"),
)

# ────────────────────────────────────────────────────────────────
# Identification (answered with 00 C0 88 03 / 00 08 88 03 ...)
# ────────────────────────────────────────────────────────────────
PRODUCT_NUM_SIGNAL: Signal = _sig("00 C0 00 03 00 00 00")
HOLDER_PRODUCT_NUM_SIGNAL: Signal = _sig("00 C9 00 03 00 00 00")

# ────────────────────────────────────────────────────────────────
# Firmware (answered with 00 C0 88 00 / 00 08 88 00 ...)
# ────────────────────────────────────────────────────────────────
LOAD_STICK_FIRMWARE_VERSION_SIGNAL: Signal = _sig("00 C0 00 00 00 00 00")
LOAD_HOLDER_FIRMWARE_VERSION_SIGNAL: Signal = _sig("00 C9 00 00 00 00 00")

# ────────────────────────────────────────────────────────────────
# Diagnosis
# ────────────────────────────────────────────────────────────────
LOAD_TOTAL_SMOKING_SIGNAL: Signal = _sig("00 C9 10 02 01 01 75 D6")
LOAD_TIMESTAMP_SIGNAL: Signal = _sig("00 C0 10 02 00 04 38 EF")
LOAD_USAGE_COUNT_HEATING_TIME_SIGNAL: Signal = _sig("00 C9 10 02 01 01 75 D6")
LOAD_BATTERY_VOLTAGE_SIGNAL: Signal = _sig("00 C0 00 21 E7")

# Issued in this order; each one waits for its own response.
ALL_DIAGNOSIS_SIGNALS: SignalSequence = (
    LOAD_TOTAL_SMOKING_SIGNAL,
    LOAD_TIMESTAMP_SIGNAL,
    LOAD_USAGE_COUNT_HEATING_TIME_SIGNAL,
    LOAD_BATTERY_VOLTAGE_SIGNAL,
)

LOAD_TELEMETRY_SIGNAL: Signal = LOAD_TOTAL_SMOKING_SIGNAL

# ────────────────────────────────────────────────────────────────
# Brightness (register 0x23)
# ────────────────────────────────────────────────────────────────
LOAD_BRIGHTNESS_SIGNAL: Signal = _sig("00 C0 00 23 00 00 00")
BRIGHTNESS_HIGH_SIGNAL: Signal = _sig("00 C0 45 23 64 00 00 00")
BRIGHTNESS_LOW_SIGNAL: Signal = _sig("00 C0 45 23 1E 00 00 00")

# ────────────────────────────────────────────────────────────────
# Vibration settings (register 0x24)
# ────────────────────────────────────────────────────────────────
LOAD_VIBRATION_SETTINGS_SIGNAL: Signal = _sig("00 C0 00 24 00 00 00")

# (behavior code, enabled) -> frame
VIBRATION_SETTING_SIGNALS: Dict[Tuple[int, bool], Signal] = {
    (0x01, False): _sig("00 C0 45 24 01 00 00 00"),
    (0x01, True): _sig("00 C0 45 24 01 01 00 00"),
    (0x02, False): _sig("00 C0 45 24 02 00 00 00"),
    (0x02, True): _sig("00 C0 45 24 02 01 00 00"),
    (0x03, False): _sig("00 C0 45 24 03 00 00 00"),
    (0x03, True): _sig("00 C0 45 24 03 01 00 00"),
    (0x04, False): _sig("00 C0 45 24 04 00 00 00"),
    (0x04, True): _sig("00 C0 45 24 04 01 00 00"),
    (0x05, False): _sig("00 C0 45 24 05 00 00 00"),
    (0x05, True): _sig("00 C0 45 24 05 01 00 00"),
}
