# iqos_control/protocol.py
"""
IQOS — frame codec.

Pure functions turning response buffers into typed values and typed settings
into command frames. Nothing here performs I/O.

Response layouts handled:

• Firmware version (stick and holder):
    [0x00, tag, 0x88, 0x00, ?, ?, major, minor, patch, year]
    tag = 0xC0 for the stick, 0x08 for the holder.

• Diagnosis fragments, selected by the discriminator at bytes [2, 3]:
    90 22  telemetry    total usage u16le@10, session lo(u16le@13),
                        composite u16le@26, days used u16le@34
    80 02  timestamp    days used u16le@4
    88 21  battery      millivolts u16le@5
  Any other discriminator is skipped without error.

• Product numbers: 4-byte header then ASCII; the stick frame carries one
  trailing byte that is not part of the identifier.

• Battery characteristic: percentage at byte 2.

Decoders raise FrameTooShort / ProtocolMismatch; they never return partial
values.
"""

from __future__ import annotations

from typing import Dict, Tuple, Union

from . import commands
from .exception import FrameTooShort, ProtocolMismatch
from .models import (
    BrightnessLevel,
    FirmwareKind,
    FirmwareVersion,
    Telemetry,
    VibrationBehavior,
    VibrationSettings,
)

__all__ = [
    "FIRMWARE_MIN_LENGTH",
    "PRODUCT_NUM_HEADER",
    "HOLDER_PRODUCT_NUM_HEADER",
    "TOTAL_SMOKING_HEADER",
    "TIMESTAMP_HEADER",
    "BATTERY_VOLTAGE_HEADER",
    "DiagnosisUpdate",
    "to_hex",
    "decode_firmware",
    "decode_diagnosis_fragment",
    "printable_ascii",
    "decode_ascii_identifier",
    "decode_product_number",
    "decode_holder_product_number",
    "decode_battery_level",
    "decode_telemetry",
    "decode_brightness",
    "encode_brightness",
    "decode_vibration_settings",
    "encode_vibration",
]

# ────────────────────────────────────────────────────────────────
# Headers / lengths
# ────────────────────────────────────────────────────────────────
FIRMWARE_MIN_LENGTH = 10
IDENTIFIER_PREFIX_LENGTH = 4

PRODUCT_NUM_HEADER = bytes([0x00, 0xC0, 0x88, 0x03])
HOLDER_PRODUCT_NUM_HEADER = bytes([0x00, 0x08, 0x88, 0x03])
BRIGHTNESS_HEADER = bytes([0x00, 0xC0, 0x88, 0x23])
VIBRATION_SETTINGS_HEADER = bytes([0x00, 0xC0, 0x88, 0x24])

TOTAL_SMOKING_HEADER: Tuple[int, int] = (0x90, 0x22)
TIMESTAMP_HEADER: Tuple[int, int] = (0x80, 0x02)
BATTERY_VOLTAGE_HEADER: Tuple[int, int] = (0x88, 0x21)

DIAGNOSIS_MIN_LENGTH = 4
TELEMETRY_MIN_LENGTH = 15
TIMESTAMP_MIN_LENGTH = 8
BATTERY_VOLTAGE_MIN_LENGTH = 7

DiagnosisUpdate = Dict[str, Union[int, float]]


def to_hex(data: bytes | bytearray) -> str:
    """Upper-case, space separated hex used in logs and CLI output."""
    return bytes(data).hex(" ").upper()


def _require(data: bytes | bytearray, length: int, what: str) -> None:
    if len(data) < length:
        raise FrameTooShort(length, len(data), what)


def _u16le(data: bytes | bytearray, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "little")


# ────────────────────────────────────────────────────────────────
# Firmware
# ────────────────────────────────────────────────────────────────
def decode_firmware(data: bytes | bytearray, kind: FirmwareKind) -> FirmwareVersion:
    """Decode a firmware-version response.

    Args:
        data: Raw notification value.
        kind: Which side was asked; selects the expected tag byte.

    Returns:
        The decoded :class:`FirmwareVersion`, tagged with *kind*.

    Raises:
        FrameTooShort: Fewer than 10 bytes.
        ProtocolMismatch: Header is not ``00 <tag> 88 00``.
    """
    _require(data, FIRMWARE_MIN_LENGTH, f"{kind.value} firmware frame")
    expected = bytes([0x00, kind.tag, 0x88, 0x00])
    if bytes(data[:4]) != expected:
        raise ProtocolMismatch(
            f"{kind.value} firmware header mismatch: expected {to_hex(expected)}, "
            f"got {to_hex(data[:4])}"
        )
    return FirmwareVersion(
        major=data[6],
        minor=data[7],
        patch=data[8],
        year=data[9],
        kind=kind,
    )


# ────────────────────────────────────────────────────────────────
# Diagnosis fragments
# ────────────────────────────────────────────────────────────────
def _telemetry_fields(data: bytes | bytearray) -> DiagnosisUpdate:
    _require(data, TELEMETRY_MIN_LENGTH, "telemetry frame")
    update: DiagnosisUpdate = {
        "total_usage_count": _u16le(data, 10),
        "session": _u16le(data, 13) & 0xFF,
    }
    # Shorter telemetry frames simply do not carry these counters.
    if len(data) >= 28:
        update["composite_counter"] = _u16le(data, 26)
    if len(data) >= 36:
        update["days_used"] = _u16le(data, 34)
    return update


def _timestamp_fields(data: bytes | bytearray) -> DiagnosisUpdate:
    _require(data, TIMESTAMP_MIN_LENGTH, "timestamp frame")
    return {"days_used": _u16le(data, 4)}


def _battery_voltage_fields(data: bytes | bytearray) -> DiagnosisUpdate:
    _require(data, BATTERY_VOLTAGE_MIN_LENGTH, "battery voltage frame")
    return {"battery_voltage": _u16le(data, 5) / 1000.0}


_DIAGNOSIS_DECODERS = {
    TOTAL_SMOKING_HEADER: _telemetry_fields,
    TIMESTAMP_HEADER: _timestamp_fields,
    BATTERY_VOLTAGE_HEADER: _battery_voltage_fields,
}


def decode_diagnosis_fragment(data: bytes | bytearray) -> DiagnosisUpdate:
    """Extract the diagnosis fields carried by one response frame.

    Returns an empty mapping for discriminators this client does not know.
    """
    _require(data, DIAGNOSIS_MIN_LENGTH, "diagnosis frame")
    decoder = _DIAGNOSIS_DECODERS.get((data[2], data[3]))
    if decoder is None:
        return {}
    return decoder(data)


# ────────────────────────────────────────────────────────────────
# Identifiers
# ────────────────────────────────────────────────────────────────
def printable_ascii(text: str) -> str:
    """Replace every non-printable or non-ASCII character with '.'."""
    return "".join(ch if " " <= ch <= "~" else "." for ch in text)


def decode_ascii_identifier(
    data: bytes | bytearray,
    trim_last_byte: bool = False,
) -> str:
    """Decode an ASCII identifier that follows a 4-byte header.

    The header itself is not inspected; any buffer of at least four bytes
    decodes.

    Args:
        data:           Raw notification value.
        trim_last_byte: Drop the final byte (stick product number frames).

    Returns:
        The identifier with unprintable bytes shown as '.'.
    """
    _require(data, IDENTIFIER_PREFIX_LENGTH, "identifier frame")
    body = data[IDENTIFIER_PREFIX_LENGTH:]
    if trim_last_byte:
        body = body[:-1]
    return printable_ascii("".join(chr(b) for b in body))


def _check_identifier_header(data: bytes | bytearray, header_prefix: bytes) -> None:
    _require(data, IDENTIFIER_PREFIX_LENGTH, "identifier frame")
    if bytes(data[:IDENTIFIER_PREFIX_LENGTH]) != bytes(header_prefix):
        raise ProtocolMismatch(
            f"identifier header mismatch: expected {to_hex(header_prefix)}, "
            f"got {to_hex(data[:IDENTIFIER_PREFIX_LENGTH])}"
        )


def decode_product_number(data: bytes | bytearray) -> str:
    _check_identifier_header(data, PRODUCT_NUM_HEADER)
    return decode_ascii_identifier(data, trim_last_byte=True)


def decode_holder_product_number(data: bytes | bytearray) -> str:
    _check_identifier_header(data, HOLDER_PRODUCT_NUM_HEADER)
    return decode_ascii_identifier(data)


# ────────────────────────────────────────────────────────────────
# Battery / telemetry
# ────────────────────────────────────────────────────────────────
def decode_battery_level(data: bytes | bytearray) -> int:
    """Battery percentage from a battery characteristic read."""
    _require(data, 3, "battery characteristic value")
    return data[2]


def decode_telemetry(data: bytes | bytearray) -> Telemetry:
    _require(data, DIAGNOSIS_MIN_LENGTH, "telemetry frame")
    if (data[2], data[3]) != TOTAL_SMOKING_HEADER:
        raise ProtocolMismatch(
            f"not a telemetry frame: discriminator {data[2]:02X} {data[3]:02X}"
        )
    _require(data, 12, "telemetry frame")
    return Telemetry(total_usage_count=_u16le(data, 10))


# ────────────────────────────────────────────────────────────────
# Brightness
# ────────────────────────────────────────────────────────────────
_BRIGHTNESS_SIGNALS = {
    BrightnessLevel.HIGH: commands.BRIGHTNESS_HIGH_SIGNAL,
    BrightnessLevel.LOW: commands.BRIGHTNESS_LOW_SIGNAL,
}


def decode_brightness(data: bytes | bytearray) -> BrightnessLevel:
    _require(data, 5, "brightness frame")
    if bytes(data[:4]) != BRIGHTNESS_HEADER:
        raise ProtocolMismatch(f"brightness header mismatch: got {to_hex(data[:4])}")
    try:
        return BrightnessLevel(data[4])
    except ValueError as ex:
        raise ProtocolMismatch(f"unknown brightness level 0x{data[4]:02X}") from ex


def encode_brightness(level: BrightnessLevel) -> bytes:
    return _BRIGHTNESS_SIGNALS[BrightnessLevel(level)]


# ────────────────────────────────────────────────────────────────
# Vibration settings
# ────────────────────────────────────────────────────────────────
def decode_vibration_settings(data: bytes | bytearray) -> VibrationSettings:
    """Decode the vibration-settings response.

    One flag byte per behavior follows the header, in wire-code order.
    """
    behaviors = list(VibrationBehavior)
    _require(data, 4 + len(behaviors), "vibration settings frame")
    if bytes(data[:4]) != VIBRATION_SETTINGS_HEADER:
        raise ProtocolMismatch(
            f"vibration settings header mismatch: got {to_hex(data[:4])}"
        )
    flags = {b: bool(data[4 + i]) for i, b in enumerate(behaviors)}
    return VibrationSettings(
        when_heating_start=flags[VibrationBehavior.HEATING_START],
        when_starting_to_use=flags[VibrationBehavior.STARTING_TO_USE],
        when_puff_end=flags[VibrationBehavior.PUFF_END],
        when_manually_terminated=flags[VibrationBehavior.MANUALLY_TERMINATED],
        when_charging_start=flags[VibrationBehavior.CHARGING_START],
    )


def encode_vibration(settings: VibrationSettings) -> Tuple[bytes, ...]:
    """Frames that apply *settings*, one per behavior, in wire-code order."""
    return tuple(
        commands.VIBRATION_SETTING_SIGNALS[(int(behavior), enabled)]
        for behavior, enabled in sorted(settings.as_behaviors().items())
    )
