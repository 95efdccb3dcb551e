# iqos_control/models.py
"""Value types shared by the codec, the initializer and the device handle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Union


class DeviceModel(str, Enum):
    """Hardware model family, detected from the advertised name."""

    ILUMA_ONE = "Iluma ONE"
    ILUMA = "ILUMA"
    ILUMA_PRIME = "ILUMA PRIME"
    ILUMA_I_ONE = "Iluma i ONE"
    ILUMA_I = "ILUMA i"
    ILUMA_I_PRIME = "ILUMA i PRIME"

    @property
    def is_one_piece(self) -> bool:
        """One-piece devices have no separate holder."""
        return self in (DeviceModel.ILUMA_ONE, DeviceModel.ILUMA_I_ONE)

    def __str__(self) -> str:
        return self.value


class FirmwareKind(Enum):
    """Which half of the device a firmware version belongs to."""

    VAPE = "vape"
    HOLDER = "holder"

    @property
    def tag(self) -> int:
        """Address byte carried at offset 1 of the firmware response."""
        return 0xC0 if self is FirmwareKind.VAPE else 0x08


@dataclass(frozen=True, order=True)
class FirmwareVersion:
    """Firmware version as reported by the stick or the holder.

    Ordering compares (major, minor, patch, year); the kind is informational.
    """

    major: int
    minor: int
    patch: int
    year: int
    kind: FirmwareKind = field(default=FirmwareKind.VAPE, compare=False)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}.{self.year}"


@dataclass(frozen=True)
class HolderSpecific:
    """Identification of the holder on two-piece hardware."""

    product_number: str
    firmware_version: FirmwareVersion


@dataclass(frozen=True)
class OnePiece:
    """Hardware without a separate holder."""


@dataclass(frozen=True)
class TwoPiece:
    """Holder + stick hardware."""

    holder: HolderSpecific


Hardware = Union[OnePiece, TwoPiece]


class BrightnessLevel(IntEnum):
    """Holder LED brightness; the value is the byte carried on the wire."""

    HIGH = 0x64
    LOW = 0x1E

    def __str__(self) -> str:
        return self.name.lower()


class VibrationBehavior(IntEnum):
    """Events that can trigger a vibration; the value is the wire code."""

    HEATING_START = 0x01
    STARTING_TO_USE = 0x02
    PUFF_END = 0x03
    MANUALLY_TERMINATED = 0x04
    CHARGING_START = 0x05


@dataclass(frozen=True)
class VibrationSettings:
    """Which events make the device vibrate."""

    when_heating_start: bool = False
    when_starting_to_use: bool = False
    when_puff_end: bool = False
    when_manually_terminated: bool = False
    when_charging_start: bool = False

    def as_behaviors(self) -> dict[VibrationBehavior, bool]:
        return {
            VibrationBehavior.HEATING_START: self.when_heating_start,
            VibrationBehavior.STARTING_TO_USE: self.when_starting_to_use,
            VibrationBehavior.PUFF_END: self.when_puff_end,
            VibrationBehavior.MANUALLY_TERMINATED: self.when_manually_terminated,
            VibrationBehavior.CHARGING_START: self.when_charging_start,
        }


@dataclass(frozen=True)
class Telemetry:
    """Usage counters from the telemetry frame."""

    total_usage_count: int
    usage_period: int = 0


__all__ = [
    "DeviceModel",
    "FirmwareKind",
    "FirmwareVersion",
    "HolderSpecific",
    "OnePiece",
    "TwoPiece",
    "Hardware",
    "BrightnessLevel",
    "VibrationBehavior",
    "VibrationSettings",
    "Telemetry",
]
