# iqos_control/__init__.py
"""BLE control client for IQOS ILUMA devices.

- Frame codec and command catalog have no bleak dependency.
- bleak / bleak-retry-connector are imported lazily by the transport.
"""
from __future__ import annotations

from .diagnosis import DiagnosisBuilder, DiagnosisReport
from .exception import (
    CharacteristicMissingError,
    ConfigurationError,
    DeviceNotFound,
    FrameTooShort,
    Incomplete,
    IQOSError,
    NoResponse,
    ProtocolMismatch,
    TransportError,
)
from .models import (
    BrightnessLevel,
    DeviceModel,
    FirmwareKind,
    FirmwareVersion,
    HolderSpecific,
    OnePiece,
    Telemetry,
    TwoPiece,
    VibrationSettings,
)

__all__ = [
    "BrightnessLevel",
    "CharacteristicMissingError",
    "ConfigurationError",
    "DeviceModel",
    "DeviceNotFound",
    "DiagnosisBuilder",
    "DiagnosisReport",
    "FirmwareKind",
    "FirmwareVersion",
    "FrameTooShort",
    "HolderSpecific",
    "Incomplete",
    "IQOSError",
    "NoResponse",
    "OnePiece",
    "ProtocolMismatch",
    "Telemetry",
    "TransportError",
    "TwoPiece",
    "VibrationSettings",
]
