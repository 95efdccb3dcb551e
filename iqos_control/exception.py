# iqos_control/exception.py
"""Exceptions raised by the IQOS control client."""

from __future__ import annotations


class IQOSError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(IQOSError):
    """A required peripheral, characteristic or field is missing."""


class CharacteristicMissingError(ConfigurationError):
    """A mandatory GATT characteristic was not found on the device."""


class DeviceNotFound(IQOSError):
    """No device answered at the given address."""


class ProtocolMismatch(IQOSError):
    """A response frame does not carry the header expected for its type."""


class FrameTooShort(IQOSError):
    """A response frame is shorter than its decoder requires."""

    def __init__(self, expected: int, actual: int, what: str = "frame") -> None:
        super().__init__(f"{what} too short: need at least {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class Incomplete(IQOSError):
    """A diagnosis report lacks one of its required fields."""


class NoResponse(IQOSError):
    """The device did not answer a request in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No response received within {timeout:g}s")
        self.timeout = timeout


class TransportError(IQOSError):
    """The BLE link reported a failure."""


__all__ = [
    "IQOSError",
    "ConfigurationError",
    "CharacteristicMissingError",
    "DeviceNotFound",
    "ProtocolMismatch",
    "FrameTooShort",
    "Incomplete",
    "NoResponse",
    "TransportError",
]
