# iqos_control/device/iqos_device.py
"""IQOS device handle.

Created by :class:`~iqos_control.device.builder.DeviceBuilder`; exposes the
device's operations as awaitable methods. Identifiers are fixed at build
time; the battery reading is the only state refreshed afterwards, and only
through :meth:`IqosDevice.reload_battery`.

Every exchange on the control characteristic goes through one
:class:`~iqos_control.transport.ControlChannel`, so a request never consumes
another request's response.
"""

from __future__ import annotations

import logging
from typing import Optional

from .. import commands
from ..diagnosis import DiagnosisBuilder, DiagnosisReport
from ..exception import ConfigurationError
from ..models import (
    BrightnessLevel,
    DeviceModel,
    FirmwareVersion,
    Hardware,
    HolderSpecific,
    OnePiece,
    Telemetry,
    TwoPiece,
    VibrationSettings,
)
from ..protocol import (
    decode_battery_level,
    decode_brightness,
    decode_telemetry,
    decode_vibration_settings,
    encode_brightness,
    encode_vibration,
)
from ..transport import CharacteristicDescriptor, ControlChannel, Transport

__all__ = ["IqosDevice"]


class IqosDevice:
    """A connected, initialized IQOS device."""

    def __init__(
        self,
        *,
        transport: Transport,
        model: DeviceModel,
        model_number: str,
        serial_number: str,
        software_revision: str,
        manufacturer_name: str,
        battery_characteristic: CharacteristicDescriptor,
        channel: ControlChannel,
        product_number: str,
        firmware_version: FirmwareVersion,
        hardware: Hardware,
    ) -> None:
        self._transport = transport
        self._logger = logging.getLogger(transport.address.replace(":", "-"))
        self._model = model
        self._model_number = model_number
        self._serial_number = serial_number
        self._software_revision = software_revision
        self._manufacturer_name = manufacturer_name
        self._battery_char = battery_characteristic
        self._channel = channel
        self._product_number = product_number
        self._firmware_version = firmware_version
        self._hardware = hardware
        self._battery_status: Optional[int] = None

    # ---- properties ----
    @property
    def address(self) -> str:
        return self._transport.address

    @property
    def name(self) -> str:
        return self._transport.name

    @property
    def model(self) -> DeviceModel:
        return self._model

    @property
    def model_number(self) -> str:
        return self._model_number

    @property
    def serial_number(self) -> str:
        return self._serial_number

    @property
    def software_revision(self) -> str:
        return self._software_revision

    @property
    def manufacturer_name(self) -> str:
        return self._manufacturer_name

    @property
    def product_number(self) -> str:
        return self._product_number

    @property
    def firmware_version(self) -> FirmwareVersion:
        return self._firmware_version

    @property
    def hardware(self) -> Hardware:
        return self._hardware

    @property
    def is_one_piece(self) -> bool:
        return isinstance(self._hardware, OnePiece)

    @property
    def holder(self) -> HolderSpecific:
        """Holder identification; one-piece devices have none."""
        if isinstance(self._hardware, TwoPiece):
            return self._hardware.holder
        raise ConfigurationError(f"{self._model} has no holder")

    @property
    def battery_status(self) -> Optional[int]:
        """Last battery percentage read, or None before the first reload."""
        return self._battery_status

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected()

    # ---- battery ----
    async def reload_battery(self) -> int:
        data = await self._transport.read(self._battery_char)
        self._battery_status = decode_battery_level(data)
        self._logger.debug("%s: Battery at %s%%", self.name, self._battery_status)
        return self._battery_status

    # ---- commands (fire-and-forget) ----
    async def send_confirm(self) -> None:
        await self._channel.send(commands.CONFIRMATION_SIGNAL)

    async def vibrate(self) -> None:
        await self._channel.send(commands.START_VIBRATE_SIGNAL)

    async def stop_vibrate(self) -> None:
        await self._channel.send(commands.STOP_VIBRATE_SIGNAL)

    async def lock_device(self) -> None:
        """Send the lock sequence followed by the confirmation frame."""
        await self._channel.send_sequence(
            commands.LOCK_SIGNALS + (commands.CONFIRMATION_SIGNAL,)
        )

    async def unlock_device(self) -> None:
        await self._channel.send_sequence(
            commands.UNLOCK_SIGNALS + (commands.CONFIRMATION_SIGNAL,)
        )

    async def update_brightness(self, level: BrightnessLevel) -> None:
        await self._channel.send(encode_brightness(level))

    async def update_vibration_settings(self, settings: VibrationSettings) -> None:
        await self._channel.send_sequence(encode_vibration(settings))

    # ---- requests ----
    async def load_brightness(self) -> BrightnessLevel:
        return decode_brightness(await self._channel.request(commands.LOAD_BRIGHTNESS_SIGNAL))

    async def load_vibration_settings(self) -> VibrationSettings:
        data = await self._channel.request(commands.LOAD_VIBRATION_SETTINGS_SIGNAL)
        return decode_vibration_settings(data)

    async def telemetry(self) -> Telemetry:
        return decode_telemetry(await self._channel.request(commands.LOAD_TELEMETRY_SIGNAL))

    async def diagnosis(self) -> DiagnosisReport:
        """Issue every diagnosis request and merge the answers.

        Unknown fragments are skipped; a malformed one aborts with its
        decode error.
        """
        responses = await self._channel.request_multi(commands.ALL_DIAGNOSIS_SIGNALS)
        return DiagnosisBuilder().parse_all(responses).build()

    async def disconnect(self) -> None:
        await self._transport.disconnect()

    # ---- display ----
    def describe(self) -> str:
        lines = [
            f"Model: {self._model}",
            f"Model Number: {self._model_number}",
            f"Serial Number: {self._serial_number}",
            f"Manufacturer Name: {self._manufacturer_name}",
            f"Firmware version: {self._firmware_version}",
        ]
        if isinstance(self._hardware, TwoPiece):
            holder = self._hardware.holder
            lines += [
                "",
                "Stick:",
                f"\tProduct Number: {self._product_number}",
                f"\tSoftware Revision: {self._software_revision}",
                "Holder:",
                f"\tHolder Product Number: {holder.product_number}",
                f"\tHolder Firmware version: {holder.firmware_version}",
            ]
        else:
            lines += [
                f"Software Revision: {self._software_revision}",
                f"Product Number: {self._product_number}",
            ]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"<IqosDevice {self._model} {self.address}>"
